"""Installing third-party Gone components into a module's loader file."""