"""Tools for creating Gone projects and generating their loading code."""

__version__ = "0.0.18"