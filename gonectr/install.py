"""Install a goner module and register its LoadFuncs in the loader file."""

from __future__ import annotations

import os
from typing import Sequence

from gonectr.installer.loader_parser import LoaderParser


def install(
    module_name: str, loader_names: Sequence[str] | None = None, only_print: bool = False
) -> None:
    """Add the LoadFuncs of `module_name` to loader.gone.go of the current module.

    With `only_print` the module's LoadFuncs are listed and nothing is written.
    """
    parser = LoaderParser(os.getcwd(), module_name)
    parser.execute(list(loader_names) if loader_names else None, only_print)