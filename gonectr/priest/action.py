"""Generate the priest function file, optionally regenerating on changes."""

from __future__ import annotations

import logging
import os
from typing import Sequence

from gonectr.priest import stat
from gonectr.priest.loader import Autoload
from gonectr.priest.watch import do_watch

logger = logging.getLogger(__name__)


def do_action(
    dirs: Sequence[str] | None,
    package_name: str,
    function_name: str,
    output_file: str,
    show_stat: bool = False,
    is_watch: bool = False,
) -> Autoload:
    """Scan `dirs` (default: the working directory) and write the priest function file."""
    stat.set_enabled(show_stat)
    scan_dirs = [os.path.abspath(d) for d in dirs] if dirs else [os.getcwd()]
    output_file = os.path.abspath(output_file)

    loader = Autoload(scan_dirs, package_name, function_name, output_file)
    loader.fill_module_info()
    loader.first_generate()

    if is_watch:
        logger.info("watch mode...")
        do_watch(loader.regenerate, scan_dirs, output_file)
    return loader