"""Command-line entry point of gonectr."""

from __future__ import annotations

import argparse
import logging
import re
import sys
from typing import Sequence

from gonectr.create import SUPPORTED_TEMPLATES, create_project
from gonectr.generate import DEFAULT_PREPARER_PACKAGE, Generator
from gonectr.install import install
from gonectr.priest.action import do_action
from gonectr.run import generate_and_run_go_subcommand
from gonectr.utils import GoneCtrError

VERSION = "v0.0.18"

_DESCRIPTION = (
    "gonectr is a command-line tool designed for generating Gone projects\n"
    "and serving as a utility for Gone projects, such as code generation,\n"
    "compilation, and running Gone projects."
)


def _split_list(values: Sequence[str] | None) -> list[str] | None:
    """Flatten repeated, comma separated option values."""
    if values is None:
        return None
    return [item.strip() for value in values for item in value.split(",") if item.strip()]


def _cmd_generate(ns: argparse.Namespace) -> None:
    generator = Generator(
        scan_dirs=_split_list(ns.scan_dir) or ["."],
        main_package_dir=ns.main_package_dir,
        preparer_code=ns.preparer_code,
        preparer_package=ns.preparer_package,
        main_package_name=ns.main_package_name,
        exclude_goners=_split_list(ns.exclude_goner),
        gone_version=ns.gone_version,
    )
    generator.run()


def _cmd_run(ns: argparse.Namespace) -> None:
    generate_and_run_go_subcommand("run", ns.args)


def _cmd_priest(ns: argparse.Namespace) -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    do_action(
        _split_list(ns.scan_dir),
        ns.package,
        ns.function,
        ns.output,
        ns.stat,
        ns.watch,
    )


def _cmd_create(ns: argparse.Namespace) -> None:
    if ns.template_name not in SUPPORTED_TEMPLATES:
        raise GoneCtrError("unsupported template name")
    if len(ns.args) != 1:
        raise GoneCtrError("please input project name or project path")
    create_project(ns.args[0], ns.template_name, ns.module_name or None)


def _cmd_install(ns: argparse.Namespace) -> None:
    if not ns.args:
        raise GoneCtrError("must provide package full name")
    loaders = ns.args[1].split(",") if len(ns.args) > 1 else None
    install(ns.args[0], loaders, ns.test)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="gonectr",
        description=_DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-v", "--version", action="store_true", help="Show version")
    parser.set_defaults(handler=None)
    sub = parser.add_subparsers(title="commands", metavar="COMMAND")

    gen = sub.add_parser("generate", help="generate gone loading code and import code")
    gen.add_argument("-s", "--scan-dir", dest="scan_dir", action="append", help="scan dirs")
    gen.add_argument("-m", "--main_package_dir", dest="main_package_dir", default="",
                     help="main package dir")
    gen.add_argument("-p", "--preparer-code", dest="preparer_code", default="gone",
                     help="preparer code")
    gen.add_argument("-r", "--preparer-package", dest="preparer_package",
                     default=DEFAULT_PREPARER_PACKAGE, help="preparer package")
    gen.add_argument("-a", "--main-package-name", dest="main_package_name", default="main",
                     help="main package name")
    gen.add_argument("-e", "--exclude-goner", dest="exclude_goner", action="append",
                     help="exclude goner")
    gen.add_argument("-v", "--version", dest="gone_version", default="", help="gone version")
    gen.set_defaults(handler=_cmd_generate)

    run = sub.add_parser(
        "run",
        help="run gone project",
        description="Generate gone helper code first, then call `go run` to run the project. "
        "Run `go help run` for the arguments.",
    )
    run.add_argument("args", nargs=argparse.REMAINDER)
    run.set_defaults(handler=_cmd_run)

    priest = sub.add_parser(
        "priest",
        help="generate priest function",
        description="gonectr priest -s ${scanPackageDir} -p ${pkgName} -f ${funcName} "
        "-o ${outputFilePath} [-w]",
    )
    priest.add_argument("-s", "--scan-dir", dest="scan_dir", action="append",
                        help="scan package dir")
    priest.add_argument("-p", "--package", default="", help="package name of generated code")
    priest.add_argument("-f", "--function", default="", help="function name of generated code")
    priest.add_argument("-o", "--output", default="", help="output filepath of generated code")
    priest.add_argument("-t", "--stat", action="store_true", help="is stat process time")
    priest.add_argument("-w", "--watch", action="store_true",
                        help="watch files change, and generate code when any files changed")
    priest.set_defaults(handler=_cmd_priest)

    create = sub.add_parser("create", help="Create a new Gone Project")
    create.add_argument("-t", "--template-name", dest="template_name", default="web",
                        help=f"support template names: {', '.join(SUPPORTED_TEMPLATES)}")
    create.add_argument("-m", "--module-name", dest="module_name", default="",
                        help="module name")
    create.add_argument("args", nargs="*", metavar="project")
    create.set_defaults(handler=_cmd_create)

    inst = sub.add_parser(
        "install",
        help="install goner component and generate loaded code",
        usage="gonectr install <moduleName> [loadFuncName[,loadFuncName[,...]]]",
    )
    inst.add_argument("-t", "--test", action="store_true", help="only print `LoadFunc` list")
    inst.add_argument("args", nargs="*", metavar="arg")
    inst.set_defaults(handler=_cmd_install)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run gonectr with `argv` (default: the process arguments); return the exit status."""
    args = list(sys.argv[1:] if argv is None else argv)
    try:
        if args and args[0] == "run":
            # every argument after `run` goes to `go run` unchanged
            generate_and_run_go_subcommand("run", args[1:])
            return 0
        parser = build_parser()
        ns = parser.parse_args(args)
        if ns.handler is None:
            if ns.version:
                print(f"Gonectr version: {VERSION}")
            else:
                parser.print_help()
            return 0
        ns.handler(ns)
    except (GoneCtrError, OSError, re.error) as exc:
        print(exc, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())