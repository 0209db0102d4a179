"""Scan packages for marked functions and write the priest function file."""

from __future__ import annotations

import logging
import os
import posixpath
from dataclasses import dataclass, field
from typing import Sequence

from gonectr.priest.fileparse import Fn, go_file_parse, go_module_info
from gonectr.priest.stat import time_stat
from gonectr.utils import GoneCtrError

logger = logging.getLogger(__name__)

_GONE_IMPORT = '    "github.com/gone-io/gone"'


def _normal(pkg_path: str) -> str:
    if os.sep == "\\":
        return pkg_path.replace("\\", "/")
    return pkg_path


@dataclass
class Pkg:
    """A package holding marked functions; `id` is its absolute directory."""

    id: str = ""
    name: str = ""
    pkg_path: str = ""
    func_list: list[Fn] = field(default_factory=list)

    def generate_func_content(self, is_self_module: bool) -> str:
        """Return the call lines for this package's functions."""
        qualifier = "" if is_self_module else f"{self.name}."
        return "\n".join(f"    {fn.gen(qualifier)}" for fn in self.func_list)

    def gen_import_content(self) -> str:
        """Return the import line for this package."""
        path = _normal(self.pkg_path)
        if posixpath.basename(path) != self.name:
            return f'    {self.name} "{path}"'
        return f'    "{path}"'


def _list_dir(directory: str) -> list[str]:
    try:
        return sorted(os.listdir(directory))
    except OSError as exc:
        raise GoneCtrError(str(exc)) from exc


def scan_package(directory: str, module_name: str, module_dir: str) -> Pkg | None:
    """Scan one directory's Go files; return its package or None if nothing is marked."""
    with time_stat("scanDir:" + directory):
        pkg = Pkg()
        for name in _list_dir(directory):
            filename = os.path.join(directory, name)
            if os.path.isdir(filename) or not name.endswith(".go"):
                continue
            result = go_file_parse(filename)
            if result is None:
                continue
            pkg.id = result.path
            pkg.name = result.pkg_name
            try:
                rel = os.path.relpath(directory, module_dir)
            except ValueError as exc:
                raise GoneCtrError(str(exc)) from exc
            pkg.pkg_path = os.path.normpath(os.path.join(module_name, rel))
            pkg.func_list.extend(result.inject_names)
    return pkg if pkg.func_list else None


def scan_tree(directory: str, module_name: str, module_dir: str) -> list[Pkg]:
    """Scan a directory and all its sub-directories (except .git)."""
    packages: list[Pkg] = []
    pkg = scan_package(directory, module_name, module_dir)
    if pkg is not None:
        packages.append(pkg)
    for name in _list_dir(directory):
        child = os.path.join(directory, name)
        if name != ".git" and os.path.isdir(child):
            packages.extend(scan_tree(child, module_name, module_dir))
    return packages


class Autoload:
    """Keeps the scanned packages and regenerates the priest file from them."""

    def __init__(
        self, scan_dirs: Sequence[str], package_name: str, function_name: str, output_file: str
    ) -> None:
        self.scan_dirs = list(scan_dirs)
        self.package_name = package_name
        self.function_name = function_name
        self.output_file = output_file
        self.module_name = ""
        self.module_dir = ""
        self.pkgs_map: dict[str, Pkg] = {}

    def fill_module_info(self) -> None:
        """Find the module of the first scan directory."""
        info = go_module_info(self.scan_dirs[0])
        self.module_name = info.module_name
        self.module_dir = info.module_path

    def first_generate(self) -> None:
        """Scan every directory and write the output file."""
        packages: list[Pkg] = []
        for directory in self.scan_dirs:
            packages.extend(scan_tree(directory, self.module_name, self.module_dir))
        self.pkgs_map = {pkg.id: pkg for pkg in packages}
        self.generate(self.output_file)

    def regenerate(self, directory: str, filename: str, op: str) -> None:
        """Rescan the directory of a changed file and rewrite the output file."""
        logger.info("%s %s in %s", op, filename, directory)
        try:
            pkg = scan_package(directory, self.module_name, self.module_dir)
        except GoneCtrError as exc:
            logger.error("scan %s err:%s", directory, exc)
            return
        if pkg is not None:
            self.pkgs_map[pkg.id] = pkg
        else:
            self.pkgs_map.pop(directory, None)
        self.generate(self.output_file)

    def in_self_module(self, pkg: Pkg) -> bool:
        """Tell whether a package lives in the output file's directory."""
        return os.path.dirname(os.path.abspath(self.output_file)) == pkg.id

    def gen_file_content(self, pkgs: Sequence[Pkg], func_name: str, pkg_name: str) -> str:
        """Return the source of the priest file."""
        imports: list[str] = []
        func_contents: list[str] = []
        for pkg in pkgs:
            is_self = self.in_self_module(pkg)
            func_contents.append(pkg.generate_func_content(is_self))
            if not is_self:
                imports.append(pkg.gen_import_content())
        imports.append(_GONE_IMPORT)

        return (
            "// Code generated by gone; DO NOT EDIT.\n"
            f"package {pkg_name}\n"
            "import (\n"
            + "\n".join(imports)
            + "\n)\n\n"
            f"func {func_name}(cemetery gone.Cemetery) error {{\n"
            + "\n".join(func_contents)
            + "\n\treturn nil\n}\n"
        )

    def generate(self, output_file: str) -> None:
        """Write the priest file; a write failure is logged."""
        content = self.gen_file_content(
            list(self.pkgs_map.values()), self.function_name, self.package_name
        )
        try:
            with open(output_file, "w", encoding="utf-8") as handle:
                handle.write(content)
        except OSError as exc:
            logger.error("write file error: %s", exc)