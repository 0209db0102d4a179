"""Generate the loading code (init.gone.go) and import code (import.gone.go) for a project."""

from __future__ import annotations

import os
import re
from typing import Sequence

from gonectr.utils import (
    GENERATE_BY,
    GoneCtrError,
    ModuleInfo,
    find_module_info,
    get_gone_version_from_module_file,
    run_command,
)

DEFAULT_PREPARER_PACKAGE = "github.com/gone-io/gone"

_LOAD_TEMPLATE = GENERATE_BY + '\npackage %s\n\nimport "%s"\n\nfunc init() {\n\t%s%s\n}\n'
_IMPORT_TEMPLATE = GENERATE_BY + "\n\npackage %s\n\nimport (\n%s\n)"

_PACKAGE_RE = re.compile(r"\s*package\s+([A-Za-z_]\w*)")
_FUNC_RE = re.compile(r"\bfunc\s+([A-Za-z_]\w*)\s*")
_TYPE_KW_RE = re.compile(r"\btype\b\s*")
_STRUCT_RE = re.compile(r"\b([A-Za-z_]\w*)\s*(?:\[[^\]]*\]\s*)?=?\s*struct\s*\{")
_FLAG_FIELD_RE = re.compile(r'^gone\s*\.\s*Flag(\s+""\s*|\s*)$')
_OPENERS = {"{": "}", "(": ")", "[": "]"}


class GoSyntaxError(GoneCtrError):
    """Raised when a Go source file cannot be parsed."""


def _strip_comments_and_strings(src: str) -> str:
    """Drop comments and empty out string, raw-string and rune literals."""
    out: list[str] = []
    i, n = 0, len(src)
    while i < n:
        ch = src[i]
        if src.startswith("//", i):
            end = src.find("\n", i)
            i = n if end < 0 else end
        elif src.startswith("/*", i):
            end = src.find("*/", i + 2)
            if end < 0:
                raise GoSyntaxError("comment not terminated")
            out.append("\n" * src.count("\n", i, end) or " ")
            i = end + 2
        elif ch in "\"'":
            j = i + 1
            while j < n and src[j] != ch:
                if src[j] == "\\":
                    j += 1
                elif src[j] == "\n":
                    raise GoSyntaxError("string literal not terminated")
                j += 1
            if j >= n:
                raise GoSyntaxError("string literal not terminated")
            out.append('""')
            i = j + 1
        elif ch == "`":
            end = src.find("`", i + 1)
            if end < 0:
                raise GoSyntaxError("raw string literal not terminated")
            out.append('""')
            i = end + 1
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def _depths(text: str) -> list[int]:
    depths = []
    depth = 0
    for ch in text:
        if ch in ")]}":
            depth -= 1
        depths.append(depth)
        if ch in "([{":
            depth += 1
    if depth != 0:
        raise GoSyntaxError("unbalanced brackets")
    return depths


def _matching(text: str, start: int) -> int:
    """Index of the bracket closing the one at `start`."""
    depth = 0
    for i in range(start, len(text)):
        if text[i] in _OPENERS:
            depth += 1
        elif text[i] in ")]}":
            depth -= 1
            if depth == 0:
                return i
    raise GoSyntaxError("unbalanced brackets")


def _split_top_level(text: str) -> list[str]:
    parts, depth, current = [], 0, []
    for ch in text:
        if ch in _OPENERS:
            depth += 1
        elif ch in ")]}":
            depth -= 1
        if ch == "," and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)
    parts.append("".join(current))
    return [p.strip() for p in parts if p.strip()]


def _single_field_type(field_list: str) -> str | None:
    """Type of a parameter/result list holding exactly one field, else None."""
    entries = _split_top_level(field_list)
    if not entries:
        return None
    named = [e for e in entries if len(e.split(None, 1)) == 2 and not e.startswith(("*", "[", "func"))]
    count = len(named) if named else len(entries)
    if count != 1:
        return None
    last = entries[-1]
    type_text = last.split(None, 1)[1] if named else last
    return re.sub(r"\s*\.\s*", ".", type_text.strip())


def scan_go_file(filename: str, src: str | None = None) -> tuple[str, list[str], list[str]]:
    """Return the package name, goner struct names and LoadFunc names of a Go file."""
    if src is None:
        try:
            with open(filename, encoding="utf-8", errors="replace") as handle:
                src = handle.read()
        except OSError as exc:
            raise GoSyntaxError(f"{filename}: {exc}") from exc
    try:
        text = _strip_comments_and_strings(src)
        match = _PACKAGE_RE.match(text)
        if not match:
            raise GoSyntaxError("expected 'package'")
        package_name = match.group(1)
        depths = _depths(text)
    except GoSyntaxError as exc:
        raise GoSyntaxError(f"{filename}: {exc}") from exc

    struct_names: list[str] = []
    load_func_names: list[str] = []

    for fm in _FUNC_RE.finditer(text):
        if depths[fm.start()] != 0:
            continue
        pos = fm.end()
        if pos >= len(text) or text[pos] != "(":
            continue
        close = _matching(text, pos)
        param_type = _single_field_type(text[pos + 1:close])
        rest = text[close + 1:]
        stop = min((k for k in (rest.find("{"), rest.find("\n")) if k >= 0), default=len(rest))
        result_text = rest[:stop].strip()
        if result_text.startswith("(") and result_text.endswith(")"):
            result_text = result_text[1:-1]
        result_type = _single_field_type(result_text)
        if param_type == "gone.Loader" and result_type == "error":
            load_func_names.append(fm.group(1))

    group_spans = []
    type_single_ends = set()
    for tm in _TYPE_KW_RE.finditer(text):
        if depths[tm.start()] != 0:
            continue
        if tm.end() < len(text) and text[tm.end()] == "(":
            group_spans.append((tm.end(), _matching(text, tm.end())))
        else:
            type_single_ends.add(tm.end())

    for sm in _STRUCT_RE.finditer(text):
        start = sm.start()
        in_group = any(a < start < b for a, b in group_spans) and depths[start] == 1
        if not (start in type_single_ends and depths[start] == 0) and not in_group:
            continue
        if in_group and text[:start].rstrip(" \t")[-1:] not in ("\n", ";", "("):
            continue
        open_pos = sm.end() - 1
        close = _matching(text, open_pos)
        field_depth = depths[open_pos] + 1
        field_start = open_pos + 1
        for i in range(open_pos + 1, close + 1):
            if i == close or (text[i] in "\n;" and depths[i] == field_depth):
                field = text[field_start:i].strip()
                field_start = i + 1
                if _FLAG_FIELD_RE.match(field):
                    struct_names.append(sm.group(1))
                    break
    return package_name, struct_names, load_func_names


def get_package_name(file_path: str) -> str:
    """Return the package name declared in a Go file, or "" when it cannot be read."""
    try:
        with open(file_path, encoding="utf-8", errors="replace") as handle:
            text = _strip_comments_and_strings(handle.read())
    except (OSError, GoSyntaxError) as exc:
        print(f"Error parsing file: {file_path} {exc}")
        return ""
    match = _PACKAGE_RE.match(text)
    if not match:
        print(f"Error parsing file: {file_path} expected 'package'")
        return ""
    return match.group(1)


def is_main_package(file_path: str) -> bool:
    """Tell whether a Go file belongs to package main."""
    return get_package_name(file_path) == "main"


def find_first_main_package_dir(scan_dirs: Sequence[str]) -> str:
    """Return the directory of the first package main file found under the scan dirs."""
    for directory in scan_dirs:
        for current, dirnames, filenames in os.walk(directory):
            dirnames.sort()
            for name in sorted(filenames):
                path = os.path.join(current, name)
                if os.path.splitext(name)[1] == ".go" and is_main_package(path):
                    return os.path.dirname(path)
    raise GoneCtrError("no main package found")


class Generator:
    """Scans directories for goners and writes their loading and import code."""

    def __init__(
        self,
        scan_dirs: Sequence[str] | None = None,
        main_package_dir: str = "",
        preparer_code: str = "gone",
        preparer_package: str = DEFAULT_PREPARER_PACKAGE,
        main_package_name: str = "main",
        exclude_goners: Sequence[str] | None = None,
        gone_version: str = "",
    ) -> None:
        self.scan_dirs = list(scan_dirs) if scan_dirs is not None else ["."]
        self.main_package_dir = main_package_dir
        self.preparer_code = preparer_code
        self.preparer_package = preparer_package
        self.main_package_name = main_package_name
        self.exclude_goners = [re.compile(p) for p in exclude_goners or []]
        self.gone_version = gone_version

    def is_excluded(self, goner_name: str) -> bool:
        """Tell whether a goner matches one of the exclusion patterns."""
        return any(p.search(goner_name) for p in self.exclude_goners)

    def resolve_gone_version(self) -> str:
        """Return the gone major version, reading go.mod files when not set."""
        if not self.gone_version:
            self.gone_version = get_gone_version_from_module_file(self.scan_dirs, None)
        return self.gone_version

    def gen_load_code(
        self, goners: Sequence[str], load_funcs: Sequence[str], package_name: str, package_dir: str
    ) -> tuple[str, str]:
        """Return the path and content of the init.gone.go file for a package."""
        if load_funcs:
            load_code = "".join(f".\n\t\tLoads({f})" for f in load_funcs)
        else:
            load_code = "".join(f".\n\t\tLoad(&{g}{{}})" for g in goners)
        version = self.resolve_gone_version()
        preparer_package = self.preparer_package
        if preparer_package == DEFAULT_PREPARER_PACKAGE and version != "v1":
            preparer_package = f"{DEFAULT_PREPARER_PACKAGE}/{version}"
        content = _LOAD_TEMPLATE % (package_name, preparer_package, self.preparer_code, load_code)
        return os.path.join(package_dir, "init.gone.go"), content

    def gen_load_code_for_package(self, package_path: Sequence[str], scan_dir: str) -> list[str]:
        """Write loading code under `scan_dir` recursively; return packages to import."""
        go_files, sub_dirs = [], []
        for name in sorted(os.listdir(scan_dir)):
            full = os.path.join(scan_dir, name)
            if os.path.isdir(full):
                sub_dirs.append(full)
            elif name.endswith(".go") and not name.endswith(("_test.go", ".gone.go")):
                go_files.append(full)

        goners: list[str] = []
        load_funcs: list[str] = []
        package_name = ""
        for filename in go_files:
            name, structs, funcs = scan_go_file(filename)
            package_name = package_name or name
            if name != package_name:
                raise GoneCtrError(f"package name {name} is not equal to {package_name}")
            goners.extend(structs)
            load_funcs.extend(funcs)
        goners = [g for g in goners if not self.is_excluded(g)]

        packages: list[str] = []
        if goners or load_funcs:
            filename, content = self.gen_load_code(goners, load_funcs, package_name, scan_dir)
            with open(filename, "w", encoding="utf-8") as handle:
                handle.write(content)
            if self.main_package_dir != scan_dir:
                packages.append("/".join(package_path))

        for sub_dir in sub_dirs:
            packages.extend(
                self.gen_load_code_for_package([*package_path, os.path.basename(sub_dir)], sub_dir)
            )
        return packages

    def scan_dir_gen_code(self, directory: str, module_info: ModuleInfo) -> list[str]:
        """Generate code for one scan directory inside the module."""
        rel = os.path.relpath(directory, module_info.module_path)
        if rel.startswith(".."):
            raise GoneCtrError(f"scan dir {directory} is not in module {module_info.module_path}")
        package_path = [module_info.module_name]
        if rel != ".":
            package_path.extend(rel.split(os.sep))
        return self.gen_load_code_for_package(package_path, directory)

    def gen_import_code(self, packages: Sequence[str]) -> str:
        """Write import.gone.go in the main package dir; return its path."""
        imports = "\n".join(f'\t_ "{p}"' for p in packages)
        path = os.path.join(self.main_package_dir, "import.gone.go")
        with open(path, "w", encoding="utf-8") as handle:
            handle.write(_IMPORT_TEMPLATE % (self.main_package_name, imports))
        return path

    def run(self) -> None:
        """Scan all directories, write the generated files, and tidy the module."""
        if not self.scan_dirs:
            raise GoneCtrError("scan dir is empty")
        print(f"current work dir: {os.getcwd()}")
        self.scan_dirs = [os.path.abspath(d) for d in self.scan_dirs]
        if not self.main_package_dir:
            self.main_package_dir = find_first_main_package_dir(self.scan_dirs)
        print(f"main package dir: {self.main_package_dir}")
        print(f"scan dirs: {self.scan_dirs}")

        module_info = find_module_info(self.main_package_dir)
        packages: list[str] = []
        for directory in self.scan_dirs:
            packages.extend(self.scan_dir_gen_code(directory, module_info))

        if packages:
            self.gen_import_code(packages)
            return
        os.chdir(module_info.module_path)
        run_command("go", ["mod", "tidy"])