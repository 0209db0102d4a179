"""Helpers for installing goner modules: module lookup, package names, import aliases."""

from __future__ import annotations

import os
import re
import subprocess
from typing import Mapping

from gonectr.utils import GoneCtrError, run_command

_PACKAGE_CLAUSE_RE = re.compile(r"package\s+([^\W\d]\w*)")
_MAX_ALIAS_TRIES = 1000


def get_dependent_module_abs_path(module: str) -> str:
    """Fetch `module` with `go get -u` and return the directory it was downloaded to."""
    print(f"\tgo get -u {module}")
    run_command("go", ["get", "-u", module])

    print(f'\tgo list -m -f "{{{{.Dir}}}}" {module}')
    cmd = ["go", "list", "-m", "-f", "{{.Dir}}", module]
    try:
        completed = subprocess.run(
            cmd, stdout=subprocess.PIPE, stderr=subprocess.STDOUT, text=True
        )
    except OSError as exc:
        raise GoneCtrError(f"cannot get module abspath: {exc}") from exc
    output = completed.stdout or ""
    if completed.returncode != 0:
        raise GoneCtrError(
            f"cannot get module abspath: exit status {completed.returncode}, output: {output}"
        )
    abs_path = output.strip()
    print(f"\tmodule({module}) abspath=> {abs_path}\n")
    return abs_path


def _read_package_clause(file_path: str) -> str:
    """Return the package name of a Go file, or "" when the clause cannot be read."""
    try:
        with open(file_path, encoding="utf-8", errors="replace") as handle:
            text = handle.read()
    except OSError:
        return ""
    while True:
        text = text.lstrip()
        if text.startswith("//"):
            end = text.find("\n")
            text = "" if end < 0 else text[end + 1:]
        elif text.startswith("/*"):
            end = text.find("*/", 2)
            if end < 0:
                return ""
            text = text[end + 2:]
        else:
            break
    match = _PACKAGE_CLAUSE_RE.match(text)
    return match.group(1) if match else ""


def get_dir_package_name(directory: str) -> str:
    """Return the package name of the first non-test Go file in `directory`, or ""."""
    try:
        names = sorted(os.listdir(directory))
    except OSError:
        return ""
    for name in names:
        path = os.path.join(directory, name)
        if os.path.isdir(path):
            continue
        if not name.endswith(".go") or name.endswith("_test.go"):
            continue
        package_name = _read_package_clause(path)
        if package_name:
            return package_name
    return ""


def generate_not_duplicate_alias(import_map: Mapping[str, object], name: str) -> str:
    """Return `name` followed by the smallest number that is not yet a key of `import_map`."""
    for i in range(1, _MAX_ALIAS_TRIES):
        candidate = f"{name}{i}"
        if candidate not in import_map:
            return candidate
    raise GoneCtrError("too many times to try generate name")