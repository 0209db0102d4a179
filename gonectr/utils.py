"""Shared helpers: module discovery, version detection, command running."""

from __future__ import annotations

import json
import os
import re
import subprocess
import time
import urllib.request
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterable, Iterator, Sequence

GENERATE_BY = "// Code generated by gonectr. DO NOT EDIT."

_EXTERNAL_IP_URL = "https://api.ipify.org?format=text"
_IP_INFO_URL = "https://ip-api.com/json/"
_HTTP_TIMEOUT = 3.0

_GONE_REQUIRE_RE = re.compile(r"(?s)github.com/gone-io/gone(\S*)\s+")
_GO_GENERATE_RE = re.compile(r"^\s*//\s*go:generate\s+gonectr\s+generate")


class GoneCtrError(Exception):
    """Raised when a gonectr operation cannot be completed."""


@dataclass(frozen=True)
class ModuleInfo:
    """Name and absolute root directory of a Go module."""

    module_name: str
    module_path: str


@dataclass(frozen=True)
class GenerateLine:
    """A `//go:generate gonectr generate` line found in a source file."""

    path: str
    line_number: int
    content: str


def extract_package_arg(args: Sequence[str]) -> str:
    """Return the first non-flag argument of a `go run`/`go build` command line."""
    skip_next = False
    for arg in args:
        if skip_next:
            skip_next = False
            continue
        if arg == "-exec":
            skip_next = True
            continue
        if len(arg) > 1 and arg.startswith("-"):
            continue
        return arg
    return ""


def parse_module_name(go_mod_path: str) -> str:
    """Read a go.mod file and return the declared module name."""
    try:
        with open(go_mod_path, encoding="utf-8", errors="replace") as handle:
            for raw in handle:
                line = raw.strip()
                if not line or line.startswith("//"):
                    continue
                if line.startswith("module "):
                    return line[len("module "):].strip()
    except OSError as exc:
        raise GoneCtrError(f"cannot open file: {exc}") from exc
    raise GoneCtrError("module declaration not found")


def find_go_mod_dir(from_dir: str) -> str:
    """Search upwards from `from_dir` and return the directory holding go.mod."""
    directory = os.path.abspath(from_dir)
    while True:
        if os.path.exists(os.path.join(directory, "go.mod")):
            return directory
        parent = os.path.dirname(directory)
        if parent == directory:
            raise GoneCtrError("go.mod file not found")
        directory = parent


def find_module_info(directory: str) -> ModuleInfo:
    """Return the module that contains `directory`."""
    module_path = find_go_mod_dir(directory)
    module_name = parse_module_name(os.path.join(module_path, "go.mod"))
    return ModuleInfo(module_name=module_name, module_path=os.path.abspath(module_path))


def get_gone_version_from_module_file(
    scan_dirs: Iterable[str] | None, scan_files: Iterable[str] | None = None
) -> str:
    """Return the highest major version of the gone framework required ("v1", "v2", ...)."""
    directories = list(scan_dirs or [])
    directories.extend(os.path.dirname(f) for f in scan_files or [])

    max_version = "v1"
    for directory in directories:
        try:
            mod_dir = find_go_mod_dir(directory)
            with open(os.path.join(mod_dir, "go.mod"), encoding="utf-8", errors="replace") as handle:
                text = handle.read()
        except (GoneCtrError, OSError):
            continue
        for match in _GONE_REQUIRE_RE.finditer(text):
            suffix = match.group(1)
            if not suffix:
                continue
            version = suffix.removeprefix("/").strip()
            if version and version > max_version:
                max_version = version
    return max_version


def _iter_files_lexical(root: str) -> Iterator[str]:
    """Yield files under `root` depth-first in lexical order, without following links."""
    if not os.path.isdir(root) or os.path.islink(root):
        os.lstat(root)
        yield root
        return
    for name in sorted(os.listdir(root)):
        child = os.path.join(root, name)
        if os.path.isdir(child) and not os.path.islink(child):
            yield from _iter_files_lexical(child)
        else:
            yield child


def _find_generate_line_in_file(file_path: str) -> tuple[int, str] | None:
    with open(file_path, encoding="utf-8", errors="replace") as handle:
        for number, raw in enumerate(handle, start=1):
            line = raw.rstrip("\n").rstrip("\r")
            if _GO_GENERATE_RE.match(line.strip()):
                return number, line
    return None


def find_first_go_generate_line(directory: str) -> GenerateLine | None:
    """Find the first `//go:generate gonectr generate` line in the .go files under `directory`."""
    try:
        for path in _iter_files_lexical(directory):
            if os.path.splitext(path)[1] != ".go":
                continue
            found = _find_generate_line_in_file(path)
            if found is not None:
                number, line = found
                return GenerateLine(path=path, line_number=number, content=line)
    except OSError as exc:
        raise GoneCtrError(str(exc)) from exc
    return None


def run_command(command: str, args: Sequence[str]) -> None:
    """Run a program with its output passed through; raise if it fails."""
    try:
        completed = subprocess.run([command, *args])
    except OSError as exc:
        raise GoneCtrError(f"cannot start {command}: {exc}") from exc
    if completed.returncode != 0:
        raise GoneCtrError(f"{command} exited with status {completed.returncode}")


def _http_get(url: str) -> bytes:
    with urllib.request.urlopen(url, timeout=_HTTP_TIMEOUT) as response:
        return response.read()


def get_external_ip() -> str:
    """Return the caller's public IP address."""
    try:
        return _http_get(_EXTERNAL_IP_URL).decode("utf-8", errors="replace")
    except (OSError, ValueError) as exc:
        raise GoneCtrError(f"failed to get external IP: {exc}") from exc


def is_ip_in_china(ip: str) -> bool:
    """Tell whether an IP address is located in China."""
    try:
        body = _http_get(_IP_INFO_URL + ip)
    except (OSError, ValueError) as exc:
        raise GoneCtrError(f"failed to get IP info: {exc}") from exc
    try:
        info = json.loads(body)
    except ValueError as exc:
        raise GoneCtrError(f"failed to parse JSON: {exc}") from exc
    return isinstance(info, dict) and info.get("country") == "China"


def is_in_china() -> bool:
    """Guess whether the caller is in China; assume so when the lookup fails."""
    try:
        return is_ip_in_china(get_external_ip())
    except GoneCtrError:
        return True


@contextmanager
def time_stat(name: str) -> Iterator[None]:
    """Print a start line and, on exit, the time the block took."""
    print(f"{name} Start ...")
    begin = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - begin
        print(f"{name} use time:{elapsed * 1000:.3f}ms")