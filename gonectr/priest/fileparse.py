"""Find `//go:gone` marked functions in Go files and locate their module."""

from __future__ import annotations

import enum
import os
import re
from dataclasses import dataclass, field

from gonectr.priest.stat import time_stat
from gonectr.utils import GoneCtrError, ModuleInfo, find_module_info

INJECT_TAG = "gone"

_PACKAGE_RE = re.compile(r"package ([a-zA-Z][a-zA-Z0-9_]*)")
_INJECT_RE = re.compile(rf"//go:{INJECT_TAG}(\s+.*|$)")
_FUNC_RE = re.compile(r"func\s+([A-Z][a-zA-Z0-9_]*)\s*\((.*?)\)")
_PRIEST_PARAM_RE = re.compile(r"([a-zA-Z0-9_]*)\s*gone\.Cemetery")


class FnKind(enum.IntEnum):
    """How a marked function registers goners."""

    PRIEST = 0
    NEW_GONER = 1


@dataclass(frozen=True)
class Fn:
    """A marked function and the way it is called."""

    name: str
    kind: FnKind

    def gen(self, pkg_name: str) -> str:
        """Return the call statement; `pkg_name` is a qualifier such as "pkg." or ""."""
        if self.kind is FnKind.PRIEST:
            return f"{pkg_name}{self.name}(cemetery)"
        return f"cemetery.Bury({pkg_name}{self.name}())"


@dataclass
class ParseResult:
    """Marked functions found in one Go file."""

    path: str
    pkg_name: str
    inject_names: list[Fn] = field(default_factory=list)


def _read_lines(path: str) -> list[str]:
    try:
        with open(path, encoding="utf-8", errors="replace", newline="") as handle:
            text = handle.read()
    except OSError as exc:
        raise GoneCtrError(str(exc)) from exc
    if not text:
        return []
    lines = text.split("\n")
    if text.endswith("\n"):
        lines.pop()
    return [line.removesuffix("\r") for line in lines]


def go_file_parse(go_filepath: str) -> ParseResult | None:
    """Parse a Go file; return None when it has no package or no marked functions."""
    pkg_name = ""
    inject_fns: list[Fn] = []

    lines = iter(_read_lines(go_filepath))
    for line in lines:
        if not pkg_name:
            match = _PACKAGE_RE.match(line)
            if match:
                pkg_name = match.group(1)
            continue
        if not _INJECT_RE.match(line):
            continue
        following = next(lines, None)
        if following is None:
            raise GoneCtrError("file unexpected end")
        match = _FUNC_RE.match(following)
        if not match:
            continue
        params = match.group(2).strip()
        if params == "":
            inject_fns.append(Fn(match.group(1), FnKind.NEW_GONER))
        if _PRIEST_PARAM_RE.fullmatch(params):
            inject_fns.append(Fn(match.group(1), FnKind.PRIEST))

    if not pkg_name or not inject_fns:
        return None
    return ParseResult(
        path=os.path.dirname(os.path.abspath(go_filepath)),
        pkg_name=pkg_name,
        inject_names=inject_fns,
    )


def go_module_info(directory: str) -> ModuleInfo:
    """Return the module of the first directory under `directory` that holds Go files."""
    with time_stat("goModuleInfo:" + directory):
        try:
            entries = sorted(os.listdir(directory))
        except OSError as exc:
            raise GoneCtrError(str(exc)) from exc

        has_go_files = any(
            name.endswith(".go") and not os.path.isdir(os.path.join(directory, name))
            for name in entries
        )
        if has_go_files:
            return find_module_info(directory)

        for name in entries:
            child = os.path.join(directory, name)
            if name != ".git" and os.path.isdir(child):
                try:
                    return go_module_info(child)
                except GoneCtrError:
                    continue
        raise GoneCtrError("do not found .go file")