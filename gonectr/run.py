"""Generate helper code, then run a `go` subcommand on the project."""

from __future__ import annotations

import os
import subprocess
import sys
from typing import Sequence

from gonectr.utils import (
    GoneCtrError,
    extract_package_arg,
    find_first_go_generate_line,
    find_module_info,
    run_command,
)


def _run_captured(cmd: list[str], cwd: str | None = None) -> str:
    try:
        completed = subprocess.run(
            cmd, cwd=cwd, stdout=subprocess.PIPE, stderr=subprocess.STDOUT, text=True
        )
    except OSError as exc:
        raise GoneCtrError(f"cannot start {cmd[0]}: {exc}") from exc
    if completed.returncode != 0:
        raise GoneCtrError(f"{' '.join(cmd)} failed: {completed.stdout or ''}".rstrip())
    return completed.stdout or ""


def generate_and_run_go_subcommand(
    go_subcommand: str, args: Sequence[str], program: str | None = None
) -> None:
    """Regenerate gone code for the package in `args`, then run `go <subcommand> args`."""
    program = program or sys.argv[0]
    package_name = extract_package_arg(args)
    info = find_module_info(package_name or ".")

    found = find_first_go_generate_line(info.module_path)
    if found is not None:
        print(f"Find gonectr generate in `{found.path}:{found.line_number}`\n`{found.content}`")
        print(f"-> Change Dir to: `{info.module_path}`")
        print("-> Execute `go generate ./...`")
        print(_run_captured(["go", "generate", "./..."], cwd=info.module_path))
        print(f"-> Change Dir to: `{os.getcwd()}`")
    else:
        main_dir = os.path.abspath(package_name)
        if main_dir.endswith(".go"):
            main_dir = os.path.dirname(main_dir)
        scan_flag = f"-s={info.module_path}"
        main_flag = f"-m={main_dir}"
        print(f"-> Execute `generate {scan_flag} {main_flag}`")
        print(_run_captured([program, "generate", scan_flag, main_flag]))

    run_command("go", [go_subcommand, *args])