"""Create a new project from a template repository."""

from __future__ import annotations

import os
import shutil
import subprocess

from gonectr.utils import GoneCtrError, is_in_china

SUPPORTED_TEMPLATES = ("web", "web+mysql", "v2+web+mysql")
TEMPLATE_MODULE = "template_module"

_TEMPLATE_BASE_URL = "https://github.com/gone-io/template"
_TEMPLATE_BASE_URL_CN = "https://gitee.com/gone-io/template"


def clone_template(template_url: str, target_path: str) -> None:
    """Shallow-clone a template repository and drop its .git directory."""
    try:
        completed = subprocess.run(["git", "clone", "--depth", "1", template_url, target_path])
    except OSError as exc:
        raise GoneCtrError(f"failed to clone repository: {exc}") from exc
    if completed.returncode != 0:
        raise GoneCtrError(
            f"failed to clone repository: git exited with status {completed.returncode}"
        )

    try:
        shutil.rmtree(os.path.join(target_path, ".git"), ignore_errors=False)
    except FileNotFoundError:
        pass
    except OSError as exc:
        raise GoneCtrError(f"failed to remove .git directory: {exc}") from exc


def replace_in_file(file_path: str, old_module: str, new_module: str) -> bool:
    """Replace every occurrence of `old_module` in a file; return whether it changed."""
    try:
        with open(file_path, "rb") as handle:
            data = handle.read()
    except OSError as exc:
        raise GoneCtrError(f"failed to read file {file_path}: {exc}") from exc

    replaced = data.replace(old_module.encode(), new_module.encode())
    if replaced == data:
        return False

    try:
        with open(file_path, "wb") as handle:
            handle.write(replaced)
    except OSError as exc:
        raise GoneCtrError(f"failed to write file {file_path}: {exc}") from exc

    print(f"Updated file: {file_path}")
    return True


def replace_module_name(root_dir: str, old_module: str, new_module: str) -> None:
    """Rename the module in go.mod and in every .go and .xml file under `root_dir`."""
    try:
        replace_in_file(os.path.join(root_dir, "go.mod"), old_module, new_module)
    except GoneCtrError as exc:
        raise GoneCtrError(f"failed to update go.mod: {exc}") from exc

    for current, dirnames, filenames in os.walk(root_dir):
        dirnames.sort()
        for name in sorted(filenames):
            if not name.endswith((".go", ".xml")):
                continue
            path = os.path.join(current, name)
            try:
                replace_in_file(path, old_module, new_module)
            except GoneCtrError as exc:
                raise GoneCtrError(f"failed to update Go source files: {exc}") from exc


def create_project(project: str, template_name: str = "web", module_name: str | None = None) -> None:
    """Create `project` from a named template and tidy its dependencies."""
    if template_name not in SUPPORTED_TEMPLATES:
        raise GoneCtrError("unsupported template name")

    module_name = module_name or project
    base_url = _TEMPLATE_BASE_URL_CN if is_in_china() else _TEMPLATE_BASE_URL
    repo_suffix = template_name.replace("+", "-")

    clone_template(f"{base_url}-{repo_suffix}", project)
    replace_module_name(project, TEMPLATE_MODULE, module_name)

    try:
        completed = subprocess.run(
            ["go", "mod", "tidy"],
            cwd=project,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
        )
    except OSError as exc:
        raise GoneCtrError(f"cannot run go mod tidy: {exc}") from exc
    if completed.returncode != 0:
        raise GoneCtrError(f"go mod tidy failed: {completed.stdout or ''}".rstrip())
    if completed.stdout:
        print(completed.stdout)