"""Maintain the loader.gone.go file that lists the LoadFuncs of installed goner modules."""

from __future__ import annotations

import os
import posixpath
import re
from dataclasses import dataclass
from typing import Sequence

from prompt_toolkit import shortcuts

from gonectr.generate import scan_go_file
from gonectr.installer.funcs import (
    generate_not_duplicate_alias,
    get_dependent_module_abs_path,
    get_dir_package_name,
)
from gonectr.utils import GENERATE_BY, GoneCtrError, find_module_info, time_stat

GONE_MODULE = "github.com/gone-io/gone/v2"
LOADER_FILE = "loader.gone.go"

CODE_TEMPLATE = """%s
package %s
import (
\t"github.com/gone-io/gone/v2"
\t"github.com/gone-io/goner/g"
)

//added LoadFunc
var loaders = []gone.LoadFunc{
}

func ThirdGonersLoad() gone.LoadFunc {
\tvar ops []*g.LoadOp
\tfor _, f := range loaders {
\t\tops = append(ops, g.F(f))
\t}
\treturn g.BuildOnceLoadFunc(ops...)
}
"""

_BASE_IMPORTS = ('\t"github.com/gone-io/gone/v2"', '\t"github.com/gone-io/goner/g"')

_PACKAGE_RE = re.compile(r"\s*package\s+[^\W\d]\w*")
_IMPORT_KW_RE = re.compile(r"\bimport\b\s*")
_IMPORT_SPEC_RE = re.compile(r'(?:([^\W\d]\w*|\.|_)\s+)?"([^"]*)"')
_LOADERS_RE = re.compile(r"\bvar\s+loaders\s*=\s*\[\]\s*gone\s*\.\s*LoadFunc\s*\{([^}]*)\}")
_SELECTOR_RE = re.compile(r"([^\W\d]\w*)\s*\.\s*([^\W\d]\w*)")

_IMPORT_BLOCK_RE = re.compile(r"(?s)import\s*\(([^\)]*)\)")
_LOADERS_BLOCK_RE = re.compile(r"(?s)var\s+loaders\s*=\s*\[\]gone\.LoadFunc\s*\{[^\}]*\}")


@dataclass
class Import:
    """An import of the loader file."""

    alias: str = ""
    pkg_name: str = ""
    pkg_id: str = ""


@dataclass(frozen=True)
class LoadFunc:
    """A function of a goner package that loads its goners."""

    name: str
    pkg_id: str
    pkg_name: str

    def id(self) -> str:
        """Return the fully qualified name `pkg_id.name`."""
        return f"{self.pkg_id}.{self.name}"

    def __str__(self) -> str:
        return self.id()


def _strip_comments(src: str) -> str:
    """Remove comments from Go source while keeping literals intact."""
    out: list[str] = []
    i, n = 0, len(src)
    while i < n:
        if src.startswith("//", i):
            end = src.find("\n", i)
            i = n if end < 0 else end
        elif src.startswith("/*", i):
            end = src.find("*/", i + 2)
            if end < 0:
                raise GoneCtrError("comment not terminated")
            out.append(" ")
            i = end + 2
        elif src[i] in "\"'`":
            quote = src[i]
            j = i + 1
            while j < n and src[j] != quote:
                if src[j] == "\\" and quote != "`":
                    j += 1
                j += 1
            if j >= n:
                raise GoneCtrError("literal not terminated")
            out.append(src[i:j + 1])
            i = j + 1
        else:
            out.append(src[i])
            i += 1
    return "".join(out)


def _scan_package_load_funcs(directory: str, pkg_id: str) -> list[LoadFunc]:
    """Return the LoadFuncs declared by the Go files of one package directory."""
    try:
        names = sorted(os.listdir(directory))
    except OSError as exc:
        raise GoneCtrError(str(exc)) from exc
    pkg_name = posixpath.basename(pkg_id)
    found: list[LoadFunc] = []
    for name in names:
        path = os.path.join(directory, name)
        if os.path.isdir(path) or not name.endswith(".go") or name.endswith("_test.go"):
            continue
        _, _, func_names = scan_go_file(path)
        found.extend(LoadFunc(name=f, pkg_id=pkg_id, pkg_name=pkg_name) for f in func_names)
    return found


class LoaderParser:
    """Reads, updates and writes the loader file of the current module."""

    def __init__(self, work_dir: str, module: str) -> None:
        self.work_dir = work_dir
        self.module = module
        self.imports: list[Import] = []
        self.load_funcs: dict[str, LoadFunc] = {}
        self._source = ""

        with time_stat("Init"):
            info = find_module_info(work_dir)
            self.current_module = info.module_name
            self.current_module_abs_path = info.module_path
            self.loader_file = os.path.join(self.current_module_abs_path, LOADER_FILE)
            self._check_or_generate()

    def _check_or_generate(self) -> None:
        if os.path.isdir(self.loader_file):
            raise GoneCtrError(f"{self.loader_file} is a dir")
        if not os.path.exists(self.loader_file):
            package_name = get_dir_package_name(self.current_module_abs_path)
            if not package_name:
                package_name = posixpath.basename(self.current_module)
            content = CODE_TEMPLATE % (GENERATE_BY, package_name)
            try:
                with open(self.loader_file, "w", encoding="utf-8") as handle:
                    handle.write(content)
            except OSError as exc:
                raise GoneCtrError(f"create {self.loader_file} failed: {exc}") from exc
        self._parse_source()

    def _parse_source(self) -> None:
        with time_stat("Create AST Tree for loader.gone.go"):
            try:
                text = _strip_comments(self._read())
            except GoneCtrError as exc:
                raise GoneCtrError(f"parse {self.loader_file} failed: {exc}") from exc
            if not _PACKAGE_RE.match(text):
                raise GoneCtrError(f"parse {self.loader_file} failed: expected 'package'")
            self._source = text

    def _read(self) -> str:
        try:
            with open(self.loader_file, encoding="utf-8") as handle:
                return handle.read()
        except OSError as exc:
            raise GoneCtrError(f"read file {self.loader_file} failed: {exc}") from exc

    def parse_module_loader(self) -> list[LoadFunc]:
        """Fetch the gone module and the installed module; return the module's LoadFuncs."""
        with time_stat("ParseModuleLoader"):
            modules = (GONE_MODULE, self.module)
            abs_paths = [get_dependent_module_abs_path(m) for m in modules]

            print("\tloaders module info ...")
            print("\tlooking for LoadFunc ...")
            loaders: list[LoadFunc] = []
            for module, directory in zip(modules, abs_paths):
                if module == GONE_MODULE:
                    continue
                loaders.extend(_scan_package_load_funcs(directory, module))
            return loaders

    def parse_imports(self) -> None:
        """Read the imports of the loader file into `imports`."""
        with time_stat("ParseImports"):
            text = self._source
            imports: list[Import] = []
            for kw in _IMPORT_KW_RE.finditer(text):
                start = kw.end()
                if text.startswith("(", start):
                    end = text.find(")", start)
                    body = text[start + 1:] if end < 0 else text[start + 1:end]
                    specs = list(_IMPORT_SPEC_RE.finditer(body))
                else:
                    spec = _IMPORT_SPEC_RE.match(text, start)
                    specs = [spec] if spec else []
                imports.extend(Import(alias=s.group(1) or "", pkg_id=s.group(2)) for s in specs)
            self.imports = imports

    def parse_load_funcs(self) -> None:
        """Read the entries of the `loaders` variable into `load_funcs`."""
        with time_stat("ParseLoadFuncs"):
            by_name = {(imp.alias or posixpath.basename(imp.pkg_id)): imp for imp in self.imports}
            match = _LOADERS_RE.search(self._source)
            if match is None:
                return
            for element in match.group(1).split(","):
                selector = _SELECTOR_RE.fullmatch(element.strip())
                if selector is None:
                    continue
                imp = by_name.get(selector.group(1))
                if imp is None:
                    continue
                load_func = LoadFunc(
                    name=selector.group(2),
                    pkg_id=imp.pkg_id,
                    pkg_name=posixpath.basename(imp.pkg_id),
                )
                self.load_funcs[load_func.id()] = load_func

    def select(self, options: Sequence[LoadFunc], cmd_selected: Sequence[str] | None) -> None:
        """Add the named options, or ask the user when no names are given."""
        with time_stat("Select"):
            if not cmd_selected:
                self.user_select(options)
                return
            for selected in cmd_selected:
                option = next(
                    (
                        o
                        for o in options
                        if selected in (o.name, f"{o.pkg_name}.{o.name}", o.id())
                    ),
                    None,
                )
                if option is None:
                    listing = "\n".join(f"\t - {o}" for o in options)
                    raise GoneCtrError(f"cannot select {selected}, only find:\n {listing}\n")
                self.load_funcs[option.id()] = option

    def user_select(self, options: Sequence[LoadFunc]) -> None:
        """Let the user tick which of the options to keep in the loader file."""
        by_id = {o.id(): o for o in options}
        defaults = [o.id() for o in options if o.id() in self.load_funcs]

        if len(options) == 1 and len(defaults) != 1:
            self.load_funcs[options[0].id()] = options[0]
            return

        dialog = shortcuts.checkboxlist_dialog(
            title="gonectr install",
            text="Add or Remove goner LoadFunc:",
            values=[(i, i) for i in by_id],
            default_values=defaults,
        )
        selected = dialog.run()
        if selected is None:
            raise GoneCtrError("select error: selection cancelled")

        chosen = set(selected)
        for option_id, option in by_id.items():
            if option_id in chosen:
                self.load_funcs[option_id] = option
            else:
                self.load_funcs.pop(option_id, None)

    def generate_code(self) -> tuple[str, str]:
        """Return the new import block and the new `loaders` variable."""
        with time_stat("Generate Code"):
            by_pkg: dict[str, Import] = {}
            by_name: dict[str, Import] = {}
            for load_func in self.load_funcs.values():
                if load_func.pkg_id in by_pkg:
                    continue
                pkg_name = posixpath.basename(load_func.pkg_id)
                imp = Import(pkg_name=pkg_name, pkg_id=load_func.pkg_id)
                if pkg_name in by_name:
                    imp.alias = generate_not_duplicate_alias(by_name, pkg_name)
                    by_name[imp.alias] = imp
                else:
                    by_name[pkg_name] = imp
                by_pkg[load_func.pkg_id] = imp

            lines = list(_BASE_IMPORTS)
            for key in sorted(by_name):
                imp = by_name[key]
                lines.append(f'\t{imp.alias} "{imp.pkg_id}"' if imp.alias else f'\t"{imp.pkg_id}"')

            refs = sorted(
                f"{by_pkg[lf.pkg_id].alias or by_pkg[lf.pkg_id].pkg_name}.{lf.name}"
                for lf in self.load_funcs.values()
            )
            import_code = "import(\n" + "\n".join(lines) + "\n)"
            load_func_code = "var loaders = []gone.LoadFunc{" + "".join(f"\n\t{r}," for r in refs) + "\n}"
            return import_code, load_func_code

    def save(self, import_code: str, load_func_code: str) -> None:
        """Write the new code into the loader file."""
        with time_stat("Save Code"):
            content = self.replace_code(self._read(), import_code, load_func_code)
            try:
                with open(self.loader_file, "w", encoding="utf-8") as handle:
                    handle.write(content)
            except OSError as exc:
                raise GoneCtrError(f"write file {self.loader_file} failed: {exc}") from exc

    def replace_code(self, file_content: str, import_code: str, load_func_code: str) -> str:
        """Replace the import block and the `loaders` variable in `file_content`."""
        file_content = _IMPORT_BLOCK_RE.sub(lambda _: import_code, file_content)
        return _LOADERS_BLOCK_RE.sub(lambda _: load_func_code, file_content)

    def execute(self, cmd_selected: Sequence[str] | None, only_print: bool) -> None:
        """Install the module's LoadFuncs into the loader file, or only list them."""
        self.parse_imports()
        self.parse_load_funcs()
        loaders = self.parse_module_loader()
        if only_print:
            print(f"loaders in {self.module}")
            for loader in loaders:
                print(f"- {loader}")
            return
        self.select(loaders, cmd_selected)
        import_code, load_func_code = self.generate_code()
        self.save(import_code, load_func_code)