import subprocess
from unittest import mock

import pytest

from gonectr.installer.loader_parser import (
    GONE_MODULE,
    LOADER_FILE,
    Import,
    LoadFunc,
    LoaderParser,
)
from gonectr.utils import GENERATE_BY, GoneCtrError

APOLLO = "github.com/gone-io/goner/apollo"
NACOS = "github.com/gone-io/goner/nacos"

CODE1 = """// Code generated by gonectr. DO NOT EDIT.
package main
import(
\t"github.com/gone-io/gone/v2"
\t"github.com/gone-io/goner/g"
\t"github.com/gone-io/goner/apollo"
)

//added LoadFunc
var loaders = []gone.LoadFunc{
\tapollo.Load,
}

func ThirdGonersLoad() gone.LoadFunc {
\tvar ops []*g.LoadOp
\tfor _, f := range loaders {
\t\tops = append(ops, g.F(f))
\t}
\treturn g.BuildOnceLoadFunc(ops...)
}
"""

CODE2 = """// Code generated by gonectr. DO NOT EDIT.
package main
import(
\t"github.com/gone-io/gone/v2"
\t"github.com/gone-io/goner/g"
\t"github.com/gone-io/goner/apollo"
\t"github.com/gone-io/goner/nacos"
)

//added LoadFunc
var loaders = []gone.LoadFunc{
\tapollo.Load,
\tnacos.Load,
}

func ThirdGonersLoad() gone.LoadFunc {
\tvar ops []*g.LoadOp
\tfor _, f := range loaders {
\t\tops = append(ops, g.F(f))
\t}
\treturn g.BuildOnceLoadFunc(ops...)
}
"""

CODE3 = """// Code generated by gonectr. DO NOT EDIT.
package main
import(
\t"github.com/gone-io/gone/v2"
\t"github.com/gone-io/goner/g"
\t"github.com/gone-io/goner/apollo"
\t"github.com/gone-io/goner/nacos"
)

//added LoadFunc
var loaders = []gone.LoadFunc{
\tapollo.Load,
\tnacos.Load,
\tnacos.RegistryLoad,
}

func ThirdGonersLoad() gone.LoadFunc {
\tvar ops []*g.LoadOp
\tfor _, f := range loaders {
\t\tops = append(ops, g.F(f))
\t}
\treturn g.BuildOnceLoadFunc(ops...)
}
"""

APOLLO_SRC = """package apollo

import "github.com/gone-io/gone/v2"

func Load(loader gone.Loader) error {
\treturn nil
}
"""

NACOS_SRC = """package nacos

import "github.com/gone-io/gone/v2"

func Load(loader gone.Loader) error {
\treturn nil
}

func RegistryLoad(loader gone.Loader) error {
\treturn nil
}

func helper(x int) error {
\treturn nil
}
"""

NACOS_TEST_SRC = """package nacos

import "github.com/gone-io/gone/v2"

func TestLoad(loader gone.Loader) error {
\treturn nil
}
"""


@pytest.fixture
def workspace(tmp_path):
    module = tmp_path / "module1"
    module.mkdir()
    (module / "go.mod").write_text("module module1\n\ngo 1.24.1\n")
    (module / "main.go").write_text("package main\n\nfunc main() {}\n")

    deps = tmp_path / "deps"
    for name, files in {
        "apollo": {"apollo.go": APOLLO_SRC},
        "nacos": {"nacos.go": NACOS_SRC, "nacos_test.go": NACOS_TEST_SRC},
        "gone": {},
    }.items():
        directory = deps / name
        directory.mkdir(parents=True)
        for filename, src in files.items():
            (directory / filename).write_text(src)

    dirs = {
        GONE_MODULE: deps / "gone",
        APOLLO: deps / "apollo",
        NACOS: deps / "nacos",
    }
    calls = []

    def fake_run(cmd, *args, **kwargs):
        calls.append(list(cmd))
        if cmd[:2] == ["go", "list"]:
            return subprocess.CompletedProcess(cmd, 0, stdout=f"{dirs[cmd[-1]]}\n")
        return subprocess.CompletedProcess(cmd, 0)

    with mock.patch("subprocess.run", fake_run):
        yield module, calls


def _loader_text(module):
    return (module / LOADER_FILE).read_text()


def test_install_without_loader_file(workspace):
    module, _ = workspace
    LoaderParser(str(module), APOLLO).execute(None, False)
    assert _loader_text(module) == CODE1


def test_install_with_loader_file(workspace):
    module, _ = workspace
    (module / LOADER_FILE).write_text(CODE1)
    LoaderParser(str(module), NACOS).execute(["Load"], False)
    assert _loader_text(module) == CODE2


def test_install_with_loader_file_two_loaders(workspace):
    module, _ = workspace
    (module / LOADER_FILE).write_text(CODE1)
    LoaderParser(str(module), NACOS).execute(["Load", "RegistryLoad"], False)
    assert _loader_text(module) == CODE3


def test_install_only_print(workspace, capsys):
    module, _ = workspace
    (module / LOADER_FILE).write_text(CODE1)
    LoaderParser(str(module), NACOS).execute(["Load", "RegistryLoad"], True)
    assert _loader_text(module) == CODE1
    out = capsys.readouterr().out
    assert f"loaders in {NACOS}" in out
    assert f"- {NACOS}.RegistryLoad" in out


def test_template_written_when_missing(workspace):
    module, _ = workspace
    LoaderParser(str(module), APOLLO)
    text = _loader_text(module)
    assert text.startswith(GENERATE_BY + "\npackage main\nimport (\n")
    assert "var loaders = []gone.LoadFunc{\n}" in text


def test_template_package_falls_back_to_module_base(tmp_path):
    (tmp_path / "go.mod").write_text("module example.com/demo\n")
    LoaderParser(str(tmp_path), APOLLO)
    assert (tmp_path / LOADER_FILE).read_text().startswith(GENERATE_BY + "\npackage demo\n")


def test_parse_module_loader(workspace):
    module, calls = workspace
    options = LoaderParser(str(module), NACOS).parse_module_loader()
    assert options == [
        LoadFunc("Load", NACOS, "nacos"),
        LoadFunc("RegistryLoad", NACOS, "nacos"),
    ]
    assert ["go", "get", "-u", GONE_MODULE] in calls
    assert ["go", "get", "-u", NACOS] in calls


def test_parse_imports_and_load_funcs(workspace):
    module, _ = workspace
    (module / LOADER_FILE).write_text(CODE1)
    parser = LoaderParser(str(module), NACOS)
    parser.parse_imports()
    assert parser.imports == [
        Import(pkg_id="github.com/gone-io/gone/v2"),
        Import(pkg_id="github.com/gone-io/goner/g"),
        Import(pkg_id=APOLLO),
    ]
    parser.parse_load_funcs()
    assert parser.load_funcs == {f"{APOLLO}.Load": LoadFunc("Load", APOLLO, "apollo")}


def test_parse_load_funcs_with_alias(workspace):
    module, _ = workspace
    code = CODE1.replace(f'"{APOLLO}"', f'ap "{APOLLO}"').replace("\tapollo.Load,", "\tap.Load,")
    (module / LOADER_FILE).write_text(code)
    parser = LoaderParser(str(module), NACOS)
    parser.parse_imports()
    assert parser.imports[-1] == Import(alias="ap", pkg_id=APOLLO)
    parser.parse_load_funcs()
    assert list(parser.load_funcs) == [f"{APOLLO}.Load"]


def test_generate_code_aliases_same_package_name(workspace):
    module, _ = workspace
    parser = LoaderParser(str(module), NACOS)
    first = LoadFunc("Load", "example.com/a/config", "config")
    second = LoadFunc("Load", "example.com/b/config", "config")
    parser.load_funcs = {first.id(): first, second.id(): second}
    import_code, load_func_code = parser.generate_code()
    assert import_code == (
        'import(\n\t"github.com/gone-io/gone/v2"\n\t"github.com/gone-io/goner/g"\n'
        '\t"example.com/a/config"\n\tconfig1 "example.com/b/config"\n)'
    )
    assert load_func_code == "var loaders = []gone.LoadFunc{\n\tconfig.Load,\n\tconfig1.Load,\n}"


def test_select_by_package_qualified_name(workspace):
    module, _ = workspace
    parser = LoaderParser(str(module), NACOS)
    options = [LoadFunc("Load", NACOS, "nacos"), LoadFunc("RegistryLoad", NACOS, "nacos")]
    parser.select(options, ["nacos.RegistryLoad"])
    assert list(parser.load_funcs) == [f"{NACOS}.RegistryLoad"]


def test_select_unknown_raises(workspace):
    module, _ = workspace
    parser = LoaderParser(str(module), NACOS)
    options = [LoadFunc("Load", NACOS, "nacos")]
    with pytest.raises(GoneCtrError, match="cannot select Missing"):
        parser.select(options, ["Missing"])


def test_user_select_with_dialog(workspace):
    module, _ = workspace
    (module / LOADER_FILE).write_text(CODE1)
    parser = LoaderParser(str(module), NACOS)
    parser.parse_imports()
    parser.parse_load_funcs()
    load = LoadFunc("Load", NACOS, "nacos")
    registry = LoadFunc("RegistryLoad", NACOS, "nacos")
    parser.load_funcs[registry.id()] = registry
    with mock.patch("prompt_toolkit.shortcuts.checkboxlist_dialog") as dialog:
        dialog.return_value.run.return_value = [load.id()]
        parser.user_select([load, registry])
    assert dialog.call_args.kwargs["default_values"] == [registry.id()]
    assert set(parser.load_funcs) == {f"{APOLLO}.Load", load.id()}


def test_user_select_cancelled(workspace):
    module, _ = workspace
    parser = LoaderParser(str(module), NACOS)
    options = [LoadFunc("Load", NACOS, "nacos"), LoadFunc("RegistryLoad", NACOS, "nacos")]
    with mock.patch("prompt_toolkit.shortcuts.checkboxlist_dialog") as dialog:
        dialog.return_value.run.return_value = None
        with pytest.raises(GoneCtrError, match="select error"):
            parser.user_select(options)


def test_replace_code(workspace):
    module, _ = workspace
    parser = LoaderParser(str(module), NACOS)
    text = 'package x\nimport (\n\t"a"\n)\nvar loaders = []gone.LoadFunc{\n\ta.B,\n}\n'
    result = parser.replace_code(text, "IMPORTS", "LOADERS")
    assert result == "package x\nIMPORTS\nLOADERS\n"


def test_loader_file_is_directory(workspace):
    module, _ = workspace
    (module / LOADER_FILE).mkdir()
    with pytest.raises(GoneCtrError, match="is a dir"):
        LoaderParser(str(module), NACOS)


def test_loader_file_without_package_fails(workspace):
    module, _ = workspace
    (module / LOADER_FILE).write_text("var loaders = 1\n")
    with pytest.raises(GoneCtrError, match="parse"):
        LoaderParser(str(module), NACOS)


def test_load_func_id_and_str():
    load_func = LoadFunc("Load", NACOS, "nacos")
    assert load_func.id() == "github.com/gone-io/goner/nacos.Load"
    assert str(load_func) == load_func.id()