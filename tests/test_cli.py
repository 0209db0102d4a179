from gonectr.cli import build_parser, main

PRIEST_SRC = """package x

import "github.com/gone-io/gone"

//go:gone
func New() gone.Goner {
\treturn &goner{}
}

type goner struct {
\tgone.Flag
}

//go:gone
func Priest(cemetery gone.Cemetery) error {
\treturn nil
}
"""


def test_version_flag(capsys):
    assert main(["-v"]) == 0
    assert capsys.readouterr().out.strip() == "Gonectr version: v0.0.18"


def test_no_arguments_prints_help(capsys):
    assert main([]) == 0
    out = capsys.readouterr().out
    assert "gonectr" in out
    assert "generate" in out and "install" in out


def test_create_rejects_unknown_template(capsys):
    assert main(["create", "-t", "bad", "project"]) == 1
    assert "unsupported template name" in capsys.readouterr().err


def test_create_requires_project(capsys):
    assert main(["create"]) == 1
    assert "please input project name or project path" in capsys.readouterr().err


def test_install_requires_module(capsys):
    assert main(["install"]) == 1
    assert "must provide package full name" in capsys.readouterr().err


def test_priest_flags_parsed():
    ns = build_parser().parse_args(["priest", "-s", "a", "-s", "b", "-t", "-w", "-p", "x"])
    assert ns.scan_dir == ["a", "b"]
    assert ns.stat is True and ns.watch is True
    assert ns.package == "x"


def test_generate_writes_load_and_import_code(tmp_path):
    (tmp_path / "go.mod").write_text(
        "module test\n\ngo 1.24.1\n\nrequire github.com/gone-io/gone/v2 v2.0.9\n"
    )
    (tmp_path / "main.go").write_text("package main\n\nfunc main() {}\n")
    user = tmp_path / "user"
    user.mkdir()
    (user / "svc.go").write_text(
        'package user_svc\n\nimport "github.com/gone-io/gone"\n\n'
        "type UserSvc struct {\n\tgone.Flag\n}\n"
    )

    assert main(["generate", "-s", str(tmp_path), "-m", str(tmp_path)]) == 0

    init_code = (user / "init.gone.go").read_text()
    assert init_code.startswith("// Code generated by gonectr. DO NOT EDIT.")
    assert "package user_svc" in init_code
    assert 'import "github.com/gone-io/gone/v2"' in init_code
    assert "Load(&UserSvc{})" in init_code
    import_code = (tmp_path / "import.gone.go").read_text()
    assert '_ "test/user"' in import_code
    assert "package main" in import_code


def test_priest_generates_function(tmp_path):
    (tmp_path / "go.mod").write_text("module x\n\ngo 1.22.0\n")
    (tmp_path / "goner.go").write_text(PRIEST_SRC)
    output = tmp_path / "priest.go"

    status = main(
        ["priest", "-s", str(tmp_path), "-p", "x", "-f", "LoadAll", "-o", str(output)]
    )

    assert status == 0
    content = output.read_text()
    assert content.startswith("// Code generated by gone; DO NOT EDIT.\npackage x\n")
    assert "func LoadAll(cemetery gone.Cemetery) error {" in content
    assert "    cemetery.Bury(New())" in content
    assert "    Priest(cemetery)" in content
    assert content.endswith("\treturn nil\n}\n")