# gonectr

`gonectr` is a command-line tool for projects built on the Gone dependency
injection framework. It creates new projects from templates and generates the
boilerplate Go code that registers components ("goners") and loader functions.

It works on Go modules on disk and calls the `go` toolchain (and `git`, for
project creation) where needed, so both must be on your `PATH`.

## Installation

```
pip install .
```

## Commands

```
gonectr --version
```

Prints the tool version. Without a command, `gonectr` prints its help.

### create

```
gonectr create my-app -t web -m example.com/my-app
```

Shallow-clones a project template (`web`, `web+mysql` or `v2+web+mysql`),
removes its `.git` directory, replaces the placeholder module name
`template_module` in `go.mod` and in every `.go` and `.xml` file with the
given module name (the project name when `-m` is omitted) and runs
`go mod tidy` in the new project. The template is fetched from a mirror
chosen by looking up the caller's public IP address.

### generate

```
gonectr generate -s . -m ./cmd/server
```

Scans the given directories for structs embedding `gone.Flag` and for
functions taking a `gone.Loader` and returning `error`. For each package
that has any, it writes an `init.gone.go` that loads them (the functions if
there are any, otherwise the structs), and writes `import.gone.go` into the
main package so every generated package is imported. When nothing needs to
be imported it runs `go mod tidy` in the module instead. Options:

- `-s/--scan-dir` directories to scan (repeatable or comma separated, default `.`)
- `-m/--main_package_dir` main package directory (the first `package main` file found if omitted)
- `-p/--preparer-code` expression the load calls are chained on (default `gone`)
- `-r/--preparer-package` package imported for it (default `github.com/gone-io/gone`)
- `-a/--main-package-name` package name of `import.gone.go` (default `main`)
- `-e/--exclude-goner` regular expressions of goner names to leave out
- `-v/--version` Gone major version to target (read from `go.mod` if omitted)

### run

```
gonectr run ./cmd/server
```

Generates the helper code first and then runs `go run` with all the
arguments after `run`. If a `.go` file in the module has a
`//go:generate gonectr generate` line, `go generate ./...` is run in the
module root; otherwise `gonectr generate` is run on the whole module with
the package's directory as the main package directory.

### priest

```
gonectr priest -s ./internal -p internal -f Priest -o ./internal/priest.go -w
```

Collects functions marked with a `//go:gone` comment (constructors without
parameters, or functions taking a `gone.Cemetery`) and writes a single
function that registers all of them. `-t/--stat` logs how long each step
takes. With `-w` it keeps watching the scanned directories and regenerates
the file whenever a `.go` file is created, changed or removed.

### install

```
gonectr install github.com/gone-io/goner/nacos Load,RegistryLoad
```

Fetches the module with `go get -u`, finds the functions in its package that
take a `gone.Loader` and return `error`, and adds the chosen ones to
`loader.gone.go` at the module root, creating the file if needed. Loader
names may be given as `Name`, `pkg.Name` or the full `path.Name`. Without a
list an interactive check-box dialog is shown (a single loader not yet in
the file is added without asking); `-t/--test` only prints the loaders found.

## What it does not do

There is no `build` command. Run `gonectr generate` and then `go build`
yourself, or call `gonectr.run.generate_and_run_go_subcommand("build", args)`
from Python. Loader discovery in `install` reads the Go source text of the
module's top-level package; it does not type-check it.

## Library use

The building blocks are importable too, for example
`gonectr.generate.scan_go_file`, `gonectr.generate.Generator`,
`gonectr.utils.find_module_info`, `gonectr.priest.action.do_action` and
`gonectr.installer.loader_parser.LoaderParser`. Failures are raised as
`gonectr.utils.GoneCtrError`.