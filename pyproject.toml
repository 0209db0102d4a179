[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gonectr"
version = "0.0.18"
description = "Command-line tool for creating Gone projects and generating their loading code"
requires-python = ">=3.10"
keywords = ["gone", "code-generation", "dependency-injection", "scaffolding", "cli"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Code Generators",
]
dependencies = [
    "watchdog",
    "prompt-toolkit",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
gonectr = "gonectr.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["gonectr"]

[tool.pytest.ini_options]
addopts = "-ra"
