[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mockcfg"
version = "0.1.0"
description = "Load, merge, validate and migrate mock-generator YAML configuration files"
requires-python = ">=3.10"
keywords = ["mock", "configuration", "yaml", "migration", "testing"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Environment :: Console",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Software Development :: Testing :: Mocking",
]
dependencies = [
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
mockcfg = "mockcfg.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["mockcfg"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
