"""Command-line entry point: config validation, ``init``, ``migrate``, ``showconfig`` and ``version``."""

from __future__ import annotations

import argparse
import logging
import os
import pathlib
import sys
from importlib.metadata import PackageNotFoundError, version
from typing import Sequence

import yaml

from .loader import default_config, load_root_config
from .migrate import migrate_file
from .model import Config, PackageConfig, RootConfig
from .yamlio import dump_yaml

log = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = ".mockery.yml"
DEFAULT_V3_OUTFILE = ".mockery_v3.yml"

_LOG_LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "panic": logging.CRITICAL,
}


def _configure_logging(level: str | None) -> None:
    name = (level or "info").lower()
    try:
        numeric = _LOG_LEVELS[name]
    except KeyError:
        raise ValueError(f"invalid log level {level!r}") from None
    logging.basicConfig(format="%(levelname)s %(name)s: %(message)s")
    logging.getLogger("mockcfg").setLevel(numeric)


def _version_string() -> str:
    try:
        return f"v{version('mockcfg')}"
    except PackageNotFoundError:
        return "v0.0.0-dev"


def init_config(module_name: str, filename: str | os.PathLike | None = None) -> pathlib.Path:
    """Write a starter config for ``module_name`` and return its path.

    The file (default ``.mockery.yml``) must not exist yet; ``FileExistsError``
    is raised otherwise.
    """
    out_file = pathlib.Path(filename) if filename else pathlib.Path(DEFAULT_CONFIG_NAME)
    log.info("writing to file %s", out_file)
    root = RootConfig(
        config=default_config(),
        packages={module_name: PackageConfig(config=Config(all=True), interfaces={})},
    )
    with out_file.open("x", encoding="utf-8") as handle:
        handle.write(dump_yaml(root.to_dict()))
    log.info("done")
    return out_file


def show_config(config_path: str | os.PathLike | None = None) -> str:
    """The effective, initialised config as YAML text."""
    root = load_root_config(config_path or None)
    return dump_yaml(root.to_dict())


def _run_root(config_path: str, log_level: str) -> None:
    flags = {"log-level": log_level} if log_level else {}
    root = load_root_config(config_path or None, flags)
    _configure_logging(root.config.log_level)
    log.info("starting with config file %s", root.config_file)
    packages = root.get_packages()
    if not packages:
        log.error("no packages specified in config")
        raise ValueError("no packages specified in config")
    for pkg_path in packages:
        pkg = root.get_package_config(pkg_path)
        log.info("package %s: %d configured interface(s)", pkg_path, len(pkg.interfaces))


def _build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", default=argparse.SUPPRESS, help="config file to use")
    common.add_argument(
        "--log-level", dest="log_level", default=argparse.SUPPRESS, help="level of logging"
    )

    parser = argparse.ArgumentParser(
        prog="mockery",
        description="Generate mock objects for your Go interfaces",
        parents=[common],
    )
    sub = parser.add_subparsers(dest="command")

    sub.add_parser(
        "showconfig",
        parents=[common],
        help="Show the yaml config",
        description="Print out a yaml representation of the effective config.",
    )
    sub.add_parser("version", parents=[common], help="Print the version")
    init = sub.add_parser(
        "init",
        parents=[common],
        help="Generate a basic .mockery.yml file",
        description="Generate a basic config file usable as a starting point.",
    )
    init.add_argument("module_name")
    migrate = sub.add_parser(
        "migrate",
        parents=[common],
        help="Migrate v2 config to v3.",
        description="Automatically migrate a v2 config to v3.",
    )
    migrate.add_argument(
        "--outfile", default=DEFAULT_V3_OUTFILE, help="location of the output v3 file"
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line; returns the process exit code."""
    args = _build_parser().parse_args(argv)
    config_path: str = getattr(args, "config", "")
    log_level: str = getattr(args, "log_level", os.environ.get("MOCKERY_LOG_LEVEL", ""))

    try:
        if args.command == "version":
            print(_version_string())
        elif args.command == "init":
            _configure_logging("info")
            init_config(args.module_name, config_path or None)
        elif args.command == "showconfig":
            _configure_logging("debug")
            print(show_config(config_path or None))
        elif args.command == "migrate":
            _configure_logging(log_level or "info")
            migrate_file(config_path or None, args.outfile)
        else:
            _configure_logging("info")
            _run_root(config_path, log_level)
    except (OSError, ValueError, KeyError, TypeError, yaml.YAMLError) as exc:
        log.error("app failed: %s", exc)
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())