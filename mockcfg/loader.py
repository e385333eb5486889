"""Building the effective root config from defaults, environment, file and flags."""

from __future__ import annotations

import logging
import os
import pathlib
from dataclasses import fields
from typing import Any, Iterator, Mapping

from .discovery import find_config
from .model import Config, RootConfig
from .yamlio import load_yaml

log = logging.getLogger(__name__)

ENV_PREFIX = "MOCKERY_"


def default_config() -> Config:
    """The settings in force before any file, variable or flag is read."""
    return Config(
        all=False,
        dir="{{.InterfaceDir}}",
        file_name="mocks_test.go",
        force_file_write=True,
        formatter="goimports",
        log_level="info",
        struct_name="{{.Mock}}{{.InterfaceName}}",
        pkg_name="{{.SrcPackageName}}",
        recursive=False,
        require_template_schema_exists=True,
        template="testify",
        template_data={},
        template_schema="{{.Template}}.schema.json",
    )


def env_overrides(environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Settings given by ``MOCKERY_*`` variables, keyed by config-file key.

    Unknown variables are ignored; values spelled ``true``/``false`` in any
    case become booleans.
    """
    environ = os.environ if environ is None else environ
    known = set(Config.field_keys())
    out: dict[str, Any] = {}
    for name, value in environ.items():
        if not name.startswith(ENV_PREFIX):
            continue
        key = name[len(ENV_PREFIX):].lower().replace("_", "-")
        if key not in known:
            log.debug("environment variable %s unknown, not including in config map", name)
            continue
        lowered = value.lower()
        out[key] = (lowered == "true") if lowered in ("true", "false") else value
    return out


def _deep_merge(base: dict[str, Any], override: Mapping[str, Any]) -> None:
    for key, value in override.items():
        current = base.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            _deep_merge(current, value)
        else:
            base[key] = value


def _fill_zero_values(config: Config) -> None:
    for f in fields(Config):
        if getattr(config, f.name) is not None:
            continue
        kind = f.metadata["kind"]
        if kind == "bool":
            setattr(config, f.name, False)
        elif kind == "str":
            setattr(config, f.name, "")


def _read_go_mod(start: pathlib.Path) -> tuple[pathlib.Path, str]:
    current = start.resolve()
    for directory in (current, *current.parents):
        go_mod = directory / "go.mod"
        if go_mod.is_file():
            for line in go_mod.read_text().splitlines():
                parts = line.split()
                if len(parts) >= 2 and parts[0] == "module":
                    return directory, parts[1].strip('"`')
            raise ValueError("go.mod file has no module line")
    raise FileNotFoundError("no go.mod file found")


def _has_go_files(directory: pathlib.Path) -> bool:
    return any(
        p.is_file() and p.suffix == ".go" and not p.name.endswith("_test.go")
        for p in directory.iterdir()
    )


def _walk_packages(root: pathlib.Path) -> Iterator[pathlib.Path]:
    yield root
    for child in sorted(p for p in root.iterdir() if p.is_dir()):
        if child.name.startswith((".", "_")) or child.name == "testdata":
            continue
        if (child / "go.mod").exists():
            continue
        yield from _walk_packages(child)


def _go_sub_packages(pkg_path: str) -> list[str]:
    """Import paths of the packages under ``pkg_path`` that hold source files."""
    module_root, module = _read_go_mod(pathlib.Path.cwd())
    if pkg_path == module:
        rel = ""
    elif pkg_path.startswith(module + "/"):
        rel = pkg_path[len(module) + 1:]
    else:
        raise ValueError(f"failed to load packages: {pkg_path} is not in module {module}")
    pkg_dir = module_root / rel if rel else module_root
    if not pkg_dir.is_dir():
        raise ValueError(f"failed to load packages: directory of {pkg_path} not found")
    found = []
    for directory in _walk_packages(pkg_dir):
        if _has_go_files(directory):
            rel_path = directory.relative_to(module_root).as_posix()
            found.append(module if rel_path == "." else f"{module}/{rel_path}")
    return found


def load_root_config(
    config_path: str | os.PathLike | None = None,
    flags: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> RootConfig:
    """Load, validate and initialise the root config.

    The file is chosen from ``MOCKERY_CONFIG``, then ``config_path``, then the
    ``config`` flag, and is otherwise searched for. Sources are layered as
    defaults, environment, file, flags; later ones win.
    """
    environ = os.environ if environ is None else environ
    flags = {k: v for k, v in (flags or {}).items() if v is not None}

    chosen: pathlib.Path | None = None
    if environ.get("MOCKERY_CONFIG"):
        chosen = pathlib.Path(environ["MOCKERY_CONFIG"])
    elif config_path:
        chosen = pathlib.Path(config_path)
    elif flags.get("config"):
        chosen = pathlib.Path(flags["config"])
    else:
        log.debug("config file not specified, searching")
        chosen = find_config()
        log.debug("config file found: %s", chosen)

    data = default_config().to_dict()
    _deep_merge(data, env_overrides(environ))
    _deep_merge(data, load_yaml(chosen.read_text()))
    _deep_merge(data, flags)

    root = RootConfig.from_dict(data)
    _fill_zero_values(root.config)
    root.config_file = chosen
    root.initialize(_go_sub_packages)
    return root