"""The schema of the mock generator's config file and its merging rules."""

from __future__ import annotations

import copy
import logging
import os
import pathlib
import re
from dataclasses import dataclass, field, fields
from typing import Any, Callable, Iterable

log = logging.getLogger(__name__)


class InvalidKeysError(ValueError):
    """Raised when a config section holds keys the schema does not know."""

    def __init__(self, where: str, keys: Iterable[str]) -> None:
        self.where = where
        self.keys = sorted(keys)
        super().__init__(f"'{where}' has invalid keys: {', '.join(self.keys)}")


def _check_keys(data: dict, allowed: Iterable[str], where: str) -> None:
    unknown = set(data) - set(allowed)
    if unknown:
        raise InvalidKeysError(where, unknown)


def _sorted(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _sorted(value[k]) for k in sorted(value, key=str)}
    if isinstance(value, list):
        return [_sorted(v) for v in value]
    return value


def _join(where: str, key: str) -> str:
    return f"{where}.{key}" if where else key


@dataclass
class ReplaceType:
    """A type that replaces another one in generated mocks."""

    pkg_path: str = ""
    type_name: str = ""

    @classmethod
    def from_dict(cls, data: dict | None, where: str = "") -> "ReplaceType":
        data = data or {}
        _check_keys(data, ("pkg-path", "type-name"), where)
        return cls(data.get("pkg-path") or "", data.get("type-name") or "")

    def to_dict(self) -> dict[str, str]:
        out = {}
        if self.pkg_path:
            out["pkg-path"] = self.pkg_path
        if self.type_name:
            out["type-name"] = self.type_name
        return out


_BOOL, _STR, _LIST, _MAP, _REPLACE = "bool", "str", "list", "map", "replace"


def _key(tag: str, kind: str) -> Any:
    return field(default=None, metadata={"key": tag, "kind": kind})


@dataclass
class Config:
    """One level of settings; ``None`` means "not set here"."""

    all: bool | None = _key("all", _BOOL)
    anchors: dict[str, Any] | None = _key("_anchors", _MAP)
    build_tags: str | None = _key("build-tags", _STR)
    config_file: str | None = _key("config", _STR)
    dir: str | None = _key("dir", _STR)
    exclude_subpkg_regex: list[str] | None = _key("exclude-subpkg-regex", _LIST)
    exclude_interface_regex: str | None = _key("exclude-interface-regex", _STR)
    file_name: str | None = _key("filename", _STR)
    force_file_write: bool | None = _key("force-file-write", _BOOL)
    formatter: str | None = _key("formatter", _STR)
    include_interface_regex: str | None = _key("include-interface-regex", _STR)
    log_level: str | None = _key("log-level", _STR)
    struct_name: str | None = _key("structname", _STR)
    pkg_name: str | None = _key("pkgname", _STR)
    recursive: bool | None = _key("recursive", _BOOL)
    replace_type: dict[str, dict[str, ReplaceType]] | None = _key("replace-type", _REPLACE)
    require_template_schema_exists: bool | None = _key("require-template-schema-exists", _BOOL)
    template: str | None = _key("template", _STR)
    template_data: dict[str, Any] | None = _key("template-data", _MAP)
    template_schema: str | None = _key("template-schema", _STR)

    @classmethod
    def field_keys(cls) -> tuple[str, ...]:
        """The config-file keys of every setting, in schema order."""
        return tuple(f.metadata["key"] for f in fields(cls))

    @classmethod
    def from_dict(cls, data: dict | None, where: str = "") -> "Config":
        """Build a config from a mapping, rejecting unknown keys."""
        data = data or {}
        _check_keys(data, cls.field_keys(), where)
        values: dict[str, Any] = {}
        for f in fields(cls):
            key, kind = f.metadata["key"], f.metadata["kind"]
            if key not in data or data[key] is None:
                continue
            value = data[key]
            place = _join(where, key)
            if kind == _BOOL and not isinstance(value, bool):
                raise TypeError(f"'{place}' expected type 'bool', got {type(value).__name__}")
            if kind == _STR and not isinstance(value, str):
                raise TypeError(f"'{place}' expected type 'string', got {type(value).__name__}")
            if kind == _LIST:
                if not isinstance(value, list):
                    raise TypeError(f"'{place}' expected a list, got {type(value).__name__}")
                value = [str(v) for v in value]
            if kind == _MAP:
                if not isinstance(value, dict):
                    raise TypeError(f"'{place}' expected a map, got {type(value).__name__}")
                value = dict(value)
            if kind == _REPLACE:
                if not isinstance(value, dict):
                    raise TypeError(f"'{place}' expected a map, got {type(value).__name__}")
                value = {
                    pkg: {
                        name: ReplaceType.from_dict(rt, f"{place}[{pkg}][{name}]")
                        for name, rt in (types or {}).items()
                    }
                    for pkg, types in value.items()
                }
            values[f.name] = value
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        """Mapping of the set values, empty collections left out."""
        out: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            kind = f.metadata["kind"]
            if value is None:
                continue
            if kind in (_LIST, _MAP, _REPLACE) and not value:
                continue
            if kind == _REPLACE:
                value = {
                    pkg: {name: (rt.to_dict() if rt else None) for name, rt in sorted(types.items())}
                    for pkg, types in sorted(value.items())
                }
            elif kind == _MAP:
                value = _sorted(value)
            elif kind == _LIST:
                value = list(value)
            out[f.metadata["key"]] = value
        return out

    def file_path(self) -> pathlib.Path:
        """The cleaned path of the output file: ``dir`` joined with ``filename``."""
        if self.dir is None or self.file_name is None:
            raise ValueError("dir and filename must be set to compute the file path")
        return pathlib.Path(os.path.normpath(os.path.join(self.dir, self.file_name)))

    def should_exclude_subpkg(self, pkg_path: str) -> bool:
        """Whether any ``exclude-subpkg-regex`` matches the package path."""
        return any(re.search(rx, pkg_path) for rx in self.exclude_subpkg_regex or ())

    def get_replacement(self, pkg_path: str, type_name: str) -> ReplaceType | None:
        """The configured replacement for a type, if any."""
        return (self.replace_type or {}).get(pkg_path, {}).get(type_name)


def merge_string_maps(src: dict[str, Any], dest: dict[str, Any]) -> None:
    """Copy keys of ``src`` missing from ``dest``, recursing into nested maps."""
    for key, src_value in src.items():
        if key in dest:
            dest_value = dest[key]
            if isinstance(dest_value, dict) and isinstance(src_value, dict):
                merge_string_maps(src_value, dest_value)
            continue
        dest[key] = src_value


def merge_configs(src: Config, dest: Config) -> None:
    """Fill settings unset in ``dest`` from ``src``; free-form maps are merged."""
    for f in fields(Config):
        kind = f.metadata["kind"]
        src_value = getattr(src, f.name)
        dest_value = getattr(dest, f.name)
        if kind == _REPLACE:
            # Only free-form maps are merged; typed maps stay per-level.
            continue
        if kind == _MAP:
            if dest_value is None:
                dest_value = {}
                setattr(dest, f.name, dest_value)
            merge_string_maps(src_value or {}, dest_value)
        elif dest_value is None and src_value is not None:
            setattr(dest, f.name, list(src_value) if kind == _LIST else src_value)


@dataclass
class InterfaceConfig:
    """Settings for one interface, possibly producing several mocks."""

    config: Config | None = field(default_factory=Config)
    configs: list[Config] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict | None, where: str) -> "InterfaceConfig":
        if data is None:
            return cls(config=None)
        _check_keys(data, ("config", "configs"), where)
        raw = data.get("config")
        config = None if raw is None else Config.from_dict(raw, f"{where}.config")
        configs = [
            Config.from_dict(c, f"{where}.configs[{i}]")
            for i, c in enumerate(data.get("configs") or [])
        ]
        return cls(config=config, configs=configs)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.config is not None:
            out["config"] = self.config.to_dict()
        if self.configs:
            out["configs"] = [c.to_dict() for c in self.configs]
        return out

    def initialize(self) -> None:
        """Make ``configs`` hold at least the interface config, merging it into each."""
        if self.config is None:
            self.config = Config()
        if not self.configs:
            self.configs = [self.config]
        else:
            for sub in self.configs:
                merge_configs(self.config, sub)


@dataclass
class PackageConfig:
    """Settings for one source package and its interfaces."""

    config: Config | None = field(default_factory=Config)
    interfaces: dict[str, InterfaceConfig | None] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict | None, where: str) -> "PackageConfig":
        if data is None:
            return cls(config=None)
        _check_keys(data, ("config", "interfaces"), where)
        raw = data.get("config")
        config = None if raw is None else Config.from_dict(raw, f"{where}.config")
        interfaces = {
            name: InterfaceConfig.from_dict(ic, f"{where}.interfaces[{name}]")
            for name, ic in (data.get("interfaces") or {}).items()
        }
        return cls(config=config, interfaces=interfaces)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.config is not None:
            out["config"] = self.config.to_dict()
        if self.interfaces:
            out["interfaces"] = {
                name: (ic.to_dict() if ic is not None else None)
                for name, ic in sorted(self.interfaces.items())
            }
        return out

    def initialize(self) -> None:
        """Merge the package settings into every interface and initialise it."""
        if self.config is None:
            self.config = Config()
        for name, iface in list(self.interfaces.items()):
            if iface is None:
                iface = InterfaceConfig()
                self.interfaces[name] = iface
            if iface.config is None:
                iface.config = Config()
            merge_configs(self.config, iface.config)
            iface.initialize()

    def get_interface_config(self, interface_name: str) -> InterfaceConfig:
        """The interface's config, or a copy of the package config if absent."""
        existing = self.interfaces.get(interface_name)
        if existing is not None:
            return existing
        new_config = copy.deepcopy(self.config) if self.config is not None else Config()
        return InterfaceConfig(config=new_config, configs=[new_config])

    def should_generate_interface(self, interface_name: str) -> bool:
        """Whether a mock should be generated for the named interface."""
        cfg = self.config or Config()
        include = cfg.include_interface_regex or ""
        exclude = cfg.exclude_interface_regex or ""
        if cfg.all:
            if include:
                log.warning("both `all` and `include-interface-regex` set: `include-interface-regex` will be ignored")
            if exclude:
                log.warning("both `all` and `exclude-interface-regex` set: `exclude-interface-regex` will be ignored")
            return True
        if interface_name in self.interfaces:
            return True
        if not include:
            if exclude:
                log.warning("`exclude-interface-regex` set without `include-interface-regex`: it will be ignored")
            return False
        try:
            included = re.search(include, interface_name) is not None
        except re.error as exc:
            raise ValueError(f"evaluating `include-interface-regex`: {exc}") from exc
        if not included:
            return False
        if not exclude:
            return True
        try:
            excluded = re.search(exclude, interface_name) is not None
        except re.error as exc:
            raise ValueError(f"evaluating `exclude-interface-regex`: {exc}") from exc
        return not excluded


@dataclass
class RootConfig:
    """The whole config file: top-level settings plus the packages section."""

    config: Config = field(default_factory=Config)
    packages: dict[str, PackageConfig | None] = field(default_factory=dict)
    config_file: pathlib.Path | None = None

    @classmethod
    def from_dict(cls, data: dict | None) -> "RootConfig":
        data = dict(data or {})
        raw_packages = data.pop("packages", None) or {}
        config = Config.from_dict(data, "")
        packages = {
            name: PackageConfig.from_dict(pc, f"packages[{name}]")
            for name, pc in raw_packages.items()
        }
        return cls(config=config, packages=packages)

    def to_dict(self) -> dict[str, Any]:
        out = self.config.to_dict()
        out["packages"] = {
            name: (pc.to_dict() if pc is not None else None)
            for name, pc in sorted(self.packages.items())
        }
        return out

    def initialize(self, sub_packages: Callable[[str], list[str]] | None) -> None:
        """Propagate settings downward and expand recursive packages.

        ``sub_packages`` maps a package path to the paths of its
        sub-packages that hold source files.
        """
        recursive: list[str] = []
        for name, pkg in list(self.packages.items()):
            if pkg is None:
                pkg = PackageConfig()
                self.packages[name] = pkg
            if pkg.config is None:
                pkg.config = Config()
            if pkg.interfaces is None:
                pkg.interfaces = {}
            merge_configs(self.config, pkg.config)
            pkg.initialize()
            if pkg.config.recursive:
                recursive.append(name)

        for name in recursive:
            if sub_packages is None:
                raise ValueError(f"cannot discover sub packages of {name}")
            parent = self.get_package_config(name)
            for subpkg in sub_packages(name):
                if parent.config.should_exclude_subpkg(subpkg):
                    log.debug("package %s was marked for exclusion", subpkg)
                    continue
                sub_config = self.packages.get(subpkg) or PackageConfig()
                if sub_config.config is None:
                    sub_config.config = Config()
                merge_configs(parent.config, sub_config.config)
                self.packages[subpkg] = sub_config

    def get_package_config(self, pkg_path: str) -> PackageConfig:
        """The config of a package; ``KeyError`` if it is not configured."""
        try:
            pkg = self.packages[pkg_path]
        except KeyError:
            raise KeyError(f"package {pkg_path} does not exist in the config") from None
        if pkg is None:
            pkg = PackageConfig()
            self.packages[pkg_path] = pkg
        return pkg

    def get_packages(self) -> list[str]:
        """The package paths in the ``packages`` section."""
        return list(self.packages)