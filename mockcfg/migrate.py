"""Migration of v2 mock generator config files to the v3 schema."""

from __future__ import annotations

import logging
import os
import pathlib
import shutil
import textwrap
from dataclasses import dataclass, field, fields
from typing import Any

from .discovery import find_config
from .model import Config, InterfaceConfig, InvalidKeysError, PackageConfig, RootConfig
from .yamlio import dump_yaml, load_yaml

log = logging.getLogger(__name__)

_BOOL, _STR, _LIST, _MAP = "bool", "str", "list", "map"


def _v2(key: str, kind: str) -> Any:
    return field(default=None, metadata={"key": key, "kind": kind})


@dataclass
class V2Config:
    """One level of settings in the v2 schema; ``None`` means "not set"."""

    all: bool | None = _v2("all", _BOOL)
    anchors: dict[str, Any] | None = _v2("_anchors", _MAP)
    boilerplate_file: str | None = _v2("boilerplate-file", _STR)
    build_tags: str | None = _v2("tags", _STR)
    case: str | None = _v2("case", _STR)
    config: str | None = _v2("config", _STR)
    cpuprofile: str | None = _v2("cpuprofile", _STR)
    dir: str | None = _v2("dir", _STR)
    disable_config_search: bool | None = _v2("disable-config-search", _BOOL)
    disable_deprecation_warnings: bool | None = _v2("disable-deprecation-warnings", _BOOL)
    disabled_deprecation_warnings: list[str] | None = _v2("disabled-deprecation-warnings", _LIST)
    disable_func_mocks: bool | None = _v2("disable-func-mocks", _BOOL)
    disable_version_string: bool | None = _v2("disable-version-string", _BOOL)
    dry_run: bool | None = _v2("dry-run", _BOOL)
    exclude: list[str] | None = _v2("exclude", _LIST)
    exclude_regex: str | None = _v2("exclude-regex", _STR)
    exported: bool | None = _v2("exported", _BOOL)
    fail_on_missing: bool | None = _v2("fail-on-missing", _BOOL)
    file_name: str | None = _v2("filename", _STR)
    in_package: bool | None = _v2("inpackage", _BOOL)
    in_package_suffix: bool | None = _v2("inpackage-suffix", _BOOL)
    include_auto_generated: bool | None = _v2("include-auto-generated", _BOOL)
    include_regex: str | None = _v2("include-regex", _STR)
    issue_845_fix: bool | None = _v2("issue-845-fix", _BOOL)
    keep_tree: bool | None = _v2("keeptree", _BOOL)
    log_level: str | None = _v2("log-level", _STR)
    mock_build_tags: str | None = _v2("mock-build-tags", _STR)
    mock_name: str | None = _v2("mockname", _STR)
    name: str | None = _v2("name", _STR)
    note: str | None = _v2("note", _STR)
    outpkg: str | None = _v2("outpkg", _STR)
    output: str | None = _v2("output", _STR)
    packageprefix: str | None = _v2("packageprefix", _STR)
    print_: bool | None = _v2("print", _BOOL)
    profile: str | None = _v2("profile", _STR)
    quiet: bool | None = _v2("quiet", _BOOL)
    recursive: bool | None = _v2("recursive", _BOOL)
    replace_type: list[str] | None = _v2("replace-type", _LIST)
    resolve_type_alias: bool | None = _v2("resolve-type-alias", _BOOL)
    src_pkg: str | None = _v2("srcpkg", _STR)
    struct_name: str | None = _v2("structname", _STR)
    test_only: bool | None = _v2("testonly", _BOOL)
    unroll_variadic: bool | None = _v2("unroll-variadic", _BOOL)
    version: bool | None = _v2("version", _BOOL)
    with_expecter: bool | None = _v2("with-expecter", _BOOL)

    @classmethod
    def from_dict(cls, data: dict | None) -> "V2Config":
        """Build a v2 config from a mapping, rejecting unknown keys."""
        return _parse_config(data, "")


_V2_KEYS = tuple(f.metadata["key"] for f in fields(V2Config))


def _scalar_to_str(value: Any, place: str) -> str:
    if isinstance(value, (dict, list)):
        raise ValueError(f"'{place}' expected a string, got {type(value).__name__}")
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _parse_config(data: Any, where: str) -> V2Config:
    if data is None:
        return V2Config()
    if not isinstance(data, dict):
        raise ValueError(f"'{where}' expected a map, got {type(data).__name__}")
    unknown = set(data) - set(_V2_KEYS)
    if unknown:
        raise InvalidKeysError(where, unknown)
    values: dict[str, Any] = {}
    for f in fields(V2Config):
        key, kind = f.metadata["key"], f.metadata["kind"]
        value = data.get(key)
        if value is None:
            continue
        place = f"{where}.{key}" if where else key
        if kind == _BOOL:
            if not isinstance(value, bool):
                raise ValueError(f"'{place}' expected a bool, got {type(value).__name__}")
        elif kind == _STR:
            value = _scalar_to_str(value, place)
        elif kind == _LIST:
            if not isinstance(value, list):
                raise ValueError(f"'{place}' expected a list, got {type(value).__name__}")
            value = [_scalar_to_str(v, place) for v in value]
        elif kind == _MAP:
            if not isinstance(value, dict):
                raise ValueError(f"'{place}' expected a map, got {type(value).__name__}")
        values[f.name] = value
    return V2Config(**values)


@dataclass
class V2InterfaceConfig:
    """v2 settings of one interface."""

    config: V2Config | None = None
    configs: list[V2Config] = field(default_factory=list)


@dataclass
class V2PackageConfig:
    """v2 settings of one package."""

    config: V2Config | None = None
    interfaces: dict[str, V2InterfaceConfig] = field(default_factory=dict)


def _parse_interface(data: Any, where: str) -> V2InterfaceConfig:
    if data is None:
        return V2InterfaceConfig()
    if not isinstance(data, dict):
        raise ValueError(f"'{where}' expected a map, got {type(data).__name__}")
    unknown = set(data) - {"config", "configs"}
    if unknown:
        raise InvalidKeysError(where, unknown)
    raw = data.get("config")
    config = None if raw is None else _parse_config(raw, f"{where}.config")
    raw_configs = data.get("configs") or []
    if not isinstance(raw_configs, list):
        raise ValueError(f"'{where}.configs' expected a list")
    configs = [_parse_config(c, f"{where}.configs[{i}]") for i, c in enumerate(raw_configs)]
    return V2InterfaceConfig(config=config, configs=configs)


def _parse_package(data: Any, where: str) -> V2PackageConfig:
    if data is None:
        return V2PackageConfig()
    if not isinstance(data, dict):
        raise ValueError(f"'{where}' expected a map, got {type(data).__name__}")
    unknown = set(data) - {"config", "interfaces"}
    if unknown:
        raise InvalidKeysError(where, unknown)
    raw = data.get("config")
    config = None if raw is None else _parse_config(raw, f"{where}.config")
    raw_ifaces = data.get("interfaces") or {}
    if not isinstance(raw_ifaces, dict):
        raise ValueError(f"'{where}.interfaces' expected a map")
    interfaces = {
        name: _parse_interface(ic, f"{where}.interfaces[{name}]")
        for name, ic in raw_ifaces.items()
    }
    return V2PackageConfig(config=config, interfaces=interfaces)


@dataclass
class V2RootConfig:
    """A whole v2 config file."""

    config: V2Config = field(default_factory=V2Config)
    packages: dict[str, V2PackageConfig] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict | None) -> "V2RootConfig":
        """Build a v2 root config from a mapping, rejecting unknown keys."""
        data = dict(data or {})
        raw_packages = data.pop("packages", None) or {}
        if not isinstance(raw_packages, dict):
            raise ValueError("'packages' expected a map")
        config = _parse_config(data, "")
        packages = {
            name: _parse_package(pc, f"packages[{name}]") for name, pc in raw_packages.items()
        }
        return cls(config=config, packages=packages)


class DeprecationTable:
    """Collects deprecation notices, each message once, and renders them as a table."""

    title = "Deprecations"

    def __init__(self, width: int | None = None) -> None:
        if width is None:
            width = shutil.get_terminal_size(fallback=(80, 24)).columns
        self.width = width
        self.wrap_width = width - 35
        self.rows: list[tuple[int, str, str]] = []
        self._seen: set[str] = set()

    def __len__(self) -> int:
        return len(self.rows)

    def append(self, dep_type: str, message: str) -> None:
        """Record a notice unless the same message was recorded before."""
        if message in self._seen:
            return
        self._seen.add(message)
        self.rows.append((len(self.rows), dep_type, message))

    def _wrap(self, message: str) -> str:
        if self.wrap_width <= 0:
            return message
        return textwrap.fill(
            message, self.wrap_width, break_long_words=False, break_on_hyphens=False
        )

    def render(self) -> str:
        """The notices as a rounded-box text table."""
        header = ("IDX", "DEPRECATION TYPE", "MESSAGE")
        body = [(str(i), t, self._wrap(m)) for i, t, m in self.rows]
        table = [header, *body]
        widths = [
            max(len(line) for row in table for line in row[col].split("\n"))
            for col in range(len(header))
        ]
        inner = max(sum(w + 2 for w in widths), len(self.title) + 2)
        extra = inner - sum(w + 2 for w in widths)
        widths[-1] += extra

        def row_lines(row: tuple[str, ...]) -> list[str]:
            cells = [cell.split("\n") for cell in row]
            height = max(len(c) for c in cells)
            out = []
            for n in range(height):
                parts = [
                    f" {(c[n] if n < len(c) else '').ljust(w)} " for c, w in zip(cells, widths)
                ]
                out.append("│" + "".join(parts) + "│")
            return out

        separator = "├" + "─" * inner + "┤"
        lines = ["╭" + "─" * inner + "╮", "│" + self.title.center(inner) + "│", separator]
        lines.extend(row_lines(header))
        for row in body:
            lines.append(separator)
            lines.extend(row_lines(row))
        lines.append("╰" + "─" * inner + "╯")
        return "\n".join(lines)


_DEPRECATED_VARIABLES = (
    (
        "InterfaceNameCamel",
        'InterfaceNameCamel template variable has been deleted. Use "{{ .InterfaceName | camelcase }}" instead',
    ),
    (
        "InterfaceNameLowerCamel",
        'InterfaceNameLowerCamel template variable has been deleted. Use "{{ .InterfaceName | camelcase | firstLower }}" instead',
    ),
    (
        "InterfaceNameSnake",
        'InterfaceNameSnake template variable has been deleted. Use "{{ .InterfaceName | snakecase }}" instead',
    ),
    (
        "InterfaceNameLower",
        'InterfaceNameLower template variable has been deleted. Use "{{ .InterfaceName | lower }}" instead',
    ),
    (
        "PackageName",
        'PackageName template variable has been deleted. Use "{{ .SrcPackageName }}" instead',
    ),
)


def check_deprecated_template_variables(v2: V2Config, table: DeprecationTable) -> None:
    """Record a notice for each removed template variable used in a string setting."""
    for f in fields(V2Config):
        if f.metadata["kind"] != _STR:
            continue
        value = getattr(v2, f.name)
        if value is None:
            continue
        for name, message in _DEPRECATED_VARIABLES:
            if name in value:
                table.append("template-variable", message)


def _template_data(v3: Config) -> dict[str, Any]:
    if v3.template_data is None:
        v3.template_data = {}
    return v3.template_data


def migrate_config(
    v2: V2Config | None, v3: Config | None, table: DeprecationTable
) -> Config | None:
    """Carry v2 settings over into ``v3`` and note what cannot be carried.

    ``v3`` is created when it is ``None`` and ``v2`` is given; the resulting
    config (or the unchanged ``v3`` when ``v2`` is ``None``) is returned.
    """
    if v2 is None:
        return v3
    check_deprecated_template_variables(v2, table)
    if v3 is None:
        v3 = Config()

    def note(message: str) -> None:
        table.append("deprecated-parameter", message)

    v3.all = v2.all
    v3.anchors = v2.anchors
    if v2.boilerplate_file is not None:
        _template_data(v3)["boilerplate-file"] = v2.boilerplate_file
    if v2.build_tags is not None:
        note("`tags` is no longer supported, parameter not migrated. Use `template-data.mock-build-tags` instead.")
    if v2.case is not None:
        note("`case` is no longer supported. Use `structname` to specify the name and exported-ness of the output mocks.")
    v3.config_file = v2.config
    if v2.cpuprofile is not None:
        note("`cpuprofile` is not supported in v3, however contributions implementing the feature are welcome.")
    v3.dir = v2.dir
    if v2.disable_config_search is not None:
        note("`disable-config-search` is permanently disabled in v3.")
    if not v2.disable_func_mocks:
        note("`disable-func-mocks` permanently enabled in v3.")
    if not v2.disable_version_string:
        note("`disable-version-string` is permanently set to True in v3.")
    if v2.dry_run is True:
        note("`dry-run` not supported in v3.")
    v3.exclude_subpkg_regex = list(v2.exclude) if v2.exclude is not None else None
    v3.exclude_interface_regex = v2.exclude_regex
    if v2.exported is not None:
        note("`exported` is no longer supported. Use `structname` instead.")
    if not v2.fail_on_missing:
        note("`fail-on-missing` is permanently set to True in v3.")
    if v2.in_package_suffix is not None:
        note("`inpackage-suffix` is no longer supported in v3.")
    if v2.include_auto_generated is False:
        note("`include-auto-generated` is not supported in v3, but contributions are welcome.")
    v3.include_interface_regex = v2.include_regex
    if not v2.issue_845_fix:
        note("`issue-845-fix` is permanently set to True in v3.")
    if v2.keep_tree is True:
        note("`keeptree` is not supported in v3. Use `dir` to specify where interfaces are located.")
    v3.log_level = v2.log_level
    if v2.mock_build_tags is not None:
        _template_data(v3)["mock-build-tags"] = v2.mock_build_tags
    v3.struct_name = v2.mock_name
    if v2.name is not None:
        note("`name` is no longer supported. Use `structname` instead.")
    if v2.note is not None:
        note("`note` is no longer supported.")
    v3.pkg_name = v2.outpkg
    if v2.output is not None:
        note("`output` was replaced by `dir` in v2. This value is ignored.")
    if v2.packageprefix is not None:
        note("`packageprefix` was replaced by `outpkg` in v2. This value is ignored.")
    if v2.print_ is True:
        note("`print` is not supported in v3.")
    if v2.profile is not None:
        note("`profile` is not supported in v3, but contributions implementing it are welcome.")
    if v2.quiet is True:
        note("`quiet` is not supported in v3. Use `log-level` instead.")
    v3.recursive = v2.recursive
    if v2.replace_type:
        note("`replace-type` has moved to a new schema. Cannot automatically migrate. See the `replace-type` documentation for more information.")
    if v2.resolve_type_alias is True:
        note("`resolve-type-alias` is permanently set to False in v3. Type aliases typically should never be resolved.")
    if v2.src_pkg is not None:
        note("`srcpkg` is not supported in v3. Use the `packages` configuration instead.")
    if v2.struct_name is not None:
        note("`structname` was replaced by `structname` in v2. This value is ignored.")
    if v2.test_only is not None:
        note("`testonly` was replaced by `filename` in v2. This value is ignored and not supported in v3.")
    if v2.unroll_variadic is not None:
        _template_data(v3)["unroll-variadic"] = v2.unroll_variadic
    if v2.with_expecter is False:
        note("`with-expecter` was removed in v3 because it is permanently enabled.")
    return v3


def _migrate_root(v2: V2RootConfig, table: DeprecationTable) -> RootConfig:
    # unroll-variadic defaults to true in v2, so it becomes the top-level default.
    top = Config(template_data={"unroll-variadic": True})
    migrate_config(v2.config, top, table)
    top.template = "testify"
    v3 = RootConfig(config=top, packages={})

    for pkg_name, pkg in v2.packages.items():
        v3_pkg = PackageConfig(config=None, interfaces={})
        v3.packages[pkg_name] = v3_pkg
        v3_pkg.config = migrate_config(pkg.config, None, table)
        for iface_name, iface in pkg.interfaces.items():
            v3_iface = InterfaceConfig(config=None, configs=[])
            v3_pkg.interfaces[iface_name] = v3_iface
            v3_iface.config = migrate_config(iface.config, None, table)
            for sub in iface.configs:
                v3_iface.configs.append(migrate_config(sub, Config(), table))
    return v3


def migrate_file(
    conf_path: str | os.PathLike | None, v3_path: str | os.PathLike
) -> DeprecationTable:
    """Convert the v2 config at ``conf_path`` (searched for if empty) into ``v3_path``.

    Returns the table of deprecations found; if it is not empty it is also
    printed.
    """
    path = pathlib.Path(conf_path) if conf_path else find_config()
    log.info("using config %s", path)
    text = path.read_text()
    try:
        v2 = V2RootConfig.from_dict(load_yaml(text))
    except ValueError as exc:
        log.error("v2 config could not be decoded. Are you sure this is a v2 config file?")
        raise ValueError(f"decoding v2 config: {exc}") from exc

    table = DeprecationTable()
    v3 = _migrate_root(v2, table)

    out_file = pathlib.Path(v3_path)
    log.info("writing v3 config %s", out_file)
    out_file.write_text(dump_yaml(v3.to_dict()))

    if len(table):
        log.warning("breaking changes detected that possibly require manual intervention. See table below.")
        print(table.render())
    return table