import pytest

from mockcfg.migrate import (
    DeprecationTable,
    V2Config,
    V2RootConfig,
    check_deprecated_template_variables,
    migrate_config,
    migrate_file,
)
from mockcfg.model import Config, InvalidKeysError

V2_EXAMPLE = """
quiet: False
disable-version-string: True
with-expecter: True
mockname: "{{.InterfaceName}}"
filename: "{{.StructName}}_mock.go"
outpkg: mocks
tags: "custom2"
issue-845-fix: True
_anchors: &shared
  all: True
  dir: "{{.InterfaceDir}}"
  mockname: "Mock{{.InterfaceName}}"
  outpkg: "{{.PackageName}}_test"
  filename: "mock_{{.InterfaceNameSnake}}_test.go"
  inpackage: False
packages:
  example.com/app/tags:
    config:
      mock-build-tags: "integration && !windows"
    interfaces:
      Tagged:
  example.com/app/core:
    config:
      all: True
    interfaces:
      Plain:
      Variadic:
        config:
          with-expecter: False
        configs:
          - mockname: VariadicRolled
            unroll-variadic: False
          - mockname: VariadicUnrolled
            unroll-variadic: True
      Generic:
        config:
          replace-type:
            - example.com/app/core.Generic[-T]=example.com/app/other.B
  example.com/app/shared:
    config: *shared
  example.com/app/merged:
    config:
      <<: *shared
      filename: "mock_{{.StructName}}_test.go"
    interfaces:
      Thing:
        configs:
          - mockname: First
          - mockname: Second
  example.com/app/recursive:
    config:
      recursive: True
      all: True
      dir: "{{.InterfaceDir}}"
      mockname: "{{.InterfaceName}}Mock"
      outpkg: "{{.PackageName}}"
      keeptree: False
"""

EXPECTED_V3 = """_anchors:
  all: true
  dir: '{{.InterfaceDir}}'
  filename: mock_{{.InterfaceNameSnake}}_test.go
  inpackage: false
  mockname: Mock{{.InterfaceName}}
  outpkg: '{{.PackageName}}_test'
structname: '{{.InterfaceName}}'
pkgname: mocks
template: testify
template-data:
  unroll-variadic: true
packages:
  example.com/app/core:
    config:
      all: true
    interfaces:
      Generic:
        config: {}
      Plain: {}
      Variadic:
        config: {}
        configs:
          - structname: VariadicRolled
            template-data:
              unroll-variadic: false
          - structname: VariadicUnrolled
            template-data:
              unroll-variadic: true
  example.com/app/merged:
    config:
      all: true
      dir: '{{.InterfaceDir}}'
      structname: Mock{{.InterfaceName}}
      pkgname: '{{.PackageName}}_test'
    interfaces:
      Thing:
        configs:
          - structname: First
          - structname: Second
  example.com/app/recursive:
    config:
      all: true
      dir: '{{.InterfaceDir}}'
      structname: '{{.InterfaceName}}Mock'
      pkgname: '{{.PackageName}}'
      recursive: true
  example.com/app/shared:
    config:
      all: true
      dir: '{{.InterfaceDir}}'
      structname: Mock{{.InterfaceName}}
      pkgname: '{{.PackageName}}_test'
  example.com/app/tags:
    config:
      template-data:
        mock-build-tags: integration && !windows
    interfaces:
      Tagged: {}
"""


def test_migrate_example(tmp_path):
    v2_file = tmp_path / "v2_config.yml"
    v3_file = tmp_path / "v3_config.yml"
    v2_file.write_text(V2_EXAMPLE)
    migrate_file(str(v2_file), str(v3_file))
    assert v3_file.read_text() == EXPECTED_V3


def test_migrate_example_reports_deprecations(tmp_path, capsys):
    v2_file = tmp_path / "v2_config.yml"
    v2_file.write_text(V2_EXAMPLE)
    table = migrate_file(v2_file, tmp_path / "out.yml")
    messages = [m for _, _, m in table.rows]
    assert any(m.startswith("InterfaceNameSnake template variable") for m in messages)
    assert any(m.startswith("`tags` is no longer supported") for m in messages)
    assert any(m.startswith("`replace-type` has moved") for m in messages)
    assert len(messages) == len(set(messages))
    assert "Deprecations" in capsys.readouterr().out


def test_migrate_file_searches_config(tmp_path, monkeypatch):
    (tmp_path / ".mockery.yml").write_text("mockname: Foo\n")
    monkeypatch.chdir(tmp_path)
    out = tmp_path / "v3.yml"
    migrate_file("", out)
    text = out.read_text()
    assert "structname: Foo\n" in text
    assert "template: testify\n" in text


def test_migrate_file_rejects_unknown_key(tmp_path):
    v2_file = tmp_path / "v2.yml"
    v2_file.write_text("packages:\n  pkg:\n    config:\n      bogus: 1\n")
    with pytest.raises(ValueError, match="decoding v2 config"):
        migrate_file(v2_file, tmp_path / "out.yml")


def test_v2_config_from_dict_unknown_key():
    with pytest.raises(InvalidKeysError) as info:
        V2Config.from_dict({"mockname": "x", "unknown": 1})
    assert info.value.keys == ["unknown"]


def test_v2_config_from_dict_bool_type_error():
    with pytest.raises(ValueError):
        V2Config.from_dict({"all": "yes"})


def test_v2_root_config_from_dict():
    root = V2RootConfig.from_dict(
        {"outpkg": "mocks", "packages": {"p": {"interfaces": {"I": None}}}}
    )
    assert root.config.outpkg == "mocks"
    assert root.packages["p"].config is None
    assert root.packages["p"].interfaces["I"].configs == []


def test_migrate_config_none_returns_unchanged():
    table = DeprecationTable(width=120)
    assert migrate_config(None, None, table) is None
    assert len(table) == 0


def test_migrate_config_moves_values():
    table = DeprecationTable(width=120)
    v2 = V2Config(
        mock_name="Mock{{.InterfaceName}}",
        outpkg="mocks",
        exclude=["sub"],
        include_regex="^Foo",
        mock_build_tags="custom",
        boilerplate_file="header.txt",
        unroll_variadic=False,
        disable_func_mocks=True,
        disable_version_string=True,
        fail_on_missing=True,
        issue_845_fix=True,
    )
    v3 = migrate_config(v2, None, table)
    assert v3.struct_name == "Mock{{.InterfaceName}}"
    assert v3.pkg_name == "mocks"
    assert v3.exclude_subpkg_regex == ["sub"]
    assert v3.include_interface_regex == "^Foo"
    assert v3.template_data == {
        "boilerplate-file": "header.txt",
        "mock-build-tags": "custom",
        "unroll-variadic": False,
    }
    assert len(table) == 0


def test_migrate_config_overwrites_existing_value():
    table = DeprecationTable(width=120)
    v3 = Config(dir="old", template_data={"keep": 1})
    result = migrate_config(V2Config(), v3, table)
    assert result is v3
    assert v3.dir is None
    assert v3.template_data == {"keep": 1}


def test_migrate_config_default_deprecations():
    table = DeprecationTable(width=120)
    migrate_config(V2Config(), Config(), table)
    messages = [m for _, _, m in table.rows]
    assert messages == [
        "`disable-func-mocks` permanently enabled in v3.",
        "`disable-version-string` is permanently set to True in v3.",
        "`fail-on-missing` is permanently set to True in v3.",
        "`issue-845-fix` is permanently set to True in v3.",
    ]


def test_check_deprecated_template_variables():
    table = DeprecationTable(width=120)
    check_deprecated_template_variables(
        V2Config(mock_name="{{.InterfaceNameCamel}}", outpkg="{{.PackageName}}"), table
    )
    types = {t for _, t, _ in table.rows}
    messages = [m for _, _, m in table.rows]
    assert types == {"template-variable"}
    assert len(messages) == 2
    assert messages[0].startswith("InterfaceNameCamel")
    assert messages[1].startswith("PackageName")


def test_table_deduplicates_and_numbers():
    table = DeprecationTable(width=120)
    table.append("a", "first")
    table.append("b", "first")
    table.append("b", "second")
    assert table.rows == [(0, "a", "first"), (1, "b", "second")]


def test_table_render_contains_rows():
    table = DeprecationTable(width=120)
    table.append("deprecated-parameter", "some message")
    rendered = table.render()
    lines = rendered.split("\n")
    assert lines[0].startswith("╭") and lines[-1].startswith("╰")
    assert "Deprecations" in lines[1]
    assert "deprecated-parameter" in rendered
    assert "some message" in rendered
    assert len({len(line) for line in lines}) == 1


def test_table_render_wraps_long_messages():
    table = DeprecationTable(width=45)
    table.append("t", "one two three four five six seven")
    body = [line for line in table.render().split("\n") if "one" in line or "seven" in line]
    assert len(body) >= 2
    assert all(len(line) == len(table.render().split("\n")[0]) for line in body)