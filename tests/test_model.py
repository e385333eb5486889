import pathlib

import pytest

from mockcfg.model import (
    Config,
    InterfaceConfig,
    InvalidKeysError,
    PackageConfig,
    ReplaceType,
    RootConfig,
    merge_configs,
    merge_string_maps,
)


def test_unknown_key_in_package_config():
    data = {"packages": {"github.com/foo/bar": {"config": {"unknown": "param"}}}}
    with pytest.raises(InvalidKeysError) as exc:
        RootConfig.from_dict(data)
    assert str(exc.value) == "'packages[github.com/foo/bar].config' has invalid keys: unknown"


def test_wrong_type_rejected():
    with pytest.raises(TypeError):
        Config.from_dict({"all": "yes"})


def test_config_round_trip():
    data = {"all": True, "dir": "d", "template-data": {"b": 1, "a": 2}, "exclude-subpkg-regex": ["x"]}
    cfg = Config.from_dict(data)
    assert cfg.to_dict() == data
    assert list(cfg.to_dict()["template-data"]) == ["a", "b"]


def test_to_dict_omits_unset_and_empty():
    cfg = Config(all=False, template_data={})
    assert cfg.to_dict() == {"all": False}


def test_field_keys_in_schema_order():
    keys = Config.field_keys()
    assert keys.index("all") < keys.index("dir") < keys.index("template-schema")
    assert "packages" not in keys


def test_merge_string_maps_keeps_dest_and_recurses():
    dest = {"a": 1, "n": {"x": 1}}
    merge_string_maps({"a": 2, "b": 3, "n": {"x": 9, "y": 2}}, dest)
    assert dest == {"a": 1, "b": 3, "n": {"x": 1, "y": 2}}


def test_merge_configs_fills_only_unset():
    src = Config(dir="src", pkg_name="p", template_data={"k": 1}, exclude_subpkg_regex=["r"])
    dest = Config(dir="dest")
    merge_configs(src, dest)
    assert dest.dir == "dest"
    assert dest.pkg_name == "p"
    assert dest.template_data == {"k": 1}
    assert dest.exclude_subpkg_regex == ["r"]


def test_merge_configs_skips_replace_type():
    src = Config(replace_type={"p": {"T": ReplaceType("q", "U")}})
    dest = Config()
    merge_configs(src, dest)
    assert dest.replace_type is None


def test_file_path_is_clean():
    cfg = Config(dir="a/./b/../c", file_name="m.go")
    assert cfg.file_path() == pathlib.Path("a/c/m.go")


def test_file_path_requires_values():
    with pytest.raises(ValueError):
        Config(dir="a").file_path()


def test_should_exclude_subpkg():
    cfg = Config(exclude_subpkg_regex=["subpkg2"])
    assert cfg.should_exclude_subpkg("x/subpkg2")
    assert not cfg.should_exclude_subpkg("x/subpkg1")


def test_get_replacement():
    rt = ReplaceType("pkg/b", "B")
    cfg = Config(replace_type={"pkg/a": {"A": rt}})
    assert cfg.get_replacement("pkg/a", "A") is rt
    assert cfg.get_replacement("pkg/a", "Z") is None
    assert cfg.get_replacement("none", "A") is None


def test_interface_initialize_defaults_configs():
    ic = InterfaceConfig(config=Config(dir="d"))
    ic.initialize()
    assert ic.configs == [ic.config]


def test_interface_initialize_merges_into_configs():
    ic = InterfaceConfig(config=Config(dir="d"), configs=[Config(struct_name="A")])
    ic.initialize()
    assert ic.configs[0].dir == "d" and ic.configs[0].struct_name == "A"


def test_get_interface_config_copies_package_config():
    pc = PackageConfig(config=Config(template_data={"a": 1}))
    ic = pc.get_interface_config("Missing")
    ic.config.template_data["a"] = 2
    assert pc.config.template_data == {"a": 1}
    assert ic.configs == [ic.config]


@pytest.mark.parametrize(
    "cfg, ifaces, name, expected",
    [
        (Config(all=True), {}, "Foo", True),
        (Config(all=False), {"Foo": None}, "Foo", True),
        (Config(all=False), {}, "Foo", False),
        (Config(all=False, include_interface_regex="Fo+"), {}, "Foo", True),
        (Config(all=False, include_interface_regex="Fo+", exclude_interface_regex="oo$"), {}, "Foo", False),
        (Config(all=False, include_interface_regex="Bar"), {}, "Foo", False),
    ],
)
def test_should_generate_interface(cfg, ifaces, name, expected):
    assert PackageConfig(config=cfg, interfaces=ifaces).should_generate_interface(name) is expected


def test_should_generate_bad_regex():
    pc = PackageConfig(config=Config(include_interface_regex="("))
    with pytest.raises(ValueError):
        pc.should_generate_interface("Foo")


def test_root_initialize_propagates_and_recurses():
    root = RootConfig.from_dict(
        {
            "dir": "root",
            "packages": {
                "m/a": {"config": {"recursive": True, "exclude-subpkg-regex": ["skip"]}},
                "m/b": None,
            },
        }
    )
    root.initialize(lambda p: [f"{p}/sub", f"{p}/skip"])
    assert root.get_package_config("m/b").config.dir == "root"
    assert root.get_package_config("m/a/sub").config.recursive is True
    assert "m/a/skip" not in root.get_packages()


def test_root_recursive_without_discovery_raises():
    root = RootConfig(packages={"m": PackageConfig(config=Config(recursive=True))})
    with pytest.raises(ValueError):
        root.initialize(None)


def test_get_package_config_missing():
    with pytest.raises(KeyError):
        RootConfig().get_package_config("nope")


def test_root_round_trip_sorted_packages():
    data = {"all": False, "packages": {"z": {"interfaces": {"I": {}}}, "a": {"config": {"all": True}}}}
    out = RootConfig.from_dict(data).to_dict()
    assert list(out["packages"]) == ["a", "z"]
    assert out["packages"]["z"] == {"interfaces": {"I": {}}}
    assert out["packages"]["a"] == {"config": {"all": True}}