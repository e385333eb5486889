# mockcfg

`mockcfg` reads, layers, validates and migrates the YAML configuration files
(`.mockery.yml` / `.mockery.yaml`) that describe which Go interfaces get mock
implementations and where those mocks are written.

## What it does

- **Loading** (`mockcfg.loader.load_root_config`). Settings are layered in this
  order, later ones winning: built-in defaults (`default_config()`), `MOCKERY_*`
  environment variables (`env_overrides()`), the config file, then flags passed
  as a mapping. Unknown keys raise `mockcfg.model.InvalidKeysError`, for example
  `'packages[github.com/foo/bar].config' has invalid keys: unknown`.
- **Inheritance** (`RootConfig.initialize`). Settings flow from the top level to
  each package, from each package to its interfaces, and from each interface to
  every entry of its `configs` list. Free-form maps such as `template-data` are
  merged key by key.
- **Recursive packages**. A package with `recursive: true` gets an entry for
  every sub-package holding non-test `.go` files, found by reading the `go.mod`
  above the working directory and walking the module's directories.
  Sub-packages matching `exclude-subpkg-regex` are skipped.
- **Selection** (`PackageConfig.should_generate_interface`). `all`,
  `include-interface-regex` and `exclude-interface-regex` decide which
  interfaces get mocks; an interface listed under `interfaces` is always
  selected.
- **Migration** (`mockcfg.migrate.migrate_file`) of a v2 configuration to the
  v3 schema. Settings that cannot be carried over are collected in a
  `DeprecationTable` and printed as a table.

## Installation

```
pip install .
```

## Command line

```
mockcfg init github.com/org/repo      # write a starter .mockery.yml
mockcfg showconfig                    # print the fully merged configuration
mockcfg migrate --config old.yml --outfile .mockery_v3.yml
mockcfg version
mockcfg                               # load and validate the config, list its packages
```

The config file is taken from the `MOCKERY_CONFIG` environment variable if it
is set, otherwise from `--config`; failing both, the current directory and each
parent directory are searched for `.mockery.yaml`, then `.mockery.yml`.

- `init` writes to `--config` if given, else `.mockery.yml`, and refuses to
  overwrite an existing file.
- `migrate` reads the v2 file named by `--config` (searched for if absent) and
  writes `--outfile` (default `.mockery_v3.yml`).
- `--log-level` (or `MOCKERY_LOG_LEVEL`) sets the logging level.

Each command exits with status 1 and an error message when it fails.

## Library use

```python
from mockcfg.loader import load_root_config

root = load_root_config(".mockery.yml")
for pkg_path in root.get_packages():
    pkg = root.get_package_config(pkg_path)
    if pkg.should_generate_interface("Requester"):
        iface = pkg.get_interface_config("Requester")
        for cfg in iface.configs:
            print(cfg.struct_name, cfg.dir, cfg.file_name)
```

To migrate a configuration file from Python:

```python
from mockcfg.migrate import migrate_file

table = migrate_file("old.yml", ".mockery_v3.yml")
print(len(table), "deprecation notice(s)")
```

## What it does not do

`mockcfg` handles configuration only. It does not parse Go source, does not
expand the template strings in settings such as `dir`, `filename` or
`structname`, and does not generate or write mock files. Running `mockcfg`
with no command loads and validates the configuration and reports the
configured packages, nothing more.