"""Locating the mock generator's config file."""

from __future__ import annotations

import pathlib

CONFIG_NAMES = (".mockery.yaml", ".mockery.yml")


class ConfigNotFoundError(FileNotFoundError):
    """Raised when no config file exists in a directory or any of its parents."""


def find_config(start: str | pathlib.Path | None = None) -> pathlib.Path:
    """Search ``start`` (default: the working directory) and its parents for a config file.

    In each directory ``.mockery.yaml`` is preferred over ``.mockery.yml``.
    The filesystem root itself is not searched.
    """
    current = pathlib.Path(start if start is not None else pathlib.Path.cwd()).resolve()
    while len(current.parts) != 1:
        for name in CONFIG_NAMES:
            candidate = current / name
            if candidate.exists():
                return candidate
        current = current.parent
    raise ConfigNotFoundError("mockery config file not found")