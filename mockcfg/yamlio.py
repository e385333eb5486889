"""YAML reading and writing in the layout used for mockery config files."""

from __future__ import annotations

from typing import Any

import yaml

_PLAIN_TYPES = (str, bytes, bool, int, float, dict, list, tuple, set)


class _Dumper(yaml.SafeDumper):
    """Safe dumper that indents block sequences under their parent key."""

    def increase_indent(self, flow: bool = False, indentless: bool = False) -> None:
        return super().increase_indent(flow, False)

    def ignore_aliases(self, data: Any) -> bool:
        # Repeated mappings and lists are written out in full, never anchored.
        if data is None or isinstance(data, _PLAIN_TYPES):
            return True
        return super().ignore_aliases(data)


def dump_yaml(data: Any) -> str:
    """Serialise ``data`` to block-style YAML with two-space indentation.

    Mapping order is preserved; repeated objects are written out in full.
    """
    return yaml.dump(
        data,
        Dumper=_Dumper,
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=True,
        width=float("inf"),
        indent=2,
    )


def load_yaml(text: str) -> dict[str, Any]:
    """Parse a YAML document into a mapping; an empty document gives ``{}``."""
    data = yaml.safe_load(text)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError("YAML document must be a mapping at the top level")
    return data