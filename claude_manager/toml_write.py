from __future__ import annotations

"""Emit the small slice of TOML that claude-plugins.toml needs.

Only flat tables of strings, integers and booleans are written. Parsing stays
in config.py.
"""

import json
from typing import Any


def toml_value(v: Any) -> str:
    # bool first: it is a subclass of int.
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, int):
        return str(v)
    if isinstance(v, str):
        # JSON string escapes are valid TOML basic-string escapes.
        return json.dumps(v, ensure_ascii=False)
    raise TypeError(f"cannot write {type(v).__name__} to claude-plugins.toml")


def toml_table(name: str, values: dict[str, Any], *, key_order: list[str]) -> list[str]:
    """Lines for `[name]` with the keys of `values` that are set, in `key_order`.

    Unset (None) keys are left out; an empty list means there is nothing to write.
    """

    body = [f"{key} = {toml_value(values[key])}" for key in key_order if values.get(key) is not None]
    return [f"[{name}]", *body] if body else []
