from __future__ import annotations

"""Deterministic rewriting of claude-plugins.toml.

These helpers support the `claude-plugins mode` command.

Comments and exact formatting are not preserved; the file is rewritten in a
canonical minimal format with stable ordering.
"""

from pathlib import Path
from typing import Any

from .config import _load_toml, _parse_config
from .errors import ConfigValidationError
from .models import LINK_MODES, ManagerConfig
from .toml_write import toml_table, toml_value


def load_config_raw(path: Path) -> dict[str, Any]:
    """Load claude-plugins.toml as a dict, or a minimal new config if absent."""

    if not path.exists():
        return {"version": 1}
    return dict(_load_toml(path))


def render_config(cfg: ManagerConfig) -> str:
    lines: list[str] = [f"version = {toml_value(cfg.version)}"]

    packages = toml_table(
        "packages",
        {"layout": cfg.packages.layout, "dir": cfg.packages.dir},
        key_order=["layout", "dir"],
    )
    if packages:
        lines.append("")
        lines.extend(packages)

    sync = toml_table(
        "sync",
        {"linkMode": cfg.sync.link_mode, "gitignore": cfg.sync.gitignore},
        key_order=["linkMode", "gitignore"],
    )
    if sync:
        lines.append("")
        lines.extend(sync)

    return "\n".join(lines) + "\n"


def save_config(path: Path, data: dict[str, Any]) -> None:
    """Validate `data` and write it in canonical minimal formatting."""

    cfg = _parse_config(path, data)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    tmp.write_text(render_config(cfg), encoding="utf-8")
    tmp.replace(path)


def set_link_mode(path: Path, mode: str) -> None:
    if mode not in LINK_MODES:
        raise ConfigValidationError(path=path, message=f"sync.linkMode: expected one of {sorted(LINK_MODES)}, got {mode!r}")
    data = load_config_raw(path)
    sync_raw = data.get("sync")
    if sync_raw is None:
        sync: dict[str, Any] = {}
    elif isinstance(sync_raw, dict):
        sync = dict(sync_raw)
    else:
        raise ConfigValidationError(path=path, message="sync: expected table")
    sync["linkMode"] = mode
    data["sync"] = sync
    save_config(path, data)
