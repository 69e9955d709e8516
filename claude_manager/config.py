from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import Any

from .errors import ConfigParseError, ConfigValidationError
from .models import LINK_MODES, ManagerConfig, PackagesConfig, SyncConfig
from .paths import config_path


try:  # Python 3.11+
    import tomllib as _tomllib  # type: ignore
except ModuleNotFoundError:  # pragma: no cover (dev envs < 3.11)
    import tomli as _tomllib  # type: ignore


logger = logging.getLogger(__name__)

_LAYOUTS = {"npm", "composer"}


def _load_toml(path: Path) -> dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ConfigValidationError(path=path, message="file not found") from e
    except OSError as e:
        raise ConfigValidationError(path=path, message=f"unable to read file: {e}") from e

    try:
        data = _tomllib.loads(text)
    except Exception as e:
        # tomllib/tomli both raise TOMLDecodeError with msg/lineno/colno.
        msg = getattr(e, "msg", str(e))
        lineno = getattr(e, "lineno", None)
        colno = getattr(e, "colno", None)
        raise ConfigParseError(path=path, message=str(msg), lineno=lineno, colno=colno) from e

    if not isinstance(data, dict):
        raise ConfigValidationError(path=path, message="top-level TOML must be a table")
    return data


def _unknown_keys_message(unknown: set[str]) -> str:
    keys = ", ".join(sorted(unknown))
    return f"unknown keys: {keys}"


def _optional_table(path: Path, value: Any, where: str) -> dict[str, Any] | None:
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ConfigValidationError(path=path, message=f"{where}: expected table")
    return value


def _require_str(path: Path, value: Any, where: str) -> str:
    if not isinstance(value, str):
        raise ConfigValidationError(path=path, message=f"{where}: expected string")
    return value


def _require_bool(path: Path, value: Any, where: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigValidationError(path=path, message=f"{where}: expected bool")
    return value


def _require_int(path: Path, value: Any, where: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ConfigValidationError(path=path, message=f"{where}: expected integer")
    return value


def load_config(project_root: Path) -> ManagerConfig:
    """Load claude-plugins.toml from the project root.

    A missing file is not an error: the defaults (npm layout, copy mode) apply.
    """

    p = config_path(project_root)
    if not p.exists():
        return ManagerConfig()
    return parse_config_file(p)


def parse_config_file(path: Path) -> ManagerConfig:
    """Load + validate a claude-plugins.toml file into a typed config model."""

    data = _load_toml(path)
    cfg = _parse_config(path, data)
    logger.debug("loaded config %s: layout=%s linkMode=%s", path, cfg.packages.layout, cfg.sync.link_mode)
    return cfg


def _parse_config(path: Path, data: dict[str, Any]) -> ManagerConfig:
    unknown_top = set(data.keys()) - {"version", "packages", "sync"}
    if unknown_top:
        raise ConfigValidationError(path=path, message=_unknown_keys_message(unknown_top))

    version = 1
    if "version" in data:
        version = _require_int(path, data.get("version"), "version")
        if version != 1:
            raise ConfigValidationError(path=path, message=f"version: expected 1, got {version}")

    packages = PackagesConfig()
    packages_tbl = _optional_table(path, data.get("packages"), "packages")
    if packages_tbl is not None:
        unknown = set(packages_tbl.keys()) - {"layout", "dir"}
        if unknown:
            raise ConfigValidationError(path=path, message=f"packages: {_unknown_keys_message(unknown)}")
        if "layout" in packages_tbl:
            layout = _require_str(path, packages_tbl.get("layout"), "packages.layout")
            if layout not in _LAYOUTS:
                raise ConfigValidationError(
                    path=path,
                    message=f"packages.layout: expected one of {sorted(_LAYOUTS)}, got {layout!r}",
                )
            packages = replace(packages, layout=layout)
        if "dir" in packages_tbl:
            d = _require_str(path, packages_tbl.get("dir"), "packages.dir")
            if not d.strip():
                raise ConfigValidationError(path=path, message="packages.dir: must not be empty")
            packages = replace(packages, dir=d)

    sync = SyncConfig()
    sync_tbl = _optional_table(path, data.get("sync"), "sync")
    if sync_tbl is not None:
        unknown = set(sync_tbl.keys()) - {"linkMode", "gitignore"}
        if unknown:
            raise ConfigValidationError(path=path, message=f"sync: {_unknown_keys_message(unknown)}")
        if "linkMode" in sync_tbl:
            link_mode = _require_str(path, sync_tbl.get("linkMode"), "sync.linkMode")
            if link_mode not in LINK_MODES:
                raise ConfigValidationError(
                    path=path,
                    message=f"sync.linkMode: expected one of {sorted(LINK_MODES)}, got {link_mode!r}",
                )
            sync = replace(sync, link_mode=link_mode)
        if "gitignore" in sync_tbl:
            sync = replace(sync, gitignore=_require_bool(path, sync_tbl.get("gitignore"), "sync.gitignore"))

    return ManagerConfig(version=version, packages=packages, sync=sync)
