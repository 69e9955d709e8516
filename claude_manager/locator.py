from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Iterator

from .models import ManagerConfig

logger = logging.getLogger(__name__)

ASSET_KINDS = ("skills", "commands", "agents", "hooks")
# Only skills are directories; every other kind is one file per asset.
DIRECTORY_KINDS = frozenset({"skills"})
PLACEHOLDER = ".gitkeep"
DEFAULT_VERSION = "0.0.0"


@dataclass(frozen=True)
class PackageLayout:
    """Where a package manager stores dependencies and their metadata."""

    name: str
    modules_dir: str
    metadata_file: str


NPM_LAYOUT = PackageLayout(name="npm", modules_dir="node_modules", metadata_file="package.json")
COMPOSER_LAYOUT = PackageLayout(name="composer", modules_dir="vendor", metadata_file="composer.json")

_LAYOUTS = {NPM_LAYOUT.name: NPM_LAYOUT, COMPOSER_LAYOUT.name: COMPOSER_LAYOUT}


def layout_from_config(cfg: ManagerConfig) -> PackageLayout:
    base = _LAYOUTS[cfg.packages.layout]
    if cfg.packages.dir:
        return PackageLayout(name=base.name, modules_dir=cfg.packages.dir, metadata_file=base.metadata_file)
    return base


def _name_parts(name: str) -> tuple[str, ...] | None:
    """Split a package name like "@scope/pkg" into path parts, rejecting unsafe names."""
    if not isinstance(name, str) or not name.strip() or "\\" in name:
        return None
    pp = PurePosixPath(name)
    if pp.is_absolute():
        return None
    parts = pp.parts
    if not parts or any(p in {".", ".."} for p in parts):
        return None
    return parts


def locate_package(name: str, project_root: Path, *, layout: PackageLayout = NPM_LAYOUT) -> Path | None:
    """Find the on-disk directory of an installed dependency package.

    Tries the flat `<root>/<modules_dir>/<name>` path first, then falls back to
    the package manager's own resolution rules for nested or virtual stores.
    """

    parts = _name_parts(name)
    if parts is None:
        return None

    root = Path(project_root)
    direct = root.joinpath(layout.modules_dir, *parts)
    if direct.is_dir():
        return direct

    if layout.name == "composer":
        found = _resolve_composer(parts, root / layout.modules_dir)
    else:
        found = _resolve_node(parts, root, layout)
    if found is not None:
        logger.debug("resolved %s via fallback: %s", name, found)
    return found


def _resolve_node(parts: tuple[str, ...], root: Path, layout: PackageLayout) -> Path | None:
    """Node-style resolution of `<name>/package.json` from the project root.

    Walks the ancestors' node_modules/ directories, then the pnpm virtual
    store (node_modules/.pnpm/<id>/node_modules/<name>).
    """

    for ancestor in root.resolve().parents:
        meta = ancestor.joinpath(layout.modules_dir, *parts, layout.metadata_file)
        if meta.is_file():
            return meta.parent

    virtual_store = root / layout.modules_dir / ".pnpm"
    if virtual_store.is_dir():
        try:
            candidates = sorted(virtual_store.iterdir())
        except OSError:
            return None
        for entry in candidates:
            meta = entry.joinpath(layout.modules_dir, *parts, layout.metadata_file)
            if meta.is_file():
                return meta.parent
    return None


def _resolve_composer(parts: tuple[str, ...], vendor_dir: Path) -> Path | None:
    """Resolve via vendor/composer/installed.json `install-path` entries."""

    installed = vendor_dir / "composer" / "installed.json"
    try:
        data = json.loads(installed.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError):
        return None

    # Composer 2 wraps the list in {"packages": [...]}; Composer 1 stores the list directly.
    packages = data.get("packages") if isinstance(data, dict) else data
    if not isinstance(packages, list):
        return None

    wanted = "/".join(parts)
    for pkg in packages:
        if not isinstance(pkg, dict) or pkg.get("name") != wanted:
            continue
        install_path = pkg.get("install-path")
        if not isinstance(install_path, str):
            continue
        candidate = (installed.parent / install_path).resolve()
        if candidate.is_dir():
            return candidate
    return None


def read_declared_version(package_path: Path, *, layout: PackageLayout = NPM_LAYOUT) -> str:
    """Read the package's own metadata version; "0.0.0" when unavailable."""

    meta = Path(package_path) / layout.metadata_file
    try:
        data = json.loads(meta.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError):
        return DEFAULT_VERSION
    if not isinstance(data, dict):
        return DEFAULT_VERSION
    version = data.get("version")
    if not isinstance(version, str) or not version:
        return DEFAULT_VERSION
    return version


def list_kind_entries(kind_dir: Path) -> list[Path]:
    try:
        entries = sorted(kind_dir.iterdir(), key=lambda p: p.name)
    except OSError as e:
        logger.warning("Unable to list %s: %s", kind_dir, e)
        return []
    return [p for p in entries if p.name != PLACEHOLDER]


def is_eligible(kind: str, item: Path) -> bool:
    if kind in DIRECTORY_KINDS:
        return item.is_dir()
    return item.is_file()


def iter_asset_items(package_path: Path) -> Iterator[tuple[str, Path]]:
    """Yield (kind, source path) for every materializable asset item.

    Kinds come in ASSET_KINDS order and items by name within a kind.
    """

    for kind in ASSET_KINDS:
        kind_dir = Path(package_path) / kind
        if not kind_dir.is_dir():
            continue
        for item in list_kind_entries(kind_dir):
            if is_eligible(kind, item):
                yield kind, item


def has_assets(package_path: Path) -> bool:
    for kind in ASSET_KINDS:
        kind_dir = Path(package_path) / kind
        if kind_dir.is_dir() and list_kind_entries(kind_dir):
            return True
    return False


def list_discoverable_files(package_path: Path) -> list[str]:
    return sorted(f"{kind}/{item.name}" for kind, item in iter_asset_items(package_path))
