from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from .config import load_config
from .errors import CleanupError, ManifestWriteError
from .gitignore import update_ignore_section
from .locator import PackageLayout, has_assets, layout_from_config, list_discoverable_files, locate_package, read_declared_version
from .manifest import (
    Manifest,
    PluginEntry,
    add_entry,
    cleanup_tracked_files,
    read_manifest,
    remove_entry,
    remove_tracked_paths,
    write_manifest,
)
from .materialize import MaterializeResult, materialize
from .models import ManagerConfig

logger = logging.getLogger(__name__)

REASON_NOTHING = "No plugins to sync"
REASON_UP_TO_DATE = "All plugins up to date"
REASON_FORCED = "Forced sync"


@dataclass(frozen=True)
class InstalledPlugin:
    name: str
    version: str
    file_count: int


@dataclass(frozen=True)
class SyncResult:
    success: bool
    synced: bool
    reason: str | None = None
    total_files: int = 0
    plugin_count: int = 0
    removed_plugins: list[str] = field(default_factory=list)
    # "<file> (<first owner> vs <current>)"; the later package's copy is on disk.
    conflicts: list[str] = field(default_factory=list)
    installed_plugins: list[InstalledPlugin] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    error: str | None = None


@dataclass(frozen=True)
class AddResult:
    success: bool
    already_exists: bool
    package_name: str
    version: str | None = None
    files: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    error: str | None = None


@dataclass(frozen=True)
class RemoveResult:
    success: bool
    package_name: str
    files_removed: list[str] = field(default_factory=list)
    error: str | None = None


@dataclass(frozen=True)
class ListResult:
    plugins: dict[str, PluginEntry]


def _skipped_warnings(package_name: str, result: MaterializeResult) -> list[str]:
    return [f"{package_name}: could not install {rel}" for rel in result.skipped]


def _refresh_ignore(project_root: Path, cfg: ManagerConfig, manifest: Manifest) -> None:
    if not cfg.sync.manage_gitignore:
        return
    paths = [f for entry in manifest.plugins.values() for f in entry.files]
    update_ignore_section(project_root, paths)


def detect_drift(project_root: Path, manifest: Manifest, *, layout: PackageLayout) -> str | None:
    """Return why `manifest` is stale, or None when every entry still matches.

    Entries are checked in manifest order and the first difference wins.
    """

    for name, entry in manifest.plugins.items():
        package_path = locate_package(name, project_root, layout=layout)
        if package_path is None:
            return f"{name} was uninstalled"

        current = read_declared_version(package_path, layout=layout)
        if current != entry.version:
            return f"{name} changed ({entry.version} -> {current})"

        # Also catches asset kinds added without a version bump.
        if set(list_discoverable_files(package_path)) != set(entry.files):
            return f"{name} has new discoverable assets"
    return None


def sync_plugins(project_root: Path, *, force: bool = False, config: ManagerConfig | None = None) -> SyncResult:
    """Bring .claude/ in line with the packages recorded in the manifest.

    Without `force` nothing is touched unless drift is detected. A reconcile
    removes every tracked path, re-materializes each recorded package that
    still resolves, and writes a fresh manifest.
    """

    project_root = Path(project_root)
    cfg = config if config is not None else load_config(project_root)
    layout = layout_from_config(cfg)

    manifest = read_manifest(project_root)
    if manifest.is_empty():
        return SyncResult(success=True, synced=False, reason=REASON_NOTHING)

    if force:
        reason = REASON_FORCED
    else:
        drift = detect_drift(project_root, manifest, layout=layout)
        if drift is None:
            return SyncResult(
                success=True,
                synced=False,
                reason=REASON_UP_TO_DATE,
                plugin_count=len(manifest.plugins),
            )
        reason = drift
    logger.info("syncing plugins: %s", reason)

    fresh = Manifest(extra=dict(manifest.extra), plugins_index=manifest.plugins_index)
    owners: dict[str, str] = {}
    conflicts: list[str] = []
    removed: list[str] = []
    installed: list[InstalledPlugin] = []
    warnings: list[str] = []
    total = 0

    try:
        cleanup_tracked_files(project_root)

        for name in manifest.plugins:
            package_path = locate_package(name, project_root, layout=layout)
            if package_path is None:
                logger.info("dropping %s: package no longer installed", name)
                removed.append(name)
                continue
            if not has_assets(package_path):
                logger.debug("skipping %s: no assets", name)
                continue

            result = materialize(package_path, project_root, mode=cfg.sync.link_mode, layout=layout)
            warnings.extend(_skipped_warnings(name, result))
            if not result.files and not result.skipped:
                continue

            for rel in result.files:
                first = owners.get(rel)
                if first is not None and first != name:
                    logger.warning("conflict on %s: %s overwritten by %s", rel, first, name)
                    conflicts.append(f"{rel} ({first} vs {name})")
                owners[rel] = name

            fresh.plugins[name] = PluginEntry(
                version=result.version,
                files=tuple(result.files),
                extra=dict(manifest.plugins[name].extra),
            )
            installed.append(InstalledPlugin(name=name, version=result.version, file_count=len(result.files)))
            total += len(result.files)

        write_manifest(project_root, fresh)
    except (ManifestWriteError, CleanupError, OSError) as e:
        logger.error("sync failed: %s", e)
        return SyncResult(success=False, synced=False, reason=reason, error=str(e))

    _refresh_ignore(project_root, cfg, fresh)
    logger.info("synced %d files from %d plugin(s)", total, len(fresh.plugins))
    return SyncResult(
        success=True,
        synced=True,
        reason=reason,
        total_files=total,
        plugin_count=len(fresh.plugins),
        removed_plugins=removed,
        conflicts=conflicts,
        installed_plugins=installed,
        warnings=warnings,
    )


def add_plugin(project_root: Path, package_name: str, *, config: ManagerConfig | None = None) -> AddResult:
    """Install (or reinstall) one package's assets and record it in the manifest."""

    project_root = Path(project_root)
    cfg = config if config is not None else load_config(project_root)
    layout = layout_from_config(cfg)

    package_path = locate_package(package_name, project_root, layout=layout)
    if package_path is None:
        return AddResult(
            success=False,
            already_exists=False,
            package_name=package_name,
            error=f"Package {package_name} not found in {layout.modules_dir}",
        )

    manifest = read_manifest(project_root)
    existing = manifest.plugins.get(package_name)
    already_exists = existing is not None
    result: MaterializeResult | None = None

    try:
        if existing is not None:
            remove_tracked_paths(project_root, existing.files)
        if has_assets(package_path):
            result = materialize(package_path, project_root, mode=cfg.sync.link_mode, layout=layout)
        if result is not None and (result.files or result.skipped):
            add_entry(project_root, package_name, result.version, result.files)
        elif existing is not None:
            # Nothing left to track; a stale entry would point at removed paths.
            remove_entry(project_root, package_name)
    except (ManifestWriteError, CleanupError, OSError) as e:
        logger.error("add %s failed: %s", package_name, e)
        return AddResult(
            success=False,
            already_exists=already_exists,
            package_name=package_name,
            error=str(e),
        )

    _refresh_ignore(project_root, cfg, read_manifest(project_root))
    if result is None:
        logger.info("%s has no Claude assets", package_name)
        return AddResult(success=True, already_exists=already_exists, package_name=package_name)

    logger.info("%s %s@%s (%d files)", "updated" if already_exists else "added", package_name, result.version, len(result.files))
    return AddResult(
        success=True,
        already_exists=already_exists,
        package_name=package_name,
        version=result.version,
        files=result.files,
        warnings=_skipped_warnings(package_name, result),
    )


def remove_plugin(project_root: Path, package_name: str, *, config: ManagerConfig | None = None) -> RemoveResult:
    project_root = Path(project_root)
    manifest = read_manifest(project_root)
    entry = manifest.plugins.get(package_name)
    if entry is None:
        return RemoveResult(success=False, package_name=package_name, error=f"Plugin {package_name} is not installed")

    # A path another plugin also tracks holds that plugin's copy after a conflict.
    shared = {f for name, other in manifest.plugins.items() if name != package_name for f in other.files}
    owned = [f for f in entry.files if f not in shared]
    if len(owned) != len(entry.files):
        logger.info("keeping %d path(s) of %s still tracked by other plugins", len(entry.files) - len(owned), package_name)

    cfg = config if config is not None else load_config(project_root)
    try:
        removed = remove_tracked_paths(project_root, owned)
        remove_entry(project_root, package_name)
    except (ManifestWriteError, CleanupError, OSError) as e:
        logger.error("remove %s failed: %s", package_name, e)
        return RemoveResult(success=False, package_name=package_name, error=str(e))

    _refresh_ignore(project_root, cfg, read_manifest(project_root))
    logger.info("removed %s (%d paths)", package_name, len(removed))
    return RemoveResult(success=True, package_name=package_name, files_removed=removed)


def list_plugins(project_root: Path) -> ListResult:
    return ListResult(plugins=dict(read_manifest(project_root).plugins))
