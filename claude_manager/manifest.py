"""Plugins manifest I/O.

The manifest (`.claude/.plugins-manifest.json`) records, per installed plugin
package, the version and the exact `.claude/`-relative paths last materialized
for it:

    {"plugins": {"@acme/tools": {"version": "1.2.0", "files": ["skills/lint"]}}}

Reading is forgiving: a missing, unreadable or malformed manifest is treated
as empty. Writing is strict: failures raise ManifestWriteError.

Formatting rules:
- Plugins keep their stored order (it is the sync processing order)
- Each entry's `files` keep their order
- Unknown top-level keys survive a read/write round trip
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any, Iterable, Mapping

from .errors import CleanupError, ManifestWriteError
from .materialize import rm_any
from .paths import claude_dir, manifest_path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PluginEntry:
    """Installed state of one plugin package.

    `extra` holds keys written by other tools so they survive a rewrite.
    """

    version: str
    files: tuple[str, ...] = ()
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"version": self.version, "files": list(self.files), **self.extra}

    @classmethod
    def from_dict(cls, data: Any) -> "PluginEntry | None":
        """Parse one entry; returns None when the shape does not match."""
        if not isinstance(data, Mapping):
            return None
        version = data.get("version")
        files = data.get("files", [])
        if not isinstance(version, str):
            return None
        if not isinstance(files, list) or not all(isinstance(f, str) for f in files):
            return None
        extra = {k: v for k, v in data.items() if k not in {"version", "files"}}
        return cls(version=version, files=tuple(files), extra=extra)


@dataclass
class Manifest:
    plugins: dict[str, PluginEntry] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)
    # Position of "plugins" among the top-level keys; None writes it last.
    plugins_index: int | None = None

    def is_empty(self) -> bool:
        return not self.plugins

    def to_dict(self) -> dict[str, Any]:
        items = list(self.extra.items())
        at = len(items) if self.plugins_index is None else min(self.plugins_index, len(items))
        items.insert(at, ("plugins", {name: entry.to_dict() for name, entry in self.plugins.items()}))
        return dict(items)

    @classmethod
    def from_dict(cls, data: Any) -> "Manifest":
        if not isinstance(data, Mapping):
            return cls()
        plugins_raw = data.get("plugins")
        if not isinstance(plugins_raw, Mapping):
            return cls()
        plugins: dict[str, PluginEntry] = {}
        for name, raw in plugins_raw.items():
            entry = PluginEntry.from_dict(raw)
            if entry is None:
                logger.warning("Ignoring malformed manifest entry for %r", name)
                continue
            plugins[name] = entry
        extra = {k: v for k, v in data.items() if k != "plugins"}
        return cls(plugins=plugins, extra=extra, plugins_index=list(data).index("plugins"))


def _canonical_json(obj: Any) -> str:
    # Key order is significant for plugins, so no sort_keys here.
    return json.dumps(obj, indent=2, ensure_ascii=False) + "\n"


def read_manifest(project_root: Path) -> Manifest:
    p = manifest_path(project_root)
    if not p.exists():
        return Manifest()
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning("Treating unreadable manifest %s as empty: %s", p, e)
        return Manifest()
    return Manifest.from_dict(data)


def write_manifest(project_root: Path, manifest: Manifest) -> None:
    p = manifest_path(project_root)
    try:
        p.parent.mkdir(parents=True, exist_ok=True)
        tmp = p.with_name(p.name + ".tmp")
        tmp.write_text(_canonical_json(manifest.to_dict()), encoding="utf-8")
        tmp.replace(p)
    except OSError as e:
        raise ManifestWriteError(path=p, message=str(e)) from e


def _delete_manifest(project_root: Path) -> None:
    p = manifest_path(project_root)
    try:
        p.unlink(missing_ok=True)
    except OSError as e:
        raise ManifestWriteError(path=p, message=str(e)) from e


def add_entry(project_root: Path, package_name: str, version: str, files: Iterable[str]) -> None:
    """Insert or replace the entry for `package_name`, keeping its extra keys."""
    manifest = read_manifest(project_root)
    previous = manifest.plugins.get(package_name)
    extra = dict(previous.extra) if previous is not None else {}
    manifest.plugins[package_name] = PluginEntry(version=version, files=tuple(files), extra=extra)
    write_manifest(project_root, manifest)


def remove_entry(project_root: Path, package_name: str) -> bool:
    """Delete the entry for `package_name`.

    Returns whether an entry existed. The manifest file is removed once it
    tracks nothing.
    """
    manifest = read_manifest(project_root)
    existed = manifest.plugins.pop(package_name, None) is not None
    if not existed:
        return False
    if manifest.is_empty() and not manifest.extra:
        _delete_manifest(project_root)
    else:
        write_manifest(project_root, manifest)
    return True


def resolve_tracked_path(project_root: Path, rel: str) -> Path | None:
    """Map a manifest path to its location under .claude/.

    Returns None for paths that would escape .claude/ (absolute or `..`).
    """
    pp = PurePosixPath(rel)
    if not rel or pp.is_absolute() or ".." in pp.parts or "\\" in rel:
        return None
    return claude_dir(project_root).joinpath(*pp.parts)


def remove_tracked_paths(project_root: Path, files: Iterable[str]) -> list[str]:
    """Remove the given .claude/-relative paths; returns those actually removed."""
    removed: list[str] = []
    for rel in files:
        target = resolve_tracked_path(project_root, rel)
        if target is None:
            logger.warning("Refusing to remove tracked path outside .claude/: %r", rel)
            continue
        if not (target.exists() or target.is_symlink()):
            continue
        try:
            rm_any(target)
        except OSError as e:
            raise CleanupError(path=target, message=str(e)) from e
        logger.debug("removed %s", target)
        removed.append(rel)
    return removed


def cleanup_tracked_files(project_root: Path) -> list[str]:
    """Remove every path tracked by the manifest. The manifest itself is untouched."""
    manifest = read_manifest(project_root)
    removed: list[str] = []
    for entry in manifest.plugins.values():
        removed.extend(remove_tracked_paths(project_root, entry.files))
    return removed
