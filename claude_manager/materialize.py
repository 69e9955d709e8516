from __future__ import annotations

import contextlib
import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from .locator import ASSET_KINDS, NPM_LAYOUT, PackageLayout, is_eligible, list_kind_entries, read_declared_version
from .models import LINK_MODES
from .paths import claude_dir

logger = logging.getLogger(__name__)

_AUTO_ATTEMPTS = ("symlink", "hardlink", "copy")


@dataclass(frozen=True)
class MaterializeResult:
    files: list[str]
    version: str
    skipped: list[str] = field(default_factory=list)


def rm_any(path: Path) -> None:
    if not path.exists() and not path.is_symlink():
        return
    if path.is_symlink() or path.is_file():
        path.unlink(missing_ok=True)
        return
    if path.is_dir():
        shutil.rmtree(path)


def _hardlink_tree(src: Path, dst: Path) -> None:
    dst.mkdir(parents=True, exist_ok=True)
    for p in sorted(src.rglob("*")):
        rel = p.relative_to(src)
        out = dst / rel
        if p.is_symlink():
            out.parent.mkdir(parents=True, exist_ok=True)
            os.symlink(os.readlink(p), out)
            continue
        if p.is_dir():
            out.mkdir(parents=True, exist_ok=True)
            continue
        if p.is_file():
            out.parent.mkdir(parents=True, exist_ok=True)
            os.link(p, out)


def _place_item(*, src: Path, dest: Path, mode: str) -> None:
    """Write one asset item to `dest`, replacing whatever is there.

    The item is built at a sibling temp path first so a failure never leaves
    a half-written target behind.
    """

    tmp = dest.with_name(f".{dest.name}.tmp")
    rm_any(tmp)

    try:
        if mode == "symlink":
            tmp.symlink_to(src.resolve(), target_is_directory=src.is_dir())
        elif mode == "copy":
            if src.is_dir():
                shutil.copytree(src, tmp, symlinks=True)
            else:
                shutil.copy2(src, tmp)
        elif mode == "hardlink":
            if src.is_dir():
                _hardlink_tree(src, tmp)
            else:
                os.link(src, tmp)
        else:
            raise ValueError(f"unsupported mode: {mode}")
        rm_any(dest)
        tmp.replace(dest)
    except OSError:
        # Surface the failure to allow auto fallback.
        with contextlib.suppress(OSError):
            rm_any(tmp)
        raise


def materialize_item(*, src: Path, dest: Path, mode: str = "copy") -> str:
    """Place one skill directory or asset file at `dest`; returns the mode used.

    `auto` walks symlink, hardlink and copy in turn and keeps the first that
    the filesystem accepts. Hardlinked directories keep their inner symlinks.
    """

    if mode not in LINK_MODES:
        raise ValueError(f"unsupported mode: {mode}")

    attempts = [mode] if mode != "auto" else list(_AUTO_ATTEMPTS)
    last: OSError | None = None
    for m in attempts:
        try:
            _place_item(src=src, dest=dest, mode=m)
            return m
        except OSError as e:  # pragma: no cover (depends on fs/policy)
            last = e
            continue
    assert last is not None
    raise last


def materialize(
    package_path: Path,
    project_root: Path,
    *,
    mode: str = "copy",
    layout: PackageLayout = NPM_LAYOUT,
) -> MaterializeResult:
    """Copy (or link) a package's asset items into the project's .claude/ directory.

    Kinds are processed in ASSET_KINDS order and items by name, so `files` is
    deterministic for a given package tree. Items that cannot be written are
    skipped and reported in `skipped` rather than failing the whole package.
    """

    if mode not in LINK_MODES:
        raise ValueError(f"unsupported mode: {mode}")

    package_path = Path(package_path)
    target_root = claude_dir(project_root)
    files: list[str] = []
    skipped: list[str] = []

    for kind in ASSET_KINDS:
        source_dir = package_path / kind
        if not source_dir.is_dir():
            continue

        target_dir = target_root / kind
        items = list_kind_entries(source_dir)
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning("Unable to create %s: %s", target_dir, e)
            skipped.extend(f"{kind}/{item.name}" for item in items if is_eligible(kind, item))
            continue

        for item in items:
            if not is_eligible(kind, item):
                logger.debug("skipping %s: not a valid %s entry", item, kind)
                continue
            rel = f"{kind}/{item.name}"
            try:
                used = materialize_item(src=item, dest=target_dir / item.name, mode=mode)
            except OSError as e:
                logger.warning("Skipping %s from %s: %s", rel, package_path, e)
                skipped.append(rel)
                continue
            logger.debug("materialized %s (%s)", rel, used)
            files.append(rel)

    return MaterializeResult(
        files=files,
        version=read_declared_version(package_path, layout=layout),
        skipped=skipped,
    )
