from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

from claude_manager.materialize import materialize, materialize_item


def _mk_pkg(base: Path, *, version: str = "1.0.0") -> Path:
    base.mkdir(parents=True, exist_ok=True)
    (base / "package.json").write_text(json.dumps({"version": version}), encoding="utf-8")
    (base / "skills" / "lint").mkdir(parents=True)
    (base / "skills" / "lint" / "SKILL.md").write_text("lint skill", encoding="utf-8")
    (base / "skills" / ".gitkeep").write_text("", encoding="utf-8")
    (base / "commands").mkdir()
    (base / "commands" / "hello.md").write_text("hello", encoding="utf-8")
    (base / "commands" / ".gitkeep").write_text("", encoding="utf-8")
    return base


def test_materialize_copy(tmp_path: Path) -> None:
    pkg = _mk_pkg(tmp_path / "node_modules" / "@t" / "p", version="1.2.3")
    project = tmp_path

    r = materialize(pkg, project)
    assert r.files == ["skills/lint", "commands/hello.md"]
    assert r.version == "1.2.3"
    assert r.skipped == []

    claude = project / ".claude"
    assert (claude / "skills" / "lint" / "SKILL.md").read_text(encoding="utf-8") == "lint skill"
    assert (claude / "commands" / "hello.md").read_text(encoding="utf-8") == "hello"
    assert not (claude / "skills" / "lint").is_symlink()
    assert not (claude / "commands" / ".gitkeep").exists()
    # Kinds the package does not ship are not created.
    assert not (claude / "agents").exists()


def test_materialize_replaces_existing_target(tmp_path: Path) -> None:
    pkg = _mk_pkg(tmp_path / "node_modules" / "p")
    stale = tmp_path / ".claude" / "skills" / "lint"
    stale.mkdir(parents=True)
    (stale / "OLD.md").write_text("old", encoding="utf-8")

    materialize(pkg, tmp_path)
    assert not (stale / "OLD.md").exists()
    assert (stale / "SKILL.md").exists()


def test_materialize_symlink(tmp_path: Path) -> None:
    pkg = _mk_pkg(tmp_path / "node_modules" / "p")
    r = materialize(pkg, tmp_path, mode="symlink")
    assert r.files == ["skills/lint", "commands/hello.md"]

    link = tmp_path / ".claude" / "skills" / "lint"
    assert link.is_symlink()
    assert link.resolve() == (pkg / "skills" / "lint").resolve()


def test_materialize_hardlink(tmp_path: Path) -> None:
    pkg = _mk_pkg(tmp_path / "node_modules" / "p")
    materialize(pkg, tmp_path, mode="hardlink")

    src = pkg / "commands" / "hello.md"
    dest = tmp_path / ".claude" / "commands" / "hello.md"
    assert os.stat(src).st_ino == os.stat(dest).st_ino
    assert os.stat(pkg / "skills" / "lint" / "SKILL.md").st_ino == os.stat(
        tmp_path / ".claude" / "skills" / "lint" / "SKILL.md"
    ).st_ino


def test_auto_mode_falls_back_when_symlink_fails(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    src = tmp_path / "src.md"
    src.write_text("x", encoding="utf-8")
    dest = tmp_path / "out" / "src.md"
    dest.parent.mkdir()

    def no_symlinks(self: Path, *args: object, **kwargs: object) -> None:
        raise OSError("symlinks disabled")

    monkeypatch.setattr(Path, "symlink_to", no_symlinks)
    used = materialize_item(src=src, dest=dest, mode="auto")
    assert used in {"hardlink", "copy"}
    assert dest.read_text(encoding="utf-8") == "x"
    assert not dest.is_symlink()


def test_unknown_mode_is_rejected(tmp_path: Path) -> None:
    pkg = _mk_pkg(tmp_path / "node_modules" / "p")
    with pytest.raises(ValueError):
        materialize(pkg, tmp_path, mode="teleport")


def test_failed_item_is_skipped_not_fatal(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    pkg = _mk_pkg(tmp_path / "node_modules" / "p")

    import importlib

    mat = importlib.import_module("claude_manager.materialize")

    real = mat.materialize_item

    def flaky(*, src: Path, dest: Path, mode: str = "copy") -> str:
        if src.name == "hello.md":
            raise PermissionError("unreadable")
        return real(src=src, dest=dest, mode=mode)

    monkeypatch.setattr(mat, "materialize_item", flaky)
    r = materialize(pkg, tmp_path)
    assert r.files == ["skills/lint"]
    assert r.skipped == ["commands/hello.md"]
    assert not (tmp_path / ".claude" / "commands" / "hello.md").exists()


def test_gitkeep_only_package_materializes_nothing(tmp_path: Path) -> None:
    pkg = tmp_path / "node_modules" / "empty"
    (pkg / "skills").mkdir(parents=True)
    (pkg / "skills" / ".gitkeep").write_text("", encoding="utf-8")

    r = materialize(pkg, tmp_path)
    assert r.files == []
    assert r.version == "0.0.0"
    assert list((tmp_path / ".claude" / "skills").iterdir()) == []
