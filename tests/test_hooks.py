from __future__ import annotations

import json
from pathlib import Path

from claude_manager import hooks
from claude_manager.hooks import HOOK_COMMAND, has_prepare_hook, inject_prepare_hook, remove_prepare_hook


def _write_pkg(root: Path, data: object) -> Path:
    p = root / "package.json"
    p.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    return p


def _read_pkg(root: Path) -> dict:
    return json.loads((root / "package.json").read_text(encoding="utf-8"))


def test_inject_into_package_without_scripts(tmp_path: Path) -> None:
    _write_pkg(tmp_path, {"name": "app", "version": "1.0.0"})

    assert inject_prepare_hook(tmp_path) is True
    data = _read_pkg(tmp_path)
    assert data["scripts"] == {"prepare": HOOK_COMMAND}
    assert list(data) == ["name", "version", "scripts"]
    assert has_prepare_hook(tmp_path) is True

    # Idempotent.
    assert inject_prepare_hook(tmp_path) is False


def test_inject_appends_to_existing_prepare(tmp_path: Path) -> None:
    _write_pkg(tmp_path, {"scripts": {"prepare": "husky", "test": "vitest"}})

    assert inject_prepare_hook(tmp_path) is True
    assert _read_pkg(tmp_path)["scripts"] == {"prepare": f"husky && {HOOK_COMMAND}", "test": "vitest"}


def test_rewrite_format_is_two_space_with_trailing_newline(tmp_path: Path) -> None:
    _write_pkg(tmp_path, {"name": "app"})
    inject_prepare_hook(tmp_path)
    text = (tmp_path / "package.json").read_text(encoding="utf-8")
    assert text == '{\n  "name": "app",\n  "scripts": {\n    "prepare": "claude-plugins install"\n  }\n}\n'


def test_missing_or_invalid_package_json_is_ignored(tmp_path: Path) -> None:
    assert inject_prepare_hook(tmp_path) is False
    assert has_prepare_hook(tmp_path) is False
    assert remove_prepare_hook(tmp_path) is False

    (tmp_path / "package.json").write_text("{broken", encoding="utf-8")
    assert inject_prepare_hook(tmp_path) is False
    assert (tmp_path / "package.json").read_text(encoding="utf-8") == "{broken"

    _write_pkg(tmp_path, ["not", "an", "object"])
    assert inject_prepare_hook(tmp_path) is False


def test_remove_only_command_drops_prepare_and_scripts(tmp_path: Path) -> None:
    _write_pkg(tmp_path, {"name": "app", "scripts": {"prepare": HOOK_COMMAND}})

    assert remove_prepare_hook(tmp_path) is True
    assert _read_pkg(tmp_path) == {"name": "app"}
    assert remove_prepare_hook(tmp_path) is False


def test_remove_from_combined_scripts(tmp_path: Path) -> None:
    cases = {
        f"husky && {HOOK_COMMAND}": "husky",
        f"{HOOK_COMMAND} && husky": "husky",
        f"a && {HOOK_COMMAND} && b": "a && b",
    }
    for before, after in cases.items():
        _write_pkg(tmp_path, {"scripts": {"prepare": before, "build": "tsc"}})
        assert remove_prepare_hook(tmp_path) is True
        assert _read_pkg(tmp_path)["scripts"] == {"prepare": after, "build": "tsc"}


def test_legacy_postinstall_names_are_aliases() -> None:
    assert hooks.inject_postinstall_hook is hooks.inject_prepare_hook
    assert hooks.has_postinstall_hook is hooks.has_prepare_hook
    assert hooks.remove_postinstall_hook is hooks.remove_prepare_hook
