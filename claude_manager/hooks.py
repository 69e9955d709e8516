"""package.json install-hook management.

Projects get `claude-plugins install` added to their `prepare` script so plugin
assets are re-synced after every `npm install` and `npm update`. All edits are
idempotent and return whether package.json was changed; a missing or invalid
package.json is never an error.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

HOOK_COMMAND = "claude-plugins install"
HOOK_SCRIPT = "prepare"


def _package_json_path(project_root: Path) -> Path:
    return Path(project_root) / "package.json"


def _load_package_json(project_root: Path) -> dict[str, Any] | None:
    p = _package_json_path(project_root)
    if not p.exists():
        return None
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.debug("ignoring unreadable %s: %s", p, e)
        return None
    return data if isinstance(data, dict) else None


def _save_package_json(project_root: Path, pkg: dict[str, Any]) -> bool:
    p = _package_json_path(project_root)
    try:
        p.write_text(json.dumps(pkg, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    except OSError as e:
        logger.warning("Unable to update %s: %s", p, e)
        return False
    return True


def _hook_script(pkg: dict[str, Any]) -> str | None:
    scripts = pkg.get("scripts")
    if not isinstance(scripts, dict):
        return None
    script = scripts.get(HOOK_SCRIPT)
    return script if isinstance(script, str) else None


def inject_prepare_hook(project_root: Path) -> bool:
    pkg = _load_package_json(project_root)
    if pkg is None:
        return False

    scripts = pkg.get("scripts")
    if scripts is None:
        scripts = {}
        pkg["scripts"] = scripts
    elif not isinstance(scripts, dict):
        return False

    existing = _hook_script(pkg)
    if existing and HOOK_COMMAND in existing:
        return False

    scripts[HOOK_SCRIPT] = f"{existing} && {HOOK_COMMAND}" if existing else HOOK_COMMAND
    return _save_package_json(project_root, pkg)


def has_prepare_hook(project_root: Path) -> bool:
    pkg = _load_package_json(project_root)
    if pkg is None:
        return False
    script = _hook_script(pkg)
    return bool(script) and HOOK_COMMAND in script


def remove_prepare_hook(project_root: Path) -> bool:
    pkg = _load_package_json(project_root)
    if pkg is None:
        return False

    script = _hook_script(pkg)
    if not script or HOOK_COMMAND not in script:
        return False

    remaining = (
        script.replace(f" && {HOOK_COMMAND}", "", 1)
        .replace(f"{HOOK_COMMAND} && ", "", 1)
        .replace(HOOK_COMMAND, "", 1)
        .strip()
    )

    scripts: dict[str, Any] = pkg["scripts"]
    if remaining:
        scripts[HOOK_SCRIPT] = remaining
    else:
        del scripts[HOOK_SCRIPT]
    if not scripts:
        del pkg["scripts"]

    return _save_package_json(project_root, pkg)


# Earlier releases hooked `postinstall`; the names stay importable.
inject_postinstall_hook = inject_prepare_hook
has_postinstall_hook = has_prepare_hook
remove_postinstall_hook = remove_prepare_hook
