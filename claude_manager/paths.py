from __future__ import annotations

import os
from pathlib import Path

CLAUDE_DIR = ".claude"
MANIFEST_FILE = ".plugins-manifest.json"
CONFIG_FILE = "claude-plugins.toml"

# Files that mark a directory as a project root.
_ROOT_MARKERS = ("package.json", "composer.json", CONFIG_FILE)
# Dependency stores; a marker found inside one of these belongs to a dependency.
_DEPENDENCY_DIRS = {"node_modules", "vendor"}


def claude_dir(project_root: Path) -> Path:
    return Path(project_root) / CLAUDE_DIR


def manifest_path(project_root: Path) -> Path:
    return claude_dir(project_root) / MANIFEST_FILE


def config_path(project_root: Path) -> Path:
    return Path(project_root) / CONFIG_FILE


def _inside_dependency_dir(p: Path) -> bool:
    return any(part in _DEPENDENCY_DIRS for part in p.parts)


def find_project_root(start: Path) -> Path | None:
    """Find the nearest parent that looks like a project root.

    Directories inside node_modules/ or vendor/ are skipped so that running
    from a dependency's install script still resolves the consuming project.
    """

    cur = start.resolve()
    for p in (cur, *cur.parents):
        if _inside_dependency_dir(p):
            continue
        if any((p / marker).exists() for marker in _ROOT_MARKERS):
            return p
    return None


def work_root(explicit: Path | None = None) -> Path:
    """Select the project root for a CLI invocation.

    Precedence:
      1) An explicit path (the CLI --root flag)
      2) CLAUDE_PLUGINS_ROOT
      3) Auto-detect by walking up from cwd
      4) Fallback to cwd
    """

    if explicit is not None:
        return Path(explicit).expanduser().resolve()
    env_root = os.environ.get("CLAUDE_PLUGINS_ROOT")
    if env_root:
        return Path(env_root).expanduser().resolve()
    detected = find_project_root(Path.cwd())
    return (detected or Path.cwd()).resolve()
