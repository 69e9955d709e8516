"""Install Claude assets shipped inside dependency packages.

Packages may ship `skills/`, `commands/`, `agents/` and `hooks/` directories.
claude-manager materializes them into the consuming project's `.claude/`
directory and records what it placed in `.claude/.plugins-manifest.json`, so
later installs can detect drift and reconcile:

- `add_plugin` installs one package and records it
- `sync_plugins` re-materializes every recorded package when anything changed
- `remove_plugin` deletes one package's assets and its record
"""

from __future__ import annotations

from .errors import (
    ClaudeManagerError,
    CleanupError,
    ConfigError,
    ConfigParseError,
    ConfigValidationError,
    ManifestWriteError,
)
from .hooks import (
    HOOK_COMMAND,
    has_postinstall_hook,
    has_prepare_hook,
    inject_postinstall_hook,
    inject_prepare_hook,
    remove_postinstall_hook,
    remove_prepare_hook,
)
from .locator import (
    COMPOSER_LAYOUT,
    NPM_LAYOUT,
    PackageLayout,
    has_assets,
    list_discoverable_files,
    locate_package,
    read_declared_version,
)
from .manifest import Manifest, PluginEntry, add_entry, cleanup_tracked_files, read_manifest, remove_entry, write_manifest
from .materialize import MaterializeResult, materialize
from .sync import (
    AddResult,
    InstalledPlugin,
    ListResult,
    RemoveResult,
    SyncResult,
    add_plugin,
    detect_drift,
    list_plugins,
    remove_plugin,
    sync_plugins,
)

__all__ = [
    "AddResult",
    "COMPOSER_LAYOUT",
    "ClaudeManagerError",
    "CleanupError",
    "ConfigError",
    "ConfigParseError",
    "ConfigValidationError",
    "HOOK_COMMAND",
    "InstalledPlugin",
    "ListResult",
    "Manifest",
    "ManifestWriteError",
    "MaterializeResult",
    "NPM_LAYOUT",
    "PackageLayout",
    "PluginEntry",
    "RemoveResult",
    "SyncResult",
    "add_entry",
    "add_plugin",
    "cleanup_tracked_files",
    "detect_drift",
    "has_assets",
    "has_postinstall_hook",
    "has_prepare_hook",
    "inject_postinstall_hook",
    "inject_prepare_hook",
    "list_discoverable_files",
    "list_plugins",
    "locate_package",
    "materialize",
    "read_declared_version",
    "read_manifest",
    "remove_entry",
    "remove_plugin",
    "remove_prepare_hook",
    "remove_postinstall_hook",
    "sync_plugins",
    "write_manifest",
]
