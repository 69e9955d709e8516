from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path

from .config import load_config
from .config_edit import set_link_mode
from .errors import ConfigError
from .hooks import has_prepare_hook, inject_prepare_hook, remove_prepare_hook
from .locator import layout_from_config
from .manifest import read_manifest
from .models import LINK_MODES
from .paths import config_path, work_root
from .sync import SyncResult, add_plugin, detect_drift, list_plugins, remove_plugin, sync_plugins

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    level = logging.WARNING
    if verbose:
        level = logging.DEBUG
    else:
        env_level = os.environ.get("CLAUDE_PLUGINS_LOG_LEVEL", "").strip().upper()
        named = logging.getLevelName(env_level) if env_level else None
        if isinstance(named, int):
            level = named
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="claude-plugins",
        description="Plugin manager for Claude skills, commands, agents and hooks",
    )
    p.add_argument("--root", type=Path, default=None, help="Explicit project root")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    sub = p.add_subparsers(dest="cmd", required=True)

    ins = sub.add_parser("install", help="Sync all plugins from the manifest into .claude/")
    ins.add_argument("-f", "--force", action="store_true", help="Sync even if nothing changed")

    add = sub.add_parser("add", help="Add and install a plugin package")
    add.add_argument("package", nargs="?", default=None, help="Package name (defaults to $npm_package_name)")

    sub.add_parser("list", help="List installed plugins and their assets")

    rem = sub.add_parser("remove", help="Remove a plugin and its assets")
    rem.add_argument("package", help="Package name to remove")

    sub.add_parser("status", help="Report whether installed plugins are up to date")

    mode = sub.add_parser("mode", help="Show or switch how assets are placed in .claude/")
    mode.add_argument("mode", nargs="?", choices=LINK_MODES, default=None)

    hook = sub.add_parser("hook", help="Manage the package.json prepare hook")
    hook.add_argument("action", choices=("inject", "remove", "status"))

    sub.add_parser("setup", help="Install-time setup (injects the prepare hook)")
    return p


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        return _run(args)
    except ConfigError as e:
        print(f"error: {e}")
        return 2
    except Exception as e:  # pragma: no cover
        logger.debug("unhandled error", exc_info=True)
        print(f"error: {e}")
        return 1


def _print_sync_result(result: SyncResult) -> int:
    if not result.success:
        print(f"error: {result.error}")
        return 1

    if not result.synced:
        print(result.reason or "Nothing to sync.")
        return 0

    print(f"Syncing Claude plugins ({result.reason})...")
    for plugin in result.installed_plugins:
        print(f"  Installed {plugin.name}@{plugin.version} ({plugin.file_count} files)")

    if result.removed_plugins:
        print(f"\nRemoved {len(result.removed_plugins)} uninstalled plugin(s) from manifest:")
        for name in result.removed_plugins:
            print(f"  - {name}")

    if result.conflicts:
        print(f"\nWarning: {len(result.conflicts)} file conflict(s) detected (later plugin overwrote earlier):")
        for conflict in result.conflicts:
            print(f"  {conflict}")

    for warning in result.warnings:
        print(f"Warning: {warning}")

    print(f"\nDone. {result.total_files} files from {result.plugin_count} plugin(s).")
    return 0


def _setup_root(explicit: Path | None) -> Path:
    # npm sets INIT_CWD to the directory `npm install` was run from.
    if explicit is None:
        init_cwd = os.environ.get("INIT_CWD")
        if init_cwd and (Path(init_cwd) / "package.json").exists():
            return Path(init_cwd).resolve()
    return work_root(explicit)


def _run(args: argparse.Namespace) -> int:
    if args.cmd == "setup":
        if os.environ.get("CI") or os.environ.get("npm_config_global"):
            logger.info("skipping setup (CI or global install)")
            return 0
        root = _setup_root(args.root)
        if inject_prepare_hook(root):
            print("[claude-manager] Added prepare hook to package.json")
            print("[claude-manager] Plugins will sync on npm install AND npm update")
        return 0

    root = work_root(args.root)
    logger.debug("project root: %s", root)

    if args.cmd == "install":
        return _print_sync_result(sync_plugins(root, force=args.force))

    if args.cmd == "add":
        package_name = args.package or os.environ.get("npm_package_name")
        if not package_name:
            print("error: could not determine package name")
            print("Provide it as an argument: claude-plugins add <package>")
            return 1

        if inject_prepare_hook(root):
            print("Added prepare hook to package.json")

        result = add_plugin(root, package_name)
        if not result.success:
            print(f"error: {result.error}")
            return 1
        if not result.files and not result.warnings:
            print(f"Package {package_name} has no Claude assets to install.")
            return 0

        verb = "Updated" if result.already_exists else "Installed"
        print(f"{verb} {package_name}@{result.version}:")
        for rel in result.files:
            print(f"  .claude/{rel}")
        for warning in result.warnings:
            print(f"Warning: {warning}")
        return 0

    if args.cmd == "list":
        plugins = list_plugins(root).plugins
        if not plugins:
            print("No plugins installed.")
            return 0
        print("Installed Claude plugins:\n")
        for name, entry in plugins.items():
            print(f"{name}@{entry.version}")
            for rel in entry.files:
                print(f"  .claude/{rel}")
            print()
        return 0

    if args.cmd == "remove":
        result = remove_plugin(root, args.package)
        if not result.success:
            print(f"error: {result.error}")
            return 1
        for rel in result.files_removed:
            print(f"Removed .claude/{rel}")
        print(f"Removed {args.package}")
        return 0

    if args.cmd == "status":
        cfg = load_config(root)
        manifest = read_manifest(root)
        print(f"root: {root}")
        print(f"mode: {cfg.sync.link_mode}")
        print(f"prepare hook: {'yes' if has_prepare_hook(root) else 'no'}")
        if manifest.is_empty():
            print("No plugins installed.")
            return 0
        drift = detect_drift(root, manifest, layout=layout_from_config(cfg))
        print(f"plugins: {len(manifest.plugins)}")
        print(f"Out of date: {drift}" if drift else "All plugins up to date")
        return 0

    if args.cmd == "mode":
        cfg = load_config(root)
        current = cfg.sync.link_mode
        if args.mode is None:
            print(f"Current mode: {current}")
            print()
            print(f"Use `claude-plugins mode <{'|'.join(LINK_MODES)}>` to change.")
            return 0
        if args.mode == current:
            print(f"Already in {current} mode.")
            return 0
        set_link_mode(config_path(root), args.mode)
        print(f"Switched from {current} to {args.mode} mode.")
        return _print_sync_result(sync_plugins(root, force=True))

    if args.cmd == "hook":
        if args.action == "inject":
            changed = inject_prepare_hook(root)
            print("Added prepare hook to package.json" if changed else "Prepare hook already present (or no package.json)")
        elif args.action == "remove":
            changed = remove_prepare_hook(root)
            print("Removed prepare hook from package.json" if changed else "No prepare hook to remove")
        else:
            print("installed" if has_prepare_hook(root) else "not installed")
        return 0

    raise AssertionError(f"unhandled command: {args.cmd}")  # pragma: no cover
