from __future__ import annotations

from dataclasses import dataclass, field

LINK_MODES = ("copy", "symlink", "hardlink", "auto")


@dataclass(frozen=True)
class PackagesConfig:
    """Config for the [packages] section.

    `layout` selects the package manager whose dependency store is searched
    (npm: node_modules/ + package.json, composer: vendor/ + composer.json).
    `dir` overrides the layout's dependency directory.
    """

    layout: str = "npm"  # npm|composer
    dir: str | None = None


@dataclass(frozen=True)
class SyncConfig:
    link_mode: str = "copy"  # copy|symlink|hardlink|auto
    gitignore: bool | None = None

    @property
    def manage_gitignore(self) -> bool:
        # Symlinked assets point into the dependency store and are not worth committing.
        if self.gitignore is None:
            return self.link_mode == "symlink"
        return self.gitignore


@dataclass(frozen=True)
class ManagerConfig:
    version: int = 1
    packages: PackagesConfig = field(default_factory=PackagesConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
