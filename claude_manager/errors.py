from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


class ClaudeManagerError(Exception):
    """Base exception for claude-manager errors."""


class ConfigError(ClaudeManagerError):
    """Base exception for claude-plugins.toml parsing/validation errors."""


@dataclass(frozen=True)
class ConfigParseError(ConfigError):
    """Raised when a TOML file cannot be parsed."""

    path: Path
    message: str
    lineno: int | None = None
    colno: int | None = None

    def __str__(self) -> str:
        loc = ""
        if self.lineno is not None and self.colno is not None:
            loc = f" (line {self.lineno}, column {self.colno})"
        return f"Invalid TOML in {self.path}: {self.message}{loc}"


@dataclass(frozen=True)
class ConfigValidationError(ConfigError):
    """Raised when a parsed TOML file does not match the expected schema."""

    path: Path
    message: str

    def __str__(self) -> str:
        return f"Invalid config in {self.path}: {self.message}"


class StateError(ClaudeManagerError):
    """Base exception for failures that leave project state inconsistent with disk."""


@dataclass(frozen=True)
class ManifestWriteError(StateError):
    """Raised when the plugins manifest cannot be written or deleted."""

    path: Path
    message: str

    def __str__(self) -> str:
        return f"Unable to write manifest {self.path}: {self.message}"


@dataclass(frozen=True)
class CleanupError(StateError):
    """Raised when a tracked asset cannot be removed from .claude/."""

    path: Path
    message: str

    def __str__(self) -> str:
        return f"Unable to remove {self.path}: {self.message}"
