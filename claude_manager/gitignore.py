from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from .paths import CLAUDE_DIR

logger = logging.getLogger(__name__)

BEGIN_MARKER = "# Claude plugins (managed by claude-manager)"
END_MARKER = "# end Claude plugins"
_PREFIX = f"/{CLAUDE_DIR}/"


def _gitignore_path(project_root: Path) -> Path:
    return Path(project_root) / ".gitignore"


def _section_bounds(lines: list[str]) -> tuple[int, int] | None:
    """Return (begin, end) line indexes of the managed section, end inclusive.

    A section whose end marker was deleted by hand runs to the end of the file.
    """

    try:
        begin = lines.index(BEGIN_MARKER)
    except ValueError:
        return None
    for i in range(begin + 1, len(lines)):
        if lines[i] == END_MARKER:
            return begin, i
    return begin, len(lines) - 1


def _read_lines(p: Path) -> tuple[list[str], str] | None:
    if not p.exists():
        return [], "\n"
    try:
        # Decoded by hand so CRLF survives (read_text translates newlines).
        content = p.read_bytes().decode("utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Could not read %s: %s", p, e)
        return None
    line_ending = "\r\n" if "\r\n" in content else "\n"
    return content.splitlines(), line_ending


def update_ignore_section(project_root: Path, paths: Iterable[str]) -> bool:
    """Rewrite the managed .gitignore section to list exactly `paths`.

    `paths` are .claude/-relative (e.g. "skills/lint"). An empty iterable
    removes the section. Returns whether .gitignore changed.
    """

    p = _gitignore_path(project_root)
    loaded = _read_lines(p)
    if loaded is None:
        return False
    lines, line_ending = loaded
    original = list(lines)

    patterns = sorted({_PREFIX + rel for rel in paths})
    section = [BEGIN_MARKER, *patterns, END_MARKER] if patterns else []

    bounds = _section_bounds(lines)
    if bounds is not None:
        begin, end = bounds
        if not section and begin > 0 and lines[begin - 1] == "":
            # Drop the blank separator that was added along with the section.
            begin -= 1
        lines[begin : end + 1] = section
    elif section:
        if lines and lines[-1] != "":
            lines.append("")
        lines.extend(section)

    if lines == original:
        return False
    if not p.exists() and not lines:
        return False

    try:
        p.write_text(line_ending.join(lines) + line_ending if lines else "", encoding="utf-8", newline="")
    except OSError as e:
        logger.warning("Could not update %s: %s", p, e)
        return False
    logger.info("updated %s (%d managed entries)", p, len(patterns))
    return True


def remove_ignore_section(project_root: Path) -> bool:
    return update_ignore_section(project_root, [])


def read_ignore_section(project_root: Path) -> list[str]:
    """Return the .claude/-relative paths currently listed in the managed section."""

    loaded = _read_lines(_gitignore_path(project_root))
    if loaded is None:
        return []
    lines, _ = loaded
    bounds = _section_bounds(lines)
    if bounds is None:
        return []
    begin, end = bounds
    return [line[len(_PREFIX) :] for line in lines[begin + 1 : end + 1] if line.startswith(_PREFIX)]
