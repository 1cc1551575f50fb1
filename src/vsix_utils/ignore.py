# SPDX-License-Identifier: MIT
"""Layered ignore-file handling.

Two ignore files are consulted, in order: the general-purpose ``.gitignore``
and the packaging-specific override file (``.vscodeignore`` by default).
Their patterns are compiled into a single gitignore-style matcher, so a
negation in the override file can reinstate a path excluded by ``.gitignore``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

import pathspec

logger = logging.getLogger(__name__)

GITIGNORE_FILE = ".gitignore"
DEFAULT_IGNORE_FILE = ".vscodeignore"


def _read_patterns(path: Path) -> list[str]:
    """Read the pattern lines of an ignore file, or nothing if it is absent."""
    if not path.is_file():
        return []
    content = path.read_text(encoding="utf-8")
    return content.splitlines()


@dataclass
class IgnoreRules:
    """Compiled ignore patterns for one collection run.

    Attributes:
        patterns: Pattern lines in the order they were compiled
        sources: Ignore files that contributed patterns
    """

    patterns: list[str] = field(default_factory=list)
    sources: list[Path] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._spec = pathspec.GitIgnoreSpec.from_lines(self.patterns)

    @classmethod
    def from_lines(cls, lines: Iterable[str]) -> "IgnoreRules":
        """Build rules directly from pattern lines."""
        return cls(patterns=list(lines))

    def is_ignored(self, relative_path: str) -> bool:
        """Check whether a path relative to the project root is excluded.

        Args:
            relative_path: POSIX-style path relative to the project root

        Returns:
            True if the last matching pattern excludes the path
        """
        return self._spec.match_file(relative_path)


def load_ignore_rules(
    root: str | Path,
    ignore_file: Optional[str] = DEFAULT_IGNORE_FILE,
) -> IgnoreRules:
    """Load and compile the ignore rules of a project.

    Args:
        root: Project root directory
        ignore_file: Name (or root-relative path) of the override ignore file

    Returns:
        IgnoreRules combining .gitignore and the override file
    """
    root_path = Path(root)
    candidates = [root_path / GITIGNORE_FILE]
    if ignore_file:
        candidates.append(root_path / ignore_file)

    patterns: list[str] = []
    sources: list[Path] = []
    for candidate in candidates:
        lines = _read_patterns(candidate)
        if lines:
            logger.debug("Loaded %d ignore pattern line(s) from %s", len(lines), candidate)
            patterns.extend(lines)
            sources.append(candidate)

    return IgnoreRules(patterns=patterns, sources=sources)
