# Copyright 2025 Ben Mensi
# SPDX-License-Identifier: Apache-2.0

"""
Path filtering for raw filesystem events.

Drops events for excluded directories (build output, VCS metadata) and,
when an extension list is configured, for files that are not sources.
"""

from pathlib import Path
from typing import Iterable, Optional, Tuple

# Source and header suffixes watched by default
DEFAULT_EXTENSIONS: Tuple[str, ...] = ("c", "h", "cpp", "hpp", "cc", "hh")

# Directory names never worth rebuilding for
DEFAULT_EXCLUDES: Tuple[str, ...] = (".git", ".hg", ".svn", "build", "__pycache__")


def normalize_extension(ext: str) -> str:
    """Strip a leading dot and lowercase: '.CPP' -> 'cpp'."""
    return ext.strip().lstrip(".").lower()


class PathFilter:
    """Decides whether a changed path should reach the debouncer."""

    def __init__(
        self,
        root: Path,
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
        exclude: Iterable[str] = DEFAULT_EXCLUDES,
        exclude_paths: Iterable[Path] = (),
    ):
        """
        Args:
            root: Watched root; paths are matched relative to it
            extensions: Accepted suffixes; empty accepts every file
            exclude: Directory names excluded at any depth
            exclude_paths: Absolute directories excluded with their contents
        """
        self.root = Path(root).resolve()
        self.extensions = frozenset(normalize_extension(e) for e in extensions if e.strip())
        self.exclude = frozenset(exclude)
        self.exclude_paths = tuple(Path(p).resolve() for p in exclude_paths)

    def _relative_parts(self, path: Path) -> Optional[Tuple[str, ...]]:
        try:
            return path.relative_to(self.root).parts
        except ValueError:
            return None

    def is_excluded(self, path: str) -> bool:
        """True if the path lives under an excluded directory."""
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self.root / candidate

        for excluded in self.exclude_paths:
            if candidate == excluded or excluded in candidate.parents:
                return True

        parts = self._relative_parts(candidate)
        if parts is None:
            parts = candidate.parts
        # Only directory components count, not the file name itself
        return any(part in self.exclude for part in parts[:-1])

    def has_watched_extension(self, path: str) -> bool:
        if not self.extensions:
            return True
        suffix = Path(path).suffix
        return normalize_extension(suffix) in self.extensions if suffix else False

    def accepts(self, path: str) -> bool:
        """True if a change to `path` should trigger a rebuild."""
        if self.is_excluded(path):
            return False
        return self.has_watched_extension(path)
