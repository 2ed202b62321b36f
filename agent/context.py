"""
Session context: the working set of files the agent may touch, the last applied
diff, and the user's last answer to the validation prompt.
"""

import logging
import os
from typing import List, Optional, Tuple

from backend import Backend
from tools.gitignore import _ALWAYS_SKIP_DIRS, is_path_ignored

logger = logging.getLogger(__name__)


class SessionContext:
    """Mutable per-session state shared by the diff engine, tools and UI."""

    def __init__(self, backend: Backend):
        self.backend = backend
        self._working_set: List[str] = []
        # Full text of the last diff whose every file applied. None when nothing to undo.
        self.last_applied_diff: Optional[str] = None
        # Soft default shown in the validation prompt; never applied automatically.
        self.last_validation_choice: Optional[bool] = None

    @property
    def working_directory(self) -> str:
        return self.backend.working_directory

    @property
    def working_set(self) -> List[str]:
        return list(self._working_set)

    def in_working_set(self, path: str) -> bool:
        return self.backend.relative_path(path) in self._working_set

    def add_to_working_set(self, path: str) -> None:
        rel = self.backend.relative_path(path)
        if rel not in self._working_set:
            self._working_set.append(rel)

    def remove_from_working_set(self, path: str) -> bool:
        rel = self.backend.relative_path(path)
        if rel in self._working_set:
            self._working_set.remove(rel)
            return True
        return False

    def add_files(self, paths: List[str]) -> Tuple[List[str], List[str]]:
        """Add existing, non-ignored project files. Directories are expanded.

        Returns (added, skipped) with skip reasons in the second list.
        """
        added: List[str] = []
        skipped: List[str] = []
        for raw in paths:
            try:
                full = self.backend.resolve_path(raw)
                self.backend._ensure_under_working(full)
            except ValueError:
                skipped.append(f"{raw} (outside project)")
                continue
            if os.path.isdir(full):
                candidates = self._walk(full)
            elif os.path.isfile(full):
                candidates = [self.backend.relative_path(full)]
            else:
                skipped.append(f"{raw} (not found)")
                continue
            for rel in candidates:
                if is_path_ignored(self.working_directory, rel):
                    skipped.append(f"{rel} (ignored)")
                elif rel in self._working_set:
                    skipped.append(f"{rel} (already in context)")
                else:
                    self._working_set.append(rel)
                    added.append(rel)
        if added:
            logger.info(f"Added to working set: {added}")
        return added, skipped

    def drop_files(self, paths: List[str]) -> List[str]:
        dropped = [self.backend.relative_path(p) for p in paths if self.remove_from_working_set(p)]
        if dropped:
            logger.info(f"Dropped from working set: {dropped}")
        return dropped

    def restore_working_set(self, paths: List[str]) -> List[str]:
        """Replace the working set with the paths that still exist. Returns the missing ones."""
        self._working_set = []
        missing = []
        for path in paths:
            if self.backend.file_exists(path):
                self.add_to_working_set(path)
            else:
                missing.append(path)
        return missing

    def clear(self) -> None:
        self._working_set = []
        self.last_applied_diff = None

    def _walk(self, directory: str) -> List[str]:
        found = []
        for root, dirs, files in os.walk(directory):
            dirs[:] = sorted(d for d in dirs if d not in _ALWAYS_SKIP_DIRS)
            for name in sorted(files):
                found.append(self.backend.relative_path(os.path.join(root, name)))
        return found
