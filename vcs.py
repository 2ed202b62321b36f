"""
Git operations used by undo, commits and the self-update path.
Every call shells out to the git CLI in the project directory.
"""

import logging
from typing import List, Optional, Tuple

from backend import Backend

logger = logging.getLogger(__name__)


class GitService:
    """Thin wrapper over the git CLI. Methods return success flags instead of raising."""

    def __init__(self, backend: Backend, timeout: int = 60):
        self.backend = backend
        self.timeout = timeout

    def _git(self, *args: str) -> Tuple[str, int]:
        argv = ["git", *args]
        try:
            output, rc = self.backend.run_argv(argv, timeout=self.timeout)
        except OSError as e:
            logger.error(f"git could not be started: {e}")
            return str(e), 127
        if rc != 0:
            logger.warning(f"{' '.join(argv)} exited {rc}: {output.strip()}")
        return output, rc

    def is_repository(self) -> bool:
        output, rc = self._git("rev-parse", "--is-inside-work-tree")
        return rc == 0 and output.strip() == "true"

    def is_clean(self, exclude: Optional[List[str]] = None) -> bool:
        """True if tracked files have no staged or unstaged changes. Untracked files are ignored."""
        pathspecs = ["."] + [f":(exclude){p}" for p in (exclude or [])]
        output, rc = self._git("status", "--porcelain", "--untracked-files=no", "--", *pathspecs)
        return rc == 0 and not output.strip()

    def checkout_file(self, path: str) -> bool:
        """Restore path to its state in HEAD."""
        _, rc = self._git("checkout", "HEAD", "--", path)
        if rc == 0:
            logger.info(f"Checked out {path} from HEAD")
        return rc == 0

    def revert_file(self, path: str) -> bool:
        """Undo the most recent commit's change to path and commit the reversal."""
        output, rc = self._git("log", "-n", "1", "--format=%H", "--", path)
        commit = output.strip()
        if rc != 0 or not commit:
            logger.error(f"No commit found touching {path}")
            return False
        _, rc = self._git("show", f"{commit}^:{path}")
        if rc == 0:
            _, rc = self._git("checkout", f"{commit}^", "--", path)
        else:
            # file was introduced by that commit
            _, rc = self._git("rm", "-q", "--", path)
        if rc != 0:
            return False
        return self.commit(f"Revert {path} to state before {commit[:12]}", [path]) is not None

    def revert_commit(self, commit_hash: str) -> bool:
        _, rc = self._git("revert", "--no-edit", commit_hash)
        if rc != 0:
            self._git("revert", "--abort")
            return False
        logger.info(f"Reverted commit {commit_hash}")
        return True

    def apply_patch(self, diff_path: str) -> bool:
        """Apply a patch file to the working tree with git apply."""
        _, rc = self._git("apply", "--whitespace=nowarn", diff_path)
        return rc == 0

    def commit(self, message: str, paths: Optional[List[str]] = None) -> Optional[str]:
        """Stage paths (or everything) and commit. Returns the new commit hash."""
        if paths:
            _, rc = self._git("add", "-A", "--", *paths)
        else:
            _, rc = self._git("add", "-A")
        if rc != 0:
            return None
        _, rc = self._git("commit", "-q", "-m", message)
        if rc != 0:
            return None
        output, rc = self._git("rev-parse", "HEAD")
        return output.strip() if rc == 0 else None
