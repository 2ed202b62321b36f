"""
Self-update proposals: staging, confirmation, apply/build/commit, and handing
over to a restart with the sentinel in place.
"""

import asyncio
import logging
import os
import tempfile
import threading
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from agent.events import AgentEvent

from .sentinel import SentinelError, SentinelRecord, SentinelStore, now_millis

logger = logging.getLogger(__name__)

CONFIRM_TITLE = "Confirm Self-Update"


@dataclass(frozen=True)
class StagedUpdate:
    file_path: str
    diff: str
    commit_message: str


class SelfUpdateOrchestrator:
    """Holds at most one staged update and carries it through to a restart."""

    def __init__(
        self,
        surface,
        git,
        build,
        sentinels: SentinelStore,
        restart: Callable[[], object],
        state_dir: Optional[str] = None,
    ):
        self.surface = surface
        self.git = git
        self.build = build
        self.sentinels = sentinels
        self.restart = restart
        self.state_dir = state_dir
        self._lock = threading.Lock()
        self._staged: Optional[StagedUpdate] = None
        self._in_progress = False

    @property
    def pending_update(self) -> Optional[StagedUpdate]:
        with self._lock:
            return self._staged

    @property
    def in_progress(self) -> bool:
        with self._lock:
            return self._in_progress

    def stage_update(self, update: StagedUpdate) -> bool:
        with self._lock:
            if self._in_progress:
                logger.warning("Refusing to stage a self-update while another is in progress")
                return False
            if self._staged is not None:
                logger.info(f"Staged update for {self._staged.file_path} replaced by {update.file_path}")
            self._staged = update
        logger.info(f"Self-update staged for {update.file_path}")
        return True

    def clear_pending_update(self) -> None:
        with self._lock:
            self._staged = None

    async def check_and_trigger_confirmation(
        self, wait: Optional[Callable[[str, str, "asyncio.Future[bool]"], Awaitable[bool]]] = None,
    ) -> bool:
        """Ask the user about a staged update. Returns True if a restart was requested.

        ``wait(title, text, future)`` awaits the answer on the caller's behalf, so the
        caller can hold its turn in a waiting state; by default the future is awaited
        directly.
        """
        with self._lock:
            if self._in_progress or self._staged is None:
                return False
            update = self._staged
            self._in_progress = True

        text = (
            f"A self-update is proposed for file: {update.file_path}\n"
            f"Commit message: {update.commit_message}\n\n"
            f"Diff:\n---\n{update.diff}\n---\n\nDo you want to apply this update?"
        )
        try:
            question = self.surface.confirm(CONFIRM_TITLE, text)
            approved = await (wait(CONFIRM_TITLE, text, question) if wait else question)
            if not approved:
                self._notify(f"User rejected self-update for: {update.file_path}")
                return False
            return await asyncio.to_thread(self._apply, update)
        finally:
            with self._lock:
                self._staged = None
                self._in_progress = False

    def _apply(self, update: StagedUpdate) -> bool:
        exclude = [self.state_dir] if self.state_dir else None
        if not self.git.is_clean(exclude=exclude):
            self._notify("Working directory is not clean. Commit or stash your changes before a self-update. Aborted.")
            return False

        if not self._git_apply(update.diff):
            self._notify(f"Failed to apply diff for {update.file_path}. Update aborted.")
            return False
        self._notify(f"Diff applied for {update.file_path}.")

        compiled = self.build.compile()
        if not compiled.success:
            head = "\n".join(compiled.output.splitlines()[:5])
            if self.git.checkout_file(update.file_path):
                self._notify(f"Compilation failed, changes to {update.file_path} reverted.\n{head}")
            else:
                self._notify(f"CRITICAL: compilation failed and {update.file_path} could not be reverted. "
                             f"Manual intervention required.\n{head}")
            return False

        packaged = self.build.package()
        if not packaged.success:
            self._notify("WARNING: packaging failed; continuing with restart.")

        commit_hash = self.git.commit(update.commit_message, [update.file_path])
        if not commit_hash:
            self._notify(f"WARNING: could not commit {update.file_path}. Commit it by hand.")

        try:
            self.sentinels.write(SentinelRecord(
                file_path=update.file_path,
                commit_message=update.commit_message,
                timestamp=now_millis(),
                attempt=1,
                commit_hash=commit_hash,
            ))
        except SentinelError as e:
            # without a sentinel nothing would validate the new code after restart
            logger.error(f"Self-update applied but sentinel write failed: {e}")
            self._notify(f"Update applied but could not be scheduled for validation: {e}. Not restarting.")
            return False

        self._notify("Self-update applied. Restarting...")
        self.restart()
        return True

    def _git_apply(self, diff: str) -> bool:
        fd, patch_path = tempfile.mkstemp(suffix=".patch", prefix="self-update-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(diff if diff.endswith("\n") else diff + "\n")
            return self.git.apply_patch(patch_path)
        finally:
            os.remove(patch_path)

    def _notify(self, message: str) -> None:
        logger.info(message)
        self.surface.notify(AgentEvent("info", f"[Self-update] {message}"))
