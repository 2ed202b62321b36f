"""
Startup validation of a pending self-update, with bounded rollback.

Runs once before the interactive loop. Every path either deletes the sentinel and
lets startup continue, or rewrites it with the next attempt number and restarts.
"""

import logging
import shlex
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List

from .sentinel import SentinelError, SentinelRecord, SentinelStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_ROLLBACK_ATTEMPTS = 2


class StartupOutcome(Enum):
    PROCEED = "proceed"
    RESTART = "restart"
    # the sentinel could not be removed; continuing would re-run this check forever
    ABORT = "abort"


@dataclass
class StartupReport:
    outcome: StartupOutcome
    messages: List[str] = field(default_factory=list)

    @property
    def should_continue(self) -> bool:
        return self.outcome is StartupOutcome.PROCEED


class RollbackProtocol:
    """Validates a just-applied self-update and rolls it back on failure."""

    def __init__(
        self,
        sentinels: SentinelStore,
        git,
        build,
        restart: Callable[[], object],
        validation_command: str = "",
        max_attempts: int = DEFAULT_MAX_ROLLBACK_ATTEMPTS,
    ):
        self.sentinels = sentinels
        self.git = git
        self.build = build
        self.restart = restart
        self.validation_command = validation_command or ""
        self.max_attempts = max_attempts

    def run(self) -> StartupReport:
        if not self.sentinels.exists():
            return StartupReport(StartupOutcome.PROCEED)

        messages: List[str] = []
        try:
            record = self.sentinels.read()
        except SentinelError as e:
            logger.error(f"Unreadable self-update sentinel, discarding it: {e}")
            return self._proceed(messages, f"Pending self-update record was unreadable and has been discarded: {e}")

        logger.info(f"Pending self-update found: {record.file_path} (attempt {record.attempt})")
        try:
            return self._validate(record, messages)
        except Exception as e:
            logger.exception("Self-update validation failed unexpectedly")
            return self._proceed(messages, f"Self-update check for {record.file_path} failed unexpectedly: {e}")

    def _validate(self, record: SentinelRecord, messages: List[str]) -> StartupReport:
        if not self.validation_command.strip():
            logger.info("No validation command configured; accepting self-update")
            return self._proceed(messages, f"Self-update to {record.file_path} accepted (no validation command configured).")

        result = self.build.run_arbitrary_command(shlex.split(self.validation_command))
        if result.success:
            logger.info(f"Self-update to {record.file_path} validated")
            return self._proceed(messages, f"Self-update to {record.file_path} validated successfully.")

        logger.error(f"Validation failed after self-update (exit {result.exit_code}):\n{result.output}")
        if record.attempt >= self.max_attempts:
            logger.critical(
                f"Self-update to {record.file_path} still fails after {record.attempt} attempt(s). "
                f"Manual intervention required."
            )
            return self._proceed(
                messages,
                f"MANUAL INTERVENTION REQUIRED: self-update to {record.file_path} "
                f"('{record.commit_message}') fails validation after {record.attempt} attempt(s).",
            )

        return self._roll_back(record, messages)

    def _roll_back(self, record: SentinelRecord, messages: List[str]) -> StartupReport:
        if record.commit_hash:
            reverted = self.git.revert_commit(record.commit_hash)
        else:
            reverted = self.git.revert_file(record.file_path)
        if not reverted:
            logger.critical(f"Rollback of {record.file_path} failed")
            return self._proceed(messages, f"Rollback of self-update to {record.file_path} failed. Manual intervention required.")

        compiled = self.build.compile()
        if not compiled.success:
            logger.critical(f"Reverted {record.file_path} but the project no longer builds:\n{compiled.output}")
            return self._proceed(
                messages,
                f"Reverted {record.file_path} but the project now fails to build. Manual intervention required.",
            )

        packaged = self.build.package()
        if not packaged.success:
            logger.critical(f"Reverted {record.file_path} but packaging failed:\n{packaged.output}")
            return self._proceed(
                messages,
                f"Reverted {record.file_path} but packaging failed. Manual intervention required.",
            )

        next_record = record.next_attempt()
        try:
            self.sentinels.write(next_record)
        except SentinelError as e:
            logger.critical(f"Could not record rollback attempt {next_record.attempt}: {e}")
            return self._proceed(messages, f"Rolled back {record.file_path} but could not record the attempt: {e}")

        logger.warning(f"Rolled back {record.file_path}; restarting for attempt {next_record.attempt}")
        self.restart()
        return StartupReport(StartupOutcome.RESTART, messages)

    def _proceed(self, messages: List[str], message: str) -> StartupReport:
        messages.append(message)
        if not self.sentinels.delete():
            messages.append(f"Could not delete {self.sentinels.path}; remove it by hand.")
            return StartupReport(StartupOutcome.ABORT, messages)
        return StartupReport(StartupOutcome.PROCEED, messages)
