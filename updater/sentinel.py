"""
The pending self-update sentinel.

Its presence at startup means a self-modification was applied, committed and
the process restarted without the change having been validated yet.
"""

import json
import logging
import os
import time
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class SentinelError(Exception):
    """Raised when the sentinel file cannot be read, parsed or written"""
    pass


def now_millis() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class SentinelRecord:
    file_path: str
    commit_message: str
    timestamp: int
    attempt: int = 1
    commit_hash: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "filePath": self.file_path,
            "commitMessage": self.commit_message,
            "timestamp": self.timestamp,
            "attempt": self.attempt,
        }
        if self.commit_hash:
            data["commitHash"] = self.commit_hash
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SentinelRecord":
        if not isinstance(data, dict):
            raise SentinelError("sentinel is not a JSON object")
        try:
            file_path = data["filePath"]
            attempt = int(data.get("attempt", 1))
            timestamp = int(data.get("timestamp", 0))
        except (KeyError, TypeError, ValueError) as e:
            raise SentinelError(f"malformed sentinel: {e}") from e
        if not isinstance(file_path, str) or not file_path:
            raise SentinelError("sentinel has no filePath")
        if attempt < 1:
            raise SentinelError(f"sentinel attempt must be >= 1, got {attempt}")
        return cls(
            file_path=file_path,
            commit_message=str(data.get("commitMessage", "")),
            timestamp=timestamp,
            attempt=attempt,
            commit_hash=data.get("commitHash") or None,
        )

    def next_attempt(self) -> "SentinelRecord":
        """Same update, attempt + 1, fresh timestamp."""
        return replace(self, attempt=self.attempt + 1, timestamp=now_millis())


class SentinelStore:
    """Reads and writes the sentinel file atomically."""

    def __init__(self, path: str):
        self.path = path

    def exists(self) -> bool:
        return os.path.isfile(self.path)

    def read(self) -> SentinelRecord:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise SentinelError(f"cannot read {self.path}: {e}") from e
        return SentinelRecord.from_dict(data)

    def write(self, record: SentinelRecord) -> None:
        tmp_path = self.path + ".tmp"
        try:
            os.makedirs(os.path.dirname(self.path), exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(record.to_dict(), f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise SentinelError(f"cannot write {self.path}: {e}") from e
        logger.info(f"Sentinel written: {record.file_path} attempt {record.attempt}")

    def delete(self) -> bool:
        """Remove the sentinel. Returns False if it could not be removed."""
        try:
            os.remove(self.path)
        except FileNotFoundError:
            return True
        except OSError as e:
            logger.critical(f"Failed to delete sentinel {self.path}: {e}")
            return False
        logger.info(f"Sentinel deleted: {self.path}")
        return True
