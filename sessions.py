"""
Session persistence for Bedrock Pilot.
Stores the working set and conversation history in the project's state directory
so a user can close the app and pick up where they left off.
"""

import json
import logging
import os
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional

logger = logging.getLogger(__name__)

SESSION_VERSION = 1


@dataclass
class Session:
    """A persisted snapshot of one project's session."""
    version: int = SESSION_VERSION
    working_directory: str = ""
    model_id: str = ""
    updated_at: str = ""
    working_set: List[str] = field(default_factory=list)
    history: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def message_count(self) -> int:
        """Count user messages in history."""
        return sum(1 for m in self.history if m.get("role") == "user")

    @property
    def is_empty(self) -> bool:
        return not self.history and not self.working_set


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class SessionStore:
    """
    Manages the session file on disk.

    File layout:  {project}/{state_dir}/session.json
    """

    def __init__(self, path: str):
        self.path = path

    def exists(self) -> bool:
        return os.path.isfile(self.path)

    def save(self, session: Session) -> str:
        """Save the session atomically. Returns the file path."""
        session.updated_at = _now_iso()
        data = asdict(session)

        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
        tmp_path = self.path + ".tmp"
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
            logger.info(f"Session saved: {self.path}")
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

        return self.path

    def load(self) -> Optional[Session]:
        """Load the session, or None if there is none or it cannot be read."""
        if not self.exists():
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("session file is not a JSON object")
            return Session(
                version=data.get("version", SESSION_VERSION),
                working_directory=data.get("working_directory", ""),
                model_id=data.get("model_id", ""),
                updated_at=data.get("updated_at", ""),
                working_set=list(data.get("working_set") or []),
                history=list(data.get("history") or []),
            )
        except (OSError, ValueError, TypeError) as e:
            logger.warning(f"Failed to read session {self.path}: {e}")
            return None

    def delete(self) -> bool:
        """Delete the session file. Returns True if deleted."""
        if os.path.exists(self.path):
            os.remove(self.path)
            logger.info(f"Session deleted: {self.path}")
            return True
        return False
