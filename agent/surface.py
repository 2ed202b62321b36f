"""
The interactive surface the turn pipeline talks to.

Every request returns an asyncio.Future that the UI resolves when the human answers.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from .events import AgentEvent


@dataclass
class DiffReviewOutcome:
    """Result of reviewing a proposed diff: accept, reject, or accept an edited diff."""
    accepted: bool
    edited: bool = False
    new_diff_text: Optional[str] = None

    @classmethod
    def accept(cls) -> "DiffReviewOutcome":
        return cls(accepted=True)

    @classmethod
    def reject(cls) -> "DiffReviewOutcome":
        return cls(accepted=False)

    @classmethod
    def accept_edited(cls, new_diff_text: str) -> "DiffReviewOutcome":
        return cls(accepted=True, edited=True, new_diff_text=new_diff_text)


class InteractiveSurface(ABC):

    @abstractmethod
    def confirm(self, title: str, text: str) -> "asyncio.Future[bool]":
        """Ask a yes/no question."""

    @abstractmethod
    def diff_review(self, diff_text: str) -> "asyncio.Future[DiffReviewOutcome]":
        """Show a diff and let the human accept, reject or edit it."""

    @abstractmethod
    def confirm_plan(self, title: str, plan_text: str) -> "asyncio.Future[bool]":
        """Show a plan and ask for approval."""

    @abstractmethod
    def notify(self, event: AgentEvent) -> None:
        """Display a notice. Must not block; may be called from worker threads."""
