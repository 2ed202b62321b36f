"""Shared types for the tools package."""

from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class ToolResult:
    """Result from executing a tool"""
    success: bool
    output: str
    error: Optional[str] = None

    @property
    def text(self) -> str:
        """The string handed back to the agent as the tool result."""
        if self.success:
            return self.output
        return self.error or self.output


@dataclass
class ToolEnvironment:
    """Collaborators every tool implementation receives as ``env``."""
    backend: Any            # backend.Backend
    context: Any            # agent.context.SessionContext
    diff_engine: Any        # tools.diff_engine.DiffEngine
    git: Any = None         # vcs.GitService
    config: Any = None      # config.AppConfig
    orchestrator: Any = None  # updater.orchestrator.SelfUpdateOrchestrator
