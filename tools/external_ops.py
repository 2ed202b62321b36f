"""Tools that reach outside the working tree: validation, commits, self-update proposals."""

import logging

from tools._common import ToolResult, ToolEnvironment
from tools.validation import run_validation_command as _run_validation
from updater.orchestrator import StagedUpdate

logger = logging.getLogger(__name__)


def run_validation_command(env: ToolEnvironment, args: str = "") -> ToolResult:
    """Run the configured validation command. Extra args from the agent are ignored."""
    if args:
        logger.info(f"Ignoring validation args from agent: {args!r}")
    result = _run_validation(env.config.validation_command, env.backend,
                             timeout=env.config.validation_timeout)
    return ToolResult(success=result.success, output=result.to_json())


def commit_changes(message: str, env: ToolEnvironment) -> ToolResult:
    if not message or not message.strip():
        return ToolResult(success=False, output="", error="Error: commit message is required.")
    if env.git is None:
        return ToolResult(success=False, output="", error="Error: version control is not available.")
    commit_hash = env.git.commit(message.strip())
    if not commit_hash:
        return ToolResult(success=False, output="", error="Error: commit failed (nothing to commit?).")
    return ToolResult(success=True, output=f"Changes committed: {commit_hash}")


def propose_self_update(file_path: str, diff: str, commit_message: str, env: ToolEnvironment) -> ToolResult:
    """Stage a change to this program's own source. The user confirms it when the turn ends."""
    if env.orchestrator is None:
        return ToolResult(success=False, output="", error="Error: self-update is not available.")
    staged = env.orchestrator.stage_update(
        StagedUpdate(file_path=file_path, diff=diff, commit_message=commit_message)
    )
    if not staged:
        return ToolResult(success=False, output="",
                          error="Error: another self-update is already in progress.")
    return ToolResult(
        success=True,
        output=f"Self-update for {file_path} staged. The user will be asked to confirm it when this turn ends.",
    )
