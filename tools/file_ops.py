"""File tools: applying diffs, reading working-set files, listing the working set."""

import logging

from tools._common import ToolResult, ToolEnvironment

logger = logging.getLogger(__name__)

MAX_READ_CHARS = 200_000


def apply_diff(diff: str, env: ToolEnvironment) -> ToolResult:
    """Apply a unified diff through the session's diff engine."""
    return env.diff_engine.apply(diff)


def read_file(path: str, env: ToolEnvironment) -> ToolResult:
    """Read a file that is in the working set."""
    if not path:
        return ToolResult(success=False, output="", error="Error: path is required.")
    try:
        rel = env.backend.relative_path(path)
        env.backend._ensure_under_working(env.backend.resolve_path(path))
    except ValueError:
        return ToolResult(success=False, output="", error=f"Error: Path escapes project directory: {path}")
    if not env.context.in_working_set(rel):
        return ToolResult(
            success=False, output="",
            error=f"Error: {rel} is not in context. Ask the user to add it with /add {rel}.",
        )
    try:
        content = env.backend.read_file(rel)
    except OSError as e:
        return ToolResult(success=False, output="", error=f"Error reading file '{rel}': {e}")
    if len(content) > MAX_READ_CHARS:
        logger.info(f"Truncated read of {rel} ({len(content)} chars)")
        content = content[:MAX_READ_CHARS] + f"\n... [truncated, {len(content) - MAX_READ_CHARS} more chars]"
    return ToolResult(success=True, output=content)


def list_context_files(env: ToolEnvironment) -> ToolResult:
    files = env.context.working_set
    if not files:
        return ToolResult(success=True, output="No files in context.")
    return ToolResult(success=True, output="\n".join(files))
