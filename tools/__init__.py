"""
Tool definitions and implementations for the coding agent.
Each tool has an Anthropic-compatible schema and an implementation function that
takes a ToolEnvironment. Schemas, dispatch and the lifecycle manager live in their
own modules and are imported from there.
"""

from tools._common import ToolResult, ToolEnvironment  # noqa: F401
