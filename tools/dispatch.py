"""Tool kinds, capability binding and execution."""

import functools
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Tuple, Union

from tools._common import ToolResult, ToolEnvironment
from tools.schemas import (
    APPLY_DIFF_TOOL, RUN_VALIDATION_TOOL, TOOL_IMPLEMENTATIONS, TOOL_NAME_NORMALIZE,
)

logger = logging.getLogger(__name__)

Capabilities = Dict[str, Callable[..., Any]]


class ToolExecutionError(Exception):
    """Raised when a tool cannot be found or fails while running"""

    def __init__(self, tool_name: str, message: str):
        super().__init__(message)
        self.tool_name = tool_name


@dataclass(frozen=True)
class ApplyDiffTool:
    name: str = APPLY_DIFF_TOOL


@dataclass(frozen=True)
class RunValidationTool:
    name: str = RUN_VALIDATION_TOOL


@dataclass(frozen=True)
class GenericTool:
    name: str


ToolKind = Union[ApplyDiffTool, RunValidationTool, GenericTool]


def normalize_tool_name(name: str) -> str:
    return TOOL_NAME_NORMALIZE.get(name, name)


def classify_tool(name: str) -> ToolKind:
    name = normalize_tool_name(name)
    if name == APPLY_DIFF_TOOL:
        return ApplyDiffTool()
    if name == RUN_VALIDATION_TOOL:
        return RunValidationTool()
    return GenericTool(name)


def bind_capabilities(env: ToolEnvironment) -> Capabilities:
    """The named operations available to an agent working in env."""
    return {name: functools.partial(impl, env=env) for name, impl in TOOL_IMPLEMENTATIONS.items()}


def _parse_arguments(raw: str) -> Tuple[tuple, Dict[str, Any]]:
    """JSON objects become keyword arguments; anything else is one positional string."""
    if raw is None or not raw.strip():
        return (), {}
    try:
        value = json.loads(raw)
    except ValueError:
        return (raw,), {}
    if isinstance(value, dict):
        return (), value
    if isinstance(value, str):
        return (value,), {}
    return (raw,), {}


class ToolExecutor:
    """Looks a tool up by name in a capability set and runs it."""

    def execute(self, name: str, arguments: str, capabilities: Capabilities) -> ToolResult:
        name = normalize_tool_name(name)
        impl = capabilities.get(name)
        if impl is None:
            raise ToolExecutionError(name, f"Unknown tool: {name}")
        args, kwargs = _parse_arguments(arguments)
        try:
            result = impl(*args, **kwargs)
        except TypeError as e:
            raise ToolExecutionError(name, f"Invalid arguments for {name}: {e}") from e
        except Exception as e:
            logger.exception(f"Tool execution error: {name}")
            raise ToolExecutionError(name, str(e)) from e
        if isinstance(result, ToolResult):
            return result
        return ToolResult(success=True, output="" if result is None else str(result))
