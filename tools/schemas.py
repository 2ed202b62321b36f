"""Tool schema definitions (Bedrock/Anthropic Messages API) and the implementation map."""

from typing import Any, Callable, Dict, List

from tools.file_ops import apply_diff, read_file, list_context_files
from tools.external_ops import run_validation_command, commit_changes, propose_self_update


# Names the lifecycle manager knows about; every other tool is opaque to it.
APPLY_DIFF_TOOL = "apply_diff"
RUN_VALIDATION_TOOL = "run_validation_command"

TOOL_DEFINITIONS: List[Dict[str, Any]] = [
    {
        "name": APPLY_DIFF_TOOL,
        "description": (
            "Apply a code change in unified diff format (---/+++ headers, @@ hunks). "
            "Files being edited must be in context; use --- /dev/null to create a file "
            "and +++ /dev/null to delete one. The user reviews every diff before it is applied."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "diff": {"type": "string", "description": "Unified diff text"},
            },
            "required": ["diff"],
        },
    },
    {
        "name": RUN_VALIDATION_TOOL,
        "description": (
            "Run the project's configured validation command (tests, linter, build). "
            "Returns JSON with exitCode, success, output and error."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "args": {"type": "string", "description": "Ignored; the configured command is always used"},
            },
        },
    },
    {
        "name": "read_file",
        "description": "Read the complete content of a file that is in context.",
        "input_schema": {
            "type": "object",
            "properties": {
                "path": {"type": "string", "description": "Path relative to the project root"},
            },
            "required": ["path"],
        },
    },
    {
        "name": "list_context_files",
        "description": "List the files currently in context.",
        "input_schema": {"type": "object", "properties": {}},
    },
    {
        "name": "commit_changes",
        "description": "Stage all changes and commit them with the given message.",
        "input_schema": {
            "type": "object",
            "properties": {
                "message": {"type": "string", "description": "Commit message"},
            },
            "required": ["message"],
        },
    },
    {
        "name": "propose_self_update",
        "description": (
            "Propose a change to this agent's own source code. The change is staged and the user "
            "is asked to confirm it; once confirmed it is applied, built, committed and the agent restarts."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "file_path": {"type": "string", "description": "File to change, relative to the agent's source root"},
                "diff": {"type": "string", "description": "Unified diff for that file"},
                "commit_message": {"type": "string", "description": "Commit message for the update"},
            },
            "required": ["file_path", "diff", "commit_message"],
        },
    },
]

TOOL_IMPLEMENTATIONS: Dict[str, Callable[..., Any]] = {
    APPLY_DIFF_TOOL: apply_diff,
    RUN_VALIDATION_TOOL: run_validation_command,
    "read_file": read_file,
    "list_context_files": list_context_files,
    "commit_changes": commit_changes,
    "propose_self_update": propose_self_update,
}

# camelCase spellings some models emit
TOOL_NAME_NORMALIZE: Dict[str, str] = {
    "applyDiff": APPLY_DIFF_TOOL,
    "runValidationCommand": RUN_VALIDATION_TOOL,
    "readFile": "read_file",
    "listContextFiles": "list_context_files",
    "commitChanges": "commit_changes",
    "proposeSelfUpdate": "propose_self_update",
}
