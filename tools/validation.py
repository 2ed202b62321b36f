"""Running the project's configured validation command."""

import json
import logging
from dataclasses import dataclass, asdict
from typing import Optional

from backend import Backend

logger = logging.getLogger(__name__)

NO_COMMAND_ERROR = "no command configured"


@dataclass
class ValidationResult:
    """Normalized outcome of one validation run."""
    exit_code: int
    success: bool
    output: str = ""
    error: Optional[str] = None

    def to_json(self) -> str:
        data = asdict(self)
        return json.dumps({
            "exitCode": data["exit_code"],
            "success": data["success"],
            "output": data["output"],
            "error": data["error"],
        })


def run_validation_command(command: Optional[str], backend: Backend, timeout: int = 300) -> ValidationResult:
    """Run command in the project directory with stdout and stderr merged.

    A blank command is reported, not attempted.
    """
    if not command or not command.strip():
        return ValidationResult(exit_code=-1, success=False, error=NO_COMMAND_ERROR)

    try:
        output, rc = backend.run_command(command, cwd=".", timeout=timeout)
    except OSError as e:
        logger.error(f"Validation command could not be started: {command}: {e}")
        return ValidationResult(exit_code=-1, success=False, error=f"Failed to start command: {e}")

    if rc == -1 and output.rstrip().endswith(f"timed out after {timeout}s"):
        logger.warning(f"Validation command timed out after {timeout}s: {command}")
        return ValidationResult(exit_code=-1, success=False, output=output,
                                error=f"Command timed out after {timeout}s")

    logger.info(f"Validation command exited {rc}: {command}")
    return ValidationResult(
        exit_code=rc,
        success=rc == 0,
        output=output,
        error=None if rc == 0 else f"Command exited with code {rc}",
    )
