"""
Build steps for the self-update path: compile, package, and arbitrary commands.
"""

import logging
import shlex
from dataclasses import dataclass
from typing import List, Optional

from backend import Backend
from config import app_config

logger = logging.getLogger(__name__)


@dataclass
class BuildResult:
    success: bool
    output: str = ""
    exit_code: int = 0


class BuildManager:
    """Runs configured build commands in the project directory with merged output."""

    def __init__(
        self,
        backend: Backend,
        compile_command: Optional[str] = None,
        package_command: Optional[str] = None,
        timeout: Optional[int] = None,
    ):
        self.backend = backend
        self.compile_command = compile_command if compile_command is not None else app_config.compile_command
        self.package_command = package_command if package_command is not None else app_config.package_command
        self.timeout = timeout or app_config.build_timeout

    def compile(self) -> BuildResult:
        return self._run_configured("compile", self.compile_command)

    def package(self) -> BuildResult:
        return self._run_configured("package", self.package_command)

    def run_arbitrary_command(self, argv: List[str]) -> BuildResult:
        if not argv:
            return BuildResult(success=False, output="No command given.", exit_code=-1)
        try:
            output, rc = self.backend.run_argv(argv, timeout=self.timeout)
        except OSError as e:
            logger.error(f"Failed to start {argv[0]}: {e}")
            return BuildResult(success=False, output=str(e), exit_code=-1)
        logger.info(f"{' '.join(argv)} exited {rc}")
        return BuildResult(success=rc == 0, output=output, exit_code=rc)

    def _run_configured(self, step: str, command: str) -> BuildResult:
        if not command or not command.strip():
            logger.info(f"No {step} command configured; skipping")
            return BuildResult(success=True, output=f"No {step} command configured.")
        logger.info(f"Running {step} step: {command}")
        result = self.run_arbitrary_command(shlex.split(command))
        if not result.success:
            logger.error(f"{step} step failed ({result.exit_code}):\n{result.output}")
        return result
