"""
Backend abstraction for file and command operations.
All paths are resolved under the project root; commands run in a child process group.
"""

import logging
import os
import signal
import subprocess
from abc import ABC, abstractmethod
from typing import List, Tuple

logger = logging.getLogger(__name__)


class Backend(ABC):
    """Abstract backend for file system and command operations."""

    @property
    @abstractmethod
    def working_directory(self) -> str:
        """Return the working directory path."""

    @abstractmethod
    def read_file(self, path: str) -> str:
        """Read file content as text."""

    @abstractmethod
    def write_file(self, path: str, content: str) -> None:
        """Write content to a file (create dirs as needed)."""

    @abstractmethod
    def file_exists(self, path: str) -> bool:
        """Check if a file exists."""

    @abstractmethod
    def remove_file(self, path: str) -> None:
        """Delete a file."""

    @abstractmethod
    def run_command(self, command: str, cwd: str = ".", timeout: int = 30) -> Tuple[str, int]:
        """Run a shell command with stderr merged into stdout. Returns (output, returncode)."""

    @abstractmethod
    def run_argv(self, argv: List[str], cwd: str = ".", timeout: int = 30) -> Tuple[str, int]:
        """Run a program without a shell. Returns (merged output, returncode)."""

    def resolve_path(self, path: str) -> str:
        """Resolve a path relative to the working directory."""
        if os.path.isabs(path):
            return os.path.normpath(path)
        return os.path.normpath(os.path.join(self.working_directory, path))

    def relative_path(self, path: str) -> str:
        """Project-relative form of a path, with forward slashes."""
        rel = os.path.relpath(self.resolve_path(path), self.working_directory)
        return rel.replace(os.sep, "/")

    def _ensure_under_working(self, resolved: str) -> None:
        """Raise ValueError if resolved path escapes the working directory. Overridden by backends."""
        pass


class LocalBackend(Backend):
    """Backend that operates on the local filesystem."""

    def __init__(self, working_directory: str = "."):
        self._working_directory = os.path.abspath(working_directory)

    @property
    def working_directory(self) -> str:
        return self._working_directory

    def _ensure_under_working(self, resolved: str) -> None:
        real = os.path.abspath(resolved)
        wd = os.path.abspath(self._working_directory)
        if real != wd and not real.startswith(wd + os.sep):
            raise ValueError(f"Path escapes working directory: {resolved!r}")

    def read_file(self, path: str) -> str:
        full = self.resolve_path(path)
        self._ensure_under_working(full)
        # newline="" keeps CRLF files byte-identical through a read/write cycle
        with open(full, "r", encoding="utf-8", errors="replace", newline="") as f:
            return f.read()

    def write_file(self, path: str, content: str) -> None:
        full = self.resolve_path(path)
        self._ensure_under_working(full)
        os.makedirs(os.path.dirname(full), exist_ok=True)
        with open(full, "w", encoding="utf-8", newline="") as f:
            f.write(content)

    def file_exists(self, path: str) -> bool:
        full = self.resolve_path(path)
        self._ensure_under_working(full)
        return os.path.isfile(full)

    def remove_file(self, path: str) -> None:
        full = self.resolve_path(path)
        self._ensure_under_working(full)
        os.remove(full)

    def run_command(self, command: str, cwd: str = ".", timeout: int = 30) -> Tuple[str, int]:
        return self._run(command, shell=True, cwd=cwd, timeout=timeout)

    def run_argv(self, argv: List[str], cwd: str = ".", timeout: int = 30) -> Tuple[str, int]:
        return self._run(list(argv), shell=False, cwd=cwd, timeout=timeout)

    def _run(self, command, shell: bool, cwd: str, timeout: int) -> Tuple[str, int]:
        full_cwd = self.resolve_path(cwd) if cwd != "." else self._working_directory
        logger.info(f"Running {'shell' if shell else 'argv'} command in {full_cwd}: {command}")
        proc = subprocess.Popen(
            command, shell=shell, cwd=full_cwd,
            stdout=subprocess.PIPE, stderr=subprocess.STDOUT, text=True,
            preexec_fn=os.setsid,  # create process group for clean kill
        )
        try:
            output, _ = proc.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            self._kill_process(proc)
            output, _ = proc.communicate(timeout=5)
            return f"{output or ''}Command timed out after {timeout}s\n", -1
        return output or "", proc.returncode

    @staticmethod
    def _kill_process(proc: subprocess.Popen) -> None:
        """Kill a process and its entire process group."""
        try:
            os.killpg(os.getpgid(proc.pid), signal.SIGTERM)
        except (ProcessLookupError, OSError):
            pass
        try:
            proc.kill()
        except (ProcessLookupError, OSError):
            pass
