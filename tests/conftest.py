"""
Pytest configuration for the Bedrock Pilot test suite.

Configures:
- pytest-asyncio for async test support
- a scripted agent and an interactive surface that answers from queues
- throwaway git projects for diff, undo and self-update tests
"""

import asyncio
import shutil
import subprocess
from typing import Any, List, Optional

import pytest

from agent.context import SessionContext
from agent.events import AgentEvent, AgentResponse
from agent.surface import DiffReviewOutcome, InteractiveSurface
from backend import LocalBackend
from config import AppConfig
from tools._common import ToolEnvironment
from tools.diff_engine import DiffEngine
from vcs import GitService

pytest_plugins = ["pytest_asyncio"]


class FakeSurface(InteractiveSurface):
    """Answers prompts from queues. Unanswered prompts get the default."""

    def __init__(self, confirms=None, reviews=None, plans=None):
        self.confirm_answers: List[bool] = list(confirms or [])
        self.review_answers: List[DiffReviewOutcome] = list(reviews or [])
        self.plan_answers: List[bool] = list(plans or [])
        self.prompts: List[tuple] = []
        self.events: List[AgentEvent] = []

    def _answer(self, value: Any) -> "asyncio.Future":
        future = asyncio.get_running_loop().create_future()
        future.set_result(value)
        return future

    def confirm(self, title, text):
        self.prompts.append(("confirm", title, text))
        return self._answer(self.confirm_answers.pop(0) if self.confirm_answers else False)

    def diff_review(self, diff_text):
        self.prompts.append(("diff", "Review Diff", diff_text))
        return self._answer(self.review_answers.pop(0) if self.review_answers else DiffReviewOutcome.reject())

    def confirm_plan(self, title, plan_text):
        self.prompts.append(("plan", title, plan_text))
        return self._answer(self.plan_answers.pop(0) if self.plan_answers else True)

    def notify(self, event):
        self.events.append(event)

    def titles(self) -> List[str]:
        return [title for _, title, _ in self.prompts]

    def event_types(self) -> List[str]:
        return [e.type for e in self.events]


class FakeAgent:
    """Replays scripted responses. Exceptions in the script are raised."""

    def __init__(self, responses=None):
        self.responses: List[Any] = list(responses or [])
        self.calls: List[list] = []

    def act(self, history):
        self.calls.append(list(history))
        if not self.responses:
            return AgentResponse(text="Done.")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def git(cwd, *args: str) -> str:
    result = subprocess.run(
        ["git", *args], cwd=str(cwd), capture_output=True, text=True, check=True,
    )
    return result.stdout


def init_repo(path, files: Optional[dict] = None) -> None:
    git(path, "init", "-q")
    git(path, "config", "user.email", "dev@example.com")
    git(path, "config", "user.name", "Dev")
    git(path, "config", "commit.gpgsign", "false")
    for name, content in (files or {}).items():
        target = path / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content.encode("utf-8"))
    git(path, "add", "-A")
    git(path, "commit", "-q", "--allow-empty", "-m", "initial")


@pytest.fixture
def surface():
    return FakeSurface()


@pytest.fixture
def make_surface():
    return FakeSurface


@pytest.fixture
def make_agent():
    return FakeAgent


@pytest.fixture
def run_git():
    return git


@pytest.fixture
def app_settings():
    return AppConfig(
        validation_command="",
        validation_timeout=30,
        compile_command="",
        package_command="",
        build_timeout=30,
    )


@pytest.fixture
def project(tmp_path):
    """A git repository with one committed file."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")
    init_repo(tmp_path, {"hello.py": "def hello():\n    return 'hello'\n"})
    return tmp_path


@pytest.fixture
def backend(project):
    return LocalBackend(str(project))


@pytest.fixture
def context(backend):
    return SessionContext(backend)


@pytest.fixture
def env(backend, context, app_settings):
    git_service = GitService(backend)
    return ToolEnvironment(
        backend=backend,
        context=context,
        diff_engine=DiffEngine(backend, context, git_service),
        git=git_service,
        config=app_settings,
    )
