"""
Bedrock Pilot - a review-first coding agent powered by Amazon Bedrock.
Terminal UI built with Textual + Rich.
"""

import asyncio
import argparse
import logging
import os
import sys
from dataclasses import dataclass
from typing import Optional, List

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical, VerticalScroll
from textual.screen import ModalScreen
from textual.widgets import Header, Footer, Input, Static, Collapsible, TextArea
from textual import on, work

from rich.text import Text
from rich.table import Table
from rich.markdown import Markdown
from rich.markup import escape as rich_escape

from agent.context import SessionContext
from agent.core import CodingAgent
from agent.events import AgentEvent
from agent.history import ConversationHistory
from agent.interaction import AgentInteractionService
from agent.state import BUSY_MESSAGE, TurnState, TurnStateMachine
from agent.surface import DiffReviewOutcome, InteractiveSurface
from backend import LocalBackend
from bedrock_service import BedrockService, BedrockError
from build_manager import BuildManager
from config import (
    app_config, model_config, set_validation_command, get_credentials_info,
    SENTINEL_FILENAME, SESSION_FILENAME,
)
from restart import RestartService
from sessions import Session, SessionStore
from tools._common import ToolEnvironment
from tools.diff_engine import DiffEngine
from tools.lifecycle import ToolLifecycleManager
from updater.orchestrator import SelfUpdateOrchestrator
from updater.sentinel import SentinelStore
from updater.startup import RollbackProtocol, StartupOutcome, StartupReport
from vcs import GitService

logger = logging.getLogger(__name__)


# ============================================================
# Constants
# ============================================================

SPINNER_FRAMES = ["⣷", "⣯", "⣟", "⡿", "⢿", "⣻", "⣽", "⣾"]

DEFAULT_PLACEHOLDER = " ❯ What would you like me to do?  (/help for commands)"
CONFIRM_PLACEHOLDER = " y / n"
DIFF_PLACEHOLDER = " accept / reject / edit"

# Lines to show before collapsing
COLLAPSE_LINE_THRESHOLD = 8
COLLAPSE_CHAR_THRESHOLD = 400

YES_ANSWERS = ("y", "yes")
NO_ANSWERS = ("n", "no")


# ============================================================
# Service graph
# ============================================================

class Workspace:
    """Everything one project session needs, wired together."""

    def __init__(self, project_dir: str, service: BedrockService, surface: InteractiveSurface, restart):
        self.project_dir = os.path.abspath(project_dir)
        self.backend = LocalBackend(self.project_dir)
        self.context = SessionContext(self.backend)
        self.git = GitService(self.backend)
        self.build = BuildManager(self.backend)
        self.diff_engine = DiffEngine(self.backend, self.context, self.git)
        self.orchestrator = SelfUpdateOrchestrator(
            surface, self.git, self.build,
            SentinelStore(app_config.state_path(self.project_dir, SENTINEL_FILENAME)),
            restart,
            state_dir=app_config.state_dir,
        )
        self.env = ToolEnvironment(
            backend=self.backend,
            context=self.context,
            diff_engine=self.diff_engine,
            git=self.git,
            config=app_config,
            orchestrator=self.orchestrator,
        )
        self.state = TurnStateMachine()
        self.history = ConversationHistory(app_config.history_limit)
        self.agent = CodingAgent(service, self.env)
        self.lifecycle = ToolLifecycleManager(self.state, surface, self.env, self.agent.tools)
        self.sessions = SessionStore(app_config.state_path(self.project_dir, SESSION_FILENAME))
        self.interaction = AgentInteractionService(
            self.state, self.history, self.agent, self.lifecycle, surface,
            save_session=self.save_session,
            self_update=self.orchestrator,
        )

    def save_session(self) -> None:
        self.sessions.save(Session(
            working_directory=self.project_dir,
            model_id=model_config.model_id,
            working_set=self.context.working_set,
            history=self.history.to_list(),
        ))

    def restore_session(self, session: Session) -> List[str]:
        """Load history and working set. Returns working-set files that no longer exist."""
        self.history.load(session.history)
        return self.context.restore_working_set(session.working_set)

    def reset(self) -> None:
        self.history.clear()
        self.context.clear()
        self.sessions.delete()


def run_startup_checks(project_dir: str, restarter: RestartService) -> StartupReport:
    """Validate a pending self-update before the UI starts."""
    backend = LocalBackend(project_dir)
    protocol = RollbackProtocol(
        SentinelStore(app_config.state_path(project_dir, SENTINEL_FILENAME)),
        GitService(backend),
        BuildManager(backend),
        restart=restarter.restart,
        validation_command=app_config.validation_command,
        max_attempts=app_config.max_rollback_attempts,
    )
    return protocol.run()


# ============================================================
# Interactive surface
# ============================================================

@dataclass
class _Prompt:
    kind: str  # "confirm" or "diff"
    future: asyncio.Future
    diff_text: str = ""


class TextualSurface(InteractiveSurface):
    """Routes turn-pipeline requests to the TUI."""

    def __init__(self, app: "BedrockPilotApp"):
        self.app = app

    def confirm(self, title: str, text: str) -> "asyncio.Future[bool]":
        return self.app.ask_confirm(title, text)

    def diff_review(self, diff_text: str) -> "asyncio.Future[DiffReviewOutcome]":
        return self.app.ask_diff_review(diff_text)

    def confirm_plan(self, title: str, plan_text: str) -> "asyncio.Future[bool]":
        return self.app.ask_confirm(title, plan_text, markdown=True)

    def notify(self, event: AgentEvent) -> None:
        self.app.post_agent_event(event)


class DiffEditScreen(ModalScreen[Optional[str]]):
    """Edit a proposed diff before it is applied. Ctrl+S applies, Esc cancels."""

    BINDINGS = [
        Binding("ctrl+s", "save", "Apply edited diff"),
        Binding("escape", "cancel", "Cancel"),
    ]

    DEFAULT_CSS = """
    DiffEditScreen {
        align: center middle;
    }

    #diff-edit-box {
        width: 90%;
        height: 85%;
        border: tall #58a6ff;
        background: #0d1117;
    }

    #diff-edit-title {
        height: 1;
        color: #8b949e;
        padding: 0 1;
    }
    """

    def __init__(self, diff_text: str):
        super().__init__()
        self.diff_text = diff_text

    def compose(self) -> ComposeResult:
        with Vertical(id="diff-edit-box"):
            yield Static("Edit diff  ·  Ctrl+S apply  ·  Esc cancel", id="diff-edit-title")
            yield TextArea(self.diff_text, id="diff-editor")

    def on_mount(self) -> None:
        self.query_one("#diff-editor", TextArea).focus()

    def action_save(self) -> None:
        self.dismiss(self.query_one("#diff-editor", TextArea).text)

    def action_cancel(self) -> None:
        self.dismiss(None)


# ============================================================
# TUI Application
# ============================================================

class BedrockPilotApp(App):
    """Bedrock Pilot - Coding Agent TUI"""

    TITLE = "Bedrock Pilot"
    ALLOW_SELECT = True

    CSS = """
    Screen {
        background: #0d1117;
    }

    #output-scroll {
        height: 1fr;
        border: none;
        padding: 1 2;
        scrollbar-size: 1 1;
        scrollbar-color: #30363d;
        scrollbar-color-hover: #484f58;
        scrollbar-color-active: #6e7681;
    }

    #output-scroll > Static {
        width: 100%;
        height: auto;
        margin: 0 0;
    }

    #output-scroll > Collapsible {
        width: 100%;
        height: auto;
        margin: 0 0 0 3;
    }

    #output-scroll > Collapsible > Contents {
        height: auto;
        padding: 0 1;
    }

    Collapsible.-collapsed > Contents {
        display: none;
    }

    CollapsibleTitle {
        color: #6e7681;
        background: transparent;
        padding: 0;
        height: 1;
    }

    CollapsibleTitle:hover {
        color: #c9d1d9;
        background: #161b22;
    }

    #user-input {
        dock: bottom;
        margin: 0 2 1 2;
        border: tall #30363d;
        background: #161b22;
        color: #c9d1d9;
        padding: 0 1;
    }

    #user-input:focus {
        border: tall #58a6ff;
    }

    #status-bar {
        dock: bottom;
        height: 1;
        background: #161b22;
        color: #6e7681;
        padding: 0 2;
    }

    Header {
        background: #010409;
        color: #f0f6fc;
        dock: top;
        height: 1;
    }

    Footer {
        background: #161b22;
    }
    """

    BINDINGS = [
        Binding("ctrl+c", "decline_or_quit", "Decline / Quit", priority=True),
        Binding("ctrl+l", "clear_screen", "Clear"),
        Binding("ctrl+z", "undo", "Undo last diff"),
    ]

    def __init__(
        self,
        working_directory: str,
        service: BedrockService,
        startup_messages: Optional[List[str]] = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.working_directory = os.path.abspath(working_directory)
        self.startup_messages = list(startup_messages or [])
        self.surface = TextualSurface(self)
        self.workspace = Workspace(self.working_directory, service, self.surface, self.request_restart)
        self.restart_requested = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._prompt: Optional[_Prompt] = None
        self._spinner_idx = 0
        self._widget_counter = 0

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static("", id="status-bar")
        yield VerticalScroll(id="output-scroll")
        yield Input(placeholder=DEFAULT_PLACEHOLDER, id="user-input")
        yield Footer()

    # ============================================================
    # Output helpers -- write to the scroll area
    # ============================================================

    def _next_id(self, prefix: str = "out") -> str:
        self._widget_counter += 1
        return f"{prefix}-{self._widget_counter}"

    def _log(self, renderable) -> None:
        """Append a renderable to the output scroll area."""
        scroll = self.query_one("#output-scroll", VerticalScroll)
        widget = Static(renderable, id=self._next_id())
        scroll.mount(widget)
        scroll.scroll_end(animate=False)

    def _log_collapsible(self, title: str, body, collapsed: bool = True) -> None:
        """Append a collapsible section to the output. Click the title to expand."""
        scroll = self.query_one("#output-scroll", VerticalScroll)
        coll = Collapsible(
            Static(body, id=self._next_id("body")),
            title=title,
            collapsed=collapsed,
            id=self._next_id("coll"),
        )
        scroll.mount(coll)
        scroll.scroll_end(animate=False)

    def _log_long(self, title: str, content: str, style: str = "#8b949e") -> None:
        lines = content.splitlines()
        if len(lines) > COLLAPSE_LINE_THRESHOLD or len(content) > COLLAPSE_CHAR_THRESHOLD:
            self._log_collapsible(f"{title}  ({len(lines)} lines)", Text(content, style=style))
        else:
            self._log(Text(f"   {content}", style=style))

    def _clear_output(self) -> None:
        scroll = self.query_one("#output-scroll", VerticalScroll)
        scroll.remove_children()

    @staticmethod
    def _render_diff(diff_text: str) -> Text:
        colored = Text()
        for line in diff_text.splitlines():
            if line.startswith("+++") or line.startswith("---"):
                colored.append(line + "\n", style="bold #8b949e")
            elif line.startswith("@@"):
                colored.append(line + "\n", style="#79c0ff")
            elif line.startswith("+"):
                colored.append(line + "\n", style="#3fb950")
            elif line.startswith("-"):
                colored.append(line + "\n", style="#f85149")
            else:
                colored.append(line + "\n", style="#6e7681")
        return colored

    # ============================================================
    # Lifecycle
    # ============================================================

    def on_mount(self) -> None:
        self._loop = asyncio.get_running_loop()
        self.set_interval(0.1, self._tick)
        self._show_welcome()
        self.query_one("#user-input", Input).focus()
        self._offer_session_restore()

    def _show_welcome(self):
        validation = app_config.validation_command or "not set (/run <cmd>)"
        self._log(Text.from_markup(
            "\n[bold #58a6ff]bedrock[/bold #58a6ff][bold #f0f6fc] pilot[/bold #f0f6fc]\n"
        ))
        self._log(Text.from_markup(
            f"[#8b949e]{rich_escape(model_config.model_id)}[/#8b949e]  "
            f"[#6e7681]{rich_escape(get_credentials_info())}[/#6e7681]"
        ))
        self._log(Text.from_markup(
            f"[#6e7681]dir: {rich_escape(self.working_directory)}  "
            f"validation: {rich_escape(validation)}[/#6e7681]"
        ))
        for message in self.startup_messages:
            self._log(Text(f"   {message}", style="bold #e3b341"))
        self._log(Text.from_markup(
            "\n[#484f58]/add files to give the agent context  ·  /help for commands  "
            "·  Ctrl+C to decline or quit[/#484f58]\n"
        ))

    @work(thread=False)
    async def _offer_session_restore(self) -> None:
        session = self.workspace.sessions.load()
        if session is None or session.is_empty:
            return
        if app_config.session_restore_prompt:
            restore = await self.ask_confirm(
                "Restore Session?",
                f"A previous session has {session.message_count} message(s) and "
                f"{len(session.working_set)} file(s) in context (saved {session.updated_at}).",
            )
            if not restore:
                self._log(Text("   Starting a new session.", style="#6e7681"))
                return
        missing = self.workspace.restore_session(session)
        self._log(Text(
            f"   ✓ Session restored: {len(self.workspace.history)} messages, "
            f"{len(self.workspace.context.working_set)} files in context",
            style="#3fb950",
        ))
        for path in missing:
            self._log(Text(f"     {path} no longer exists; dropped from context", style="#e3b341"))

    def _save_session(self) -> None:
        try:
            self.workspace.save_session()
        except OSError as e:
            logger.error(f"Failed to save session: {e}")

    def request_restart(self) -> None:
        """Exit the TUI so main() can re-exec. Safe to call from worker threads."""
        self.restart_requested = True
        if self._loop is not None:
            self._loop.call_soon_threadsafe(self.exit)

    # ============================================================
    # Status Bar
    # ============================================================

    def _tick(self) -> None:
        self._spinner_idx += 1
        self._update_status()

    def _update_status(self) -> None:
        status = self.query_one("#status-bar", Static)
        state = self.workspace.state.state
        parts = [model_config.model_id.split(".")[-1]]
        if state is TurnState.THINKING:
            parts.append(f"{SPINNER_FRAMES[self._spinner_idx % len(SPINNER_FRAMES)]} thinking")
        elif state is not TurnState.IDLE:
            parts.append(state.value.replace("_", " "))
        parts.append(f"context: {len(self.workspace.context.working_set)} files")
        if self.workspace.context.last_applied_diff:
            parts.append("undo available")
        status.update(" · ".join(parts))

    # ============================================================
    # Prompts (futures resolved by input)
    # ============================================================

    def ask_confirm(self, title: str, text: str, markdown: bool = False) -> "asyncio.Future[bool]":
        future = asyncio.get_running_loop().create_future()
        self._log(Text.from_markup(f"\n   [bold #d2a8ff]{rich_escape(title)}[/bold #d2a8ff]"))
        self._log(Markdown(text) if markdown else Text(text, style="#c9d1d9"))
        self._set_prompt(_Prompt("confirm", future), CONFIRM_PLACEHOLDER)
        return future

    def ask_diff_review(self, diff_text: str) -> "asyncio.Future[DiffReviewOutcome]":
        future = asyncio.get_running_loop().create_future()
        self._log(Text.from_markup("\n   [bold #d2a8ff]Review Diff[/bold #d2a8ff]"))
        self._log(self._render_diff(diff_text))
        self._log(Text.from_markup(
            "   [bold #3fb950]accept[/bold #3fb950][#6e7681] · apply    [/]"
            "[bold #f85149]reject[/bold #f85149][#6e7681] · discard    [/]"
            "[bold #79c0ff]edit[/bold #79c0ff][#6e7681] · change it first[/#6e7681]"
        ))
        self._set_prompt(_Prompt("diff", future, diff_text), DIFF_PLACEHOLDER)
        return future

    def _set_prompt(self, prompt: _Prompt, placeholder: str) -> None:
        self._prompt = prompt
        input_widget = self.query_one("#user-input", Input)
        input_widget.placeholder = placeholder
        input_widget.focus()

    def _resolve_prompt(self, value) -> None:
        prompt, self._prompt = self._prompt, None
        self.query_one("#user-input", Input).placeholder = DEFAULT_PLACEHOLDER
        if prompt is not None and not prompt.future.done():
            prompt.future.set_result(value)

    def _answer_prompt(self, text: str) -> None:
        answer = text.lower().strip()
        if self._prompt.kind == "confirm":
            if answer in YES_ANSWERS:
                self._resolve_prompt(True)
            elif answer in NO_ANSWERS:
                self._resolve_prompt(False)
            else:
                self._log(Text("   Type 'y' or 'n'", style="#e3b341"))
            return

        if answer in ("accept", "a") + YES_ANSWERS:
            self._resolve_prompt(DiffReviewOutcome.accept())
        elif answer in ("reject", "r") + NO_ANSWERS:
            self._resolve_prompt(DiffReviewOutcome.reject())
        elif answer in ("edit", "e"):
            self.push_screen(DiffEditScreen(self._prompt.diff_text), self._on_diff_edited)
        else:
            self._log(Text("   Type 'accept', 'reject' or 'edit'", style="#e3b341"))

    def _on_diff_edited(self, edited: Optional[str]) -> None:
        if self._prompt is None or self._prompt.kind != "diff":
            return
        if edited is None:
            self._log(Text("   Edit cancelled. accept / reject / edit", style="#6e7681"))
            return
        self._log(Text("   Edited diff:", style="#8b949e"))
        self._log(self._render_diff(edited))
        self._resolve_prompt(DiffReviewOutcome.accept_edited(edited))

    # ============================================================
    # Agent events
    # ============================================================

    def post_agent_event(self, event: AgentEvent) -> None:
        """Queue an event for display. Safe to call from worker threads."""
        logger.debug(f"{event.type}: {event.content[:200]}")
        if self._loop is None:
            return
        self._loop.call_soon_threadsafe(self._show_event, event)

    def _show_event(self, event: AgentEvent) -> None:
        data = event.data or {}
        if event.type == "agent":
            self._log(Markdown(event.content))
        elif event.type == "tool_call":
            self._log(Text.from_markup(
                f"   [#58a6ff]▶ {rich_escape(event.content)}[/#58a6ff]"
            ))
            arguments = data.get("arguments") or ""
            if arguments:
                self._log_long("arguments", arguments, style="#6e7681")
        elif event.type == "tool_result":
            self._log_long(f"← {data.get('tool', 'result')}", event.content)
        elif event.type == "error":
            self._log(Text(f"   ✗ {event.content}", style="bold #f85149"))
        elif event.type == "busy":
            self._log(Text(f"   {event.content}", style="italic #e3b341"))
        else:
            self._log(Text(f"   {event.content}", style="#8b949e"))

    # ============================================================
    # Input Handling
    # ============================================================

    @on(Input.Submitted, "#user-input")
    async def on_input_submitted(self, event: Input.Submitted) -> None:
        text = event.value.strip()
        self.query_one("#user-input", Input).value = ""

        if self._prompt is not None:
            self._answer_prompt(text)
            return

        if not text:
            return

        if text.startswith("/"):
            await self._handle_command(text)
            return

        if text.startswith("!"):
            self._invoke_tool(text[1:])
            return

        self._log(Text.from_markup(f"\n[bold #f0f6fc]❯ {rich_escape(text)}[/bold #f0f6fc]"))
        self.workspace.interaction.submit_input(text)

    def _invoke_tool(self, command: str) -> None:
        parts = command.strip().split(maxsplit=1)
        if not parts:
            self._log(Text("   Usage: !<tool> [args]", style="#e3b341"))
            return
        name = parts[0]
        arguments = parts[1] if len(parts) > 1 else ""
        self._log(Text.from_markup(f"\n[bold #f0f6fc]❯ ![/bold #f0f6fc][#58a6ff]{rich_escape(name)}[/#58a6ff]"))
        self.workspace.interaction.invoke_tool(name, arguments)

    def _require_idle(self) -> bool:
        if self.workspace.state.is_idle:
            return True
        self._log(Text(f"   {BUSY_MESSAGE}", style="italic #e3b341"))
        return False

    async def _handle_command(self, command: str):
        parts = command.split(maxsplit=1)
        cmd = parts[0].lower()
        arg = parts[1].strip() if len(parts) > 1 else ""

        if cmd == "/help":
            tbl = Table.grid(padding=(0, 2))
            tbl.add_column(style="bold #58a6ff")
            tbl.add_column(style="#8b949e")
            tbl.add_row("/help", "Show this help")
            tbl.add_row("/add <paths>", "Add files or directories to context")
            tbl.add_row("/drop <paths>", "Remove files from context")
            tbl.add_row("/context", "List files in context")
            tbl.add_row("/undo", "Undo the last applied diff")
            tbl.add_row("/run [cmd]", "Show or set the validation command")
            tbl.add_row("/reset", "Clear conversation and context")
            tbl.add_row("/quit", "Exit")
            tbl.add_row("", "")
            tbl.add_row("!<tool> [args]", "Run a tool directly (e.g. !read_file main.py)")
            tbl.add_row("", "")
            tbl.add_row("[bold #d2a8ff]Plans[/]", "Every request starts with a plan for approval (y / n)")
            tbl.add_row("[bold #3fb950]Diffs[/]", "accept / reject / edit each proposed diff")
            tbl.add_row("", "")
            tbl.add_row("Ctrl+C", "Decline prompt / Quit")
            tbl.add_row("Ctrl+L", "Clear screen")
            tbl.add_row("Ctrl+Z", "Undo last diff")
            self._log(Text(""))
            self._log(tbl)

        elif cmd == "/add":
            if not self._require_idle():
                return
            if not arg:
                self._log(Text("   Usage: /add <paths>", style="#e3b341"))
                return
            added, skipped = self.workspace.context.add_files(arg.split())
            for path in added:
                self._log(Text(f"   + {path}", style="#3fb950"))
            for reason in skipped:
                self._log(Text(f"   – {reason}", style="#6e7681"))
            if added:
                self._save_session()

        elif cmd == "/drop":
            if not self._require_idle():
                return
            if not arg:
                self._log(Text("   Usage: /drop <paths>", style="#e3b341"))
                return
            dropped = self.workspace.context.drop_files(arg.split())
            if not dropped:
                self._log(Text("   Nothing dropped", style="#6e7681"))
            for path in dropped:
                self._log(Text(f"   - {path}", style="#f85149"))
            if dropped:
                self._save_session()

        elif cmd == "/context":
            files = self.workspace.context.working_set
            if not files:
                self._log(Text("   No files in context. Use /add <paths>.", style="#6e7681"))
            else:
                self._log(Text(f"   {len(files)} file{'s' if len(files) != 1 else ''} in context:", style="#8b949e"))
                for path in files:
                    self._log(Text(f"     {path}", style="#c9d1d9"))

        elif cmd == "/undo":
            self.action_undo()

        elif cmd == "/run":
            if not arg:
                current = app_config.validation_command or "not set"
                self._log(Text(f"   Validation command: {current}", style="#8b949e"))
                return
            if not self._require_idle():
                return
            set_validation_command(arg)
            self._log(Text(f"   ✓ Validation command set: {app_config.validation_command}", style="#3fb950"))

        elif cmd == "/reset":
            self.action_reset_conversation()

        elif cmd in ("/quit", "/exit"):
            self._save_session()
            self.exit()

        else:
            self._log(Text(f"   Unknown command: {cmd}  (/help)", style="#e3b341"))

    # ============================================================
    # Actions
    # ============================================================

    def action_decline_or_quit(self) -> None:
        if self._prompt is not None:
            kind = self._prompt.kind
            self._resolve_prompt(DiffReviewOutcome.reject() if kind == "diff" else False)
            return
        task = self.workspace.interaction.current_task
        if task is not None and not task.done():
            # turns are never cancelled; only their prompts can be declined
            self._log(Text(f"   {BUSY_MESSAGE}", style="italic #e3b341"))
            return
        self._save_session()
        self.exit()

    def action_clear_screen(self) -> None:
        self._clear_output()

    def action_undo(self) -> None:
        if not self._require_idle():
            return
        for message in self.workspace.lifecycle.undo_last_diff():
            self._log(Text(f"   ↺ {message}", style="#d29922"))
        self._save_session()

    def action_reset_conversation(self) -> None:
        if not self._require_idle():
            return
        self.workspace.reset()
        self._log(Text("   ✓ Conversation and context cleared.", style="#3fb950"))


# ============================================================
# Entry Point
# ============================================================

def main():
    parser = argparse.ArgumentParser(
        description="Bedrock Pilot - Coding Agent",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py                    Run in current directory
  python main.py -d ~/my-project    Run in a specific project directory
        """,
    )
    parser.add_argument(
        "-d", "--directory",
        default=app_config.working_directory,
        help="Project directory for the agent (default: current directory)",
    )

    args = parser.parse_args()

    working_dir = os.path.abspath(args.directory)
    if not os.path.isdir(working_dir):
        print(f"Error: {working_dir} is not a directory")
        sys.exit(1)

    # Log to file so it doesn't interfere with the TUI
    logging.basicConfig(
        filename=app_config.log_file,
        level=getattr(logging, app_config.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    restarter = RestartService()
    report = run_startup_checks(working_dir, restarter)
    for message in report.messages:
        print(message)
    if report.outcome is StartupOutcome.RESTART:
        # restart() only returns when exec failed
        print("Error: restart after rollback failed")
        sys.exit(1)
    if report.outcome is StartupOutcome.ABORT:
        sys.exit(1)

    try:
        service = BedrockService()
    except BedrockError as e:
        print(f"Error: {e}")
        sys.exit(1)

    app = BedrockPilotApp(working_directory=working_dir, service=service, startup_messages=report.messages)
    app.run()

    if app.restart_requested:
        restarter.restart()
        print("Error: restart after self-update failed")
        sys.exit(1)


if __name__ == "__main__":
    main()
