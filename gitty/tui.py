"""Textual TUI for gitty."""

import logging
import threading
from collections.abc import Iterable
from pathlib import Path

from textual import events
from textual.app import App, ComposeResult
from textual.containers import Vertical
from textual.widgets import Input, Static

from gitty import views
from gitty.config import Settings
from gitty.executor import Git
from gitty.messages import Message, OperationResult
from gitty.state import (
    AppState,
    Command,
    Event,
    InputCancelled,
    InputSubmitted,
    KeyPress,
    Resize,
    initial_commands,
    update,
)

log = logging.getLogger(__name__)

SPINNER = "|/-\\"

CSS = """
Screen {
    layout: vertical;
}

#header {
    padding: 0 1;
    height: 2;
}

#body_scroll {
    height: 1fr;
    padding: 0 1;
    overflow: hidden;
}

#prompt_label {
    padding: 0 1;
    height: 1;
    text-style: bold;
}

#prompt_input {
    margin: 0 1;
}

#status_line {
    padding: 0 1;
    height: 1;
}

#command_bar {
    padding: 0 1;
    height: 1;
    color: $text-muted;
}
"""


def normalize_key(event: events.Key) -> str:
    """Map a textual key event onto the state machine's key names."""
    if event.key == "escape":
        return "esc"
    if event.key == "space":
        return "space"
    char = event.character
    if char and len(char) == 1 and char.isprintable():
        return char
    return event.key


class GittyApp(App[None]):
    """Main textual application."""

    CSS = CSS
    AUTO_FOCUS = None

    def __init__(self, repo_root: Path, settings: Settings | None = None) -> None:
        super().__init__()
        self.settings = settings or Settings()
        self.state = AppState(repo_path=str(repo_root), settings=self.settings)
        self._in_flight = 0
        self._spinner_index = 0
        self._ui_ready = False

    def compose(self) -> ComposeResult:
        yield Static("", id="header")
        with Vertical(id="body_scroll"):
            yield Static("", id="body")
        yield Static("", id="prompt_label")
        yield Input(id="prompt_input")
        yield Static("", id="status_line")
        yield Static("", id="command_bar")

    def on_mount(self) -> None:
        self.state.width = self.size.width
        self.state.height = self.size.height
        self._ui_ready = True
        self._start_commands(initial_commands(self.state))
        self._redraw()
        self.set_interval(0.25, self._refresh_status)

    def _refresh_status(self) -> None:
        # Repaint so expired status messages disappear.
        self._redraw()

    def on_resize(self, event: events.Resize) -> None:
        self._handle_event(Resize(event.size.width, event.size.height))

    def on_key(self, event: events.Key) -> None:
        if self.state.input is not None:
            if event.key == "escape":
                event.stop()
                self._handle_event(InputCancelled(self.state.input))
            return
        event.stop()
        event.prevent_default()
        self._handle_event(KeyPress(normalize_key(event)))

    def on_input_submitted(self, event: Input.Submitted) -> None:
        target = self.state.input
        if target is None:
            return
        event.input.value = ""
        self._handle_event(InputSubmitted(target, event.value))

    def _handle_event(self, event: Event) -> None:
        _, commands = update(self.state, event)
        if self.state.quit:
            self.exit()
            return
        self._start_commands(commands)
        if self._ui_ready:
            self._redraw()

    def _start_commands(self, commands: Iterable[Command]) -> None:
        for command in commands:
            self._run_command(command)

    def _run_command(self, command: Command) -> None:
        git = Git(Path(self.state.repo_path), self.settings.retry)
        self._in_flight += 1

        def runner() -> None:
            try:
                message = command.op(git, *command.args)
            except Exception as exc:
                log.exception("command %s crashed", command)
                message = OperationResult(f"{command.op.__name__} failed: {exc}", ok=False)
            if self.is_running:
                self.call_from_thread(self._receive, message)

        threading.Thread(target=runner, daemon=True).start()

    def _receive(self, message: Message) -> None:
        self._in_flight -= 1
        self._handle_event(message)

    def _redraw(self) -> None:
        state = self.state
        self.query_one("#header", Static).update(views.header(state))
        self.query_one("#body", Static).update(views.body(state))

        status = views.status_line(state)
        if self._in_flight:
            status.append(f" {SPINNER[self._spinner_index % len(SPINNER)]}", style="dim")
            self._spinner_index += 1
        self.query_one("#status_line", Static).update(status)
        self.query_one("#command_bar", Static).update(views.command_bar(state))

        label = self.query_one("#prompt_label", Static)
        prompt = self.query_one("#prompt_input", Input)
        if state.input is None:
            label.display = False
            if prompt.display:
                prompt.display = False
                prompt.value = ""
                self.set_focus(None)
            return
        label.update(views.input_prompt(state.input))
        label.display = True
        prompt.display = True
        if not prompt.has_focus:
            prompt.focus()


def run_tui(repo_root: Path, settings: Settings | None = None) -> None:
    """Run the textual TUI application."""
    GittyApp(repo_root, settings).run()
