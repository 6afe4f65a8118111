"""Interaction state machine.

All UI-relevant state lives in one :class:`AppState`. The event loop feeds
it key presses, resizes, input submissions and operation results through
:func:`update`, which returns the commands to run next. Commands are plain
descriptions (an operation plus its arguments); running them is the event
loop's job, never this module's.
"""

import dataclasses
import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeVar

from gitty import operations
from gitty.config import Settings
from gitty.hooks import HOOKS
from gitty.messages import (
    BlameLoaded,
    BranchesLoaded,
    ChangesLoaded,
    CleanPreviewLoaded,
    CommitCompleted,
    CommitDetailLoaded,
    ComparisonLoaded,
    ConflictsLoaded,
    DiffLoaded,
    HistoryLoaded,
    HooksLoaded,
    LogLoaded,
    Message,
    OperationResult,
    RebaseFinished,
    RebasePlanLoaded,
    RecentCommitsLoaded,
    ReflogLoaded,
    Reload,
    RepoSwitched,
    StashDiffLoaded,
    StashesLoaded,
    StatusLoaded,
    TagsLoaded,
)
from gitty.models import (
    BlameLine,
    Branch,
    BranchComparison,
    Change,
    Commit,
    CommitDetail,
    CommitSuggestion,
    ConflictFile,
    RebaseAction,
    RebaseCommit,
    Stash,
    Status,
    Tag,
)
from gitty.suggestions import suggest_commit_messages

log = logging.getLogger(__name__)

UI_OVERHEAD = 9
FILE_LIST_CHROME = 7
LIST_CHROME = 4

DOWN = ("j", "down")
UP = ("k", "up")

T = TypeVar("T")


class Tab(Enum):
    WORKSPACE = "workspace"
    COMMIT = "commit"
    BRANCHES = "branches"
    TOOLS = "tools"


class ToolMode(Enum):
    MENU = "menu"
    STASH = "stash"
    TAGS = "tags"
    HOOKS = "hooks"
    LOG = "log"
    REBASE = "rebase"
    CLEAN = "clean"
    CLONE = "clone"
    INIT = "init"
    UNDO = "undo"
    HISTORY = "history"
    REMOTE = "remote"


class View(Enum):
    FILES = "files"
    DIFF = "diff"
    CONFLICTS = "conflicts"
    BLAME = "blame"


class Confirm(Enum):
    """Actions that only run when invoked twice in a row."""

    DISCARD = "discard"
    RESET_COMMIT = "reset-commit"
    DELETE_BRANCH = "delete-branch"
    UNDO = "undo"
    REBASE = "rebase"
    POP_STASH = "pop-stash"
    DROP_STASH = "drop-stash"
    DELETE_TAG = "delete-tag"
    REVERT = "revert"
    CLEAN = "clean"
    PUSH = "push"
    PULL = "pull"


class InputTarget(Enum):
    COMMIT_MESSAGE = "commit-message"
    NEW_BRANCH = "new-branch"
    REBASE_COUNT = "rebase-count"
    NEW_TAG = "new-tag"
    LOG_SEARCH = "log-search"
    CLONE_URL = "clone-url"
    INIT_PATH = "init-path"


@dataclass(frozen=True)
class Command:
    """A deferred operation, run off the event loop as ``op(git, *args)``."""

    op: Callable[..., Message]
    args: tuple[Any, ...] = ()

    def __str__(self) -> str:
        return f"{self.op.__name__}{self.args!r}"


@dataclass(frozen=True)
class KeyPress:
    key: str


@dataclass(frozen=True)
class Resize:
    width: int
    height: int


@dataclass(frozen=True)
class InputSubmitted:
    target: InputTarget
    value: str


@dataclass(frozen=True)
class InputCancelled:
    target: InputTarget


Event = KeyPress | Resize | InputSubmitted | InputCancelled | Message


@dataclass(frozen=True)
class MenuItem:
    key: str
    label: str
    description: str
    mode: ToolMode | None


MENU_ITEMS: tuple[MenuItem, ...] = (
    MenuItem("l", "Log", "Browse, search and inspect commits", ToolMode.LOG),
    MenuItem("s", "Stash", "Save and restore work in progress", ToolMode.STASH),
    MenuItem("t", "Tags", "Create, delete and push tags", ToolMode.TAGS),
    MenuItem("h", "History", "View the reflog", ToolMode.HISTORY),
    MenuItem("u", "Undo", "Soft reset to an earlier commit", ToolMode.UNDO),
    MenuItem("r", "Rebase", "Interactively rewrite recent commits", ToolMode.REBASE),
    MenuItem("m", "Remote", "Push, pull and fetch", ToolMode.REMOTE),
    MenuItem("f", "Fetch", "Fetch from the default remote", None),
    MenuItem("g", "Hooks", "Install or remove git hooks", ToolMode.HOOKS),
    MenuItem("x", "Clean", "Remove untracked files", ToolMode.CLEAN),
    MenuItem("c", "Clone", "Clone a repository next to this one", ToolMode.CLONE),
    MenuItem("i", "Init", "Initialise a new repository", ToolMode.INIT),
)

REBASE_KEYS = {
    "p": RebaseAction.PICK,
    "s": RebaseAction.SQUASH,
    "r": RebaseAction.REWORD,
    "d": RebaseAction.DROP,
    "f": RebaseAction.FIXUP,
}

TAB_KEYS = {"1": Tab.WORKSPACE, "2": Tab.COMMIT, "3": Tab.BRANCHES, "4": Tab.TOOLS}


@dataclass
class Cursor:
    """Selected row and first visible row of one list."""

    index: int = 0
    offset: int = 0

    def move(self, delta: int, length: int, visible: int) -> bool:
        """Step the cursor, keeping it inside the visible window. True if it moved."""
        if length <= 0:
            self.reset()
            return False
        target = max(0, min(length - 1, self.index + delta))
        moved = target != self.index
        self.index = target
        self.follow(visible)
        return moved

    def follow(self, visible: int) -> None:
        visible = max(1, visible)
        if self.index < self.offset:
            self.offset = self.index
        elif self.index >= self.offset + visible:
            self.offset = self.index - visible + 1

    def clamp(self, length: int, visible: int) -> None:
        self.index = max(0, min(self.index, length - 1))
        self.offset = max(0, min(self.offset, self.index))
        self.follow(visible)

    def reset(self) -> None:
        self.index = 0
        self.offset = 0


@dataclass
class Cursors:
    files: Cursor = field(default_factory=Cursor)
    suggestions: Cursor = field(default_factory=Cursor)
    branches: Cursor = field(default_factory=Cursor)
    menu: Cursor = field(default_factory=Cursor)
    history: Cursor = field(default_factory=Cursor)
    reflog: Cursor = field(default_factory=Cursor)
    log: Cursor = field(default_factory=Cursor)
    stash: Cursor = field(default_factory=Cursor)
    tags: Cursor = field(default_factory=Cursor)
    hooks: Cursor = field(default_factory=Cursor)
    conflicts: Cursor = field(default_factory=Cursor)
    blame: Cursor = field(default_factory=Cursor)
    rebase: Cursor = field(default_factory=Cursor)
    clean: Cursor = field(default_factory=Cursor)


@dataclass
class AppState:
    repo_path: str
    settings: Settings = field(default_factory=Settings)
    clock: Callable[[], float] = field(default=time.monotonic, repr=False, compare=False)

    width: int = 80
    height: int = 24
    tab: Tab = Tab.WORKSPACE
    tool_mode: ToolMode = ToolMode.MENU
    view: View = View.FILES
    input: InputTarget | None = None
    confirm_action: Confirm | None = None
    quit: bool = False

    status_text: str = ""
    status_error: bool = False
    status_expires: float = 0.0

    status: Status | None = None
    changes: tuple[Change, ...] = ()
    suggestions: tuple[CommitSuggestion, ...] = ()
    recent_commits: tuple[Commit, ...] = ()
    commit_summary: CommitCompleted | None = None
    summary_scroll: int = 0

    diff_path: str = ""
    diff_text: str = ""
    diff_scroll: int = 0
    show_preview: bool = True
    conflicts: tuple[ConflictFile, ...] = ()
    blame_path: str = ""
    blame_lines: tuple[BlameLine, ...] = ()

    branches: tuple[Branch, ...] = ()
    comparison: BranchComparison | None = None

    history: tuple[Commit, ...] = ()
    reflog: tuple[Commit, ...] = ()
    log_commits: tuple[Commit, ...] = ()
    log_search: str = ""
    log_detail: CommitDetail | None = None
    log_diff: str = ""
    detail_scroll: int = 0
    rebase_plan: list[RebaseCommit] = field(default_factory=list)
    stashes: tuple[Stash, ...] = ()
    stash_diff: str = ""
    tags: tuple[Tag, ...] = ()
    installed_hooks: frozenset[str] = frozenset()
    clean_paths: tuple[str, ...] = ()

    cursors: Cursors = field(default_factory=Cursors)

    def set_status(self, text: str, error: bool = False) -> None:
        self.status_text = text
        self.status_error = error
        self.status_expires = self.clock() + self.settings.status_ttl

    def current_status(self) -> str | None:
        """Status text, or None once it has expired."""
        if self.status_text and self.clock() < self.status_expires:
            return self.status_text
        return None

    def visible_count(self, chrome: int = LIST_CHROME) -> int:
        return max(1, self.height - UI_OVERHEAD - chrome)


def _selected(items: Sequence[T], cursor: Cursor) -> T | None:
    if 0 <= cursor.index < len(items):
        return items[cursor.index]
    return None


def _step(key: str) -> int:
    if key in DOWN:
        return 1
    if key in UP:
        return -1
    return 0


def _scroll(current: int, key: str, text: str) -> int:
    limit = max(0, len(text.splitlines()) - 1)
    return max(0, min(limit, current + _step(key)))


# Reloads

_RELOADERS: dict[Reload, Callable[[AppState], Command]] = {
    Reload.CHANGES: lambda s: Command(operations.load_changes),
    Reload.STATUS: lambda s: Command(operations.load_status),
    Reload.RECENT: lambda s: Command(operations.load_recent_commits, (s.settings.limits.recent_commits,)),
    Reload.BRANCHES: lambda s: Command(operations.load_branches),
    Reload.HISTORY: lambda s: Command(operations.load_history, (s.settings.limits.history,)),
    Reload.REFLOG: lambda s: Command(operations.load_reflog, (s.settings.limits.history,)),
    Reload.LOG: lambda s: Command(operations.load_log, (s.settings.limits.log, s.log_search)),
    Reload.STASHES: lambda s: Command(operations.load_stashes),
    Reload.TAGS: lambda s: Command(operations.load_tags),
    Reload.HOOKS: lambda s: Command(operations.load_hooks),
    Reload.CONFLICTS: lambda s: Command(operations.load_conflicts),
    Reload.CLEAN: lambda s: Command(operations.load_clean_preview),
}


def reload_commands(state: AppState, *targets: Reload) -> list[Command]:
    return [_RELOADERS[target](state) for target in targets]


def initial_commands(state: AppState) -> list[Command]:
    """Commands to run once at startup and after switching repository."""
    return reload_commands(state, Reload.CHANGES, Reload.STATUS, Reload.RECENT)


# Mode transitions


def _clear_transient(state: AppState) -> None:
    state.diff_path = ""
    state.diff_text = ""
    state.diff_scroll = 0
    state.blame_path = ""
    state.blame_lines = ()
    state.cursors.blame.reset()
    state.cursors.conflicts.reset()
    state.comparison = None
    state.commit_summary = None
    state.summary_scroll = 0
    state.log_detail = None
    state.log_diff = ""
    state.detail_scroll = 0
    state.stash_diff = ""
    state.input = None


def _switch_tab(state: AppState, tab: Tab) -> list[Command]:
    _clear_transient(state)
    state.tab = tab
    if tab is Tab.WORKSPACE:
        state.view = View.FILES
        return reload_commands(state, Reload.CHANGES, Reload.STATUS)
    if tab is Tab.COMMIT:
        state.cursors.suggestions.reset()
        return reload_commands(state, Reload.CHANGES, Reload.STATUS)
    if tab is Tab.BRANCHES:
        return reload_commands(state, Reload.BRANCHES)
    state.tool_mode = ToolMode.MENU
    return []


def _set_view(state: AppState, view: View) -> None:
    _clear_transient(state)
    state.view = view


def _back_to_menu(state: AppState) -> list[Command]:
    _clear_transient(state)
    state.tool_mode = ToolMode.MENU
    return []


def _enter_tool(state: AppState, mode: ToolMode) -> list[Command]:
    _clear_transient(state)
    state.tool_mode = mode
    limits = state.settings.limits
    if mode is ToolMode.STASH:
        state.cursors.stash.reset()
        return reload_commands(state, Reload.STASHES)
    if mode is ToolMode.TAGS:
        return reload_commands(state, Reload.TAGS)
    if mode is ToolMode.HOOKS:
        return reload_commands(state, Reload.HOOKS)
    if mode is ToolMode.LOG:
        state.log_search = ""
        state.cursors.log.reset()
        return reload_commands(state, Reload.LOG)
    if mode is ToolMode.REBASE:
        state.rebase_plan = []
        state.cursors.rebase.reset()
        state.input = InputTarget.REBASE_COUNT
        state.set_status(f"How many commits to rebase? (1-{limits.rebase_max})")
        return []
    if mode is ToolMode.CLEAN:
        return reload_commands(state, Reload.CLEAN)
    if mode is ToolMode.CLONE:
        state.input = InputTarget.CLONE_URL
        return []
    if mode is ToolMode.INIT:
        state.input = InputTarget.INIT_PATH
        return []
    if mode is ToolMode.UNDO:
        return reload_commands(state, Reload.HISTORY)
    if mode is ToolMode.HISTORY:
        return reload_commands(state, Reload.REFLOG)
    if mode is ToolMode.REMOTE:
        return reload_commands(state, Reload.STATUS)
    return []


def _guarded(
    state: AppState, pending: Confirm | None, action: Confirm, prompt: str, command: Command
) -> list[Command]:
    """Arm on first invocation, dispatch on the identical second one."""
    if pending is action:
        return [command]
    if pending is None:
        state.confirm_action = action
        state.set_status(prompt)
    else:
        state.set_status("Action cancelled")
    return []


# Key handlers: (state, key, pending confirmation) -> commands

Handler = Callable[[AppState, str, Confirm | None], list[Command]]


def _diff_for_selected(state: AppState) -> list[Command]:
    change = _selected(state.changes, state.cursors.files)
    if change is None:
        state.diff_path = ""
        state.diff_text = ""
        return []
    state.diff_scroll = 0
    return [Command(operations.load_file_diff, (change.path,))]


def _files_keys(state: AppState, key: str, pending: Confirm | None) -> list[Command]:
    cursor = state.cursors.files
    change = _selected(state.changes, cursor)

    if key in DOWN or key in UP:
        if cursor.move(_step(key), len(state.changes), state.visible_count(FILE_LIST_CHROME)):
            return _diff_for_selected(state)
        return []
    if key == "a":
        return [Command(operations.stage_all)]
    if key == "r":
        return [Command(operations.unstage_all)]
    if key == "p":
        state.show_preview = not state.show_preview
        return []
    if key in ("w", "s"):
        state.diff_scroll = _scroll(state.diff_scroll, "k" if key == "w" else "j", state.diff_text)
        return []
    if key == "c":
        _set_view(state, View.CONFLICTS)
        return reload_commands(state, Reload.CONFLICTS)
    if key == "R":
        return _guarded(
            state,
            pending,
            Confirm.RESET_COMMIT,
            "Press R again to reset the last commit (changes are kept)",
            Command(operations.reset_last_commit),
        )

    if change is None:
        if key in ("space", "enter", "b", "d"):
            state.set_status("No file selected")
        return []
    if key == "space":
        return [Command(operations.toggle_staging, (change.path,))]
    if key == "enter":
        _set_view(state, View.DIFF)
        return [Command(operations.load_file_diff, (change.path,))]
    if key == "b":
        if change.untracked:
            state.set_status("Cannot blame an untracked file", error=True)
            return []
        _set_view(state, View.BLAME)
        return [Command(operations.load_blame, (change.path,))]
    if key == "d":
        return _guarded(
            state,
            pending,
            Confirm.DISCARD,
            f"Press d again to discard changes in {change.path}",
            Command(operations.discard_file, (change.path,)),
        )
    return []


def _diff_keys(state: AppState, key: str, pending: Confirm | None) -> list[Command]:
    if key == "esc":
        _set_view(state, View.FILES)
        return _diff_for_selected(state)
    if key in DOWN or key in UP:
        state.diff_scroll = _scroll(state.diff_scroll, key, state.diff_text)
    return []


def _blame_keys(state: AppState, key: str, pending: Confirm | None) -> list[Command]:
    if key == "esc":
        _set_view(state, View.FILES)
        return _diff_for_selected(state)
    if key in DOWN or key in UP:
        state.cursors.blame.move(_step(key), len(state.blame_lines), state.visible_count())
    return []


def _conflicts_keys(state: AppState, key: str, pending: Confirm | None) -> list[Command]:
    cursor = state.cursors.conflicts
    if key == "esc":
        _set_view(state, View.FILES)
        return _diff_for_selected(state)
    if key in DOWN or key in UP:
        cursor.move(_step(key), len(state.conflicts), state.visible_count())
        return []

    conflict = _selected(state.conflicts, cursor)
    if conflict is None:
        return []
    if key == "enter":
        state.view = View.DIFF
        state.diff_scroll = 0
        return [Command(operations.load_file_diff, (conflict.path,))]
    if key in ("o", "t"):
        side = "ours" if key == "o" else "theirs"
        return [Command(operations.resolve_conflict, (conflict.path, side))]
    if key == "space":
        toggled = dataclasses.replace(conflict, resolved=not conflict.resolved)
        state.conflicts = tuple(
            toggled if i == cursor.index else item for i, item in enumerate(state.conflicts)
        )
    return []


def _commit_keys(state: AppState, key: str, pending: Confirm | None) -> list[Command]:
    summary = state.commit_summary
    if summary is not None:
        if key in ("c", "esc"):
            state.commit_summary = None
            state.summary_scroll = 0
            return reload_commands(state, Reload.CHANGES, Reload.STATUS)
        if key == "p":
            return _guarded(
                state, pending, Confirm.PUSH, "Press p again to push", Command(operations.push)
            )
        if key in DOWN or key in UP:
            state.summary_scroll = _scroll(state.summary_scroll, key, summary.diff)
        return []

    cursor = state.cursors.suggestions
    if key in DOWN or key in UP:
        cursor.move(_step(key), len(state.suggestions), state.visible_count())
        return []
    if key == "c":
        state.input = InputTarget.COMMIT_MESSAGE
        return []
    if key == "enter":
        suggestion = _selected(state.suggestions, cursor)
        if suggestion is None:
            state.set_status("No suggestions, press c to write a message")
            return []
        return [Command(operations.commit, (suggestion.message,))]
    return []


def _branches_keys(state: AppState, key: str, pending: Confirm | None) -> list[Command]:
    cursor = state.cursors.branches
    if key == "esc":
        state.comparison = None
        return []
    if key in DOWN or key in UP:
        cursor.move(_step(key), len(state.branches), state.visible_count())
        return []
    if key == "n":
        state.input = InputTarget.NEW_BRANCH
        return []
    if key == "r":
        return reload_commands(state, Reload.BRANCHES)

    branch = _selected(state.branches, cursor)
    if branch is None:
        return []
    if key == "enter":
        if branch.current:
            state.set_status(f"Already on {branch.name}")
            return []
        return [Command(operations.switch_branch, (branch.name,))]
    if key == "d":
        if branch.current:
            state.set_status("Cannot delete the current branch", error=True)
            return []
        if branch.remote:
            state.set_status("Cannot delete a remote branch here", error=True)
            return []
        return _guarded(
            state,
            pending,
            Confirm.DELETE_BRANCH,
            f"Press d again to delete {branch.name}",
            Command(operations.delete_branch, (branch.name,)),
        )
    if key == "c":
        if branch.current:
            state.set_status("Select another branch to compare with")
            return []
        return [Command(operations.compare_branch, (branch.name,))]
    return []


def _remote_action(state: AppState, key: str, pending: Confirm | None) -> list[Command] | None:
    """Push/pull shortcuts shared by the menu and remote mode."""
    if key == "push":
        return _guarded(
            state, pending, Confirm.PUSH, "Press p again to push", Command(operations.push)
        )
    if key == "pull":
        return _guarded(
            state, pending, Confirm.PULL, "Press again to pull", Command(operations.pull)
        )
    if key == "fetch":
        state.set_status("Fetching...")
        return [Command(operations.fetch)]
    return None


def _select_menu_item(state: AppState, item: MenuItem, pending: Confirm | None) -> list[Command]:
    if item.mode is None:
        return _remote_action(state, "fetch", pending) or []
    return _enter_tool(state, item.mode)


def _menu_keys(state: AppState, key: str, pending: Confirm | None) -> list[Command]:
    cursor = state.cursors.menu
    if key in DOWN or key in UP:
        cursor.move(_step(key), len(MENU_ITEMS), state.visible_count())
        return []
    if key == "enter":
        item = _selected(MENU_ITEMS, cursor)
        return _select_menu_item(state, item, pending) if item else []
    if key == "p":
        return _remote_action(state, "push", pending) or []
    if key == "P":
        return _remote_action(state, "pull", pending) or []
    for item in MENU_ITEMS:
        if item.key == key:
            return _select_menu_item(state, item, pending)
    return []


def _log_keys(state: AppState, key: str, pending: Confirm | None) -> list[Command]:
    if state.log_detail is not None:
        if key == "esc":
            state.log_detail = None
            state.log_diff = ""
            state.detail_scroll = 0
        elif key in DOWN or key in UP:
            state.detail_scroll = _scroll(state.detail_scroll, key, state.log_diff)
        return []

    cursor = state.cursors.log
    if key == "esc":
        return _back_to_menu(state)
    if key in DOWN or key in UP:
        cursor.move(_step(key), len(state.log_commits), state.visible_count())
        return []
    if key == "/":
        state.input = InputTarget.LOG_SEARCH
        return []

    commit = _selected(state.log_commits, cursor)
    if commit is None:
        return []
    if key == "enter":
        return [Command(operations.load_commit_detail, (commit.hash,))]
    if key == "c":
        return [Command(operations.cherry_pick, (commit.hash,))]
    if key == "R":
        return _guarded(
            state,
            pending,
            Confirm.REVERT,
            f"Press R again to revert {commit.hash}",
            Command(operations.revert, (commit.hash,)),
        )
    return []


def _stash_keys(state: AppState, key: str, pending: Confirm | None) -> list[Command]:
    cursor = state.cursors.stash
    if key == "esc":
        return _back_to_menu(state)
    if key in DOWN or key in UP:
        if cursor.move(_step(key), len(state.stashes), state.visible_count()):
            stash = _selected(state.stashes, cursor)
            if stash is not None:
                return [Command(operations.load_stash_diff, (stash.index,))]
        return []
    if key == "s":
        return [Command(operations.stash_push)]

    stash = _selected(state.stashes, cursor)
    if stash is None:
        if key in ("p", "enter", "a", "d"):
            state.set_status("No stashes")
        return []
    if key in ("p", "enter"):
        return _guarded(
            state,
            pending,
            Confirm.POP_STASH,
            f"Press again to pop {stash.ref}",
            Command(operations.stash_pop, (stash.index,)),
        )
    if key == "a":
        return [Command(operations.stash_apply, (stash.index,))]
    if key == "d":
        return _guarded(
            state,
            pending,
            Confirm.DROP_STASH,
            f"Press d again to drop {stash.ref}",
            Command(operations.stash_drop, (stash.index,)),
        )
    return []


def _tags_keys(state: AppState, key: str, pending: Confirm | None) -> list[Command]:
    cursor = state.cursors.tags
    if key == "esc":
        return _back_to_menu(state)
    if key in DOWN or key in UP:
        cursor.move(_step(key), len(state.tags), state.visible_count())
        return []
    if key == "n":
        state.input = InputTarget.NEW_TAG
        return []
    if key == "P":
        return [Command(operations.push_all_tags)]

    tag = _selected(state.tags, cursor)
    if tag is None:
        return []
    if key == "d":
        return _guarded(
            state,
            pending,
            Confirm.DELETE_TAG,
            f"Press d again to delete tag {tag.name}",
            Command(operations.delete_tag, (tag.name,)),
        )
    if key == "p":
        return [Command(operations.push_tag, (tag.name,))]
    return []


def _hooks_keys(state: AppState, key: str, pending: Confirm | None) -> list[Command]:
    cursor = state.cursors.hooks
    if key == "esc":
        return _back_to_menu(state)
    if key in DOWN or key in UP:
        cursor.move(_step(key), len(HOOKS), state.visible_count())
        return []
    spec = _selected(HOOKS, cursor)
    if spec is None:
        return []
    if key in ("enter", "i"):
        return [Command(operations.install_hook, (spec.key,))]
    if key == "r":
        return [Command(operations.remove_hook, (spec.key,))]
    return []


def _undo_keys(state: AppState, key: str, pending: Confirm | None) -> list[Command]:
    cursor = state.cursors.history
    if key == "esc":
        return _back_to_menu(state)
    if key in DOWN or key in UP:
        cursor.move(_step(key), len(state.history), state.visible_count())
        return []
    commit = _selected(state.history, cursor)
    if key == "enter" and commit is not None:
        return _guarded(
            state,
            pending,
            Confirm.UNDO,
            f"Press enter again to soft reset to {commit.hash}",
            Command(operations.undo_to_commit, (commit.hash,)),
        )
    return []


def _history_keys(state: AppState, key: str, pending: Confirm | None) -> list[Command]:
    if key == "esc":
        return _back_to_menu(state)
    if key in DOWN or key in UP:
        state.cursors.reflog.move(_step(key), len(state.reflog), state.visible_count())
    return []


def _rebase_keys(state: AppState, key: str, pending: Confirm | None) -> list[Command]:
    cursor = state.cursors.rebase
    if key == "esc":
        return _back_to_menu(state)
    if key in DOWN or key in UP:
        cursor.move(_step(key), len(state.rebase_plan), state.visible_count())
        return []
    if key == "n":
        state.input = InputTarget.REBASE_COUNT
        return []
    if key == "A":
        return [Command(operations.abort_rebase)]
    if key == "C":
        return [Command(operations.continue_rebase)]

    entry = _selected(state.rebase_plan, cursor)
    if entry is None:
        return []
    if key in REBASE_KEYS:
        entry.action = REBASE_KEYS[key]
        return []
    if key == "enter":
        snapshot = tuple(dataclasses.replace(item) for item in state.rebase_plan)
        return _guarded(
            state,
            pending,
            Confirm.REBASE,
            f"Press enter again to rebase {len(snapshot)} commits",
            Command(operations.execute_rebase, (snapshot,)),
        )
    return []


def _remote_keys(state: AppState, key: str, pending: Confirm | None) -> list[Command]:
    if key == "esc":
        return _back_to_menu(state)
    action = {"p": "push", "l": "pull", "f": "fetch"}.get(key)
    if action is None:
        return []
    return _remote_action(state, action, pending) or []


def _clean_keys(state: AppState, key: str, pending: Confirm | None) -> list[Command]:
    if key == "esc":
        return _back_to_menu(state)
    if key in DOWN or key in UP:
        state.cursors.clean.move(_step(key), len(state.clean_paths), state.visible_count())
        return []
    if key == "r":
        return reload_commands(state, Reload.CLEAN)
    if key in ("d", "enter"):
        if not state.clean_paths:
            state.set_status("Nothing to clean")
            return []
        return _guarded(
            state,
            pending,
            Confirm.CLEAN,
            f"Press again to delete {len(state.clean_paths)} untracked paths",
            Command(operations.clean_untracked),
        )
    return []


def _clone_keys(state: AppState, key: str, pending: Confirm | None) -> list[Command]:
    if key == "esc":
        return _back_to_menu(state)
    if key == "enter":
        state.input = InputTarget.CLONE_URL
    return []


def _init_keys(state: AppState, key: str, pending: Confirm | None) -> list[Command]:
    if key == "esc":
        return _back_to_menu(state)
    if key == "enter":
        state.input = InputTarget.INIT_PATH
    return []


Route = tuple[Tab, View | ToolMode | None]

HANDLERS: dict[Route, Handler] = {
    (Tab.WORKSPACE, View.FILES): _files_keys,
    (Tab.WORKSPACE, View.DIFF): _diff_keys,
    (Tab.WORKSPACE, View.BLAME): _blame_keys,
    (Tab.WORKSPACE, View.CONFLICTS): _conflicts_keys,
    (Tab.COMMIT, None): _commit_keys,
    (Tab.BRANCHES, None): _branches_keys,
    (Tab.TOOLS, ToolMode.MENU): _menu_keys,
    (Tab.TOOLS, ToolMode.LOG): _log_keys,
    (Tab.TOOLS, ToolMode.STASH): _stash_keys,
    (Tab.TOOLS, ToolMode.TAGS): _tags_keys,
    (Tab.TOOLS, ToolMode.HOOKS): _hooks_keys,
    (Tab.TOOLS, ToolMode.UNDO): _undo_keys,
    (Tab.TOOLS, ToolMode.HISTORY): _history_keys,
    (Tab.TOOLS, ToolMode.REBASE): _rebase_keys,
    (Tab.TOOLS, ToolMode.REMOTE): _remote_keys,
    (Tab.TOOLS, ToolMode.CLEAN): _clean_keys,
    (Tab.TOOLS, ToolMode.CLONE): _clone_keys,
    (Tab.TOOLS, ToolMode.INIT): _init_keys,
}


def route(state: AppState) -> Route:
    if state.tab is Tab.WORKSPACE:
        return (state.tab, state.view)
    if state.tab is Tab.TOOLS:
        return (state.tab, state.tool_mode)
    return (state.tab, None)


def _handle_key(state: AppState, key: str) -> list[Command]:
    if state.input is not None:
        if key == "esc":
            return _handle_cancel(state, state.input)
        return []

    pending = state.confirm_action
    state.confirm_action = None

    if key in ("q", "ctrl+c"):
        state.quit = True
        return []
    if key == "esc" and pending is not None:
        state.set_status("Action cancelled")
        return []
    if key in TAB_KEYS:
        return _switch_tab(state, TAB_KEYS[key])
    return HANDLERS[route(state)](state, key, pending)


# Text input


def _handle_submit(state: AppState, target: InputTarget, value: str) -> list[Command]:
    state.input = None
    value = value.strip()

    if target is InputTarget.COMMIT_MESSAGE:
        if not value:
            state.set_status("Commit message cannot be empty", error=True)
            return []
        return [Command(operations.commit, (value,))]
    if target is InputTarget.NEW_BRANCH:
        return [Command(operations.create_branch, (value,))] if value else []
    if target is InputTarget.NEW_TAG:
        return [Command(operations.create_tag, (value,))] if value else []
    if target is InputTarget.LOG_SEARCH:
        state.log_search = value
        state.cursors.log.reset()
        return reload_commands(state, Reload.LOG)
    if target is InputTarget.REBASE_COUNT:
        limit = state.settings.limits.rebase_max
        try:
            count = int(value)
        except ValueError:
            count = 0
        if not 1 <= count <= limit:
            state.input = InputTarget.REBASE_COUNT
            state.set_status(f"Invalid count, enter a number between 1 and {limit}", error=True)
            return []
        state.rebase_plan = []
        state.cursors.rebase.reset()
        return [Command(operations.load_rebase_plan, (count,))]
    if target is InputTarget.CLONE_URL:
        if not value:
            return _back_to_menu(state)
        state.set_status(f"Cloning {value}...")
        return [Command(operations.clone_repo, (value,))]
    if target is InputTarget.INIT_PATH:
        if not value:
            return _back_to_menu(state)
        return [Command(operations.init_repo, (value,))]
    return []


def _handle_cancel(state: AppState, target: InputTarget) -> list[Command]:
    state.input = None
    if target in (InputTarget.CLONE_URL, InputTarget.INIT_PATH):
        return _back_to_menu(state)
    if target is InputTarget.REBASE_COUNT and not state.rebase_plan:
        return _back_to_menu(state)
    return []


# Result reconciliation


def _on_changes(state: AppState, msg: ChangesLoaded) -> list[Command]:
    state.changes = msg.changes
    state.cursors.files.clamp(len(msg.changes), state.visible_count(FILE_LIST_CHROME))
    state.suggestions = tuple(suggest_commit_messages(msg.changes))
    state.cursors.suggestions.clamp(len(state.suggestions), state.visible_count())
    if state.tab is Tab.WORKSPACE and state.view is View.FILES:
        return _diff_for_selected(state)
    return []


def _on_status(state: AppState, msg: StatusLoaded) -> list[Command]:
    state.status = msg.status
    return []


def _on_branches(state: AppState, msg: BranchesLoaded) -> list[Command]:
    state.branches = msg.branches
    state.cursors.branches.clamp(len(msg.branches), state.visible_count())
    return []


def _on_recent(state: AppState, msg: RecentCommitsLoaded) -> list[Command]:
    state.recent_commits = msg.commits
    return []


def _on_history(state: AppState, msg: HistoryLoaded) -> list[Command]:
    state.history = msg.commits
    state.cursors.history.clamp(len(msg.commits), state.visible_count())
    return []


def _on_reflog(state: AppState, msg: ReflogLoaded) -> list[Command]:
    state.reflog = msg.entries
    state.cursors.reflog.clamp(len(msg.entries), state.visible_count())
    return []


def _on_log(state: AppState, msg: LogLoaded) -> list[Command]:
    state.log_commits = msg.commits
    state.cursors.log.clamp(len(msg.commits), state.visible_count())
    if msg.search and not msg.commits:
        state.set_status(f"No commits match '{msg.search}'")
    return []


def _on_commit_detail(state: AppState, msg: CommitDetailLoaded) -> list[Command]:
    if state.tab is Tab.TOOLS and state.tool_mode is ToolMode.LOG:
        state.log_detail = msg.detail
        state.log_diff = msg.diff
        state.detail_scroll = 0
    return []


def _on_diff(state: AppState, msg: DiffLoaded) -> list[Command]:
    if msg.path != state.diff_path:
        state.diff_scroll = 0
    state.diff_path = msg.path
    state.diff_text = msg.text
    state.diff_scroll = min(state.diff_scroll, max(0, len(msg.text.splitlines()) - 1))
    return []


def _on_conflicts(state: AppState, msg: ConflictsLoaded) -> list[Command]:
    state.conflicts = msg.conflicts
    state.cursors.conflicts.clamp(len(msg.conflicts), state.visible_count())
    if not msg.conflicts and state.view is View.CONFLICTS:
        state.set_status("No conflicts")
    return []


def _on_blame(state: AppState, msg: BlameLoaded) -> list[Command]:
    if msg.path != state.blame_path:
        state.cursors.blame.reset()
    state.blame_path = msg.path
    state.blame_lines = msg.lines
    state.cursors.blame.clamp(len(msg.lines), state.visible_count())
    return []


def _on_comparison(state: AppState, msg: ComparisonLoaded) -> list[Command]:
    if state.tab is Tab.BRANCHES:
        state.comparison = msg.comparison
    return []


def _on_rebase_plan(state: AppState, msg: RebasePlanLoaded) -> list[Command]:
    state.rebase_plan = list(msg.plan)
    state.cursors.rebase.clamp(len(state.rebase_plan), state.visible_count())
    if not state.rebase_plan:
        state.set_status("No commits to rebase", error=True)
    return []


def _on_stashes(state: AppState, msg: StashesLoaded) -> list[Command]:
    state.stashes = msg.stashes
    state.cursors.stash.clamp(len(msg.stashes), state.visible_count())
    stash = _selected(msg.stashes, state.cursors.stash)
    if stash is None:
        state.stash_diff = ""
        return []
    if state.tab is Tab.TOOLS and state.tool_mode is ToolMode.STASH:
        return [Command(operations.load_stash_diff, (stash.index,))]
    return []


def _on_stash_diff(state: AppState, msg: StashDiffLoaded) -> list[Command]:
    stash = _selected(state.stashes, state.cursors.stash)
    if stash is not None and stash.index == msg.index:
        state.stash_diff = msg.text
    return []


def _on_tags(state: AppState, msg: TagsLoaded) -> list[Command]:
    state.tags = msg.tags
    state.cursors.tags.clamp(len(msg.tags), state.visible_count())
    return []


def _on_hooks(state: AppState, msg: HooksLoaded) -> list[Command]:
    state.installed_hooks = msg.installed
    return []


def _on_clean_preview(state: AppState, msg: CleanPreviewLoaded) -> list[Command]:
    state.clean_paths = msg.paths
    state.cursors.clean.clamp(len(msg.paths), state.visible_count())
    return []


def _on_commit(state: AppState, msg: CommitCompleted) -> list[Command]:
    state.commit_summary = msg
    state.summary_scroll = 0
    state.set_status(f"Committed {msg.hash}: {msg.message}")
    return reload_commands(state, Reload.CHANGES, Reload.STATUS, Reload.RECENT)


def _on_rebase_finished(state: AppState, msg: RebaseFinished) -> list[Command]:
    state.set_status(msg.text, error=not msg.ok)
    if msg.ok:
        state.rebase_plan = []
        state.cursors.rebase.reset()
        return reload_commands(state, Reload.CHANGES, Reload.STATUS, Reload.HISTORY)
    return reload_commands(state, Reload.CHANGES, Reload.STATUS)


def _on_repo_switched(state: AppState, msg: RepoSwitched) -> list[Command]:
    fresh = AppState(
        repo_path=msg.path,
        settings=state.settings,
        clock=state.clock,
        width=state.width,
        height=state.height,
    )
    for item in dataclasses.fields(AppState):
        setattr(state, item.name, getattr(fresh, item.name))
    state.set_status(f"Switched to {msg.path}")
    return initial_commands(state)


def _on_operation(state: AppState, msg: OperationResult) -> list[Command]:
    state.set_status(msg.text, error=not msg.ok)
    if not msg.ok:
        return []
    return reload_commands(state, *msg.reload)


RECONCILERS: dict[type[Message], Callable[[AppState, Any], list[Command]]] = {
    ChangesLoaded: _on_changes,
    StatusLoaded: _on_status,
    BranchesLoaded: _on_branches,
    RecentCommitsLoaded: _on_recent,
    HistoryLoaded: _on_history,
    ReflogLoaded: _on_reflog,
    LogLoaded: _on_log,
    CommitDetailLoaded: _on_commit_detail,
    DiffLoaded: _on_diff,
    ConflictsLoaded: _on_conflicts,
    BlameLoaded: _on_blame,
    ComparisonLoaded: _on_comparison,
    RebasePlanLoaded: _on_rebase_plan,
    StashesLoaded: _on_stashes,
    StashDiffLoaded: _on_stash_diff,
    TagsLoaded: _on_tags,
    HooksLoaded: _on_hooks,
    CleanPreviewLoaded: _on_clean_preview,
    CommitCompleted: _on_commit,
    RebaseFinished: _on_rebase_finished,
    RepoSwitched: _on_repo_switched,
    OperationResult: _on_operation,
}


def update(state: AppState, event: Event) -> tuple[AppState, list[Command]]:
    """Apply one event to the state and return the commands it triggers."""
    if isinstance(event, KeyPress):
        commands = _handle_key(state, event.key)
    elif isinstance(event, Resize):
        state.width = event.width
        state.height = event.height
        commands = []
    elif isinstance(event, InputSubmitted):
        commands = _handle_submit(state, event.target, event.value)
    elif isinstance(event, InputCancelled):
        commands = _handle_cancel(state, event.target)
    else:
        commands = RECONCILERS[type(event)](state, event)

    for command in commands:
        log.debug("dispatch %s", command)
    return state, commands
