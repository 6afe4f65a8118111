"""Render AppState into rich Text for the TUI."""

from collections.abc import Callable, Sequence
from pathlib import Path
from typing import TypeVar

from rich.text import Text

from gitty.hooks import HOOKS
from gitty.state import (
    FILE_LIST_CHROME,
    MENU_ITEMS,
    AppState,
    Cursor,
    InputTarget,
    Tab,
    ToolMode,
    View,
    route,
)

T = TypeVar("T")

TAB_LABELS = {
    Tab.WORKSPACE: "1 Workspace",
    Tab.COMMIT: "2 Commit",
    Tab.BRANCHES: "3 Branches",
    Tab.TOOLS: "4 Tools",
}

COMMAND_BARS: dict[tuple[Tab, object], str] = {
    (Tab.WORKSPACE, View.FILES): "space: stage  a: add all  r: unstage all  enter: diff  b: blame  d: discard  R: undo commit  c: conflicts  p: preview",
    (Tab.WORKSPACE, View.DIFF): "j/k: scroll  esc: back",
    (Tab.WORKSPACE, View.BLAME): "j/k: move  esc: back",
    (Tab.WORKSPACE, View.CONFLICTS): "enter: diff  o: ours  t: theirs  space: mark resolved  esc: back",
    (Tab.COMMIT, None): "j/k: select  enter: commit suggestion  c: custom message",
    (Tab.BRANCHES, None): "enter: switch  n: new  d: delete  c: compare  r: refresh  esc: close",
    (Tab.TOOLS, ToolMode.MENU): "enter: open  l s t h u r m f g x c i  p: push  P: pull",
    (Tab.TOOLS, ToolMode.LOG): "enter: details  /: search  c: cherry-pick  R: revert  esc: back",
    (Tab.TOOLS, ToolMode.STASH): "s: stash  p/enter: pop  a: apply  d: drop  esc: back",
    (Tab.TOOLS, ToolMode.TAGS): "n: new  d: delete  p: push  P: push all  esc: back",
    (Tab.TOOLS, ToolMode.HOOKS): "enter: install  r: remove  esc: back",
    (Tab.TOOLS, ToolMode.UNDO): "enter: soft reset here  esc: back",
    (Tab.TOOLS, ToolMode.HISTORY): "j/k: move  esc: back",
    (Tab.TOOLS, ToolMode.REBASE): "p/s/r/d/f: action  enter: run  n: count  A: abort  C: continue  esc: back",
    (Tab.TOOLS, ToolMode.REMOTE): "p: push  l: pull  f: fetch  esc: back",
    (Tab.TOOLS, ToolMode.CLEAN): "d/enter: clean  r: refresh  esc: back",
    (Tab.TOOLS, ToolMode.CLONE): "enter: url  esc: back",
    (Tab.TOOLS, ToolMode.INIT): "enter: path  esc: back",
}

INPUT_PROMPTS = {
    InputTarget.COMMIT_MESSAGE: "Commit message:",
    InputTarget.NEW_BRANCH: "New branch name:",
    InputTarget.REBASE_COUNT: "Number of commits to rebase:",
    InputTarget.NEW_TAG: "Tag name (add a message for an annotated tag):",
    InputTarget.LOG_SEARCH: "Search commit messages:",
    InputTarget.CLONE_URL: "Repository URL:",
    InputTarget.INIT_PATH: "Directory to initialise:",
}

CODE_STYLES = {
    "M": "yellow",
    "A": "green",
    "D": "red",
    "R": "cyan",
    "C": "cyan",
    "T": "yellow",
    "?": "magenta",
    "U": "bold red",
}


def command_bar(state: AppState) -> Text:
    if state.tab is Tab.COMMIT and state.commit_summary is not None:
        return Text("p: push  c/esc: continue  j/k: scroll  |  q: quit")
    return Text(f"{COMMAND_BARS.get(route(state), '')}  |  q: quit")


def header(state: AppState) -> Text:
    text = Text()
    text.append(Path(state.repo_path).name or state.repo_path, style="bold")
    status = state.status
    if status is not None:
        text.append(f"  {status.branch}", style="cyan")
        if status.upstream:
            text.append(f" -> {status.upstream}", style="dim")
        if status.tracking_unknown:
            text.append("  ?tracking", style="yellow")
        elif status.ahead or status.behind:
            text.append(f"  {status.ahead}↑ {status.behind}↓")
        if status.clean:
            text.append("  clean", style="green")
        else:
            text.append(
                f"  {status.staged_files} staged  {status.unstaged_files} modified"
                f"  {status.untracked_files} untracked",
                style="yellow",
            )
    text.append("\n")
    for tab, label in TAB_LABELS.items():
        text.append(f" {label} ", style="reverse bold" if tab is state.tab else "dim")
        text.append(" ")
    return text


def status_line(state: AppState) -> Text:
    message = state.current_status()
    if not message:
        return Text("")
    style = "red" if state.status_error else "green"
    if state.confirm_action is not None:
        style = "bold yellow"
    return Text(message, style=style)


def input_prompt(target: InputTarget | None) -> Text:
    return Text(INPUT_PROMPTS.get(target, "") if target else "")


def _window(items: Sequence[T], cursor: Cursor, visible: int) -> list[tuple[int, T]]:
    start = min(cursor.offset, max(0, len(items) - 1))
    return list(enumerate(items))[start : start + visible]


def _list(
    text: Text,
    items: Sequence[T],
    cursor: Cursor,
    visible: int,
    fmt: Callable[[T], Text | str],
    empty: str,
) -> None:
    if not items:
        text.append(f"  {empty}\n", style="dim")
        return
    for index, item in _window(items, cursor, visible):
        selected = index == cursor.index
        text.append("> " if selected else "  ", style="bold cyan")
        line = fmt(item)
        if isinstance(line, str):
            line = Text(line)
        if selected:
            line.stylize("bold")
        text.append_text(line)
        text.append("\n")


def _diff_text(diff: str, scroll: int, height: int) -> Text:
    text = Text()
    for line in diff.splitlines()[scroll : scroll + max(1, height)]:
        style = ""
        if line.startswith("+") and not line.startswith("+++"):
            style = "green"
        elif line.startswith("-") and not line.startswith("---"):
            style = "red"
        elif line.startswith("@@"):
            style = "cyan"
        text.append(line + "\n", style=style)
    return text


def _change_line(change) -> Text:
    line = Text()
    for char in change.code:
        line.append(char, style=CODE_STYLES.get(char, ""))
    line.append(f" {change.path}")
    return line


def _commit_line(commit) -> str:
    who = f"  {commit.author}" if commit.author else ""
    return f"{commit.hash}  {commit.subject}{who}  ({commit.date})"


def _workspace(state: AppState) -> Text:
    text = Text()
    height = state.visible_count()
    if state.view is View.FILES:
        _list(
            text,
            state.changes,
            state.cursors.files,
            state.visible_count(FILE_LIST_CHROME),
            _change_line,
            "Working tree clean",
        )
        if state.recent_commits:
            text.append("\nRecent commits\n", style="bold")
            for commit in state.recent_commits:
                text.append(f"  {_commit_line(commit)}\n", style="dim")
        if state.show_preview and state.diff_text:
            text.append(f"\n{state.diff_path}\n", style="bold")
            text.append_text(_diff_text(state.diff_text, state.diff_scroll, height))
    elif state.view is View.DIFF:
        text.append(f"{state.diff_path}\n", style="bold")
        if state.diff_text:
            text.append_text(_diff_text(state.diff_text, state.diff_scroll, height + 4))
        else:
            text.append("  No changes\n", style="dim")
    elif state.view is View.BLAME:
        text.append(f"Blame: {state.blame_path}\n", style="bold")
        _list(
            text,
            state.blame_lines,
            state.cursors.blame,
            height,
            lambda b: f"{b.hash} {b.author[:14]:14} {b.date} {b.line:5} {b.content}",
            "Loading blame...",
        )
    else:
        text.append("Conflicts\n", style="bold")
        _list(
            text,
            state.conflicts,
            state.cursors.conflicts,
            height,
            lambda c: f"[{'x' if c.resolved else ' '}] {c.path}",
            "No conflicts",
        )
    return text


def _commit_tab(state: AppState) -> Text:
    text = Text()
    summary = state.commit_summary
    if summary is not None:
        text.append(f"Committed {summary.hash}\n", style="bold green")
        text.append(f"{summary.message}\n\n")
        for path in summary.files:
            text.append(f"  {path}\n")
        text.append("\n")
        text.append_text(_diff_text(summary.diff, state.summary_scroll, state.visible_count()))
        return text

    staged = [change for change in state.changes if change.staged]
    text.append(f"Staged files ({len(staged)})\n", style="bold")
    for change in staged:
        text.append_text(_change_line(change))
        text.append("\n")
    text.append("\nSuggestions\n", style="bold")
    _list(
        text,
        state.suggestions,
        state.cursors.suggestions,
        state.visible_count(),
        lambda s: s.message,
        "No changes to describe",
    )
    return text


def _branches_tab(state: AppState) -> Text:
    text = Text()
    comparison = state.comparison
    if comparison is not None:
        text.append(f"{comparison.source} vs {comparison.target}\n", style="bold")
        text.append(f"\nAhead ({len(comparison.ahead)})\n", style="green")
        for commit in comparison.ahead:
            text.append(f"  {_commit_line(commit)}\n")
        text.append(f"\nBehind ({len(comparison.behind)})\n", style="red")
        for commit in comparison.behind:
            text.append(f"  {_commit_line(commit)}\n")
        text.append(f"\nFiles ({len(comparison.files)})\n", style="bold")
        for path in comparison.files:
            text.append(f"  {path}\n")
        return text

    def fmt(branch) -> Text:
        line = Text("* " if branch.current else "  ", style="green")
        line.append(branch.name, style="red" if branch.remote else ("green" if branch.current else ""))
        if branch.upstream:
            line.append(f"  [{branch.upstream}", style="dim")
            if branch.tracking_unknown:
                line.append(": ?", style="yellow")
            elif branch.ahead or branch.behind:
                line.append(f": {branch.ahead}↑ {branch.behind}↓", style="dim")
            line.append("]", style="dim")
        return line

    _list(text, state.branches, state.cursors.branches, state.visible_count(), fmt, "No branches")
    return text


def _tools_tab(state: AppState) -> Text:
    text = Text()
    mode = state.tool_mode
    height = state.visible_count()
    text.append(f"{mode.value.title()}\n", style="bold")

    if mode is ToolMode.MENU:
        _list(
            text,
            MENU_ITEMS,
            state.cursors.menu,
            len(MENU_ITEMS),
            lambda m: f"[{m.key}] {m.label:8} {m.description}",
            "",
        )
    elif mode is ToolMode.LOG:
        if state.log_detail is not None:
            detail = state.log_detail
            text.append(f"{detail.hash}\n", style="yellow")
            text.append(f"{detail.author} <{detail.email}>  {detail.date}\n")
            text.append(f"\n{detail.subject}\n", style="bold")
            if detail.body:
                text.append(f"\n{detail.body}\n")
            text.append(
                f"\n{len(detail.files)} files, +{detail.insertions} -{detail.deletions}\n", style="dim"
            )
            text.append_text(_diff_text(state.log_diff, state.detail_scroll, height))
        else:
            if state.log_search:
                text.append(f"matching '{state.log_search}'\n", style="dim")
            _list(text, state.log_commits, state.cursors.log, height, _commit_line, "No commits")
    elif mode is ToolMode.STASH:
        _list(
            text,
            state.stashes,
            state.cursors.stash,
            height,
            lambda s: f"{s.ref}  {s.message}  ({s.date})",
            "No stashes",
        )
        if state.stash_diff:
            text.append("\n")
            text.append_text(_diff_text(state.stash_diff, 0, height))
    elif mode is ToolMode.TAGS:
        _list(
            text,
            state.tags,
            state.cursors.tags,
            height,
            lambda t: f"{t.name}  {t.target}  {t.date}" + (f"  {t.message}" if t.annotated else ""),
            "No tags",
        )
    elif mode is ToolMode.HOOKS:
        _list(
            text,
            HOOKS,
            state.cursors.hooks,
            height,
            lambda h: f"[{'x' if h.key in state.installed_hooks else ' '}] {h.key:22} {h.filename:12} {h.description}",
            "",
        )
    elif mode is ToolMode.UNDO:
        _list(text, state.history, state.cursors.history, height, _commit_line, "No commits")
    elif mode is ToolMode.HISTORY:
        _list(text, state.reflog, state.cursors.reflog, height, _commit_line, "Reflog is empty")
    elif mode is ToolMode.REBASE:
        _list(
            text,
            state.rebase_plan,
            state.cursors.rebase,
            height,
            lambda r: f"{r.action.value:7} {r.hash}  {r.subject}",
            "Enter a commit count to build a plan",
        )
    elif mode is ToolMode.REMOTE:
        if state.status is not None:
            text.append(f"{state.status.branch} -> {state.status.upstream or 'no upstream'}\n")
            text.append(f"{state.status.ahead} ahead, {state.status.behind} behind\n")
    elif mode is ToolMode.CLEAN:
        _list(text, state.clean_paths, state.cursors.clean, height, str, "Nothing to clean")
    elif mode is ToolMode.CLONE:
        text.append("Clones into the directory that contains this repository.\n", style="dim")
    elif mode is ToolMode.INIT:
        text.append("Relative paths are created beside this repository.\n", style="dim")
    return text


def body(state: AppState) -> Text:
    if state.tab is Tab.WORKSPACE:
        return _workspace(state)
    if state.tab is Tab.COMMIT:
        return _commit_tab(state)
    if state.tab is Tab.BRANCHES:
        return _branches_tab(state)
    return _tools_tab(state)
