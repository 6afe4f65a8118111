"""Interactive rebase without an interactive editor.

The plan is written to a temporary todo file and git is pointed at it
through ``GIT_SEQUENCE_EDITOR``; reworded and squashed messages are kept
as-is via ``GIT_EDITOR=true``.
"""

import logging
import os
import shlex
import tempfile
from collections.abc import Sequence
from pathlib import Path

from gitty.executor import CommandResult, Git
from gitty.models import RebaseCommit

log = logging.getLogger(__name__)


def serialize_plan(plan: Sequence[RebaseCommit]) -> str:
    """Render a newest-first plan as a git todo list, oldest first."""
    lines = [f"{entry.action.value} {entry.hash} {entry.subject}" for entry in reversed(plan)]
    return "\n".join(lines) + "\n"


def editor_env(todo_path: Path) -> dict[str, str]:
    return {
        "GIT_SEQUENCE_EDITOR": f"cp {shlex.quote(str(todo_path))}",
        "GIT_EDITOR": "true",
    }


def in_progress(git_dir: Path) -> bool:
    return (git_dir / "rebase-merge").exists() or (git_dir / "rebase-apply").exists()


def upstream_args(git: Git, count: int) -> list[str]:
    """`HEAD~N`, or `--root` when the plan reaches the first commit."""
    if git.try_run("rev-parse", "--verify", "--quiet", f"HEAD~{count}^{{commit}}") is None:
        return ["--root"]
    return [f"HEAD~{count}"]


def apply_plan(git: Git, plan: Sequence[RebaseCommit]) -> CommandResult:
    """Run `git rebase -i` over the plan's commits, consuming the serialized plan."""
    base = upstream_args(git, len(plan))
    fd, name = tempfile.mkstemp(prefix="gitty-rebase-", suffix=".txt")
    todo_path = Path(name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(serialize_plan(plan))
        log.info("rebasing %d commits onto %s", len(plan), base[0])
        return git.execute("rebase", "-i", *base, env=editor_env(todo_path))
    finally:
        todo_path.unlink(missing_ok=True)
