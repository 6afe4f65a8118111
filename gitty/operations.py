"""Repository operations.

Each function takes a :class:`~gitty.executor.Git` bound to the repository
and returns exactly one result message. Loaders treat a failing git call
as an empty collection; mutations report failures through
:class:`~gitty.messages.OperationResult` so nothing escapes to the UI.
"""

import logging
from collections.abc import Sequence
from pathlib import Path

from gitty import hooks, parsers, rebase
from gitty.executor import Git, GitError
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
from gitty.models import RebaseCommit

log = logging.getLogger(__name__)

AFTER_STAGING = (Reload.CHANGES, Reload.STATUS)
AFTER_HISTORY_EDIT = (Reload.CHANGES, Reload.STATUS, Reload.RECENT)
AFTER_SWITCH = (Reload.BRANCHES, Reload.STATUS, Reload.CHANGES)
REMOTE_PREFIXES = ("remotes/origin/", "origin/")


def _failed(prefix: str, exc: Exception) -> OperationResult:
    log.warning("%s: %s", prefix, exc)
    detail = exc.output if isinstance(exc, GitError) else str(exc)
    return OperationResult(f"{prefix}: {detail.strip()}", ok=False)


def _staged_files(git: Git) -> list[str]:
    return parsers.parse_name_list(git.try_run("diff", "--cached", "--name-only") or "")


# Loaders


def load_changes(git: Git) -> ChangesLoaded:
    out = git.try_run("status", "--porcelain", "-b") or ""
    return ChangesLoaded(tuple(parsers.parse_changes(out)))


def load_status(git: Git) -> StatusLoaded:
    out = git.try_run("status", "--porcelain", "-b") or ""
    return StatusLoaded(parsers.parse_status(out))


def load_branches(git: Git) -> BranchesLoaded:
    upstreams = parsers.parse_upstreams(
        git.try_run("for-each-ref", f"--format={parsers.UPSTREAM_FORMAT}", "refs/heads") or ""
    )
    local = parsers.parse_branches(git.try_run("branch", "-vv") or "", upstreams)
    remote = parsers.parse_remote_branches(git.try_run("branch", "-r") or "")
    return BranchesLoaded(tuple(local + remote))


def _log(git: Git, count: int, *extra: str) -> str:
    return git.try_run("log", f"--pretty=format:{parsers.LOG_FORMAT}", "-n", str(count), *extra) or ""


def load_recent_commits(git: Git, count: int) -> RecentCommitsLoaded:
    return RecentCommitsLoaded(tuple(parsers.parse_log(_log(git, count))))


def load_history(git: Git, count: int) -> HistoryLoaded:
    return HistoryLoaded(tuple(parsers.parse_log(_log(git, count))))


def load_reflog(git: Git, count: int) -> ReflogLoaded:
    out = git.try_run("reflog", f"--pretty=format:{parsers.REFLOG_FORMAT}", "-n", str(count)) or ""
    return ReflogLoaded(tuple(parsers.parse_reflog(out)))


def load_log(git: Git, count: int, search: str = "") -> LogLoaded:
    extra = (f"--grep={search}", "--regexp-ignore-case") if search else ()
    return LogLoaded(tuple(parsers.parse_log(_log(git, count, *extra))), search)


def load_commit_detail(git: Git, commit_hash: str) -> CommitDetailLoaded:
    stat = git.try_run("show", commit_hash, "--stat", f"--pretty=format:{parsers.DETAIL_FORMAT}") or ""
    patch = git.try_run("show", commit_hash, "--pretty=format:", "--patch") or ""
    return CommitDetailLoaded(parsers.parse_commit_detail(stat, commit_hash), patch.strip("\n"))


def load_file_diff(git: Git, path: str) -> DiffLoaded:
    """Unstaged diff, else staged diff, else the whole file if untracked."""
    text = git.try_run("diff", "--", path) or ""
    if not text.strip():
        text = git.try_run("diff", "--cached", "--", path) or ""
    if not text.strip() and (git.repo_root / path).is_file():
        try:
            text = git.execute("diff", "--no-index", "--", "/dev/null", path).output
        except GitError as exc:
            text = exc.output
    return DiffLoaded(path, text)


def load_conflicts(git: Git) -> ConflictsLoaded:
    out = git.try_run("diff", "--name-only", "--diff-filter=U") or ""
    return ConflictsLoaded(tuple(parsers.parse_conflicts(out)))


def load_blame(git: Git, path: str) -> BlameLoaded:
    out = git.try_run("blame", "--porcelain", "--", path) or ""
    return BlameLoaded(path, tuple(parsers.parse_blame(out)))


def compare_branch(git: Git, target: str) -> ComparisonLoaded:
    """Three independent range queries against HEAD."""
    source = (git.try_run("rev-parse", "--abbrev-ref", "HEAD") or "HEAD").strip()
    ahead = _log(git, 50, f"{target}..HEAD")
    behind = _log(git, 50, f"HEAD..{target}")
    files = git.try_run("diff", "--name-only", f"{target}...HEAD") or ""
    return ComparisonLoaded(parsers.build_comparison(source, target, ahead, behind, files))


def load_rebase_plan(git: Git, count: int) -> RebasePlanLoaded:
    commits = parsers.parse_log(_log(git, count))
    return RebasePlanLoaded(tuple(RebaseCommit(c.hash, c.subject) for c in commits))


def load_stashes(git: Git) -> StashesLoaded:
    out = git.try_run("stash", "list", f"--format={parsers.STASH_FORMAT}") or ""
    return StashesLoaded(tuple(parsers.parse_stash_list(out)))


def load_stash_diff(git: Git, index: int) -> StashDiffLoaded:
    return StashDiffLoaded(index, git.try_run("stash", "show", "-p", f"stash@{{{index}}}") or "")


def load_tags(git: Git) -> TagsLoaded:
    out = git.try_run("tag", "-l", "--sort=-creatordate", f"--format={parsers.TAG_FORMAT}") or ""
    return TagsLoaded(tuple(parsers.parse_tags(out)))


def load_hooks(git: Git) -> HooksLoaded:
    return HooksLoaded(hooks.installed_hooks(git.common_dir))


def load_clean_preview(git: Git) -> CleanPreviewLoaded:
    out = git.try_run("clean", "-n", "-d") or ""
    return CleanPreviewLoaded(tuple(parsers.parse_clean_preview(out)))


# Staging and commits


def toggle_staging(git: Git, path: str) -> OperationResult:
    try:
        if path in _staged_files(git):
            git.run("reset", "HEAD", "--", path)
            return OperationResult(f"Unstaged {path}", reload=AFTER_STAGING)
        git.run("add", "--", path)
    except GitError as exc:
        return _failed(f"Failed to toggle {path}", exc)
    return OperationResult(f"Staged {path}", reload=AFTER_STAGING)


def stage_all(git: Git) -> OperationResult:
    try:
        git.run("add", ".")
    except GitError as exc:
        return _failed("Git add failed", exc)
    return OperationResult("Added all files to staging", reload=AFTER_STAGING)


def unstage_all(git: Git) -> OperationResult:
    if not _staged_files(git):
        return OperationResult("No staged changes to reset", ok=False)
    try:
        git.run("reset", "HEAD")
    except GitError as exc:
        return _failed("Git reset failed", exc)
    return OperationResult("Reset staging area", reload=AFTER_STAGING)


def discard_file(git: Git, path: str) -> OperationResult:
    try:
        git.run("checkout", "--", path)
    except GitError as exc:
        return _failed(f"Failed to discard {path}", exc)
    return OperationResult(f"Discarded changes in {path}", reload=AFTER_STAGING)


def reset_last_commit(git: Git) -> OperationResult:
    try:
        git.run("reset", "HEAD~1")
    except GitError as exc:
        return _failed("Reset failed", exc)
    return OperationResult("Reset last commit, changes kept in working tree", reload=AFTER_HISTORY_EDIT)


def commit(git: Git, message: str) -> CommitCompleted | OperationResult:
    message = message.strip()
    if not message:
        return OperationResult("Commit message cannot be empty", ok=False)
    files = _staged_files(git)
    if not files:
        return OperationResult("No staged changes to commit", ok=False)
    try:
        diff = git.run("diff", "--cached")
        git.run("commit", "-m", message)
        commit_hash = git.run("rev-parse", "--short", "HEAD").strip()
    except GitError as exc:
        return _failed("Commit failed", exc)
    log.info("committed %s (%d files)", commit_hash, len(files))
    return CommitCompleted(commit_hash, message, diff, tuple(files))


def resolve_conflict(git: Git, path: str, side: str) -> OperationResult:
    """Take ours/theirs for a conflicted path and mark it resolved."""
    if side not in ("ours", "theirs"):
        return OperationResult(f"Unknown side: {side}", ok=False)
    try:
        git.run("checkout", f"--{side}", "--", path)
        git.run("add", "--", path)
    except GitError as exc:
        return _failed(f"Failed to resolve {path}", exc)
    return OperationResult(
        f"Resolved {path} using {side}", reload=(Reload.CONFLICTS, Reload.CHANGES, Reload.STATUS)
    )


# Branches and remotes


def switch_branch(git: Git, name: str) -> OperationResult:
    """Check out a branch, creating a tracking branch for origin/* names."""
    local = name
    try:
        for prefix in REMOTE_PREFIXES:
            if name.startswith(prefix):
                local = name[len(prefix) :]
                remote = f"origin/{local}"
                result = git.execute("checkout", "-b", local, remote)
                if not result.ok:
                    if "already exists" not in result.output:
                        raise GitError(("checkout", "-b", local, remote), result.output)
                    git.run("checkout", local)
                break
        else:
            git.run("checkout", name)
    except GitError as exc:
        return _failed(f"Failed to switch to {local}", exc)
    return OperationResult(f"Switched to branch {local}", reload=AFTER_SWITCH)


def create_branch(git: Git, name: str) -> OperationResult:
    name = name.strip()
    if not name:
        return OperationResult("Branch name cannot be empty", ok=False)
    try:
        git.run("checkout", "-b", name)
    except GitError as exc:
        return _failed(f"Failed to create {name}", exc)
    return OperationResult(f"Created and switched to {name}", reload=(Reload.BRANCHES, Reload.STATUS))


def delete_branch(git: Git, name: str) -> OperationResult:
    try:
        git.run("branch", "-d", name)
    except GitError as exc:
        return _failed(f"Failed to delete {name}", exc)
    return OperationResult(f"Deleted branch {name}", reload=(Reload.BRANCHES,))


def push(git: Git) -> OperationResult:
    try:
        git.run("push")
    except GitError as exc:
        return _failed("Push failed", exc)
    return OperationResult("Pushed successfully", reload=(Reload.STATUS,))


def pull(git: Git) -> OperationResult:
    try:
        git.run("pull")
    except GitError as exc:
        return _failed("Pull failed", exc)
    return OperationResult(
        "Pulled successfully", reload=(Reload.CHANGES, Reload.STATUS, Reload.BRANCHES)
    )


def fetch(git: Git) -> OperationResult:
    try:
        git.run("fetch")
    except GitError as exc:
        return _failed("Fetch failed", exc)
    return OperationResult("Fetched from remote", reload=(Reload.STATUS,))


# History rewriting


def undo_to_commit(git: Git, commit_hash: str) -> OperationResult:
    try:
        git.run("reset", "--soft", commit_hash)
    except GitError as exc:
        return _failed("Undo failed", exc)
    return OperationResult(
        f"Reset to {commit_hash}, changes kept staged",
        reload=(Reload.CHANGES, Reload.STATUS, Reload.HISTORY),
    )


def execute_rebase(git: Git, plan: Sequence[RebaseCommit]) -> RebaseFinished:
    if not plan:
        return RebaseFinished(False, "Rebase plan is empty")
    try:
        result = rebase.apply_plan(git, plan)
    except (GitError, OSError) as exc:
        log.warning("rebase failed: %s", exc)
        return RebaseFinished(False, f"Rebase failed: {exc}")
    if not result.ok:
        return RebaseFinished(False, f"Rebase stopped: {result.output.strip()}")
    return RebaseFinished(True, f"Rebased {len(plan)} commits")


def abort_rebase(git: Git) -> OperationResult:
    if not rebase.in_progress(git.git_dir):
        return OperationResult("No rebase in progress", ok=False)
    try:
        git.run("rebase", "--abort")
    except GitError as exc:
        return _failed("Abort failed", exc)
    return OperationResult("Rebase aborted", reload=AFTER_STAGING)


def continue_rebase(git: Git) -> OperationResult:
    if not rebase.in_progress(git.git_dir):
        return OperationResult("No rebase in progress", ok=False)
    try:
        git.run("rebase", "--continue", env={"GIT_EDITOR": "true"})
    except GitError as exc:
        return _failed("Continue failed", exc)
    return OperationResult("Rebase continued", reload=AFTER_STAGING)


def cherry_pick(git: Git, commit_hash: str) -> OperationResult:
    try:
        git.run("cherry-pick", commit_hash)
    except GitError as exc:
        return _failed(f"Cherry-pick of {commit_hash} failed", exc)
    return OperationResult(f"Cherry-picked {commit_hash}", reload=AFTER_HISTORY_EDIT)


def revert(git: Git, commit_hash: str) -> OperationResult:
    try:
        git.run("revert", "--no-edit", commit_hash)
    except GitError as exc:
        return _failed(f"Revert of {commit_hash} failed", exc)
    return OperationResult(f"Reverted {commit_hash}", reload=AFTER_HISTORY_EDIT)


# Stash


def stash_push(git: Git, message: str = "") -> OperationResult:
    args = ["stash", "push"]
    if message:
        args += ["-m", message]
    try:
        out = git.run(*args)
    except GitError as exc:
        return _failed("Stash failed", exc)
    if "No local changes" in out:
        return OperationResult("No local changes to stash", ok=False)
    return OperationResult("Stashed changes", reload=(Reload.STASHES, Reload.CHANGES, Reload.STATUS))


def stash_pop(git: Git, index: int) -> OperationResult:
    try:
        git.run("stash", "pop", f"stash@{{{index}}}")
    except GitError as exc:
        return _failed("Stash pop failed", exc)
    return OperationResult(
        f"Popped stash@{{{index}}}", reload=(Reload.STASHES, Reload.CHANGES, Reload.STATUS)
    )


def stash_apply(git: Git, index: int) -> OperationResult:
    try:
        git.run("stash", "apply", f"stash@{{{index}}}")
    except GitError as exc:
        return _failed("Stash apply failed", exc)
    return OperationResult(f"Applied stash@{{{index}}}", reload=AFTER_STAGING)


def stash_drop(git: Git, index: int) -> OperationResult:
    try:
        git.run("stash", "drop", f"stash@{{{index}}}")
    except GitError as exc:
        return _failed("Stash drop failed", exc)
    return OperationResult(f"Dropped stash@{{{index}}}", reload=(Reload.STASHES,))


# Tags


def create_tag(git: Git, text: str) -> OperationResult:
    """`name` makes a lightweight tag, `name message...` an annotated one."""
    name, _, message = text.strip().partition(" ")
    if not name:
        return OperationResult("Tag name cannot be empty", ok=False)
    args = ["tag", "-a", name, "-m", message.strip()] if message.strip() else ["tag", name]
    try:
        git.run(*args)
    except GitError as exc:
        return _failed(f"Failed to create tag {name}", exc)
    return OperationResult(f"Created tag {name}", reload=(Reload.TAGS,))


def delete_tag(git: Git, name: str) -> OperationResult:
    try:
        git.run("tag", "-d", name)
    except GitError as exc:
        return _failed(f"Failed to delete tag {name}", exc)
    return OperationResult(f"Deleted tag {name}", reload=(Reload.TAGS,))


def push_tag(git: Git, name: str) -> OperationResult:
    try:
        git.run("push", "origin", name)
    except GitError as exc:
        return _failed(f"Failed to push tag {name}", exc)
    return OperationResult(f"Pushed tag {name}")


def push_all_tags(git: Git) -> OperationResult:
    try:
        git.run("push", "--tags")
    except GitError as exc:
        return _failed("Failed to push tags", exc)
    return OperationResult("Pushed all tags")


# Hooks


def install_hook(git: Git, key: str) -> OperationResult:
    try:
        spec = hooks.get_hook(key)
        hooks.install_hook(git.common_dir, spec)
    except hooks.HookError as exc:
        return _failed("Hook install failed", exc)
    return OperationResult(f"Installed {key} hook", reload=(Reload.HOOKS,))


def remove_hook(git: Git, key: str) -> OperationResult:
    try:
        spec = hooks.get_hook(key)
        hooks.remove_hook(git.common_dir, spec)
    except hooks.HookError as exc:
        return _failed("Hook removal failed", exc)
    return OperationResult(f"Removed {key} hook", reload=(Reload.HOOKS,))


# Clean


def clean_untracked(git: Git) -> OperationResult:
    try:
        git.run("clean", "-f", "-d")
    except GitError as exc:
        return _failed("Clean failed", exc)
    return OperationResult(
        "Removed untracked files", reload=(Reload.CLEAN, Reload.CHANGES, Reload.STATUS)
    )


# Repositories


def repo_name_from_url(url: str) -> str:
    name = url.rstrip("/").rsplit("/", 1)[-1].rsplit(":", 1)[-1]
    return name.removesuffix(".git")


def clone_repo(git: Git, url: str) -> RepoSwitched | OperationResult:
    """Clone next to the current repository and switch to it."""
    url = url.strip()
    name = repo_name_from_url(url)
    if not url or not name:
        return OperationResult("Enter a repository URL to clone", ok=False)
    parent = git.repo_root.parent
    target = parent / name
    if target.exists():
        return OperationResult(f"{target} already exists", ok=False)
    try:
        Git(parent, git.policy).run("clone", url, name)
    except GitError as exc:
        return _failed("Clone failed", exc)
    log.info("cloned %s into %s", url, target)
    return RepoSwitched(str(target))


def init_repo(git: Git, path_text: str) -> RepoSwitched | OperationResult:
    """Create and initialise a repository; relative paths sit beside the current one."""
    path_text = path_text.strip()
    if not path_text:
        return OperationResult("Enter a directory to initialise", ok=False)
    path = Path(path_text).expanduser()
    if not path.is_absolute():
        path = git.repo_root.parent / path
    try:
        path.mkdir(parents=True, exist_ok=True)
        Git(path, git.policy).run("init")
    except (OSError, GitError) as exc:
        return _failed("Init failed", exc)
    return RepoSwitched(str(path))
