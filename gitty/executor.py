"""Git subprocess execution.

Every git invocation in gitty goes through :class:`Git`. It waits out a
held ``index.lock`` before spawning, retries with a doubled delay when git
reports it lost the race for the lock, and otherwise hands back the raw
combined output untouched.
"""

import logging
import os
import subprocess
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from gitty.config import RetryPolicy

log = logging.getLogger(__name__)

LOCK_MARKER = "index.lock"


class GitError(Exception):
    """Git command failed."""

    def __init__(self, cmd: Sequence[str], output: str) -> None:
        self.cmd = tuple(cmd)
        self.output = output
        super().__init__(f"git {' '.join(cmd)}: {output}")


class LockContentionError(GitError):
    """index.lock stayed held for every attempt."""

    def __init__(self, cmd: Sequence[str], attempts: int) -> None:
        super().__init__(cmd, f"git command failed after {attempts} retries: index.lock conflict")
        self.attempts = attempts


@dataclass(frozen=True)
class CommandResult:
    """Combined stdout/stderr and exit status of one git process."""

    args: tuple[str, ...]
    output: str
    returncode: int

    @property
    def ok(self) -> bool:
        return self.returncode == 0


Spawner = Callable[[Sequence[str], Path, Mapping[str, str] | None], CommandResult]


def spawn(args: Sequence[str], cwd: Path, env: Mapping[str, str] | None = None) -> CommandResult:
    """Run git once in its own session, merging stderr into stdout."""
    full_env = {**os.environ, **env} if env else None
    try:
        proc = subprocess.run(
            ["git", *args],
            cwd=cwd,
            env=full_env,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            errors="replace",
            start_new_session=True,
        )
    except OSError as exc:
        raise GitError(args, str(exc)) from exc
    return CommandResult(tuple(args), proc.stdout, proc.returncode)


class Git:
    """Runs git commands inside one repository."""

    def __init__(
        self,
        repo_root: Path,
        policy: RetryPolicy | None = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
        spawner: Spawner = spawn,
        git_dir: Path | None = None,
        common_dir: Path | None = None,
    ) -> None:
        self.repo_root = repo_root
        self.policy = policy or RetryPolicy()
        self._sleep = sleep
        self._spawn = spawner
        self._git_dir = git_dir
        self._common_dir = common_dir

    def _resolve_dirs(self) -> tuple[Path, Path]:
        # In a linked worktree .git is a file; per-worktree state lives in
        # --git-dir while hooks live in --git-common-dir.
        result = self._spawn(("rev-parse", "--git-dir", "--git-common-dir"), self.repo_root, None)
        lines = [line.strip() for line in result.output.splitlines() if line.strip()] if result.ok else []
        if len(lines) == 2:
            git_dir, common_dir = self.repo_root / lines[0], self.repo_root / lines[1]
        else:
            log.debug("could not resolve git dir for %s: %s", self.repo_root, result.output.strip())
            git_dir = common_dir = self.repo_root / ".git"
        if self._git_dir is None:
            self._git_dir = git_dir
        if self._common_dir is None:
            self._common_dir = common_dir
        return self._git_dir, self._common_dir

    @property
    def git_dir(self) -> Path:
        """Per-worktree git directory (index, lock, rebase state)."""
        return self._git_dir or self._resolve_dirs()[0]

    @property
    def common_dir(self) -> Path:
        """Git directory shared by all worktrees (hooks, refs)."""
        return self._common_dir or self._resolve_dirs()[1]

    @property
    def lock_path(self) -> Path:
        return self.git_dir / LOCK_MARKER

    def execute(self, *args: str, env: Mapping[str, str] | None = None) -> CommandResult:
        """Run git, retrying around index.lock; raises LockContentionError when exhausted."""
        delay = self.policy.delay
        for attempt in range(1, self.policy.attempts + 1):
            if self.lock_path.exists():
                log.warning(
                    "index.lock present, waiting %.2fs (attempt %d/%d)",
                    delay,
                    attempt,
                    self.policy.attempts,
                )
                self._sleep(delay)
                continue

            log.debug("git %s (cwd=%s)", " ".join(args), self.repo_root)
            result = self._spawn(args, self.repo_root, env)
            if result.ok:
                return result

            if LOCK_MARKER in result.output:
                log.warning("git %s lost the index.lock race, retrying in %.2fs", args[0], delay)
                self._sleep(delay)
                delay *= 2
                continue

            log.debug("git %s exited %d", " ".join(args), result.returncode)
            return result

        log.error("git %s gave up after %d attempts on index.lock", " ".join(args), self.policy.attempts)
        raise LockContentionError(args, self.policy.attempts)

    def run(self, *args: str, env: Mapping[str, str] | None = None) -> str:
        """Run a git command and return its output, raising GitError on failure."""
        result = self.execute(*args, env=env)
        if not result.ok:
            raise GitError(args, result.output.strip() or f"exit status {result.returncode}")
        return result.output

    def try_run(self, *args: str) -> str | None:
        """Run a git command, returning None on failure."""
        try:
            return self.run(*args)
        except GitError as exc:
            log.debug("ignored failure: %s", exc)
            return None


def repo_toplevel(path: Path) -> Path | None:
    """Return the work tree root containing path."""
    out = Git(path).try_run("rev-parse", "--show-toplevel")
    if not out:
        return None
    return Path(out.strip())
