"""Result messages delivered from operations to the state machine."""

from dataclasses import dataclass
from enum import Enum

from gitty.models import (
    BlameLine,
    Branch,
    BranchComparison,
    Change,
    Commit,
    CommitDetail,
    ConflictFile,
    RebaseCommit,
    Stash,
    Status,
    Tag,
)


class Reload(Enum):
    """Collections that can be re-fetched after a mutation."""

    CHANGES = "changes"
    STATUS = "status"
    RECENT = "recent"
    BRANCHES = "branches"
    HISTORY = "history"
    REFLOG = "reflog"
    LOG = "log"
    STASHES = "stashes"
    TAGS = "tags"
    HOOKS = "hooks"
    CONFLICTS = "conflicts"
    CLEAN = "clean"


@dataclass(frozen=True)
class Message:
    """Base class for every result message."""


@dataclass(frozen=True)
class ChangesLoaded(Message):
    changes: tuple[Change, ...]


@dataclass(frozen=True)
class StatusLoaded(Message):
    status: Status


@dataclass(frozen=True)
class BranchesLoaded(Message):
    branches: tuple[Branch, ...]


@dataclass(frozen=True)
class RecentCommitsLoaded(Message):
    commits: tuple[Commit, ...]


@dataclass(frozen=True)
class HistoryLoaded(Message):
    commits: tuple[Commit, ...]


@dataclass(frozen=True)
class ReflogLoaded(Message):
    entries: tuple[Commit, ...]


@dataclass(frozen=True)
class LogLoaded(Message):
    commits: tuple[Commit, ...]
    search: str = ""


@dataclass(frozen=True)
class CommitDetailLoaded(Message):
    detail: CommitDetail
    diff: str


@dataclass(frozen=True)
class DiffLoaded(Message):
    path: str
    text: str


@dataclass(frozen=True)
class ConflictsLoaded(Message):
    conflicts: tuple[ConflictFile, ...]


@dataclass(frozen=True)
class BlameLoaded(Message):
    path: str
    lines: tuple[BlameLine, ...]


@dataclass(frozen=True)
class ComparisonLoaded(Message):
    comparison: BranchComparison


@dataclass(frozen=True)
class RebasePlanLoaded(Message):
    plan: tuple[RebaseCommit, ...]


@dataclass(frozen=True)
class StashesLoaded(Message):
    stashes: tuple[Stash, ...]


@dataclass(frozen=True)
class StashDiffLoaded(Message):
    index: int
    text: str


@dataclass(frozen=True)
class TagsLoaded(Message):
    tags: tuple[Tag, ...]


@dataclass(frozen=True)
class HooksLoaded(Message):
    installed: frozenset[str]


@dataclass(frozen=True)
class CleanPreviewLoaded(Message):
    paths: tuple[str, ...]


@dataclass(frozen=True)
class CommitCompleted(Message):
    hash: str
    message: str
    diff: str
    files: tuple[str, ...]


@dataclass(frozen=True)
class RebaseFinished(Message):
    ok: bool
    text: str


@dataclass(frozen=True)
class RepoSwitched(Message):
    path: str


@dataclass(frozen=True)
class OperationResult(Message):
    """Outcome of a mutation; reload is only honoured when ok."""

    text: str
    ok: bool = True
    reload: tuple[Reload, ...] = ()
