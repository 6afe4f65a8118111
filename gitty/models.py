"""Data models for gitty."""

from dataclasses import dataclass, field
from enum import Enum


class Category(str, Enum):
    """Conventional-commit category inferred from a changed path."""

    FEAT = "feat"
    REFACTOR = "refactor"
    DOCS = "docs"
    TEST = "test"
    CHORE = "chore"


class RebaseAction(str, Enum):
    """Action applied to one commit of an interactive rebase."""

    PICK = "pick"
    SQUASH = "squash"
    REWORD = "reword"
    DROP = "drop"
    FIXUP = "fixup"


@dataclass(frozen=True)
class Change:
    """A single entry from the porcelain status listing."""

    path: str
    code: str
    category: Category = Category.CHORE

    @property
    def staged(self) -> bool:
        return self.code[0] in "MADRCT"

    @property
    def untracked(self) -> bool:
        return self.code == "??"


@dataclass(frozen=True)
class AheadBehind:
    """Commit counts ahead/behind a reference."""

    ahead: int
    behind: int


@dataclass(frozen=True)
class Status:
    """Repository-wide summary for the header line."""

    branch: str
    clean: bool = True
    staged_files: int = 0
    unstaged_files: int = 0
    untracked_files: int = 0
    ahead: int = 0
    behind: int = 0
    upstream: str | None = None
    tracking_unknown: bool = False


@dataclass(frozen=True)
class Branch:
    """A local or remote branch."""

    name: str
    current: bool = False
    remote: bool = False
    upstream: str | None = None
    ahead: int = 0
    behind: int = 0
    tracking_unknown: bool = False


@dataclass(frozen=True)
class Commit:
    """One history entry."""

    hash: str
    subject: str
    author: str = ""
    date: str = ""


@dataclass(frozen=True)
class CommitDetail:
    """Expanded view of a single commit."""

    hash: str
    subject: str = ""
    body: str = ""
    author: str = ""
    email: str = ""
    date: str = ""
    files: tuple[str, ...] = ()
    insertions: int = 0
    deletions: int = 0


@dataclass(frozen=True)
class ConflictFile:
    """An unmerged path; resolved is tracked by the UI only."""

    path: str
    resolved: bool = False


@dataclass(frozen=True)
class BranchComparison:
    """Commits and files that differ between HEAD and another branch."""

    source: str
    target: str
    ahead: tuple[Commit, ...] = ()
    behind: tuple[Commit, ...] = ()
    files: tuple[str, ...] = ()


@dataclass
class RebaseCommit:
    """Entry of a staged rebase plan; action is edited in place."""

    hash: str
    subject: str
    action: RebaseAction = RebaseAction.PICK


@dataclass(frozen=True)
class Stash:
    """One stash-list entry, addressed by its current position."""

    index: int
    message: str
    date: str = ""
    branch: str = ""

    @property
    def ref(self) -> str:
        return f"stash@{{{self.index}}}"


@dataclass(frozen=True)
class Tag:
    """A repository tag."""

    name: str
    target: str = ""
    date: str = ""
    annotated: bool = False
    message: str = ""


@dataclass(frozen=True)
class BlameLine:
    """One blamed source line."""

    hash: str
    author: str
    date: str
    line: int
    content: str


@dataclass(frozen=True)
class CommitSuggestion:
    """Pre-filled commit message for the commit tab."""

    category: Category
    message: str
    files: tuple[str, ...] = field(default_factory=tuple)
