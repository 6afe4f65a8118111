"""Parsers for git's line-oriented output.

Each parser is paired with exactly one invocation format, given by the
``*_FORMAT`` constants below, and must not be fed anything else. Empty
input means "no records"; a malformed line is dropped without failing
the rest of the call.
"""

import re
from collections.abc import Collection
from datetime import datetime

from gitty.models import (
    AheadBehind,
    BlameLine,
    Branch,
    BranchComparison,
    Change,
    Commit,
    CommitDetail,
    ConflictFile,
    Stash,
    Status,
    Tag,
)
from gitty.suggestions import categorize_change

LOG_FORMAT = "%h|%s|%an|%ar"
REFLOG_FORMAT = "%h|%gs|%ar"
STASH_FORMAT = "%gd|%s|%ar"
RECORD_SEP = "\x1e"
DETAIL_FORMAT = "%H|%s|%b|%an|%ae|%ar%x1e"
UPSTREAM_FORMAT = "%(upstream:short)"
TAG_FORMAT = (
    "%(refname:short)|%(objecttype)|%(creatordate:relative)|"
    "%(if)%(*objectname)%(then)%(*objectname:short)%(else)%(objectname:short)%(end)|"
    "%(contents:subject)"
)

STATUS_ALPHABET = frozenset(" MADRCTU?")
STAGED_CODES = frozenset("MADRCT")
CLEAN_PREFIX = "Would remove "

_TRACK_TERM = re.compile(r"^(ahead|behind) (\d+)$")
_STAT_SUMMARY = re.compile(r"^\d+ files? changed")
_INSERTIONS = re.compile(r"(\d+) insertions?\(\+\)")
_DELETIONS = re.compile(r"(\d+) deletions?\(-\)")
_BLAME_HEADER = re.compile(r"^([0-9a-f]{40})(?:\s|$)")
_STASH_BRANCH = re.compile(r"^(?:WIP on|On) ([^:]+):")
_C_ESCAPES = {"a": 7, "b": 8, "t": 9, "n": 10, "v": 11, "f": 12, "r": 13, '"': 34, "\\": 92}
_OCTAL = frozenset("01234567")


def _unquote(path: str) -> str:
    """Undo git's C-style quoting (core.quotePath) of a path."""
    if not (len(path) >= 2 and path[0] == path[-1] == '"'):
        return path
    body = path[1:-1]
    raw = bytearray()
    i = 0
    while i < len(body):
        char = body[i]
        if char != "\\" or i + 1 == len(body):
            raw += char.encode("utf-8", "surrogateescape")
            i += 1
            continue
        digits = body[i + 1 : i + 4]
        if len(digits) == 3 and set(digits) <= _OCTAL:
            raw.append(int(digits, 8) & 0xFF)
            i += 4
            continue
        escaped = body[i + 1]
        if escaped in _C_ESCAPES:
            raw.append(_C_ESCAPES[escaped])
        else:
            raw += escaped.encode("utf-8", "surrogateescape")
        i += 2
    return raw.decode("utf-8", "surrogateescape")


def _split_record(line: str, arity: int) -> list[str] | None:
    """Split hash from the left and the trailing fields from the right."""
    if line.count("|") < arity - 1:
        return None
    head, rest = line.split("|", 1)
    if not head.strip():
        return None
    return [head.strip(), *rest.rsplit("|", arity - 2)]


def parse_changes(text: str) -> list[Change]:
    """Parse `git status --porcelain [-b]` into changes."""
    changes: list[Change] = []
    for line in text.splitlines():
        if line.startswith("## ") or len(line) < 3:
            continue
        code = line[:2]
        if not set(code) <= STATUS_ALPHABET:
            continue
        path = line[3:].strip()
        if code[0] in "RC" and " -> " in path:
            path = path.split(" -> ", 1)[1]
        path = _unquote(path)
        if not path:
            continue
        changes.append(Change(path=path, code=code, category=categorize_change(path, code)))
    return changes


def parse_tracking(annotation: str) -> AheadBehind | None:
    """Parse `ahead N, behind M` (either term optional); None when unrecognised."""
    ahead = behind = 0
    body = annotation.strip().strip("[]").strip()
    if not body:
        return AheadBehind(0, 0)
    for term in body.split(","):
        term = term.strip()
        if term == "gone":
            continue
        match = _TRACK_TERM.match(term)
        if match is None:
            return None
        if match.group(1) == "ahead":
            ahead = int(match.group(2))
        else:
            behind = int(match.group(2))
    return AheadBehind(ahead, behind)


def _parse_status_header(line: str) -> tuple[str, str | None, str | None]:
    """Split a `## branch...upstream [tracking]` header."""
    body = line[3:].strip()
    bracket = None
    if body.endswith("]") and " [" in body:
        body, _, rest = body.rpartition(" [")
        bracket = rest[:-1]

    for prefix in ("No commits yet on ", "Initial commit on "):
        if body.startswith(prefix):
            return body[len(prefix) :], None, bracket
    if body.startswith("HEAD (no branch)"):
        return "HEAD", None, bracket

    branch, _, upstream = body.partition("...")
    return branch, upstream or None, bracket


def parse_status(text: str, branch: str | None = None) -> Status:
    """Summarise `git status --porcelain -b` output."""
    staged = unstaged = untracked = 0
    header_branch = None
    upstream = None
    tracking: AheadBehind | None = AheadBehind(0, 0)
    body_lines: list[str] = []

    for line in text.splitlines():
        if line.startswith("## "):
            header_branch, upstream, bracket = _parse_status_header(line)
            if bracket is not None:
                tracking = parse_tracking(bracket)
            continue
        body_lines.append(line)
        if len(line) < 3:
            continue
        index, worktree = line[0], line[1]
        if index == "?" or worktree == "?":
            untracked += 1
            continue
        if index in STAGED_CODES:
            staged += 1
        if worktree != " ":
            unstaged += 1

    return Status(
        branch=branch or header_branch or "unknown",
        clean=not "\n".join(body_lines).strip(),
        staged_files=staged,
        unstaged_files=unstaged,
        untracked_files=untracked,
        ahead=tracking.ahead if tracking else 0,
        behind=tracking.behind if tracking else 0,
        upstream=upstream,
        tracking_unknown=tracking is None,
    )


def parse_upstreams(text: str) -> frozenset[str]:
    """Parse `git for-each-ref --format=UPSTREAM_FORMAT refs/heads`."""
    return frozenset(line.strip() for line in text.splitlines() if line.strip())


def parse_branches(text: str, upstreams: Collection[str] | None = None) -> list[Branch]:
    """Parse `git branch -vv`.

    When ``upstreams`` is given, a leading bracket only counts as tracking
    info if it names one of them; otherwise it is part of the subject.
    """
    branches: list[Branch] = []
    for raw in text.splitlines():
        if not raw.strip():
            continue
        current = raw.startswith("*")
        line = raw[1:] if raw[0] in "*+" else raw
        line = line.strip()

        if line.startswith("("):
            name, sep, rest = line.partition(")")
            if not sep:
                continue
            name += ")"
        else:
            name, _, rest = line.partition(" ")

        _, _, after_hash = rest.strip().partition(" ")
        after_hash = after_hash.lstrip()

        upstream = None
        ahead = behind = 0
        unknown = False
        if after_hash.startswith("[") and "]" in after_hash:
            bracket = after_hash[1 : after_hash.index("]")]
            upstream, colon, divergence = bracket.partition(":")
            if upstreams is not None and upstream.strip() not in upstreams:
                upstream, colon = "", ""
            if colon:
                parsed = parse_tracking(divergence)
                if parsed is None:
                    unknown = True
                else:
                    ahead, behind = parsed.ahead, parsed.behind

        branches.append(
            Branch(
                name=name,
                current=current,
                upstream=(upstream or "").strip() or None,
                ahead=ahead,
                behind=behind,
                tracking_unknown=unknown,
            )
        )
    return branches


def parse_remote_branches(text: str) -> list[Branch]:
    """Parse `git branch -r`, skipping symbolic refs like origin/HEAD."""
    branches: list[Branch] = []
    for line in text.splitlines():
        name = line.strip()
        if not name or "->" in name:
            continue
        branches.append(Branch(name=name, remote=True))
    return branches


def parse_log(text: str) -> list[Commit]:
    """Parse `git log --pretty=format:LOG_FORMAT`."""
    commits: list[Commit] = []
    for line in text.splitlines():
        fields = _split_record(line, 4)
        if fields is None:
            continue
        commit_hash, subject, author, date = fields
        commits.append(Commit(hash=commit_hash, subject=subject, author=author, date=date))
    return commits


def parse_reflog(text: str) -> list[Commit]:
    """Parse `git reflog --pretty=format:REFLOG_FORMAT`."""
    entries: list[Commit] = []
    for line in text.splitlines():
        fields = _split_record(line, 3)
        if fields is None:
            continue
        commit_hash, subject, date = fields
        entries.append(Commit(hash=commit_hash, subject=subject, date=date))
    return entries


def parse_commit_detail(text: str, commit_hash: str = "") -> CommitDetail:
    """Parse `git show <hash> --stat --pretty=format:DETAIL_FORMAT`.

    The header normally ends at the record separator so a multi-line body
    survives; without one the first line is taken as the header.
    """
    if not text.strip():
        return CommitDetail(hash=commit_hash)

    if RECORD_SEP in text:
        header, _, stat = text.partition(RECORD_SEP)
    else:
        header, _, stat = text.partition("\n")

    detail_fields: dict[str, str] = {"hash": commit_hash}
    if header.count("|") >= 5:
        head_hash, subject, rest = header.split("|", 2)
        body, author, email, date = rest.rsplit("|", 3)
        detail_fields = {
            "hash": head_hash.strip() or commit_hash,
            "subject": subject,
            "body": body.strip(),
            "author": author,
            "email": email,
            "date": date.strip(),
        }

    files: list[str] = []
    insertions = deletions = 0
    for raw in stat.splitlines():
        line = raw.strip()
        if not line or line == "---":
            continue
        if _STAT_SUMMARY.match(line):
            found = _INSERTIONS.search(line)
            insertions = int(found.group(1)) if found else 0
            found = _DELETIONS.search(line)
            deletions = int(found.group(1)) if found else 0
            continue
        if "|" in line:
            name = line.split("|", 1)[0].strip()
            if name:
                files.append(name)

    return CommitDetail(
        files=tuple(files),
        insertions=insertions,
        deletions=deletions,
        **detail_fields,
    )


def _format_blame_time(value: str) -> str:
    try:
        return datetime.fromtimestamp(int(value)).strftime("%Y-%m-%d")
    except (ValueError, OverflowError, OSError):
        return ""


def parse_blame(text: str) -> list[BlameLine]:
    """Parse `git blame --porcelain`.

    Porcelain only prints author data the first time a commit appears, so
    it is remembered per commit for later blocks.
    """
    lines: list[BlameLine] = []
    known: dict[str, tuple[str, str]] = {}
    commit_hash = author = date = ""
    number = 0

    for raw in text.splitlines():
        if raw.startswith("\t"):
            number += 1
            lines.append(
                BlameLine(hash=commit_hash[:7], author=author, date=date, line=number, content=raw[1:])
            )
            continue

        header = _BLAME_HEADER.match(raw)
        if header:
            commit_hash = header.group(1)
            author, date = known.get(commit_hash, ("", ""))
        elif raw.startswith("author "):
            author = raw[len("author ") :]
            known[commit_hash] = (author, date)
        elif raw.startswith("author-time "):
            date = _format_blame_time(raw[len("author-time ") :].strip())
            known[commit_hash] = (author, date)
    return lines


def parse_name_list(text: str) -> list[str]:
    """Parse `--name-only` style output, one path per line."""
    return [_unquote(line.strip()) for line in text.splitlines() if line.strip()]


def parse_conflicts(text: str) -> list[ConflictFile]:
    """Parse `git diff --name-only --diff-filter=U`."""
    return [ConflictFile(path=path) for path in parse_name_list(text)]


def parse_stash_list(text: str) -> list[Stash]:
    """Parse `git stash list --format=STASH_FORMAT`; index is list position."""
    stashes: list[Stash] = []
    for line in text.splitlines():
        fields = _split_record(line, 3)
        if fields is None:
            continue
        _, message, date = fields
        branch = _STASH_BRANCH.match(message)
        stashes.append(
            Stash(
                index=len(stashes),
                message=message,
                date=date,
                branch=branch.group(1) if branch else "",
            )
        )
    return stashes


def parse_tags(text: str) -> list[Tag]:
    """Parse `git tag -l --format=TAG_FORMAT`."""
    tags: list[Tag] = []
    for line in text.splitlines():
        fields = line.split("|", 4)
        if len(fields) < 4 or not fields[0].strip():
            continue
        name, object_type, date, target = fields[:4]
        annotated = object_type == "tag"
        message = fields[4].strip() if annotated and len(fields) == 5 else ""
        tags.append(
            Tag(name=name.strip(), target=target, date=date, annotated=annotated, message=message)
        )
    return tags


def parse_clean_preview(text: str) -> list[str]:
    """Parse `git clean -n -d` into the paths it would remove."""
    paths: list[str] = []
    for line in text.splitlines():
        if line.startswith(CLEAN_PREFIX):
            path = line[len(CLEAN_PREFIX) :].strip()
            if path:
                paths.append(path)
    return paths


def build_comparison(
    source: str, target: str, ahead_text: str, behind_text: str, files_text: str
) -> BranchComparison:
    """Combine the three range queries that make up a branch comparison."""
    return BranchComparison(
        source=source,
        target=target,
        ahead=tuple(parse_log(ahead_text)),
        behind=tuple(parse_log(behind_text)),
        files=tuple(parse_name_list(files_text)),
    )
