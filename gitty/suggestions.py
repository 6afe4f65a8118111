"""Conventional-commit suggestions derived from the change list."""

from collections import Counter
from collections.abc import Iterable
from pathlib import PurePosixPath

from gitty.models import Category, Change, CommitSuggestion

TEMPLATES = {
    Category.FEAT: "feat: add new feature",
    Category.REFACTOR: "refactor: improve code structure",
    Category.DOCS: "docs: update documentation",
    Category.TEST: "test: add/update tests",
    Category.CHORE: "chore: update build/config",
}

_CHORE_NAMES = {"makefile", "dockerfile"}


def categorize_change(path: str, code: str) -> Category:
    """Guess the commit category for one changed path."""
    lower = path.lower()
    name = PurePosixPath(lower).name

    if "test" in lower:
        return Category.TEST
    if lower.endswith(".md") or "doc" in lower:
        return Category.DOCS
    if "config" in lower or name.startswith(".") or name in _CHORE_NAMES:
        return Category.CHORE
    if code == "A ":
        return Category.FEAT
    if "M" in code:
        return Category.REFACTOR
    return Category.CHORE


def suggest_commit_messages(changes: Iterable[Change]) -> list[CommitSuggestion]:
    """One suggestion per category, most common first; staged files win if any."""
    changes = list(changes)
    staged = [change for change in changes if change.staged]
    pool = staged or changes

    counts = Counter(change.category for change in pool)
    order = list(Category)
    ranked = sorted(counts, key=lambda category: (-counts[category], order.index(category)))

    suggestions: list[CommitSuggestion] = []
    for category in ranked:
        files = tuple(change.path for change in pool if change.category is category)
        message = f"{TEMPLATES[category]} ({len(files)} files)"
        suggestions.append(CommitSuggestion(category=category, message=message, files=files))
    return suggestions
