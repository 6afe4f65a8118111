"""Interactive prompts for the non-TUI subcommands."""

from __future__ import annotations

import questionary
from prompt_toolkit.completion import FuzzyCompleter, WordCompleter
from prompt_toolkit.shortcuts import prompt

from gitty.hooks import HookSpec
from gitty.models import Branch


def format_branch_label(branch: Branch) -> str:
    marker = "*" if branch.current else " "
    tracking = ""
    if branch.upstream:
        tracking = f"[{branch.upstream}"
        if branch.ahead or branch.behind:
            tracking += f": +{branch.ahead} -{branch.behind}"
        tracking += "]"
    return f"{marker} {branch.name:40} {tracking}".rstrip()


def pick_branch(branches: list[Branch]) -> Branch | None:
    if not branches:
        return None
    labels = [format_branch_label(branch) for branch in branches]
    mapping = {label: branch for label, branch in zip(labels, branches)}
    mapping.update({branch.name: branch for branch in branches})
    completer = FuzzyCompleter(WordCompleter(labels, ignore_case=True, sentence=True))
    selection = prompt("Branch: ", completer=completer)
    return mapping.get(selection) or mapping.get(selection.strip())


def pick_hooks(specs: list[HookSpec], installed: frozenset[str]) -> list[HookSpec]:
    choices = [
        questionary.Choice(
            f"{spec.key} ({spec.filename}): {spec.description}",
            value=spec,
            checked=spec.key in installed,
        )
        for spec in specs
    ]
    selected = questionary.checkbox("Hooks to install:", choices=choices).unsafe_ask()
    return list(selected or [])


def confirm(text: str) -> bool:
    return bool(questionary.confirm(text, default=False).unsafe_ask())
