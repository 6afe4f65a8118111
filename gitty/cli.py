"""Command line entry point for gitty."""

import dataclasses
import logging
import shutil
import sys
from pathlib import Path

import click

from gitty import hooks, operations, prompts
from gitty.config import ConfigError, Settings, load_settings
from gitty.executor import Git, repo_toplevel
from gitty.logs import setup_logging
from gitty.tui import run_tui

log = logging.getLogger(__name__)


def _fail(message: str) -> None:
    click.echo(f"gitty: {message}", err=True)
    raise SystemExit(1)


def _resolve_repo(repo: str | None) -> Path:
    if shutil.which("git") is None:
        _fail("git executable not found on PATH")
    start = Path(repo).expanduser() if repo else Path.cwd()
    root = repo_toplevel(start) if start.is_dir() else None
    if root is None:
        _fail("not inside a git repository")
    return root


def _context(ctx: click.Context) -> tuple[Path, Settings]:
    return ctx.obj["repo_root"], ctx.obj["settings"]


def _hooks_dir(ctx: click.Context) -> Path:
    repo_root, settings = _context(ctx)
    return Git(repo_root, settings.retry).common_dir


@click.group(context_settings={"help_option_names": ["-h", "--help"]}, invoke_without_command=True)
@click.option(
    "--repo",
    type=click.Path(file_okay=False),
    default=None,
    help="Repository to open (defaults to the current directory).",
)
@click.option("--log-level", default=None, help="Override the configured log level.")
@click.pass_context
def main(ctx: click.Context, repo: str | None, log_level: str | None) -> None:
    """gitty: interactive terminal front-end for git."""
    try:
        settings = load_settings()
    except ConfigError as exc:
        _fail(str(exc))
    if log_level:
        settings = dataclasses.replace(settings, log_level=log_level.upper())

    try:
        setup_logging(settings.log_level)
    except OSError as exc:
        click.echo(f"gitty: logging disabled: {exc}", err=True)

    repo_root = _resolve_repo(repo)
    ctx.obj = {"repo_root": repo_root, "settings": settings}
    if ctx.invoked_subcommand is not None:
        return

    if not sys.stdin.isatty() or not sys.stdout.isatty():
        git = Git(repo_root, settings.retry)
        for change in operations.load_changes(git).changes:
            click.echo(f"{change.code} {change.path}")
        return

    log.info("starting in %s", repo_root)
    run_tui(repo_root, settings)


@main.group("hooks", invoke_without_command=True)
@click.pass_context
def hooks_cmd(ctx: click.Context) -> None:
    """List the git hooks gitty can manage."""
    if ctx.invoked_subcommand is not None:
        return
    installed = hooks.installed_hooks(_hooks_dir(ctx))
    for spec in hooks.HOOKS:
        mark = "x" if spec.key in installed else " "
        click.echo(f"[{mark}] {spec.key:22} {spec.filename:12} {spec.description}")


@hooks_cmd.command("install")
@click.argument("name", required=False)
@click.pass_context
def hooks_install(ctx: click.Context, name: str | None) -> None:
    """Install a hook, or pick hooks interactively."""
    git_dir = _hooks_dir(ctx)
    try:
        if name:
            specs = [hooks.get_hook(name)]
        else:
            specs = prompts.pick_hooks(list(hooks.HOOKS), hooks.installed_hooks(git_dir))
        for spec in specs:
            path = hooks.install_hook(git_dir, spec)
            click.echo(f"Installed {spec.key} at {path}")
    except hooks.HookError as exc:
        _fail(str(exc))


@hooks_cmd.command("remove")
@click.argument("name")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation.")
@click.pass_context
def hooks_remove(ctx: click.Context, name: str, yes: bool) -> None:
    """Remove an installed hook."""
    git_dir = _hooks_dir(ctx)
    try:
        spec = hooks.get_hook(name)
        if not yes and not prompts.confirm(f"Remove {spec.key} ({spec.filename})?"):
            click.echo("Cancelled.")
            return
        hooks.remove_hook(git_dir, spec)
    except hooks.HookError as exc:
        _fail(str(exc))
    click.echo(f"Removed {name}")


@main.command("switch")
@click.argument("branch", required=False)
@click.pass_context
def switch(ctx: click.Context, branch: str | None) -> None:
    """Switch branch, picking one with fuzzy completion if none is given."""
    repo_root, settings = _context(ctx)
    git = Git(repo_root, settings.retry)
    if branch is None:
        if not sys.stdin.isatty():
            _fail("no branch given")
        picked = prompts.pick_branch(list(operations.load_branches(git).branches))
        if picked is None:
            click.echo("No branch selected.")
            return
        branch = picked.name

    result = operations.switch_branch(git, branch)
    click.echo(result.text, err=not result.ok)
    if not result.ok:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
