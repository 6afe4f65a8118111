"""Install and remove the git hooks gitty ships.

Hooks live in the common git directory, which linked worktrees share.
"""

import logging
import stat
from dataclasses import dataclass
from pathlib import Path

log = logging.getLogger(__name__)

MARKER = "# managed-by: gitty"
EXEC_BITS = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH


class HookError(Exception):
    """Hook installation or removal failed."""


@dataclass(frozen=True)
class HookSpec:
    key: str
    filename: str
    description: str
    script: str

    @property
    def tag(self) -> str:
        return f"{MARKER} {self.key}"


CONVENTIONAL_COMMITS = HookSpec(
    key="conventional-commits",
    filename="commit-msg",
    description="Enforce conventional commit messages",
    script=r"""#!/bin/sh
first_line=$(head -n 1 "$1")
case "$first_line" in
  Merge*|Revert*|fixup!*|squash!*) exit 0 ;;
esac
if ! printf '%s\n' "$first_line" | grep -Eq '^(feat|fix|docs|style|refactor|perf|test|build|ci|chore|revert)(\([a-z0-9._-]+\))?!?: .+'; then
  echo "commit-msg: expected 'type(scope): subject', got: $first_line" >&2
  exit 1
fi
""",
)

NO_LARGE_FILES = HookSpec(
    key="no-large-files",
    filename="pre-commit",
    description="Block files larger than 5MB",
    script=r"""#!/bin/sh
limit=5242880
status=0
for file in $(git diff --cached --name-only --diff-filter=AM); do
  [ -f "$file" ] || continue
  size=$(wc -c < "$file")
  if [ "$size" -gt "$limit" ]; then
    echo "pre-commit: $file is larger than 5MB" >&2
    status=1
  fi
done
exit $status
""",
)

DETECT_SECRETS = HookSpec(
    key="detect-secrets",
    filename="pre-commit",
    description="Scan staged changes for secrets",
    script=r"""#!/bin/sh
pattern='(AKIA[0-9A-Z]{16}|-----BEGIN [A-Z ]*PRIVATE KEY-----|(api|secret|token|password)[_-]?(key)?[[:space:]]*[:=][[:space:]]*["'"'"'][^"'"'"']{8,})'
if git diff --cached -U0 | grep '^+' | grep -Eiq "$pattern"; then
  echo "pre-commit: staged changes look like they contain a secret" >&2
  exit 1
fi
""",
)

HOOKS: tuple[HookSpec, ...] = (CONVENTIONAL_COMMITS, NO_LARGE_FILES, DETECT_SECRETS)


def get_hook(key: str) -> HookSpec:
    for spec in HOOKS:
        if spec.key == key:
            return spec
    raise HookError(f"Unknown hook: {key}")


def hooks_dir(git_dir: Path) -> Path:
    return git_dir / "hooks"


def hook_path(git_dir: Path, spec: HookSpec) -> Path:
    return hooks_dir(git_dir) / spec.filename


def _read(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return ""


def is_installed(git_dir: Path, spec: HookSpec) -> bool:
    """Installed means an executable hook file carrying this hook's tag."""
    path = hook_path(git_dir, spec)
    if not path.is_file() or not path.stat().st_mode & EXEC_BITS:
        return False
    return spec.tag in _read(path)


def installed_hooks(git_dir: Path) -> frozenset[str]:
    return frozenset(spec.key for spec in HOOKS if is_installed(git_dir, spec))


def install_hook(git_dir: Path, spec: HookSpec) -> Path:
    """Write the hook script with mode 0755, replacing only gitty-managed hooks."""
    path = hook_path(git_dir, spec)
    if path.exists() and MARKER not in _read(path):
        raise HookError(f"{spec.filename} hook already exists and was not installed by gitty")

    shebang, _, body = spec.script.partition("\n")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(f"{shebang}\n{spec.tag}\n{body}", encoding="utf-8")
        path.chmod(0o755)
    except OSError as exc:
        raise HookError(f"Failed to install {spec.key}: {exc}") from exc
    log.info("installed %s hook at %s", spec.key, path)
    return path


def remove_hook(git_dir: Path, spec: HookSpec) -> None:
    """Delete the hook file if it is this hook."""
    path = hook_path(git_dir, spec)
    if not path.exists():
        raise HookError(f"{spec.key} is not installed")
    if spec.tag not in _read(path):
        raise HookError(f"{spec.filename} hook is not {spec.key}")
    try:
        path.unlink()
    except OSError as exc:
        raise HookError(f"Failed to remove {spec.key}: {exc}") from exc
    log.info("removed %s hook", spec.key)
