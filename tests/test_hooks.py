from pathlib import Path

import pytest

from gitty import hooks


@pytest.fixture
def git_dir(tmp_path: Path) -> Path:
    (tmp_path / ".git" / "hooks").mkdir(parents=True)
    return tmp_path / ".git"


def test_install_writes_executable_hook(git_dir: Path) -> None:
    path = hooks.install_hook(git_dir, hooks.CONVENTIONAL_COMMITS)

    assert path == git_dir / "hooks" / "commit-msg"
    assert path.stat().st_mode & 0o777 == 0o755
    content = path.read_text()
    assert content.startswith("#!/bin/sh\n# managed-by: gitty conventional-commits\n")
    assert hooks.is_installed(git_dir, hooks.CONVENTIONAL_COMMITS)
    assert hooks.installed_hooks(git_dir) == frozenset({"conventional-commits"})


def test_install_creates_hooks_dir(tmp_path: Path) -> None:
    hooks.install_hook(tmp_path, hooks.NO_LARGE_FILES)
    assert (tmp_path / "hooks" / "pre-commit").is_file()
    assert hooks.is_installed(tmp_path, hooks.NO_LARGE_FILES)


def test_hooks_sharing_a_file_replace_each_other(git_dir: Path) -> None:
    hooks.install_hook(git_dir, hooks.NO_LARGE_FILES)
    hooks.install_hook(git_dir, hooks.DETECT_SECRETS)
    assert hooks.installed_hooks(git_dir) == frozenset({"detect-secrets"})


def test_install_refuses_foreign_hook(git_dir: Path) -> None:
    foreign = git_dir / "hooks" / "pre-commit"
    foreign.write_text("#!/bin/sh\necho mine\n")
    with pytest.raises(hooks.HookError, match="not installed by gitty"):
        hooks.install_hook(git_dir, hooks.NO_LARGE_FILES)
    assert foreign.read_text() == "#!/bin/sh\necho mine\n"


def test_non_executable_hook_is_not_installed(git_dir: Path) -> None:
    path = hooks.install_hook(git_dir, hooks.CONVENTIONAL_COMMITS)
    path.chmod(0o644)
    assert not hooks.is_installed(git_dir, hooks.CONVENTIONAL_COMMITS)


def test_remove_hook(git_dir: Path) -> None:
    path = hooks.install_hook(git_dir, hooks.CONVENTIONAL_COMMITS)
    hooks.remove_hook(git_dir, hooks.CONVENTIONAL_COMMITS)
    assert not path.exists()
    assert hooks.installed_hooks(git_dir) == frozenset()


def test_remove_refuses_other_hook(git_dir: Path) -> None:
    hooks.install_hook(git_dir, hooks.NO_LARGE_FILES)
    with pytest.raises(hooks.HookError, match="is not detect-secrets"):
        hooks.remove_hook(git_dir, hooks.DETECT_SECRETS)
    assert hooks.is_installed(git_dir, hooks.NO_LARGE_FILES)


def test_remove_missing_hook(git_dir: Path) -> None:
    with pytest.raises(hooks.HookError, match="not installed"):
        hooks.remove_hook(git_dir, hooks.CONVENTIONAL_COMMITS)


def test_get_hook() -> None:
    assert hooks.get_hook("detect-secrets") is hooks.DETECT_SECRETS
    with pytest.raises(hooks.HookError, match="Unknown hook"):
        hooks.get_hook("nope")
