import pytest

from gitty import operations
from gitty.messages import (
    BranchesLoaded,
    ChangesLoaded,
    CommitCompleted,
    DiffLoaded,
    LogLoaded,
    Message,
    OperationResult,
    RebaseFinished,
    RebasePlanLoaded,
    Reload,
    RepoSwitched,
    StashesLoaded,
)
from gitty.models import Branch, Change, Commit, RebaseAction, RebaseCommit, Stash
from gitty.parsers import parse_changes
from gitty.rebase import serialize_plan
from gitty.state import (
    RECONCILERS,
    AppState,
    Command,
    Confirm,
    Cursor,
    InputCancelled,
    InputSubmitted,
    InputTarget,
    KeyPress,
    Resize,
    Tab,
    ToolMode,
    View,
    initial_commands,
    update,
)


class Clock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


def _state(**fields) -> AppState:
    return AppState(repo_path="/repo", clock=Clock(), **fields)


def _press(state: AppState, *keys: str) -> list[Command]:
    commands: list[Command] = []
    for key in keys:
        _, produced = update(state, KeyPress(key))
        commands.extend(produced)
    return commands


def _ops(commands: list[Command]) -> list:
    return [command.op for command in commands]


def _changes(*paths: str) -> tuple[Change, ...]:
    return tuple(Change(path=path, code=" M") for path in paths)


def test_initial_state() -> None:
    state = _state()
    assert state.tab is Tab.WORKSPACE
    assert state.view is View.FILES
    assert state.confirm_action is None
    assert (state.cursors.files.index, state.cursors.files.offset) == (0, 0)
    assert _ops(initial_commands(state)) == [
        operations.load_changes,
        operations.load_status,
        operations.load_recent_commits,
    ]


class TestConfirmation:
    def test_first_press_only_arms(self) -> None:
        state = _state(changes=_changes("a.py"))
        assert _press(state, "d") == []
        assert state.confirm_action is Confirm.DISCARD
        assert "discard" in (state.current_status() or "")

    def test_second_press_dispatches_once(self) -> None:
        state = _state(changes=_changes("a.py"))
        commands = _press(state, "d", "d")
        assert commands == [Command(operations.discard_file, ("a.py",))]
        assert state.confirm_action is None

    def test_escape_cancels(self) -> None:
        state = _state(changes=_changes("a.py"))
        commands = _press(state, "d", "esc")
        assert commands == []
        assert state.confirm_action is None
        assert state.current_status() == "Action cancelled"
        assert state.view is View.FILES

    def test_different_action_clears_token(self) -> None:
        state = _state(changes=_changes("a.py"))
        assert _press(state, "d", "R") == []
        assert state.confirm_action is None
        assert _press(state, "d") == []
        assert state.confirm_action is Confirm.DISCARD

    def test_navigation_clears_token(self) -> None:
        state = _state(changes=_changes("a.py", "b.py"))
        _press(state, "d", "j")
        assert state.confirm_action is None
        assert _press(state, "d") == []

    @pytest.mark.parametrize(
        ("setup", "keys", "expected"),
        [
            (
                {"tab": Tab.BRANCHES, "branches": (Branch("main", current=True), Branch("old"))},
                ("j", "d", "d"),
                Command(operations.delete_branch, ("old",)),
            ),
            (
                {"tab": Tab.TOOLS, "tool_mode": ToolMode.STASH, "stashes": (Stash(0, "WIP"),)},
                ("d", "d"),
                Command(operations.stash_drop, (0,)),
            ),
            (
                {"tab": Tab.TOOLS, "tool_mode": ToolMode.STASH, "stashes": (Stash(0, "WIP"),)},
                ("p", "p"),
                Command(operations.stash_pop, (0,)),
            ),
            (
                {"tab": Tab.TOOLS, "tool_mode": ToolMode.MENU},
                ("p", "p"),
                Command(operations.push),
            ),
            (
                {"tab": Tab.TOOLS, "tool_mode": ToolMode.REMOTE},
                ("l", "l"),
                Command(operations.pull),
            ),
            (
                {"tab": Tab.TOOLS, "tool_mode": ToolMode.CLEAN, "clean_paths": ("tmp/",)},
                ("d", "d"),
                Command(operations.clean_untracked),
            ),
            (
                {"tab": Tab.TOOLS, "tool_mode": ToolMode.LOG, "log_commits": (Commit("abc", "x"),)},
                ("R", "R"),
                Command(operations.revert, ("abc",)),
            ),
            (
                {"tab": Tab.TOOLS, "tool_mode": ToolMode.UNDO, "history": (Commit("abc", "x"),)},
                ("enter", "enter"),
                Command(operations.undo_to_commit, ("abc",)),
            ),
            (
                {"changes": _changes("a.py")},
                ("R", "R"),
                Command(operations.reset_last_commit),
            ),
        ],
    )
    def test_guarded_actions(self, setup: dict, keys: tuple[str, ...], expected: Command) -> None:
        state = _state(**setup)
        assert _press(state, *keys[:-1]) == []
        assert state.confirm_action is not None
        assert _press(state, keys[-1]) == [expected]
        assert state.confirm_action is None

    def test_current_branch_cannot_be_deleted(self) -> None:
        state = _state(tab=Tab.BRANCHES, branches=(Branch("main", current=True),))
        assert _press(state, "d", "d") == []
        assert state.status_error is True


class TestCursor:
    def test_offset_follows_cursor(self) -> None:
        cursor = Cursor()
        for _ in range(5):
            cursor.move(1, 10, 3)
        assert (cursor.index, cursor.offset) == (5, 3)
        for _ in range(3):
            cursor.move(-1, 10, 3)
        assert (cursor.index, cursor.offset) == (2, 2)

    def test_move_stops_at_bounds(self) -> None:
        cursor = Cursor()
        assert cursor.move(-1, 3, 5) is False
        cursor.move(10, 3, 5)
        assert cursor.index == 2
        assert cursor.move(1, 3, 5) is False

    def test_move_on_empty_list_resets(self) -> None:
        cursor = Cursor(4, 2)
        assert cursor.move(1, 0, 5) is False
        assert (cursor.index, cursor.offset) == (0, 0)

    @pytest.mark.parametrize("height", [0, 1, 5, 13])
    def test_visible_count_never_below_one(self, height: int) -> None:
        assert _state(height=height).visible_count() >= 1

    @pytest.mark.parametrize(("before", "after"), [(5, 2), (5, 1), (5, 0), (3, 3)])
    def test_reconciliation_clamps_cursor(self, before: int, after: int) -> None:
        state = _state(changes=_changes(*(f"f{i}" for i in range(before))))
        state.cursors.files.index = before - 1
        update(state, ChangesLoaded(_changes(*(f"g{i}" for i in range(after)))))
        assert state.cursors.files.index == max(0, min(before - 1, after - 1))
        assert state.cursors.files.offset <= state.cursors.files.index

    def test_branch_list_shrink_clamps(self) -> None:
        state = _state(tab=Tab.BRANCHES, branches=tuple(Branch(f"b{i}") for i in range(6)))
        _press(state, *["j"] * 5)
        assert state.cursors.branches.index == 5
        update(state, BranchesLoaded((Branch("main"),)))
        assert state.cursors.branches.index == 0

    def test_small_window_scrolls(self) -> None:
        state = _state(height=16, changes=_changes(*(f"f{i}" for i in range(10))))
        _press(state, *["j"] * 4)
        cursor = state.cursors.files
        assert cursor.index == 4
        assert cursor.index < cursor.offset + state.visible_count(7)
        assert cursor.offset == 4


class TestNavigation:
    def test_tab_switch_clears_transient_state(self) -> None:
        state = _state(diff_text="diff", diff_path="a.py")
        commands = _press(state, "2")
        assert state.tab is Tab.COMMIT
        assert state.diff_text == ""
        assert _ops(commands) == [operations.load_changes, operations.load_status]

    def test_tools_tab_starts_at_menu(self) -> None:
        state = _state(tab=Tab.TOOLS, tool_mode=ToolMode.STASH)
        _press(state, "1", "4")
        assert state.tool_mode is ToolMode.MENU

    def test_menu_shortcut_enters_mode(self) -> None:
        state = _state(tab=Tab.TOOLS)
        commands = _press(state, "s")
        assert state.tool_mode is ToolMode.STASH
        assert _ops(commands) == [operations.load_stashes]

    def test_menu_fetch_runs_directly(self) -> None:
        state = _state(tab=Tab.TOOLS)
        assert _press(state, "f") == [Command(operations.fetch)]
        assert state.tool_mode is ToolMode.MENU

    def test_escape_returns_to_menu(self) -> None:
        state = _state(tab=Tab.TOOLS, tool_mode=ToolMode.TAGS)
        _press(state, "esc")
        assert state.tool_mode is ToolMode.MENU

    def test_enter_opens_diff_and_escape_returns(self) -> None:
        state = _state(changes=_changes("a.py"))
        commands = _press(state, "enter")
        assert state.view is View.DIFF
        assert commands == [Command(operations.load_file_diff, ("a.py",))]
        update(state, DiffLoaded("a.py", "+x\n"))
        _press(state, "esc")
        assert state.view is View.FILES

    def test_blame_refused_for_untracked(self) -> None:
        state = _state(changes=(Change("new.txt", "??"),))
        assert _press(state, "b") == []
        assert state.view is View.FILES
        assert state.status_error is True

    def test_quit(self) -> None:
        state = _state()
        _press(state, "q")
        assert state.quit is True

    def test_open_input_swallows_keys(self) -> None:
        state = _state(tab=Tab.COMMIT, input=InputTarget.COMMIT_MESSAGE)
        assert _press(state, "q", "1") == []
        assert state.quit is False
        assert state.tab is Tab.COMMIT
        _press(state, "esc")
        assert state.input is None

    def test_resize_updates_dimensions(self) -> None:
        state = _state()
        update(state, Resize(120, 40))
        assert (state.width, state.height) == (120, 40)


class TestInput:
    def test_commit_message(self) -> None:
        state = _state(tab=Tab.COMMIT)
        _press(state, "c")
        assert state.input is InputTarget.COMMIT_MESSAGE
        _, commands = update(state, InputSubmitted(InputTarget.COMMIT_MESSAGE, "  feat: x "))
        assert commands == [Command(operations.commit, ("feat: x",))]
        assert state.input is None

    def test_empty_commit_message_rejected(self) -> None:
        state = _state(tab=Tab.COMMIT)
        _, commands = update(state, InputSubmitted(InputTarget.COMMIT_MESSAGE, "   "))
        assert commands == []
        assert state.status_error is True

    def test_log_search(self) -> None:
        state = _state(tab=Tab.TOOLS, tool_mode=ToolMode.LOG)
        _press(state, "/")
        _, commands = update(state, InputSubmitted(InputTarget.LOG_SEARCH, "fix"))
        assert commands == [Command(operations.load_log, (50, "fix"))]
        update(state, LogLoaded((), "fix"))
        assert state.current_status() == "No commits match 'fix'"

    def test_cancel_clone_returns_to_menu(self) -> None:
        state = _state(tab=Tab.TOOLS)
        _press(state, "c")
        assert state.tool_mode is ToolMode.CLONE
        assert state.input is InputTarget.CLONE_URL
        update(state, InputCancelled(InputTarget.CLONE_URL))
        assert state.tool_mode is ToolMode.MENU
        assert state.input is None

    def test_new_tag(self) -> None:
        state = _state(tab=Tab.TOOLS, tool_mode=ToolMode.TAGS)
        _press(state, "n")
        _, commands = update(state, InputSubmitted(InputTarget.NEW_TAG, "v1.0 First release"))
        assert commands == [Command(operations.create_tag, ("v1.0 First release",))]


class TestRebase:
    def _enter(self) -> AppState:
        state = _state(tab=Tab.TOOLS)
        _press(state, "r")
        assert state.tool_mode is ToolMode.REBASE
        assert state.input is InputTarget.REBASE_COUNT
        return state

    @pytest.mark.parametrize("value", ["abc", "0", "51", "-2", ""])
    def test_invalid_count_keeps_prompt_open(self, value: str) -> None:
        state = self._enter()
        _, commands = update(state, InputSubmitted(InputTarget.REBASE_COUNT, value))
        assert commands == []
        assert state.input is InputTarget.REBASE_COUNT
        assert state.status_error is True
        assert "between 1 and 50" in (state.current_status() or "")

    def test_plan_edit_and_execute(self) -> None:
        state = self._enter()
        _, commands = update(state, InputSubmitted(InputTarget.REBASE_COUNT, "3"))
        assert commands == [Command(operations.load_rebase_plan, (3,))]

        plan = (RebaseCommit("c3", "third"), RebaseCommit("c2", "second"), RebaseCommit("c1", "first"))
        update(state, RebasePlanLoaded(plan))
        assert [entry.action for entry in state.rebase_plan] == [RebaseAction.PICK] * 3

        _press(state, "j", "s")
        assert state.rebase_plan[1].action is RebaseAction.SQUASH

        assert _press(state, "enter") == []
        assert state.confirm_action is Confirm.REBASE
        commands = _press(state, "enter")
        assert len(commands) == 1
        assert commands[0].op is operations.execute_rebase

        (snapshot,) = commands[0].args
        assert serialize_plan(snapshot) == "pick c1 first\nsquash c2 second\npick c3 third\n"

        state.rebase_plan[1].action = RebaseAction.DROP
        assert snapshot[1].action is RebaseAction.SQUASH

    def test_successful_rebase_clears_plan(self) -> None:
        state = self._enter()
        state.input = None
        update(state, RebasePlanLoaded((RebaseCommit("c1", "x"),)))
        _, commands = update(state, RebaseFinished(True, "Rebased 1 commits"))
        assert state.rebase_plan == []
        assert Command(operations.load_history, (20,)) in commands


class TestReconciliation:
    def test_every_message_has_a_reconciler(self) -> None:
        assert set(Message.__subclasses__()) == set(RECONCILERS)

    def test_operation_result_chains_reloads(self) -> None:
        state = _state()
        _, commands = update(state, OperationResult("Staged a.py", reload=(Reload.CHANGES, Reload.STATUS)))
        assert _ops(commands) == [operations.load_changes, operations.load_status]
        assert state.current_status() == "Staged a.py"
        assert state.status_error is False

    def test_failed_operation_reports_without_reload(self) -> None:
        state = _state()
        _, commands = update(state, OperationResult("Push failed: rejected", ok=False))
        assert commands == []
        assert state.status_error is True
        assert state.confirm_action is None

    def test_commit_completed_reloads_recent(self) -> None:
        state = _state(tab=Tab.COMMIT)
        _, commands = update(state, CommitCompleted("abc1234", "feat: x", "+x\n", ("a.py",)))
        assert state.commit_summary is not None
        assert _ops(commands) == [
            operations.load_changes,
            operations.load_status,
            operations.load_recent_commits,
        ]

    def test_changes_recompute_suggestions_and_load_diff(self) -> None:
        state = _state()
        _, commands = update(state, ChangesLoaded(tuple(parse_changes("M  docs/guide.md\n"))))
        assert [s.message for s in state.suggestions] == ["docs: update documentation (1 files)"]
        assert commands == [Command(operations.load_file_diff, ("docs/guide.md",))]

    def test_stashes_load_selected_diff(self) -> None:
        state = _state(tab=Tab.TOOLS, tool_mode=ToolMode.STASH)
        _, commands = update(state, StashesLoaded((Stash(0, "WIP on main: x"),)))
        assert commands == [Command(operations.load_stash_diff, (0,))]

    def test_repo_switch_resets_state(self) -> None:
        state = _state(tab=Tab.TOOLS, tool_mode=ToolMode.CLONE, changes=_changes("a.py"))
        _, commands = update(state, RepoSwitched("/other"))
        assert state.repo_path == "/other"
        assert state.tab is Tab.WORKSPACE
        assert state.changes == ()
        assert _ops(commands) == _ops(initial_commands(state))

    def test_status_message_expires(self) -> None:
        clock = Clock()
        state = AppState(repo_path="/repo", clock=clock)
        state.set_status("hello")
        clock.now += 2
        assert state.current_status() == "hello"
        clock.now += 2
        assert state.current_status() is None
