from datetime import datetime

import pytest

from gitty import parsers
from gitty.models import AheadBehind, Category


def test_status_modified_and_untracked() -> None:
    text = " M file.go\n?? new.txt\n"
    status = parsers.parse_status(text)
    assert status.staged_files == 0
    assert status.unstaged_files == 1
    assert status.untracked_files == 1
    assert status.clean is False

    changes = parsers.parse_changes(text)
    assert [c.code for c in changes] == [" M", "??"]
    assert [c.path for c in changes] == ["file.go", "new.txt"]


@pytest.mark.parametrize(
    ("text", "staged", "unstaged"),
    [
        ("M  a.py\n", 1, 0),
        ("MM a.py\n", 1, 1),
        ("A  a.py\nD  b.py\nR  c.py -> d.py\n", 3, 0),
        (" D a.py\n", 0, 1),
        ("x\n\n", 0, 0),
    ],
)
def test_status_counts(text: str, staged: int, unstaged: int) -> None:
    status = parsers.parse_status(text)
    assert status.staged_files == staged
    assert status.unstaged_files == unstaged


@pytest.mark.parametrize("text", ["", "   \n", "\n\n"])
def test_status_empty_is_clean(text: str) -> None:
    status = parsers.parse_status(text)
    assert status.clean is True
    assert parsers.parse_changes(text) == []


def test_status_header_tracking() -> None:
    text = "## main...origin/main [ahead 3, behind 2]\n M a.py\n"
    status = parsers.parse_status(text)
    assert status.branch == "main"
    assert status.upstream == "origin/main"
    assert (status.ahead, status.behind) == (3, 2)
    assert status.tracking_unknown is False


def test_status_header_only_is_clean() -> None:
    status = parsers.parse_status("## main\n")
    assert status.clean is True
    assert status.upstream is None


def test_status_header_unrecognised_tracking_is_flagged() -> None:
    status = parsers.parse_status("## main...origin/main [vor 2]\n")
    assert status.tracking_unknown is True
    assert (status.ahead, status.behind) == (0, 0)


def test_status_header_new_repo() -> None:
    status = parsers.parse_status("## No commits yet on main\n?? a.txt\n")
    assert status.branch == "main"
    assert status.untracked_files == 1


@pytest.mark.parametrize(
    ("annotation", "expected"),
    [
        ("ahead 3, behind 2", AheadBehind(3, 2)),
        ("behind 5", AheadBehind(0, 5)),
        ("[ahead 1]", AheadBehind(1, 0)),
        ("gone", AheadBehind(0, 0)),
        ("", AheadBehind(0, 0)),
        ("voraus 1", None),
    ],
)
def test_parse_tracking(annotation: str, expected: AheadBehind | None) -> None:
    assert parsers.parse_tracking(annotation) == expected


def test_changes_rename_and_quoted_paths() -> None:
    text = 'R  old.py -> new.py\n?? "with space.txt"\nXY bogus\n'
    changes = parsers.parse_changes(text)
    assert [c.path for c in changes] == ["new.py", "with space.txt"]


def test_changes_are_categorised() -> None:
    text = "M  tests/test_a.py\n M README.md\nA  src/new.py\n M src/core.py\n?? .gitignore\n"
    categories = [c.category for c in parsers.parse_changes(text)]
    assert categories == [
        Category.TEST,
        Category.DOCS,
        Category.FEAT,
        Category.REFACTOR,
        Category.CHORE,
    ]


@pytest.mark.parametrize(
    ("line", "path"),
    [
        ('?? "caf\\303\\251.txt"\n', "café.txt"),
        (' M "tab\\there.txt"\n', "tab\there.txt"),
        ('A  "quote\\"d \\\\ back.txt"\n', 'quote"d \\ back.txt'),
        ('R  "old\\303\\251" -> "new\\303\\251"\n', "newé"),
    ],
)
def test_changes_decode_quoted_paths(line: str, path: str) -> None:
    assert [c.path for c in parsers.parse_changes(line)] == [path]


def test_name_list_decodes_quoted_paths() -> None:
    text = '"\\346\\227\\245\\346\\234\\254.txt"\nplain.txt\n'
    assert parsers.parse_name_list(text) == ["日本.txt", "plain.txt"]


def test_copied_and_type_changed_entries_are_listed_and_staged() -> None:
    text = "C  a.py -> b.py\nT  link\n"
    changes = parsers.parse_changes(text)
    assert [(c.code, c.path) for c in changes] == [("C ", "b.py"), ("T ", "link")]
    assert all(c.staged for c in changes)
    assert parsers.parse_status(text).staged_files == len(changes)


BRANCHES = """\
* main      abc1234 [origin/main: ahead 2, behind 1] Subject
  feature   def5678 Subject with [brackets]
  topic     1234567 [origin/topic] tracked
+ wt        7654321 [origin/wt: behind 3] elsewhere
  odd       1111111 [origin/odd: voraus 2] localized
"""


def test_parse_branches() -> None:
    branches = parsers.parse_branches(BRANCHES)
    by_name = {b.name: b for b in branches}
    assert list(by_name) == ["main", "feature", "topic", "wt", "odd"]
    assert [b.name for b in branches if b.current] == ["main"]

    main = by_name["main"]
    assert main.upstream == "origin/main"
    assert (main.ahead, main.behind) == (2, 1)

    assert by_name["feature"].upstream is None
    assert by_name["topic"].upstream == "origin/topic"
    assert (by_name["topic"].ahead, by_name["topic"].behind) == (0, 0)
    assert (by_name["wt"].ahead, by_name["wt"].behind) == (0, 3)
    assert by_name["odd"].tracking_unknown is True


def test_parse_branches_detached_head() -> None:
    text = "* (HEAD detached at abc1234) abc1234 msg\n  main def5678 other\n"
    branches = parsers.parse_branches(text)
    assert branches[0].name == "(HEAD detached at abc1234)"
    assert branches[0].current is True
    assert branches[1].current is False


def test_bracketed_subject_is_not_an_upstream() -> None:
    text = "* main abc1234 [WIP] half done\n  topic 1234567 [origin/topic: ahead 1] tracked\n"
    branches = parsers.parse_branches(text, parsers.parse_upstreams("\norigin/topic\n"))
    assert branches[0].upstream is None
    assert branches[0].tracking_unknown is False
    assert branches[1].upstream == "origin/topic"
    assert branches[1].ahead == 1


def test_known_upstreams_with_no_divergence() -> None:
    branches = parsers.parse_branches("  topic 1234567 [main] local upstream\n", frozenset({"main"}))
    assert branches[0].upstream == "main"


def test_parse_remote_branches_skips_symbolic_refs() -> None:
    text = "  origin/HEAD -> origin/main\n  origin/main\n  origin/feature\n"
    branches = parsers.parse_remote_branches(text)
    assert [b.name for b in branches] == ["origin/main", "origin/feature"]
    assert all(b.remote for b in branches)


def test_parse_log() -> None:
    text = "abc1234|fix: a|b pipe|Alice|2 days ago\nbad|line\n\ndef5678|feat: x|Bob|1 hour ago"
    commits = parsers.parse_log(text)
    assert len(commits) == 2
    assert commits[0].hash == "abc1234"
    assert commits[0].subject == "fix: a|b pipe"
    assert commits[0].author == "Alice"
    assert commits[1].date == "1 hour ago"


def test_parse_reflog() -> None:
    text = "abc1234|commit: add thing|3 minutes ago\nabc|too-short\n"
    entries = parsers.parse_reflog(text)
    assert len(entries) == 1
    assert entries[0].subject == "commit: add thing"
    assert entries[0].date == "3 minutes ago"


def test_parse_commit_detail_with_body() -> None:
    text = (
        "abc123full|Add thing|Body line one\nline two|Alice|alice@example.com|2 days ago\x1e\n"
        " file.py   | 3 ++-\n"
        " README.md | 1 +\n"
        " 2 files changed, 3 insertions(+), 1 deletion(-)\n"
    )
    detail = parsers.parse_commit_detail(text, "abc123")
    assert detail.hash == "abc123full"
    assert detail.subject == "Add thing"
    assert detail.body == "Body line one\nline two"
    assert detail.author == "Alice"
    assert detail.email == "alice@example.com"
    assert detail.date == "2 days ago"
    assert detail.files == ("file.py", "README.md")
    assert (detail.insertions, detail.deletions) == (3, 1)


def test_parse_commit_detail_without_separator() -> None:
    text = "h1|Subject||Bob|bob@example.com|now\n a.txt | 2 +-\n 1 file changed, 1 insertion(+), 1 deletion(-)\n"
    detail = parsers.parse_commit_detail(text)
    assert detail.hash == "h1"
    assert detail.body == ""
    assert detail.files == ("a.txt",)
    assert (detail.insertions, detail.deletions) == (1, 1)


def test_parse_commit_detail_empty() -> None:
    detail = parsers.parse_commit_detail("  \n", "abc")
    assert detail.hash == "abc"
    assert detail.files == ()


def test_parse_blame() -> None:
    first = "a" * 40
    second = "b" * 40
    text = (
        f"{first} 1 1 2\n"
        "author Alice\n"
        "author-mail <alice@example.com>\n"
        "author-time 1700000000\n"
        "author-tz +0000\n"
        "summary init\n"
        "filename f.txt\n"
        "\tline one\n"
        f"{second} 2 2 1\n"
        "author Bob\n"
        "author-time 1700086400\n"
        "filename f.txt\n"
        "\tline two\n"
        f"{first} 2 3\n"
        "\tline three\n"
    )
    lines = parsers.parse_blame(text)
    assert [line.line for line in lines] == [1, 2, 3]
    assert [line.hash for line in lines] == ["aaaaaaa", "bbbbbbb", "aaaaaaa"]
    assert [line.author for line in lines] == ["Alice", "Bob", "Alice"]
    assert lines[0].date == datetime.fromtimestamp(1700000000).strftime("%Y-%m-%d")
    assert lines[2].date == lines[0].date
    assert lines[1].content == "line two"


def test_parse_blame_ignores_short_headers() -> None:
    assert parsers.parse_blame("abc123 1 1\n") == []


def test_parse_conflicts() -> None:
    conflicts = parsers.parse_conflicts("a.py\n\nb.py\n")
    assert [c.path for c in conflicts] == ["a.py", "b.py"]
    assert not any(c.resolved for c in conflicts)


def test_parse_stash_list() -> None:
    text = (
        "stash@{0}|WIP on main: abc1234 fix|2 hours ago\n"
        "garbage\n"
        "stash@{1}|On feature: saved work|3 days ago\n"
    )
    stashes = parsers.parse_stash_list(text)
    assert [s.index for s in stashes] == [0, 1]
    assert [s.branch for s in stashes] == ["main", "feature"]
    assert stashes[1].ref == "stash@{1}"
    assert stashes[1].date == "3 days ago"


def test_parse_tags() -> None:
    text = (
        "v1.0|tag|3 days ago|abc1234|Release one\n"
        "v0.9|commit|5 days ago|def5678|subject of commit\n"
        "|commit|x|y\n"
    )
    tags = parsers.parse_tags(text)
    assert [t.name for t in tags] == ["v1.0", "v0.9"]
    assert tags[0].annotated is True
    assert tags[0].message == "Release one"
    assert tags[1].annotated is False
    assert tags[1].message == ""
    assert tags[1].target == "def5678"


def test_parse_clean_preview() -> None:
    text = "Would remove build/\nWould remove tmp.txt\nsomething else\n"
    assert parsers.parse_clean_preview(text) == ["build/", "tmp.txt"]


def test_build_comparison() -> None:
    comparison = parsers.build_comparison(
        "feature",
        "main",
        "abc|feat: x|Alice|now\n",
        "",
        "a.py\nb.py\n",
    )
    assert comparison.source == "feature"
    assert [c.hash for c in comparison.ahead] == ["abc"]
    assert comparison.behind == ()
    assert comparison.files == ("a.py", "b.py")


@pytest.mark.parametrize(
    ("parser", "text"),
    [
        (parsers.parse_changes, " M a.py\n?? b.py\n"),
        (parsers.parse_branches, BRANCHES),
        (parsers.parse_log, "abc|s|a|d\ndef|t|b|e\n"),
        (parsers.parse_stash_list, "stash@{0}|On main: x|now\n"),
        (parsers.parse_tags, "v1|tag|now|abc|msg\n"),
    ],
)
def test_parsing_is_idempotent(parser, text: str) -> None:
    assert parser(text) == parser(text)


@pytest.mark.parametrize(
    "parser",
    [
        parsers.parse_changes,
        parsers.parse_branches,
        parsers.parse_remote_branches,
        parsers.parse_log,
        parsers.parse_reflog,
        parsers.parse_blame,
        parsers.parse_conflicts,
        parsers.parse_stash_list,
        parsers.parse_tags,
        parsers.parse_clean_preview,
    ],
)
def test_empty_input_means_no_records(parser) -> None:
    assert parser("") == []
    assert parser("  \n \n") == []
