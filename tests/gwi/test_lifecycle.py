from __future__ import annotations

import shutil
from pathlib import Path

import pytest

import gwi.projects as projects
from gwi import exec as exec_util
from gwi.errors import (
    CancelledError,
    NotFoundError,
    PreconditionError,
    UserInputError,
)
from gwi.git import RepositoryIdentity
from gwi.lifecycle import CommandOutcome, Orchestrator
from gwi.models import BoardConfig, GwiConfig, Issue
from gwi.reporter import InteractiveReporter, MachineReporter

IDENTITY = RepositoryIdentity("github.com", "acme", "api")

STATUS_FIELD = {
    "id": "F1",
    "name": "Status",
    "options": [
        {"id": "O1", "name": "Todo"},
        {"id": "O2", "name": "In Progress"},
        {"id": "O3", "name": "In Review"},
        {"id": "O4", "name": "Done"},
    ],
}


class RecordingReporter:
    def __init__(self, *, answer: bool = True) -> None:
        self.answer = answer
        self.messages: list[str] = []
        self.warnings: list[str] = []
        self.questions: list[str] = []

    def info(self, message: str) -> None:
        self.messages.append(message)

    def success(self, message: str) -> None:
        self.messages.append(message)

    def warn(self, message: str) -> None:
        self.warnings.append(message)

    def detail(self, message: str) -> None:
        self.messages.append(message)

    def confirm(self, message: str) -> bool:
        self.questions.append(message)
        return self.answer

    def existing_worktree(self, issue_number: int, path: Path) -> Path:
        raise AssertionError("unexpected existing worktree")


def _stub_board(fake_runner, issue_number: int) -> None:
    fake_runner.on_json(
        "gh", "repo", "view", payload={"owner": {"login": "acme"}, "name": "api"}
    )
    fake_runner.on_json(
        "gh", "api", "graphql",
        payload={
            "data": {
                "repository": {
                    "issue": {
                        "projectItems": {
                            "nodes": [
                                {"id": "ITEM1", "project": {"id": "P1", "title": "Roadmap"}}
                            ]
                        }
                    }
                }
            }
        },
        contains=(f"number={issue_number}",),
    )
    fake_runner.on_json(
        "gh", "api", "graphql",
        payload={"data": {"node": {"fields": {"nodes": [STATUS_FIELD]}}}},
        contains=("projectId=P1",),
    )


def _written_option(fake_runner) -> str:
    edit = fake_runner.argvs[fake_runner.index_of("gh", "project", "item-edit")]
    return edit[edit.index("--single-select-option-id") + 1]


@pytest.fixture
def main_repo(tmp_path: Path, fake_runner) -> Path:
    main = tmp_path / "src" / "api"
    main.mkdir(parents=True)
    fake_runner.on("git", "worktree", "list", stdout=f"worktree {main}\nHEAD abc\n\n")
    return main


def _orchestrator(
    tmp_path: Path,
    ctx,
    main_repo: Path,
    *,
    reporter=None,
    board: bool = False,
    cwd: Path | None = None,
    selector=None,
) -> Orchestrator:
    config = GwiConfig(
        worktree_base=tmp_path / "wt",
        hook_dir=tmp_path / "hooks",
        github=BoardConfig(projects_enabled=board, check_scopes=False),
    )
    return Orchestrator(
        config=config,
        identity=IDENTITY,
        reporter=reporter or RecordingReporter(),
        ctx=ctx,
        cwd=cwd or main_repo,
        selector=selector,
    )


def _make_worktree(orchestrator: Orchestrator, name: str) -> Path:
    path = orchestrator.base / name
    path.mkdir(parents=True)
    return path


@pytest.fixture(autouse=True)
def _gh_on_path(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(projects.shutil, "which", lambda name: f"/usr/bin/{name}")


def test_create_cuts_issue_branch_and_marks_in_progress(
    tmp_path: Path, fake_runner, ctx, main_repo: Path
) -> None:
    fake_runner.on_json(
        "gh", "issue", "view", "42",
        payload={"number": 42, "title": "Add user authentication!!", "state": "OPEN"},
    )
    fake_runner.on("git", "show-ref", returncode=1)
    _stub_board(fake_runner, 42)
    orchestrator = _orchestrator(tmp_path, ctx, main_repo, board=True)

    outcome = orchestrator.create(42)

    expected = tmp_path / "wt" / "github.com" / "acme" / "api" / "42-add-user-authentication"
    assert outcome == CommandOutcome(path=expected, relocate_to=expected)
    assert (
        "git", "worktree", "add", str(expected),
        "-b", "42-add-user-authentication", "origin/main",
    ) in fake_runner.argvs
    assert fake_runner.index_of("git", "fetch") < fake_runner.index_of(
        "git", "worktree", "add"
    )
    assert _written_option(fake_runner) == "O2"


def test_create_reuses_existing_local_branch(
    tmp_path: Path, fake_runner, ctx, main_repo: Path
) -> None:
    fake_runner.on_json(
        "gh", "issue", "view", "7", payload={"number": 7, "title": "Fix bug", "state": "OPEN"}
    )
    orchestrator = _orchestrator(tmp_path, ctx, main_repo)

    outcome = orchestrator.create(7)

    assert outcome.path is not None
    assert ("git", "worktree", "add", str(outcome.path), "7-fix-bug") in fake_runner.argvs


def test_create_existing_worktree_interactive_is_an_error(
    tmp_path: Path, fake_runner, ctx, main_repo: Path
) -> None:
    fake_runner.on_json(
        "gh", "issue", "view", "42", payload={"number": 42, "title": "Add login"}
    )
    orchestrator = _orchestrator(
        tmp_path, ctx, main_repo, reporter=InteractiveReporter()
    )
    _make_worktree(orchestrator, "42-add-login")

    with pytest.raises(PreconditionError) as excinfo:
        orchestrator.create(42)

    assert "gwi cd 42" in (excinfo.value.recovery_hint or "")
    assert not fake_runner.ran("git", "worktree", "add")


def test_create_existing_worktree_machine_returns_path(
    tmp_path: Path, fake_runner, ctx, main_repo: Path
) -> None:
    fake_runner.on_json(
        "gh", "issue", "view", "42", payload={"number": 42, "title": "Add login"}
    )
    orchestrator = _orchestrator(tmp_path, ctx, main_repo, reporter=MachineReporter())
    path = _make_worktree(orchestrator, "42-add-login")

    assert orchestrator.create(42).path == path
    assert not fake_runner.ran("git", "fetch")


def test_create_missing_issue_stops_before_git(
    tmp_path: Path, fake_runner, ctx, main_repo: Path
) -> None:
    fake_runner.on("gh", "issue", "view", returncode=1, stderr="not found")
    orchestrator = _orchestrator(tmp_path, ctx, main_repo)

    with pytest.raises(NotFoundError):
        orchestrator.create(404)

    assert not fake_runner.ran("git", "worktree", "add")


def test_issue_options_disable_existing_and_in_progress(
    tmp_path: Path, ctx, main_repo: Path
) -> None:
    orchestrator = _orchestrator(tmp_path, ctx, main_repo)
    _make_worktree(orchestrator, "1-existing")
    issues = [
        Issue(number=1, title="Existing"),
        Issue(number=2, title="Busy", project_status="In Progress"),
        Issue(number=3, title="Free"),
    ]

    options = orchestrator.issue_options(issues)
    relaxed = orchestrator.issue_options(issues, include_in_progress=True)

    assert [(option.disabled, option.hint) for option in options] == [
        (True, "already exists"),
        (True, "in progress"),
        (False, ""),
    ]
    assert [option.disabled for option in relaxed] == [True, False, False]


def test_issue_options_match_in_progress_case_insensitively(
    tmp_path: Path, ctx, main_repo: Path
) -> None:
    orchestrator = _orchestrator(tmp_path, ctx, main_repo)
    issues = [Issue(number=2, title="Busy", project_status="in progress")]

    (option,) = orchestrator.issue_options(issues)

    assert option.disabled
    assert option.in_progress
    assert option.hint == "in progress"


def test_submit_pushes_opens_pr_and_relocates(
    tmp_path: Path, fake_runner, ctx, main_repo: Path
) -> None:
    fake_runner.on_json(
        "gh", "issue", "view", "42", payload={"number": 42, "title": "Add login"}
    )
    fake_runner.on("gh", "pr", "create", stdout="https://github.com/acme/api/pull/7\n")
    orchestrator = _orchestrator(tmp_path, ctx, main_repo)
    path = _make_worktree(orchestrator, "42-add-login")
    orchestrator.cwd = path

    outcome = orchestrator.submit()

    assert outcome == CommandOutcome(
        relocate_to=main_repo, url="https://github.com/acme/api/pull/7"
    )
    create = fake_runner.argvs[fake_runner.index_of("gh", "pr", "create")]
    assert create[create.index("--body") + 1] == "Closes #42"
    assert fake_runner.index_of("git", "push") < fake_runner.index_of("gh", "pr", "create")
    assert fake_runner.ran("git", "worktree", "remove", str(path))


def test_submit_with_dirty_worktree_can_be_declined(
    tmp_path: Path, fake_runner, ctx, main_repo: Path
) -> None:
    fake_runner.on("git", "status", "--porcelain", stdout=" M a.py\n")
    reporter = RecordingReporter(answer=False)
    orchestrator = _orchestrator(tmp_path, ctx, main_repo, reporter=reporter)
    _make_worktree(orchestrator, "42-add-login")

    with pytest.raises(UserInputError):
        orchestrator.submit(42)

    assert reporter.questions == ["Continue anyway?"]
    assert not fake_runner.ran("git", "push")


def test_merge_with_conflicts_aborts_before_merging(
    tmp_path: Path, fake_runner, ctx, main_repo: Path
) -> None:
    fake_runner.on("gh", "pr", "list", stdout="17\n")
    fake_runner.on_json(
        "gh", "pr", "view", "17",
        payload={"mergeable": "CONFLICTING", "mergeStateStatus": "DIRTY"},
    )
    orchestrator = _orchestrator(tmp_path, ctx, main_repo)
    path = _make_worktree(orchestrator, "42-add-login")

    with pytest.raises(PreconditionError, match="merge conflicts"):
        orchestrator.merge(42)

    assert not fake_runner.ran("gh", "pr", "merge")
    assert path.exists()


def test_merge_comments_merges_and_closes(
    tmp_path: Path, fake_runner, ctx, main_repo: Path
) -> None:
    fake_runner.on("gh", "pr", "list", stdout="17\n")
    fake_runner.on_json(
        "gh", "pr", "view", "17",
        payload={"mergeable": "MERGEABLE", "mergeStateStatus": "CLEAN"},
    )
    fake_runner.on("git", "log", stdout="Add login form\n")
    fake_runner.on_json(
        "gh", "issue", "view", "42", payload={"number": 42, "state": "OPEN"}
    )
    orchestrator = _orchestrator(tmp_path, ctx, main_repo)
    _make_worktree(orchestrator, "42-add-login")

    outcome = orchestrator.merge(42)

    assert outcome == CommandOutcome()
    comment = fake_runner.argvs[fake_runner.index_of("gh", "issue", "comment")]
    assert comment[-1] == "**Merged in PR #17**\n\nAdd login form"
    assert ("gh", "pr", "merge", "17", "--squash", "--delete-branch") in fake_runner.argvs
    assert fake_runner.index_of("gh", "pr", "merge") < fake_runner.index_of(
        "gh", "issue", "close"
    )
    assert fake_runner.ran("git", "branch", "-D", "42-add-login")


def test_merge_blocked_pr_needs_confirmation(
    tmp_path: Path, fake_runner, ctx, main_repo: Path
) -> None:
    fake_runner.on("gh", "pr", "list", stdout="17\n")
    fake_runner.on_json(
        "gh", "pr", "view", "17",
        payload={"mergeable": "MERGEABLE", "mergeStateStatus": "BLOCKED"},
    )
    reporter = RecordingReporter(answer=False)
    orchestrator = _orchestrator(tmp_path, ctx, main_repo, reporter=reporter)
    _make_worktree(orchestrator, "42-add-login")

    with pytest.raises(UserInputError):
        orchestrator.merge(42)

    assert any("blocked" in warning for warning in reporter.warnings)
    assert not fake_runner.ran("gh", "pr", "merge")


def test_merge_without_worktree_finds_branch_from_open_prs(
    tmp_path: Path, fake_runner, ctx, main_repo: Path
) -> None:
    fake_runner.on_json(
        "gh", "pr", "list",
        payload=[{"number": 17, "headRefName": "42-add-login"}],
        contains=("open",),
    )
    fake_runner.on("gh", "pr", "list", stdout="17\n", contains=("--head", "42-add-login"))
    fake_runner.on_json(
        "gh", "pr", "view", "17",
        payload={"mergeable": "MERGEABLE", "mergeStateStatus": "CLEAN"},
    )
    orchestrator = _orchestrator(tmp_path, ctx, main_repo)

    orchestrator.merge(42)

    assert fake_runner.ran("git", "log", "-1", "--pretty=%B", "origin/42-add-login")
    assert fake_runner.ran("gh", "pr", "merge", "17")


def test_merge_local_merges_into_main_branch(
    tmp_path: Path, fake_runner, ctx, main_repo: Path
) -> None:
    fake_runner.on("git", "log", stdout="Add login form\n")
    orchestrator = _orchestrator(tmp_path, ctx, main_repo)
    _make_worktree(orchestrator, "42-add-login")

    orchestrator.merge_local(42)

    checkout = fake_runner.requests[fake_runner.index_of("git", "checkout")]
    assert checkout.argv == ("git", "checkout", "main")
    assert checkout.cwd == main_repo
    assert ("git", "merge", "--no-ff", "--no-edit", "42-add-login") in fake_runner.argvs
    assert ("git", "push", "origin", "main") in fake_runner.argvs
    comment = fake_runner.argvs[fake_runner.index_of("gh", "issue", "comment")]
    assert comment[-1] == "**Merged into main**\n\nAdd login form"
    assert fake_runner.ran("gh", "issue", "close", "42")


def test_remove_missing_worktree_is_idempotent(
    tmp_path: Path, fake_runner, ctx, main_repo: Path
) -> None:
    reporter = RecordingReporter()
    orchestrator = _orchestrator(tmp_path, ctx, main_repo, reporter=reporter)

    assert orchestrator.remove(42) == CommandOutcome()
    assert orchestrator.remove(42) == CommandOutcome()

    assert fake_runner.requests == []
    assert "nothing to remove" in reporter.messages[-1]


def test_remove_unmerged_resets_board_to_todo(
    tmp_path: Path, fake_runner, ctx, main_repo: Path
) -> None:
    _stub_board(fake_runner, 42)
    reporter = RecordingReporter()
    orchestrator = _orchestrator(tmp_path, ctx, main_repo, reporter=reporter, board=True)
    _make_worktree(orchestrator, "42-add-login")

    orchestrator.remove(42)

    assert reporter.questions == ["Remove worktree 42-add-login?"]
    assert _written_option(fake_runner) == "O1"
    assert not fake_runner.ran("git", "branch", "-D")


def test_remove_with_merged_pr_deletes_branches(
    tmp_path: Path, fake_runner, ctx, main_repo: Path
) -> None:
    fake_runner.on("gh", "pr", "list", stdout="17\n")
    fake_runner.on("gh", "pr", "view", "17", stdout="MERGED\n")
    orchestrator = _orchestrator(tmp_path, ctx, main_repo)
    _make_worktree(orchestrator, "42-add-login")

    orchestrator.remove(42, yes=True)

    assert fake_runner.ran("git", "branch", "-D", "42-add-login")
    assert fake_runner.ran("git", "push", "origin", "--delete", "42-add-login")
    assert not fake_runner.ran("gh", "api", "graphql")


def test_remove_from_inside_relocates_to_main(
    tmp_path: Path, fake_runner, ctx, main_repo: Path
) -> None:
    orchestrator = _orchestrator(tmp_path, ctx, main_repo)
    path = _make_worktree(orchestrator, "42-add-login")
    orchestrator.cwd = path / "src"

    outcome = orchestrator.remove(yes=True)

    assert outcome.relocate_to == main_repo
    assert fake_runner.ran("git", "worktree", "remove", str(path))


def test_remove_dirty_worktree_without_force(
    tmp_path: Path, fake_runner, ctx, main_repo: Path
) -> None:
    fake_runner.on("git", "worktree", "remove", returncode=128, stderr="contains modified")
    fake_runner.on("git", "status", "--porcelain", stdout=" M a.py\n")
    orchestrator = _orchestrator(tmp_path, ctx, main_repo)
    path = _make_worktree(orchestrator, "42-add-login")

    with pytest.raises(PreconditionError) as excinfo:
        orchestrator.remove(42, yes=True)

    assert excinfo.value.recovery_hint == "Use --force to remove anyway."
    assert path.exists()


def test_status_rows_report_changes_and_pr(
    tmp_path: Path, fake_runner, ctx, main_repo: Path
) -> None:
    fake_runner.on("git", "status", "--porcelain", stdout=" M a.py\n")
    fake_runner.on("git", "status", "--short", stdout=" M a.py\n?? b.py\n")
    fake_runner.on("git", "rev-list", stdout="0\t2\n")
    fake_runner.on("gh", "pr", "list", stdout="17\n")
    fake_runner.on("gh", "pr", "view", "17", stdout="OPEN\n")
    orchestrator = _orchestrator(tmp_path, ctx, main_repo)
    _make_worktree(orchestrator, "42-add-login")
    _make_worktree(orchestrator, "scratch")

    rows = orchestrator.status()

    assert [row.name for row in rows] == ["42-add-login", "scratch"]
    first = rows[0]
    assert (first.dirty, first.changes, first.ahead, first.behind) == (True, 2, 2, 0)
    assert (first.pr_number, first.pr_state) == (17, "OPEN")
    assert rows[1].issue_number is None
    assert rows[1].pr_number is None


def test_status_marks_failed_pr_lookup(
    tmp_path: Path, fake_runner, ctx, main_repo: Path
) -> None:
    fake_runner.on("gh", "pr", "list", returncode=1, stderr="HTTP 502")
    orchestrator = _orchestrator(tmp_path, ctx, main_repo)
    _make_worktree(orchestrator, "42-add-login")

    (row,) = orchestrator.status()

    assert row.pr_lookup_failed is True
    assert row.pr_number is None


def test_find_worktree_by_number_and_substring(
    tmp_path: Path, ctx, main_repo: Path
) -> None:
    orchestrator = _orchestrator(tmp_path, ctx, main_repo)
    login = _make_worktree(orchestrator, "42-add-login")
    _make_worktree(orchestrator, "7-fix-logout")

    assert orchestrator.find_worktree("42") == login
    assert orchestrator.find_worktree("add-log") == login
    with pytest.raises(NotFoundError):
        orchestrator.find_worktree("nothing")


def test_find_worktree_multiple_matches_asks(tmp_path: Path, ctx, main_repo: Path) -> None:
    seen: list[str] = []

    def pick_last(header, options):
        seen.extend(option.label for option in options)
        return options[-1].value

    orchestrator = _orchestrator(tmp_path, ctx, main_repo, selector=pick_last)
    _make_worktree(orchestrator, "42-add-login")
    fix_login = _make_worktree(orchestrator, "7-fix-login")

    assert orchestrator.find_worktree("login") == fix_login
    assert seen == ["42-add-login", "7-fix-login"]


def test_resolve_issue_number_prefers_explicit_then_cwd(
    tmp_path: Path, ctx, main_repo: Path
) -> None:
    def never(header, options):
        raise AssertionError("selector should not run")

    orchestrator = _orchestrator(tmp_path, ctx, main_repo, selector=never)
    path = _make_worktree(orchestrator, "42-add-login")
    orchestrator.cwd = path / "src"

    assert orchestrator.resolve_issue_number(7) == 7
    assert orchestrator.resolve_issue_number(None) == 42


def test_resolve_issue_number_outside_worktree_selects(
    tmp_path: Path, ctx, main_repo: Path
) -> None:
    def pick_first(header, options):
        return options[0].value

    orchestrator = _orchestrator(tmp_path, ctx, main_repo, selector=pick_first)
    _make_worktree(orchestrator, "42-add-login")

    assert orchestrator.resolve_issue_number(None) == 42


def test_resolve_issue_number_without_worktrees(
    tmp_path: Path, ctx, main_repo: Path
) -> None:
    orchestrator = _orchestrator(tmp_path, ctx, main_repo)

    with pytest.raises(NotFoundError):
        orchestrator.resolve_issue_number(None)


def test_orphaned_branches_skip_main_and_worktrees(
    tmp_path: Path, fake_runner, ctx, main_repo: Path
) -> None:
    fake_runner.on("git", "branch", "--format=%(refname:short)", stdout="main\n42-x\n7-old\n9-live\n")
    fake_runner.on(
        "git", "show-ref", returncode=1, contains=("refs/remotes/origin/7-old",)
    )
    orchestrator = _orchestrator(tmp_path, ctx, main_repo)
    _make_worktree(orchestrator, "42-x")

    assert orchestrator.orphaned_branches() == ["7-old"]


def _simulate_worktree_commands(fake_runner, path: Path) -> None:
    fake_runner.on("git", "worktree", "add", effect=lambda: path.mkdir(parents=True))
    fake_runner.on("git", "worktree", "remove", effect=lambda: shutil.rmtree(path))


def test_issue_flows_from_create_through_pr_to_merge(
    tmp_path: Path, fake_runner, ctx, main_repo: Path
) -> None:
    branch = "42-add-user-authentication"
    fake_runner.on_json(
        "gh", "issue", "view", "42",
        payload={"number": 42, "title": "Add user authentication!!", "state": "OPEN"},
    )
    fake_runner.on("git", "show-ref", returncode=1)
    _stub_board(fake_runner, 42)
    orchestrator = _orchestrator(tmp_path, ctx, main_repo, board=True)
    path = orchestrator.base / branch
    _simulate_worktree_commands(fake_runner, path)

    created = orchestrator.create(42)

    assert created.path == path
    assert path.is_dir()

    fake_runner.on("gh", "pr", "create", stdout="https://github.com/acme/api/pull/17\n")
    orchestrator.cwd = path

    submitted = orchestrator.submit()

    assert submitted.relocate_to == main_repo
    assert ("git", "push", "-u", "origin", branch) in fake_runner.argvs
    create_pr = fake_runner.argvs[fake_runner.index_of("gh", "pr", "create")]
    assert create_pr[create_pr.index("--body") + 1] == "Closes #42"
    assert not path.exists()

    fake_runner.on("git", "show-ref")
    fake_runner.on_json(
        "gh", "pr", "list",
        payload=[{"number": 17, "headRefName": branch}],
        contains=("open",),
    )
    fake_runner.on("gh", "pr", "list", stdout="17\n", contains=("--head", branch))
    fake_runner.on_json(
        "gh", "pr", "view", "17",
        payload={"mergeable": "MERGEABLE", "mergeStateStatus": "CLEAN"},
    )
    fake_runner.on("git", "log", stdout="Add login form\n")
    orchestrator.cwd = main_repo

    merged = orchestrator.merge(42)

    assert merged == CommandOutcome()
    assert ("gh", "pr", "merge", "17", "--squash", "--delete-branch") in fake_runner.argvs
    assert fake_runner.ran("gh", "issue", "close", "42")
    assert ("git", "branch", "-D", branch) in fake_runner.argvs
    assert ("git", "push", "origin", "--delete", branch) in fake_runner.argvs
    written = [
        argv[argv.index("--single-select-option-id") + 1]
        for argv in fake_runner.argvs
        if argv[:3] == ("gh", "project", "item-edit")
    ]
    assert written == ["O2", "O3", "O4"]


@pytest.fixture
def cancellable(fake_runner) -> exec_util.CommandContext:
    return exec_util.CommandContext(
        timeout_seconds=30,
        runner=fake_runner,
        cancel_token=exec_util.CancellationToken(),
    )


def test_interrupt_during_push_stops_before_pr(
    tmp_path: Path, fake_runner, cancellable, main_repo: Path
) -> None:
    fake_runner.on_json(
        "gh", "issue", "view", "42", payload={"number": 42, "title": "Add login"}
    )
    fake_runner.on("git", "push", effect=cancellable.cancel_token.cancel)
    orchestrator = _orchestrator(tmp_path, cancellable, main_repo)
    path = _make_worktree(orchestrator, "42-add-login")

    with pytest.raises(CancelledError):
        orchestrator.submit(42)

    assert fake_runner.argvs[-1][:2] == ("git", "push")
    assert not fake_runner.ran("gh", "pr", "create")
    assert path.exists()


def test_interrupt_during_best_effort_comment_is_not_a_warning(
    tmp_path: Path, fake_runner, cancellable, main_repo: Path
) -> None:
    fake_runner.on("gh", "pr", "list", stdout="17\n")
    fake_runner.on_json(
        "gh", "pr", "view", "17",
        payload={"mergeable": "MERGEABLE", "mergeStateStatus": "CLEAN"},
    )
    fake_runner.on("git", "log", stdout="Add login form\n")
    fake_runner.on(
        "gh", "issue", "comment", returncode=1, effect=cancellable.cancel_token.cancel
    )
    reporter = RecordingReporter()
    orchestrator = _orchestrator(tmp_path, cancellable, main_repo, reporter=reporter)
    _make_worktree(orchestrator, "42-add-login")

    with pytest.raises(CancelledError):
        orchestrator.merge(42)

    assert fake_runner.argvs[-1][:3] == ("gh", "issue", "comment")
    assert not fake_runner.ran("gh", "pr", "merge")
    assert reporter.warnings == []


def test_worktree_for_untranslatable_title_is_found_by_pr(
    tmp_path: Path, fake_runner, ctx, main_repo: Path
) -> None:
    fake_runner.on_json(
        "gh", "issue", "view", "42",
        payload={"number": 42, "title": "修复登录", "state": "OPEN"},
    )
    fake_runner.on("git", "show-ref", returncode=1)
    fake_runner.on("gh", "pr", "create", stdout="https://github.com/acme/api/pull/7\n")
    orchestrator = _orchestrator(tmp_path, ctx, main_repo)
    path = orchestrator.base / "42-issue"
    _simulate_worktree_commands(fake_runner, path)

    assert orchestrator.create(42).path == path

    orchestrator.submit(42)

    assert ("git", "push", "-u", "origin", "42-issue") in fake_runner.argvs
    assert not path.exists()
