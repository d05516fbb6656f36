"""Issue worktree lifecycle: create, submit for review, merge, remove, status.

Each operation coordinates git worktrees, GitHub issues and pull requests,
and the GitHub Projects board:

    NoWorktree --create--> Active                 [board -> In Progress]
    Active --submit--> PR open, worktree removed  [board -> In Review]
    PR open --merge--> merged, branches deleted   [board -> Done]
    Active --remove--> NoWorktree                 [board -> Todo unless merged]

Git and GitHub steps are load-bearing and raise ``GwiError``. Board updates
and clean-up after a load-bearing step has committed only produce warnings;
nothing is rolled back.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Sequence

from . import branching, git, hooks, worktrees
from . import exec as exec_util
from . import selector as selector_util
from .errors import (
    CancelledError,
    ExternalCommandError,
    GwiError,
    NotFoundError,
    PreconditionError,
    UserInputError,
)
from .git import RepositoryIdentity
from .github import GithubClient, MergeVerdict, classify_mergeability, failing_checks
from .models import GwiConfig, Issue
from .projects import BoardSynchronizer, parse_issue_from_branch, sync_status
from .reporter import Reporter
from .selector import Option

ISSUE_SELECTION_LIMIT = 50
STATUS_PREVIEW_LINES = 5
FAILING_CHECKS_PREVIEW = 3

Selector = Callable[[str, Sequence[Option]], str]


@dataclass(frozen=True)
class CommandOutcome:
    """Result of a workflow command.

    ``relocate_to`` asks the invoking shell to change directory; the CLI
    decides how to encode it.
    """

    path: Path | None = None
    relocate_to: Path | None = None
    url: str | None = None


@dataclass(frozen=True)
class WorktreeStatus:
    name: str
    path: Path
    issue_number: int | None
    dirty: bool = False
    changes: int = 0
    ahead: int = 0
    behind: int = 0
    pr_number: int | None = None
    pr_state: str | None = None
    pr_lookup_failed: bool = False


@dataclass
class Orchestrator:
    """Drives one issue through its worktree/PR/board lifecycle."""

    config: GwiConfig
    identity: RepositoryIdentity
    reporter: Reporter
    github: GithubClient | None = None
    board: BoardSynchronizer | None = None
    ctx: exec_util.CommandContext | None = None
    cwd: Path = field(default_factory=Path.cwd)
    selector: Selector | None = None

    def __post_init__(self) -> None:
        if self.ctx is None:
            self.ctx = exec_util.CommandContext(
                timeout_seconds=self.config.command_timeout,
                cancel_token=exec_util.active_token(),
            )
        if self.github is None:
            self.github = GithubClient(ctx=self.ctx)
        if self.board is None:
            self.board = BoardSynchronizer(self.config.github, client=self.github)
        if self.selector is None:
            self.selector = functools.partial(selector_util.select, ctx=self.ctx)

    @property
    def base(self) -> Path:
        return worktrees.base_path(self.config, self.identity)

    @property
    def repo_label(self) -> str:
        return f"{self.identity.org}/{self.identity.repo}"

    # selection

    def select_worktree_issue(self) -> int:
        """Ask the operator to pick one of the existing issue worktrees."""
        found = worktrees.records(self.base)
        if not found:
            raise NotFoundError(f"no worktrees found for {self.repo_label}")
        options = [
            Option(label=record.branch, value=str(record.issue_number))
            for record in found
        ]
        selected = self.selector(f"Select worktree ({self.repo_label})", options)
        return int(selected)

    def issue_options(
        self, issues: Sequence[Issue], *, include_in_progress: bool = False
    ) -> list[Option]:
        """Build selector options, disabling issues that already have work."""
        existing = worktrees.existing_issue_numbers(self.base)
        in_progress_value = self.config.github.in_progress_value.casefold()
        options: list[Option] = []
        for issue in issues:
            exists = issue.number in existing
            in_progress = (issue.project_status or "").casefold() == in_progress_value
            hint = ""
            if exists:
                hint = "already exists"
            elif in_progress:
                hint = "in progress"
            options.append(
                Option(
                    label=f"#{issue.number} {issue.title}",
                    value=str(issue.number),
                    disabled=exists or (in_progress and not include_in_progress),
                    hint=hint,
                    in_progress=in_progress and not exists,
                )
            )
        return options

    def select_issue(self, *, include_in_progress: bool = False) -> int:
        """Ask the operator to pick an open issue."""
        self.github.check_auth()
        issues = self.github.list_open_issues_with_status(
            ISSUE_SELECTION_LIMIT, self.config.github.status_field_name
        )
        if not issues:
            raise NotFoundError("no open issues found")
        options = self.issue_options(issues, include_in_progress=include_in_progress)
        selected = self.selector(f"Select issue ({self.repo_label})", options)
        return int(selected)

    def resolve_issue_number(self, issue_number: int | None) -> int:
        """Explicit number, else the worktree containing cwd, else a selection."""
        if issue_number is not None:
            return issue_number
        detected = worktrees.detect_issue_number(self.base, self.cwd)
        if detected is not None:
            return detected
        return self.select_worktree_issue()

    def require_worktree(self, issue_number: int) -> Path:
        path = worktrees.find_by_issue(self.base, issue_number)
        if path is None:
            raise NotFoundError(f"No worktree found for issue #{issue_number}")
        return path

    def _relocation_target(self, path: Path) -> Path | None:
        if not worktrees.is_inside(path, self.cwd):
            return None
        return git.main_worktree_path(self.cwd, ctx=self.ctx)

    # create

    def create(
        self, issue_number: int | None = None, *, include_in_progress: bool = False
    ) -> CommandOutcome:
        """Create the worktree for an issue and mark it in progress."""
        self.github.check_auth()
        if issue_number is None:
            issue_number = self.select_issue(include_in_progress=include_in_progress)
        self.reporter.info(f"Fetching issue #{issue_number}...")
        issue = self.github.get_issue(issue_number)
        if issue.state.upper() == "CLOSED":
            self.reporter.warn(f"Issue #{issue_number} is closed")

        branch = branching.issue_branch_name(issue_number, issue.title)
        path = self.base / branch
        if path.exists():
            existing = self.reporter.existing_worktree(issue_number, path)
            return CommandOutcome(path=existing, relocate_to=existing)

        self.reporter.info("Fetching from origin...")
        git.fetch(self.cwd, ctx=self.ctx)
        self._add_worktree(path, branch)
        self.reporter.success(f"Worktree created at: {path}")

        hooks.run_hook(
            hooks.HOOK_CREATE,
            path,
            self.config.hook_dir,
            self.identity,
            ctx=self.ctx,
            stdout_to_stderr=True,
        )
        if self.config.auto_activate:
            hooks.run_hook(
                hooks.HOOK_ACTIVATE,
                path,
                self.config.hook_dir,
                self.identity,
                ctx=self.ctx,
                stdout_to_stderr=True,
            )
        board_issue = parse_issue_from_branch(branch)
        if board_issue is not None:
            sync_status(
                self.board,
                board_issue,
                self.config.github.in_progress_value,
                self.reporter,
            )
        return CommandOutcome(path=path, relocate_to=path)

    def _add_worktree(self, path: Path, branch: str) -> None:
        if git.branch_exists(branch, self.cwd, ctx=self.ctx):
            self.reporter.info(f"Using existing local branch: {branch}")
            git.create_worktree_from_branch(path, branch, ctx=self.ctx)
        elif git.remote_branch_exists(branch, self.cwd, ctx=self.ctx):
            self.reporter.info(f"Using existing remote branch: {branch}")
            git.create_worktree_from_remote(path, branch, f"origin/{branch}", ctx=self.ctx)
        else:
            self.reporter.info(f"Creating worktree: {branch}")
            git.create_worktree(
                path, branch, f"origin/{self.config.main_branch}", ctx=self.ctx
            )

    # submit

    def submit(self, issue_number: int | None = None) -> CommandOutcome:
        """Push the issue branch, open a PR, and drop the local worktree."""
        issue_number = self.resolve_issue_number(issue_number)
        path = self.require_worktree(issue_number)

        if git.has_uncommitted_changes(path, ctx=self.ctx):
            self.reporter.warn("Worktree has uncommitted changes")
            status = git.status_short(path, ctx=self.ctx)
            for line in status.splitlines()[:STATUS_PREVIEW_LINES]:
                self.reporter.detail(line)
            if not self.reporter.confirm("Continue anyway?"):
                raise UserInputError("Aborted. Commit your changes first.")

        branch = path.name
        self.reporter.info(f"Fetching issue #{issue_number}...")
        issue = self.github.get_issue(issue_number)

        self.reporter.info(f"Pushing branch: {branch}")
        git.push(path, branch, ctx=self.ctx)

        self.reporter.info("Creating pull request...")
        url = self.github.create_pr(path, issue.title, f"Closes #{issue_number}", branch)
        self.reporter.success(f"Pull request created: {url}")

        sync_status(
            self.board, issue_number, self.config.github.in_review_value, self.reporter
        )

        relocate_to = self._relocation_target(path)
        self.reporter.info("Removing worktree...")
        try:
            git.remove_worktree(path, force=False, cwd=self.cwd, ctx=self.ctx)
        except CancelledError:
            raise
        except GwiError as exc:
            self.reporter.warn(f"Failed to remove worktree: {exc.message}")
            relocate_to = None
        self.reporter.success("Done! PR is ready for review.")
        return CommandOutcome(relocate_to=relocate_to, url=url)

    # merge

    def _branch_for_issue(self, issue_number: int, path: Path | None) -> str:
        if path is not None:
            return path.name
        for pr in self.github.list_open_prs():
            if parse_issue_from_branch(pr.head_ref_name) == issue_number:
                return pr.head_ref_name
        raise NotFoundError(f"No worktree or PR found for issue #{issue_number}")

    def _confirm_or_abort(self, message: str) -> None:
        if not self.reporter.confirm(message):
            raise UserInputError("Aborted")

    def merge(self, issue_number: int | None = None) -> CommandOutcome:
        """Merge the issue's PR and clean up its worktree and branches."""
        issue_number = self.resolve_issue_number(issue_number)
        path = worktrees.find_by_issue(self.base, issue_number)
        branch = self._branch_for_issue(issue_number, path)

        pr_number = self.github.get_pr_for_branch(branch)
        pr = self.github.get_pr_status(pr_number)
        verdict = classify_mergeability(pr)
        if verdict is MergeVerdict.CONFLICT:
            raise PreconditionError(
                f"PR #{pr_number} has merge conflicts. Resolve them first."
            )
        if verdict is MergeVerdict.BLOCKED:
            self.reporter.warn(
                f"PR #{pr_number} is blocked (required checks or reviews pending)"
            )
            self._confirm_or_abort("Continue anyway?")
        failing = failing_checks(pr)
        if failing:
            self.reporter.warn(f"PR #{pr_number} has failing checks:")
            for name in failing[:FAILING_CHECKS_PREVIEW]:
                self.reporter.detail(f"- {name}")
            self._confirm_or_abort("Continue anyway?")

        if path is not None:
            message = git.last_commit_message(None, path, ctx=self.ctx)
        else:
            message = git.last_commit_message(f"origin/{branch}", self.cwd, ctx=self.ctx)
        if message:
            self.reporter.info(f"Adding summary to issue #{issue_number}...")
            try:
                self.github.comment_on_issue(
                    issue_number, f"**Merged in PR #{pr_number}**\n\n{message}"
                )
            except CancelledError:
                raise
            except GwiError as exc:
                self.reporter.warn(f"Failed to comment on issue: {exc.message}")

        self.reporter.info(f"Merging PR #{pr_number} ({self.config.merge_strategy})...")
        self.github.merge_pr(pr_number, self.config.merge_strategy)

        sync_status(
            self.board, issue_number, self.config.github.done_value, self.reporter
        )
        self._ensure_issue_closed(issue_number)
        relocate_to = self._discard_worktree(path) if path is not None else None
        self._delete_branches(branch)
        self.reporter.success("PR merged and cleaned up!")
        return CommandOutcome(relocate_to=relocate_to)

    def merge_local(self, issue_number: int | None = None) -> CommandOutcome:
        """Merge the issue branch into the main branch locally, no PR."""
        issue_number = self.resolve_issue_number(issue_number)
        path = self.require_worktree(issue_number)
        branch = path.name
        if git.has_uncommitted_changes(path, ctx=self.ctx):
            raise PreconditionError(
                "Worktree has uncommitted changes.",
                recovery_hint="Commit or stash them before merging.",
            )
        main_path = git.main_worktree_path(self.cwd, ctx=self.ctx)
        if main_path is None:
            raise PreconditionError("could not find main worktree")
        main_branch = self.config.main_branch
        message = git.last_commit_message(None, path, ctx=self.ctx)

        self.reporter.info(f"Checking out {main_branch} in {main_path}...")
        git.checkout(main_branch, main_path, ctx=self.ctx)
        try:
            git.pull(main_branch, main_path, ctx=self.ctx)
        except ExternalCommandError as exc:
            self.reporter.warn(f"Failed to pull {main_branch}: {exc.message}")
        self.reporter.info(f"Merging {branch} into {main_branch}...")
        git.merge_branch(branch, main_path, ctx=self.ctx)
        self.reporter.info(f"Pushing {main_branch}...")
        git.push_current(main_branch, main_path, ctx=self.ctx)

        comment = f"**Merged into {main_branch}**"
        if message:
            comment = f"{comment}\n\n{message}"
        try:
            self.github.close_issue(issue_number, comment)
        except CancelledError:
            raise
        except GwiError as exc:
            self.reporter.warn(f"Failed to close issue #{issue_number}: {exc.message}")
        sync_status(
            self.board, issue_number, self.config.github.done_value, self.reporter
        )
        relocate_to = self._discard_worktree(path)
        if relocate_to is None and worktrees.is_inside(path, self.cwd):
            relocate_to = main_path
        self._delete_branches(branch)
        self.reporter.success(f"Merged into {main_branch} and cleaned up!")
        return CommandOutcome(relocate_to=relocate_to)

    def _ensure_issue_closed(self, issue_number: int) -> None:
        try:
            issue = self.github.get_issue(issue_number)
            if issue.state.upper() != "CLOSED":
                self.github.close_issue(issue_number)
        except CancelledError:
            raise
        except GwiError as exc:
            self.reporter.warn(f"Failed to close issue #{issue_number}: {exc.message}")

    def _discard_worktree(self, path: Path) -> Path | None:
        relocate_to = self._relocation_target(path)
        self.reporter.info("Removing worktree...")
        try:
            git.remove_worktree(path, force=False, cwd=self.cwd, ctx=self.ctx)
        except CancelledError:
            raise
        except GwiError:
            try:
                git.remove_worktree(path, force=True, cwd=self.cwd, ctx=self.ctx)
            except CancelledError:
                raise
            except GwiError as exc:
                self.reporter.warn(f"Failed to remove worktree: {exc.message}")
                return None
        git.prune_worktrees(self.cwd, ctx=self.ctx)
        return relocate_to

    def _delete_branches(self, branch: str) -> None:
        if git.branch_exists(branch, self.cwd, ctx=self.ctx):
            self.reporter.info(f"Deleting local branch: {branch}")
            try:
                git.delete_branch(branch, self.cwd, ctx=self.ctx)
            except CancelledError:
                raise
            except GwiError as exc:
                self.reporter.warn(f"Failed to delete local branch: {exc.message}")
            else:
                self.reporter.success("Local branch deleted.")
        try:
            git.fetch_prune(self.cwd, ctx=self.ctx)
        except CancelledError:
            raise
        except GwiError as exc:
            self.reporter.warn(f"Failed to fetch: {exc.message}")
        if git.remote_branch_exists(branch, self.cwd, ctx=self.ctx):
            self.reporter.info(f"Deleting remote branch: {branch}")
            try:
                git.delete_remote_branch(branch, self.cwd, ctx=self.ctx)
            except CancelledError:
                raise
            except GwiError as exc:
                self.reporter.warn(f"Failed to delete remote branch: {exc.message}")
            else:
                self.reporter.success("Remote branch deleted.")

    # remove

    def _pr_merged(self, branch: str) -> bool:
        try:
            pr_number = self.github.get_pr_for_branch(branch)
            return self.github.is_pr_merged(pr_number)
        except CancelledError:
            raise
        except GwiError:
            return False

    def remove(
        self,
        issue_number: int | None = None,
        *,
        force: bool = False,
        yes: bool = False,
        delete_branch: bool = False,
    ) -> CommandOutcome:
        """Delete an issue worktree; a missing worktree is not an error."""
        issue_number = self.resolve_issue_number(issue_number)
        path = worktrees.find_by_issue(self.base, issue_number)
        if path is None:
            self.reporter.info(f"No worktree found for issue #{issue_number}; nothing to remove.")
            return CommandOutcome()
        branch = path.name

        inside = worktrees.is_inside(path, self.cwd)
        if inside:
            self.reporter.warn("You are inside the worktree you want to remove")

        pr_merged = self._pr_merged(branch)
        if not yes:
            if pr_merged and not delete_branch:
                question = f"Remove worktree {branch} and delete branch (PR merged)?"
            elif delete_branch:
                question = f"Remove worktree {branch} and delete branch?"
            else:
                question = f"Remove worktree {branch}?"
            self._confirm_or_abort(question)
        relocate_to = (
            git.main_worktree_path(self.cwd, ctx=self.ctx) if inside else None
        )

        self.reporter.info(f"Removing worktree: {path}")
        try:
            git.remove_worktree(path, force=force, cwd=self.cwd, ctx=self.ctx)
        except ExternalCommandError as exc:
            if not force and git.has_uncommitted_changes(path, ctx=self.ctx):
                raise PreconditionError(
                    "Worktree has uncommitted changes.",
                    recovery_hint="Use --force to remove anyway.",
                ) from exc
            raise ExternalCommandError(
                f"Failed to remove worktree: {exc.message}", stderr=exc.stderr
            ) from exc
        git.prune_worktrees(self.cwd, ctx=self.ctx)
        self.reporter.success("Worktree removed.")

        if pr_merged:
            self.reporter.info("PR has been merged. Automatically deleting branches.")
        else:
            board_issue = parse_issue_from_branch(branch)
            if board_issue is not None:
                sync_status(
                    self.board, board_issue, self.config.github.todo_value, self.reporter
                )
        if delete_branch or pr_merged:
            self._delete_branches(branch)
        return CommandOutcome(relocate_to=relocate_to)

    # status

    def worktree_status(self, path: Path) -> WorktreeStatus:
        name = path.name
        number = worktrees.issue_number_from_name(name)
        dirty = git.has_uncommitted_changes(path, ctx=self.ctx)
        changes = git.uncommitted_count(path, ctx=self.ctx) if dirty else 0
        counts = git.ahead_behind(path, name, ctx=self.ctx)
        ahead, behind = counts if counts is not None else (0, 0)
        pr_number = None
        pr_state = None
        lookup_failed = False
        if number is not None:
            try:
                pr_number = self.github.get_pr_for_branch(name)
                pr_state = self.github.get_pr_state(pr_number)
            except NotFoundError:
                pr_number = None
            except CancelledError:
                raise
            except GwiError:
                lookup_failed = True
        return WorktreeStatus(
            name=name,
            path=path,
            issue_number=number,
            dirty=dirty,
            changes=changes,
            ahead=ahead,
            behind=behind,
            pr_number=pr_number,
            pr_state=pr_state,
            pr_lookup_failed=lookup_failed,
        )

    def status(self) -> list[WorktreeStatus]:
        """Read-only status rows for every worktree of the repository."""
        return [self.worktree_status(path) for path in worktrees.list_worktrees(self.base)]

    # navigation

    def find_worktree(self, pattern: str | None = None) -> Path:
        """Resolve a worktree by issue number, substring, or selection."""
        if pattern is None:
            issue_number = self.select_worktree_issue()
            return self.require_worktree(issue_number)
        if pattern.isdigit():
            path = worktrees.find_by_issue(self.base, int(pattern))
            if path is not None:
                return path
        matches = [
            path for path in worktrees.list_worktrees(self.base) if pattern in path.name
        ]
        if not matches:
            raise NotFoundError(f"No worktree found matching: {pattern}")
        if len(matches) == 1:
            return matches[0]
        options = [Option(label=path.name, value=str(path)) for path in matches]
        return Path(self.selector(f"Multiple matches ({self.repo_label})", options))

    def choose_worktree(self) -> Path:
        """Select among the main worktree and all issue worktrees."""
        options: list[Option] = []
        main_path = git.main_worktree_path(self.cwd, ctx=self.ctx)
        if main_path is not None:
            options.append(Option(label=f"main ({main_path.name})", value=str(main_path)))
        for path in worktrees.list_worktrees(self.base):
            options.append(Option(label=path.name, value=str(path)))
        if not options:
            raise NotFoundError("No worktrees found")
        return Path(self.selector(f"Worktrees for {self.repo_label}", options))

    def orphaned_branches(self) -> list[str]:
        """Local branches without a worktree whose remote branch is gone."""
        orphaned: list[str] = []
        for branch in git.local_branches(self.cwd, ctx=self.ctx):
            if branch in {"main", "master", self.config.main_branch}:
                continue
            if (self.base / branch).exists():
                continue
            if not git.remote_branch_exists(branch, self.cwd, ctx=self.ctx):
                orphaned.append(branch)
        return orphaned
