"""GitHub CLI adapter for issues and pull requests."""

from __future__ import annotations

import json
import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from pydantic import ValidationError

from . import exec as exec_util
from . import log
from .errors import DependencyMissingError, ExternalCommandError, NotFoundError
from .models import MERGE_STRATEGY_VALUES, Issue, PullRequest

GH_TIMEOUT_SECONDS = 60.0
DEFAULT_ISSUE_LIMIT = 100

_MERGEABLE_CONFLICT = {"CONFLICTING"}
_MERGE_STATE_BLOCKED = {"BLOCKED"}
_CHECK_FAILURE = "FAILURE"

_ISSUES_WITH_STATUS_QUERY = """
query($owner: String!, $repo: String!, $limit: Int!, $field: String!) {
  repository(owner: $owner, name: $repo) {
    issues(first: $limit, states: OPEN, orderBy: {field: UPDATED_AT, direction: DESC}) {
      nodes {
        number
        projectItems(first: 10) {
          nodes {
            fieldValueByName(name: $field) {
              ... on ProjectV2ItemFieldSingleSelectValue { name }
            }
          }
        }
      }
    }
  }
}
"""


class MergeVerdict(str, Enum):
    """Classification of a PR's readiness to merge."""

    CONFLICT = "conflict"
    BLOCKED = "blocked"
    CHECKS_FAILING = "checks_failing"
    READY = "ready"


def failing_checks(pr: PullRequest) -> list[str]:
    """Return the names of checks that concluded with ``FAILURE``."""
    return [check.name for check in pr.checks if check.conclusion == _CHECK_FAILURE]


def classify_mergeability(pr: PullRequest) -> MergeVerdict:
    """Classify a PR status report.

    Conflicts are fatal; policy blocks and failing checks need confirmation.

    Example:
        >>> classify_mergeability(PullRequest(mergeable="CONFLICTING")).name
        'CONFLICT'
        >>> classify_mergeability(PullRequest(mergeable="MERGEABLE")).name
        'READY'
    """
    if pr.mergeable.upper() in _MERGEABLE_CONFLICT:
        return MergeVerdict.CONFLICT
    if pr.merge_state_status.upper() in _MERGE_STATE_BLOCKED:
        return MergeVerdict.BLOCKED
    if failing_checks(pr):
        return MergeVerdict.CHECKS_FAILING
    return MergeVerdict.READY


@dataclass(frozen=True)
class GithubClient:
    """Typed command-boundary adapter for GitHub CLI calls."""

    ctx: exec_util.CommandContext = field(default_factory=exec_util.CommandContext)
    timeout_seconds: float | None = GH_TIMEOUT_SECONDS
    cwd: Path | None = None

    def available(self) -> bool:
        return shutil.which("gh") is not None

    def _result(
        self, cmd: list[str], *, cwd: Path | None = None
    ) -> exec_util.CommandResult:
        timeout = self.ctx.timeout_seconds or self.timeout_seconds
        result = self.ctx.run(cmd, cwd=cwd or self.cwd, timeout_seconds=timeout)
        if result is None:
            raise DependencyMissingError(
                exec_util.missing_command_detail(tuple(cmd)),
                recovery_hint="Install the GitHub CLI: https://cli.github.com",
            )
        return result

    def run(self, cmd: list[str], *, cwd: Path | None = None) -> str:
        result = self._result(cmd, cwd=cwd)
        if result.returncode != 0:
            raise ExternalCommandError(
                exec_util.command_failure_detail(result),
                stderr=result.stderr.strip() or None,
            )
        return result.stdout

    def run_json(self, cmd: list[str], *, cwd: Path | None = None) -> object:
        output = self.run(cmd, cwd=cwd)
        if not output.strip():
            return None
        try:
            return json.loads(output)
        except json.JSONDecodeError as exc:
            raise ExternalCommandError(
                f"failed to parse output of {' '.join(cmd[:3])}: {exc}"
            ) from exc

    def check_auth(self) -> None:
        """Raise unless ``gh`` is installed and authenticated."""
        result = self._result(["gh", "auth", "status"])
        if result.returncode != 0:
            raise ExternalCommandError(
                "GitHub CLI not authenticated",
                recovery_hint="Run: gh auth login",
            )

    def auth_status_output(self) -> str:
        result = self._result(["gh", "auth", "status"])
        return (result.stdout + result.stderr).strip()

    def repo_owner_and_name(self) -> tuple[str, str]:
        payload = self.run_json(["gh", "repo", "view", "--json", "owner,name"])
        if not isinstance(payload, dict):
            raise ExternalCommandError("failed to get repo info: empty response")
        owner = payload.get("owner")
        login = owner.get("login") if isinstance(owner, dict) else None
        name = payload.get("name")
        if not isinstance(login, str) or not isinstance(name, str):
            raise ExternalCommandError("failed to get repo info: missing owner or name")
        return login, name

    def graphql(self, query: str, **variables: object) -> dict:
        cmd = ["gh", "api", "graphql", "-f", f"query={query}"]
        for key, value in variables.items():
            flag = "-F" if isinstance(value, int) else "-f"
            cmd.extend([flag, f"{key}={value}"])
        payload = self.run_json(cmd)
        if not isinstance(payload, dict):
            raise ExternalCommandError("GraphQL query returned no data")
        errors = payload.get("errors")
        if errors:
            raise ExternalCommandError(f"GraphQL query failed: {errors}")
        data = payload.get("data")
        return data if isinstance(data, dict) else {}

    def get_issue(self, number: int) -> Issue:
        """Fetch an issue; any lookup failure is reported as not found."""
        try:
            payload = self.run_json(
                ["gh", "issue", "view", str(number), "--json", "number,title,state"]
            )
            return Issue.model_validate(payload)
        except (ExternalCommandError, ValidationError) as exc:
            log.debug(f"issue lookup failed: {exc}", stderr=True)
            raise NotFoundError(f"issue #{number} not found") from exc

    def list_open_issues(self, limit: int = DEFAULT_ISSUE_LIMIT) -> list[Issue]:
        payload = self.run_json(
            [
                "gh",
                "issue",
                "list",
                "--state",
                "open",
                "--limit",
                str(limit),
                "--json",
                "number,title",
            ]
        )
        if not isinstance(payload, list):
            return []
        return [Issue.model_validate(item) for item in payload]

    def list_open_issues_with_status(
        self, limit: int = DEFAULT_ISSUE_LIMIT, status_field: str = "Status"
    ) -> list[Issue]:
        """List open issues annotated with their first board's status value.

        Board lookups are best effort: any failure returns the plain list.
        """
        issues = self.list_open_issues(limit)
        try:
            owner, name = self.repo_owner_and_name()
            data = self.graphql(
                _ISSUES_WITH_STATUS_QUERY,
                owner=owner,
                repo=name,
                limit=limit,
                field=status_field,
            )
        except ExternalCommandError as exc:
            log.debug(f"project status lookup skipped: {exc}", stderr=True)
            return issues
        statuses: dict[int, str] = {}
        repository = data.get("repository") or {}
        nodes = ((repository.get("issues") or {}).get("nodes")) or []
        for node in nodes:
            if not isinstance(node, dict) or not isinstance(node.get("number"), int):
                continue
            items = ((node.get("projectItems") or {}).get("nodes")) or []
            if not items or not isinstance(items[0], dict):
                continue
            value = items[0].get("fieldValueByName") or {}
            status = value.get("name") if isinstance(value, dict) else None
            if status:
                statuses[node["number"]] = status
        return [
            issue.model_copy(update={"project_status": statuses.get(issue.number)})
            for issue in issues
        ]

    def create_pr(self, path: Path, title: str, body: str, branch: str) -> str:
        """Create a PR and return its URL.

        Raises:
            ExternalCommandError: Carrying gh's stderr verbatim.
        """
        result = self._result(
            ["gh", "pr", "create", "--title", title, "--body", body, "--head", branch],
            cwd=path,
        )
        if result.returncode != 0:
            stderr = result.stderr.strip()
            raise ExternalCommandError(
                f"failed to create PR: {stderr or result.stdout.strip()}",
                stderr=stderr or None,
            )
        return result.stdout.strip()

    def get_pr_for_branch(self, branch: str) -> int:
        """Return the PR number whose head is ``branch``.

        Raises:
            NotFoundError: When no PR has that head branch.
            ExternalCommandError: When the lookup itself fails.
        """
        output = self.run(
            [
                "gh",
                "pr",
                "list",
                "--head",
                branch,
                "--state",
                "all",
                "--json",
                "number",
                "--jq",
                ".[0].number",
            ]
        ).strip()
        if not output or output == "null":
            raise NotFoundError(f"no PR found for branch: {branch}")
        try:
            return int(output)
        except ValueError as exc:
            raise ExternalCommandError(
                f"unexpected PR number for branch {branch}: {output}"
            ) from exc

    def get_pr_status(self, number: int) -> PullRequest:
        payload = self.run_json(
            [
                "gh",
                "pr",
                "view",
                str(number),
                "--json",
                "mergeable,mergeStateStatus,statusCheckRollup,state,headRefName",
            ]
        )
        if not isinstance(payload, dict):
            raise ExternalCommandError(f"failed to get status of PR #{number}")
        try:
            pr = PullRequest.model_validate(payload)
        except ValidationError as exc:
            raise ExternalCommandError(
                f"failed to parse status of PR #{number}: {exc}"
            ) from exc
        return pr.model_copy(update={"number": number})

    def get_pr_state(self, number: int) -> str:
        return self.run(
            ["gh", "pr", "view", str(number), "--json", "state", "--jq", ".state"]
        ).strip()

    def is_pr_merged(self, number: int) -> bool:
        return self.get_pr_state(number) == "MERGED"

    def merge_pr(self, number: int, strategy: str) -> None:
        if strategy not in MERGE_STRATEGY_VALUES:
            raise ValueError(f"unsupported merge strategy: {strategy}")
        self.run(["gh", "pr", "merge", str(number), f"--{strategy}", "--delete-branch"])

    def comment_on_issue(self, number: int, body: str) -> None:
        self.run(["gh", "issue", "comment", str(number), "--body", body])

    def close_issue(self, number: int, comment: str | None = None) -> None:
        if comment:
            try:
                self.comment_on_issue(number, comment)
            except ExternalCommandError as exc:
                raise ExternalCommandError(
                    f"failed to add comment: {exc.message}", stderr=exc.stderr
                ) from exc
        result = self._result(["gh", "issue", "close", str(number)])
        if result.returncode != 0:
            output = (result.stdout + result.stderr).strip()
            raise ExternalCommandError(f"failed to close issue: {output}")

    def list_open_prs(self) -> list[PullRequest]:
        payload = self.run_json(
            ["gh", "pr", "list", "--state", "open", "--json", "number,headRefName"]
        )
        if not isinstance(payload, list):
            return []
        return [PullRequest.model_validate(item) for item in payload]
