"""GitHub Projects (v2) status synchronization.

An issue may sit on zero, one, or several project boards. ``set_status``
writes the named single-select option on every board item it can reach and
succeeds when at least one write landed. Field metadata is cached per
``(project_id, field_name)`` for the lifetime of one synchronizer.
"""

from __future__ import annotations

import re
import shutil
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, Protocol

from pydantic import ValidationError

from . import exec as exec_util
from . import log
from .errors import (
    CancelledError,
    DependencyMissingError,
    ExternalCommandError,
    GwiError,
    NotFoundError,
)
from .github import GithubClient
from .models import BoardConfig, FieldOption, ProjectField, ProjectItem

_BRANCH_ISSUE_RE = re.compile(r"(?:^|/)(\d+)[-_]")

_PROJECT_ITEMS_QUERY = """
query($owner: String!, $repo: String!, $number: Int!) {
  repository(owner: $owner, name: $repo) {
    issue(number: $number) {
      projectItems(first: 10) {
        nodes { id project { id title } }
      }
    }
  }
}
"""

_PROJECT_FIELDS_QUERY = """
query($projectId: ID!) {
  node(id: $projectId) {
    ... on ProjectV2 {
      fields(first: 50) {
        nodes {
          ... on ProjectV2SingleSelectField { id name options { id name } }
        }
      }
    }
  }
}
"""


def parse_issue_from_branch(branch: str) -> int | None:
    """Extract an issue number from a branch name.

    Example:
        >>> parse_issue_from_branch("42-add-login")
        42
        >>> parse_issue_from_branch("feature/7_cleanup")
        7
        >>> parse_issue_from_branch("main") is None
        True
    """
    match = _BRANCH_ISSUE_RE.search(branch)
    if not match:
        return None
    return int(match.group(1))


class ReadWriteLock:
    """Many concurrent readers or one writer."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._readers:
                self._cond.wait()
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class FieldCache:
    """Project field metadata keyed by ``(project_id, field_name)``.

    Entries are never invalidated; one cache lives as long as one command.
    """

    def __init__(self) -> None:
        self._lock = ReadWriteLock()
        self._entries: dict[tuple[str, str], ProjectField] = {}

    @staticmethod
    def _key(project_id: str, field_name: str) -> tuple[str, str]:
        return (project_id, field_name.lower())

    def get(self, project_id: str, field_name: str) -> ProjectField | None:
        with self._lock.read():
            return self._entries.get(self._key(project_id, field_name))

    def put(self, project_id: str, field_name: str, value: ProjectField) -> None:
        with self._lock.write():
            self._entries[self._key(project_id, field_name)] = value

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._entries)


@dataclass(frozen=True)
class BoardUpdate:
    """Result of a status write across an issue's boards."""

    updated: int = 0
    failed: int = 0

    @property
    def linked(self) -> bool:
        return self.updated + self.failed > 0


def find_option(project_field: ProjectField, name: str) -> FieldOption:
    """Return the option named ``name`` (case-insensitive).

    Raises:
        NotFoundError: When the field has no such option.
    """
    wanted = name.casefold()
    for option in project_field.options:
        if option.name.casefold() == wanted:
            return option
    raise NotFoundError(f"option '{name}' not found in field '{project_field.name}'")


@dataclass
class BoardSynchronizer:
    """Writes an issue's status field on every project board it belongs to."""

    config: BoardConfig
    client: GithubClient = field(default_factory=GithubClient)
    cache: FieldCache = field(default_factory=FieldCache)
    _scopes_checked: bool = field(default=False, init=False, repr=False)

    @property
    def enabled(self) -> bool:
        return self.config.projects_enabled

    def ensure_gh(self) -> None:
        if shutil.which("gh") is None:
            raise DependencyMissingError("gh CLI not found in PATH")

    def check_scopes(self) -> None:
        """Verify the ``project`` token scope, refreshing once if missing."""
        if self._scopes_checked:
            return
        result = self.client.ctx.run(["gh", "auth", "status"])
        if result is None:
            raise DependencyMissingError("gh CLI not found in PATH")
        if result.returncode != 0:
            raise ExternalCommandError(
                "GitHub CLI not authenticated", recovery_hint="Run: gh auth login"
            )
        if "project" not in (result.stdout + result.stderr):
            log.warning("Missing required GitHub scopes for Projects integration")
            log.info("Refreshing authentication with the project scope...", stderr=True)
            refresh = self.client.ctx.request(
                ["gh", "auth", "refresh", "-s", "project"],
                capture_output=False,
                text=False,
                stdout_to_stderr=True,
                timeout_seconds=None,
            )
            refreshed = exec_util.run_with_runner(refresh, runner=self.client.ctx.runner)
            if refreshed is None or refreshed.returncode != 0:
                raise ExternalCommandError(
                    "failed to refresh auth",
                    recovery_hint="Run manually: gh auth refresh -s project",
                )
            log.success("Authentication refreshed with project scope", stderr=True)
        self._scopes_checked = True

    def project_items(self, issue_number: int) -> list[ProjectItem]:
        """Return every board item linked to an issue."""
        owner, name = self.client.repo_owner_and_name()
        data = self.client.graphql(
            _PROJECT_ITEMS_QUERY, owner=owner, repo=name, number=issue_number
        )
        issue = (data.get("repository") or {}).get("issue") or {}
        nodes = (issue.get("projectItems") or {}).get("nodes") or []
        items: list[ProjectItem] = []
        for node in nodes:
            if not isinstance(node, dict) or not node.get("id"):
                continue
            project = node.get("project") or {}
            items.append(
                ProjectItem(
                    id=node["id"],
                    project_id=str(project.get("id") or ""),
                    project_title=str(project.get("title") or ""),
                )
            )
        return items

    def project_fields(self, project_id: str) -> list[ProjectField]:
        """Return the single-select fields of a project (uncached)."""
        data = self.client.graphql(_PROJECT_FIELDS_QUERY, projectId=project_id)
        nodes = (((data.get("node") or {}).get("fields")) or {}).get("nodes") or []
        fields: list[ProjectField] = []
        for node in nodes:
            # non single-select fields come back as empty objects
            if not isinstance(node, dict) or not node.get("id"):
                continue
            try:
                fields.append(ProjectField.model_validate(node))
            except ValidationError:
                continue
        return fields

    def status_field(self, project_id: str, field_name: str) -> ProjectField:
        cached = self.cache.get(project_id, field_name)
        if cached is not None:
            return cached
        wanted = field_name.casefold()
        for candidate in self.project_fields(project_id):
            if candidate.name.casefold() == wanted:
                self.cache.put(project_id, field_name, candidate)
                return candidate
        raise NotFoundError(f"field '{field_name}' not found in project")

    def update_item(self, item: ProjectItem, field_id: str, option_id: str) -> None:
        log.debug(f"Updating project item {item.id} in project {item.project_id}")
        result = self.client.ctx.run(
            [
                "gh",
                "project",
                "item-edit",
                "--id",
                item.id,
                "--project-id",
                item.project_id,
                "--field-id",
                field_id,
                "--single-select-option-id",
                option_id,
            ],
            timeout_seconds=self.client.ctx.timeout_seconds or self.client.timeout_seconds,
        )
        if result is None:
            raise DependencyMissingError("gh CLI not found in PATH")
        if result.returncode != 0:
            output = (result.stdout + result.stderr).strip()
            raise ExternalCommandError(f"failed to update item: {output}")

    def set_status(self, issue_number: int, value: str) -> BoardUpdate:
        """Set the status field of every board item of an issue to ``value``.

        Returns:
            ``BoardUpdate``; zero updates when the issue is on no board.

        Raises:
            GwiError: When nothing was updated and some item failed, the last
                per-item error is raised.
        """
        self.ensure_gh()
        if self.config.check_scopes:
            self.check_scopes()
        items = self.project_items(issue_number)
        if not items:
            log.debug(f"Issue #{issue_number} is not in any GitHub Project")
            return BoardUpdate()
        log.debug(f"Found issue #{issue_number} in {len(items)} project(s)")
        updated = 0
        last_error: GwiError | None = None
        for item in items:
            try:
                status = self.status_field(item.project_id, self.config.status_field_name)
                option = find_option(status, value)
                self.update_item(item, status.id, option.id)
            except CancelledError:
                raise
            except GwiError as exc:
                log.debug(f"project {item.project_title or item.project_id}: {exc.message}")
                last_error = exc
                continue
            updated += 1
        if updated == 0 and last_error is not None:
            raise last_error
        return BoardUpdate(updated=updated, failed=len(items) - updated)


class StatusReporter(Protocol):
    def info(self, message: str) -> None: ...

    def warn(self, message: str) -> None: ...


def sync_status(
    board: BoardSynchronizer | None,
    issue_number: int,
    value: str,
    reporter: StatusReporter,
) -> BoardUpdate | None:
    """Best-effort status transition; failures become warnings."""
    if board is None or not board.enabled:
        return None
    try:
        update = board.set_status(issue_number, value)
    except CancelledError:
        raise
    except GwiError as exc:
        reporter.warn(f"Failed to update project status: {exc.message}")
        return None
    if update.updated:
        reporter.info(f"Updated issue #{issue_number} to '{value}' in GitHub Projects")
    return update
