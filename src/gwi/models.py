"""Pydantic models for gwi configuration and GitHub CLI payloads."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from . import paths

MERGE_STRATEGY_VALUES = ("squash", "merge", "rebase")
MergeStrategy = Literal["squash", "merge", "rebase"]


def _strip_or_default(value: object, default: str) -> object:
    if value is None:
        return default
    if isinstance(value, str):
        normalized = value.strip()
        return normalized or default
    return value


class BoardConfig(BaseModel):
    """GitHub Projects integration settings.

    Attributes:
        projects_enabled: Mirror workflow transitions onto project boards.
        status_field_name: Name of the single-select status field.
        todo_value: Option used when a worktree is removed without merging.
        in_progress_value: Option used after ``create``.
        in_review_value: Option used after ``pr``.
        done_value: Option used after ``merge``.
        check_scopes: Verify the ``project`` token scope before writing.

    Example:
        >>> BoardConfig().status_field_name
        'Status'
    """

    model_config = ConfigDict(extra="ignore")

    projects_enabled: bool = True
    status_field_name: str = "Status"
    todo_value: str = "Todo"
    in_progress_value: str = "In Progress"
    in_review_value: str = "In Review"
    done_value: str = "Done"
    check_scopes: bool = True

    @field_validator("status_field_name", mode="before")
    @classmethod
    def normalize_field_name(cls, value: object) -> object:
        return _strip_or_default(value, "Status")


class GwiConfig(BaseModel):
    """Top-level gwi configuration.

    Example:
        >>> GwiConfig(merge_strategy="rebase").merge_strategy
        'rebase'
    """

    model_config = ConfigDict(extra="ignore")

    worktree_base: Path = Field(default_factory=paths.default_worktree_base)
    merge_strategy: MergeStrategy = "squash"
    auto_activate: bool = False
    hook_dir: Path = Field(default_factory=paths.default_hook_dir)
    main_branch: str = "main"
    verbose: bool = False
    command_timeout: float | None = None
    github: BoardConfig = Field(default_factory=BoardConfig)

    @field_validator("worktree_base", "hook_dir", mode="before")
    @classmethod
    def expand_path(cls, value: object) -> object:
        if isinstance(value, str) and value.strip():
            return Path(value.strip()).expanduser()
        if isinstance(value, Path):
            return value.expanduser()
        return value

    @field_validator("merge_strategy", mode="before")
    @classmethod
    def normalize_strategy(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("main_branch", mode="before")
    @classmethod
    def normalize_main_branch(cls, value: object) -> object:
        return _strip_or_default(value, "main")

    @field_validator("command_timeout")
    @classmethod
    def positive_timeout(cls, value: float | None) -> float | None:
        if value is not None and value <= 0:
            raise ValueError("command_timeout must be positive")
        return value


class Issue(BaseModel):
    """A GitHub issue as returned by ``gh issue view/list``."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    number: int
    title: str = ""
    state: str = ""
    project_status: str | None = Field(default=None, alias="projectStatus")


class CheckStatus(BaseModel):
    """One entry from a PR's ``statusCheckRollup``."""

    model_config = ConfigDict(extra="ignore")

    name: str = ""
    conclusion: str | None = None

    @field_validator("name", mode="before")
    @classmethod
    def default_name(cls, value: object) -> object:
        return "" if value is None else value


class PullRequest(BaseModel):
    """A GitHub pull request payload."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    number: int = 0
    state: str = ""
    mergeable: str = ""
    merge_state_status: str = Field(default="", alias="mergeStateStatus")
    head_ref_name: str = Field(default="", alias="headRefName")
    checks: list[CheckStatus] = Field(default_factory=list, alias="statusCheckRollup")

    @field_validator("checks", mode="before")
    @classmethod
    def default_checks(cls, value: object) -> object:
        return [] if value is None else value


class FieldOption(BaseModel):
    """Single-select option of a project field."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str


class ProjectField(BaseModel):
    """Single-select project field with its options."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    options: list[FieldOption] = Field(default_factory=list)


class ProjectItem(BaseModel):
    """An issue's membership record on one project board."""

    model_config = ConfigDict(frozen=True)

    id: str
    project_id: str
    project_title: str = ""
