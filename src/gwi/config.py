"""Configuration loading for gwi.

Settings come from ``config.yaml`` in the per-user config directory (or the
file named by ``GWI_CONFIG``), then ``GWI_*`` environment variables override
individual keys. The merged payload is validated with Pydantic.

Example:
    >>> parse_bool("yes", "GWI_VERBOSE")
    True
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping

import yaml
from pydantic import ValidationError

from . import paths
from .errors import PreconditionError
from .models import MERGE_STRATEGY_VALUES, GwiConfig

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}

# env var -> (section or None, key, kind)
ENV_OVERRIDES: tuple[tuple[str, str | None, str, str], ...] = (
    ("GWI_WORKTREE_BASE", None, "worktree_base", "str"),
    ("GWI_MERGE_STRATEGY", None, "merge_strategy", "str"),
    ("GWI_AUTO_ACTIVATE", None, "auto_activate", "bool"),
    ("GWI_HOOK_DIR", None, "hook_dir", "str"),
    ("GWI_MAIN_BRANCH", None, "main_branch", "str"),
    ("GWI_VERBOSE", None, "verbose", "bool"),
    ("GWI_COMMAND_TIMEOUT", None, "command_timeout", "float"),
    ("GWI_GITHUB_PROJECTS_ENABLED", "github", "projects_enabled", "bool"),
    ("GWI_GITHUB_STATUS_FIELD", "github", "status_field_name", "str"),
    ("GWI_GITHUB_TODO", "github", "todo_value", "str"),
    ("GWI_GITHUB_IN_PROGRESS", "github", "in_progress_value", "str"),
    ("GWI_GITHUB_IN_REVIEW", "github", "in_review_value", "str"),
    ("GWI_GITHUB_DONE", "github", "done_value", "str"),
    ("GWI_GITHUB_CHECK_SCOPES", "github", "check_scopes", "bool"),
)


def parse_bool(value: str, source: str) -> bool:
    """Parse a boolean environment value.

    Example:
        >>> parse_bool("0", "GWI_AUTO_ACTIVATE")
        False
    """
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise PreconditionError(f"{source} must be true or false")


def _parse_float(value: str, source: str) -> float:
    try:
        return float(value.strip())
    except ValueError:
        raise PreconditionError(f"{source} must be a number of seconds") from None


def load_yaml(path: Path) -> dict | None:
    """Load a YAML mapping if the file exists.

    Example:
        >>> load_yaml(Path("/nonexistent/gwi.yaml")) is None
        True
    """
    if not path.exists():
        return None
    try:
        document = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise PreconditionError(f"failed to parse YAML in {path}: {exc}") from exc
    if document is None:
        return {}
    if not isinstance(document, dict):
        raise PreconditionError(f"invalid config at {path}: expected a mapping")
    return document


def apply_env_overrides(payload: dict, environ: Mapping[str, str]) -> dict:
    """Return ``payload`` with ``GWI_*`` environment overrides applied.

    Example:
        >>> apply_env_overrides({}, {"GWI_MAIN_BRANCH": "trunk"})["main_branch"]
        'trunk'
    """
    merged = dict(payload)
    github = dict(merged.get("github") or {})
    for name, section, key, kind in ENV_OVERRIDES:
        raw = environ.get(name)
        if raw is None or not raw.strip():
            continue
        value: object
        if kind == "bool":
            value = parse_bool(raw, name)
        elif kind == "float":
            value = _parse_float(raw, name)
        else:
            value = raw
        if section == "github":
            github[key] = value
        else:
            merged[key] = value
    if github:
        merged["github"] = github
    return merged


def parse_config(payload: dict, source: Path | str | None = None) -> GwiConfig:
    """Validate a config payload."""
    try:
        return GwiConfig.model_validate(payload)
    except ValidationError as exc:
        location = f" at {source}" if source else ""
        hint = None
        if any(err.get("loc", ())[:1] == ("merge_strategy",) for err in exc.errors()):
            hint = "merge_strategy must be one of: " + ", ".join(MERGE_STRATEGY_VALUES)
        raise PreconditionError(
            f"invalid gwi config{location}:\n{exc}", recovery_hint=hint
        ) from exc


def load_config(
    path: Path | None = None, environ: Mapping[str, str] | None = None
) -> GwiConfig:
    """Load configuration from disk and the environment.

    Args:
        path: Optional config file path; defaults to ``paths.config_path()``.
        environ: Optional environment mapping; defaults to ``os.environ``.

    Returns:
        Validated ``GwiConfig``.
    """
    config_file = path or paths.config_path()
    env = os.environ if environ is None else environ
    payload = load_yaml(config_file) or {}
    payload = apply_env_overrides(payload, env)
    return parse_config(payload, config_file)


def describe(config: GwiConfig) -> list[tuple[str, str]]:
    """Return display rows for ``gwi debug``."""
    board = config.github
    return [
        ("worktree_base", str(config.worktree_base)),
        ("merge_strategy", config.merge_strategy),
        ("auto_activate", str(config.auto_activate).lower()),
        ("hook_dir", str(config.hook_dir)),
        ("main_branch", config.main_branch),
        ("verbose", str(config.verbose).lower()),
        (
            "command_timeout",
            "none" if config.command_timeout is None else f"{config.command_timeout:g}s",
        ),
        ("github.projects_enabled", str(board.projects_enabled).lower()),
        ("github.status_field_name", board.status_field_name),
        ("github.todo_value", board.todo_value),
        ("github.in_progress_value", board.in_progress_value),
        ("github.in_review_value", board.in_review_value),
        ("github.done_value", board.done_value),
        ("github.check_scopes", str(board.check_scopes).lower()),
    ]
