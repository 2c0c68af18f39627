"""Pipeline configuration.

Configuration lives in an optional ``lookout.yaml`` at the repository root.
Every field has a default, so a repository without the file still gets the
stock watched paths, branch allow-list and checks. The downstream repository
may be supplied through ``LOOKOUT_DISPATCH_REPOSITORY``; the credential is
only ever read from ``LOOKOUT_DISPATCH_TOKEN``.

Usage
-----
>>> config = load_config("lookout.yaml")
>>> config.branches
['main', 'develop']

"""

from __future__ import annotations

import os
import re
from pathlib import Path

import msgspec
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .errors import ConfigValidationError
from .gate import DEFAULT_ALLOWED_BRANCHES
from .paths import DEFAULT_WATCHED_PATHS

YAML_VERSION = (1, 2)
DEFAULT_CONFIG_FILENAME = "lookout.yaml"
DEFAULT_EVENT_TYPE = "playbooks-updated"
DEFAULT_API_URL = "https://api.github.com"

REPOSITORY_ENV_VAR = "LOOKOUT_DISPATCH_REPOSITORY"
TOKEN_ENV_VAR = "LOOKOUT_DISPATCH_TOKEN"  # noqa: S105 - env var name
LOG_LEVEL_ENV_VAR = "LOOKOUT_LOG_LEVEL"

REPOSITORY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$")
# GitHub rejects repository_dispatch event types longer than 100 characters.
_MAX_EVENT_TYPE_LENGTH = 100


class DispatchSettings(msgspec.Struct, kw_only=True, frozen=True):
    """Downstream repository that receives the notification.

    Attributes
    ----------
    repository : str
        Target ``owner/name`` slug. Empty until configured.
    event_type : str
        ``event_type`` sent with the ``repository_dispatch`` request.
    api_url : str
        Base URL of the GitHub REST API.
    timeout_s : float
        HTTP timeout applied to the single delivery attempt.

    """

    repository: str = ""
    event_type: str = DEFAULT_EVENT_TYPE
    api_url: str = DEFAULT_API_URL
    timeout_s: float = 20.0


class ValidationSettings(msgspec.Struct, kw_only=True, frozen=True):
    """Which checks the validation stage runs and where.

    Attributes
    ----------
    root : str
        Working copy root, relative to the current directory.
    playbook_globs : list[str]
        Globs selecting the playbooks that get a syntax check.
    yamllint, ansible_lint, syntax_check : bool
        Toggles for the individual checks.

    """

    root: str = "."
    playbook_globs: list[str] = msgspec.field(
        default_factory=lambda: ["playbooks/*.yml", "playbooks/*.yaml"]
    )
    yamllint: bool = True
    ansible_lint: bool = True
    syntax_check: bool = True

    @property
    def root_path(self) -> Path:
        """Return the working copy root as a path."""
        return Path(self.root)


class LookoutConfig(msgspec.Struct, kw_only=True, frozen=True):
    """Top-level pipeline configuration."""

    watched_paths: list[str] = msgspec.field(
        default_factory=lambda: list(DEFAULT_WATCHED_PATHS)
    )
    branches: list[str] = msgspec.field(
        default_factory=lambda: list(DEFAULT_ALLOWED_BRANCHES)
    )
    dispatch: DispatchSettings = msgspec.field(default_factory=DispatchSettings)
    validation: ValidationSettings = msgspec.field(
        default_factory=ValidationSettings
    )

    @property
    def allowed_branches(self) -> frozenset[str]:
        """Return the branch allow-list as a set."""
        return frozenset(self.branches)


def validate_config(config: LookoutConfig) -> LookoutConfig:
    """Return ``config`` unchanged when it is structurally sound."""
    issues: list[str] = []

    if not config.watched_paths:
        issues.append("watched_paths must list at least one pattern")
    issues.extend(
        f"watched_paths[{index}] must not be empty"
        for index, pattern in enumerate(config.watched_paths)
        if not pattern.strip() or pattern.strip() == "!"
    )

    if not config.branches:
        issues.append("branches must list at least one allow-listed branch")
    issues.extend(
        f"branches[{index}] must not be empty"
        for index, branch in enumerate(config.branches)
        if not branch.strip()
    )

    dispatch = config.dispatch
    if dispatch.repository and not REPOSITORY_PATTERN.match(dispatch.repository):
        issues.append(
            f"dispatch.repository '{dispatch.repository}' must look like 'owner/name'"
        )
    if not dispatch.event_type.strip():
        issues.append("dispatch.event_type must not be empty")
    elif len(dispatch.event_type) > _MAX_EVENT_TYPE_LENGTH:
        issues.append(
            f"dispatch.event_type must be at most {_MAX_EVENT_TYPE_LENGTH} characters"
        )
    if dispatch.timeout_s <= 0:
        issues.append(f"dispatch.timeout_s must be positive, got {dispatch.timeout_s}")

    if config.validation.syntax_check and not config.validation.playbook_globs:
        issues.append("validation.playbook_globs must not be empty")

    if issues:
        raise ConfigValidationError(issues)
    return config


def apply_env_overrides(config: LookoutConfig) -> LookoutConfig:
    """Overlay environment-provided settings onto ``config``."""
    repository = os.environ.get(REPOSITORY_ENV_VAR, "").strip()
    if not repository:
        return config
    dispatch = msgspec.structs.replace(config.dispatch, repository=repository)
    return msgspec.structs.replace(config, dispatch=dispatch)


def load_config(path: Path | str | None = None) -> LookoutConfig:
    """Load, overlay and validate the pipeline configuration.

    Parameters
    ----------
    path : Path | str | None, optional
        Explicit configuration file. When ``None``, ``lookout.yaml`` in the
        current directory is used if present, otherwise defaults apply.

    Raises
    ------
    ConfigValidationError
        If the file cannot be parsed or fails validation.

    """
    if path is None:
        default = Path(DEFAULT_CONFIG_FILENAME)
        config = _read_config(default) if default.exists() else LookoutConfig()
    else:
        config = _read_config(Path(path))
    return validate_config(apply_env_overrides(config))


def _read_config(path: Path) -> LookoutConfig:
    try:
        loaded = _yaml().load(path.read_text(encoding="utf-8"))
    except (OSError, YAMLError) as exc:
        raise ConfigValidationError([f"failed to parse {path}: {exc}"]) from exc

    if loaded is None:
        return LookoutConfig()

    try:
        return msgspec.convert(loaded, type=LookoutConfig)
    except msgspec.ValidationError as exc:
        raise ConfigValidationError([f"schema validation failed: {exc}"]) from exc


def _yaml() -> YAML:
    yaml = YAML(typ="safe")
    yaml.version = YAML_VERSION
    yaml.allow_duplicate_keys = False
    return yaml
