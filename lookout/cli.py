"""Command-line entry point for the validate-then-notify pipeline.

Usage:
    lookout validate            # Validation stage only, never fails
    lookout gate --branch main  # Exit 0 when the branch is allow-listed
    lookout notify              # Gate and notify, skipping validation
    lookout run                 # Full pipeline

Trigger options default to the GitHub Actions environment (``GITHUB_SHA``,
``GITHUB_REF`` and friends). The dispatch credential is read from
``LOOKOUT_DISPATCH_TOKEN`` and cannot be passed on the command line.
"""

from __future__ import annotations

import asyncio
import dataclasses
import os
import sys
import typing as typ
from pathlib import Path

from cyclopts import App, Parameter

from . import __version__
from .config import LOG_LEVEL_ENV_VAR, load_config
from .errors import LookoutConfigError, LookoutError
from .gate import is_allowed_branch
from .logging import configure_logging, get_logger, log_error, log_warning
from .pipeline import PipelineDependencies, run_pipeline, run_validation_stage
from .summary import summary_sink_from_env
from .trigger import TriggerContext

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_DELIVERY_FAILED = 1
EXIT_CONFIG_ERROR = 2
EXIT_BRANCH_NOT_ALLOWED = 1

app = App(
    name="lookout",
    help="Validate playbook changes and notify the downstream repository",
    version=__version__,
)

ConfigOption = typ.Annotated[
    Path | None, Parameter(env_var="LOOKOUT_CONFIG", help="Path to lookout.yaml")
]


def _setup_logging() -> None:
    level, invalid = configure_logging(os.environ.get(LOG_LEVEL_ENV_VAR))
    if invalid and os.environ.get(LOG_LEVEL_ENV_VAR):
        log_warning(
            logger,
            "Unrecognised %s; falling back to %s",
            LOG_LEVEL_ENV_VAR,
            level,
        )


def _report_config_error(exc: LookoutConfigError) -> int:
    log_error(logger, "Configuration error: %s", exc)
    print(f"lookout: {exc}", file=sys.stderr)
    return EXIT_CONFIG_ERROR


@app.command
def validate(*, config: ConfigOption = None) -> int:
    """Run the validation stage and write its summary.

    Findings are reported but never change the exit code.

    Args:
        config: Optional configuration file.

    Returns:
        Exit code (0 unless the configuration cannot be loaded).

    """
    _setup_logging()
    try:
        cfg = load_config(config)
    except LookoutConfigError as exc:
        return _report_config_error(exc)

    run_validation_stage(cfg, PipelineDependencies(sink=summary_sink_from_env()))
    return EXIT_OK


@app.command
def gate(
    *,
    branch: typ.Annotated[str, Parameter(env_var="GITHUB_REF_NAME")] = "",
    config: ConfigOption = None,
) -> int:
    """Report whether a branch may reach the notification stage.

    Args:
        branch: Short branch name to test.
        config: Optional configuration file.

    Returns:
        Exit code 0 when allow-listed, 1 otherwise.

    """
    _setup_logging()
    try:
        cfg = load_config(config)
    except LookoutConfigError as exc:
        return _report_config_error(exc)

    allowed = is_allowed_branch(branch, cfg.allowed_branches)
    print(f"{branch or '<none>'}: {'allowed' if allowed else 'not allowed'}")
    return EXIT_OK if allowed else EXIT_BRANCH_NOT_ALLOWED


def _resolve_context(  # noqa: PLR0913
    *,
    repository: str,
    ref: str,
    branch: str,
    sha: str,
    actor: str,
    event_name: str,
    before: str,
) -> TriggerContext:
    overrides = {
        "GITHUB_REPOSITORY": repository,
        "GITHUB_REF": ref,
        "GITHUB_REF_NAME": branch,
        "GITHUB_SHA": sha,
        "GITHUB_ACTOR": actor,
        "GITHUB_EVENT_NAME": event_name,
    }
    environ = dict(os.environ)
    environ.update({key: value for key, value in overrides.items() if value})
    context = TriggerContext.from_env(environ)
    if before:
        context = dataclasses.replace(context, before=before)
    return context


def _execute(  # noqa: PLR0913
    *,
    validate_first: bool,
    config: Path | None,
    repository: str,
    ref: str,
    branch: str,
    sha: str,
    actor: str,
    event_name: str,
    before: str,
) -> int:
    _setup_logging()
    try:
        cfg = load_config(config)
        context = _resolve_context(
            repository=repository,
            ref=ref,
            branch=branch,
            sha=sha,
            actor=actor,
            event_name=event_name,
            before=before,
        )
    except LookoutConfigError as exc:
        return _report_config_error(exc)

    deps = PipelineDependencies(sink=summary_sink_from_env())
    try:
        result = asyncio.run(run_pipeline(context, cfg, deps, validate=validate_first))
    except LookoutError as exc:
        print(f"lookout: notification failed: {exc}", file=sys.stderr)
        return EXIT_DELIVERY_FAILED

    print(f"lookout: {result.state}")
    return EXIT_OK


RepositoryOption = typ.Annotated[str, Parameter(env_var="GITHUB_REPOSITORY")]
RefOption = typ.Annotated[str, Parameter(env_var="GITHUB_REF")]
BranchOption = typ.Annotated[str, Parameter(env_var="GITHUB_REF_NAME")]
ShaOption = typ.Annotated[str, Parameter(env_var="GITHUB_SHA")]
ActorOption = typ.Annotated[str, Parameter(env_var="GITHUB_ACTOR")]
EventOption = typ.Annotated[str, Parameter(env_var="GITHUB_EVENT_NAME")]


@app.command
def notify(  # noqa: PLR0913
    *,
    config: ConfigOption = None,
    repository: RepositoryOption = "",
    ref: RefOption = "",
    branch: BranchOption = "",
    sha: ShaOption = "",
    actor: ActorOption = "",
    event_name: EventOption = "",
    before: str = "",
) -> int:
    """Gate on the branch and deliver the notification, without validating.

    Args:
        config: Optional configuration file.
        repository: Source repository as owner/name.
        ref: Full git ref of the change.
        branch: Short branch name (derived from ref when omitted).
        sha: Commit that triggered the run.
        actor: Author of the change.
        event_name: push or workflow_dispatch.
        before: Previous revision of a push, used to diff changed files.

    Returns:
        Exit code (0 when skipped or notified, 1 on delivery failure).

    """
    return _execute(
        validate_first=False,
        config=config,
        repository=repository,
        ref=ref,
        branch=branch,
        sha=sha,
        actor=actor,
        event_name=event_name,
        before=before,
    )


@app.command
def run(  # noqa: PLR0913
    *,
    config: ConfigOption = None,
    repository: RepositoryOption = "",
    ref: RefOption = "",
    branch: BranchOption = "",
    sha: ShaOption = "",
    actor: ActorOption = "",
    event_name: EventOption = "",
    before: str = "",
) -> int:
    """Validate, then gate and notify.

    Args:
        config: Optional configuration file.
        repository: Source repository as owner/name.
        ref: Full git ref of the change.
        branch: Short branch name (derived from ref when omitted).
        sha: Commit that triggered the run.
        actor: Author of the change.
        event_name: push or workflow_dispatch.
        before: Previous revision of a push, used to diff changed files.

    Returns:
        Exit code (0 when skipped or notified, 1 on delivery failure).

    """
    return _execute(
        validate_first=True,
        config=config,
        repository=repository,
        ref=ref,
        branch=branch,
        sha=sha,
        actor=actor,
        event_name=event_name,
        before=before,
    )


def main() -> int:
    """Entry point for the CLI."""
    return app()


if __name__ == "__main__":
    sys.exit(main())
