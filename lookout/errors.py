"""Exception hierarchy for the validation and dispatch pipeline.

Validation findings are never exceptions; everything raised from this module
describes a fatal notification-stage or configuration failure.
"""

from __future__ import annotations


class LookoutError(RuntimeError):
    """Base class for all fatal Lookout errors."""


class LookoutConfigError(LookoutError):
    """Raised when configuration or trigger context is unusable."""


class ConfigValidationError(LookoutConfigError, ValueError):
    """Raised when a configuration file fails structural validation."""

    def __init__(self, issues: list[str]) -> None:
        """Capture validation issues whilst preserving the aggregated message."""
        super().__init__("\n".join(issues))
        self.issues = issues


class TriggerContextError(LookoutConfigError):
    """Raised when the hosting environment does not describe a usable change."""

    @classmethod
    def missing(cls, field: str, env_var: str) -> TriggerContextError:
        """Return an error for a required context value that was not supplied."""
        return cls(f"trigger context is missing {field} (set {env_var})")

    @classmethod
    def unsupported_event(cls, event_name: str) -> TriggerContextError:
        """Return an error for an event the pipeline does not handle."""
        return cls(
            f"unsupported trigger event '{event_name}' "
            "(expected 'push' or 'workflow_dispatch')"
        )

    @classmethod
    def unreadable_event(cls, path: str, reason: object) -> TriggerContextError:
        """Return an error for an event payload file that cannot be decoded."""
        return cls(f"failed to read event payload {path}: {reason}")


class DispatchConfigError(LookoutConfigError):
    """Raised when the dispatch target or credential is invalid."""

    @classmethod
    def missing_token(cls) -> DispatchConfigError:
        """Return an error when no dispatch credential is configured."""
        return cls("LOOKOUT_DISPATCH_TOKEN is required to notify the downstream")

    @classmethod
    def missing_repository(cls) -> DispatchConfigError:
        """Return an error when no downstream repository is configured."""
        return cls(
            "dispatch.repository (or LOOKOUT_DISPATCH_REPOSITORY) is required "
            "to notify the downstream"
        )

    @classmethod
    def malformed_repository(cls, value: str) -> DispatchConfigError:
        """Return an error for a target that is not an ``owner/name`` slug."""
        return cls(f"dispatch repository '{value}' must look like 'owner/name'")


class DispatchError(LookoutError):
    """Raised when the downstream dispatch request fails."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def http_error(cls, status_code: int, detail: str = "") -> DispatchError:
        """Return an error for non-2xx HTTP responses."""
        suffix = f": {detail}" if detail else ""
        return cls(
            f"GitHub dispatch HTTP {status_code}{suffix}", status_code=status_code
        )

    @classmethod
    def transport(cls, exc: BaseException) -> DispatchError:
        """Return an error for a request that never produced a response."""
        return cls(f"GitHub dispatch transport failure: {exc}")


class ChangedFilesError(LookoutError):
    """Raised when git cannot enumerate the files changed by a revision."""

    def __init__(self, command: list[str], returncode: int, stderr: str) -> None:
        """Record the failing git invocation."""
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr.strip() or "no output"
        super().__init__(
            f"'{' '.join(command)}' exited with {returncode}: {detail}"
        )
