"""Lookout: validate playbook changes and notify a downstream repository."""

from __future__ import annotations

__version__ = "0.1.0"

from .config import LookoutConfig, load_config  # noqa: E402
from .errors import (  # noqa: E402
    ChangedFilesError,
    ConfigValidationError,
    DispatchConfigError,
    DispatchError,
    LookoutConfigError,
    LookoutError,
    TriggerContextError,
)
from .gate import is_allowed_branch  # noqa: E402
from .pipeline import (  # noqa: E402
    PipelineDependencies,
    PipelineResult,
    PipelineState,
    run_pipeline,
)
from .record import NotificationRecord, build_record  # noqa: E402
from .trigger import TriggerContext, TriggerKind  # noqa: E402
from .validation import CheckStatus, ValidationReport, run_validation  # noqa: E402

__all__ = [
    "ChangedFilesError",
    "CheckStatus",
    "ConfigValidationError",
    "DispatchConfigError",
    "DispatchError",
    "LookoutConfig",
    "LookoutConfigError",
    "LookoutError",
    "NotificationRecord",
    "PipelineDependencies",
    "PipelineResult",
    "PipelineState",
    "TriggerContext",
    "TriggerContextError",
    "TriggerKind",
    "ValidationReport",
    "__version__",
    "build_record",
    "is_allowed_branch",
    "load_config",
    "run_pipeline",
    "run_validation",
]
