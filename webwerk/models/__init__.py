"""Models package."""

from .operation import GitMode, InstallMode, ModifyAction, OperationKind
from .result import (
    BatchSummary,
    CommandOutcome,
    CommandResult,
    FallbackOutcome,
    OperationResult,
    ResultStatus,
)
from .site import WP_MARKER, Site

__all__ = [
    "BatchSummary",
    "CommandOutcome",
    "CommandResult",
    "FallbackOutcome",
    "GitMode",
    "InstallMode",
    "ModifyAction",
    "OperationKind",
    "OperationResult",
    "ResultStatus",
    "Site",
    "WP_MARKER",
]
