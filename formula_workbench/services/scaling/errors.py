"""Caller-misuse errors for scaling commits.

Preview computation never raises for feasibility problems; these errors are
reserved for commit requests that must be rejected outright.
"""

from __future__ import annotations


class ScalingCommitError(RuntimeError):
    """Raised when a scaling result cannot be folded into a formula."""

    code = "commit_rejected"


class CommitNotAllowedError(ScalingCommitError):
    """Raised when the preview is not committable (no changes or factor <= 0)."""

    code = "not_committable"

    def __init__(self, *, formula_id: str, scale_factor: float, row_change_count: int):
        super().__init__(
            f"Scaling result for formula {formula_id!r} cannot be committed "
            f"(scale factor {scale_factor:.4f}, {row_change_count} row changes)."
        )
        self.formula_id = formula_id
        self.scale_factor = scale_factor
        self.row_change_count = row_change_count


class WarningsNotAcknowledgedError(ScalingCommitError):
    """Raised when a result with warnings is committed without acknowledgment."""

    code = "warnings_not_acknowledged"

    def __init__(self, *, warnings: tuple[str, ...]):
        super().__init__("There are warnings. Acknowledge them to proceed.")
        self.warnings = warnings


class StaleScalingResultError(ScalingCommitError):
    """Raised when a preview was computed against another formula snapshot."""

    code = "stale_preview"

    def __init__(self, *, formula_id: str, expected_revision: int, actual_revision: int):
        super().__init__(
            f"Preview for formula {formula_id!r} was computed at revision "
            f"{expected_revision}, but the formula is at revision {actual_revision}."
        )
        self.formula_id = formula_id
        self.expected_revision = expected_revision
        self.actual_revision = actual_revision


__all__ = [
    "CommitNotAllowedError",
    "ScalingCommitError",
    "StaleScalingResultError",
    "WarningsNotAcknowledgedError",
]
