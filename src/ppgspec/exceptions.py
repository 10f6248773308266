"""Exception hierarchy for the spectral analysis pipeline."""


class PPGSpecError(Exception):
    """Base exception for ppgspec errors."""


class InvalidArgumentError(PPGSpecError, ValueError):
    """Raised for bad window, skip, duration, or frequency inputs."""


class NotFoundError(PPGSpecError, LookupError):
    """Raised when a requested element or epoch does not exist."""

    def __init__(self, message: str, element_ref: object | None = None):
        super().__init__(message)
        self.element_ref = element_ref


class AmbiguousMatchError(NotFoundError):
    """Raised when more than one element or epoch matches a lookup."""


class ComputationFailure(PPGSpecError):
    """
    Per-event computation failure.

    Raised inside per-event loops (window out of range, degenerate spectrum)
    and always converted to NaN markers by the caller.
    """
