"""Error types raised by the continuum subtraction components.

Two families are distinguished:

- Precondition errors (GeometryMismatch, IdenticalViews, DegenerateImage) are
  programming or input-selection errors. They are raised before any scanning
  work begins.
- Reduction failures (InsufficientData, NoDominantSlope, NoSolution, Cancelled)
  are legitimate outcomes of a scan on data without a clear transition, or of
  a user abort. ContinuumReducer reports them as a status on the result and
  only raises them from ReductionResult.raise_for_status().
"""


class ContinuumSubtractionError(Exception):
    """Base class for all continuum subtraction errors."""


class PreconditionError(ContinuumSubtractionError, ValueError):
    """Inputs violate a precondition of the reduction."""


class GeometryMismatch(PreconditionError):
    """Narrowband, broadband or mask images differ in pixel dimensions."""

    def __init__(self, first_name: str, first_shape, second_name: str, second_shape):
        self.first_shape = tuple(first_shape)
        self.second_shape = tuple(second_shape)
        super().__init__(
            f"{first_name} and {second_name} have different geometry: "
            f"{self.first_shape} vs {self.second_shape}"
        )


class IdenticalViews(PreconditionError):
    """Two inputs that must differ refer to the same source."""


class DegenerateImage(PreconditionError):
    """Image statistics leave nothing to scan (black or non-finite images)."""


class ReductionFailure(ContinuumSubtractionError):
    """The scan ran but produced no usable reduction factor."""


class InsufficientData(ReductionFailure):
    """Too few scan points to fit the slope curve."""


class NoDominantSlope(ReductionFailure):
    """The blackness curve never rises, so no slope peak exists."""


class NoSolution(ReductionFailure):
    """The fitted turning point is not trustworthy."""


class Cancelled(ReductionFailure):
    """The scan was cancelled by the caller."""
