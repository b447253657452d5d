"""Unit tests for ReductionResult."""

import pytest

from continuum_subtraction import (
    Cancelled, InsufficientData, NoDominantSlope, NoSolution, ReductionFailure,
    ReductionResult, ReductionStatus,
)


class TestReductionResult:
    """Test result status handling."""

    def test_success(self):
        """Test a successful result."""
        result = ReductionResult(ReductionStatus.SUCCEEDED, mue=0.8, broadband_scale=0.5)

        assert result.ok
        assert result.effective_mue == pytest.approx(0.4)
        assert result.raise_for_status() is result

    def test_failure_has_negative_factor(self):
        """Test that a failed result keeps the -1 sentinel."""
        result = ReductionResult(ReductionStatus.NO_SOLUTION, broadband_scale=0.5)

        assert not result.ok
        assert result.mue == -1.0
        assert result.effective_mue == -1.0

    @pytest.mark.parametrize('status,error', [
        (ReductionStatus.INSUFFICIENT_DATA, InsufficientData),
        (ReductionStatus.NO_DOMINANT_SLOPE, NoDominantSlope),
        (ReductionStatus.NO_SOLUTION, NoSolution),
        (ReductionStatus.CANCELLED, Cancelled),
    ])
    def test_raise_for_status(self, status, error):
        """Test that each failure status raises its error type."""
        result = ReductionResult(status, message='details')

        with pytest.raises(error, match='details'):
            result.raise_for_status()
        assert issubclass(error, ReductionFailure)

    def test_success_without_factor(self):
        """Test that a succeeded status with a non-positive factor is not ok."""
        result = ReductionResult(ReductionStatus.SUCCEEDED, mue=0.0)

        assert not result.ok
        with pytest.raises(NoSolution):
            result.raise_for_status()

    def test_repr(self):
        """Test the compact representation."""
        result = ReductionResult(ReductionStatus.SUCCEEDED, mue=0.4, iterations=120)

        assert repr(result) == (
            "ReductionResult(status=succeeded, mue=0.40000000, curve=0 points, iterations=120)"
        )
