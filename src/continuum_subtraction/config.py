"""Run configuration for continuum subtraction.

ReductionSettings gathers every tunable of a reduction in one validated
dataclass, so a run can be recorded in the processing history and reproduced.
"""

from __future__ import annotations
from dataclasses import dataclass, asdict, fields
from typing import Any, Dict
import logging

logger = logging.getLogger(__name__)

# Increment between trial reduction factors. Smaller steps are more accurate
# but scan time grows roughly linearly.
DEFAULT_STEP_SIZE = 0.001
LEGACY_STEP_SIZE = 0.00025

DEFAULT_LIMIT_PERCENT = 90
MIN_LIMIT_PERCENT = 50
MAX_LIMIT_PERCENT = 99

# Auto-STF defaults: shadows clipping in MAD units from the median and the
# target mean background in [0, 1].
DEFAULT_SHADOWS_CLIPPING = -2.80
DEFAULT_TARGET_BACKGROUND = 0.25


@dataclass
class ReductionSettings:
    """Parameters of a continuum subtraction run.

    Attributes:
        limit_percent: Percentage of black pixels at which the scan stops (50-99)
        step_size: Increment of the reduction factor per scan iteration
        truncate_equalized: Clip the mean-equalized broadband to [0, 1]
        event_interval: Scan iterations between event callback invocations
        shadows_clipping: Auto-STF shadows clipping point (MAD units)
        target_background: Auto-STF target background level
        contingent: Weight of the emission image when integrated into a broadband channel
    """
    limit_percent: int = DEFAULT_LIMIT_PERCENT
    step_size: float = DEFAULT_STEP_SIZE
    truncate_equalized: bool = True
    event_interval: int = 1
    shadows_clipping: float = DEFAULT_SHADOWS_CLIPPING
    target_background: float = DEFAULT_TARGET_BACKGROUND
    contingent: float = 1.0

    def __post_init__(self):
        if isinstance(self.limit_percent, bool) or int(self.limit_percent) != self.limit_percent:
            raise ValueError(f"limit_percent must be an integer, got {self.limit_percent!r}")
        self.limit_percent = int(self.limit_percent)
        if not (MIN_LIMIT_PERCENT <= self.limit_percent <= MAX_LIMIT_PERCENT):
            raise ValueError(
                f"limit_percent must be in [{MIN_LIMIT_PERCENT}, {MAX_LIMIT_PERCENT}], "
                f"got {self.limit_percent}"
            )
        if self.step_size <= 0:
            raise ValueError(f"step_size must be positive, got {self.step_size}")
        if self.event_interval < 1:
            raise ValueError(f"event_interval must be >= 1, got {self.event_interval}")
        if not (0 < self.target_background < 1):
            raise ValueError(
                f"target_background must be in (0, 1), got {self.target_background}"
            )
        if self.contingent < 0:
            raise ValueError(f"contingent must be non-negative, got {self.contingent}")

    def black_pixel_limit(self, pixel_count: int) -> float:
        """Number of black pixels at which the scan stops."""
        return self.limit_percent / 100 * pixel_count

    def to_dict(self) -> Dict[str, Any]:
        """Return settings as a JSON-serializable dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> 'ReductionSettings':
        """Build settings from a dictionary, ignoring unknown keys.

        Example:
            >>> settings = ReductionSettings.from_dict({'limit_percent': 95})
            >>> settings.step_size
            0.001
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            logger.warning(f"Ignoring unknown settings: {', '.join(unknown)}")
        return cls(**{k: v for k, v in values.items() if k in known})
