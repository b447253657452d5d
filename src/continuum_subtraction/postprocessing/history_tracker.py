"""Processing history of a continuum subtraction run.

This module provides the HistoryTracker class recording each stage of a
reduction (equalization, scan, fit, subtraction) so the emission image can be
traced back to the parameters that produced it.
"""

from typing import Any, Dict, Iterator, List, Optional
from dataclasses import dataclass, asdict
from datetime import datetime
import textwrap
import logging

logger = logging.getLogger(__name__)

# Usable width of a FITS HISTORY card value
FITS_HISTORY_WIDTH = 72


def _format_value(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:.8g}"
    return str(value)


@dataclass
class ProcessingStep:
    """Record of a single processing stage.

    Attributes:
        timestamp: When the stage ran
        operation: Name of the operation (e.g. 'scan', 'fit', 'subtract')
        parameters: Parameters and key results of the stage
        component: Component that ran the stage
        notes: Optional remark (e.g. 'cancelled')
    """
    timestamp: str
    operation: str
    parameters: Dict[str, Any]
    component: str
    notes: Optional[str] = None

    @property
    def signature(self) -> str:
        """``Component.operation(key=value, ...)`` with the notes appended."""
        args = ', '.join(f"{k}={_format_value(v)}" for k, v in self.parameters.items())
        text = f"{self.component}.{self.operation}({args})"
        if self.notes:
            text += f" - {self.notes}"
        return text

    def fits_lines(self, width: int = FITS_HISTORY_WIDTH) -> List[str]:
        """Split the signature into HISTORY card values; continuations are indented."""
        return textwrap.wrap(
            self.signature, width=width, subsequent_indent='  ', break_on_hyphens=False
        )


class HistoryTracker:
    """Track the stages of a reduction.

    Example:
        >>> tracker = HistoryTracker()
        >>> tracker.record('scan', {'step_size': 0.001}, 'BlacknessScanner')
        >>> tracker.record('fit', {'mue': 0.41}, 'CurveFitter')
        >>> print(tracker.to_text(include_timestamps=False))
        BlacknessScanner.scan(step_size=0.001)
        CurveFitter.fit(mue=0.41)
    """

    def __init__(self):
        self.steps: List[ProcessingStep] = []

    def record(
        self,
        operation: str,
        parameters: Dict[str, Any],
        component: str,
        notes: Optional[str] = None
    ) -> ProcessingStep:
        """Record a processing stage.

        Args:
            operation: Name of the operation
            parameters: Parameters and results of the stage (copied)
            component: Component that performed the operation
            notes: Optional remark

        Returns:
            The recorded step
        """
        step = ProcessingStep(
            timestamp=datetime.now().isoformat(timespec='seconds'),
            operation=operation,
            parameters=dict(parameters),
            component=component,
            notes=notes
        )
        self.steps.append(step)
        logger.debug(f"Recorded {step.signature}")
        return step

    def get_history(self) -> List[ProcessingStep]:
        """Get a copy of the recorded steps."""
        return list(self.steps)

    def to_text(self, include_timestamps: bool = True) -> str:
        """Export history as plain text, one line per step."""
        if not self.steps:
            return "No processing history recorded"
        if include_timestamps:
            return '\n'.join(f"[{s.timestamp}] {s.signature}" for s in self.steps)
        return '\n'.join(s.signature for s in self.steps)

    def to_fits_header(self) -> List[str]:
        """Export history as FITS HISTORY card values.

        Entries longer than a card are continued on the following cards.

        Example:
            >>> from astropy.io import fits
            >>> header = fits.Header()
            >>> for comment in tracker.to_fits_header():
            ...     header['HISTORY'] = comment
        """
        if not self.steps:
            return []
        lines = ["Continuum subtraction history:"]
        for step in self.steps:
            lines.extend(step.fits_lines())
        return lines

    def to_dict(self) -> Dict[str, Any]:
        """Export history as a JSON-serializable dictionary."""
        return {'steps': [asdict(s) for s in self.steps], 'total_steps': len(self.steps)}

    def clear(self) -> None:
        """Clear all recorded history."""
        self.steps.clear()
        logger.debug("History tracker cleared")

    def __iter__(self) -> Iterator[ProcessingStep]:
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self.steps)

    def __repr__(self) -> str:
        return f"HistoryTracker({len(self.steps)} steps)"
