"""Applying and exporting a reduction.

- ContinuumSubtractor: Emission image and emission line integration
- ImageExporter: FITS and PNG output
- HistoryTracker: Processing history
"""

from .subtractor import ContinuumSubtractor
from .exporter import ImageExporter
from .history_tracker import HistoryTracker, ProcessingStep

__all__ = ['ContinuumSubtractor', 'ImageExporter', 'HistoryTracker', 'ProcessingStep']
