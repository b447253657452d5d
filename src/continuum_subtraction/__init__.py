"""Continuum Subtraction - narrowband emission extraction for astrophotography.

Finds the fraction ``mue`` of a broadband image that, subtracted from a
narrowband image, removes the stellar and nebular continuum and leaves the
line emission.

Modules:
- preprocessing: FITSLoader, PixelSampleStore
- processing: BlacknessScanner, CurveFitter, Stretcher
- postprocessing: ContinuumSubtractor, ImageExporter, HistoryTracker
- pipeline: ContinuumReducer (validation, scan and fit orchestration)
"""

from .config import ReductionSettings
from .exceptions import (
    ContinuumSubtractionError, PreconditionError, GeometryMismatch, IdenticalViews,
    DegenerateImage, ReductionFailure, InsufficientData, NoDominantSlope, NoSolution, Cancelled,
)
from .results import ReductionStatus, ReductionResult, SlopePoint
from .preprocessing import FITSLoader, LoadedImage, PixelSampleStore
from .processing import BlacknessScanner, ScanContext, CurvePoint, CurveFitter, Stretcher
from .postprocessing import ContinuumSubtractor, ImageExporter, HistoryTracker
from .pipeline import ContinuumReducer, ReducerState

__version__ = "0.1.0"
__all__ = [
    # Configuration
    "ReductionSettings",
    # Errors
    "ContinuumSubtractionError",
    "PreconditionError",
    "GeometryMismatch",
    "IdenticalViews",
    "DegenerateImage",
    "ReductionFailure",
    "InsufficientData",
    "NoDominantSlope",
    "NoSolution",
    "Cancelled",
    # Results
    "ReductionStatus",
    "ReductionResult",
    "SlopePoint",
    # Preprocessing
    "FITSLoader",
    "LoadedImage",
    "PixelSampleStore",
    # Processing
    "BlacknessScanner",
    "ScanContext",
    "CurvePoint",
    "CurveFitter",
    "Stretcher",
    # Postprocessing
    "ContinuumSubtractor",
    "ImageExporter",
    "HistoryTracker",
    # Pipeline
    "ContinuumReducer",
    "ReducerState",
]
