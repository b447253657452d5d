"""Reduction factor search and display stretching.

- BlacknessScanner: Scan trial factors and record the blackness curve
- CurveFitter: Refine the curve into the turning point
- Stretcher: Auto STF and simple display stretches
"""

from .scanner import BlacknessScanner, ScanContext, ScanOutcome, CurvePoint
from .curve_fitter import CurveFitter, FitResult
from .stretcher import Stretcher, STFParameters

__all__ = [
    'BlacknessScanner',
    'ScanContext',
    'ScanOutcome',
    'CurvePoint',
    'CurveFitter',
    'FitResult',
    'Stretcher',
    'STFParameters',
]
