"""Real-time pitch detection: estimation, stabilisation and session control."""

from .acquisition import (
    AcquisitionStrategy,
    DegradedAcquisition,
    EnvironmentCapabilities,
    FullSpectralAcquisition,
)
from .controller import DetectionSessionController, SessionState
from .estimators import AmdfEstimator, AutocorrelationEstimator, FrequencyEstimator, build_estimators
from .pitch_estimator import PitchEstimator, PitchReading, rms
from .stability import DetectionResult, DetectionWindow, StabilityFilter

__all__ = [
    "AcquisitionStrategy",
    "AmdfEstimator",
    "AutocorrelationEstimator",
    "DegradedAcquisition",
    "DetectionResult",
    "DetectionSessionController",
    "DetectionWindow",
    "EnvironmentCapabilities",
    "FrequencyEstimator",
    "FullSpectralAcquisition",
    "PitchEstimator",
    "PitchReading",
    "SessionState",
    "StabilityFilter",
    "build_estimators",
    "rms",
]
