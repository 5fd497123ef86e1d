"""Frequency estimators backed by aubio's pitch detection methods."""

from __future__ import annotations
from typing import Optional

import aubio
import numpy as np

from ..errors import AlgorithmFailure
from ..logger import get_logger
from .estimators import AUBIO_METHODS, FrequencyEstimator

logger = get_logger(__name__)


class AubioEstimator(FrequencyEstimator):
    """Runs one ``aubio.pitch`` method over whole frames (hop == window)."""

    def __init__(
        self,
        method: str,
        sample_rate: int,
        frame_size: int,
        tolerance: float = 0.8,
        min_confidence: float = 0.5,
    ) -> None:
        """Initialize the estimator.

        Args:
            method: aubio pitch method (e.g., 'yin', 'yinfft')
            sample_rate: Audio sample rate in Hz
            frame_size: Samples per frame; frames of other sizes are padded or truncated
            tolerance: aubio pitch detection tolerance (0.0 to 1.0)
            min_confidence: Estimates below this aubio confidence are dropped.
                Methods without a confidence measure report 0 and skip the check.
        """
        if method not in AUBIO_METHODS:
            raise ValueError(f"Unsupported aubio pitch method: {method}")
        self.name = method
        self._sample_rate = sample_rate
        self._frame_size = frame_size
        self._tolerance = tolerance
        self._min_confidence = min_confidence
        self._detector: Optional[aubio.pitch] = None

    def _create_detector(self) -> aubio.pitch:
        detector = aubio.pitch(self.name, self._frame_size, self._frame_size, self._sample_rate)
        detector.set_unit("Hz")
        detector.set_tolerance(self._tolerance)
        # Gating is done upstream on RMS
        detector.set_silence(-90.0)
        logger.debug(
            f"aubio {self.name} initialized: sample_rate={self._sample_rate}, "
            f"frame_size={self._frame_size}"
        )
        return detector

    def estimate(self, frame: np.ndarray) -> Optional[float]:
        if self._detector is None:
            self._detector = self._create_detector()

        samples = np.asarray(frame, dtype=np.float32)
        if len(samples) > self._frame_size:
            samples = samples[-self._frame_size :]
        elif len(samples) < self._frame_size:
            padding = np.zeros(self._frame_size - len(samples), dtype=np.float32)
            samples = np.concatenate((padding, samples))

        try:
            pitch = float(self._detector(samples)[0])
            confidence = float(self._detector.get_confidence())
        except (RuntimeError, ValueError) as e:
            raise AlgorithmFailure(self.name, str(e)) from e

        if pitch <= 0 or not np.isfinite(pitch):
            return None
        if 0 < confidence < self._min_confidence:
            return None
        return pitch

    def release(self) -> None:
        self._detector = None
