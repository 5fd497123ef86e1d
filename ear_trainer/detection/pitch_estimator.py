"""Volume gate and multi-algorithm frequency estimate for one audio frame."""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import numpy as np

from ..logger import get_logger
from .estimators import FrequencyEstimator

logger = get_logger(__name__)


@dataclass
class PitchReading:
    """Result of analysing one frame."""

    volume: float  # RMS of the frame
    frequency: Optional[float] = None  # Averaged estimate, None if no survivor
    gated: bool = False  # True when volume was under the threshold
    estimates: List[float] = field(default_factory=list)  # Surviving per-algorithm estimates


def rms(frame: np.ndarray) -> float:
    """Root-mean-square amplitude of a frame, 0.0 for an empty frame."""
    samples = np.asarray(frame, dtype=np.float64)
    if samples.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(np.square(samples))))


class PitchEstimator:
    """Gates frames on RMS and reconciles several frequency estimators."""

    def __init__(
        self,
        estimators: Sequence[FrequencyEstimator],
        volume_threshold: float = 0.01,
        min_frequency: float = 80.0,
        max_frequency: float = 1200.0,
    ) -> None:
        """Initialize the pitch estimator.

        Args:
            estimators: Algorithms run independently on every open frame
            volume_threshold: Minimum RMS for a frame to be analysed
            min_frequency: Estimates at or below this are discarded (Hz)
            max_frequency: Estimates at or above this are discarded (Hz)
        """
        self._estimators = list(estimators)
        self.volume_threshold = volume_threshold
        self.min_frequency = min_frequency
        self.max_frequency = max_frequency

    @property
    def estimators(self) -> List[FrequencyEstimator]:
        return list(self._estimators)

    def is_open(self, volume: float) -> bool:
        """Whether a frame of this volume passes the gate."""
        return volume >= self.volume_threshold

    def in_range(self, frequency: float) -> bool:
        return self.min_frequency < frequency < self.max_frequency

    def estimate(self, frame: np.ndarray) -> PitchReading:
        """Analyse one frame.

        Returns:
            A gated reading when the frame is too quiet, otherwise a reading
            carrying the mean of the in-range estimates (or no frequency when
            none survived)
        """
        volume = rms(frame)
        if not self.is_open(volume):
            return PitchReading(volume=volume, gated=True)

        estimates: List[float] = []
        for estimator in self._estimators:
            try:
                frequency = estimator.estimate(frame)
            except Exception as e:
                logger.warning(f"Estimator {estimator.name} failed on this frame: {e}")
                continue
            if frequency is None:
                continue
            if not self.in_range(frequency):
                logger.debug(f"{estimator.name} estimate {frequency:.1f}Hz out of range")
                continue
            estimates.append(float(frequency))

        return self.reading(volume, estimates)

    def reading(self, volume: float, estimates: Sequence[float]) -> PitchReading:
        """Build a reading from already computed estimates (used by simulations)."""
        if not self.is_open(volume):
            return PitchReading(volume=volume, gated=True)
        survivors = [f for f in estimates if self.in_range(f)]
        if not survivors:
            return PitchReading(volume=volume)
        return PitchReading(
            volume=volume,
            frequency=sum(survivors) / len(survivors),
            estimates=survivors,
        )

    def release(self) -> None:
        """Free the analysis buffers held by every estimator."""
        for estimator in self._estimators:
            estimator.release()
