"""Single-frame fundamental frequency estimators.

Each estimator looks at one frame of mono samples and either returns a
frequency in Hz or None. Estimators may raise; the pitch estimator treats
an exception as "no estimate from this algorithm" for that frame.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import ClassVar, Iterable, List, Optional, Tuple

import numpy as np

from ..errors import AlgorithmFailure
from ..logger import get_logger

logger = get_logger(__name__)

# Estimator names served by aubio.pitch
AUBIO_METHODS: Tuple[str, ...] = ("yin", "yinfft", "yinfast", "mcomb", "fcomb", "schmitt", "specacf")


class FrequencyEstimator(ABC):
    """Interface for frequency-estimation algorithms."""

    name: ClassVar[str] = "estimator"

    @abstractmethod
    def estimate(self, frame: np.ndarray) -> Optional[float]:
        """Estimate the fundamental frequency of a frame, None if there is none."""
        pass

    def release(self) -> None:
        """Free any analysis buffers. The estimator may be rebuilt lazily."""
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name})"


class _LagSearchEstimator(FrequencyEstimator):
    """Shared lag-range bookkeeping for period-domain estimators."""

    def __init__(self, sample_rate: int, min_frequency: float, max_frequency: float) -> None:
        if sample_rate <= 0:
            raise ValueError("Sample rate must be positive")
        self.sample_rate = sample_rate
        self.min_frequency = min_frequency
        self.max_frequency = max_frequency

    def _lag_range(self, frame_length: int) -> Tuple[int, int]:
        min_lag = max(2, int(self.sample_rate / self.max_frequency))
        max_lag = min(frame_length - 2, int(np.ceil(self.sample_rate / self.min_frequency)))
        if max_lag <= min_lag + 2:
            raise AlgorithmFailure(
                self.name, f"frame of {frame_length} samples too short for {self.min_frequency}Hz"
            )
        return min_lag, max_lag

    @staticmethod
    def _refine(values: np.ndarray, i: int) -> float:
        """Parabolic interpolation around index i for a sub-sample position."""
        if i <= 0 or i >= len(values) - 1:
            return float(i)
        y0, y1, y2 = float(values[i - 1]), float(values[i]), float(values[i + 1])
        denom = y0 - 2.0 * y1 + y2
        if abs(denom) < 1e-12:
            return float(i)
        return float(i) + 0.5 * (y0 - y2) / denom


class AmdfEstimator(_LagSearchEstimator):
    """Average magnitude difference function, an energy-based period estimator.

    The difference curve dips at multiples of the period. The first dip that
    reaches within ``sensitivity`` of the deepest one is taken as the period,
    which avoids locking onto a multiple (an octave below).
    """

    name = "amdf"

    def __init__(
        self,
        sample_rate: int,
        min_frequency: float = 80.0,
        max_frequency: float = 1200.0,
        sensitivity: float = 0.1,
        ratio: float = 5.0,
    ) -> None:
        super().__init__(sample_rate, min_frequency, max_frequency)
        self.sensitivity = sensitivity
        self.ratio = ratio

    def estimate(self, frame: np.ndarray) -> Optional[float]:
        x = np.asarray(frame, dtype=np.float64)
        min_lag, max_lag = self._lag_range(len(x))
        lags = np.arange(min_lag, max_lag + 1)
        amdf = np.array([np.mean(np.abs(x[:-lag] - x[lag:])) for lag in lags])

        lowest = float(amdf.min())
        highest = float(amdf.max())
        if highest <= 0:
            return None
        # Flat curves mean no clear periodicity
        if lowest > 0 and highest / lowest < self.ratio:
            return None

        cutoff = lowest + self.sensitivity * (highest - lowest)
        below = np.nonzero(amdf <= cutoff)[0]
        i = int(below[0])
        while i + 1 < len(amdf) and amdf[i + 1] < amdf[i]:
            i += 1

        lag = min_lag + self._refine(amdf, i)
        return self.sample_rate / lag if lag > 0 else None


class AutocorrelationEstimator(_LagSearchEstimator):
    """FFT autocorrelation with a clarity gate, a time-domain period estimator."""

    name = "acf"

    def __init__(
        self,
        sample_rate: int,
        min_frequency: float = 80.0,
        max_frequency: float = 1200.0,
        min_clarity: float = 0.3,
    ) -> None:
        super().__init__(sample_rate, min_frequency, max_frequency)
        self.min_clarity = min_clarity
        self._window: Optional[np.ndarray] = None

    def estimate(self, frame: np.ndarray) -> Optional[float]:
        x = np.asarray(frame, dtype=np.float64)
        n = len(x)
        min_lag, max_lag = self._lag_range(n)

        if self._window is None or len(self._window) != n:
            self._window = np.hanning(n)
        x = (x - x.mean()) * self._window

        # Zero padding to 2n keeps the autocorrelation linear, not circular
        spectrum = np.fft.rfft(x, n=2 * n)
        r = np.fft.irfft(spectrum * np.conj(spectrum), n=2 * n)[:n]
        if r[0] <= 1e-12:
            return None
        r = r / r[0]

        # Skip the lobe around lag 0: search from its first zero crossing
        crossings = np.nonzero(r[: max_lag + 1] < 0)[0]
        if len(crossings) == 0:
            return None
        start = max(min_lag, int(crossings[0]))

        segment = r[start : max_lag + 1]
        i = int(np.argmax(segment))
        if segment[i] < self.min_clarity:
            return None

        lag = start + self._refine(segment, i)
        return self.sample_rate / lag if lag > 0 else None

    def release(self) -> None:
        self._window = None


def build_estimators(
    names: Iterable[str],
    sample_rate: int,
    frame_size: int,
    min_frequency: float = 80.0,
    max_frequency: float = 1200.0,
) -> List[FrequencyEstimator]:
    """Create estimators by name.

    Raises:
        ValueError: If a name is not a known algorithm
    """
    estimators: List[FrequencyEstimator] = []
    for name in names:
        if name == AmdfEstimator.name:
            estimators.append(AmdfEstimator(sample_rate, min_frequency, max_frequency))
        elif name == AutocorrelationEstimator.name:
            estimators.append(AutocorrelationEstimator(sample_rate, min_frequency, max_frequency))
        elif name in AUBIO_METHODS:
            # aubio is only needed when one of its methods is selected
            from .aubio_estimators import AubioEstimator

            estimators.append(AubioEstimator(name, sample_rate, frame_size))
        else:
            raise ValueError(f"Unknown frequency estimator: {name}")

    logger.info(f"Frequency estimators: {', '.join(e.name for e in estimators)}")
    return estimators
