"""Acquisition strategies: where the detection cadence gets its readings from.

``FullSpectralAcquisition`` analyses real frames from an input stream.
``DegradedAcquisition`` simulates a performer when the environment cannot
provide audio input (no capability, permission refused, stream failure).
"""

from __future__ import annotations
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import ClassVar, Optional, Sequence

from ..core.interfaces import IInputDevice, IInputStream
from ..errors import AcquisitionFailure
from ..logger import get_logger
from .pitch_estimator import PitchEstimator, PitchReading

logger = get_logger(__name__)


@dataclass(frozen=True)
class EnvironmentCapabilities:
    """What the host environment can do, probed once by the host."""

    spectral_analysis: bool = True


class AcquisitionStrategy(ABC):
    """Interface for the source of per-tick pitch readings."""

    name: ClassVar[str] = "acquisition"

    def __init__(self, interval: float) -> None:
        if interval <= 0:
            raise ValueError("Cadence interval must be positive")
        self.interval = interval

    @property
    @abstractmethod
    def sample_rate(self) -> int:
        pass

    @abstractmethod
    def open(self) -> None:
        """Acquire resources. Opening an already open strategy is a no-op.

        Raises:
            AcquisitionFailure: If the input cannot be opened
        """
        pass

    @abstractmethod
    def read(self, estimator: PitchEstimator) -> PitchReading:
        """Produce the reading for one cadence tick."""
        pass

    def close(self) -> None:
        """Release resources. Closing twice is harmless."""
        pass


class FullSpectralAcquisition(AcquisitionStrategy):
    """Reads the latest frame from an input stream and runs the estimators on it."""

    name = "spectral"

    def __init__(
        self,
        input_device: IInputDevice,
        sample_rate: int = 44100,
        frame_size: int = 4096,
        interval: float = 0.05,
    ) -> None:
        super().__init__(interval)
        self._input_device = input_device
        self._requested_rate = sample_rate
        self._frame_size = frame_size
        self._stream: Optional[IInputStream] = None

    @property
    def sample_rate(self) -> int:
        if self._stream is not None:
            return self._stream.sample_rate
        return self._requested_rate

    @property
    def frame_size(self) -> int:
        return self._frame_size

    def open(self) -> None:
        if self._stream is not None:
            return
        stream = self._input_device.open_input_stream(self._requested_rate, self._frame_size)
        if stream is None:
            raise AcquisitionFailure("Input device returned no stream")
        self._stream = stream
        logger.info(
            f"Input stream open: {self._stream.sample_rate}Hz, {self._frame_size}-sample frames"
        )

    def read(self, estimator: PitchEstimator) -> PitchReading:
        if self._stream is None:
            raise AcquisitionFailure("Input stream is not open")
        return estimator.estimate(self._stream.read_frame())

    def close(self) -> None:
        if self._stream is None:
            return
        try:
            self._stream.close()
        except Exception as e:
            logger.error(f"Error closing input stream: {e}")
        finally:
            self._stream = None


class DegradedAcquisition(AcquisitionStrategy):
    """Simulated readings: random volume and jittered catalog pitches.

    Readings go through the same volume gate, window and stability filter as
    real ones, so everything downstream behaves as with a microphone.
    """

    name = "simulated"

    # A3 .. A4, pitches a beginner is likely to play
    BASE_FREQUENCIES: ClassVar[Sequence[float]] = (
        220.0, 246.94, 261.63, 293.66, 329.63, 349.23, 392.0, 415.30, 440.0,
    )

    def __init__(
        self,
        interval: float = 0.15,
        rng: Optional[random.Random] = None,
        max_volume: float = 0.1,
        jitter_hz: float = 2.0,
        sample_rate: int = 44100,
        base_frequencies: Optional[Sequence[float]] = None,
    ) -> None:
        super().__init__(interval)
        self._rng = rng or random.Random()
        self._max_volume = max_volume
        self._jitter_hz = jitter_hz
        self._sample_rate = sample_rate
        self._base_frequencies = tuple(base_frequencies or self.BASE_FREQUENCIES)

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    def open(self) -> None:
        logger.info("Using simulated pitch detection")

    def read(self, estimator: PitchEstimator) -> PitchReading:
        volume = self._rng.random() * self._max_volume
        if not estimator.is_open(volume):
            return estimator.reading(volume, [])
        base = self._rng.choice(self._base_frequencies)
        frequency = base + self._rng.uniform(-self._jitter_hz, self._jitter_hz)
        return estimator.reading(volume, [frequency])
