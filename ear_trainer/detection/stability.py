"""Rolling-window stabilisation of raw frequency estimates."""

from __future__ import annotations
from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Optional

from ..logger import get_logger
from ..notes import DEFAULT_MATCH_TOLERANCE, NOTE_TABLE, Note, NoteTable, describe_frequency
from .pitch_estimator import PitchReading

logger = get_logger(__name__)


@dataclass(frozen=True)
class DetectionResult:
    """What one cadence tick reports to the session callback."""

    note: Optional[Note]
    volume: float
    frequency: Optional[float] = None  # Window mean when stable


class DetectionWindow:
    """Bounded FIFO of raw frequency estimates; the oldest is evicted first."""

    def __init__(self, history_size: int = 5) -> None:
        if history_size < 1:
            raise ValueError("history_size must be at least 1")
        self._samples: Deque[float] = deque(maxlen=history_size)

    @property
    def history_size(self) -> int:
        return self._samples.maxlen

    def push(self, frequency: float) -> None:
        self._samples.append(frequency)

    def clear(self) -> None:
        self._samples.clear()

    def values(self) -> List[float]:
        return list(self._samples)

    def __len__(self) -> int:
        return len(self._samples)

    def mean(self) -> float:
        if not self._samples:
            return 0.0
        return sum(self._samples) / len(self._samples)

    def variance(self) -> float:
        """Population variance; 0.0 with fewer than two samples."""
        if len(self._samples) < 2:
            return 0.0
        mean = self.mean()
        return sum((f - mean) ** 2 for f in self._samples) / len(self._samples)


class StabilityFilter:
    """
    Turns per-frame readings into locked notes once recent estimates agree.

    A note is locked when the window holds at least ``min_stable_count``
    estimates whose variance is below ``stability_bound``; the window mean
    is then resolved through the note table. Volume is reported on every
    update so callers can drive a live meter.
    """

    def __init__(
        self,
        note_table: Optional[NoteTable] = None,
        history_size: int = 5,
        min_stable_count: int = 3,
        stability_bound: float = 5.0,
        match_tolerance: float = DEFAULT_MATCH_TOLERANCE,
    ) -> None:
        self._note_table = note_table or NOTE_TABLE
        self._window = DetectionWindow(history_size)
        self.min_stable_count = min_stable_count
        self.stability_bound = stability_bound
        self.match_tolerance = match_tolerance
        self._last_locked: Optional[str] = None

    @property
    def window(self) -> DetectionWindow:
        return self._window

    def reset(self) -> None:
        """Forget all history, as after silence or a stop."""
        self._window.clear()
        self._last_locked = None

    def update(self, reading: PitchReading) -> DetectionResult:
        """Fold one reading into the window and evaluate it."""
        if reading.gated:
            # Stale history must not leak across silence
            if len(self._window):
                logger.debug("Volume under threshold, clearing detection window")
            self.reset()
            return DetectionResult(None, reading.volume)

        if reading.frequency is None:
            return DetectionResult(None, reading.volume)

        self._window.push(reading.frequency)
        return self.evaluate(reading.volume)

    def is_stable(self) -> bool:
        return (
            len(self._window) >= self.min_stable_count
            and self._window.variance() < self.stability_bound
        )

    def evaluate(self, volume: float) -> DetectionResult:
        """Evaluate the current window without adding anything to it."""
        if not self.is_stable():
            return DetectionResult(None, volume)

        mean = self._window.mean()
        note = self._note_table.find_closest_note(mean, self.match_tolerance)
        if note is None:
            logger.debug(f"Stable at {mean:.2f}Hz (~{describe_frequency(mean)}) but no catalog match")
            return DetectionResult(None, volume)

        if note.name != self._last_locked:
            logger.debug(
                f"Locked {note.name} ({mean:.2f}Hz, variance {self._window.variance():.2f}, "
                f"RMS {volume:.3f})"
            )
            self._last_locked = note.name
        return DetectionResult(note, volume, mean)
