"""Defines the collaborator interfaces of the ear trainer core."""

from __future__ import annotations
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Callable, Iterator, Optional, Sequence

import numpy as np

from ..notes import Note

# callback(note, volume): note is None when nothing is locked
DetectionCallback = Callable[[Optional[Note], float], None]


class IInputStream(ABC):
    """An open audio input stream owned by the detection controller."""

    @property
    @abstractmethod
    def sample_rate(self) -> int:
        """Sample rate of the delivered frames in Hz."""
        pass

    @abstractmethod
    def read_frame(self) -> np.ndarray:
        """Return the most recent frame of mono float samples in [-1, 1]."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the underlying device or file."""
        pass


class IInputDevice(ABC):
    """Microphone permission and stream factory."""

    @abstractmethod
    def request_microphone_permission(self) -> bool:
        """Return True if audio input may be used."""
        pass

    @abstractmethod
    def open_input_stream(self, sample_rate: int, frame_size: int) -> IInputStream:
        """Open an input stream.

        Raises:
            AcquisitionFailure: If the stream cannot be opened
        """
        pass


class INotePlayer(ABC):
    """Output collaborator that sounds catalog notes."""

    @abstractmethod
    def play_note(self, note: Note) -> None:
        """Play one note and return once it has finished.

        Raises:
            PlaybackFailure: If the note cannot be played
        """
        pass

    @abstractmethod
    def play_sequence(self, notes: Sequence[Note], inter_note_delay_ms: int = 1000) -> None:
        """Play notes one after another with a pause between them."""
        pass

    @abstractmethod
    def set_instrument(self, instrument: str) -> None:
        """Switch the timbre used for subsequent notes."""
        pass

    def close(self) -> None:
        """Release the output device."""
        pass


class IDetectionSession(ABC):
    """What the training orchestrator needs from the detection controller."""

    @abstractmethod
    def start(self, callback: DetectionCallback) -> bool:
        pass

    @abstractmethod
    def pause(self) -> None:
        pass

    @abstractmethod
    def resume(self) -> None:
        pass

    @abstractmethod
    def stop(self) -> None:
        pass

    @abstractmethod
    def is_listening(self) -> bool:
        pass

    @contextmanager
    def suppressed(self) -> Iterator[None]:
        """Pause detection for the duration of a block if it is listening.

        Detection is resumed on every exit path, but only if this block was
        the one that paused it.
        """
        paused_here = self.is_listening()
        if paused_here:
            self.pause()
        try:
            yield
        finally:
            if paused_here:
                self.resume()
