"""Replays a WAV file as if it were a live microphone."""

from __future__ import annotations
import os

import numpy as np
import soundfile as sf

from ..core.interfaces import IInputDevice, IInputStream
from ..errors import AcquisitionFailure
from ..logger import get_logger

logger = get_logger(__name__)


class WavFileStream(IInputStream):
    """Serves consecutive frames of a decoded file, one hop per read."""

    def __init__(
        self,
        samples: np.ndarray,
        sample_rate: int,
        frame_size: int,
        hop_size: int,
        loop: bool = True,
    ) -> None:
        self._samples = samples
        self._sample_rate = sample_rate
        self._frame_size = frame_size
        self._hop_size = max(1, hop_size)
        self._loop = loop
        self._position = 0

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def position(self) -> int:
        return self._position

    def read_frame(self) -> np.ndarray:
        if self._samples is None:
            raise AcquisitionFailure("Stream is closed")

        total = len(self._samples)
        if self._position >= total:
            if not self._loop:
                return np.zeros(self._frame_size, dtype=np.float32)
            self._position = 0

        frame = self._samples[self._position : self._position + self._frame_size]
        if len(frame) < self._frame_size:
            frame = np.concatenate(
                (frame, np.zeros(self._frame_size - len(frame), dtype=np.float32))
            )
        self._position += self._hop_size
        return frame

    def close(self) -> None:
        self._samples = None


class WavFileInput(IInputDevice):
    """Input collaborator backed by an audio file instead of a device."""

    def __init__(
        self,
        file_path: str,
        hop_seconds: float = 0.05,
        loop: bool = True,
    ) -> None:
        self._file_path = file_path
        self._hop_seconds = hop_seconds
        self._loop = loop

    def request_microphone_permission(self) -> bool:
        return os.path.isfile(self._file_path)

    def open_input_stream(self, sample_rate: int, frame_size: int) -> WavFileStream:
        try:
            data, file_rate = sf.read(self._file_path, dtype="float32", always_2d=True)
        except (RuntimeError, OSError) as e:
            raise AcquisitionFailure(f"Cannot read {self._file_path}: {e}") from e

        samples = data[:, 0]
        if file_rate != sample_rate:
            logger.info(f"{self._file_path} is {file_rate}Hz, requested {sample_rate}Hz; using the file rate")

        logger.info(f"Replaying {self._file_path} ({len(samples) / file_rate:.1f}s)")
        return WavFileStream(
            samples,
            file_rate,
            frame_size,
            hop_size=int(file_rate * self._hop_seconds),
            loop=self._loop,
        )
