"""Microphone input through sounddevice."""

from __future__ import annotations
import threading
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import sounddevice as sd

from ..core.interfaces import IInputDevice, IInputStream
from ..errors import AcquisitionFailure
from ..logger import get_logger

logger = get_logger(__name__)


class MicrophoneStream(IInputStream):
    """Keeps the most recent ``frame_size`` samples of a live input stream.

    The PortAudio callback writes into a rolling buffer; ``read_frame``
    returns a copy of it, like reading an analyser's time-domain data.
    """

    BLOCK_SIZE = 1024

    def __init__(
        self,
        device_id: Optional[int],
        sample_rate: int,
        frame_size: int,
        channels: int = 1,
    ) -> None:
        self._sample_rate = sample_rate
        self._frame_size = frame_size
        self._buffer = np.zeros(frame_size, dtype=np.float32)
        self._lock = threading.Lock()
        self._stream = sd.InputStream(
            device=device_id,
            channels=channels,
            samplerate=sample_rate,
            blocksize=min(self.BLOCK_SIZE, frame_size),
            dtype="float32",
            callback=self._audio_callback,
        )
        self._stream.start()

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    def _audio_callback(self, indata: np.ndarray, _frames: int, _time_info, status) -> None:
        """Called on the PortAudio thread; must stay short."""
        if status:
            logger.warning(f"Audio callback status: {status}")

        # First channel only
        mono = indata[:, 0] if indata.ndim > 1 else indata
        n = len(mono)
        if n == 0:
            return
        with self._lock:
            if n >= self._frame_size:
                self._buffer[:] = mono[-self._frame_size :]
            else:
                self._buffer[:-n] = self._buffer[n:]
                self._buffer[-n:] = mono

    def read_frame(self) -> np.ndarray:
        with self._lock:
            return self._buffer.copy()

    def close(self) -> None:
        if self._stream is None:
            return
        try:
            self._stream.stop()
            self._stream.close()
            logger.info("Audio input stopped")
        except sd.PortAudioError as e:
            logger.error(f"Error stopping audio input: {e}")
        finally:
            self._stream = None


class SoundDeviceInput(IInputDevice):
    """Input collaborator for a local audio input device."""

    # Tried in order after the requested rate
    SAMPLE_RATES = [44100, 48000, 22050, 16000]

    def __init__(self, device_id: Optional[int] = None, channels: int = 1) -> None:
        """Initialize the input device.

        Args:
            device_id: Audio input device ID, or None for the system default
            channels: Number of channels to capture; only the first is analysed
        """
        self._device_id = device_id
        self._channels = channels

    def request_microphone_permission(self) -> bool:
        """Desktop hosts have no permission prompt: probe that the device accepts input."""
        try:
            sd.check_input_settings(device=self._device_id, channels=self._channels)
            return True
        except (sd.PortAudioError, ValueError) as e:
            logger.warning(f"Audio input not available: {e}")
            return False

    def open_input_stream(self, sample_rate: int, frame_size: int) -> MicrophoneStream:
        rates = [sample_rate] + [r for r in self.SAMPLE_RATES if r != sample_rate]

        for rate in rates:
            try:
                logger.info(f"Trying to start audio input with sample rate: {rate} Hz")
                return MicrophoneStream(self._device_id, rate, frame_size, self._channels)
            except (sd.PortAudioError, ValueError) as e:
                logger.warning(f"Failed to start audio input with sample rate {rate} Hz: {e}")

        raise AcquisitionFailure("Could not start audio input with any sample rate")


def list_input_devices() -> List[Tuple[int, Dict[str, Any]]]:
    """Return ``(device_id, info)`` for every device with input channels."""
    devices = sd.query_devices()
    return [
        (device_id, device)
        for device_id, device in enumerate(devices)
        if device["max_input_channels"] > 0
    ]
