import threading
import unittest

import numpy as np
import pytest

try:
    from ear_trainer.audio.microphone import MicrophoneStream
except (ImportError, OSError) as e:
    # sounddevice needs the PortAudio library at import time
    pytest.skip(f"sounddevice unavailable: {e}", allow_module_level=True)


def make_stream(frame_size=8):
    # Bypass __init__, which opens a real device
    stream = MicrophoneStream.__new__(MicrophoneStream)
    stream._frame_size = frame_size
    stream._buffer = np.zeros(frame_size, dtype=np.float32)
    stream._lock = threading.Lock()
    return stream


def block(*samples):
    return np.array(samples, dtype=np.float32).reshape(-1, 1)


class TestMicrophoneBuffer(unittest.TestCase):
    def test_short_blocks_roll_in_at_the_end(self):
        stream = make_stream()
        stream._audio_callback(block(1, 2, 3), 3, None, None)
        stream._audio_callback(block(4, 5), 2, None, None)
        self.assertEqual(stream.read_frame().tolist(), [0, 0, 0, 1, 2, 3, 4, 5])

    def test_long_block_keeps_latest_samples(self):
        stream = make_stream(frame_size=4)
        stream._audio_callback(block(*range(10)), 10, None, None)
        self.assertEqual(stream.read_frame().tolist(), [6, 7, 8, 9])

    def test_empty_block_is_ignored(self):
        stream = make_stream()
        stream._audio_callback(block(1, 2), 2, None, None)
        stream._audio_callback(np.zeros((0, 1), dtype=np.float32), 0, None, None)
        self.assertEqual(stream.read_frame().tolist(), [0, 0, 0, 0, 0, 0, 1, 2])

    def test_read_frame_returns_copy(self):
        stream = make_stream()
        stream.read_frame()[:] = 9
        self.assertEqual(float(stream.read_frame().max()), 0.0)


if __name__ == "__main__":
    unittest.main()
