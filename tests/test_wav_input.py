import os
import shutil
import tempfile
import unittest

import numpy as np
import soundfile as sf

from ear_trainer.audio.wav_input import WavFileInput
from ear_trainer.detection import AmdfEstimator, PitchEstimator
from ear_trainer.errors import AcquisitionFailure

SAMPLE_RATE = 22050


class TestWavFileInput(unittest.TestCase):
    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()
        self.path = os.path.join(self.tmp_dir, "a4.wav")
        t = np.arange(SAMPLE_RATE) / SAMPLE_RATE
        sf.write(self.path, 0.5 * np.sin(2 * np.pi * 440.0 * t), SAMPLE_RATE)

    def tearDown(self):
        shutil.rmtree(self.tmp_dir)

    def test_permission_follows_file_presence(self):
        self.assertTrue(WavFileInput(self.path).request_microphone_permission())
        missing = os.path.join(self.tmp_dir, "missing.wav")
        self.assertFalse(WavFileInput(missing).request_microphone_permission())

    def test_stream_uses_file_rate(self):
        stream = WavFileInput(self.path).open_input_stream(44100, 2048)
        self.assertEqual(stream.sample_rate, SAMPLE_RATE)
        self.assertEqual(len(stream.read_frame()), 2048)

    def test_frames_advance_and_loop(self):
        stream = WavFileInput(self.path, hop_seconds=0.5).open_input_stream(SAMPLE_RATE, 1024)
        stream.read_frame()
        self.assertEqual(stream.position, SAMPLE_RATE // 2)
        stream.read_frame()
        stream.read_frame()
        self.assertEqual(stream.position, SAMPLE_RATE // 2)

    def test_tail_is_zero_padded_without_loop(self):
        stream = WavFileInput(self.path, hop_seconds=0.5, loop=False).open_input_stream(SAMPLE_RATE, 16384)
        stream.read_frame()
        frame = stream.read_frame()
        self.assertEqual(len(frame), 16384)
        self.assertEqual(float(np.abs(frame[-1000:]).max()), 0.0)
        stream.read_frame()
        self.assertEqual(float(np.abs(stream.read_frame()).max()), 0.0)

    def test_closed_stream_raises(self):
        stream = WavFileInput(self.path).open_input_stream(SAMPLE_RATE, 1024)
        stream.close()
        with self.assertRaises(AcquisitionFailure):
            stream.read_frame()

    def test_unreadable_file(self):
        bogus = os.path.join(self.tmp_dir, "bogus.wav")
        with open(bogus, "w") as f:
            f.write("not audio")
        with self.assertRaises(AcquisitionFailure):
            WavFileInput(bogus).open_input_stream(SAMPLE_RATE, 1024)

    def test_recording_estimates_pitch(self):
        stream = WavFileInput(self.path).open_input_stream(SAMPLE_RATE, 2048)
        pitch = PitchEstimator([AmdfEstimator(stream.sample_rate)])
        reading = pitch.estimate(stream.read_frame())
        self.assertAlmostEqual(reading.frequency, 440.0, delta=4.4)


if __name__ == "__main__":
    unittest.main()
