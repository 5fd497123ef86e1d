import unittest

import numpy as np
import pytest

from ear_trainer.detection.estimators import (
    AmdfEstimator,
    AutocorrelationEstimator,
    FrequencyEstimator,
    build_estimators,
)
from ear_trainer.detection.pitch_estimator import PitchEstimator, rms
from ear_trainer.errors import AlgorithmFailure

SAMPLE_RATE = 44100
FRAME_SIZE = 4096


def sine(frequency, amplitude=0.5, size=FRAME_SIZE, sample_rate=SAMPLE_RATE):
    t = np.arange(size) / sample_rate
    return (amplitude * np.sin(2 * np.pi * frequency * t)).astype(np.float32)


class FixedEstimator(FrequencyEstimator):
    name = "fixed"

    def __init__(self, frequency):
        self.frequency = frequency
        self.calls = 0
        self.released = False

    def estimate(self, frame):
        self.calls += 1
        return self.frequency

    def release(self):
        self.released = True


class FailingEstimator(FrequencyEstimator):
    name = "failing"

    def estimate(self, frame):
        raise AlgorithmFailure(self.name, "boom")


class TestRms(unittest.TestCase):
    def test_silence(self):
        self.assertEqual(rms(np.zeros(512)), 0.0)

    def test_empty(self):
        self.assertEqual(rms(np.array([])), 0.0)

    def test_sine(self):
        self.assertAlmostEqual(rms(sine(440.0, amplitude=1.0)), 1 / np.sqrt(2), places=2)


class TestPitchEstimator(unittest.TestCase):
    def test_quiet_frame_is_gated(self):
        estimator = FixedEstimator(440.0)
        pitch = PitchEstimator([estimator], volume_threshold=0.01)

        reading = pitch.estimate(np.zeros(FRAME_SIZE, dtype=np.float32))

        self.assertTrue(reading.gated)
        self.assertIsNone(reading.frequency)
        self.assertEqual(estimator.calls, 0)

    def test_volume_equal_to_threshold_opens_gate(self):
        pitch = PitchEstimator([], volume_threshold=0.05)
        self.assertTrue(pitch.is_open(0.05))
        self.assertFalse(pitch.is_open(0.0499))

    def test_estimates_are_averaged(self):
        pitch = PitchEstimator([FixedEstimator(438.0), FixedEstimator(442.0)])
        reading = pitch.estimate(sine(440.0))

        self.assertFalse(reading.gated)
        self.assertAlmostEqual(reading.frequency, 440.0)
        self.assertEqual(reading.estimates, [438.0, 442.0])

    def test_out_of_range_estimates_are_discarded(self):
        pitch = PitchEstimator(
            [FixedEstimator(440.0), FixedEstimator(40.0), FixedEstimator(2000.0)],
            min_frequency=80.0,
            max_frequency=1200.0,
        )
        reading = pitch.estimate(sine(440.0))
        self.assertEqual(reading.estimates, [440.0])
        self.assertAlmostEqual(reading.frequency, 440.0)

    def test_range_bounds_are_exclusive(self):
        pitch = PitchEstimator([FixedEstimator(80.0), FixedEstimator(1200.0)])
        reading = pitch.estimate(sine(440.0))
        self.assertFalse(reading.gated)
        self.assertIsNone(reading.frequency)

    def test_failing_algorithm_does_not_poison_others(self):
        pitch = PitchEstimator([FailingEstimator(), FixedEstimator(330.0)])
        reading = pitch.estimate(sine(330.0))
        self.assertAlmostEqual(reading.frequency, 330.0)

    def test_no_survivors(self):
        pitch = PitchEstimator([FailingEstimator(), FixedEstimator(None)])
        reading = pitch.estimate(sine(330.0))
        self.assertFalse(reading.gated)
        self.assertIsNone(reading.frequency)

    def test_threshold_can_change_between_frames(self):
        pitch = PitchEstimator([FixedEstimator(440.0)], volume_threshold=0.01)
        frame = sine(440.0, amplitude=0.03)  # RMS about 0.021
        self.assertFalse(pitch.estimate(frame).gated)
        pitch.volume_threshold = 0.05
        self.assertTrue(pitch.estimate(frame).gated)

    def test_release_reaches_every_estimator(self):
        estimators = [FixedEstimator(440.0), FixedEstimator(441.0)]
        PitchEstimator(estimators).release()
        self.assertTrue(all(e.released for e in estimators))


class TestNumpyEstimators(unittest.TestCase):
    def test_amdf_finds_sine_frequency(self):
        estimator = AmdfEstimator(SAMPLE_RATE)
        for frequency in (220.0, 440.0):
            estimate = estimator.estimate(sine(frequency))
            self.assertIsNotNone(estimate)
            self.assertAlmostEqual(estimate, frequency, delta=frequency * 0.01)

    def test_acf_finds_sine_frequency(self):
        estimator = AutocorrelationEstimator(SAMPLE_RATE)
        for frequency in (196.0, 440.0):
            estimate = estimator.estimate(sine(frequency))
            self.assertIsNotNone(estimate)
            self.assertAlmostEqual(estimate, frequency, delta=frequency * 0.01)

    def test_acf_finds_low_guitar_notes(self):
        estimator = AutocorrelationEstimator(SAMPLE_RATE)
        for frequency in (82.41, 110.0):
            estimate = estimator.estimate(sine(frequency))
            self.assertIsNotNone(estimate)
            self.assertAlmostEqual(estimate, frequency, delta=frequency * 0.01)

    def test_acf_rejects_noise(self):
        rng = np.random.default_rng(7)
        noise = rng.normal(0.0, 0.2, FRAME_SIZE).astype(np.float32)
        self.assertIsNone(AutocorrelationEstimator(SAMPLE_RATE, min_clarity=0.5).estimate(noise))

    def test_short_frame_is_an_algorithm_failure(self):
        with self.assertRaises(AlgorithmFailure):
            AmdfEstimator(SAMPLE_RATE).estimate(np.ones(64))

    def test_acf_release_drops_window(self):
        estimator = AutocorrelationEstimator(SAMPLE_RATE)
        estimator.estimate(sine(440.0))
        estimator.release()
        self.assertIsNone(estimator._window)
        self.assertIsNotNone(estimator.estimate(sine(440.0)))

    def test_end_to_end_with_numpy_estimators(self):
        pitch = PitchEstimator(build_estimators(["amdf", "acf"], SAMPLE_RATE, FRAME_SIZE))
        reading = pitch.estimate(sine(329.63))
        self.assertAlmostEqual(reading.frequency, 329.63, delta=3.3)


class TestBuildEstimators(unittest.TestCase):
    def test_numpy_estimators_by_name(self):
        estimators = build_estimators(["amdf", "acf"], SAMPLE_RATE, FRAME_SIZE)
        self.assertEqual([e.name for e in estimators], ["amdf", "acf"])

    def test_unknown_name(self):
        with self.assertRaises(ValueError):
            build_estimators(["crepe"], SAMPLE_RATE, FRAME_SIZE)


def test_aubio_yin_finds_sine_frequency():
    pytest.importorskip("aubio")
    from ear_trainer.detection.aubio_estimators import AubioEstimator

    estimator = AubioEstimator("yin", SAMPLE_RATE, FRAME_SIZE)
    estimate = estimator.estimate(sine(440.0))
    assert estimate == pytest.approx(440.0, rel=0.01)
    estimator.release()


if __name__ == "__main__":
    unittest.main()
