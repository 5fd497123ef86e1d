import random
import unittest

from ear_trainer.notes import GUITAR_NOTES, NoteTable
from ear_trainer.sequence import SequenceGenerator


class TestSequenceGenerator(unittest.TestCase):
    def setUp(self):
        self.table = NoteTable(GUITAR_NOTES, rng=random.Random(42))
        self.generator = SequenceGenerator(self.table)

    def test_length(self):
        for length in range(1, 6):
            self.assertEqual(len(self.generator.generate(length, 5)), length)

    def test_adjacent_notes_within_interval(self):
        for max_interval in (1, 2, 5, 12):
            for _ in range(30):
                sequence = self.generator.generate(5, max_interval)
                for previous, current in zip(sequence, sequence[1:]):
                    self.assertLessEqual(
                        self.table.semitones_between(previous, current), max_interval
                    )

    def test_notes_come_from_catalog(self):
        for note in self.generator.generate(5, 12):
            self.assertIn(note, self.table)

    def test_sequences_are_fresh(self):
        sequences = {self.generator.generate(3, 12) for _ in range(20)}
        self.assertGreater(len(sequences), 1)

    def test_returns_immutable_sequence(self):
        self.assertIsInstance(self.generator.generate(2, 3), tuple)

    def test_invalid_arguments(self):
        with self.assertRaises(ValueError):
            self.generator.generate(0, 5)
        with self.assertRaises(ValueError):
            self.generator.generate(3, -1)


if __name__ == "__main__":
    unittest.main()
