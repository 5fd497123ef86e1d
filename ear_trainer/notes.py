"""The note catalog: a fixed, ordered table of the pitches a performer can play.

The catalog index of a note is its distance in semitones from the lowest
entry, so intervals are measured as index differences.
"""

import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np

from .logger import get_logger

logger = get_logger(__name__)

# Maximum distance, as a fraction of the matched note's frequency, for a
# frequency to resolve to that note.
DEFAULT_MATCH_TOLERANCE = 0.05

SHARP_NOTES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]


@dataclass(frozen=True)
class Note:
    """A catalog note."""

    name: str  # Unique within the table (e.g., 'A4', 'F#2/Gb2')
    frequency: float  # Hz
    sample_ref: str  # Sample file name for the output collaborator

    def __str__(self):
        return self.name


# Standard guitar range, low E string to the 17th fret of the high E string
GUITAR_NOTES: Sequence[Note] = (
    Note("E2", 82.41, "e2.mp3"),
    Note("F2", 87.31, "f2.mp3"),
    Note("F#2/Gb2", 92.50, "f-2.mp3"),
    Note("G2", 98.00, "g2.mp3"),
    Note("G#2/Ab2", 103.83, "g-2.mp3"),
    Note("A2", 110.00, "a2.mp3"),
    Note("A#2/Bb2", 116.54, "a-2.mp3"),
    Note("B2", 123.47, "b2.mp3"),
    Note("C3", 130.81, "c3.mp3"),
    Note("C#3/Db3", 138.59, "c-3.mp3"),
    Note("D3", 146.83, "d3.mp3"),
    Note("D#3/Eb3", 155.56, "d-3.mp3"),
    Note("E3", 164.81, "e3.mp3"),
    Note("F3", 174.61, "f3.mp3"),
    Note("F#3/Gb3", 185.00, "f-3.mp3"),
    Note("G3", 196.00, "g3.mp3"),
    Note("G#3/Ab3", 207.65, "g-3.mp3"),
    Note("A3", 220.00, "a3.mp3"),
    Note("A#3/Bb3", 233.08, "a-3.mp3"),
    Note("B3", 246.94, "b3.mp3"),
    Note("C4", 261.63, "c4.mp3"),
    Note("C#4/Db4", 277.18, "c-4.mp3"),
    Note("D4", 293.66, "d4.mp3"),
    Note("D#4/Eb4", 311.13, "d-4.mp3"),
    Note("E4", 329.63, "e4.mp3"),
    Note("F4", 349.23, "f4.mp3"),
    Note("F#4/Gb4", 369.99, "f-4.mp3"),
    Note("G4", 392.00, "g4.mp3"),
    Note("G#4/Ab4", 415.30, "g-4.mp3"),
    Note("A4", 440.00, "a4.mp3"),
    Note("A#4/Bb4", 466.16, "a-4.mp3"),
    Note("B4", 493.88, "b4.mp3"),
    Note("C5", 523.25, "c5.mp3"),
    Note("C#5/Db5", 554.37, "c-5.mp3"),
    Note("D5", 587.33, "d5.mp3"),
    Note("D#5/Eb5", 622.25, "d-5.mp3"),
    Note("E5", 659.26, "e5.mp3"),
    Note("F5", 698.46, "f5.mp3"),
    Note("F#5/Gb5", 739.99, "f-5.mp3"),
    Note("G5", 783.99, "g5.mp3"),
    Note("G#5/Ab5", 830.61, "g-5.mp3"),
    Note("A5", 880.00, "a5.mp3"),
    Note("A#5/Bb5", 932.33, "a-5.mp3"),
    Note("B5", 987.77, "b5.mp3"),
)


class NoteTable:
    """Read-only, ordered catalog of notes with lookup and random selection."""

    def __init__(self, notes: Sequence[Note], rng: Optional[random.Random] = None) -> None:
        if not notes:
            raise ValueError("A note table needs at least one note")
        self._notes: List[Note] = list(notes)
        self._index: Dict[str, int] = {}
        for i, note in enumerate(self._notes):
            if note.name in self._index:
                raise ValueError(f"Duplicate note name in table: {note.name}")
            if note.frequency <= 0:
                raise ValueError(f"Note {note.name} has non-positive frequency")
            self._index[note.name] = i
        self._rng = rng or random.Random()

    def __len__(self) -> int:
        return len(self._notes)

    def __iter__(self):
        return iter(self._notes)

    def __getitem__(self, index: int) -> Note:
        return self._notes[index]

    def __contains__(self, note: object) -> bool:
        return isinstance(note, Note) and self._index.get(note.name) is not None

    def get(self, name: str) -> Note:
        """Return the note with the given exact name.

        Raises:
            KeyError: If no note in the table has that name
        """
        return self._notes[self._index[name]]

    def index_of(self, note: Note) -> Optional[int]:
        """Catalog index of a note, or None if it is not in the table."""
        return self._index.get(note.name)

    def find_closest_note(
        self, frequency: float, tolerance: float = DEFAULT_MATCH_TOLERANCE
    ) -> Optional[Note]:
        """Find the catalog note nearest to a frequency.

        Args:
            frequency: Frequency in Hz
            tolerance: Largest accepted distance as a fraction of the matched
                note's frequency

        Returns:
            The note with the smallest absolute frequency difference, or None
            if the frequency is not positive or lies further than the
            tolerance from that note
        """
        if frequency is None or not np.isfinite(frequency) or frequency <= 0:
            return None

        closest = self._notes[0]
        min_difference = abs(frequency - closest.frequency)
        for note in self._notes[1:]:
            difference = abs(frequency - note.frequency)
            if difference < min_difference:
                closest = note
                min_difference = difference

        if min_difference > closest.frequency * tolerance:
            logger.debug(
                f"No note within {tolerance:.0%} of {frequency:.2f}Hz "
                f"(closest {closest.name}, off by {min_difference:.2f}Hz)"
            )
            return None
        return closest

    def get_random_note(self) -> Note:
        """Pick a note uniformly from the whole table."""
        return self._rng.choice(self._notes)

    def get_random_note_within_interval(self, reference: Note, max_interval: int) -> Note:
        """Pick a note uniformly among those at most ``max_interval`` steps away.

        The range is clamped to the table bounds. A reference note that is not
        in the table yields an unconstrained random note.
        """
        reference_index = self.index_of(reference)
        if reference_index is None:
            logger.warning(f"Reference note {reference.name} not in table, picking freely")
            return self.get_random_note()

        low = max(0, reference_index - max_interval)
        high = min(len(self._notes) - 1, reference_index + max_interval)
        return self._notes[self._rng.randint(low, high)]

    def semitones_between(self, first: Note, second: Note) -> int:
        """Absolute catalog distance between two notes, 0 if either is unknown."""
        first_index = self.index_of(first)
        second_index = self.index_of(second)
        if first_index is None or second_index is None:
            return 0
        return abs(second_index - first_index)


def describe_frequency(freq: float) -> str:
    """Name an arbitrary frequency in Scientific Pitch Notation (e.g., 'A4').

    Unlike ``NoteTable.find_closest_note`` this never fails to produce a name;
    it is meant for logs and live read-outs of unresolved estimates.
    """
    if freq is None or freq <= 0:
        return "---"

    # A4 = 440Hz = MIDI 69
    midi_number = 69 + round(12 * np.log2(freq / 440.0))
    octave = (midi_number // 12) - 1
    return f"{SHARP_NOTES[midi_number % 12]}{octave}"


NOTE_TABLE = NoteTable(GUITAR_NOTES)


def find_closest_note(frequency: float, tolerance: float = DEFAULT_MATCH_TOLERANCE) -> Optional[Note]:
    """Resolve a frequency against the process-wide guitar catalog."""
    return NOTE_TABLE.find_closest_note(frequency, tolerance)
