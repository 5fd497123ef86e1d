"""Random note sequences for a training trial."""

from typing import List, Optional, Tuple

from .logger import get_logger
from .notes import NOTE_TABLE, Note, NoteTable

logger = get_logger(__name__)

Sequence = Tuple[Note, ...]


class SequenceGenerator:
    """Builds sequences whose adjacent notes stay within an interval bound."""

    def __init__(self, note_table: Optional[NoteTable] = None) -> None:
        self.note_table = note_table or NOTE_TABLE

    def generate(self, length: int, max_interval: int) -> Sequence:
        """Generate a fresh sequence.

        The first note is drawn from the whole table; every following note is
        drawn within ``max_interval`` catalog steps of its predecessor.
        Repeated notes are allowed.

        Args:
            length: Number of notes, at least 1
            max_interval: Largest allowed catalog distance between neighbours

        Returns:
            A tuple of exactly ``length`` notes
        """
        if length < 1:
            raise ValueError(f"Sequence length must be at least 1, got {length}")
        if max_interval < 0:
            raise ValueError(f"max_interval must not be negative, got {max_interval}")

        notes: List[Note] = [self.note_table.get_random_note()]
        while len(notes) < length:
            notes.append(
                self.note_table.get_random_note_within_interval(notes[-1], max_interval)
            )

        logger.debug("Generated sequence: %s", ", ".join(n.name for n in notes))
        return tuple(notes)
