"""Training orchestrator: demonstrates sequences and follows the performer."""

from __future__ import annotations
import queue
import time
from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import Callable, List, Optional, Tuple

from .core.events import TrainingEvents, TrainingEventType
from .core.interfaces import IDetectionSession, INotePlayer
from .logger import get_logger
from .notes import NOTE_TABLE, Note, NoteTable
from .sequence import Sequence, SequenceGenerator
from .settings import TrainingSettings

logger = get_logger(__name__)


class TrainingState(Enum):
    IDLE = auto()
    SEQUENCE_GENERATED = auto()
    DEMONSTRATING = auto()
    AWAITING_INPUT = auto()
    TRIAL_COMPLETE = auto()
    FINISHED = auto()


@dataclass
class TrainingProgress:
    """Where the performer is within the current sequence."""

    current_sequence: int = 1
    notes_played: List[int] = field(default_factory=list)  # Matched positions, in order
    correct_repetitions: int = 0

    @property
    def position(self) -> int:
        """Index of the next expected note."""
        return len(self.notes_played)


class TrainingOrchestrator:
    """Drives one training run.

    The detection controller pushes ``(note, volume)`` pairs through
    ``detection_callback``; the host loop calls ``process_events`` to consume
    them on its own thread. Only an exact match of the next expected note
    advances; wrong notes are simply not counted.
    """

    DEMONSTRATION_REPEATS = 3
    INTER_NOTE_DELAY_MS = 1000
    REPEAT_GAP_SECONDS = 1.5
    SUCCESS_FIGURE: Tuple[str, ...] = ("C4", "E4", "G4", "C5")
    SUCCESS_NOTE_GAP_SECONDS = 0.15
    SUCCESS_TAIL_SECONDS = 0.6
    SETTLING_DELAY_SECONDS = 2.0

    def __init__(
        self,
        detector: IDetectionSession,
        player: INotePlayer,
        settings: Optional[TrainingSettings] = None,
        sequence_generator: Optional[SequenceGenerator] = None,
        note_table: Optional[NoteTable] = None,
        sleep: Callable[[float], None] = time.sleep,
        events: Optional[TrainingEvents] = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            detector: Detection session, paused while the trainer itself plays
            player: Output collaborator
            settings: Training settings, defaults to ``TrainingSettings()``
            sequence_generator: Source of new sequences
            note_table: Catalog holding the success figure notes
            sleep: Blocking delay used between played notes
            events: Event hooks for a UI
        """
        self._detector = detector
        self._player = player
        self.settings = settings or TrainingSettings()
        self._note_table = note_table or NOTE_TABLE
        self._generator = sequence_generator or SequenceGenerator(self._note_table)
        self._sleep = sleep
        self.events = events or TrainingEvents()

        self._state = TrainingState.IDLE
        self._sequence: Sequence = ()
        self._progress = TrainingProgress()
        self._event_queue: "queue.Queue[Tuple[Optional[Note], float]]" = queue.Queue()

        self.current_volume = 0.0
        self.last_detected_note: Optional[Note] = None
        self._held_note: Optional[str] = None

    # Read-outs

    @property
    def state(self) -> TrainingState:
        return self._state

    @property
    def current_sequence(self) -> Sequence:
        return self._sequence

    @property
    def progress(self) -> TrainingProgress:
        return replace(self._progress, notes_played=list(self._progress.notes_played))

    @property
    def finished(self) -> bool:
        return self._state is TrainingState.FINISHED

    def _set_state(self, state: TrainingState) -> None:
        old = self._state
        self._state = state
        logger.info(f"Training state: {old.name} -> {state.name}")
        self.events.emit(TrainingEventType.STATE_CHANGED, old, state)

    # Run control

    def start(self) -> None:
        """Start detection and present the first sequence."""
        if self._state is not TrainingState.IDLE:
            logger.warning(f"Training already started (state {self._state.name})")
            return

        self._detector.start(self.detection_callback)
        self._progress = TrainingProgress()
        self._begin_sequence()

    def replay(self) -> None:
        """Demonstrate the current sequence again without touching progress."""
        if self._state is not TrainingState.AWAITING_INPUT:
            logger.debug(f"Cannot replay in state {self._state.name}")
            return
        self._demonstrate()
        self._set_state(TrainingState.AWAITING_INPUT)

    # Detection events

    def detection_callback(self, note: Optional[Note], volume: float) -> None:
        """Sink for the detection controller; only queues the event."""
        self._event_queue.put((note, volume))

    def process_events(self) -> None:
        """Process queued detection events. Call from the host loop."""
        while True:
            try:
                note, volume = self._event_queue.get_nowait()
            except queue.Empty:
                return

            self.current_volume = volume
            if note is None:
                self._held_note = None
                continue
            self.last_detected_note = note

            # A held note is reported on every tick but counts once
            if note.name == self._held_note:
                continue
            self._held_note = note.name
            if self._state is TrainingState.AWAITING_INPUT:
                self._handle_note(note)

    def _handle_note(self, note: Note) -> None:
        position = self._progress.position
        if position >= len(self._sequence):
            return

        expected = self._sequence[position]
        if note.name != expected.name:
            logger.debug(f"Heard {note.name}, waiting for {expected.name} at position {position}")
            return

        self._progress.notes_played.append(position)
        logger.info(f"Matched {note.name} ({position + 1}/{len(self._sequence)})")
        self.events.emit(TrainingEventType.NOTE_MATCHED, note, position)

        if self._progress.position == len(self._sequence):
            self._complete_repetition()

    def _complete_repetition(self) -> None:
        self._progress.correct_repetitions += 1
        repetitions = self._progress.correct_repetitions
        logger.info(f"Sequence played correctly ({repetitions}/{self.settings.repetitions_required})")
        self.events.emit(TrainingEventType.REPETITION_COMPLETED, repetitions)

        if repetitions >= self.settings.repetitions_required:
            self._complete_trial()
        else:
            self._progress.notes_played = []

    def _complete_trial(self) -> None:
        self._set_state(TrainingState.TRIAL_COMPLETE)
        self.events.emit(TrainingEventType.TRIAL_COMPLETED, self._progress.current_sequence)
        self._play_success_figure()

        total = self.settings.total_sequences
        if total > 0 and self._progress.current_sequence >= total:
            self._finish()
            return

        self._progress.current_sequence += 1
        self._sleep(self.SETTLING_DELAY_SECONDS)
        self._begin_sequence()

    def _finish(self) -> None:
        self._set_state(TrainingState.FINISHED)
        logger.info(f"Training complete: {self._progress.current_sequence} sequence(s)")
        self.events.emit(TrainingEventType.FINISHED, self._progress.current_sequence)

    # Sequences and playback

    def _begin_sequence(self) -> None:
        self._sequence = self._generator.generate(
            self.settings.notes_per_turn, self.settings.max_interval
        )
        self._progress.notes_played = []
        self._progress.correct_repetitions = 0
        self._set_state(TrainingState.SEQUENCE_GENERATED)
        logger.info(
            f"Sequence {self._progress.current_sequence}: "
            f"{', '.join(n.name for n in self._sequence)}"
        )

        self._demonstrate()
        self._set_state(TrainingState.AWAITING_INPUT)

    def _demonstrate(self) -> None:
        self._set_state(TrainingState.DEMONSTRATING)
        # Anything heard before the demonstration is stale
        self._drain_events()
        self._held_note = None
        with self._detector.suppressed():
            for i in range(self.DEMONSTRATION_REPEATS):
                try:
                    self._player.play_sequence(self._sequence, self.INTER_NOTE_DELAY_MS)
                except Exception as e:
                    logger.error(f"Error playing sequence: {e}")
                if i < self.DEMONSTRATION_REPEATS - 1:
                    self._sleep(self.REPEAT_GAP_SECONDS)

    def _play_success_figure(self) -> None:
        try:
            notes = [self._note_table.get(name) for name in self.SUCCESS_FIGURE]
        except KeyError as e:
            logger.error(f"Success figure note missing from catalog: {e}")
            return

        with self._detector.suppressed():
            for i, note in enumerate(notes):
                try:
                    self._player.play_note(note)
                except Exception as e:
                    logger.error(f"Error playing success sound: {e}")
                last = i == len(notes) - 1
                self._sleep(self.SUCCESS_TAIL_SECONDS if last else self.SUCCESS_NOTE_GAP_SECONDS)

    def _drain_events(self) -> None:
        while True:
            try:
                self._event_queue.get_nowait()
            except queue.Empty:
                return
