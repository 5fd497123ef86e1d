"""Note playback through pygame's mixer."""

from __future__ import annotations
import time
from pathlib import Path
from typing import Callable, Dict, Optional, Sequence

import numpy as np
import pygame

from ..core.interfaces import INotePlayer
from ..errors import PlaybackFailure
from ..logger import get_logger
from ..notes import Note

logger = get_logger(__name__)


class NotePlayer(INotePlayer):
    """Base player: sequential sequence playback on top of ``play_note``."""

    def __init__(self, sleep: Callable[[float], None] = time.sleep) -> None:
        self._sleep = sleep

    def play_sequence(self, notes: Sequence[Note], inter_note_delay_ms: int = 1000) -> None:
        """Play notes in order; a note that fails is logged and skipped."""
        for i, note in enumerate(notes):
            try:
                self.play_note(note)
            except Exception as e:
                logger.error(f"Failed to play note {note.name}: {e}")
            if i < len(notes) - 1:
                self._sleep(inter_note_delay_ms / 1000.0)

    def set_instrument(self, instrument: str) -> None:
        pass


class PygameNotePlayer(NotePlayer):
    """Plays note samples from ``<sounds_dir>/<instrument>/<sample_ref>``.

    A missing sample is replaced by a synthesized tone at the note frequency,
    so the trainer is usable without any sample files.
    """

    MIXER_RATE = 44100

    def __init__(
        self,
        sounds_dir: Optional[str] = None,
        instrument: str = "guitar",
        tone_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        super().__init__(sleep)
        self._sounds_dir = Path(sounds_dir) if sounds_dir else None
        self._instrument = instrument
        self._tone_seconds = tone_seconds
        self._cache: Dict[str, pygame.mixer.Sound] = {}

    @property
    def instrument(self) -> str:
        return self._instrument

    def set_instrument(self, instrument: str) -> None:
        if instrument != self._instrument:
            logger.info(f"Instrument set to: {instrument}")
            self._instrument = instrument
            self._cache.clear()

    def _ensure_mixer(self) -> None:
        if pygame.mixer.get_init():
            return
        try:
            pygame.mixer.init(frequency=self.MIXER_RATE, size=-16, channels=1)
        except pygame.error as e:
            raise PlaybackFailure(f"Audio output unavailable: {e}") from e

    def _sample_path(self, note: Note) -> Optional[Path]:
        if self._sounds_dir is None:
            return None
        path = self._sounds_dir / self._instrument / note.sample_ref
        return path if path.is_file() else None

    def _load(self, note: Note) -> pygame.mixer.Sound:
        sound = self._cache.get(note.name)
        if sound is not None:
            return sound

        path = self._sample_path(note)
        try:
            if path is not None:
                sound = pygame.mixer.Sound(str(path))
            else:
                logger.debug(f"No {self._instrument} sample for {note.name}, synthesizing")
                sound = pygame.sndarray.make_sound(self._synthesize(note.frequency))
        except pygame.error as e:
            raise PlaybackFailure(f"Cannot load sound for {note.name}: {e}") from e

        self._cache[note.name] = sound
        return sound

    def _synthesize(self, frequency: float) -> np.ndarray:
        rate, _size, channels = pygame.mixer.get_init()
        t = np.arange(int(rate * self._tone_seconds)) / rate
        if self._instrument == "synth":
            wave = np.sin(2 * np.pi * frequency * t)
            envelope = np.minimum(1.0, (self._tone_seconds - t) * 20)
        else:
            # Plucked: a few decaying harmonics
            wave = sum(
                np.sin(2 * np.pi * frequency * k * t) / k for k in (1, 2, 3)
            )
            envelope = np.exp(-3.0 * t)
        samples = (0.4 * 32767 * wave * envelope / np.max(np.abs(wave))).astype(np.int16)
        if channels > 1:
            samples = np.column_stack([samples] * channels)
        return np.ascontiguousarray(samples)

    def play_note(self, note: Note) -> None:
        """Play one note and block until it has finished sounding."""
        self._ensure_mixer()
        sound = self._load(note)
        logger.debug(f"Playing note: {note.name} ({note.frequency} Hz)")
        try:
            sound.play()
        except pygame.error as e:
            raise PlaybackFailure(f"Cannot play {note.name}: {e}") from e
        self._sleep(sound.get_length())

    def close(self) -> None:
        self._cache.clear()
        if pygame.mixer.get_init():
            pygame.mixer.quit()
