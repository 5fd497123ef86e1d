"""Failure taxonomy for the ear trainer.

None of these is fatal to a training run. Collaborators raise them and the
core catches them at its seams, degrading to silence, the simulated
acquisition strategy or "no note".
"""


class EarTrainerError(Exception):
    """Base class for ear trainer failures."""


class PermissionDenied(EarTrainerError):
    """Microphone access was refused by the host environment."""


class AcquisitionFailure(EarTrainerError):
    """The audio input device or stream could not be opened or read."""


class AlgorithmFailure(EarTrainerError):
    """A single frequency-estimation algorithm failed on a frame."""

    def __init__(self, algorithm: str, message: str) -> None:
        super().__init__(f"{algorithm}: {message}")
        self.algorithm = algorithm


class PlaybackFailure(EarTrainerError):
    """A note or sample could not be played through the output device."""
