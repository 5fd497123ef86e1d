"""Typed views over the ``training`` and ``detection`` configuration sections."""

from dataclasses import dataclass, field, fields, asdict
from typing import Any, Dict, Tuple

INSTRUMENTS: Tuple[str, ...] = ("guitar", "synth")


def _known_keys(cls, values: Dict[str, Any]) -> Dict[str, Any]:
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in values.items() if k in names}


@dataclass
class TrainingSettings:
    """What the performer is asked to do and how loud they must play."""

    notes_per_turn: int = 1
    max_interval: int = 5
    repetitions_required: int = 3
    total_sequences: int = 10  # 0 means unbounded
    volume_threshold: float = 0.01
    instrument: str = "guitar"

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "TrainingSettings":
        settings = cls(**_known_keys(cls, values))
        settings.validate()
        return settings

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def validate(self) -> None:
        """Raise ValueError if any value is outside its accepted range."""
        _check_range("notes_per_turn", self.notes_per_turn, 1, 5)
        _check_range("max_interval", self.max_interval, 1, 12)
        _check_range("repetitions_required", self.repetitions_required, 1, 10)
        _check_range("total_sequences", self.total_sequences, 0, 100)
        _check_range("volume_threshold", self.volume_threshold, 0.001, 0.05)
        if self.instrument not in INSTRUMENTS:
            raise ValueError(
                f"instrument must be one of {', '.join(INSTRUMENTS)}, got {self.instrument!r}"
            )


@dataclass
class DetectionSettings:
    """Tuning of the pitch-detection pipeline."""

    sample_rate: int = 44100
    frame_size: int = 4096
    history_size: int = 5
    min_stable_count: int = 3
    stability_bound: float = 5.0  # Hz^2
    match_tolerance: float = 0.05
    min_frequency: float = 80.0
    max_frequency: float = 1200.0
    spectral_interval: float = 0.05  # seconds between ticks with a real input
    degraded_interval: float = 0.15  # seconds between simulated ticks
    estimators: Tuple[str, ...] = field(default=("yin", "yinfft", "amdf"))

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "DetectionSettings":
        values = _known_keys(cls, values)
        if "estimators" in values:
            values["estimators"] = tuple(values["estimators"])
        settings = cls(**values)
        if settings.history_size < 1:
            raise ValueError("history_size must be at least 1")
        if not 1 <= settings.min_stable_count <= settings.history_size:
            raise ValueError("min_stable_count must be between 1 and history_size")
        if not 0 < settings.min_frequency < settings.max_frequency:
            raise ValueError("Frequency range must satisfy 0 < min_frequency < max_frequency")
        return settings


def _check_range(name: str, value, low, high) -> None:
    if not low <= value <= high:
        raise ValueError(f"{name} must be between {low} and {high}, got {value}")
