"""Event system for ear trainer components."""

from typing import Dict, List, Callable, Any
from enum import Enum, auto

from ..logger import get_logger

logger = get_logger(__name__)


class TrainingEventType(Enum):
    """Event types raised by the training orchestrator."""

    STATE_CHANGED = auto()
    NOTE_MATCHED = auto()
    REPETITION_COMPLETED = auto()
    TRIAL_COMPLETED = auto()
    FINISHED = auto()


class EventEmitter:
    """Synchronous event emitter; listener failures are logged, not raised."""

    def __init__(self):
        self._listeners: Dict[Any, List[Callable]] = {}

    def on(self, event_type: Any, callback: Callable) -> None:
        """Register a callback for an event type.

        Args:
            event_type: Event type to listen for
            callback: Function to call when the event occurs
        """
        listeners = self._listeners.setdefault(event_type, [])
        if callback not in listeners:
            listeners.append(callback)
            logger.debug(f"Added listener for event {event_type}")

    def emit(self, event_type: Any, *args, **kwargs) -> None:
        """Emit an event.

        Args:
            event_type: Event type to emit
            *args: Positional arguments to pass to listeners
            **kwargs: Keyword arguments to pass to listeners
        """
        for callback in list(self._listeners.get(event_type, [])):
            try:
                callback(*args, **kwargs)
            except Exception as e:
                logger.error(f"Error in event listener for {event_type}: {e}", exc_info=True)

    def clear(self) -> None:
        """Remove all event listeners."""
        self._listeners = {}
        logger.debug("Cleared all event listeners")


class TrainingEvents:
    """Typed facade over an EventEmitter for training progress events."""

    def __init__(self):
        self._emitter = EventEmitter()

    def on_state_changed(self, callback: Callable) -> None:
        """callback(old_state, new_state)"""
        self._emitter.on(TrainingEventType.STATE_CHANGED, callback)

    def on_note_matched(self, callback: Callable) -> None:
        """callback(note, position)"""
        self._emitter.on(TrainingEventType.NOTE_MATCHED, callback)

    def on_repetition_completed(self, callback: Callable) -> None:
        """callback(correct_repetitions)"""
        self._emitter.on(TrainingEventType.REPETITION_COMPLETED, callback)

    def on_trial_completed(self, callback: Callable) -> None:
        """callback(sequence_number)"""
        self._emitter.on(TrainingEventType.TRIAL_COMPLETED, callback)

    def on_finished(self, callback: Callable) -> None:
        """callback(sequences_completed)"""
        self._emitter.on(TrainingEventType.FINISHED, callback)

    def emit(self, event_type: TrainingEventType, *args) -> None:
        self._emitter.emit(event_type, *args)

    def clear(self) -> None:
        self._emitter.clear()
