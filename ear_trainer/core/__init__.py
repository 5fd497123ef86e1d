"""Core components for the ear trainer."""

from .interfaces import (
    IDetectionSession,
    IInputDevice,
    IInputStream,
    INotePlayer,
)

__all__ = ["IDetectionSession", "IInputDevice", "IInputStream", "INotePlayer"]
