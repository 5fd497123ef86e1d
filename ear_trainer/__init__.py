"""Ear trainer: hear a short note sequence, then play it back on an instrument."""

__version__ = "0.1.0"
