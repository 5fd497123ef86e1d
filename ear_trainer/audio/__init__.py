"""Audio input and output collaborators.

Submodules are imported directly (``ear_trainer.audio.microphone`` etc.)
because each one pulls in its own native audio library.
"""
