"""ARIA Voice: chat and speech relay for a voice assistant."""

__version__ = "5.0.0"
