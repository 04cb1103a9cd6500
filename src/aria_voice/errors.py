"""Error taxonomy shared by the relay server and the voice client."""

from __future__ import annotations


class AriaVoiceError(Exception):
    """Base class for expected, user-reportable failures."""

    status_code = 500

    def __init__(self, message: str, *, details: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class InvalidInput(AriaVoiceError):
    """Request payload is missing required text."""

    status_code = 400


class UpstreamError(AriaVoiceError):
    """Chat or speech provider answered with a failure."""

    def __init__(self, message: str, *, details: str | None = None, upstream_status: int | None = None) -> None:
        super().__init__(message, details=details)
        self.upstream_status = upstream_status


class SynthesisError(AriaVoiceError):
    """Speech engine failed to produce audio."""


class RecognitionError(AriaVoiceError):
    """Speech capture failed; ``code`` follows the browser recognition error names."""

    def __init__(self, code: str, message: str | None = None) -> None:
        super().__init__(message or f"Speech recognition failed: {code}")
        self.code = code
