"""Speech synthesis through the ``edge-tts`` command line tool."""

from __future__ import annotations

import asyncio
import logging
import tempfile
from collections.abc import Sequence
from pathlib import Path

from aria_voice.errors import SynthesisError


class EdgeTTSCliSynthesizer:
    """Runs ``edge-tts --voice V --rate R --text T --write-media F`` and reads back ``F``.

    ``command`` is the executable plus any leading arguments, so wrappers such
    as ``("python", "-m", "edge_tts")`` work as well as the plain binary.
    """

    def __init__(
        self,
        command: Sequence[str] = ("edge-tts",),
        *,
        timeout_seconds: float = 30.0,
        logger: logging.Logger | None = None,
    ) -> None:
        if not command:
            raise ValueError("command must name an executable")
        self._command = tuple(command)
        self._timeout_seconds = timeout_seconds
        self._logger = logger or logging.getLogger("aria_voice.tts.edge_cli")

    async def synthesize(self, text: str, voice: str, rate: str) -> bytes:
        with tempfile.TemporaryDirectory(prefix="aria-tts-") as workdir:
            output = Path(workdir) / "speech.mp3"
            args = [
                *self._command,
                "--voice",
                voice,
                f"--rate={rate}",
                "--text",
                text,
                "--write-media",
                str(output),
            ]
            try:
                process = await asyncio.create_subprocess_exec(
                    *args,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )
            except OSError as exc:
                raise SynthesisError(f"Could not start {self._command[0]}", details=str(exc)) from exc

            try:
                _, stderr = await asyncio.wait_for(process.communicate(), timeout=self._timeout_seconds)
            except asyncio.TimeoutError as exc:
                process.kill()
                await process.wait()
                raise SynthesisError(f"Speech synthesis timed out after {self._timeout_seconds}s") from exc

            if process.returncode != 0:
                detail = stderr.decode("utf-8", errors="replace").strip()
                self._logger.warning(
                    "edge_tts_failed",
                    extra={"returncode": process.returncode, "voice": voice, "stderr": detail[:500]},
                )
                raise SynthesisError(f"Speech engine exited with code {process.returncode}", details=detail or None)

            if not output.is_file() or output.stat().st_size == 0:
                raise SynthesisError("Speech engine did not write any audio")
            return output.read_bytes()
