"""Text-to-speech strategy using the ``espeak`` command-line synthesizer."""

from __future__ import annotations

import asyncio
import shutil

from .interfaces import ProgressCallback
from .output import SpeechOptions

ESPEAK_DEFAULT_WPM = 175


class EspeakSpeechStrategy:
    name = "espeak"

    def __init__(self, binary: str | None = None) -> None:
        resolved = binary or shutil.which("espeak-ng") or shutil.which("espeak")
        if not resolved:
            raise RuntimeError("espeak is not installed. Install espeak or espeak-ng to enable this engine.")
        self._binary = resolved
        self._process: asyncio.subprocess.Process | None = None

    def build_command(self, text: str, options: SpeechOptions) -> list[str]:
        command = [
            self._binary,
            "-s",
            str(int(options.rate * ESPEAK_DEFAULT_WPM)),
            "-p",
            str(int(options.pitch * 50)),
            "-a",
            str(int(options.volume * 200)),
        ]
        voice = options.voice or (options.language or "en").lower()
        command.extend(["-v", voice, text])
        return command

    async def speak(self, text: str, options: SpeechOptions, on_progress: ProgressCallback) -> None:
        self._process = await asyncio.create_subprocess_exec(
            *self.build_command(text, options),
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            _, stderr = await self._process.communicate()
        except asyncio.CancelledError:
            self.stop()
            raise
        finally:
            code = self._process.returncode
            self._process = None
        if code != 0:
            detail = stderr.decode("utf-8", errors="ignore").strip() if stderr else ""
            raise RuntimeError(f"espeak exited with code {code}: {detail}")

    def stop(self) -> None:
        process = self._process
        if process is not None and process.returncode is None:
            process.terminate()
