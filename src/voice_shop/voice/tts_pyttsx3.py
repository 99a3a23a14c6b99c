"""Text-to-speech strategy powered by ``pyttsx3``."""

from __future__ import annotations

import asyncio

from .interfaces import ProgressCallback
from .output import SpeechOptions

WORDS_PER_MINUTE_AT_RATE_1 = 200


class Pyttsx3SpeechStrategy:
    """Speaker playback using a local pyttsx3 engine instance."""

    name = "pyttsx3"

    def __init__(self, *, voice_id: str | None = None) -> None:
        try:
            import pyttsx3
        except ImportError as exc:  # pragma: no cover - import guard
            raise RuntimeError(
                "Voice TTS backend unavailable. Install extras with: pip install 'voice-shop-assistant[voice]'"
            ) from exc

        self._engine = pyttsx3.init()
        self._voice_id = voice_id
        self._progress: ProgressCallback | None = None
        self._text_length = 0
        self._loop: asyncio.AbstractEventLoop | None = None
        self._engine.connect("started-word", self._on_word)

    async def speak(self, text: str, options: SpeechOptions, on_progress: ProgressCallback) -> None:
        self._loop = asyncio.get_running_loop()
        self._progress = on_progress
        self._text_length = max(1, len(text))

        voice = options.voice or self._voice_id
        if voice:
            self._engine.setProperty("voice", voice)
        self._engine.setProperty("rate", int(options.rate * WORDS_PER_MINUTE_AT_RATE_1))
        self._engine.setProperty("volume", options.volume)
        try:
            await asyncio.to_thread(self._say, text)
        except asyncio.CancelledError:
            self.stop()
            raise
        finally:
            self._progress = None

    def stop(self) -> None:
        self._engine.stop()

    def _say(self, text: str) -> None:
        self._engine.say(text)
        self._engine.runAndWait()

    def _on_word(self, name: str | None, location: int, length: int) -> None:
        progress = self._progress
        loop = self._loop
        if progress is None or loop is None:
            return
        percent = min(100.0, (location + length) / self._text_length * 100.0)
        loop.call_soon_threadsafe(progress, percent)
