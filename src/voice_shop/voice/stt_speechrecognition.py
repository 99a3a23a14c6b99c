"""Recognition backend powered by ``speech_recognition``."""

from __future__ import annotations

import asyncio
from typing import Any, AsyncIterator

from .capture import CaptureOptions
from .interfaces import RawRecognition, RawRecognitionError, RawRecognitionEvent, RawSpeechBoundary


class SpeechRecognitionBackend:
    """Microphone capture plus Google Web Speech recognition via speech_recognition.

    Blocking microphone and network calls run in worker threads.
    """

    def __init__(
        self,
        *,
        phrase_time_limit: float = 6.0,
        timeout: float | None = 5.0,
        sample_rate: int = 16_000,
        chunk_size: int = 1024,
        adjust_noise_seconds: float = 0.2,
    ) -> None:
        try:
            import speech_recognition as sr
        except ImportError as exc:  # pragma: no cover - import guard
            raise RuntimeError(
                "Voice STT backend unavailable. Install extras with: pip install 'voice-shop-assistant[voice]'"
            ) from exc
        self._sr = sr
        self._recognizer = sr.Recognizer()
        self._sample_rate = sample_rate
        self._chunk_size = chunk_size
        self._microphone = None
        self._phrase_time_limit = phrase_time_limit
        self._timeout = timeout
        self._adjust_noise_seconds = max(0.0, adjust_noise_seconds)

    def is_supported(self) -> bool:
        try:
            return bool(self._sr.Microphone.list_microphone_names())
        except Exception:  # noqa: BLE001
            return False

    async def request_microphone(self) -> bool:
        return await asyncio.to_thread(self._open_microphone)

    def _open_microphone(self) -> bool:
        try:
            if self._microphone is None:
                self._microphone = self._sr.Microphone(sample_rate=self._sample_rate, chunk_size=self._chunk_size)
            with self._microphone as source:
                if self._adjust_noise_seconds > 0:
                    self._recognizer.adjust_for_ambient_noise(source, duration=self._adjust_noise_seconds)
        except (OSError, AttributeError):
            return False
        return True

    async def recognize(self, options: CaptureOptions) -> AsyncIterator[RawRecognitionEvent]:
        while True:
            try:
                audio = await asyncio.to_thread(self._listen)
            except self._sr.WaitTimeoutError:
                yield RawRecognitionError("no-speech")
                if not options.continuous:
                    return
                continue
            except OSError as exc:
                yield RawRecognitionError("audio-capture", str(exc))
                return

            yield RawSpeechBoundary(started=True)
            yield RawSpeechBoundary(started=False)

            try:
                payload = await asyncio.to_thread(
                    self._recognizer.recognize_google, audio, language=options.language, show_all=True
                )
            except self._sr.UnknownValueError:
                yield RawRecognitionError("no-speech")
            except self._sr.RequestError as exc:
                yield RawRecognitionError("network", str(exc))
                return
            else:
                yield RawRecognition(alternatives=_alternatives(payload), is_final=True)

            if not options.continuous:
                return

    def _listen(self) -> Any:
        if self._microphone is None:
            self._microphone = self._sr.Microphone(sample_rate=self._sample_rate, chunk_size=self._chunk_size)
        with self._microphone as source:
            return self._recognizer.listen(
                source,
                timeout=self._timeout,
                phrase_time_limit=self._phrase_time_limit,
            )


def _alternatives(payload: Any) -> list[tuple[str, float]]:
    """Flatten a ``show_all`` Google payload into ``(text, confidence)`` pairs.

    Google reports a confidence only on the top hypothesis, and omits it
    entirely when it returns a single one; that case counts as certain.
    """
    if not isinstance(payload, dict):
        return []
    hypotheses: list[tuple[str, float]] = []
    for index, entry in enumerate(payload.get("alternative") or []):
        text = str(entry.get("transcript") or "").strip()
        if not text:
            continue
        default = 1.0 if index == 0 else 0.0
        hypotheses.append((text, float(entry.get("confidence", default))))
    return hypotheses
