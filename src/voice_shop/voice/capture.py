"""Speech capture adapter: a normalized event stream over a recognition backend."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Callable, Mapping, Union

from voice_shop.models import Transcript

from .interfaces import RawRecognition, RawRecognitionError, RawSpeechBoundary, RecognitionBackend

UNSUPPORTED_MESSAGE = "Speech recognition is not supported in this browser. Please use the text input instead."

ERROR_MESSAGES = {
    "no-speech": "No speech detected. Please try speaking clearly.",
    "audio-capture": "Audio capture failed. Please check your microphone.",
    "not-allowed": "Microphone access denied. Please allow microphone access.",
    "network": "Network error occurred during speech recognition.",
    "aborted": "Speech recognition was aborted.",
    "grammar": "Grammar error in speech recognition.",
    "unsupported": UNSUPPORTED_MESSAGE,
}

INTERIM_CONFIDENCE = 0.5


def describe_error(code: str, detail: str | None = None) -> str:
    if code in ERROR_MESSAGES:
        return ERROR_MESSAGES[code]
    return f"Speech recognition error: {detail or code}"


class CaptureState(str, Enum):
    IDLE = "idle"
    STARTING = "starting"
    LISTENING = "listening"
    SPEECH_DETECTED = "speech_detected"
    ENDED = "ended"


@dataclass(slots=True)
class CaptureOptions:
    continuous: bool = False
    interim_results: bool = False
    language: str = "en-US"
    confidence_threshold: float = 0.7

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> CaptureOptions:
        known = {item.name for item in fields(cls)}
        return cls(**{key: value for key, value in payload.items() if key in known})


@dataclass(slots=True)
class StartEvent:
    pass


@dataclass(slots=True)
class EndEvent:
    pass


@dataclass(slots=True)
class SpeechStartEvent:
    pass


@dataclass(slots=True)
class SpeechEndEvent:
    pass


@dataclass(slots=True)
class ResultEvent:
    transcript: Transcript


@dataclass(slots=True)
class ErrorEvent:
    message: str
    code: str = "error"
    confidence: float | None = None


CaptureEvent = Union[StartEvent, EndEvent, SpeechStartEvent, SpeechEndEvent, ResultEvent, ErrorEvent]
CaptureListener = Callable[[CaptureEvent], None]


@dataclass(slots=True)
class _Session:
    options: CaptureOptions = field(default_factory=CaptureOptions)
    listener: CaptureListener | None = None


class SpeechCaptureAdapter:
    """Wraps a :class:`RecognitionBackend` into lifecycle, result and error events.

    Failures are reported as :class:`ErrorEvent` to the listener, never raised.
    At most one recognition session runs at a time, and every session that
    reached ``listening`` ends with exactly one :class:`EndEvent`.
    """

    def __init__(self, backend: RecognitionBackend | None, *, logger: logging.Logger | None = None) -> None:
        self._backend = backend
        self._logger = logger or logging.getLogger("voice_shop.voice.capture")
        self._session: _Session | None = None
        self._state = CaptureState.IDLE
        self._task: asyncio.Task[None] | None = None

    @property
    def state(self) -> CaptureState:
        return self._state

    @property
    def is_listening(self) -> bool:
        return self._task is not None and not self._task.done()

    def is_supported(self) -> bool:
        if self._backend is None:
            return False
        try:
            return bool(self._backend.is_supported())
        except Exception:  # noqa: BLE001
            self._logger.exception("capture_support_probe_failed")
            return False

    def initialize(
        self,
        options: CaptureOptions | Mapping[str, Any] | None = None,
        listener: CaptureListener | None = None,
    ) -> bool:
        if isinstance(options, Mapping):
            options = CaptureOptions.from_mapping(options)
        self._session = _Session(options=options or CaptureOptions(), listener=listener)
        if not self.is_supported():
            self._logger.warning("capture_unsupported")
            self._emit(ErrorEvent(message=UNSUPPORTED_MESSAGE, code="unsupported"))
            return False
        self._logger.info("capture_initialized", extra={"language": self._session.options.language})
        return True

    async def start_listening(self) -> bool:
        if self.is_listening or self._state is CaptureState.STARTING:
            self._logger.warning("capture_already_active")
            return True
        if self._session is None and not self.initialize():
            return False
        if not self.is_supported():
            self._emit(ErrorEvent(message=UNSUPPORTED_MESSAGE, code="unsupported"))
            return False

        self._state = CaptureState.STARTING
        try:
            granted = await self._backend.request_microphone()
        except Exception as exc:  # noqa: BLE001
            self._logger.exception("capture_microphone_failed")
            self._state = CaptureState.IDLE
            self._emit(ErrorEvent(message=f"Failed to start speech recognition: {exc}", code="start-failed"))
            return False
        if not granted:
            self._state = CaptureState.IDLE
            self._emit(ErrorEvent(message=ERROR_MESSAGES["not-allowed"], code="not-allowed"))
            return False

        self._state = CaptureState.LISTENING
        self._emit(StartEvent())
        self._task = asyncio.create_task(self._run(self._session.options), name="speech-capture")
        self._task.add_done_callback(self._on_closed)
        self._logger.info("capture_started")
        return True

    def stop_listening(self) -> None:
        """Stop the active session; a no-op when nothing is listening."""
        if not self.is_listening:
            return
        self._task.cancel()
        self._logger.info("capture_stop_requested")

    async def wait_closed(self) -> None:
        task = self._task
        if task is None:
            return
        await asyncio.wait({task})

    async def cleanup(self) -> None:
        self.stop_listening()
        await self.wait_closed()
        self._task = None
        self._session = None
        self._state = CaptureState.IDLE

    async def _run(self, options: CaptureOptions) -> None:
        try:
            async for raw in self._backend.recognize(options):
                finished = self._handle(raw, options)
                if finished and not options.continuous:
                    break
        except asyncio.CancelledError:
            self._logger.debug("capture_cancelled")
        except Exception as exc:  # noqa: BLE001
            self._logger.exception("capture_backend_failed")
            self._emit(ErrorEvent(message=describe_error("engine", str(exc)), code="engine"))

    def _on_closed(self, task: asyncio.Task[None]) -> None:
        # Runs for every exit path, including a cancel before the first step.
        self._state = CaptureState.ENDED
        self._emit(EndEvent())
        self._logger.info("capture_ended")

    def _handle(self, raw: object, options: CaptureOptions) -> bool:
        if isinstance(raw, RawSpeechBoundary):
            if raw.started:
                self._state = CaptureState.SPEECH_DETECTED
                self._emit(SpeechStartEvent())
            else:
                self._emit(SpeechEndEvent())
            return False
        if isinstance(raw, RawRecognitionError):
            self._emit(ErrorEvent(message=describe_error(raw.code, raw.detail), code=raw.code))
            return raw.code not in ("no-speech",)
        if isinstance(raw, RawRecognition):
            return self._handle_recognition(raw, options)
        return False

    def _handle_recognition(self, raw: RawRecognition, options: CaptureOptions) -> bool:
        hypotheses = [(text.strip(), confidence) for text, confidence in raw.alternatives if text and text.strip()]
        if not hypotheses:
            if raw.is_final:
                self._emit(ErrorEvent(message=ERROR_MESSAGES["no-speech"], code="no-speech"))
            return False
        text = hypotheses[0][0]
        alternatives = [candidate for candidate, _ in hypotheses[1:]]

        if not raw.is_final:
            if options.interim_results:
                self._emit(ResultEvent(Transcript(text, INTERIM_CONFIDENCE, False, alternatives)))
            return False

        confidence = hypotheses[0][1]
        if confidence < options.confidence_threshold:
            self._logger.warning(
                "capture_low_confidence",
                extra={"confidence": confidence, "threshold": options.confidence_threshold},
            )
            self._emit(
                ErrorEvent(message=f"Low confidence: {confidence * 100:.1f}%", code="low-confidence", confidence=confidence)
            )
            return True
        self._emit(ResultEvent(Transcript(text, confidence, True, alternatives)))
        return True

    def _emit(self, event: CaptureEvent) -> None:
        listener = self._session.listener if self._session else None
        if listener is None:
            return
        try:
            listener(event)
        except Exception:  # noqa: BLE001
            self._logger.exception("capture_listener_failed", extra={"event": type(event).__name__})
