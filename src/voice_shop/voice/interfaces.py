"""Contracts for speech recognition and synthesis backends."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, AsyncIterator, Callable, Protocol, Union

if TYPE_CHECKING:
    from .capture import CaptureOptions
    from .output import SpeechOptions


@dataclass(slots=True)
class RawRecognition:
    """Hypotheses for one utterance, best first, as ``(text, confidence)`` pairs."""

    alternatives: list[tuple[str, float]] = field(default_factory=list)
    is_final: bool = True


@dataclass(slots=True)
class RawSpeechBoundary:
    started: bool


@dataclass(slots=True)
class RawRecognitionError:
    """Engine error code: ``no-speech``, ``audio-capture``, ``not-allowed``, ``network``, ``aborted``..."""

    code: str
    detail: str | None = None


RawRecognitionEvent = Union[RawRecognition, RawSpeechBoundary, RawRecognitionError]


class RecognitionBackend(Protocol):
    """Platform speech recognition capability."""

    def is_supported(self) -> bool:
        """Return whether recognition can run on this machine."""

    async def request_microphone(self) -> bool:
        """Acquire microphone access; ``False`` means permission was denied."""

    def recognize(self, options: CaptureOptions) -> AsyncIterator[RawRecognitionEvent]:
        """Yield recognition events until the session ends."""


ProgressCallback = Callable[[float], None]


class SpeechSynthesisStrategy(Protocol):
    """One engine in the speech output cascade."""

    name: str

    async def speak(self, text: str, options: SpeechOptions, on_progress: ProgressCallback) -> None:
        """Speak ``text`` and return once playback finished; raise on failure."""

    def stop(self) -> None:
        """Abort playback started by :meth:`speak`."""
