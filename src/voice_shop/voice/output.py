"""Speech output: an engine cascade that degrades to visual feedback."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Awaitable, Callable, Mapping

from voice_shop.fallback import FallbackExhaustedError, run_with_fallback

from .interfaces import ProgressCallback, SpeechSynthesisStrategy


class SpeechOutputError(RuntimeError):
    """Every synthesis strategy, visual feedback included, failed."""


class EngineChoice(str, Enum):
    AUTO = "auto"
    PRIMARY = "primary"
    SECONDARY = "secondary"
    TERTIARY = "tertiary"
    QUATERNARY = "quaternary"


ENGINE_ORDER = (EngineChoice.PRIMARY, EngineChoice.SECONDARY, EngineChoice.TERTIARY, EngineChoice.QUATERNARY)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, float(value)))


@dataclass(slots=True)
class SpeechOptions:
    voice: str | None = None
    rate: float = 1.0
    pitch: float = 1.0
    volume: float = 1.0
    language: str = "en-US"
    engine: EngineChoice = EngineChoice.AUTO

    def __post_init__(self) -> None:
        self.rate = _clamp(self.rate, 0.1, 10.0)
        self.pitch = _clamp(self.pitch, 0.0, 2.0)
        self.volume = _clamp(self.volume, 0.0, 1.0)
        try:
            self.engine = EngineChoice(self.engine)
        except ValueError:
            self.engine = EngineChoice.AUTO


@dataclass(slots=True)
class SpeechStatus:
    is_loading: bool = False
    is_speaking: bool = False
    current_text: str = ""
    progress: float = 0.0
    error: str | None = None


StatusListener = Callable[[SpeechStatus], None]


class VisualFeedbackStrategy:
    """Silent mode: holds the speaking status for a reading-time estimate."""

    name = "visual"

    def __init__(
        self,
        *,
        min_seconds: float = 1.5,
        seconds_per_word: float = 0.2,
        tick_seconds: float = 0.1,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._min_seconds = min_seconds
        self._seconds_per_word = seconds_per_word
        self._tick_seconds = tick_seconds
        self._sleep = sleep

    def duration_for(self, text: str) -> float:
        return max(self._min_seconds, len(text.split()) * self._seconds_per_word)

    async def speak(self, text: str, options: SpeechOptions, on_progress: ProgressCallback) -> None:
        duration = self.duration_for(text)
        elapsed = 0.0
        while elapsed < duration:
            await self._sleep(self._tick_seconds)
            elapsed += self._tick_seconds
            on_progress(min(100.0, elapsed / duration * 100.0))

    def stop(self) -> None:
        return None


class SpeechOutputAdapter:
    """Speaks text through the first engine that works.

    With ``engine=auto`` the configured engines are tried in tier order, then
    visual feedback. Naming one tier tries that engine, then visual feedback.
    A new :meth:`speak` preempts the utterance in flight; the preempted call
    returns normally.
    """

    def __init__(
        self,
        engines: Mapping[EngineChoice, SpeechSynthesisStrategy] | None = None,
        *,
        visual: SpeechSynthesisStrategy | None = None,
        default_options: SpeechOptions | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._engines = dict(engines or {})
        self._visual = visual if visual is not None else VisualFeedbackStrategy()
        self._default_options = default_options or SpeechOptions()
        self._logger = logger or logging.getLogger("voice_shop.voice.output")
        self._status = SpeechStatus()
        self._listeners: list[StatusListener] = []
        self._task: asyncio.Task[None] | None = None
        self._active: SpeechSynthesisStrategy | None = None

    @property
    def status(self) -> SpeechStatus:
        return replace(self._status)

    @property
    def is_speaking(self) -> bool:
        return self._status.is_speaking

    @property
    def engine_names(self) -> list[str]:
        return [self._engines[choice].name for choice in ENGINE_ORDER if choice in self._engines]

    def on_status_change(self, callback: StatusListener) -> Callable[[], None]:
        self._listeners.append(callback)

        def _unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _unsubscribe

    def strategies_for(self, choice: EngineChoice) -> list[SpeechSynthesisStrategy]:
        if choice is EngineChoice.AUTO:
            ordered = [self._engines[tier] for tier in ENGINE_ORDER if tier in self._engines]
        else:
            ordered = [self._engines[choice]] if choice in self._engines else []
        return [*ordered, self._visual]

    async def speak(self, text: str, options: SpeechOptions | None = None) -> None:
        normalized = " ".join(text.split())
        if not normalized:
            return
        # Another caller may have started while we waited; preempt it too.
        while self._task is not None and not self._task.done():
            await self._cancel_current()

        task = asyncio.create_task(self._run(normalized, options or self._default_options), name="speech-output")
        self._task = task
        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            task.cancel()
            raise
        if task.cancelled():
            return
        task.result()

    def stop(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        if self._active is not None:
            self._active.stop()

    async def _cancel_current(self) -> None:
        task = self._task
        if task is None or task.done():
            return
        self._logger.debug("speech_preempted", extra={"text": self._status.current_text})
        self.stop()
        await asyncio.wait({task})

    async def _run(self, text: str, options: SpeechOptions) -> None:
        self._update(is_loading=True, is_speaking=False, current_text=text, progress=0.0, error=None)

        async def _attempt(strategy: SpeechSynthesisStrategy) -> None:
            self._active = strategy
            self._update(is_loading=False, is_speaking=True, progress=0.0)
            await strategy.speak(text, options, self._on_progress)

        try:
            outcome = await run_with_fallback(
                self.strategies_for(options.engine),
                _attempt,
                logger=self._logger,
                event="tts_engine_failed",
            )
        except FallbackExhaustedError as exc:
            message = str(exc.last_error or exc)
            self._logger.error("tts_all_engines_failed", extra={"error": message})
            self._update(is_loading=False, is_speaking=False, error=message)
            raise SpeechOutputError(message) from exc.last_error
        except asyncio.CancelledError:
            if self._active is not None:
                self._active.stop()
            self._update(is_loading=False, is_speaking=False)
            raise
        finally:
            self._active = None

        self._logger.debug("speech_finished", extra={"engine": outcome.strategy})
        self._update(is_loading=False, is_speaking=False, progress=100.0, error=None)

    def _on_progress(self, progress: float) -> None:
        self._update(progress=_clamp(progress, 0.0, 100.0))

    def _update(self, **changes: object) -> None:
        for key, value in changes.items():
            setattr(self._status, key, value)
        snapshot = replace(self._status)
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:  # noqa: BLE001
                self._logger.exception("speech_status_listener_failed")
