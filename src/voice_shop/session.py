"""Voice session orchestration: listen, classify, respond, execute."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable

from voice_shop.commands import Command
from voice_shop.context import ContextExtractor
from voice_shop.engine.execution import CommandExecutionEngine
from voice_shop.engine.notifications import Notification, NotificationType
from voice_shop.engine.validation import CommandValidationEngine
from voice_shop.intents.ai_service import AIIntentService
from voice_shop.intents.classifier import IntentClassifier
from voice_shop.intents.fallback import create_fallback_response
from voice_shop.models import ConversationEntry, ExecutionResult, IntentResponse, ValidationResult
from voice_shop.voice.capture import (
    CaptureEvent,
    CaptureOptions,
    EndEvent,
    ErrorEvent,
    ResultEvent,
    SpeechCaptureAdapter,
    StartEvent,
)
from voice_shop.voice.output import SpeechOutputAdapter, SpeechOutputError


class SessionStatus(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    PROCESSING = "processing"
    SPEAKING = "speaking"
    ERROR = "error"


class TurnPath(str, Enum):
    FAST = "fast"
    AI = "ai"
    FALLBACK = "fallback"


class OutcomeStatus(str, Enum):
    EXECUTED = "executed"
    INVALID = "invalid"
    SKIPPED_LOW_CONFIDENCE = "skipped_low_confidence"
    SKIPPED_NEEDS_CONFIRMATION = "skipped_needs_confirmation"
    FAILED = "failed"


@dataclass(slots=True)
class CommandOutcome:
    command: Command
    status: OutcomeStatus
    validation: ValidationResult | None = None
    result: ExecutionResult | None = None
    reason: str | None = None


@dataclass(slots=True)
class VoiceTurn:
    transcript: str
    response: IntentResponse
    path: TurnPath
    outcomes: list[CommandOutcome] = field(default_factory=list)

    @property
    def executed(self) -> list[CommandOutcome]:
        return [outcome for outcome in self.outcomes if outcome.status is OutcomeStatus.EXECUTED]


@dataclass(slots=True)
class SessionState:
    status: SessionStatus = SessionStatus.IDLE
    is_listening: bool = False
    is_processing: bool = False
    is_speaking: bool = False
    transcript: str = ""
    interim_transcript: str = ""
    confidence: float = 0.0
    intent: IntentResponse | None = None
    error: str | None = None


StateListener = Callable[[SessionState], None]


class VoiceSessionOrchestrator:
    """Owns session state and sequences capture, classification, speech and execution.

    Classification always resolves (fast path, AI, or deterministic fallback)
    before any command is validated or executed. The response is spoken
    concurrently with execution. A command runs only when the response
    confidence reaches ``execution_threshold``; commands that require
    confirmation additionally need ``confirmation_threshold``. Gating is
    per command, so confirmed and unconfirmed commands in one turn are
    decided independently.
    """

    def __init__(
        self,
        *,
        classifier: IntentClassifier,
        ai_service: AIIntentService,
        validator: CommandValidationEngine,
        executor: CommandExecutionEngine,
        context: ContextExtractor,
        capture: SpeechCaptureAdapter | None = None,
        speech: SpeechOutputAdapter | None = None,
        capture_options: CaptureOptions | None = None,
        history_limit: int = 10,
        execution_threshold: float = 0.5,
        confirmation_threshold: float = 0.8,
        error_reset_seconds: float = 5.0,
        speak_responses: bool = True,
        logger: logging.Logger | None = None,
    ) -> None:
        self._classifier = classifier
        self._ai = ai_service
        self._validator = validator
        self._executor = executor
        self._context = context
        self._capture = capture
        self._speech = speech
        self._capture_options = capture_options or CaptureOptions()
        self._execution_threshold = execution_threshold
        self._confirmation_threshold = confirmation_threshold
        self._error_reset_seconds = error_reset_seconds
        self._speak_responses = speak_responses
        self._logger = logger or logging.getLogger("voice_shop.session")

        self._state = SessionState()
        self._history: deque[ConversationEntry] = deque(maxlen=history_limit)
        self._listeners: list[StateListener] = []
        self._capture_ready = False
        self._error_handle: asyncio.TimerHandle | None = None
        self._pending: set[asyncio.Task[Any]] = set()
        self.last_turn: VoiceTurn | None = None

    @property
    def state(self) -> SessionState:
        return replace(self._state)

    @property
    def history(self) -> list[ConversationEntry]:
        return list(self._history)

    def subscribe(self, callback: StateListener) -> Callable[[], None]:
        self._listeners.append(callback)

        def _unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _unsubscribe

    # listening

    async def start_listening(self) -> bool:
        self.clear_error()
        if self._capture is None:
            self._set_error("Speech recognition is not available. Please use the text input instead.")
            return False
        if not self._capture_ready:
            self._capture_ready = self._capture.initialize(self._capture_options, self._on_capture_event)
            if not self._capture_ready:
                if self._state.error is None:
                    self._set_error("Speech recognition could not be initialized.")
                return False
        started = await self._capture.start_listening()
        if not started:
            if self._state.error is None:
                self._set_error("Failed to start listening.")
            return False
        self._update(status=SessionStatus.LISTENING, is_listening=True, interim_transcript="")
        return True

    def stop_listening(self) -> None:
        if self._capture is not None:
            self._capture.stop_listening()

    async def wait_idle(self) -> None:
        """Wait for transcripts already handed off to finish processing."""
        while self._pending:
            await asyncio.wait(set(self._pending))

    def _on_capture_event(self, event: CaptureEvent) -> None:
        if isinstance(event, StartEvent):
            self._update(status=SessionStatus.LISTENING, is_listening=True)
        elif isinstance(event, ResultEvent):
            transcript = event.transcript
            if not transcript.is_final:
                self._update(interim_transcript=transcript.text)
                return
            self._update(transcript=transcript.text, interim_transcript="", confidence=transcript.confidence)
            task = asyncio.get_running_loop().create_task(self.process_text(transcript.text), name="voice-turn")
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
        elif isinstance(event, ErrorEvent):
            self._set_error(event.message)
        elif isinstance(event, EndEvent):
            changes: dict[str, Any] = {"is_listening": False}
            if self._state.status is SessionStatus.LISTENING:
                changes["status"] = SessionStatus.IDLE
            self._update(**changes)

    # one voice turn

    async def process_text(self, text: str) -> VoiceTurn | None:
        """Run one turn for a final transcript or typed input.

        Returns ``None`` only when even the deterministic fallback failed, in
        which case the session is in the error state.
        """
        utterance = " ".join(text.split())
        if self._state.status is SessionStatus.ERROR:
            self.clear_error()
        self._update(status=SessionStatus.PROCESSING, is_processing=True, transcript=utterance)

        resolved = await self._resolve(utterance)
        if resolved is None:
            self._update(is_processing=False)
            return None
        response, path = resolved

        self._history.append(ConversationEntry(user_input=utterance, system_response=response.response_text))
        self._update(intent=response, confidence=response.confidence)
        self._logger.info(
            "voice_turn_classified",
            extra={"path": path.value, "action": response.intent.action, "confidence": response.confidence},
        )

        speak_task = self._start_speaking(response.response_text)
        turn = VoiceTurn(transcript=utterance, response=response, path=path)
        turn.outcomes = await self._run_commands(response)
        self._update(is_processing=False)

        if speak_task is not None:
            await asyncio.wait({speak_task})
        await self._follow_up(turn)

        if self._state.status is not SessionStatus.ERROR:
            self._update(status=SessionStatus.LISTENING if self._state.is_listening else SessionStatus.IDLE)
        self.last_turn = turn
        return turn

    async def _resolve(self, utterance: str) -> tuple[IntentResponse, TurnPath] | None:
        try:
            classification = self._classifier.classify_intent(utterance)
            if classification.is_direct_command and classification.intent is not None:
                return classification.intent, TurnPath.FAST
            context = self._context.extract_page_context()
            analysis = await self._ai.analyze(utterance, context, list(self._history))
            return analysis.response, TurnPath.FALLBACK if analysis.used_fallback else TurnPath.AI
        except Exception:  # noqa: BLE001
            self._logger.exception("voice_turn_classification_failed")
        try:
            return create_fallback_response(utterance), TurnPath.FALLBACK
        except Exception as exc:  # noqa: BLE001
            self._logger.exception("voice_turn_fallback_failed")
            self._set_error(f"Could not process your request: {exc}")
            return None

    async def _run_commands(self, response: IntentResponse) -> list[CommandOutcome]:
        outcomes: list[CommandOutcome] = []
        below_threshold = response.confidence < self._execution_threshold
        for command in response.commands:
            if below_threshold:
                outcomes.append(
                    CommandOutcome(
                        command=command,
                        status=OutcomeStatus.SKIPPED_LOW_CONFIDENCE,
                        reason=f"confidence {response.confidence:.2f} below {self._execution_threshold:.2f}",
                    )
                )
                continue
            if command.requires_confirmation and response.confidence < self._confirmation_threshold:
                outcomes.append(
                    CommandOutcome(
                        command=command,
                        status=OutcomeStatus.SKIPPED_NEEDS_CONFIRMATION,
                        reason=f"confirmation requires confidence {self._confirmation_threshold:.2f}",
                    )
                )
                continue
            outcomes.append(await self._run_command(command))
        skipped = [outcome for outcome in outcomes if outcome.status is not OutcomeStatus.EXECUTED]
        if skipped:
            self._logger.info("voice_turn_commands_skipped", extra={"count": len(skipped)})
        return outcomes

    async def _run_command(self, command: Command) -> CommandOutcome:
        context = self._context.extract_page_context()
        validation = self._validator.validate_command(command, context)
        if not validation.is_valid:
            self._logger.info(
                "command_rejected",
                extra={"action": command.action, "errors": validation.errors},
            )
            return CommandOutcome(command=command, status=OutcomeStatus.INVALID, validation=validation)
        try:
            result = await self._executor.execute_command(command, context)
        except Exception as exc:  # noqa: BLE001
            self._logger.exception("command_execution_crashed", extra={"action": command.action})
            self._set_error(f"Failed to execute {command.action}: {exc}")
            return CommandOutcome(command=command, status=OutcomeStatus.FAILED, validation=validation, reason=str(exc))
        return CommandOutcome(command=command, status=OutcomeStatus.EXECUTED, validation=validation, result=result)

    async def _follow_up(self, turn: VoiceTurn) -> None:
        guidance: list[str] = []
        for outcome in turn.outcomes:
            if outcome.status is OutcomeStatus.INVALID and outcome.validation is not None:
                problem = "; ".join(outcome.validation.errors)
                fixes = " ".join(outcome.validation.suggested_fixes)
                self._executor.notifications.show_notification(
                    Notification(
                        type=NotificationType.WARNING,
                        title="Command Needs Attention",
                        message=f"{problem}. {fixes}".strip(),
                        duration_ms=4000,
                    )
                )
                guidance.append(fixes or problem)
            elif outcome.result is not None and isinstance(outcome.result.data, dict):
                if outcome.result.data.get("stop") and self._speech is not None:
                    self._speech.stop()
                elif outcome.result.data.get("repeat"):
                    previous = self._previous_response()
                    if previous:
                        guidance.append(previous)
        if guidance:
            speak_task = self._start_speaking(" ".join(guidance))
            if speak_task is not None:
                await asyncio.wait({speak_task})

    def _previous_response(self) -> str | None:
        if len(self._history) < 2:
            return None
        return self._history[-2].system_response

    # speech

    def _start_speaking(self, text: str) -> asyncio.Task[None] | None:
        if self._speech is None or not self._speak_responses or not text.strip():
            return None
        return asyncio.get_running_loop().create_task(self._speak(text), name="voice-response")

    async def _speak(self, text: str) -> None:
        if self._state.status is SessionStatus.ERROR:
            self._update(is_speaking=True)
        else:
            self._update(status=SessionStatus.SPEAKING, is_speaking=True)
        try:
            await self._speech.speak(text)
        except SpeechOutputError as exc:
            self._logger.error("voice_response_unspoken", extra={"error": str(exc)})
            self._set_error(f"Could not play the response: {exc}")
        finally:
            self._update(is_speaking=False)

    # maintenance

    def health_check(self) -> dict[str, Any]:
        try:
            self._context.extract_page_context()
            context_ok = True
        except Exception:  # noqa: BLE001
            context_ok = False
        return {
            "speech_capture": self._capture is not None and self._capture.is_supported(),
            "speech_output": self._speech is not None,
            "speech_engines": self._speech.engine_names if self._speech is not None else [],
            "ai": self._ai.available,
            "context": context_ok,
        }

    def clear_history(self) -> None:
        self._history.clear()
        self._logger.info("history_cleared")

    def clear_error(self) -> None:
        if self._error_handle is not None:
            self._error_handle.cancel()
            self._error_handle = None
        if self._state.status is SessionStatus.ERROR or self._state.error is not None:
            status = self._state.status
            if status is SessionStatus.ERROR:
                status = SessionStatus.LISTENING if self._state.is_listening else SessionStatus.IDLE
            self._update(status=status, error=None)

    async def reset(self) -> None:
        self.stop_listening()
        if self._speech is not None:
            self._speech.stop()
        if self._capture is not None:
            await self._capture.cleanup()
            self._capture_ready = False
        self.clear_history()
        self.clear_error()
        self.last_turn = None
        self._state = SessionState()
        self._notify()

    def _set_error(self, message: str) -> None:
        self._logger.warning("session_error", extra={"error": message})
        self._update(status=SessionStatus.ERROR, error=message)
        if self._error_handle is not None:
            self._error_handle.cancel()
            self._error_handle = None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        if self._error_reset_seconds > 0:
            self._error_handle = loop.call_later(self._error_reset_seconds, self.clear_error)

    def _update(self, **changes: Any) -> None:
        for key, value in changes.items():
            setattr(self._state, key, value)
        self._notify()

    def _notify(self) -> None:
        snapshot = replace(self._state)
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:  # noqa: BLE001
                self._logger.exception("session_listener_failed")
