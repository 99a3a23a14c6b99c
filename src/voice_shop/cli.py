"""CLI-side session wrapper and turn formatting."""

from __future__ import annotations

import asyncio
from typing import Any

from voice_shop.assistant import VoiceShopAssistant
from voice_shop.session import VoiceTurn


class CliSessionHandler:
    """Sync-friendly facade that drives the async session on one private loop."""

    def __init__(self, assistant: VoiceShopAssistant) -> None:
        self._assistant = assistant
        self._loop = asyncio.new_event_loop()

    @property
    def assistant(self) -> VoiceShopAssistant:
        return self._assistant

    def ask(self, text: str) -> VoiceTurn | None:
        return self._loop.run_until_complete(self._assistant.session.process_text(text))

    def listen_once(self) -> VoiceTurn | None:
        """Capture a single utterance and process it; ``None`` when nothing was understood."""
        return self._loop.run_until_complete(self._listen_once())

    async def _listen_once(self) -> VoiceTurn | None:
        session = self._assistant.session
        before = session.last_turn
        if not await session.start_listening():
            return None
        if self._assistant.capture is not None:
            await self._assistant.capture.wait_closed()
        await session.wait_idle()
        turn = session.last_turn
        return turn if turn is not before else None

    def close(self) -> None:
        if self._loop.is_closed():
            return
        self._loop.run_until_complete(self._assistant.session.reset())
        self._loop.close()


def describe_turn(turn: VoiceTurn, *, current_url: str | None = None) -> dict[str, Any]:
    response = turn.response
    payload: dict[str, Any] = {
        "heard": turn.transcript,
        "path": turn.path.value,
        "intent": response.intent.action,
        "confidence": round(response.confidence, 2),
        "response": response.response_text,
        "commands": [
            {
                "action": outcome.command.action,
                "status": outcome.status.value,
                "message": outcome.result.message if outcome.result is not None else outcome.reason,
                "errors": list(outcome.validation.errors) if outcome.validation is not None else [],
            }
            for outcome in turn.outcomes
        ],
    }
    if response.requires_clarification:
        payload["clarification"] = response.clarification_question
    if response.suggested_actions:
        payload["suggested_actions"] = list(response.suggested_actions)
    if current_url is not None:
        payload["url"] = current_url
    return payload
