"""Slow-path intent analysis through an external LLM endpoint."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Sequence

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from voice_shop.commands import Command
from voice_shop.config import Settings
from voice_shop.intents.fallback import create_fallback_response
from voice_shop.intents.prompt import build_analysis_prompt
from voice_shop.models import ConversationEntry, Entity, Intent, IntentResponse, PageContext, clamp_confidence

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


class AIServiceError(RuntimeError):
    """Raised inside the service when the endpoint cannot produce a usable answer."""


class _Position(BaseModel):
    start: int | None = None
    end: int | None = None


class _EntityPayload(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    type: str = "unknown"
    value: str = ""
    confidence: Any = 0.5
    position: _Position | None = None


class _IntentPayload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    action: str | None = None
    confidence: Any = 0.5
    entities: dict[str, Any] | None = None
    clarification_needed: bool | None = Field(default=None, alias="clarificationNeeded")
    clarification_question: str | None = Field(default=None, alias="clarificationQuestion")


class _CommandPayload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    action: str | None = None
    parameters: dict[str, Any] | None = None
    confidence: Any = 0.5
    requires_confirmation: bool | None = Field(default=None, alias="requiresConfirmation")


class IntentPayload(BaseModel):
    """Shape of the JSON object the model is asked to return."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    intent: _IntentPayload | None = None
    entities: list[_EntityPayload] | None = None
    commands: list[_CommandPayload] | None = None
    response_text: str | None = Field(default=None, alias="responseText")
    confidence: Any = 0.5
    requires_clarification: bool | None = Field(default=None, alias="requiresClarification")
    clarification_question: str | None = Field(default=None, alias="clarificationQuestion")
    suggested_actions: list[str] | None = Field(default=None, alias="suggestedActions")

    def to_response(self) -> IntentResponse:
        intent_payload = self.intent or _IntentPayload()
        intent = Intent(
            action=(intent_payload.action or "unknown").strip() or "unknown",
            confidence=clamp_confidence(intent_payload.confidence),
            entities=dict(intent_payload.entities or {}),
            clarification_needed=bool(intent_payload.clarification_needed),
            clarification_question=intent_payload.clarification_question,
        )
        commands = [
            Command.from_dict(
                {
                    "action": command.action,
                    "parameters": command.parameters or {},
                    "confidence": command.confidence,
                    "requiresConfirmation": bool(command.requires_confirmation),
                }
            )
            for command in self.commands or []
            if (command.action or "").strip()
        ]
        entities = [
            Entity(
                type=entity.type,
                value=entity.value,
                confidence=clamp_confidence(entity.confidence),
                start=entity.position.start if entity.position else None,
                end=entity.position.end if entity.position else None,
            )
            for entity in self.entities or []
        ]
        return IntentResponse(
            intent=intent,
            commands=commands,
            response_text=self.response_text or "",
            confidence=clamp_confidence(self.confidence),
            entities=entities,
            requires_clarification=bool(self.requires_clarification),
            clarification_question=self.clarification_question,
            suggested_actions=list(self.suggested_actions or []),
        )


@dataclass(slots=True)
class AIAnalysis:
    """One slow-path answer plus whether the deterministic fallback produced it."""

    response: IntentResponse
    used_fallback: bool = False
    error: str | None = None


def parse_model_text(text: str) -> IntentResponse:
    """Parse the first JSON object embedded in the model's reply."""
    match = _JSON_OBJECT_RE.search(text or "")
    if match is None:
        raise AIServiceError("No JSON found in response")
    try:
        raw = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise AIServiceError(f"Invalid JSON in response: {exc.msg}") from exc
    if not isinstance(raw, dict):
        raise AIServiceError("Response JSON is not an object")
    try:
        payload = IntentPayload.model_validate(raw)
    except ValidationError as exc:
        raise AIServiceError(f"Malformed response fields: {exc.error_count()} error(s)") from exc
    return payload.to_response()


def extract_candidate_text(body: Any) -> str:
    try:
        return str(body["candidates"][0]["content"]["parts"][0]["text"] or "")
    except (KeyError, IndexError, TypeError):
        return ""


class AIIntentService:
    """Sends one utterance plus context to the model and returns an :class:`IntentResponse`.

    ``analyze_intent`` never raises: a missing key, a transport failure, a
    non-2xx status or an unparsable reply all resolve to
    :func:`create_fallback_response`. Requests are not retried.
    """

    def __init__(
        self,
        *,
        api_key: str | None,
        endpoint: str = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent",
        model: str = "gemini-1.5-pro",
        api_key_header: str = "x-goog-api-key",
        timeout_seconds: float = 15.0,
        temperature: float = 0.3,
        max_output_tokens: int = 1024,
        history_window: int = 3,
        client: httpx.AsyncClient | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._api_key = (api_key or "").strip() or None
        self._endpoint = endpoint
        self._model = model
        self._api_key_header = api_key_header
        self._timeout_seconds = timeout_seconds
        self._temperature = temperature
        self._max_output_tokens = max_output_tokens
        self._history_window = max(3, min(5, history_window))
        self._client = client
        self._logger = logger or logging.getLogger("voice_shop.intents.ai_service")

    @classmethod
    def from_settings(cls, settings: Settings, *, client: httpx.AsyncClient | None = None) -> AIIntentService:
        return cls(
            api_key=settings.ai_api_key,
            endpoint=settings.ai_endpoint,
            model=settings.ai_model,
            api_key_header=settings.ai_api_key_header,
            timeout_seconds=settings.ai_timeout_seconds,
            temperature=settings.ai_temperature,
            max_output_tokens=settings.ai_max_output_tokens,
            history_window=settings.history_window,
            client=client,
        )

    @property
    def available(self) -> bool:
        return self._api_key is not None

    @property
    def url(self) -> str:
        return self._endpoint.format(model=self._model)

    async def analyze_intent(
        self,
        text: str,
        context: PageContext,
        history: Sequence[ConversationEntry] = (),
    ) -> IntentResponse:
        analysis = await self.analyze(text, context, history)
        return analysis.response

    async def analyze(
        self,
        text: str,
        context: PageContext,
        history: Sequence[ConversationEntry] = (),
    ) -> AIAnalysis:
        try:
            if not self.available:
                raise AIServiceError("AI API key is not configured")
            prompt = build_analysis_prompt(text, context, history, window=self._history_window)
            reply = await self.request_completion(prompt)
            response = parse_model_text(reply)
        except Exception as exc:  # noqa: BLE001
            reason = f"{type(exc).__name__}: {exc}"
            self._logger.warning("ai_intent_fallback", extra={"reason": reason})
            return AIAnalysis(response=create_fallback_response(text), used_fallback=True, error=reason)

        self._logger.info(
            "ai_intent_resolved",
            extra={"action": response.intent.action, "confidence": response.confidence, "commands": len(response.commands)},
        )
        return AIAnalysis(response=response)

    def build_request_body(self, prompt: str) -> dict[str, Any]:
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self._temperature,
                "topK": 40,
                "topP": 0.95,
                "maxOutputTokens": self._max_output_tokens,
            },
        }

    def build_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            if self._api_key_header.lower() == "authorization":
                headers["Authorization"] = f"Bearer {self._api_key}"
            else:
                headers[self._api_key_header] = self._api_key
        return headers

    async def request_completion(self, prompt: str) -> str:
        """POST the prompt and return the first candidate's text."""
        body = self.build_request_body(prompt)
        headers = self.build_headers()
        try:
            if self._client is not None:
                response = await self._client.post(self.url, json=body, headers=headers, timeout=self._timeout_seconds)
            else:
                async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
                    response = await client.post(self.url, json=body, headers=headers)
        except httpx.HTTPError as exc:
            raise AIServiceError(f"AI endpoint request failed: {exc}") from exc

        if response.status_code != 200:
            self._logger.error(
                "ai_endpoint_error",
                extra={"status_code": response.status_code, "detail": response.text[:500]},
            )
            raise AIServiceError(f"AI endpoint error: {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            raise AIServiceError("AI endpoint returned a non-JSON body") from exc

        text = extract_candidate_text(data)
        if not text.strip():
            raise AIServiceError("No response text from AI endpoint")
        return text
