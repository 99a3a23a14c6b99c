import asyncio
import json

import httpx
import pytest

from voice_shop.commands import AddToCartParams
from voice_shop.intents import AIIntentService, AIServiceError, build_analysis_prompt
from voice_shop.intents.ai_service import parse_model_text
from voice_shop.models import DEFAULT_CLARIFICATION, CartItem, ConversationEntry, PageContext

MODEL_REPLY = """Here is the analysis:
```json
{
  "intent": {"action": "add_to_cart", "confidence": 0.92, "entities": {"product": "headphones"}},
  "entities": [{"type": "product", "value": "headphones", "confidence": 0.9, "position": {"start": 4, "end": 14}}],
  "commands": [
    {"action": "add_to_cart", "parameters": {"productId": "p2", "quantity": 2}, "confidence": 0.9,
     "requiresConfirmation": false}
  ],
  "responseText": "Adding the Sony headphones to your cart.",
  "confidence": 0.9,
  "requiresClarification": false,
  "suggestedActions": ["view_cart"]
}
```"""


def _gemini_body(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def _service(handler, **kwargs) -> tuple[AIIntentService, httpx.AsyncClient]:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return AIIntentService(api_key=kwargs.pop("api_key", "secret"), client=client, **kwargs), client


def _analyze(service: AIIntentService, client: httpx.AsyncClient, text: str, context: PageContext | None = None):
    async def _run():
        try:
            return await service.analyze(text, context or PageContext())
        finally:
            await client.aclose()

    return asyncio.run(_run())


def test_successful_reply_is_parsed_into_commands() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=_gemini_body(MODEL_REPLY))

    service, client = _service(handler)
    analysis = _analyze(service, client, "add two sony headphones", PageContext(current_page="product_listing"))

    assert analysis.used_fallback is False
    response = analysis.response
    assert response.intent.action == "add_to_cart"
    assert response.confidence == 0.9
    assert response.commands[0].parameters == AddToCartParams(product_id="p2", quantity=2)
    assert response.entities[0].start == 4
    assert response.suggested_actions == ["view_cart"]

    request = seen[0]
    assert request.headers["x-goog-api-key"] == "secret"
    assert str(request.url).endswith("/models/gemini-1.5-pro:generateContent")
    body = json.loads(request.content)
    assert body["generationConfig"]["temperature"] == 0.3
    assert "add two sony headphones" in body["contents"][0]["parts"][0]["text"]


def test_malformed_reply_falls_back() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_gemini_body("I am not JSON at all"))

    service, client = _service(handler)
    analysis = _analyze(service, client, "what about something cheaper, similar to this but in blue")

    assert analysis.used_fallback is True
    assert analysis.response.confidence == 0.5
    assert analysis.response.requires_clarification is True
    assert "No JSON found" in analysis.error


def test_http_error_status_falls_back() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="overloaded")

    service, client = _service(handler)
    analysis = _analyze(service, client, "show the cart please")

    assert analysis.used_fallback is True
    assert analysis.response.intent.action == "view_cart"


def test_missing_key_never_calls_endpoint() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json=_gemini_body(MODEL_REPLY))

    service, client = _service(handler, api_key=None)
    analysis = _analyze(service, client, "add something nice")

    assert service.available is False
    assert calls == []
    assert analysis.used_fallback is True
    assert analysis.response.requires_clarification is True


def test_clarification_without_question_gets_default_question() -> None:
    reply = '{"intent": {"action": "unknown", "confidence": 0.4}, "confidence": 0.4, "requiresClarification": true}'

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_gemini_body(reply))

    service, client = _service(handler)
    analysis = _analyze(service, client, "that one")

    response = analysis.response
    assert analysis.used_fallback is False
    assert response.requires_clarification is True
    assert response.clarification_question == DEFAULT_CLARIFICATION
    assert response.response_text == DEFAULT_CLARIFICATION


def test_authorization_header_sends_bearer_token() -> None:
    service = AIIntentService(api_key="token", api_key_header="Authorization")

    assert service.build_headers()["Authorization"] == "Bearer token"


def test_parse_model_text_clamps_confidence_and_drops_empty_actions() -> None:
    response = parse_model_text(
        '{"intent": {"action": "search", "confidence": 3}, "confidence": -1,'
        ' "commands": [{"action": ""}, {"action": "search", "parameters": {"query": "tv"}}]}'
    )

    assert response.intent.confidence == 1.0
    assert response.confidence == 0.0
    assert [command.action for command in response.commands] == ["search"]
    assert response.commands[0].confidence == 0.5

    with pytest.raises(AIServiceError):
        parse_model_text("[1, 2, 3]")


def test_prompt_includes_context_and_recent_history_only() -> None:
    context = PageContext(
        current_page="cart",
        route="/cart",
        cart_items=[CartItem(id="p1", name="Apple iPhone 15 Pro Max", price=1199.99)],
    )
    history = [ConversationEntry(user_input=f"turn {index}", system_response=f"reply {index}") for index in range(6)]

    prompt = build_analysis_prompt("remove it", context, history, window=3)

    assert 'USER COMMAND: "remove it"' in prompt
    assert "- Current Page: cart" in prompt
    assert "Apple iPhone 15 Pro Max" in prompt
    assert "turn 5" in prompt and "turn 3" in prompt
    assert "turn 2" not in prompt
