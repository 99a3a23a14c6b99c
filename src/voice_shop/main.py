"""CLI startup entrypoint for the voice shopping assistant."""

from __future__ import annotations

import typer
from rich import print

from voice_shop.assistant import VoiceShopAssistant, build_assistant
from voice_shop.cli import CliSessionHandler, describe_turn
from voice_shop.config import settings
from voice_shop.engine import Notification
from voice_shop.intents import IntentClassifier
from voice_shop.telemetry import configure_logging

app = typer.Typer(help="Voice shopping assistant entrypoint")


def _build_handler(*, speak: bool) -> CliSessionHandler:
    configure_logging(settings.log_level)
    assistant = build_assistant(settings, with_voice=speak)
    assistant.notifications.register_notification_callback(_print_notification)
    return CliSessionHandler(assistant)


def _print_notification(notification: Notification) -> None:
    print({"notification": notification.title, "type": notification.type.value, "message": notification.message})


def _cart_summary(assistant: VoiceShopAssistant) -> dict:
    return {
        "items": [item.to_dict() for item in assistant.cart.items()],
        "total": round(assistant.cart.total(), 2),
    }


@app.command()
def start() -> None:
    """Show runtime configuration."""
    print(
        {
            "app_name": settings.app_name,
            "ai_model": settings.ai_model,
            "ai_api_key": "set" if settings.ai_api_key else None,
            "tts_engine": settings.tts_engine,
            "stt_language": settings.stt_language,
            "cart_path": settings.cart_path,
            "voice_enabled": settings.voice_enabled,
        }
    )


@app.command()
def doctor() -> None:
    """Report which speech and AI capabilities are usable on this machine."""
    handler = _build_handler(speak=True)
    try:
        print(handler.assistant.session.health_check())
    finally:
        handler.close()


@app.command()
def classify(text: str) -> None:
    """Run only the pattern classifier on TEXT."""
    result = IntentClassifier().classify_intent(text)
    print(
        {
            "is_direct_command": result.is_direct_command,
            "confidence": result.confidence,
            "requires_ai": result.requires_ai,
            "reason": result.reason,
            "intent": result.intent.intent.action if result.intent is not None else None,
        }
    )


@app.command()
def ask(
    text: str,
    speak: bool = typer.Option(False, "--speak/--no-speak", help="Speak the response aloud"),
) -> None:
    """Process one typed utterance through the full pipeline."""
    handler = _build_handler(speak=speak)
    try:
        turn = handler.ask(text)
        if turn is None:
            print({"error": handler.assistant.session.state.error})
            raise typer.Exit(code=1)
        print(describe_turn(turn, current_url=handler.assistant.router.current_url))
    finally:
        handler.close()


@app.command()
def chat(
    speak: bool = typer.Option(False, "--speak/--no-speak", help="Speak each response aloud"),
) -> None:
    """Interactive typed conversation; enter 'quit' to exit."""
    handler = _build_handler(speak=speak)
    print({"chat": "started", "hint": "Type a request, 'cart' to show the cart, or 'quit' to exit."})
    try:
        while True:
            try:
                text = input("> ").strip()
            except EOFError:
                break
            if not text:
                continue
            if text.lower() in {"quit", "exit"}:
                break
            if text.lower() == "cart":
                print(_cart_summary(handler.assistant))
                continue
            turn = handler.ask(text)
            if turn is None:
                print({"error": handler.assistant.session.state.error})
                continue
            print(describe_turn(turn, current_url=handler.assistant.router.current_url))
    finally:
        handler.close()
    print({"chat": "stopped"})


@app.command("voice-chat")
def voice_chat(
    continuous: bool = typer.Option(False, help="Keep the microphone open between utterances"),
    phrase_time_limit: float = typer.Option(None, help="Per-utterance capture limit in seconds"),
) -> None:
    """Run an interactive voice loop with local STT/TTS backends."""
    try:
        from voice_shop.voice.stt_speechrecognition import SpeechRecognitionBackend
    except ImportError:
        print({"error": "Voice extras are missing. Install with: pip install 'voice-shop-assistant[voice]'"})
        raise typer.Exit(code=1)

    try:
        recognition = SpeechRecognitionBackend(
            phrase_time_limit=phrase_time_limit or settings.stt_phrase_time_limit,
        )
    except RuntimeError as exc:
        print({"error": str(exc)})
        raise typer.Exit(code=1)

    configure_logging(settings.log_level)
    voice_settings = settings.model_copy(update={"stt_continuous": continuous})
    assistant = build_assistant(voice_settings, recognition=recognition, with_voice=True)
    assistant.notifications.register_notification_callback(_print_notification)
    handler = CliSessionHandler(assistant)

    print(
        {
            "voice_chat": "started",
            "engines": assistant.speech.engine_names if assistant.speech is not None else [],
            "hint": "Press Enter to capture each utterance; say 'stop listening' to exit.",
        }
    )
    try:
        while True:
            try:
                input("Press Enter to capture voice (Ctrl+C to quit) ...")
            except EOFError:
                break
            turn = handler.listen_once()
            if turn is None:
                error = assistant.session.state.error
                if error:
                    print({"error": error})
                continue
            if "stop listening" in turn.transcript.lower():
                print({"voice_chat": "stopped"})
                break
            print(describe_turn(turn, current_url=assistant.router.current_url))
    except KeyboardInterrupt:
        print({"voice_chat": "interrupted"})
    finally:
        handler.close()


if __name__ == "__main__":
    app()
