from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from .cart import CartRepository, InMemoryCartStore, JsonCartStore
from .catalog import InMemoryProductCatalog, ProductCatalog
from .config import Settings
from .context import ContextExtractor
from .engine import (
    CommandExecutionEngine,
    CommandValidationEngine,
    NotificationCenter,
    ShoppingCommandHandler,
)
from .intents import AIIntentService, IntentClassifier
from .navigation import RouterState
from .session import VoiceSessionOrchestrator
from .voice import (
    CaptureOptions,
    EngineChoice,
    SpeechCaptureAdapter,
    SpeechOptions,
    SpeechOutputAdapter,
)
from .voice.interfaces import RecognitionBackend, SpeechSynthesisStrategy

logger = logging.getLogger("voice_shop.assistant")


@dataclass(slots=True)
class VoiceShopAssistant:
    """Wired collaborators for one shopper session."""

    settings: Settings
    router: RouterState
    cart: CartRepository
    catalog: ProductCatalog
    notifications: NotificationCenter
    session: VoiceSessionOrchestrator
    speech: SpeechOutputAdapter | None = None
    capture: SpeechCaptureAdapter | None = None


def build_speech_engines(settings: Settings) -> dict[EngineChoice, SpeechSynthesisStrategy]:
    """Instantiate whichever local and network TTS engines are installed."""
    from .voice.tts_cloud import EdgeTTSSpeechStrategy, GTTSSpeechStrategy
    from .voice.tts_espeak import EspeakSpeechStrategy
    from .voice.tts_pyttsx3 import Pyttsx3SpeechStrategy

    factories = (
        (EngineChoice.PRIMARY, lambda: Pyttsx3SpeechStrategy(voice_id=settings.tts_voice)),
        (EngineChoice.SECONDARY, GTTSSpeechStrategy),
        (EngineChoice.TERTIARY, EdgeTTSSpeechStrategy),
        (EngineChoice.QUATERNARY, EspeakSpeechStrategy),
    )
    engines: dict[EngineChoice, SpeechSynthesisStrategy] = {}
    for tier, factory in factories:
        try:
            engines[tier] = factory()
        except Exception as exc:  # noqa: BLE001
            logger.info("tts_engine_unavailable", extra={"tier": tier.value, "error": str(exc)})
    return engines


def build_recognition_backend(settings: Settings) -> RecognitionBackend | None:
    from .voice.stt_speechrecognition import SpeechRecognitionBackend

    try:
        return SpeechRecognitionBackend(phrase_time_limit=settings.stt_phrase_time_limit)
    except RuntimeError as exc:
        logger.info("stt_backend_unavailable", extra={"error": str(exc)})
        return None


def build_assistant(
    settings: Settings,
    *,
    recognition: RecognitionBackend | None = None,
    engines: dict[EngineChoice, SpeechSynthesisStrategy] | None = None,
    catalog: ProductCatalog | None = None,
    http_client: httpx.AsyncClient | None = None,
    with_voice: bool | None = None,
) -> VoiceShopAssistant:
    """Compose a session from settings.

    ``with_voice`` defaults to ``settings.voice_enabled``. When voice is
    disabled no capture adapter is created and responses are not spoken.
    """
    voice = settings.voice_enabled if with_voice is None else with_voice

    router = RouterState()
    store = JsonCartStore(settings.cart_path) if settings.cart_path else InMemoryCartStore()
    cart = CartRepository(store)
    catalog = catalog or InMemoryProductCatalog()
    notifications = NotificationCenter()
    validator = CommandValidationEngine()
    executor = CommandExecutionEngine(
        cart=cart,
        navigator=router,
        shopping=ShoppingCommandHandler(catalog, cart),
        notifications=notifications,
        validator=validator,
    )

    capture: SpeechCaptureAdapter | None = None
    speech: SpeechOutputAdapter | None = None
    if voice:
        backend = recognition if recognition is not None else build_recognition_backend(settings)
        capture = SpeechCaptureAdapter(backend)
        speech = SpeechOutputAdapter(
            engines if engines is not None else build_speech_engines(settings),
            default_options=SpeechOptions(
                voice=settings.tts_voice,
                rate=settings.tts_rate,
                pitch=settings.tts_pitch,
                volume=settings.tts_volume,
                language=settings.stt_language,
                engine=settings.tts_engine,
            ),
        )

    session = VoiceSessionOrchestrator(
        classifier=IntentClassifier(),
        ai_service=AIIntentService.from_settings(settings, client=http_client),
        validator=validator,
        executor=executor,
        context=ContextExtractor(router, cart, catalog),
        capture=capture,
        speech=speech,
        capture_options=CaptureOptions(
            continuous=settings.stt_continuous,
            interim_results=settings.stt_interim_results,
            language=settings.stt_language,
            confidence_threshold=settings.stt_confidence_threshold,
        ),
        history_limit=settings.history_limit,
        execution_threshold=settings.execution_confidence_threshold,
        confirmation_threshold=settings.confirmation_confidence_threshold,
        error_reset_seconds=settings.error_reset_seconds,
        speak_responses=voice,
    )
    return VoiceShopAssistant(
        settings=settings,
        router=router,
        cart=cart,
        catalog=catalog,
        notifications=notifications,
        session=session,
        speech=speech,
        capture=capture,
    )
