import asyncio
import sys
import types

from voice_shop.voice import (
    CaptureOptions,
    CaptureState,
    EndEvent,
    ErrorEvent,
    RawRecognition,
    RawRecognitionError,
    RawSpeechBoundary,
    ResultEvent,
    SpeechCaptureAdapter,
    SpeechStartEvent,
    StartEvent,
)


class StubBackend:
    def __init__(self, events=(), *, supported: bool = True, granted: bool = True, block: bool = False) -> None:
        self.events = list(events)
        self.supported = supported
        self.granted = granted
        self.block = block
        self.sessions = 0

    def is_supported(self) -> bool:
        return self.supported

    async def request_microphone(self) -> bool:
        return self.granted

    async def recognize(self, options: CaptureOptions):
        self.sessions += 1
        for event in self.events:
            yield event
        if self.block:
            await asyncio.Event().wait()


def _listen(backend: StubBackend, options: CaptureOptions | None = None) -> tuple[bool, list]:
    events: list = []

    async def _run() -> bool:
        adapter = SpeechCaptureAdapter(backend)
        adapter.initialize(options or CaptureOptions(), events.append)
        started = await adapter.start_listening()
        await adapter.wait_closed()
        return started

    return asyncio.run(_run()), events


def test_final_result_produces_transcript_and_closes_session() -> None:
    backend = StubBackend(
        [
            RawSpeechBoundary(started=True),
            RawRecognition([("show my cart", 0.93), ("show my card", 0.4)]),
            RawSpeechBoundary(started=False),
        ]
    )

    started, events = _listen(backend)

    assert started is True
    assert [type(event) for event in events] == [StartEvent, SpeechStartEvent, ResultEvent, EndEvent]
    transcript = events[2].transcript
    assert transcript.text == "show my cart"
    assert transcript.confidence == 0.93
    assert transcript.is_final is True
    assert transcript.alternatives == ["show my card"]


def test_low_confidence_is_reported_instead_of_a_result() -> None:
    started, events = _listen(StubBackend([RawRecognition([("mumble", 0.4)])]))

    errors = [event for event in events if isinstance(event, ErrorEvent)]
    assert started is True
    assert not any(isinstance(event, ResultEvent) for event in events)
    assert errors[0].code == "low-confidence"
    assert errors[0].message == "Low confidence: 40.0%"
    assert isinstance(events[-1], EndEvent)


def test_interim_results_only_when_requested() -> None:
    interim = RawRecognition([("show m", 0.1)], is_final=False)
    final = RawRecognition([("show my cart", 0.9)])

    _, without = _listen(StubBackend([interim, final]))
    _, with_interim = _listen(StubBackend([interim, final]), CaptureOptions(interim_results=True))

    assert [event.transcript.is_final for event in without if isinstance(event, ResultEvent)] == [True]
    results = [event.transcript for event in with_interim if isinstance(event, ResultEvent)]
    assert [(result.text, result.confidence, result.is_final) for result in results] == [
        ("show m", 0.5, False),
        ("show my cart", 0.9, True),
    ]


def test_engine_errors_map_to_messages() -> None:
    _, events = _listen(StubBackend([RawRecognitionError("network", "dns")]))

    error = next(event for event in events if isinstance(event, ErrorEvent))
    assert error.code == "network"
    assert error.message == "Network error occurred during speech recognition."


def test_unsupported_platform_reports_error_and_never_starts() -> None:
    events: list = []

    async def _run() -> tuple[bool, bool]:
        adapter = SpeechCaptureAdapter(None)
        initialized = adapter.initialize({"continuous": True, "unknown": 1}, events.append)
        return initialized, await adapter.start_listening()

    initialized, started = asyncio.run(_run())

    assert (initialized, started) == (False, False)
    assert all(isinstance(event, ErrorEvent) and event.code == "unsupported" for event in events)
    assert not any(isinstance(event, StartEvent) for event in events)


def test_denied_microphone_reports_not_allowed() -> None:
    started, events = _listen(StubBackend(granted=False))

    assert started is False
    assert [event.code for event in events] == ["not-allowed"]


def test_stop_is_idempotent_and_ends_once() -> None:
    backend = StubBackend(block=True)
    events: list = []

    async def _run() -> SpeechCaptureAdapter:
        adapter = SpeechCaptureAdapter(backend)
        adapter.initialize(CaptureOptions(continuous=True), events.append)
        assert await adapter.start_listening() is True
        assert await adapter.start_listening() is True
        await asyncio.sleep(0.01)
        adapter.stop_listening()
        adapter.stop_listening()
        await adapter.wait_closed()
        adapter.stop_listening()
        return adapter

    adapter = asyncio.run(_run())

    assert backend.sessions == 1
    assert sum(isinstance(event, EndEvent) for event in events) == 1
    assert adapter.state is CaptureState.ENDED
    assert adapter.is_listening is False


def _fake_speech_recognition(payload) -> types.ModuleType:
    module = types.ModuleType("speech_recognition")

    class WaitTimeoutError(Exception):
        pass

    class UnknownValueError(Exception):
        pass

    class RequestError(Exception):
        pass

    class Microphone:
        def __init__(self, **kwargs) -> None:
            self.kwargs = kwargs

        @staticmethod
        def list_microphone_names() -> list[str]:
            return ["default"]

        def __enter__(self):
            return self

        def __exit__(self, *exc) -> None:
            return None

    class Recognizer:
        def adjust_for_ambient_noise(self, source, duration: float) -> None:
            return None

        def listen(self, source, timeout=None, phrase_time_limit=None) -> bytes:
            return b"audio"

        def recognize_google(self, audio, language: str = "en-US", show_all: bool = False):
            return payload

    module.WaitTimeoutError = WaitTimeoutError
    module.UnknownValueError = UnknownValueError
    module.RequestError = RequestError
    module.Microphone = Microphone
    module.Recognizer = Recognizer
    return module


def test_speech_recognition_backend_feeds_capture(monkeypatch) -> None:
    payload = {
        "alternative": [
            {"transcript": "search for running shoes", "confidence": 0.88},
            {"transcript": "search for running shoe"},
        ]
    }
    monkeypatch.setitem(sys.modules, "speech_recognition", _fake_speech_recognition(payload))
    from voice_shop.voice.stt_speechrecognition import SpeechRecognitionBackend

    backend = SpeechRecognitionBackend(adjust_noise_seconds=0)
    events: list = []

    async def _run() -> None:
        adapter = SpeechCaptureAdapter(backend)
        assert adapter.initialize(CaptureOptions(), events.append) is True
        assert await adapter.start_listening() is True
        await adapter.wait_closed()

    asyncio.run(_run())

    results = [event.transcript for event in events if isinstance(event, ResultEvent)]
    assert [(result.text, result.confidence, result.alternatives) for result in results] == [
        ("search for running shoes", 0.88, ["search for running shoe"])
    ]


def test_stop_right_after_start_still_ends_session() -> None:
    backend = StubBackend(block=True)
    events: list = []

    async def _run() -> SpeechCaptureAdapter:
        adapter = SpeechCaptureAdapter(backend)
        adapter.initialize(CaptureOptions(continuous=True), events.append)
        assert await adapter.start_listening() is True
        adapter.stop_listening()
        await adapter.wait_closed()
        return adapter

    adapter = asyncio.run(_run())

    assert [type(event) for event in events] == [StartEvent, EndEvent]
    assert adapter.state is CaptureState.ENDED
    assert adapter.is_listening is False


def test_low_confidence_top_hypothesis_is_rejected_despite_strong_alternative() -> None:
    started, events = _listen(StubBackend([RawRecognition([("shoe my card", 0.3), ("show my cart", 0.95)])]))

    assert started is True
    assert not any(isinstance(event, ResultEvent) for event in events)
    error = next(event for event in events if isinstance(event, ErrorEvent))
    assert error.code == "low-confidence"
    assert error.message == "Low confidence: 30.0%"
