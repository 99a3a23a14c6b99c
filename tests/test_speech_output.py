import asyncio

import pytest

from voice_shop.voice import (
    EngineChoice,
    SpeechOptions,
    SpeechOutputAdapter,
    SpeechOutputError,
    SpeechStatus,
    VisualFeedbackStrategy,
)


class StubStrategy:
    def __init__(self, name: str, *, fail: bool = False, block_on: str | None = None) -> None:
        self.name = name
        self.fail = fail
        self.block_on = block_on
        self.spoken: list[str] = []
        self.stopped = 0

    async def speak(self, text: str, options: SpeechOptions, on_progress) -> None:
        self.spoken.append(text)
        if self.fail:
            raise RuntimeError(f"{self.name} unavailable")
        if text == self.block_on:
            await asyncio.Event().wait()
        on_progress(50.0)

    def stop(self) -> None:
        self.stopped += 1


async def _instant(seconds: float) -> None:
    return None


def test_cascade_skips_failing_engine() -> None:
    primary = StubStrategy("primary", fail=True)
    secondary = StubStrategy("secondary")
    adapter = SpeechOutputAdapter({EngineChoice.PRIMARY: primary, EngineChoice.SECONDARY: secondary})
    statuses: list[SpeechStatus] = []
    adapter.on_status_change(statuses.append)

    asyncio.run(adapter.speak("  I'll show   you your cart. "))

    assert primary.spoken == ["I'll show you your cart."]
    assert secondary.spoken == ["I'll show you your cart."]
    assert statuses[0].is_loading is True
    assert adapter.status.progress == 100.0
    assert adapter.status.is_speaking is False
    assert adapter.status.error is None
    assert adapter.engine_names == ["primary", "secondary"]


def test_visual_feedback_when_every_engine_fails() -> None:
    engines = {EngineChoice.PRIMARY: StubStrategy("primary", fail=True)}
    visual = VisualFeedbackStrategy(sleep=_instant)
    adapter = SpeechOutputAdapter(engines, visual=visual)
    progress: list[float] = []
    adapter.on_status_change(lambda status: progress.append(status.progress))

    asyncio.run(adapter.speak("Here's your shopping cart."))

    assert visual.duration_for("Here's your shopping cart.") == 1.5
    assert progress[-1] == 100.0
    assert adapter.status.error is None


def test_error_surfaces_only_when_visual_feedback_fails_too() -> None:
    adapter = SpeechOutputAdapter(
        {EngineChoice.PRIMARY: StubStrategy("primary", fail=True)},
        visual=StubStrategy("visual", fail=True),
    )

    with pytest.raises(SpeechOutputError, match="visual unavailable"):
        asyncio.run(adapter.speak("hello"))

    assert adapter.status.error == "visual unavailable"
    assert adapter.status.is_speaking is False


def test_named_engine_is_tried_alone_before_visual() -> None:
    primary = StubStrategy("primary")
    secondary = StubStrategy("secondary", fail=True)
    visual = StubStrategy("visual")
    adapter = SpeechOutputAdapter(
        {EngineChoice.PRIMARY: primary, EngineChoice.SECONDARY: secondary},
        visual=visual,
    )

    asyncio.run(adapter.speak("hello", SpeechOptions(engine="secondary")))

    assert primary.spoken == []
    assert secondary.spoken == ["hello"]
    assert visual.spoken == ["hello"]


def test_new_utterance_preempts_the_current_one() -> None:
    primary = StubStrategy("primary", block_on="first")
    adapter = SpeechOutputAdapter({EngineChoice.PRIMARY: primary})

    async def _run() -> None:
        first = asyncio.create_task(adapter.speak("first"))
        await asyncio.sleep(0.01)
        assert adapter.is_speaking is True
        await adapter.speak("second")
        await first

    asyncio.run(_run())

    assert primary.spoken == ["first", "second"]
    assert primary.stopped >= 1
    assert adapter.status.current_text == "second"
    assert adapter.status.progress == 100.0


def test_blank_text_is_ignored() -> None:
    primary = StubStrategy("primary")
    adapter = SpeechOutputAdapter({EngineChoice.PRIMARY: primary})

    asyncio.run(adapter.speak("   "))

    assert primary.spoken == []


def test_options_are_clamped() -> None:
    options = SpeechOptions(rate=50, pitch=-1, volume=3, engine="loudest")

    assert (options.rate, options.pitch, options.volume) == (10.0, 0.0, 1.0)
    assert options.engine is EngineChoice.AUTO


class OverlapCountingStrategy:
    name = "counting"

    def __init__(self) -> None:
        self.active = 0
        self.peak = 0
        self.finished: list[str] = []

    async def speak(self, text: str, options: SpeechOptions, on_progress) -> None:
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await asyncio.sleep(0.05)
            self.finished.append(text)
        finally:
            self.active -= 1

    def stop(self) -> None:
        return None


def test_simultaneous_preemptions_leave_one_utterance_playing() -> None:
    strategy = OverlapCountingStrategy()
    adapter = SpeechOutputAdapter({EngineChoice.PRIMARY: strategy})

    async def _run() -> None:
        first = asyncio.create_task(adapter.speak("one"))
        await asyncio.sleep(0.01)
        await asyncio.gather(first, adapter.speak("two"), adapter.speak("three"))

    asyncio.run(_run())

    assert strategy.peak == 1
    assert strategy.finished == ["three"]
    assert adapter.status.current_text == "three"
