from __future__ import annotations

import sys
import types

import pytest


def test_voice_chat_reports_actionable_error_when_voice_backends_missing(monkeypatch) -> None:
    typer_testing = pytest.importorskip("typer.testing")
    from voice_shop.main import app

    fake_stt = types.ModuleType("voice_shop.voice.stt_speechrecognition")

    class _MissingBackend:
        def __init__(self, *args, **kwargs) -> None:
            raise RuntimeError("voice extras missing")

    fake_stt.SpeechRecognitionBackend = _MissingBackend

    monkeypatch.setitem(sys.modules, "voice_shop.voice.stt_speechrecognition", fake_stt)

    result = typer_testing.CliRunner().invoke(app, ["voice-chat", "--continuous"], catch_exceptions=False)

    assert result.exit_code == 1
    assert "voice extras missing" in result.stdout
