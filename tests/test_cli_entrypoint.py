from __future__ import annotations

import importlib

import pytest


def test_console_entrypoint_exposes_app() -> None:
    pytest.importorskip("typer")

    module = importlib.import_module("voice_shop.main")

    assert hasattr(module, "app")
    assert module.app is not None


def test_start_redacts_api_key(monkeypatch) -> None:
    typer_testing = pytest.importorskip("typer.testing")
    from voice_shop import main

    monkeypatch.setattr(main.settings, "ai_api_key", "sk-very-secret")

    result = typer_testing.CliRunner().invoke(main.app, ["start"], catch_exceptions=False)

    assert result.exit_code == 0
    assert "sk-very-secret" not in result.stdout
    assert "'set'" in result.stdout


def test_classify_reports_fast_path_match() -> None:
    typer_testing = pytest.importorskip("typer.testing")
    from voice_shop.main import app

    result = typer_testing.CliRunner().invoke(app, ["classify", "checkout"], catch_exceptions=False)

    assert result.exit_code == 0
    assert "'checkout'" in result.stdout
    assert "True" in result.stdout


def test_ask_runs_typed_utterance_through_pipeline(monkeypatch) -> None:
    typer_testing = pytest.importorskip("typer.testing")
    from voice_shop import main

    monkeypatch.setattr(main.settings, "ai_api_key", None)
    monkeypatch.setattr(main.settings, "cart_path", None)

    result = typer_testing.CliRunner().invoke(main.app, ["ask", "show my cart"], catch_exceptions=False)

    assert result.exit_code == 0
    assert "'view_cart'" in result.stdout
    assert "'/cart'" in result.stdout
