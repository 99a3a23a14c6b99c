"""Network text-to-speech strategies (gTTS and edge-tts) with local MP3 playback."""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Protocol

from .interfaces import ProgressCallback
from .output import SpeechOptions

DEFAULT_EDGE_VOICE = "en-US-AriaNeural"

_PLAYER_COMMANDS = (
    ("ffplay", ("-nodisp", "-autoexit", "-loglevel", "quiet")),
    ("mpg123", ("-q",)),
    ("mpv", ("--no-video", "--really-quiet")),
    ("afplay", ()),
)


class AudioPlayer(Protocol):
    async def play(self, path: Path) -> None: ...

    def stop(self) -> None: ...


class SubprocessAudioPlayer:
    """Plays audio files through the first command-line player found on PATH."""

    def __init__(self, command: list[str] | None = None, *, logger: logging.Logger | None = None) -> None:
        self._command = command or self.detect()
        if not self._command:
            raise RuntimeError("No audio player found. Install ffmpeg (ffplay) or mpg123 to play synthesized speech.")
        self._process: asyncio.subprocess.Process | None = None
        self._logger = logger or logging.getLogger("voice_shop.voice.player")

    @staticmethod
    def detect() -> list[str] | None:
        for binary, args in _PLAYER_COMMANDS:
            path = shutil.which(binary)
            if path:
                return [path, *args]
        return None

    async def play(self, path: Path) -> None:
        self._process = await asyncio.create_subprocess_exec(
            *self._command,
            str(path),
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
        try:
            code = await self._process.wait()
        except asyncio.CancelledError:
            self.stop()
            raise
        finally:
            self._process = None
        if code != 0:
            raise RuntimeError(f"Audio player exited with code {code}")

    def stop(self) -> None:
        process = self._process
        if process is not None and process.returncode is None:
            process.terminate()
            self._logger.debug("audio_player_terminated")


class _FileSpeechStrategy:
    name = "file"

    def __init__(self, player: AudioPlayer | None = None) -> None:
        self._player = player or SubprocessAudioPlayer()

    async def speak(self, text: str, options: SpeechOptions, on_progress: ProgressCallback) -> None:
        handle, raw_path = tempfile.mkstemp(prefix="voice-shop-", suffix=".mp3")
        os.close(handle)
        path = Path(raw_path)
        try:
            await self._render(text, options, path)
            on_progress(10.0)
            await self._player.play(path)
        finally:
            path.unlink(missing_ok=True)

    async def _render(self, text: str, options: SpeechOptions, path: Path) -> None:
        raise NotImplementedError

    def stop(self) -> None:
        self._player.stop()


class GTTSSpeechStrategy(_FileSpeechStrategy):
    """Google Translate speech through gTTS."""

    name = "gtts"

    def __init__(self, player: AudioPlayer | None = None) -> None:
        try:
            from gtts import gTTS
        except ImportError as exc:  # pragma: no cover - import guard
            raise RuntimeError(
                "gTTS backend unavailable. Install extras with: pip install 'voice-shop-assistant[voice]'"
            ) from exc
        self._gtts = gTTS
        super().__init__(player)

    async def _render(self, text: str, options: SpeechOptions, path: Path) -> None:
        language = (options.language or "en").split("-")[0].lower()
        speech = self._gtts(text=text, lang=language, slow=options.rate < 0.75)
        await asyncio.to_thread(speech.save, str(path))


class EdgeTTSSpeechStrategy(_FileSpeechStrategy):
    """Microsoft Edge neural voices through edge-tts."""

    name = "edge-tts"

    def __init__(self, player: AudioPlayer | None = None, *, voice: str = DEFAULT_EDGE_VOICE) -> None:
        try:
            import edge_tts
        except ImportError as exc:  # pragma: no cover - import guard
            raise RuntimeError(
                "edge-tts backend unavailable. Install extras with: pip install 'voice-shop-assistant[voice]'"
            ) from exc
        self._edge_tts = edge_tts
        self._voice = voice
        super().__init__(player)

    async def _render(self, text: str, options: SpeechOptions, path: Path) -> None:
        communicate = self._edge_tts.Communicate(
            text,
            voice=options.voice or self._voice,
            rate=f"{round((options.rate - 1.0) * 100):+d}%",
            volume=f"{round((options.volume - 1.0) * 100):+d}%",
            pitch=f"{round((options.pitch - 1.0) * 50):+d}Hz",
        )
        await communicate.save(str(path))
