"""Speech capture and speech output boundaries."""

from .capture import (
    CaptureEvent,
    CaptureOptions,
    CaptureState,
    EndEvent,
    ErrorEvent,
    ResultEvent,
    SpeechCaptureAdapter,
    SpeechEndEvent,
    SpeechStartEvent,
    StartEvent,
)
from .interfaces import (
    RawRecognition,
    RawRecognitionError,
    RawSpeechBoundary,
    RecognitionBackend,
    SpeechSynthesisStrategy,
)
from .output import (
    EngineChoice,
    SpeechOptions,
    SpeechOutputAdapter,
    SpeechOutputError,
    SpeechStatus,
    VisualFeedbackStrategy,
)

__all__ = [
    "CaptureEvent",
    "CaptureOptions",
    "CaptureState",
    "EndEvent",
    "EngineChoice",
    "ErrorEvent",
    "RawRecognition",
    "RawRecognitionError",
    "RawSpeechBoundary",
    "RecognitionBackend",
    "ResultEvent",
    "SpeechCaptureAdapter",
    "SpeechEndEvent",
    "SpeechOptions",
    "SpeechOutputAdapter",
    "SpeechOutputError",
    "SpeechStartEvent",
    "SpeechStatus",
    "SpeechSynthesisStrategy",
    "StartEvent",
    "VisualFeedbackStrategy",
]
