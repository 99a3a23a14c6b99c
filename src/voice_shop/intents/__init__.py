"""Intent classification: fast pattern path, AI slow path, deterministic fallback."""

from .ai_service import AIAnalysis, AIIntentService, AIServiceError
from .classifier import ClassificationResult, IntentClassifier
from .fallback import create_fallback_response
from .prompt import build_analysis_prompt

__all__ = [
    "AIAnalysis",
    "AIIntentService",
    "AIServiceError",
    "ClassificationResult",
    "IntentClassifier",
    "build_analysis_prompt",
    "create_fallback_response",
]
