"""
AI Providers

Grok and Gemini, interchangeable behind BaseAIProvider.
"""

from prospector.ai_providers.base import AIProviderResponse, BaseAIProvider
from prospector.ai_providers.gemini import GeminiProvider
from prospector.ai_providers.grok import GrokProvider

__all__ = [
    "AIProviderResponse",
    "BaseAIProvider",
    "GeminiProvider",
    "GrokProvider",
]
