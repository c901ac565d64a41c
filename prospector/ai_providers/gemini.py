"""
Google Gemini provider implementation.

generateContent API; the system prompt is sent as systemInstruction.
"""

from typing import Any, Dict, Optional

from prospector.ai_providers.base import BaseAIProvider


class GeminiProvider(BaseAIProvider):
    """Google provider for Gemini models."""

    name = "gemini"

    def _build_request(
        self,
        prompt: str,
        system_prompt: Optional[str],
        temperature: float,
        max_tokens: int,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": temperature,
                "maxOutputTokens": max_tokens,
            },
        }
        if system_prompt:
            payload["systemInstruction"] = {"parts": [{"text": system_prompt}]}

        return {
            "url": f"{self.config.endpoint.rstrip('/')}/models/{self.model}:generateContent",
            "params": {"key": self.api_key},
            "headers": {"Content-Type": "application/json"},
            "json": payload,
        }

    def _extract_content(self, data: Dict[str, Any]) -> str:
        return data["candidates"][0]["content"]["parts"][0]["text"]
