"""
Grok (xAI) provider implementation.

OpenAI-compatible chat completions API.
"""

from typing import Any, Dict, Optional

from prospector.ai_providers.base import BaseAIProvider


class GrokProvider(BaseAIProvider):
    """xAI provider for Grok models."""

    name = "grok"

    def _build_request(
        self,
        prompt: str,
        system_prompt: Optional[str],
        temperature: float,
        max_tokens: int,
    ) -> Dict[str, Any]:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        return {
            "url": f"{self.config.endpoint.rstrip('/')}/chat/completions",
            "headers": {
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            "json": {
                "model": self.model,
                "messages": messages,
                "temperature": temperature,
                "max_tokens": max_tokens,
            },
        }

    def _extract_content(self, data: Dict[str, Any]) -> str:
        return data["choices"][0]["message"]["content"]
