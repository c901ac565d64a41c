"""
Base class for AI providers.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx
import structlog
from pydantic import BaseModel, Field

from config.settings import ProviderConfig, settings

logger = structlog.get_logger()


class AIProviderResponse(BaseModel):
    """Response from an AI provider."""

    success: bool = Field(..., description="Whether the request was successful")
    content: str = Field(default="", description="The response content")
    provider: str = Field(..., description="The provider name")
    error: Optional[str] = Field(default=None, description="Error message if failed")
    status_code: Optional[int] = Field(default=None, description="HTTP status when the API answered")
    raw_response: Optional[Dict[str, Any]] = Field(default=None, description="Raw provider response")


class BaseAIProvider(ABC):
    """
    Abstract base class for AI providers.

    Providers never raise: every failure comes back as an
    AIProviderResponse with success=False.
    """

    name: str = "base"

    def __init__(self, config: ProviderConfig, client: Optional[httpx.AsyncClient] = None):
        """
        Initialize the provider.

        Args:
            config: Endpoint, model and credentials
            client: Optional shared HTTP client (tests inject a mock transport)
        """
        self.config = config
        self.api_key = config.api_key
        self.model = config.model_id
        self._client = client

    @property
    def is_available(self) -> bool:
        """Check if the provider is configured (enabled and has API key)."""
        return self.config.enabled and bool(self.api_key)

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=settings.ai_timeout)
        return self._client

    @abstractmethod
    def _build_request(
        self,
        prompt: str,
        system_prompt: Optional[str],
        temperature: float,
        max_tokens: int,
    ) -> Dict[str, Any]:
        """Return url, headers, params and json for the HTTP call."""

    @abstractmethod
    def _extract_content(self, data: Dict[str, Any]) -> str:
        """Extract the completion text from the response body."""

    async def complete(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 2000,
    ) -> AIProviderResponse:
        """
        Generate a completion for the given prompt.

        Args:
            prompt: The user prompt
            system_prompt: Optional system prompt
            temperature: Sampling temperature
            max_tokens: Maximum tokens in response

        Returns:
            AIProviderResponse with the completion result
        """
        if not self.is_available:
            return self._failure("API key not configured")

        self._log_request(prompt)
        request = self._build_request(prompt, system_prompt, temperature, max_tokens)

        try:
            response = await self.client.post(**request)
        except httpx.TimeoutException:
            return self._failure("Request timeout")
        except httpx.HTTPError as e:
            return self._failure(f"Request failed: {e}")

        if response.status_code != 200:
            return self._failure(
                f"API error: {response.status_code} - {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
            content = self._extract_content(data)
        except (ValueError, KeyError, IndexError, TypeError) as e:
            return self._failure(f"Malformed response: {e}", status_code=response.status_code)

        if not content or not content.strip():
            return self._failure("Empty response", status_code=response.status_code)

        self._log_response(True)
        return AIProviderResponse(
            success=True,
            content=content,
            provider=self.name,
            status_code=response.status_code,
            raw_response=data,
        )

    def _failure(self, error: str, status_code: Optional[int] = None) -> AIProviderResponse:
        self._log_response(False, error)
        return AIProviderResponse(
            success=False,
            content="",
            provider=self.name,
            error=error,
            status_code=status_code,
        )

    def _log_request(self, prompt: str):
        """Log the start of a request."""
        logger.info(
            "ai_provider_request",
            provider=self.name,
            model=self.model,
            prompt_length=len(prompt),
        )

    def _log_response(self, success: bool, error: Optional[str] = None):
        """Log the response from the provider."""
        if success:
            logger.info("ai_provider_response", provider=self.name, success=True)
        else:
            logger.warning(
                "ai_provider_response",
                provider=self.name,
                success=False,
                error=error,
            )

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None
