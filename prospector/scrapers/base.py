"""
Base Client
Classe base para todos os clientes HTTP

Inclui:
- Cliente httpx lazy (injetavel em testes)
- Retry com backoff exponencial apenas para erros de transporte
- Mapeamento de falhas HTTP para ProviderUnavailableError
- Metricas de uso
"""

import json as jsonlib
from datetime import datetime
from typing import Any, Dict, Optional

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from config.settings import settings
from prospector.exceptions import ProviderUnavailableError

logger = structlog.get_logger()


class BaseClient:
    """
    Classe base para clientes de APIs externas.

    Falhas de transporte sao repetidas (max_attempts); qualquer falha
    restante vira ProviderUnavailableError para que o chamador siga
    para o proximo provider ou estrategia.
    """

    SOURCE_NAME: str = "base"

    def __init__(
        self,
        base_url: str = "",
        timeout: Optional[float] = None,
        max_attempts: Optional[int] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout or settings.http_timeout
        self.max_attempts = max_attempts or settings.http_max_attempts
        self._client = client

        # Metricas
        self.stats: Dict[str, Any] = {
            "requests": 0,
            "success": 0,
            "errors": 0,
            "last_request": None,
        }

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy client initialization"""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=self._get_headers(),
                follow_redirects=True,
            )
        return self._client

    def _get_headers(self) -> Dict[str, str]:
        return {"Accept": "application/json", "User-Agent": settings.user_agent}

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Executa request HTTP repetindo apenas erros de transporte."""
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=0.5, max=4),
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True,
        ):
            with attempt:
                return await self.client.request(method, url, **kwargs)

    async def _request(
        self,
        method: str,
        url: str,
        provider: Optional[str] = None,
        **kwargs,
    ) -> httpx.Response:
        """
        Executa request e valida o status.

        Raises:
            ProviderUnavailableError: timeout, erro de transporte ou status nao 2xx
        """
        provider = provider or self.SOURCE_NAME
        self.stats["requests"] += 1
        self.stats["last_request"] = datetime.utcnow().isoformat()

        try:
            response = await self._send(method, url, **kwargs)
        except httpx.TimeoutException as e:
            self.stats["errors"] += 1
            logger.warning("request_timeout", source=provider, url=url)
            raise ProviderUnavailableError(provider, "timeout", transient=True) from e
        except httpx.TransportError as e:
            self.stats["errors"] += 1
            logger.warning("connection_error", source=provider, url=url, error=str(e))
            raise ProviderUnavailableError(provider, f"transport error: {e}", transient=True) from e

        if not response.is_success:
            self.stats["errors"] += 1
            status = response.status_code
            logger.warning("http_error", source=provider, url=url, status=status)
            raise ProviderUnavailableError(
                provider,
                f"HTTP {status}",
                status_code=status,
                transient=status == 429 or status >= 500,
            )

        self.stats["success"] += 1
        return response

    async def get_json(self, url: str, provider: Optional[str] = None, **kwargs) -> Any:
        """GET request com corpo JSON"""
        response = await self._request("GET", url, provider=provider, **kwargs)
        return self._parse_json(response, provider)

    async def post_json(self, url: str, provider: Optional[str] = None, **kwargs) -> Any:
        """POST request com corpo JSON"""
        response = await self._request("POST", url, provider=provider, **kwargs)
        return self._parse_json(response, provider)

    async def get_text(self, url: str, provider: Optional[str] = None, **kwargs) -> str:
        """GET request retornando o corpo como texto"""
        response = await self._request("GET", url, provider=provider, **kwargs)
        return response.text

    def _parse_json(self, response: httpx.Response, provider: Optional[str]) -> Any:
        try:
            return response.json()
        except (jsonlib.JSONDecodeError, UnicodeDecodeError) as e:
            self.stats["errors"] += 1
            raise ProviderUnavailableError(provider or self.SOURCE_NAME, "malformed body") from e

    async def close(self):
        """Fecha o cliente HTTP"""
        if self._client:
            await self._client.aclose()
            self._client = None

    def get_stats(self) -> Dict[str, Any]:
        """Retorna estatisticas de uso"""
        return {
            **self.stats,
            "success_rate": (
                (self.stats["success"] / self.stats["requests"] * 100)
                if self.stats["requests"] > 0
                else 0
            ),
        }

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
