"""
Rate Limiter
Controle de taxa de requisicoes por API externa
"""

import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, Dict

import structlog

from config.settings import ProviderConfig

logger = structlog.get_logger()


@dataclass
class RateWindow:
    """Estado da janela deslizante"""
    max_requests: int
    window_seconds: float
    timestamps: Deque[float] = field(default_factory=deque)


class RateLimiter:
    """
    Rate limiter com sliding window

    Nao bloqueia nem levanta erro: o chamador consulta can_make_request()
    antes de chamar a API e registra a chamada com record_request().
    """

    def __init__(
        self,
        max_requests: int = 100,
        window_seconds: float = 60.0,
        provider: str = "default",
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Inicializa rate limiter

        Args:
            max_requests: Numero de requisicoes permitidas na janela
            window_seconds: Tamanho da janela em segundos
            provider: Nome do provider (para logs)
            clock: Relogio monotonic (injetavel em testes)
        """
        self.provider = provider
        self._clock = clock
        self._window = RateWindow(max_requests=max_requests, window_seconds=window_seconds)

    @classmethod
    def from_config(cls, config: ProviderConfig, **kwargs) -> "RateLimiter":
        return cls(
            max_requests=config.requests_per_window,
            window_seconds=config.window_seconds,
            provider=config.name,
            **kwargs,
        )

    @property
    def max_requests(self) -> int:
        return self._window.max_requests

    @property
    def window_seconds(self) -> float:
        return self._window.window_seconds

    def _prune(self, now: float) -> None:
        """Remove timestamps fora da janela"""
        timestamps = self._window.timestamps
        while timestamps and now - timestamps[0] >= self._window.window_seconds:
            timestamps.popleft()

    def can_make_request(self) -> bool:
        """
        Verifica se ha espaco na janela atual

        Returns:
            True se menos de max_requests chamadas ocorreram na janela
        """
        self._prune(self._clock())
        allowed = len(self._window.timestamps) < self._window.max_requests

        if not allowed:
            logger.warning(
                "rate_limit_reached",
                provider=self.provider,
                current=len(self._window.timestamps),
                max=self._window.max_requests,
                wait_seconds=round(self.retry_after(), 2),
            )

        return allowed

    def record_request(self) -> None:
        """Registra uma requisicao no instante atual"""
        self._window.timestamps.append(self._clock())

    def retry_after(self) -> float:
        """Segundos ate a requisicao mais antiga sair da janela"""
        timestamps = self._window.timestamps
        if not timestamps or len(timestamps) < self._window.max_requests:
            return 0.0
        oldest = timestamps[0]
        return max(0.0, oldest + self._window.window_seconds - self._clock())

    def get_stats(self) -> Dict:
        """Retorna estatisticas do rate limiter"""
        self._prune(self._clock())
        current = len(self._window.timestamps)

        return {
            "provider": self.provider,
            "max_requests": self._window.max_requests,
            "window_seconds": self._window.window_seconds,
            "current_requests": current,
            "remaining": max(0, self._window.max_requests - current),
        }

    def reset(self) -> None:
        """Reseta o estado do rate limiter"""
        self._window.timestamps.clear()
        logger.info("rate_limiter_reset", provider=self.provider)
