"""
Provider Health

Estado habilitado/desabilitado de cada provider de IA.

Um provider desabilitado (sem chave, desligado por configuracao ou que
respondeu 403) nao recebe mais requisicoes: o chamador vai direto para o
fallback. A desabilitacao vale pelo tempo de vida do processo.

Uso:
    health = ProviderHealth()
    health.register("grok", enabled=settings.grok_provider.enabled)

    if health.is_enabled("grok"):
        ...
    else:
        return template
"""

from dataclasses import dataclass
from typing import Dict, Optional

import structlog

logger = structlog.get_logger()


@dataclass
class ProviderStatus:
    """Estado de um provider."""
    name: str
    enabled: bool = True
    disabled_reason: Optional[str] = None
    successes: int = 0
    failures: int = 0


class ProviderHealth:
    """
    Registro de estado dos providers.

    Uma instancia e compartilhada pelos clientes que usam os mesmos providers.
    Providers nao registrados sao tratados como habilitados.
    """

    def __init__(self):
        self._providers: Dict[str, ProviderStatus] = {}

    def register(self, name: str, enabled: bool = True, reason: Optional[str] = None) -> ProviderStatus:
        """
        Registra um provider (idempotente).

        Args:
            name: Nome do provider
            enabled: Estado inicial
            reason: Motivo quando registrado desabilitado
        """
        if name not in self._providers:
            self._providers[name] = ProviderStatus(
                name=name,
                enabled=enabled,
                disabled_reason=None if enabled else (reason or "disabled by configuration"),
            )
        return self._providers[name]

    def get(self, name: str) -> Optional[ProviderStatus]:
        return self._providers.get(name)

    def is_enabled(self, name: str) -> bool:
        status = self._providers.get(name)
        return status is None or status.enabled

    def disable(self, name: str, reason: str) -> None:
        """Desabilita o provider ate o fim do processo."""
        status = self.register(name)
        if status.enabled:
            status.enabled = False
            status.disabled_reason = reason
            logger.warning("provider_disabled", provider=name, reason=reason)

    def enable(self, name: str) -> None:
        """Reabilita manualmente um provider."""
        status = self.register(name)
        if not status.enabled:
            status.enabled = True
            status.disabled_reason = None
            logger.info("provider_enabled", provider=name)

    def record_success(self, name: str) -> None:
        self.register(name).successes += 1

    def record_failure(self, name: str) -> None:
        self.register(name).failures += 1

    def get_stats(self) -> Dict[str, Dict]:
        """Retorna estado de todos os providers."""
        return {
            name: {
                "enabled": status.enabled,
                "disabled_reason": status.disabled_reason,
                "successes": status.successes,
                "failures": status.failures,
            }
            for name, status in self._providers.items()
        }
