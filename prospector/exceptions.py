"""
Prospector - Exceptions
Taxonomia de erros dos clientes de API

- InvalidInputError: entrada malformada (CNPJ, endereco). Nunca repetir.
- RateLimitError: decisao local de politica, nao e falha de rede.
- ProviderUnavailableError: falha HTTP, timeout ou corpo malformado.
  Dispara a cascata para o proximo provider/estrategia.
- AllProvidersFailedError: todos os providers falharam (consulta de CNPJ).
- UnresolvableLocationError: endereco sem coordenadas para calculo de distancia.
"""

from typing import List, Optional


class ProspectorError(Exception):
    """Classe base para erros do Prospector."""


class InvalidInputError(ProspectorError, ValueError):
    """Entrada invalida (CNPJ, CEP ou endereco malformado)."""


class RateLimitError(ProspectorError):
    """Exceção lançada quando o rate limiter local nega a requisição."""

    def __init__(self, provider: str, retry_after: float = 0.0):
        self.provider = provider
        self.retry_after = retry_after
        super().__init__(
            f"Rate limit exceeded for '{provider}'. "
            f"Retry after {retry_after:.1f} seconds."
        )


class ProviderUnavailableError(ProspectorError):
    """Provider externo indisponivel (HTTP, timeout, resposta malformada)."""

    def __init__(
        self,
        provider: str,
        reason: str,
        status_code: Optional[int] = None,
        transient: bool = False,
    ):
        self.provider = provider
        self.reason = reason
        self.status_code = status_code
        self.transient = transient
        detail = f" (HTTP {status_code})" if status_code else ""
        super().__init__(f"Provider '{provider}' unavailable{detail}: {reason}")


class AllProvidersFailedError(ProspectorError):
    """Todos os providers configurados falharam."""

    def __init__(self, operation: str, errors: List[Exception]):
        self.operation = operation
        self.errors = errors
        last = errors[-1] if errors else None
        super().__init__(
            f"All providers failed for {operation}: {last or 'no providers configured'}"
        )

    @property
    def last_error(self) -> Optional[Exception]:
        return self.errors[-1] if self.errors else None


class UnresolvableLocationError(ProspectorError):
    """Nao foi possivel obter coordenadas para um endereco."""

    def __init__(self, location: str):
        self.location = location
        super().__init__(f"Could not resolve coordinates for: {location}")
