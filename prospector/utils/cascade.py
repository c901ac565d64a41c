"""
Cascade
Executa estrategias em ordem ate a primeira que produzir resultado
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Tuple

import structlog

logger = structlog.get_logger()

Strategy = Tuple[str, Callable[[], Awaitable[Optional[Any]]]]


@dataclass
class CascadeResult:
    """Resultado da cascata: valor, estrategia vencedora e erros coletados"""
    value: Optional[Any] = None
    strategy: Optional[str] = None
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.strategy is not None


async def run_cascade(
    strategies: Sequence[Strategy],
    operation: str,
    expected: Tuple[type, ...] = (Exception,),
) -> CascadeResult:
    """
    Tenta cada estrategia em ordem.

    Uma estrategia falha quando retorna None ou levanta uma das excecoes
    em `expected`. Excecoes fora de `expected` propagam.

    Args:
        strategies: Lista ordenada de (nome, corrotina sem argumentos)
        operation: Nome da operacao (para logs)
        expected: Excecoes tratadas como falha suave

    Returns:
        CascadeResult com o primeiro resultado nao nulo
    """
    result = CascadeResult()

    for name, strategy in strategies:
        logger.debug("cascade_trying_strategy", operation=operation, strategy=name)
        try:
            value = await strategy()
        except expected as e:
            result.errors.append(f"{name}: {e}")
            logger.warning("cascade_strategy_failed", operation=operation, strategy=name, error=str(e))
            continue

        if value is None:
            result.errors.append(f"{name}: no result")
            logger.debug("cascade_strategy_empty", operation=operation, strategy=name)
            continue

        result.value = value
        result.strategy = name
        logger.info("cascade_success", operation=operation, strategy=name)
        return result

    logger.warning("cascade_exhausted", operation=operation, errors="; ".join(result.errors))
    return result
