"""
Cache Utils
Cache em memoria com TTL por entrada, um namespace por cliente
"""

import hashlib
import json
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

import structlog
from cachetools import TLRUCache

from config.settings import settings

logger = structlog.get_logger()


@dataclass(frozen=True)
class CacheEntry:
    """Valor armazenado com instante de expiracao"""
    value: Any
    expires_at: float


def _entry_expiration(key: str, entry: CacheEntry, now: float) -> float:
    return entry.expires_at


def make_key(*args, **kwargs) -> str:
    """Gera hash estavel a partir dos argumentos"""
    key_data = json.dumps(
        {"args": args, "kwargs": kwargs},
        sort_keys=True,
        default=str
    )
    return hashlib.md5(key_data.encode()).hexdigest()


class CacheManager:
    """
    Cache key/value com TTL

    Entradas expiradas nunca sao retornadas: a busca se comporta
    como se a chave nao existisse.
    """

    def __init__(
        self,
        namespace: str,
        default_ttl: float = 3600,
        maxsize: Optional[int] = None,
        timer: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            namespace: Prefixo do cliente dono do cache
            default_ttl: TTL padrao em segundos
            maxsize: Numero maximo de entradas
            timer: Relogio (injetavel em testes)
        """
        self.namespace = namespace
        self.default_ttl = default_ttl
        self._timer = timer
        self._cache = TLRUCache(
            maxsize=maxsize or settings.cache_max_size,
            ttu=_entry_expiration,
            timer=timer,
        )
        self._stats = {"hits": 0, "misses": 0, "sets": 0}

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    def get(self, key: str) -> Optional[Any]:
        """Obtem valor do cache (None se ausente ou expirado)"""
        entry = self._cache.get(self._key(key))
        if entry is None:
            self._stats["misses"] += 1
            return None

        self._stats["hits"] += 1
        logger.debug("cache_hit", namespace=self.namespace, key=key)
        return entry.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Define valor no cache"""
        ttl = self.default_ttl if ttl is None else ttl
        self._cache[self._key(key)] = CacheEntry(value=value, expires_at=self._timer() + ttl)
        self._stats["sets"] += 1
        logger.debug("cache_set", namespace=self.namespace, key=key, ttl=ttl)

    def delete(self, key: str) -> bool:
        """Remove valor do cache"""
        try:
            del self._cache[self._key(key)]
            return True
        except KeyError:
            return False

    def clear(self) -> int:
        """Limpa todo o cache"""
        count = len(self._cache)
        self._cache.clear()
        logger.info("cache_cleared", namespace=self.namespace, items=count)
        return count

    def get_stats(self) -> dict:
        """Retorna estatisticas do cache"""
        total = self._stats["hits"] + self._stats["misses"]
        hit_rate = (self._stats["hits"] / total * 100) if total > 0 else 0

        return {
            "namespace": self.namespace,
            "hits": self._stats["hits"],
            "misses": self._stats["misses"],
            "sets": self._stats["sets"],
            "hit_rate": round(hit_rate, 2),
            "current_size": len(self._cache),
            "max_size": self._cache.maxsize,
            "default_ttl": self.default_ttl,
        }
