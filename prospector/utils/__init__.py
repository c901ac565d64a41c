"""
Prospector - Utils
Utilitarios compartilhados
"""

from .cache import CacheManager, make_key
from .cascade import CascadeResult, run_cascade
from .provider_health import ProviderHealth, ProviderStatus
from .rate_limiter import RateLimiter
from .validators import (
    clean_digits,
    extract_cep,
    format_brl,
    format_cnpj,
    format_phone,
    mask_cnpj,
    parse_brl_amount,
    parse_date,
    validate_cnpj,
)

__all__ = [
    # Cache
    "CacheManager",
    "make_key",
    # Cascade
    "CascadeResult",
    "run_cascade",
    # Provider Health
    "ProviderHealth",
    "ProviderStatus",
    # Rate Limiter
    "RateLimiter",
    # Validators
    "clean_digits",
    "extract_cep",
    "format_brl",
    "format_cnpj",
    "format_phone",
    "mask_cnpj",
    "parse_brl_amount",
    "parse_date",
    "validate_cnpj",
]
