"""
Prospector - Scrapers
Clientes de APIs externas
"""

from .base import BaseClient
from .geocoding import GeocodingClient
from .registry import CompanyRegistryClient, RegistryProvider
from .social import SocialEstimationClient

__all__ = [
    "BaseClient",
    "CompanyRegistryClient",
    "GeocodingClient",
    "RegistryProvider",
    "SocialEstimationClient",
]
