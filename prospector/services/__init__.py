"""
Prospector - Services
Servicos de analise
"""

from .ai_analyzer import AIAnalysisClient
from .catalog import ProductCatalog
from .competitors import CompetitorAnalyzer
from .history import ProspectHistory
from .menu_analyzer import MenuAnalyzer
from .prospect_analysis import ProspectAnalysisService
from .recommendation import RecommendationEngine

__all__ = [
    "AIAnalysisClient",
    "CompetitorAnalyzer",
    "MenuAnalyzer",
    "ProductCatalog",
    "ProspectAnalysisService",
    "ProspectHistory",
    "RecommendationEngine",
]
