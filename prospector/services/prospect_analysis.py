"""
Prospect Analysis Service
Orquestra a analise completa de um prospect

Fluxo:
1. Dados cadastrais (CNPJ) - falha aqui propaga
2. Coordenadas do endereco
3. Redes sociais e cardapio em paralelo
4. Analise comercial por IA
5. Recomendacao de produtos
6. Script de vendas
7. Panorama competitivo
"""

import asyncio
from typing import List, Optional

import structlog

from prospector.models import (
    AnalysisResult,
    CatalogProduct,
    CompanyRecord,
    MenuAnalysis,
    ProductSuggestion,
    ProspectInput,
    SuggestionSource,
)
from prospector.scrapers import (
    CompanyRegistryClient,
    GeocodingClient,
    SocialEstimationClient,
)
from prospector.utils.validators import mask_cnpj

from .ai_analyzer import AIAnalysisClient, suggested_product_codes
from .competitors import CompetitorAnalyzer
from .history import ProspectHistory
from .menu_analyzer import MenuAnalyzer
from .recommendation import RecommendationEngine

logger = structlog.get_logger()

SCRIPT_PRODUCT_LIMIT = 5
AI_SUGGESTION_PRIORITY = 8
AI_SUGGESTION_CONFIDENCE = 0.7


class ProspectAnalysisService:
    """
    Servico de analise de prospects

    Apenas este servico monta o AnalysisResult.
    """

    def __init__(
        self,
        registry: Optional[CompanyRegistryClient] = None,
        geocoding: Optional[GeocodingClient] = None,
        social: Optional[SocialEstimationClient] = None,
        ai: Optional[AIAnalysisClient] = None,
        menu_analyzer: Optional[MenuAnalyzer] = None,
        recommender: Optional[RecommendationEngine] = None,
        competitor_analyzer: Optional[CompetitorAnalyzer] = None,
        history: Optional[ProspectHistory] = None,
        use_ai_menu: bool = False,
    ):
        self.registry = registry or CompanyRegistryClient()
        self.geocoding = geocoding or GeocodingClient()
        self.social = social or SocialEstimationClient()
        self.ai = ai or AIAnalysisClient()
        self.menu_analyzer = menu_analyzer or MenuAnalyzer()
        self.recommender = recommender or RecommendationEngine()
        self.competitor_analyzer = competitor_analyzer or CompetitorAnalyzer()
        self.history = history
        self.use_ai_menu = use_ai_menu

        logger.info("prospect_analysis_service_init", ai_menu=use_ai_menu, history=history is not None)

    async def close(self):
        """Fecha todos os clientes"""
        await asyncio.gather(
            self.registry.close(),
            self.geocoding.close(),
            self.social.close(),
            self.ai.close(),
        )

    async def analyze(self, prospect: ProspectInput) -> AnalysisResult:
        """
        Analise completa de um prospect

        Args:
            prospect: Dados informados pelo vendedor

        Returns:
            AnalysisResult imutavel

        Raises:
            InvalidInputError, RateLimitError, AllProvidersFailedError:
                falhas da consulta de CNPJ
        """
        logger.info("prospect_analysis_start", cnpj=mask_cnpj(prospect.tax_id))

        company = await self.registry.get_company_data(prospect.tax_id)
        company = await self._with_coordinates(company)
        prospect = prospect.model_copy(update={"company": company})

        social, menu = await asyncio.gather(
            self.social.analyze(prospect.instagram, prospect.facebook),
            self._analyze_menu(prospect.menu_text),
        )

        ai_analysis = await self.ai.analyze(prospect)
        ai_suggestions = await self._ai_menu_suggestions(prospect.menu_text)

        suggestions = self.recommender.suggest(company, menu.category_names, social, ai_suggestions)
        sales_script = await self.ai.generate_sales_script(
            company, menu, social, self._script_products(suggestions)
        )

        result = AnalysisResult(
            company=company,
            social=social,
            menu=menu,
            suggestions=suggestions,
            ai_analysis=ai_analysis,
            sales_script=sales_script,
            competitors=self.competitor_analyzer.analyze(company, menu.category_names, social),
        )

        if self.history is not None:
            try:
                self.history.record(result)
            except OSError as e:
                logger.warning("history_record_failed", error=str(e))

        logger.info(
            "prospect_analysis_complete",
            cnpj=mask_cnpj(company.tax_id),
            suggestions=len(suggestions),
            estimated_social=social.has_estimated_data,
        )
        return result

    async def _with_coordinates(self, company: CompanyRecord) -> CompanyRecord:
        coords = await self.geocoding.get_coordinates(company.address)
        if coords is None:
            logger.info("company_not_geocoded", cnpj=mask_cnpj(company.tax_id))
            return company
        return company.model_copy(update={"coordinates": coords})

    async def _analyze_menu(self, menu_text: Optional[str]) -> MenuAnalysis:
        if not menu_text:
            return MenuAnalysis()
        return await asyncio.to_thread(self.menu_analyzer.analyze, menu_text)

    async def _ai_menu_suggestions(self, menu_text: Optional[str]) -> List[ProductSuggestion]:
        if not (self.use_ai_menu and menu_text):
            return []

        analysis = await self.ai.analyze_menu(menu_text)
        return [
            ProductSuggestion(
                product_code=code,
                priority=AI_SUGGESTION_PRIORITY,
                reason="Sugerido pela análise de cardápio por IA",
                confidence=AI_SUGGESTION_CONFIDENCE,
                source=SuggestionSource.AI_SUGGESTION,
            )
            for code in suggested_product_codes(analysis)
            if code in self.recommender.catalog
        ]

    @staticmethod
    def _script_products(suggestions: List[ProductSuggestion]) -> List[CatalogProduct]:
        products: List[CatalogProduct] = []
        seen = set()
        for suggestion in suggestions:
            if suggestion.product is None or suggestion.product_code in seen:
                continue
            seen.add(suggestion.product_code)
            products.append(suggestion.product)
        return products[:SCRIPT_PRODUCT_LIMIT]
