"""
Recommendation Engine
Sugestao de produtos do catalogo para um prospect

Fontes de sugestao:
- business_type: regras pela atividade principal
- menu_analysis: regras pelas categorias do cardapio
- ml_prediction: associacao tipo de negocio -> produtos
- ai_suggestion: sugestoes vindas da analise por IA (opcional)

score = prioridade x confianca x peso da fonte. Resultado deterministico.
"""

from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import structlog

from prospector.models import (
    CompanyRecord,
    ProductSuggestion,
    SocialSummary,
    SuggestionSource,
)

from .catalog import ProductCatalog

logger = structlog.get_logger()

MAX_SUGGESTIONS = 12

SOURCE_WEIGHTS = {
    SuggestionSource.AI_SUGGESTION: 1.3,
    SuggestionSource.ML_PREDICTION: 1.2,
    SuggestionSource.MENU_ANALYSIS: 1.1,
    SuggestionSource.BUSINESS_TYPE: 1.0,
}

BUSINESS_CONFIDENCE = 0.8

# (codigo, prioridade, motivo); a primeira atividade que casar vence
BUSINESS_RULES: Dict[str, List[Tuple[str, int, str]]] = {
    "restaurante": [
        ("334", 9, "Queijo para pratos principais"),
        ("5167", 8, "Carne bovina de qualidade"),
        ("597", 7, "Farinha multiuso"),
    ],
    "lanchonete": [
        ("5167", 9, "Carne para hambúrgueres"),
        ("271", 8, "Bacon para lanches"),
        ("597", 7, "Farinha para pães"),
    ],
    "pizzaria": [
        ("597", 10, "Farinha específica para pizza"),
        ("334", 9, "Queijo mozzarella"),
        ("277", 8, "Molho de tomate"),
    ],
    "padaria": [
        ("597", 10, "Farinha para panificação"),
        ("318", 9, "Fermento biológico"),
        ("48", 7, "Banha para massa"),
    ],
}

# (codigo, prioridade, motivo, confianca)
MENU_RULES: Dict[str, List[Tuple[str, int, str, float]]] = {
    "pizzas": [
        ("597", 10, "Farinha para pizza", 0.95),
        ("334", 9, "Queijo mozzarella", 0.90),
        ("277", 8, "Molho de tomate", 0.85),
    ],
    "hambúrgueres": [
        ("5167", 9, "Carne bovina", 0.90),
        ("271", 8, "Bacon", 0.85),
        ("334", 7, "Queijo", 0.80),
    ],
    "massas": [
        ("8563", 8, "Massa fresca", 0.85),
        ("334", 7, "Queijo para massas", 0.80),
        ("277", 6, "Molho de tomate", 0.75),
    ],
}

# tipo de negocio inferido -> (produtos, forca da associacao)
PRODUCT_ASSOCIATIONS: Dict[str, Tuple[List[str], float]] = {
    "pizzaria": (["597", "334", "277"], 0.9),
    "lanchonete": (["5167", "271", "597"], 0.85),
    "padaria": (["597", "318", "319"], 0.9),
    "restaurante": (["334", "5167", "506"], 0.8),
}

ML_PRIORITY = 8
ML_CONFIDENCE_FACTOR = 0.9
ML_CONFIDENCE_CAP = 0.95


def calculate_score(priority: int, confidence: float, source: SuggestionSource) -> float:
    return round(priority * confidence * SOURCE_WEIGHTS.get(source, 1.0), 4)


def infer_business_type(activity: str, menu_categories: Sequence[str]) -> str:
    """Tipo de negocio a partir do cardapio e da atividade"""
    if "pizzas" in menu_categories:
        return "pizzaria"
    if "hambúrgueres" in menu_categories:
        return "lanchonete"
    if "padaria" in (activity or "").lower():
        return "padaria"
    return "restaurante"


class RecommendationEngine:
    """Motor de recomendacao baseado em regras"""

    def __init__(self, catalog: Optional[ProductCatalog] = None):
        self.catalog = catalog or ProductCatalog()

    def business_type_suggestions(self, activity: str) -> List[ProductSuggestion]:
        activity = (activity or "").lower()
        for business_type, rules in BUSINESS_RULES.items():
            if business_type in activity:
                return [
                    self._suggestion(code, priority, reason, BUSINESS_CONFIDENCE, SuggestionSource.BUSINESS_TYPE)
                    for code, priority, reason in rules
                ]
        return []

    def menu_suggestions(self, menu_categories: Iterable[str]) -> List[ProductSuggestion]:
        suggestions = []
        for category in menu_categories:
            for code, priority, reason, confidence in MENU_RULES.get(category, []):
                suggestions.append(
                    self._suggestion(code, priority, reason, confidence, SuggestionSource.MENU_ANALYSIS)
                )
        return suggestions

    def predicted_suggestions(self, activity: str, menu_categories: Sequence[str]) -> List[ProductSuggestion]:
        """Associacao tipo de negocio -> produtos, com confianca reduzida"""
        business_type = infer_business_type(activity, menu_categories)
        association = PRODUCT_ASSOCIATIONS.get(business_type)
        if association is None:
            return []

        codes, strength = association
        confidence = min(strength * ML_CONFIDENCE_FACTOR, ML_CONFIDENCE_CAP)
        return [
            self._suggestion(
                code,
                ML_PRIORITY,
                f"Produto recomendado para {business_type}",
                confidence,
                SuggestionSource.ML_PREDICTION,
            )
            for code in codes
        ]

    def suggest(
        self,
        company: Optional[CompanyRecord],
        menu_categories: Sequence[str],
        social: Optional[SocialSummary] = None,
        ai_suggestions: Optional[List[ProductSuggestion]] = None,
    ) -> List[ProductSuggestion]:
        """
        Gera sugestoes ranqueadas

        As listas das fontes sao unidas sem deduplicar; a ordenacao e
        estavel, entao empates mantem a ordem das fontes.

        Args:
            company: Empresa (atividade principal)
            menu_categories: Categorias do cardapio
            social: Resumo social (nao altera o ranking, so e registrado)
            ai_suggestions: Sugestoes vindas da IA

        Returns:
            Ate 12 sugestoes, maior score primeiro
        """
        activity = company.main_activity if company else ""
        categories = list(menu_categories or [])

        suggestions: List[ProductSuggestion] = []
        suggestions.extend(self.business_type_suggestions(activity))
        suggestions.extend(self.menu_suggestions(categories))
        suggestions.extend(self.predicted_suggestions(activity, categories))
        for ai in ai_suggestions or []:
            suggestions.append(
                self._suggestion(ai.product_code, ai.priority, ai.reason, ai.confidence, SuggestionSource.AI_SUGGESTION)
            )

        ranked = sorted(suggestions, key=lambda s: s.score, reverse=True)[:MAX_SUGGESTIONS]

        logger.info(
            "recommendations_generated",
            candidates=len(suggestions),
            returned=len(ranked),
            menu_categories=categories,
            social_platforms=[p.value for p in social.platforms] if social else [],
        )
        return ranked

    def _suggestion(
        self,
        code: str,
        priority: int,
        reason: str,
        confidence: float,
        source: SuggestionSource,
    ) -> ProductSuggestion:
        return ProductSuggestion(
            product_code=code,
            priority=priority,
            reason=reason,
            confidence=confidence,
            source=source,
            score=calculate_score(priority, confidence, source),
            product=self.catalog.get(code),
        )
