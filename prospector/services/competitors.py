"""
Competitor Analysis
Panorama competitivo do prospect frente aos atacadistas concorrentes

Base de concorrentes carregada de um JSON opcional (settings.competitors_path):
    {
        "competitors": [{...}],
        "market_analysis": {"threats": [...]},
        "positioning": {"opportunities": [...], "recommended_strategy": [...]}
    }
Sem arquivo (ou com arquivo invalido) usa a base padrao.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import structlog
from pydantic import ValidationError

from config.settings import settings
from prospector.models import (
    CompanyRecord,
    Competitor,
    CompetitorAnalysis,
    CompetitorAssessment,
    MarketPosition,
    SizeClass,
    SocialSummary,
)

logger = structlog.get_logger()

DEFAULT_COMPETITORS = [
    Competitor(
        id="atacadao",
        name="Atacadão",
        market_share=25,
        competitive_score=8.2,
        strengths=["preços baixos", "variedade"],
        weaknesses=["atendimento"],
        geographical_presence="nacional",
    ),
    Competitor(
        id="assai",
        name="Assaí",
        market_share=20,
        competitive_score=7.9,
        strengths=["tecnologia", "logística"],
        weaknesses=["marca nova"],
        geographical_presence="nacional",
    ),
]

DEFAULT_MARKET_THREATS = ["concorrência", "inflação"]

MAX_SCORE = 10.0
STRONG_COMPETITOR_SCORE = 7.5

# (palavra na atividade, publico-alvo do concorrente)
AUDIENCE_MATCHES = [
    ("restaurante", "restaurantes"),
    ("padaria", "padarias"),
    ("lanchonete", "lanchonetes"),
]

# Ordem importa: a primeira palavra encontrada define o segmento
SEGMENTS = [
    ("restaurante", "Food Service - Restaurantes"),
    ("padaria", "Food Service - Padarias"),
    ("lanchonete", "Food Service - Lanchonetes"),
    ("hotel", "Food Service - Hotéis"),
    ("escola", "Food Service - Instituições"),
]
GENERAL_SEGMENT = "Geral"
RETAIL_SEGMENT = "Varejo Alimentar"

MARKET_SIZES = {
    "Food Service - Restaurantes": "R$ 45 bilhões",
    "Food Service - Padarias": "R$ 25 bilhões",
    "Food Service - Lanchonetes": "R$ 15 bilhões",
    "Food Service - Hotéis": "R$ 8 bilhões",
    RETAIL_SEGMENT: "R$ 120 bilhões",
}

GROWTH_TRENDS = {
    "Food Service - Restaurantes": "Alto - crescimento de delivery",
    "Food Service - Padarias": "Médio - mercado consolidado",
    "Food Service - Lanchonetes": "Alto - fast food em crescimento",
    "Food Service - Hotéis": "Médio - recuperação pós-pandemia",
    RETAIL_SEGMENT: "Médio - mercado maduro",
}

ENTRY_BARRIERS = [
    "Necessidade de capital inicial alto",
    "Relacionamento estabelecido com fornecedores",
    "Logística e distribuição complexa",
    "Regulamentações sanitárias",
    "Economia de escala dos grandes players",
]

THREAT_RULES = [
    (lambda c: c.market_share > 20, "Grande participação de mercado"),
    (lambda c: c.pricing_strategy == "competitivo", "Preços muito competitivos"),
    (lambda c: "variedade" in c.strengths, "Amplo portfólio de produtos"),
    (lambda c: "localização" in c.strengths, "Melhor localização geográfica"),
]

OPPORTUNITY_RULES = [
    ("atendimento", "Diferenciação por qualidade no atendimento"),
    ("qualidade variável", "Foco na qualidade consistente dos produtos"),
    ("localização limitada", "Cobertura geográfica superior"),
]


def identify_market_segment(activity: Optional[str]) -> str:
    if not activity:
        return GENERAL_SEGMENT
    lowered = activity.lower()
    for keyword, segment in SEGMENTS:
        if keyword in lowered:
            return segment
    return RETAIL_SEGMENT


def calculate_competitive_score(competitor: Competitor, company: Optional[CompanyRecord]) -> float:
    """
    Forca do concorrente para este prospect

    Bonus quando o concorrente atende o tipo de negocio do prospect (+0.5)
    e quando tem presenca nacional e o prospect tem endereco (+0.3).
    """
    score = competitor.competitive_score
    activity = (company.main_activity or "").lower() if company else ""

    for keyword, audience in AUDIENCE_MATCHES:
        if keyword in activity and audience in competitor.target_audience:
            score += 0.5

    if company and company.address and competitor.geographical_presence == "nacional":
        score += 0.3

    return round(min(score, MAX_SCORE), 2)


def calculate_relevance(competitor: Competitor) -> float:
    relevance = 5.0
    relevance += competitor.products_overlap / 100 * 3
    relevance += competitor.market_share / 100 * 2
    if competitor.geographical_presence == "nacional":
        relevance += 1.0
    elif competitor.geographical_presence == "regional":
        relevance += 0.5
    return round(min(relevance, MAX_SCORE), 2)


def competitor_threats(competitor: Competitor) -> List[str]:
    return [message for rule, message in THREAT_RULES if rule(competitor)]


def competitor_opportunities(competitor: Competitor) -> List[str]:
    return [message for weakness, message in OPPORTUNITY_RULES if weakness in competitor.weaknesses]


def _serves_segment(competitor: Competitor, segment: str) -> bool:
    segment = segment.lower()
    for audience in competitor.target_audience:
        audience = audience.lower()
        if audience and (audience in segment or segment in audience):
            return True
    return competitor.segment == "alimenticio"


def load_competitor_data(path: Optional[Union[str, Path]]) -> Dict[str, Any]:
    """
    Carrega a base de concorrentes

    Returns:
        Dict com competitors, market_threats, opportunities e recommended_strategy
    """
    defaults = {
        "competitors": list(DEFAULT_COMPETITORS),
        "market_threats": list(DEFAULT_MARKET_THREATS),
        "opportunities": [],
        "recommended_strategy": [],
    }
    if not path:
        return defaults

    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        positioning = data.get("positioning") or {}
        return {
            "competitors": [Competitor(**c) for c in data.get("competitors") or []],
            "market_threats": list((data.get("market_analysis") or {}).get("threats") or []),
            "opportunities": list(positioning.get("opportunities") or []),
            "recommended_strategy": list(positioning.get("recommended_strategy") or []),
        }
    except (OSError, ValueError, AttributeError, TypeError, ValidationError) as e:
        logger.warning("competitors_data_load_failed", path=str(path), error=str(e))
        return defaults


class CompetitorAnalyzer:
    """
    Analise competitiva local (sem I/O de rede)

    Uso:
        analyzer = CompetitorAnalyzer()
        analysis = analyzer.analyze(company, ["pizzas"], social)
    """

    def __init__(
        self,
        competitors: Optional[Sequence[Competitor]] = None,
        market_threats: Optional[Sequence[str]] = None,
        opportunities: Optional[Sequence[str]] = None,
        recommended_strategy: Optional[Sequence[str]] = None,
        data_path: Optional[Union[str, Path]] = None,
    ):
        data = load_competitor_data(settings.competitors_path if data_path is None else data_path)
        self.competitors = list(competitors if competitors is not None else data["competitors"])
        self.market_threats = list(market_threats if market_threats is not None else data["market_threats"])
        self.opportunities = list(opportunities if opportunities is not None else data["opportunities"])
        self.recommended_strategy = list(
            recommended_strategy if recommended_strategy is not None else data["recommended_strategy"]
        )

    def analyze(
        self,
        company: Optional[CompanyRecord],
        menu_categories: Sequence[str] = (),
        social: Optional[SocialSummary] = None,
    ) -> CompetitorAnalysis:
        activity = company.main_activity if company else None
        segment = identify_market_segment(activity)

        analysis = CompetitorAnalysis(
            competitors=self.assess_competitors(company),
            market_position=self.market_position(segment),
            opportunities=self.identify_opportunities(company, menu_categories, social),
            threats=self.identify_threats(),
            recommendations=self.generate_recommendations(company, segment),
        )
        logger.info(
            "competitor_analysis_complete",
            segment=segment,
            competitors=len(analysis.competitors),
            threats=len(analysis.threats),
        )
        return analysis

    def assess_competitors(self, company: Optional[CompanyRecord]) -> List[CompetitorAssessment]:
        """Avaliacao de cada concorrente, mais relevante primeiro"""
        assessments = [
            CompetitorAssessment(
                competitor=competitor,
                competitive_score=calculate_competitive_score(competitor, company),
                relevance=calculate_relevance(competitor),
                threats=competitor_threats(competitor),
                opportunities=competitor_opportunities(competitor),
            )
            for competitor in self.competitors
        ]
        return sorted(assessments, key=lambda a: a.relevance, reverse=True)

    def market_position(self, segment: str) -> MarketPosition:
        return MarketPosition(
            segment=segment,
            size_estimate=MARKET_SIZES.get(segment, "R$ 10 bilhões"),
            growth_potential=GROWTH_TRENDS.get(segment, "Médio"),
            competitive_intensity=self.competitive_intensity(segment),
            entry_barriers=list(ENTRY_BARRIERS),
        )

    def competitive_intensity(self, segment: str) -> str:
        count = sum(1 for c in self.competitors if _serves_segment(c, segment))
        if count >= 4:
            return "Alta"
        if count >= 2:
            return "Média"
        return "Baixa"

    def identify_opportunities(
        self,
        company: Optional[CompanyRecord],
        menu_categories: Sequence[str],
        social: Optional[SocialSummary],
    ) -> List[str]:
        opportunities = []
        if company and company.size_class == SizeClass.MICRO:
            opportunities.append("Atendimento personalizado para pequenos negócios")
        if "pizzas" in menu_categories:
            opportunities.append("Especialização em produtos para pizzarias")
        if social and social.platforms:
            opportunities.append("Cliente ativo em redes sociais - potencial para parceria digital")
        opportunities.extend(self.opportunities)
        return opportunities

    def identify_threats(self) -> List[str]:
        threats = []
        strong = [c for c in self.competitors if c.competitive_score > STRONG_COMPETITOR_SCORE]
        if len(strong) > 2:
            threats.append("Múltiplos concorrentes fortes na região")
        if sum(1 for c in self.competitors if c.pricing_strategy == "competitivo") > 1:
            threats.append("Pressão competitiva nos preços")
        threats.extend(self.market_threats)
        return threats

    def generate_recommendations(self, company: Optional[CompanyRecord], segment: str) -> List[str]:
        recommendations = list(self.recommended_strategy)

        if "Restaurantes" in segment:
            recommendations.append("Desenvolver linha específica para restaurantes")
            recommendations.append("Oferecer consultoria em gestão de custos")
        if "Padarias" in segment:
            recommendations.append("Foco em produtos de panificação de alta qualidade")
            recommendations.append("Treinamentos técnicos para padeiros")
        if company and company.size_class == SizeClass.MICRO:
            recommendations.append("Programa especial para micro empresas")
            recommendations.append("Condições de pagamento flexíveis")

        return recommendations
