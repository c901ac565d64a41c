"""
Prospector - Tests for Services
Testes para cardápio, recomendação, histórico e orquestração
"""

import json
import random
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from pydantic import ValidationError

from prospector.exceptions import AllProvidersFailedError, InvalidInputError
from prospector.models import (
    AnalysisResult,
    Competitor,
    MenuAnalysis,
    MenuCategory,
    Platform,
    ProductSuggestion,
    ProspectInput,
    SizeClass,
    SocialSummary,
    SuggestionSource,
)
from prospector.scrapers import CompanyRegistryClient, GeocodingClient, SocialEstimationClient
from prospector.scrapers.registry import adapt_brasilapi, provider_from_url
from prospector.services import (
    AIAnalysisClient,
    CompetitorAnalyzer,
    MenuAnalyzer,
    ProductCatalog,
    ProspectAnalysisService,
    ProspectHistory,
    RecommendationEngine,
)
from prospector.services.competitors import (
    calculate_competitive_score,
    calculate_relevance,
    identify_market_segment,
)
from prospector.services.recommendation import calculate_score
from prospector.utils.cache import CacheManager
from tests.conftest import (
    MOCK_BRASILAPI_DATA,
    MOCK_FULL_MENU_TEXT,
    MOCK_MENU_TEXT,
    MOCK_NOMINATIM_RESULT,
    VALID_CNPJ,
    mock_http_client,
)


@pytest.fixture
def company():
    return adapt_brasilapi(VALID_CNPJ, MOCK_BRASILAPI_DATA)


# ===========================================
# MENU ANALYZER TESTS
# ===========================================


class TestMenuAnalyzer:
    """Testes para MenuAnalyzer"""

    @pytest.fixture
    def analyzer(self):
        return MenuAnalyzer()

    def test_simple_menu(self, analyzer):
        """Dois itens: média e mediana iguais"""
        analysis = analyzer.analyze(MOCK_MENU_TEXT)

        assert analysis.item_count == 2
        names = [item.name for item in analysis.items]
        assert names == ["Pizza Margherita", "Lasanha Bolonhesa"]
        assert analysis.items[0].price == Decimal("35.00")
        assert analysis.items[1].price == Decimal("38.50")

        stats = analysis.price_statistics
        assert stats.min == Decimal("35.00")
        assert stats.max == Decimal("38.50")
        assert stats.average == Decimal("36.75")
        assert stats.median == Decimal("36.75")
        assert analysis.category_names == ["pizzas", "massas"]
        assert analysis.establishment_type == "pizzaria"

    def test_two_pizzas_round_trip(self, analyzer):
        items = analyzer.extract_items("Pizza Margherita R$ 35,00\nPizza Calabresa R$ 38,50")

        assert [item.price for item in items] == [Decimal("35.00"), Decimal("38.50")]

        stats = analyzer.price_statistics(items)
        assert stats.min == Decimal("35.00")
        assert stats.max == Decimal("38.50")
        assert stats.average == Decimal("36.75")
        assert stats.median == Decimal("36.75")

    def test_full_menu(self, analyzer):
        analysis = analyzer.analyze(MOCK_FULL_MENU_TEXT)

        # linha duplicada ignorada
        assert analysis.item_count == 6
        assert set(analysis.categories) == {
            MenuCategory.PIZZAS,
            MenuCategory.PASTA,
            MenuCategory.MEATS,
            MenuCategory.DESSERTS,
            MenuCategory.DRINKS,
        }
        assert analysis.category_names == ["pizzas", "massas", "carnes", "sobremesas", "bebidas"]
        assert len(analysis.categories[MenuCategory.PIZZAS]) == 2

        stats = analysis.price_statistics
        assert stats.min == Decimal("6.50")
        assert stats.max == Decimal("89.90")
        assert stats.median == Decimal("39.45")
        assert stats.average == Decimal("38.72")
        assert stats.distribution == {"0-15": 2, "15-30": 0, "30-50": 3, "50-100": 1, "100+": 0}

    def test_described_item(self, analyzer):
        items = analyzer.extract_items("Espaguete ao Sugo - molho de tomate e manjericão - R$ 36,90")

        assert len(items) == 1
        assert items[0].name == "Espaguete ao Sugo"
        assert items[0].description == "molho de tomate e manjericão"
        assert items[0].price == Decimal("36.90")

    def test_thousands_separator(self, analyzer):
        items = analyzer.extract_items("Rodízio Completo R$ 1.250,00")
        assert items[0].price == Decimal("1250.00")

    def test_short_cents_and_thousands_without_cents(self, analyzer):
        items = analyzer.extract_items("Pizza Broto R$ 35,5\nRodízio Família R$ 1.500")

        assert [item.price for item in items] == [Decimal("35.50"), Decimal("1500.00")]

    def test_rejects_short_names_and_zero_prices(self, analyzer):
        text = "Chá R$ 5,00\nÁgua Mineral R$ 0,00\nSem preço aqui"
        assert analyzer.extract_items(text) == []

    def test_categorized_items_carry_category(self, analyzer):
        analysis = analyzer.analyze(MOCK_MENU_TEXT)
        assert [item.category for item in analysis.items] == [MenuCategory.PIZZAS, MenuCategory.PASTA]

    def test_other_category(self, analyzer):
        assert analyzer.categorize_item("Combo Especial") == MenuCategory.OTHER
        assert analyzer.categorize_item("Camarão na Moranga") == MenuCategory.SEAFOOD

    def test_ingredients(self, analyzer):
        ingredients = analyzer.extract_ingredients(MOCK_FULL_MENU_TEXT)

        assert ingredients[0].ingredient == "calabresa"
        assert ingredients[0].count == 2
        assert {"molho", "tomate", "manjericão"} <= {i.ingredient for i in ingredients}

    def test_empty_menu(self, analyzer):
        analysis = analyzer.analyze("   ")

        assert analysis.item_count == 0
        assert analysis.items == []
        assert analysis.price_statistics.average == Decimal("0")
        assert analysis.establishment_type == "estabelecimento alimentício"

    def test_learned_establishment_type(self, analyzer):
        assert analyzer.detect_establishment_type("Marmitex executivo do dia") == "estabelecimento alimentício"

        analyzer.learn("Marmitex executivo com feijoada", "restaurante")

        assert analyzer.detect_establishment_type("Marmitex executivo do dia") == "restaurante"
        assert analyzer.analyze("Marmitex Executivo R$ 22,00").establishment_type == "restaurante"
        assert analyzer.get_model_stats() == {"training_examples": 1, "confirmed": 1}

    def test_rejected_example_is_ignored(self, analyzer):
        example = analyzer.learn("Pizza de calabresa", "sorveteria", correct=False)

        assert example.confidence == 0.1
        assert example.keywords == ["calabresa", "pizza"]
        assert analyzer.detect_establishment_type("Pizza de calabresa") == "pizzaria"
        assert analyzer.get_model_stats() == {"training_examples": 1, "confirmed": 0}

    def test_learning_is_per_instance(self, analyzer):
        analyzer.learn("Marmitex executivo", "restaurante")

        assert MenuAnalyzer().detect_establishment_type("Marmitex executivo") == "estabelecimento alimentício"


# ===========================================
# CATALOG TESTS
# ===========================================


class TestProductCatalog:
    """Testes para ProductCatalog"""

    def test_lookup(self):
        catalog = ProductCatalog()

        assert len(catalog) == 11
        assert catalog.get("597").price == Decimal("89.90")
        assert catalog.get(597).unit == "SC"
        assert "999" not in catalog
        assert catalog.get("999") is None

    def test_get_many_keeps_order(self):
        products = ProductCatalog().get_many(["334", "999", "48"])
        assert [p.code for p in products] == ["334", "48"]

    def test_by_category(self):
        codes = {p.code for p in ProductCatalog().by_category("carnes")}
        assert codes == {"271", "5167"}


# ===========================================
# RECOMMENDATION TESTS
# ===========================================


class TestRecommendationEngine:
    """Testes para RecommendationEngine"""

    @pytest.fixture
    def engine(self):
        return RecommendationEngine()

    def test_score(self):
        assert calculate_score(10, 0.95, SuggestionSource.MENU_ANALYSIS) == 10.45
        assert calculate_score(9, 0.8, SuggestionSource.BUSINESS_TYPE) == 7.2

    def test_restaurant_with_pizza_menu(self, engine, company):
        suggestions = engine.suggest(company, ["pizzas"])

        top = suggestions[0]
        assert top.product_code == "597"
        assert top.source == SuggestionSource.MENU_ANALYSIS
        assert top.score == 10.45
        assert top.product.name == "FARINHA DE TRIGO ESPECIAL 25 KG"

        second = suggestions[1]
        assert second.product_code == "334"
        assert second.score == 8.91

        pizza_codes = {"597", "334", "277"}
        sources = {s.source for s in suggestions if s.product_code in pizza_codes}
        assert SuggestionSource.BUSINESS_TYPE in sources
        assert SuggestionSource.MENU_ANALYSIS in sources

    def test_sorted_and_capped(self, engine, company):
        suggestions = engine.suggest(company, ["pizzas", "hambúrgueres", "massas"])

        assert len(suggestions) == 12
        scores = [s.score for s in suggestions]
        assert scores == sorted(scores, reverse=True)

    def test_deterministic(self, engine, company):
        first = engine.suggest(company, ["pizzas", "massas"])
        second = engine.suggest(company, ["pizzas", "massas"])
        assert first == second

    def test_social_does_not_change_ranking(self, engine, company):
        social = SocialSummary(platforms=[Platform.INSTAGRAM], total_followers=5000)
        assert engine.suggest(company, ["pizzas"], social) == engine.suggest(company, ["pizzas"])

    def test_without_company_or_menu(self, engine):
        """Sem dados: associação padrão de restaurante"""
        suggestions = engine.suggest(None, [])

        assert [s.product_code for s in suggestions] == ["334", "5167", "506"]
        assert all(s.source == SuggestionSource.ML_PREDICTION for s in suggestions)
        assert suggestions[0].confidence == pytest.approx(0.72)

    def test_bakery(self, engine):
        suggestions = engine.business_type_suggestions("Padaria e confeitaria")
        assert [s.product_code for s in suggestions] == ["597", "318", "48"]

    def test_ai_suggestions_weight(self, engine, company):
        ai = [
            ProductSuggestion(
                product_code="740",
                priority=8,
                reason="Sugerido pela IA",
                confidence=0.7,
                source=SuggestionSource.AI_SUGGESTION,
            )
        ]
        suggestions = engine.suggest(company, [], ai_suggestions=ai)

        ai_suggestion = next(s for s in suggestions if s.product_code == "740")
        assert ai_suggestion.score == pytest.approx(7.28)
        assert ai_suggestion.product is not None


# ===========================================
# COMPETITOR TESTS
# ===========================================


class TestCompetitorAnalyzer:
    """Testes para CompetitorAnalyzer"""

    @pytest.fixture
    def analyzer(self):
        return CompetitorAnalyzer(data_path="")

    def test_default_competitors(self, analyzer, company):
        social = SocialSummary(platforms=[Platform.INSTAGRAM])
        analysis = analyzer.analyze(company, ["pizzas"], social)

        first, second = analysis.competitors
        assert first.competitor.id == "atacadao"
        assert first.relevance == 6.5
        assert first.competitive_score == 8.5
        assert first.threats == ["Grande participação de mercado", "Amplo portfólio de produtos"]
        assert first.opportunities == ["Diferenciação por qualidade no atendimento"]
        assert second.competitor.id == "assai"
        assert second.relevance == 6.4
        assert second.threats == []

        position = analysis.market_position
        assert position.segment == "Food Service - Restaurantes"
        assert position.size_estimate == "R$ 45 bilhões"
        assert position.growth_potential == "Alto - crescimento de delivery"
        assert position.competitive_intensity == "Baixa"
        assert len(position.entry_barriers) == 5

        assert analysis.opportunities == [
            "Especialização em produtos para pizzarias",
            "Cliente ativo em redes sociais - potencial para parceria digital",
        ]
        assert analysis.threats == ["concorrência", "inflação"]
        assert analysis.recommendations == [
            "Desenvolver linha específica para restaurantes",
            "Oferecer consultoria em gestão de custos",
        ]

    def test_score_bonus_is_capped(self, company):
        competitor = Competitor(
            id="forte",
            name="Forte",
            competitive_score=9.8,
            target_audience=["restaurantes"],
            geographical_presence="nacional",
        )
        assert calculate_competitive_score(competitor, company) == 10.0
        assert calculate_competitive_score(competitor, None) == 9.8

    def test_relevance(self):
        competitor = Competitor(
            id="regional",
            name="Regional",
            products_overlap=80,
            market_share=30,
            geographical_presence="regional",
        )
        assert calculate_relevance(competitor) == 8.5

    @pytest.mark.parametrize(
        "activity,segment",
        [
            (None, "Geral"),
            ("Padaria e confeitaria", "Food Service - Padarias"),
            ("Hotel fazenda", "Food Service - Hotéis"),
            ("Comércio varejista de alimentos", "Varejo Alimentar"),
        ],
    )
    def test_market_segment(self, activity, segment):
        assert identify_market_segment(activity) == segment

    def test_crowded_segment(self, company):
        competitors = [
            Competitor(
                id=f"c{i}",
                name=f"Concorrente {i}",
                competitive_score=8.0,
                target_audience=["restaurantes"],
                pricing_strategy="competitivo",
            )
            for i in range(4)
        ]
        analysis = CompetitorAnalyzer(competitors=competitors, market_threats=[]).analyze(company)

        assert analysis.market_position.competitive_intensity == "Alta"
        assert analysis.threats == ["Múltiplos concorrentes fortes na região", "Pressão competitiva nos preços"]
        assert analysis.competitors[0].threats == ["Preços muito competitivos"]

    def test_micro_company(self, analyzer, company):
        micro = company.model_copy(update={"size_class": SizeClass.MICRO})
        analysis = analyzer.analyze(micro)

        assert analysis.opportunities[0] == "Atendimento personalizado para pequenos negócios"
        assert analysis.recommendations[-2:] == [
            "Programa especial para micro empresas",
            "Condições de pagamento flexíveis",
        ]

    def test_load_from_file(self, tmp_path, company):
        path = tmp_path / "competitors.json"
        path.write_text(json.dumps({
            "competitors": [{"id": "local", "name": "Atacado Local", "market_share": 5, "segment": "alimenticio"}],
            "market_analysis": {"threats": ["sazonalidade"]},
            "positioning": {
                "opportunities": ["entrega em 24h"],
                "recommended_strategy": ["visita semanal"],
            },
        }), encoding="utf-8")

        analysis = CompetitorAnalyzer(data_path=path).analyze(company)

        assert [a.competitor.id for a in analysis.competitors] == ["local"]
        assert analysis.threats == ["sazonalidade"]
        assert analysis.opportunities == ["entrega em 24h"]
        assert analysis.recommendations[0] == "visita semanal"

    def test_invalid_file_uses_defaults(self, tmp_path):
        path = tmp_path / "competitors.json"
        path.write_text("[1, 2", encoding="utf-8")

        analyzer = CompetitorAnalyzer(data_path=path)
        assert [c.id for c in analyzer.competitors] == ["atacadao", "assai"]


# ===========================================
# HISTORY TESTS
# ===========================================


def _result(company, engine=None, generated_at=None, suggestions=None):
    engine = engine or RecommendationEngine()
    kwargs = {}
    if generated_at is not None:
        kwargs["generated_at"] = generated_at
    return AnalysisResult(
        company=company,
        social=SocialSummary(platforms=[Platform.INSTAGRAM]),
        menu=MenuAnalysis(item_count=2),
        suggestions=engine.suggest(company, ["pizzas"]) if suggestions is None else suggestions,
        ai_analysis="análise",
        sales_script="script",
        **kwargs,
    )


class TestProspectHistory:
    """Testes para ProspectHistory"""

    def test_record_and_reload(self, tmp_path, company):
        path = tmp_path / "history.json"
        history = ProspectHistory(path)

        entry = history.record(_result(company))

        assert entry["tax_id"] == VALID_CNPJ
        assert entry["name"] == "BELLA NAPOLI"
        assert entry["business_type"] == "Restaurante"
        assert entry["social_platforms"] == ["instagram"]
        assert entry["menu_items"] == 2

        reloaded = ProspectHistory(path)
        assert reloaded.list_prospects()[0]["tax_id"] == VALID_CNPJ
        analytics = reloaded.analytics
        assert analytics["total_analyses"] == 1
        assert analytics["by_activity"] == {"restaurantes": 1}
        assert analytics["by_business_type"] == {"Restaurante": 1}
        assert analytics["products_suggested"]["597"] == 3

    def test_newest_first_and_trimmed(self, tmp_path, company):
        history = ProspectHistory(tmp_path / "history.json", max_prospects=2)
        for day in (1, 2, 3):
            history.record(_result(company, generated_at=datetime(2026, 5, day), suggestions=[]))

        prospects = history.list_prospects()
        assert len(prospects) == 2
        assert prospects[0]["timestamp"].startswith("2026-05-03")
        assert history.analytics["total_analyses"] == 3

    def test_corrupt_file_starts_empty(self, tmp_path):
        path = tmp_path / "history.json"
        path.write_text("{not json", encoding="utf-8")

        history = ProspectHistory(path)
        assert history.list_prospects() == []
        assert history.analytics["total_analyses"] == 0

    def test_metrics(self, tmp_path, company):
        history = ProspectHistory(tmp_path / "history.json")
        for when in (datetime(2026, 4, 10), datetime(2026, 5, 2), datetime(2026, 5, 15)):
            history.record(_result(company, generated_at=when, suggestions=[]))

        metrics = history.get_metrics(now=datetime(2026, 5, 20))
        assert metrics == {"total": 3, "this_month": 2, "last_month": 1, "growth_pct": 100.0}

    def test_metrics_across_year(self, tmp_path, company):
        history = ProspectHistory(tmp_path / "history.json")
        history.record(_result(company, generated_at=datetime(2025, 12, 20), suggestions=[]))

        metrics = history.get_metrics(now=datetime(2026, 1, 5))
        assert metrics["last_month"] == 1
        assert metrics["this_month"] == 0
        assert metrics["growth_pct"] == -100.0

    def test_failed_save_keeps_state(self, tmp_path, company, monkeypatch):
        """Falha de escrita não altera o estado em memória"""
        history = ProspectHistory(tmp_path / "history.json")
        history.record(_result(company, suggestions=[]))

        def fail_replace(self, target):
            raise OSError("disco cheio")

        monkeypatch.setattr(Path, "replace", fail_replace)
        with pytest.raises(OSError):
            history.record(_result(company, suggestions=[]))

        assert len(history.list_prospects()) == 1
        assert history.analytics["total_analyses"] == 1
        assert history.get_metrics()["total"] == 1

    def test_clear(self, tmp_path, company):
        path = tmp_path / "history.json"
        history = ProspectHistory(path)
        history.record(_result(company))
        history.clear()

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["prospects"] == []
        assert data["analytics"]["total_analyses"] == 0


# ===========================================
# PROSPECT ANALYSIS SERVICE TESTS
# ===========================================


def _network(registry_status=200, geocode=True):
    def handler(request):
        host = request.url.host
        if host == "brasilapi.com.br":
            if registry_status != 200:
                return httpx.Response(registry_status)
            return httpx.Response(200, json=MOCK_BRASILAPI_DATA)
        if host == "nominatim.openstreetmap.org":
            return httpx.Response(200, json=MOCK_NOMINATIM_RESULT if geocode else [])
        return httpx.Response(404)

    return handler


def _service(tmp_path, offline_ai_providers, handler, **kwargs):
    return ProspectAnalysisService(
        registry=CompanyRegistryClient(
            providers=[provider_from_url("https://brasilapi.com.br/api/cnpj/v1/")],
            cache=CacheManager("company"),
            client=mock_http_client(handler),
            max_attempts=1,
        ),
        geocoding=GeocodingClient(cache=CacheManager("geocoding"), client=mock_http_client(handler), max_attempts=1),
        social=SocialEstimationClient(
            cache=CacheManager("social"),
            rng=random.Random(1),
            proxies=[],
            facebook_token="",
            client=mock_http_client(handler),
            max_attempts=1,
        ),
        ai=AIAnalysisClient(providers=offline_ai_providers, cache=CacheManager("ai")),
        history=ProspectHistory(tmp_path / "history.json"),
        **kwargs,
    )


class TestProspectAnalysisService:
    """Testes para ProspectAnalysisService (fluxo completo, sem rede)"""

    @pytest.mark.asyncio
    async def test_full_analysis(self, tmp_path, offline_ai_providers):
        service = _service(tmp_path, offline_ai_providers, _network())
        prospect = ProspectInput(
            tax_id="11.222.333/0001-81",
            instagram="@bellanapoli",
            menu_text=MOCK_MENU_TEXT,
        )

        result = await service.analyze(prospect)
        await service.close()

        assert result.company.tax_id == VALID_CNPJ
        assert result.company.coordinates.lat == pytest.approx(-23.5558)

        assert result.social.platforms == [Platform.INSTAGRAM]
        assert result.social.has_estimated_data is True

        assert result.menu.item_count == 2
        assert result.menu.category_names == ["pizzas", "massas"]

        assert result.suggestions[0].product_code == "597"
        assert result.suggestions[0].score == 10.45

        assert "- Empresa: BELLA NAPOLI" in result.ai_analysis
        assert result.sales_script.startswith("SCRIPT PERSONALIZADO - BELLA NAPOLI")
        assert "FARINHA DE TRIGO ESPECIAL 25 KG" in result.sales_script

        assert result.competitors.market_position.segment == "Food Service - Restaurantes"
        assert "Especialização em produtos para pizzarias" in result.competitors.opportunities

        assert service.history.list_prospects()[0]["tax_id"] == VALID_CNPJ

    @pytest.mark.asyncio
    async def test_result_is_immutable(self, tmp_path, offline_ai_providers):
        service = _service(tmp_path, offline_ai_providers, _network())
        result = await service.analyze(ProspectInput(tax_id=VALID_CNPJ))

        with pytest.raises(ValidationError):
            result.ai_analysis = "outro texto"

    @pytest.mark.asyncio
    async def test_without_menu_or_social(self, tmp_path, offline_ai_providers):
        service = _service(tmp_path, offline_ai_providers, _network())
        result = await service.analyze(ProspectInput(tax_id=VALID_CNPJ))

        assert result.menu.item_count == 0
        assert result.social.platforms == []
        assert result.suggestions
        assert "- Cardápio fornecido: Não" in result.ai_analysis

    @pytest.mark.asyncio
    async def test_geocoding_failure_degrades(self, tmp_path, offline_ai_providers):
        service = _service(tmp_path, offline_ai_providers, _network(geocode=False))
        result = await service.analyze(ProspectInput(tax_id=VALID_CNPJ))

        assert result.company.coordinates is None
        assert result.company.legal_name == "CANTINA BELLA NAPOLI LTDA"

    @pytest.mark.asyncio
    async def test_registry_failure_propagates(self, tmp_path, offline_ai_providers):
        service = _service(tmp_path, offline_ai_providers, _network(registry_status=500))

        with pytest.raises(AllProvidersFailedError):
            await service.analyze(ProspectInput(tax_id=VALID_CNPJ))

        assert service.history.list_prospects() == []

    @pytest.mark.asyncio
    async def test_invalid_cnpj(self, tmp_path, offline_ai_providers):
        service = _service(tmp_path, offline_ai_providers, _network())

        with pytest.raises(InvalidInputError):
            await service.analyze(ProspectInput(tax_id="00.000.000/0000-00"))

    @pytest.mark.asyncio
    async def test_ai_menu_suggestions(self):
        ai = MagicMock()
        ai.analyze_menu = AsyncMock(return_value={"suggested_products": ["740", "99999"]})
        service = ProspectAnalysisService(ai=ai, use_ai_menu=True)

        suggestions = await service._ai_menu_suggestions(MOCK_MENU_TEXT)

        assert [s.product_code for s in suggestions] == ["740"]
        assert suggestions[0].source == SuggestionSource.AI_SUGGESTION
        ai.analyze_menu.assert_awaited_once_with(MOCK_MENU_TEXT)

    @pytest.mark.asyncio
    async def test_ai_menu_disabled_by_default(self):
        ai = MagicMock()
        ai.analyze_menu = AsyncMock()
        service = ProspectAnalysisService(ai=ai)

        assert await service._ai_menu_suggestions(MOCK_MENU_TEXT) == []
        ai.analyze_menu.assert_not_awaited()

    def test_script_products_unique(self, company):
        suggestions = RecommendationEngine().suggest(company, ["pizzas", "hambúrgueres"])
        products = ProspectAnalysisService._script_products(suggestions)

        codes = [p.code for p in products]
        assert len(codes) == len(set(codes))
        assert len(codes) <= 5
        assert codes[0] == "597"
