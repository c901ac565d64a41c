"""
Pydantic models for the Prospector domain.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class CompanySituation(str, Enum):
    """Situação cadastral normalizada."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    UNKNOWN = "unknown"


class SizeClass(str, Enum):
    """Porte da empresa derivado do capital social."""

    MICRO = "micro"
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    UNKNOWN = "unknown"


class Platform(str, Enum):
    INSTAGRAM = "instagram"
    FACEBOOK = "facebook"


class DataSource(str, Enum):
    """Origem dos números de um perfil social."""

    LIVE = "live"  # API oficial
    SCRAPED = "scraped"  # extraído do HTML
    ESTIMATED = "estimated"  # heurística


class MenuCategory(str, Enum):
    """Categorias de cardápio, em ordem de prioridade."""

    PIZZAS = "pizzas"
    BURGERS = "hambúrgueres"
    PASTA = "massas"
    MEATS = "carnes"
    SEAFOOD = "frutos_do_mar"
    DESSERTS = "sobremesas"
    DRINKS = "bebidas"
    STARTERS = "entradas"
    OTHER = "outros"


class SuggestionSource(str, Enum):
    BUSINESS_TYPE = "business_type"
    MENU_ANALYSIS = "menu_analysis"
    ML_PREDICTION = "ml_prediction"
    AI_SUGGESTION = "ai_suggestion"


class BusinessType(str, Enum):
    """Tipo de negócio inferido da atividade principal."""

    RESTAURANT = "Restaurante"
    BAKERY = "Padaria"
    SNACK_BAR = "Lanchonete"
    PIZZERIA = "Pizzaria"
    BAR = "Bar"
    FOOD_SERVICE = "Alimentício"


# ===========================================
# EMPRESA
# ===========================================


class Coordinates(BaseModel):
    """Coordenadas geográficas de um endereço."""

    lat: float
    lng: float
    display_name: Optional[str] = None
    components: Dict[str, str] = Field(default_factory=dict)


class DistanceResult(BaseModel):
    """Distância em linha reta entre dois pontos."""

    distance_km: float
    origin: Coordinates
    destination: Coordinates


class RouteInfo(BaseModel):
    distance_km: float
    duration_min: Optional[int] = None
    mode: str = "driving"
    origin: Coordinates
    destination: Coordinates


class Partner(BaseModel):
    name: str
    role: str = ""


class CompanyRecord(BaseModel):
    """Registro normalizado de empresa a partir de qualquer provider."""

    tax_id: str = Field(..., min_length=14, max_length=14)
    legal_name: str = ""
    trade_name: str = ""
    main_activity: str = "Não informado"
    secondary_activities: List[str] = Field(default_factory=list)
    address: str = "Endereço não informado"
    coordinates: Optional[Coordinates] = None
    phone: str = ""
    email: str = ""
    situation: CompanySituation = CompanySituation.UNKNOWN
    opening_date: Optional[date] = None
    capital: Optional[Decimal] = None
    size_class: SizeClass = SizeClass.UNKNOWN
    employees_estimate: str = ""
    legal_nature: str = ""
    partners: List[Partner] = Field(default_factory=list)
    source: str = Field(default="", description="Provider que respondeu")
    raw: Dict[str, Any] = Field(default_factory=dict, repr=False)

    @property
    def display_name(self) -> str:
        return self.trade_name or self.legal_name


# ===========================================
# REDES SOCIAIS
# ===========================================


class SocialProfile(BaseModel):
    """Perfil de rede social com a origem dos dados sempre marcada."""

    platform: Platform
    handle: str
    followers: int = Field(default=0, ge=0)
    engagement_rate_pct: float = Field(default=0.0, ge=0.0)
    content_category: str = "Alimentício"
    data_source: DataSource
    confidence: float = Field(..., ge=0.0, le=1.0)
    strategy: str = Field(default="", description="Estratégia da cascata que produziu o perfil")
    profile_url: str = ""
    display_name: str = ""
    bio: str = ""
    posts: Optional[int] = None

    @model_validator(mode="after")
    def _estimated_confidence_cap(self) -> "SocialProfile":
        if self.data_source == DataSource.ESTIMATED and self.confidence > 0.6:
            raise ValueError("estimated social data must have confidence <= 0.6")
        return self


class SocialSummary(BaseModel):
    """Agregado da análise de redes sociais."""

    platforms: List[Platform] = Field(default_factory=list)
    profiles: Dict[Platform, SocialProfile] = Field(default_factory=dict)
    total_followers: int = 0
    engagement_rate_pct: float = 0.0
    main_content_type: str = "Alimentício"
    recommended_hashtags: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)

    @property
    def has_estimated_data(self) -> bool:
        return any(p.data_source == DataSource.ESTIMATED for p in self.profiles.values())


# ===========================================
# CARDÁPIO
# ===========================================


class MenuItem(BaseModel):
    name: str
    price: Decimal = Field(..., ge=0)
    category: Optional[MenuCategory] = None
    description: str = ""


class PriceStatistics(BaseModel):
    min: Decimal = Decimal("0")
    max: Decimal = Decimal("0")
    average: Decimal = Decimal("0")
    median: Decimal = Decimal("0")
    distribution: Dict[str, int] = Field(default_factory=dict)


class IngredientCount(BaseModel):
    ingredient: str
    count: int


class MenuAnalysis(BaseModel):
    """Resultado da análise local de um cardápio."""

    items: List[MenuItem] = Field(default_factory=list)
    categories: Dict[MenuCategory, List[MenuItem]] = Field(default_factory=dict)
    category_names: List[str] = Field(default_factory=list)
    price_statistics: PriceStatistics = Field(default_factory=PriceStatistics)
    ingredients: List[IngredientCount] = Field(default_factory=list)
    establishment_type: str = "estabelecimento alimentício"
    item_count: int = 0


# ===========================================
# PRODUTOS
# ===========================================


class CatalogProduct(BaseModel):
    code: str
    name: str
    price: Decimal
    unit: str
    category: str


class ProductSuggestion(BaseModel):
    product_code: str
    priority: int = Field(..., ge=0)
    reason: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    source: SuggestionSource
    score: float = 0.0
    product: Optional[CatalogProduct] = None


# ===========================================
# CONCORRÊNCIA
# ===========================================


class Competitor(BaseModel):
    """Atacadista concorrente conhecido."""

    id: str
    name: str
    type: str = "atacadista"
    market_share: float = Field(0.0, ge=0, le=100)
    competitive_score: float = 5.0
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    geographical_presence: str = ""
    target_audience: List[str] = Field(default_factory=list)
    products_overlap: float = Field(0.0, ge=0, le=100)
    pricing_strategy: str = ""
    segment: str = ""


class CompetitorAssessment(BaseModel):
    competitor: Competitor
    competitive_score: float
    relevance: float
    threats: List[str] = Field(default_factory=list)
    opportunities: List[str] = Field(default_factory=list)


class MarketPosition(BaseModel):
    segment: str
    size_estimate: str
    growth_potential: str
    competitive_intensity: str
    entry_barriers: List[str] = Field(default_factory=list)


class CompetitorAnalysis(BaseModel):
    """Panorama competitivo do prospect, do mais ao menos relevante."""

    competitors: List[CompetitorAssessment] = Field(default_factory=list)
    market_position: MarketPosition
    opportunities: List[str] = Field(default_factory=list)
    threats: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


# ===========================================
# PROSPECÇÃO
# ===========================================


class ProspectInput(BaseModel):
    """Dados informados pelo vendedor para analisar um prospect."""

    model_config = ConfigDict(str_strip_whitespace=True)

    tax_id: str = Field(..., min_length=1)
    instagram: Optional[str] = None
    facebook: Optional[str] = None
    website: Optional[str] = None
    menu_text: Optional[str] = None
    company: Optional[CompanyRecord] = None

    @property
    def has_menu(self) -> bool:
        return bool(self.menu_text)

    @property
    def has_social(self) -> bool:
        return bool(self.instagram or self.facebook)


class AnalysisResult(BaseModel):
    """Resultado agregado de uma prospecção. Imutável após a criação."""

    model_config = ConfigDict(frozen=True)

    company: CompanyRecord
    social: SocialSummary
    menu: MenuAnalysis
    suggestions: List[ProductSuggestion] = Field(default_factory=list)
    ai_analysis: str = ""
    sales_script: str = ""
    competitors: Optional[CompetitorAnalysis] = None
    generated_at: datetime = Field(default_factory=datetime.utcnow)
