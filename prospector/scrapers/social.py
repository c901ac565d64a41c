"""
Social Estimation Client
Presenca em redes sociais (Instagram e Facebook)

Cada plataforma e analisada por uma cascata de estrategias:
- Instagram: oEmbed -> scraping via proxies -> simulacao
- Facebook: Graph API (com token) -> scraping via proxies -> simulacao

Numeros que nao vieram de uma fonte real sao marcados como ESTIMATED
(confianca <= 0.6). O cliente nunca falha para fora: a simulacao
sempre produz um perfil.
"""

import json
import random
import re
from typing import Any, Dict, List, Optional

import structlog
from bs4 import BeautifulSoup
from bs4.element import Tag

from config.settings import settings
from prospector.exceptions import ProviderUnavailableError
from prospector.models import (
    BusinessType,
    DataSource,
    Platform,
    SocialProfile,
    SocialSummary,
)
from prospector.utils.cache import CacheManager
from prospector.utils.cascade import run_cascade

from .base import BaseClient

logger = structlog.get_logger()

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

MAX_ESTIMATED_FOLLOWERS = 50_000

CONFIDENCE_LIVE = 0.9
CONFIDENCE_SCRAPED = 0.8
CONFIDENCE_ESTIMATED = 0.6
CONFIDENCE_SIMULATED_FACEBOOK = 0.5

# Payloads inesperados de fontes externas contam como falha da estrategia
SOFT_FAILURES = (ProviderUnavailableError, ValueError, KeyError, TypeError, AttributeError)

INSTAGRAM_URL_PATTERN = re.compile(r"instagram\.com/@?([a-zA-Z0-9_.]+)")
USERNAME_PATTERN = re.compile(r"@?([a-zA-Z0-9_.]+)$")
FACEBOOK_PAGE_PATTERN = re.compile(r"facebook\.com/(\d+)|facebook\.com/([^/?]+)")
SHARED_DATA_PATTERN = re.compile(r"window\._sharedData\s*=\s*({.*?});\s*</script>", re.S)
FOLLOWERS_PATTERN = re.compile(
    r"([\d.,]+)\s*([kKmM]?)\s*(?:followers|seguidores|curtidas|likes)", re.I
)

CONTENT_KEYWORDS = {
    BusinessType.RESTAURANT.value: ["restaurante", "comida", "prato", "sabor", "culinária"],
    BusinessType.PIZZERIA.value: ["pizza", "pizzaria", "italiana", "massa"],
    BusinessType.SNACK_BAR.value: ["lanche", "hambúrguer", "sanduíche", "fast food"],
    BusinessType.BAKERY.value: ["pão", "padaria", "doce", "bolo", "confeitaria"],
    BusinessType.BAR.value: ["bar", "bebida", "cerveja", "drinks", "happy hour"],
}

HANDLE_KEYWORDS = [
    (["pizza"], BusinessType.PIZZERIA),
    (["burger", "lanche"], BusinessType.SNACK_BAR),
    (["padaria", "pao"], BusinessType.BAKERY),
    (["bar", "drink"], BusinessType.BAR),
    (["restaurante", "food"], BusinessType.RESTAURANT),
]

PAGE_CATEGORIES = {
    "Restaurante": ["restaurante", "culinária", "gastronomia"],
    "Comida e Bebida": ["comida", "bebida", "alimentação"],
    "Serviços Locais": ["serviços", "atendimento", "local"],
    "Varejo": ["loja", "venda", "produto"],
}

HASHTAGS = {
    "Restaurante": ["#restaurante", "#gastronomia", "#sabor", "#culinaria", "#pratos"],
    "Pizzaria": ["#pizzaria", "#pizza", "#italiana", "#massa", "#forno"],
    "Lanchonete": ["#lanchonete", "#hamburger", "#lanche", "#fastfood", "#sanduiche"],
    "Padaria": ["#padaria", "#paes", "#doces", "#bolos", "#confeitaria"],
    "Bar": ["#bar", "#drinks", "#cerveja", "#happyhour", "#bebidas"],
}


# ===========================================
# Heuristicas
# ===========================================


def extract_username(instagram: str) -> Optional[str]:
    """Extrai o username de um @handle ou URL do Instagram"""
    if not instagram:
        return None
    text = instagram.strip().split("?")[0].rstrip("/")
    match = INSTAGRAM_URL_PATTERN.search(text) or USERNAME_PATTERN.match(text)
    return match.group(1) if match else None


def extract_facebook_page_id(facebook: str) -> Optional[str]:
    match = FACEBOOK_PAGE_PATTERN.search(facebook or "")
    if match:
        return match.group(1) or match.group(2)
    return None


def analyze_content_type(text: str) -> str:
    """Tipo de conteudo por palavras-chave no texto"""
    if not text:
        return "Geral"
    lowered = text.lower()
    for content_type, words in CONTENT_KEYWORDS.items():
        if any(word in lowered for word in words):
            return content_type
    return BusinessType.FOOD_SERVICE.value


def detect_business_type(handle: str) -> str:
    """Tipo de negocio por palavras-chave no nome do perfil"""
    name = (handle or "").lower()
    for words, business_type in HANDLE_KEYWORDS:
        if any(word in name for word in words):
            return business_type.value
    return BusinessType.FOOD_SERVICE.value


def detect_business_category(text: str) -> str:
    if not text:
        return "Negócio Local"
    lowered = text.lower()
    for category, words in PAGE_CATEGORIES.items():
        if any(word in lowered for word in words):
            return category
    return "Negócio Local"


def parse_count(value: str, suffix: str = "") -> Optional[int]:
    """'1.234' -> 1234, '1,5' + 'k' -> 1500"""
    suffix = suffix.lower()
    if suffix:
        try:
            number = float(value.replace(",", "."))
        except ValueError:
            return None
        return int(number * (1_000 if suffix == "k" else 1_000_000))

    digits = re.sub(r"\D", "", value)
    return int(digits) if digits else None


def generate_hashtags(content_type: str) -> List[str]:
    return HASHTAGS.get(content_type, HASHTAGS["Restaurante"])


def generate_recommendations(total_followers: int, engagement: float, main_type: str) -> List[str]:
    """Recomendacoes de marketing a partir dos numeros agregados"""
    recommendations = []

    if total_followers < 1000:
        recommendations.append(
            "Foque em crescer sua base de seguidores com conteúdo regular e use hashtags relevantes"
        )
    elif total_followers < 5000:
        recommendations.append("Continue postando regularmente e interaja mais com seus seguidores")
    else:
        recommendations.append("Considere parcerias com influenciadores locais para expandir seu alcance")

    if engagement < 2:
        recommendations.append("Melhore o engajamento fazendo mais perguntas e respondendo aos comentários")
    elif engagement > 4:
        recommendations.append("Excelente engajamento! Continue com o mesmo tipo de conteúdo")

    if main_type == BusinessType.RESTAURANT.value:
        recommendations.append("Poste mais fotos dos pratos e do ambiente do restaurante")
        recommendations.append("Considere fazer stories mostrando o preparo dos pratos")

    return recommendations


def _get_attr(tag: Tag, attr: str, default: str = "") -> str:
    value = tag.get(attr)
    if value is None:
        return default
    if isinstance(value, list):
        return " ".join(str(v) for v in value)
    return str(value)


def extract_page_metadata(html: str) -> Dict[str, str]:
    """Extrai <title>, description e OpenGraph de uma pagina"""
    soup = BeautifulSoup(html, "html.parser")
    metadata: Dict[str, str] = {}

    title_tag = soup.find("title")
    if title_tag:
        metadata["title"] = title_tag.get_text(strip=True)

    for meta in soup.find_all("meta"):
        if not isinstance(meta, Tag):
            continue
        name = _get_attr(meta, "name").lower() or _get_attr(meta, "property").lower()
        if name in ("description", "og:title", "og:description"):
            metadata[name] = _get_attr(meta, "content")

    return metadata


# ===========================================
# Cliente
# ===========================================


class SocialEstimationClient(BaseClient):
    """
    Estimativa de presenca social.

    A aleatoriedade da simulacao vem de um random.Random injetado.
    """

    SOURCE_NAME = "social"

    def __init__(
        self,
        cache: Optional[CacheManager] = None,
        rng: Optional[random.Random] = None,
        proxies: Optional[List[str]] = None,
        facebook_token: Optional[str] = None,
        **kwargs,
    ):
        kwargs.setdefault("timeout", settings.social_timeout)
        super().__init__(**kwargs)
        self.cache = cache or CacheManager("social", default_ttl=settings.cache_ttl_social)
        self.rng = rng or random.Random()
        self.proxies = settings.parsed_social_proxy_urls if proxies is None else proxies
        self.facebook_token = settings.facebook_access_token if facebook_token is None else facebook_token

    # ---------- estimativas ----------

    def estimate_followers(self, identifier: str) -> int:
        base = len(identifier) * 73 if identifier else 500
        return min(base + self.rng.randint(100, 2099), MAX_ESTIMATED_FOLLOWERS)

    def estimate_engagement(self) -> float:
        return round(self.rng.uniform(1.0, 5.0), 2)

    def estimate_posts(self) -> int:
        return self.rng.randint(50, 549)

    # ---------- Instagram ----------

    async def analyze_instagram(self, handle: str) -> SocialProfile:
        """
        Analisa perfil do Instagram

        Args:
            handle: @username ou URL do perfil

        Returns:
            SocialProfile (sempre; ESTIMATED quando nao ha dado real)
        """
        username = extract_username(handle) or (handle or "").strip() or "perfil"
        key = "instagram_" + re.sub(r"[@._-]", "", username.lower())

        cached = self.cache.get(key)
        if cached is not None:
            return cached

        result = await run_cascade(
            [
                ("oembed", lambda: self._instagram_oembed(username)),
                ("scraping", lambda: self._instagram_scraping(username)),
                ("simulated", lambda: self._instagram_simulated(username)),
            ],
            operation="instagram_analysis",
            expected=SOFT_FAILURES,
        )

        profile = result.value
        self.cache.set(key, profile)
        logger.info(
            "instagram_analyzed",
            username=username,
            strategy=profile.strategy,
            data_source=profile.data_source.value,
        )
        return profile

    async def _instagram_oembed(self, username: str) -> Optional[SocialProfile]:
        profile_url = f"https://www.instagram.com/{username}/"
        data = await self.get_json(
            "https://api.instagram.com/oembed/",
            provider="instagram_oembed",
            params={"url": profile_url},
        )
        if not isinstance(data, dict):
            return None

        title = data.get("title") or ""
        return SocialProfile(
            platform=Platform.INSTAGRAM,
            handle=username,
            followers=self.estimate_followers(username),
            engagement_rate_pct=self.estimate_engagement(),
            content_category=analyze_content_type(title),
            data_source=DataSource.ESTIMATED,
            confidence=CONFIDENCE_ESTIMATED,
            strategy="oembed",
            profile_url=profile_url,
            display_name=data.get("author_name") or username,
            posts=self.estimate_posts(),
        )

    async def _fetch_via_proxies(self, url: str, provider: str) -> Optional[str]:
        """Busca HTML por cada proxy em ordem (sem proxies: acesso direto)"""
        for proxy in self.proxies or [""]:
            try:
                return await self.get_text(
                    f"{proxy}{url}",
                    provider=provider,
                    headers={"User-Agent": BROWSER_USER_AGENT},
                )
            except ProviderUnavailableError as e:
                logger.debug("social_proxy_failed", provider=provider, proxy=proxy or "direct", error=e.reason)
        return None

    async def _instagram_scraping(self, username: str) -> Optional[SocialProfile]:
        profile_url = f"https://www.instagram.com/{username}/"
        html = await self._fetch_via_proxies(profile_url, "instagram_scraping")
        if html is None:
            return None
        return self.parse_instagram_html(html, username)

    def parse_instagram_html(self, html: str, username: str) -> SocialProfile:
        """Extrai dados do perfil do HTML; metricas ausentes sao estimadas"""
        metadata = extract_page_metadata(html)
        title = metadata.get("title", "")
        bio = metadata.get("description") or metadata.get("og:description", "")
        display_name = title.split("•")[0].split("(")[0].strip()

        followers: Optional[int] = None
        posts: Optional[int] = None

        shared = SHARED_DATA_PATTERN.search(html)
        if shared:
            try:
                user = json.loads(shared.group(1))["entry_data"]["ProfilePage"][0]["graphql"]["user"]
            except (ValueError, KeyError, IndexError, TypeError) as e:
                logger.debug("instagram_shared_data_unparsed", error=str(e))
            else:
                if not isinstance(user, dict):
                    user = {}
                followers = (user.get("edge_followed_by") or {}).get("count")
                posts = (user.get("edge_owner_to_timeline_media") or {}).get("count")
                display_name = user.get("full_name") or display_name
                bio = user.get("biography") or bio

        if followers is None:
            match = FOLLOWERS_PATTERN.search(bio)
            if match:
                followers = parse_count(match.group(1), match.group(2))

        scraped = followers is not None
        return SocialProfile(
            platform=Platform.INSTAGRAM,
            handle=username,
            followers=followers if scraped else self.estimate_followers(username),
            engagement_rate_pct=self.estimate_engagement(),
            content_category=analyze_content_type(bio or title),
            data_source=DataSource.SCRAPED if scraped else DataSource.ESTIMATED,
            confidence=CONFIDENCE_SCRAPED if scraped else CONFIDENCE_ESTIMATED,
            strategy="scraping",
            profile_url=f"https://www.instagram.com/{username}/",
            display_name=display_name or username,
            bio=bio,
            posts=posts if posts is not None else self.estimate_posts(),
        )

    async def _instagram_simulated(self, username: str) -> SocialProfile:
        return SocialProfile(
            platform=Platform.INSTAGRAM,
            handle=username,
            followers=self.estimate_followers(username),
            engagement_rate_pct=self.estimate_engagement(),
            content_category=detect_business_type(username),
            data_source=DataSource.ESTIMATED,
            confidence=CONFIDENCE_ESTIMATED,
            strategy="simulated",
            profile_url=f"https://www.instagram.com/{username}/",
            display_name=re.sub(r"[._]", " ", username),
            bio=f"Perfil comercial de {username}",
            posts=self.estimate_posts(),
        )

    # ---------- Facebook ----------

    async def analyze_facebook(self, url_or_id: str) -> SocialProfile:
        """
        Analisa pagina do Facebook

        Args:
            url_or_id: URL da pagina ou ID numerico

        Returns:
            SocialProfile (sempre; ESTIMATED quando nao ha dado real)
        """
        url_or_id = (url_or_id or "").strip()
        if "facebook.com" in url_or_id:
            url = url_or_id if url_or_id.startswith("http") else f"https://{url_or_id}"
        else:
            url = f"https://www.facebook.com/{url_or_id}"
        page_id = extract_facebook_page_id(url) or url_or_id

        key = "facebook_" + re.sub(r"[^a-z0-9]", "", url.lower())
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        strategies = []
        if self.facebook_token:
            strategies.append(("graph_api", lambda: self._facebook_graph_api(page_id, url)))
        strategies.append(("scraping", lambda: self._facebook_scraping(page_id, url)))
        strategies.append(("simulated", lambda: self._facebook_simulated(page_id, url)))

        result = await run_cascade(
            strategies,
            operation="facebook_analysis",
            expected=SOFT_FAILURES,
        )

        profile = result.value
        self.cache.set(key, profile)
        logger.info(
            "facebook_analyzed",
            page=page_id,
            strategy=profile.strategy,
            data_source=profile.data_source.value,
        )
        return profile

    async def _facebook_graph_api(self, page_id: str, url: str) -> Optional[SocialProfile]:
        data = await self.get_json(
            f"https://graph.facebook.com/v18.0/{page_id}",
            provider="facebook_graph",
            params={
                "fields": "name,about,category,link,fan_count",
                "access_token": self.facebook_token,
            },
        )
        if not isinstance(data, dict) or "error" in data:
            return None

        about = data.get("about") or ""
        return SocialProfile(
            platform=Platform.FACEBOOK,
            handle=page_id,
            followers=int(data.get("fan_count") or 0),
            engagement_rate_pct=self.estimate_engagement(),
            content_category=data.get("category") or detect_business_category(about),
            data_source=DataSource.LIVE,
            confidence=CONFIDENCE_LIVE,
            strategy="graph_api",
            profile_url=data.get("link") or url,
            display_name=data.get("name") or page_id,
            bio=about,
        )

    async def _facebook_scraping(self, page_id: str, url: str) -> Optional[SocialProfile]:
        html = await self._fetch_via_proxies(url, "facebook_scraping")
        if html is None:
            return None
        return self.parse_facebook_html(html, page_id, url)

    def parse_facebook_html(self, html: str, page_id: str, url: str) -> SocialProfile:
        metadata = extract_page_metadata(html)
        name = metadata.get("og:title") or metadata.get("title", "").replace(" | Facebook", "").strip()
        about = metadata.get("og:description") or metadata.get("description", "")

        followers: Optional[int] = None
        match = FOLLOWERS_PATTERN.search(about)
        if match:
            followers = parse_count(match.group(1), match.group(2))

        scraped = followers is not None
        return SocialProfile(
            platform=Platform.FACEBOOK,
            handle=page_id,
            followers=followers if scraped else self.estimate_followers(name or "facebook"),
            engagement_rate_pct=self.estimate_engagement(),
            content_category=detect_business_category(about or name),
            data_source=DataSource.SCRAPED if scraped else DataSource.ESTIMATED,
            confidence=CONFIDENCE_SCRAPED if scraped else CONFIDENCE_ESTIMATED,
            strategy="scraping",
            profile_url=url,
            display_name=name or page_id,
            bio=about,
        )

    async def _facebook_simulated(self, page_id: str, url: str) -> SocialProfile:
        page_name = re.sub(r"[._-]", " ", page_id) if page_id else ""
        return SocialProfile(
            platform=Platform.FACEBOOK,
            handle=page_id,
            followers=self.estimate_followers(page_name or "facebook"),
            engagement_rate_pct=self.estimate_engagement(),
            content_category="Negócio Local",
            data_source=DataSource.ESTIMATED,
            confidence=CONFIDENCE_SIMULATED_FACEBOOK,
            strategy="simulated",
            profile_url=url,
            display_name=page_name or "Página do Facebook",
            bio="Página comercial no Facebook",
        )

    # ---------- Agregado ----------

    async def analyze(self, instagram: Optional[str] = None, facebook: Optional[str] = None) -> SocialSummary:
        """
        Analisa as redes informadas e agrega os resultados

        Returns:
            SocialSummary (vazio se nenhuma rede for informada)
        """
        profiles: Dict[Platform, SocialProfile] = {}

        if instagram:
            profiles[Platform.INSTAGRAM] = await self.analyze_instagram(instagram)
        if facebook:
            profiles[Platform.FACEBOOK] = await self.analyze_facebook(facebook)

        if not profiles:
            return SocialSummary()

        total_followers = sum(p.followers for p in profiles.values())
        rates = [p.engagement_rate_pct for p in profiles.values() if p.engagement_rate_pct]
        engagement = round(sum(rates) / len(rates), 2) if rates else 0.0

        content_types = [p.content_category for p in profiles.values() if p.content_category]
        main_type = content_types[0] if content_types else BusinessType.FOOD_SERVICE.value

        return SocialSummary(
            platforms=list(profiles.keys()),
            profiles=profiles,
            total_followers=total_followers,
            engagement_rate_pct=engagement,
            main_content_type=main_type,
            recommended_hashtags=generate_hashtags(main_type),
            recommendations=generate_recommendations(total_followers, engagement, main_type),
        )

    def get_stats(self) -> Dict[str, Any]:
        return {**super().get_stats(), "cache": self.cache.get_stats()}
