"""
AI Analysis Client
Analise comercial de prospects usando Grok e Gemini

Cada provider tem seu rate limiter e seu estado em ProviderHealth.
Qualquer falha (provider desabilitado, limite local, erro HTTP,
resposta vazia) cai no template local: a analise nunca bloqueia.
"""

import json
import re
from typing import Any, Dict, List, Optional, Sequence

import structlog

from config.settings import settings
from prospector.ai_providers import BaseAIProvider, GeminiProvider, GrokProvider
from prospector.models import (
    BusinessType,
    CatalogProduct,
    CompanyRecord,
    MenuAnalysis,
    ProspectInput,
    SocialSummary,
)
from prospector.utils.cache import CacheManager, make_key
from prospector.utils.provider_health import ProviderHealth
from prospector.utils.rate_limiter import RateLimiter
from prospector.utils.validators import format_brl, mask_cnpj, parse_brl_amount

from .menu_analyzer import MenuAnalyzer

logger = structlog.get_logger()

SYSTEM_PROMPT = (
    "Você é um especialista em análise comercial para o atacado alimentício. "
    "Seja prático e objetivo."
)

SCRIPT_CHAIN = ("grok", "gemini")
MENU_CHAIN = ("gemini", "grok")

BUSINESS_KEYWORDS = [
    ("restaurante", BusinessType.RESTAURANT),
    ("padaria", BusinessType.BAKERY),
    ("lanchonete", BusinessType.SNACK_BAR),
    ("pizza", BusinessType.PIZZERIA),
    ("bar", BusinessType.BAR),
]

MENU_TEXT_CATEGORIES = {
    "pizzas": ["pizza", "pizzaria"],
    "hambúrgueres": ["hambúrguer", "burger", "lanche"],
    "massas": ["massa", "espaguete", "lasanha", "macarrão"],
    "carnes": ["carne", "bife", "frango", "peixe"],
    "sobremesas": ["sobremesa", "doce", "pudim", "torta"],
    "bebidas": ["bebida", "refrigerante", "suco", "água"],
}

TEXT_INGREDIENTS = [
    "queijo", "tomate", "cebola", "alho", "carne", "frango",
    "massa", "farinha", "leite", "ovo", "azeite", "tempero",
]


def identify_business_type(activity: Optional[str]) -> BusinessType:
    """Classifica o tipo de negocio por palavra-chave na atividade"""
    lowered = (activity or "").lower()
    for keyword, business_type in BUSINESS_KEYWORDS:
        if keyword in lowered:
            return business_type
    return BusinessType.FOOD_SERVICE


def build_analysis_prompt(prospect: ProspectInput) -> str:
    company = prospect.company
    return f"""Analise o seguinte prospect comercial:

DADOS DA EMPRESA:
- CNPJ: {prospect.tax_id or 'Não informado'}
- Empresa: {company.display_name if company else 'Não informado'}
- Atividade: {company.main_activity if company else 'Não informado'}
- Instagram: {prospect.instagram or 'Não informado'}
- Facebook: {prospect.facebook or 'Não informado'}
- Website: {prospect.website or 'Não informado'}

CARDÁPIO/PRODUTOS:
{prospect.menu_text or 'Não fornecido'}

Forneça:
1. Perfil do cliente (tipo de negócio, porte, público-alvo)
2. Oportunidades de venda identificadas
3. Produtos recomendados com justificativa
4. Estratégia de abordagem sugerida
5. Pontos de atenção ou riscos

Seja específico e prático nas recomendações."""


def generate_basic_analysis(prospect: ProspectInput) -> str:
    """
    Relatorio de fallback montado apenas com os dados de entrada.

    Deterministico: mesma entrada, mesmo texto.
    """
    company = prospect.company
    name = company.display_name if company and company.display_name else "Prospect identificado"
    activity = company.main_activity if company else "Estabelecimento comercial"
    business_type = identify_business_type(company.main_activity if company else None)

    return "\n".join([
        "ANÁLISE DO PROSPECT",
        "",
        "PERFIL DO CLIENTE:",
        f"- Empresa: {name}",
        f"- Atividade: {activity}",
        f"- CNPJ: {prospect.tax_id or 'Não informado'}",
        "",
        "ANÁLISE INICIAL:",
        f"- Cardápio fornecido: {'Sim' if prospect.has_menu else 'Não'}",
        f"- Redes sociais: {'Presente' if prospect.has_social else 'Ausente'}",
        f"- Tipo de negócio: {business_type.value}",
        "",
        "RECOMENDAÇÕES:",
        "- Apresentar produtos de alta qualidade da nossa linha",
        "- Destacar nossa experiência de 30 anos no mercado",
        "- Propor condições comerciais competitivas",
        "- Agendar visita técnica para avaliação detalhada",
        "",
        "PRÓXIMOS PASSOS:",
        "1. Apresentar portfólio completo",
        "2. Fazer cotação personalizada",
        "3. Propor teste de produtos",
        "4. Definir condições de entrega",
        "",
        "Análise gerada automaticamente (IA indisponível)",
    ])


def generate_basic_script(company: Optional[CompanyRecord], products: Sequence[CatalogProduct]) -> str:
    """Script de vendas padrao quando nenhuma IA responde"""
    name = company.display_name if company and company.display_name else "PROSPECT"
    address = company.address if company else "uma excelente região"

    lines = [
        f"SCRIPT PERSONALIZADO - {name}",
        "",
        "Olá! Meu nome é [SEU NOME], represento um atacado com mais de 30 anos "
        "fornecendo ingredientes de qualidade para o setor alimentício.",
        "",
        f"Localização: vejo que vocês estão em {address}, área que conhecemos bem "
        "e onde temos vários clientes satisfeitos.",
        "",
        "Oportunidade identificada: analisando o perfil do seu negócio, identifiquei "
        "alguns produtos que podem otimizar seus custos e melhorar a qualidade:",
    ]
    lines.extend(f"- {p.name} - {format_brl(p.price)}/{p.unit}" for p in products)
    lines.extend([
        "",
        "Nossas vantagens:",
        "- Entrega programada",
        "- Preços competitivos no atacado",
        "- 30 anos de tradição",
        "- Suporte técnico especializado",
        "",
        "Próximo passo: que tal agendarmos uma visita para apresentar nossa linha "
        "completa e fazer uma cotação personalizada?",
        "Quando seria o melhor dia e horário para você?",
    ])
    return "\n".join(lines)


def parse_menu_analysis(text: str) -> Dict[str, Any]:
    """
    Interpreta a resposta da IA para um cardapio

    Usa o primeiro objeto JSON do texto; sem JSON valido, extrai
    categorias, faixa de preco, tipo e ingredientes por palavra-chave.
    """
    match = re.search(r"\{[\s\S]*\}", text or "")
    if match:
        try:
            parsed = json.loads(match.group())
        except json.JSONDecodeError:
            logger.debug("menu_analysis_json_invalid")
        else:
            if isinstance(parsed, dict):
                return parsed

    lowered = (text or "").lower()
    amounts = map(parse_brl_amount, re.findall(r"R\$\s*(\d+(?:[.,]\d+)*)", text or ""))
    prices = [float(a) for a in amounts if a is not None]

    return {
        "categories": [
            category for category, words in MENU_TEXT_CATEGORIES.items()
            if any(word in lowered for word in words)
        ],
        "price_range": {
            "min": min(prices) if prices else 0,
            "max": max(prices) if prices else 0,
            "average": round(sum(prices) / len(prices), 2) if prices else 0,
        },
        "establishment_type": MenuAnalyzer().detect_establishment_type(text or ""),
        "ingredients": [i for i in TEXT_INGREDIENTS if i in lowered],
    }


def basic_menu_analysis(menu_text: str) -> Dict[str, Any]:
    """Analise de cardapio sem IA"""
    analyzer = MenuAnalyzer()
    return {
        "categories": [c.value for c in analyzer.detect_categories(menu_text)],
        "establishment_type": analyzer.detect_establishment_type(menu_text),
        "analysis": "Análise básica realizada - IA indisponível",
        "confidence": 0.5,
    }


class AIAnalysisClient:
    """
    Cliente de analise por IA com fallback local

    Funcionalidades:
    - Analise comercial do prospect (um provider)
    - Script de vendas (Grok -> Gemini -> template)
    - Analise de cardapio (Gemini -> Grok -> heuristica)
    """

    def __init__(
        self,
        providers: Optional[Dict[str, BaseAIProvider]] = None,
        health: Optional[ProviderHealth] = None,
        limiters: Optional[Dict[str, RateLimiter]] = None,
        cache: Optional[CacheManager] = None,
    ):
        self.providers = providers or {
            "grok": GrokProvider(settings.grok_provider),
            "gemini": GeminiProvider(settings.gemini_provider),
        }
        self.health = health or ProviderHealth()
        for name, provider in self.providers.items():
            self.health.register(name, enabled=provider.is_available, reason="missing API key or disabled")

        limiters = limiters or {}
        self.limiters = {
            name: limiters.get(name) or RateLimiter.from_config(provider.config)
            for name, provider in self.providers.items()
        }
        self.cache = cache or CacheManager("ai", default_ttl=settings.cache_ttl_ai)

        # Estatisticas
        self.stats = {
            "requests": 0,
            "cache_hits": 0,
            "fallbacks": 0,
            "errors": 0,
        }

    async def _query(
        self,
        provider_name: str,
        prompt: str,
        system_prompt: Optional[str] = None,
        cache_key: Optional[str] = None,
        cache_ttl: Optional[float] = None,
        max_tokens: int = 1000,
    ) -> Optional[str]:
        """
        Envia o prompt a um provider

        Returns:
            Texto da resposta ou None (desabilitado, limite local ou falha)
        """
        provider = self.providers.get(provider_name)
        if provider is None or not self.health.is_enabled(provider_name):
            logger.info("ai_provider_disabled", provider=provider_name)
            return None

        limiter = self.limiters[provider_name]
        if not limiter.can_make_request():
            return None

        if cache_key:
            cached = self.cache.get(f"{provider_name}_{cache_key}")
            if cached is not None:
                self.stats["cache_hits"] += 1
                return cached

        self.stats["requests"] += 1
        response = await provider.complete(prompt, system_prompt=system_prompt, max_tokens=max_tokens)

        if not response.success:
            self.stats["errors"] += 1
            self.health.record_failure(provider_name)
            if response.status_code == 403:
                self.health.disable(provider_name, "access denied (HTTP 403)")
            elif response.status_code == 429:
                logger.warning("ai_provider_rate_limited", provider=provider_name)
            return None

        self.health.record_success(provider_name)
        limiter.record_request()
        if cache_key:
            self.cache.set(f"{provider_name}_{cache_key}", response.content, ttl=cache_ttl)
        return response.content

    async def _query_chain(self, chain: Sequence[str], prompt: str, **kwargs) -> Optional[str]:
        for provider_name in chain:
            result = await self._query(provider_name, prompt, **kwargs)
            if result:
                return result
            logger.info("ai_chain_provider_skipped", provider=provider_name)
        return None

    async def analyze(
        self,
        prospect: ProspectInput,
        role: Optional[str] = None,
        provider: str = "grok",
    ) -> str:
        """
        Analise comercial do prospect

        Args:
            prospect: Dados informados (e empresa, se ja consultada)
            role: System prompt alternativo
            provider: "grok" ou "gemini"

        Returns:
            Texto da IA ou o template de fallback
        """
        cache_key = make_key(
            cnpj=prospect.tax_id,
            has_menu=prospect.has_menu,
            has_social=prospect.has_social,
        )
        result = await self._query(
            provider,
            build_analysis_prompt(prospect),
            system_prompt=role or SYSTEM_PROMPT,
            cache_key=cache_key,
        )
        if result:
            logger.info("ai_analysis_complete", provider=provider, cnpj=mask_cnpj(prospect.tax_id))
            return result

        self.stats["fallbacks"] += 1
        logger.info("ai_analysis_fallback", provider=provider, cnpj=mask_cnpj(prospect.tax_id))
        return generate_basic_analysis(prospect)

    async def generate_sales_script(
        self,
        company: Optional[CompanyRecord],
        menu: Optional[MenuAnalysis],
        social: Optional[SocialSummary],
        products: Sequence[CatalogProduct],
    ) -> str:
        """
        Script de vendas personalizado (Grok -> Gemini -> template)

        Returns:
            Script em texto puro
        """
        categories = ", ".join(menu.category_names) if menu and menu.category_names else "Não analisado"
        platforms = ", ".join(p.value for p in social.platforms) if social and social.platforms else "Não informado"
        product_lines = "\n".join(f"- {p.name} ({format_brl(p.price)})" for p in products)

        prompt = f"""Crie um script de vendas personalizado para:

EMPRESA: {company.display_name if company else 'Empresa'}
ATIVIDADE: {company.main_activity if company else 'Não informado'}
LOCALIZAÇÃO: {company.address if company else 'Não informado'}

ANÁLISE DO NEGÓCIO:
- Cardápio identificado: {categories}
- Redes sociais: {platforms}

PRODUTOS SELECIONADOS:
{product_lines or '- Linha completa'}

INSTRUÇÕES:
1. Crie uma abordagem personalizada e consultiva
2. Destaque os benefícios específicos para o tipo de negócio
3. Inclua argumentos de valor baseados na análise
4. Use um tom profissional mas próximo
5. Inclua perguntas abertas para engajamento
6. Forneça próximos passos claros

Formato: Script direto, pronto para uso."""

        script = await self._query_chain(SCRIPT_CHAIN, prompt, max_tokens=800)
        if script:
            return script.strip()

        self.stats["fallbacks"] += 1
        return generate_basic_script(company, products)

    async def analyze_menu(self, menu_text: str) -> Dict[str, Any]:
        """
        Analise de cardapio por IA (Gemini -> Grok -> heuristica)

        Returns:
            Dicionario com categorias e demais campos extraidos
        """
        prompt = f"""Analise o seguinte cardápio e forneça:
1. Categorias principais de produtos
2. Faixa de preços identificada
3. Tipo de estabelecimento provável
4. Ingredientes mais utilizados
5. Sugestões de produtos de atacado que fariam sentido

CARDÁPIO:
{menu_text}

Responda em formato JSON estruturado."""

        result = await self._query_chain(
            MENU_CHAIN,
            prompt,
            cache_key=make_key(menu=menu_text),
            cache_ttl=settings.cache_ttl_menu,
            max_tokens=800,
        )
        if result:
            return parse_menu_analysis(result)

        self.stats["fallbacks"] += 1
        return basic_menu_analysis(menu_text)

    def get_stats(self) -> Dict[str, Any]:
        return {
            **self.stats,
            "providers": self.health.get_stats(),
            "limiters": {name: limiter.get_stats() for name, limiter in self.limiters.items()},
            "cache": self.cache.get_stats(),
        }

    async def close(self):
        for provider in self.providers.values():
            await provider.close()


def suggested_product_codes(menu_analysis: Dict[str, Any]) -> List[str]:
    """Codigos de produto sugeridos pela IA numa analise de cardapio, se houver"""
    raw = menu_analysis.get("suggested_products") or menu_analysis.get("produtos_sugeridos") or []
    codes = []
    for entry in raw:
        code = entry.get("code") if isinstance(entry, dict) else entry
        if code is not None and str(code).strip().isdigit():
            codes.append(str(code).strip())
    return codes
