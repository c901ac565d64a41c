"""
Company Registry Client
Consulta dados cadastrais de empresas pelo CNPJ

Providers consultados em ordem, cada um com seu adapter:
- ReceitaWS: https://receitaws.com.br/
- BrasilAPI: https://brasilapi.com.br/
- CNPJ.ws: https://publica.cnpj.ws/
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

import httpx
import structlog

from config.settings import settings
from prospector.exceptions import (
    AllProvidersFailedError,
    InvalidInputError,
    ProviderUnavailableError,
    RateLimitError,
)
from prospector.models import CompanyRecord, CompanySituation, Partner, SizeClass
from prospector.utils.cache import CacheManager
from prospector.utils.rate_limiter import RateLimiter
from prospector.utils.validators import (
    clean_digits,
    format_phone,
    mask_cnpj,
    parse_brl_amount,
    parse_date,
    validate_cnpj,
)

from .base import BaseClient

logger = structlog.get_logger()

SITUATION_MAP = {
    "ATIVA": CompanySituation.ACTIVE,
    "BAIXADA": CompanySituation.INACTIVE,
    "INAPTA": CompanySituation.INACTIVE,
    "NULA": CompanySituation.INACTIVE,
    "SUSPENSA": CompanySituation.SUSPENDED,
}

# Limites de capital social (R$) por porte
SIZE_THRESHOLDS = [
    (Decimal("81000"), SizeClass.MICRO, "1-9"),
    (Decimal("300000"), SizeClass.SMALL, "10-49"),
    (Decimal("3600000"), SizeClass.MEDIUM, "50-249"),
]


# ===========================================
# Normalizacao
# ===========================================


def classify_size(capital: Optional[Decimal]) -> SizeClass:
    """Classifica o porte pelo capital social (ausente ou zero = UNKNOWN)"""
    if capital is None or capital <= 0:
        return SizeClass.UNKNOWN
    for limit, size_class, _ in SIZE_THRESHOLDS:
        if capital <= limit:
            return size_class
    return SizeClass.LARGE


def estimate_employees(capital: Optional[Decimal]) -> str:
    """Faixa estimada de funcionarios a partir do capital social"""
    if capital is None:
        return ""
    for limit, _, band in SIZE_THRESHOLDS:
        if capital <= limit:
            return band
    return "250+"


def map_situation(value: Any) -> CompanySituation:
    if not value:
        return CompanySituation.UNKNOWN
    return SITUATION_MAP.get(str(value).strip().upper(), CompanySituation.UNKNOWN)


def compose_address(
    street: Optional[str] = None,
    number: Optional[str] = None,
    complement: Optional[str] = None,
    district: Optional[str] = None,
    city: Optional[str] = None,
    uf: Optional[str] = None,
    cep: Optional[str] = None,
) -> str:
    """Monta endereco em texto livre: rua, numero, complemento, bairro, cidade/UF - CEP"""
    city_uf = "/".join(part for part in (city, uf) if part)
    parts = [str(p).strip() for p in (street, number, complement, district, city_uf) if p and str(p).strip()]
    address = ", ".join(parts)

    if cep:
        address = f"{address} - CEP: {cep}" if address else f"CEP: {cep}"

    return address or "Endereço não informado"


def _build_record(tax_id: str, source: str, data: Dict, **fields) -> CompanyRecord:
    capital = fields.pop("capital", None)
    fields = {k: v for k, v in fields.items() if v not in (None, "")}
    return CompanyRecord(
        tax_id=tax_id,
        capital=capital,
        size_class=classify_size(capital),
        employees_estimate=estimate_employees(capital),
        source=source,
        raw=data,
        **fields,
    )


def adapt_receitaws(tax_id: str, data: Dict) -> CompanyRecord:
    """ReceitaWS: atividades como lista de {code, text}, data dd/mm/yyyy"""
    main_activity = (data.get("atividade_principal") or [{}])[0].get("text")
    phone = (data.get("telefone") or "").split("/")[0].strip()

    return _build_record(
        tax_id,
        "receitaws",
        data,
        legal_name=data.get("nome"),
        trade_name=data.get("fantasia"),
        main_activity=main_activity,
        secondary_activities=[a.get("text", "") for a in data.get("atividades_secundarias", []) if a.get("text")],
        address=compose_address(
            data.get("logradouro"),
            data.get("numero"),
            data.get("complemento"),
            data.get("bairro"),
            data.get("municipio"),
            data.get("uf"),
            data.get("cep"),
        ),
        phone=format_phone(phone),
        email=data.get("email"),
        situation=map_situation(data.get("situacao")),
        opening_date=parse_date(data.get("abertura")),
        capital=parse_brl_amount(data.get("capital_social")),
        legal_nature=data.get("natureza_juridica"),
        partners=[Partner(name=p.get("nome", ""), role=p.get("qual", "")) for p in data.get("qsa", [])],
    )


def adapt_brasilapi(tax_id: str, data: Dict) -> CompanyRecord:
    """BrasilAPI: campos planos, data ISO, capital numerico"""
    return _build_record(
        tax_id,
        "brasilapi",
        data,
        legal_name=data.get("razao_social"),
        trade_name=data.get("nome_fantasia"),
        main_activity=data.get("cnae_fiscal_descricao"),
        secondary_activities=[
            c.get("descricao", "") for c in data.get("cnaes_secundarios", []) or [] if c.get("descricao")
        ],
        address=compose_address(
            data.get("logradouro"),
            data.get("numero"),
            data.get("complemento"),
            data.get("bairro"),
            data.get("municipio"),
            data.get("uf"),
            data.get("cep"),
        ),
        phone=format_phone(data.get("ddd_telefone_1")),
        email=data.get("email"),
        situation=map_situation(data.get("descricao_situacao_cadastral")),
        opening_date=parse_date(data.get("data_inicio_atividade")),
        capital=parse_brl_amount(data.get("capital_social")),
        legal_nature=data.get("natureza_juridica"),
        partners=[
            Partner(name=s.get("nome_socio", ""), role=s.get("qualificacao_socio", ""))
            for s in data.get("qsa", []) or []
        ],
    )


def adapt_cnpjws(tax_id: str, data: Dict) -> CompanyRecord:
    """CNPJ.ws: dados do estabelecimento aninhados"""
    est = data.get("estabelecimento") or {}
    street = " ".join(p for p in (est.get("tipo_logradouro"), est.get("logradouro")) if p)
    phone = f"{est.get('ddd1') or ''}{est.get('telefone1') or ''}"

    return _build_record(
        tax_id,
        "cnpjws",
        data,
        legal_name=data.get("razao_social"),
        trade_name=est.get("nome_fantasia"),
        main_activity=(est.get("atividade_principal") or {}).get("descricao"),
        secondary_activities=[
            a.get("descricao", "") for a in est.get("atividades_secundarias", []) if a.get("descricao")
        ],
        address=compose_address(
            street,
            est.get("numero"),
            est.get("complemento"),
            est.get("bairro"),
            (est.get("cidade") or {}).get("nome"),
            (est.get("estado") or {}).get("sigla"),
            est.get("cep"),
        ),
        phone=format_phone(phone),
        email=est.get("email"),
        situation=map_situation(est.get("situacao_cadastral")),
        opening_date=parse_date(est.get("data_inicio_atividade")),
        capital=parse_brl_amount(data.get("capital_social")),
        legal_nature=(data.get("natureza_juridica") or {}).get("descricao"),
        partners=[
            Partner(name=s.get("nome", ""), role=(s.get("qualificacao_socio") or {}).get("descricao", ""))
            for s in data.get("socios", [])
        ],
    )


Adapter = Callable[[str, Dict], CompanyRecord]

ADAPTERS: Dict[str, Adapter] = {
    "receitaws": adapt_receitaws,
    "brasilapi": adapt_brasilapi,
    "cnpjws": adapt_cnpjws,
}


@dataclass
class RegistryProvider:
    """Provider de consulta de CNPJ: GET {base_url}{cnpj}"""
    name: str
    base_url: str
    adapter: Adapter


def provider_from_url(url: str) -> RegistryProvider:
    """Associa a URL configurada ao adapter do provider"""
    host = httpx.URL(url).host
    if "receitaws" in host:
        name = "receitaws"
    elif "cnpj.ws" in host:
        name = "cnpjws"
    else:
        name = "brasilapi"
    return RegistryProvider(name=name, base_url=url, adapter=ADAPTERS[name])


def _body_error(data: Any) -> Optional[str]:
    if not isinstance(data, dict):
        return "malformed body"
    if data.get("status") == "ERROR":
        return data.get("message") or "provider returned ERROR"
    if data.get("erro"):
        return str(data.get("message") or data["erro"])
    if data.get("error"):
        return str(data.get("message") or data["error"])
    return None


# ===========================================
# Cliente
# ===========================================


class CompanyRegistryClient(BaseClient):
    """
    Cliente de consulta de CNPJ com cascata de providers.

    Ordem: cache -> rate limit -> providers em ordem.
    Falhas de um provider sao suaves (proximo provider);
    somente a falha de todos propaga.
    """

    SOURCE_NAME = "company_registry"

    def __init__(
        self,
        providers: Optional[List[RegistryProvider]] = None,
        cache: Optional[CacheManager] = None,
        rate_limiter: Optional[RateLimiter] = None,
        **kwargs,
    ):
        kwargs.setdefault("timeout", settings.cnpj_timeout)
        super().__init__(**kwargs)
        self.providers = providers or [provider_from_url(u) for u in settings.parsed_cnpj_provider_urls]
        self.cache = cache or CacheManager("company", default_ttl=settings.cache_ttl_company)
        self.rate_limiter = rate_limiter or RateLimiter(
            max_requests=settings.cnpj_rate_limit,
            window_seconds=settings.cnpj_rate_window,
            provider=self.SOURCE_NAME,
        )

    async def get_company_data(self, tax_id: str) -> CompanyRecord:
        """
        Busca dados da empresa pelo CNPJ

        Args:
            tax_id: CNPJ com ou sem formatacao

        Returns:
            CompanyRecord normalizado

        Raises:
            InvalidInputError: CNPJ invalido
            RateLimitError: limite local atingido
            AllProvidersFailedError: nenhum provider respondeu
        """
        cnpj = clean_digits(tax_id)
        if not validate_cnpj(cnpj):
            raise InvalidInputError(f"CNPJ inválido: {tax_id}")

        cached = self.cache.get(cnpj)
        if cached is not None:
            return cached

        if not self.rate_limiter.can_make_request():
            raise RateLimitError(self.SOURCE_NAME, self.rate_limiter.retry_after())

        logger.info("registry_lookup", cnpj=mask_cnpj(cnpj), providers=[p.name for p in self.providers])

        errors: List[Exception] = []
        for provider in self.providers:
            try:
                record = await self._fetch(provider, cnpj)
            except ProviderUnavailableError as e:
                errors.append(e)
                logger.warning("registry_provider_failed", provider=provider.name, error=e.reason)
                continue

            self.cache.set(cnpj, record)
            self.rate_limiter.record_request()
            logger.info("registry_lookup_success", cnpj=mask_cnpj(cnpj), provider=provider.name)
            return record

        logger.error("registry_all_failed", cnpj=mask_cnpj(cnpj), attempts=len(errors))
        last_error = errors[-1] if errors else None
        raise AllProvidersFailedError("company lookup", errors) from last_error

    async def _fetch(self, provider: RegistryProvider, cnpj: str) -> CompanyRecord:
        data = await self.get_json(f"{provider.base_url}{cnpj}", provider=provider.name)

        error = _body_error(data)
        if error:
            raise ProviderUnavailableError(provider.name, error)

        try:
            return provider.adapter(cnpj, data)
        except (AttributeError, IndexError, TypeError, ValueError) as e:
            raise ProviderUnavailableError(provider.name, f"unexpected payload: {e}") from e
