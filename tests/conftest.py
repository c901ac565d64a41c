"""
Prospector - Test Fixtures
Configurações compartilhadas para testes
"""

import random

import httpx
import pytest

from config.settings import ProviderConfig
from prospector.ai_providers import GeminiProvider, GrokProvider
from prospector.utils.cache import CacheManager
from prospector.utils.rate_limiter import RateLimiter

# ===========================================
# MOCK DATA
# ===========================================

VALID_CNPJ = "11222333000181"
OTHER_VALID_CNPJ = "11444777000161"

MOCK_RECEITAWS_DATA = {
    "status": "OK",
    "cnpj": "11.222.333/0001-81",
    "nome": "CANTINA BELLA NAPOLI LTDA",
    "fantasia": "BELLA NAPOLI",
    "abertura": "15/03/2010",
    "situacao": "ATIVA",
    "natureza_juridica": "206-2 - Sociedade Empresária Limitada",
    "atividade_principal": [
        {"code": "56.11-2-01", "text": "Restaurantes e similares"}
    ],
    "atividades_secundarias": [
        {"code": "56.11-2-03", "text": "Lanchonetes, casas de chá, de sucos e similares"}
    ],
    "logradouro": "RUA AUGUSTA",
    "numero": "1500",
    "complemento": "LOJA 2",
    "bairro": "CONSOLACAO",
    "municipio": "SAO PAULO",
    "uf": "SP",
    "cep": "01304-001",
    "telefone": "(11) 3251-1234 / (11) 99876-5432",
    "email": "contato@bellanapoli.com.br",
    "capital_social": "150000.00",
    "qsa": [
        {"nome": "GIUSEPPE ROSSI", "qual": "49-Sócio-Administrador"}
    ],
}

MOCK_BRASILAPI_DATA = {
    "cnpj": "11222333000181",
    "razao_social": "CANTINA BELLA NAPOLI LTDA",
    "nome_fantasia": "BELLA NAPOLI",
    "natureza_juridica": "Sociedade Empresária Limitada",
    "descricao_situacao_cadastral": "ATIVA",
    "data_inicio_atividade": "2010-03-15",
    "capital_social": 150000.0,
    "cnae_fiscal": 5611201,
    "cnae_fiscal_descricao": "Restaurantes e similares",
    "cnaes_secundarios": [
        {"codigo": 5611203, "descricao": "Lanchonetes, casas de chá, de sucos e similares"}
    ],
    "logradouro": "RUA AUGUSTA",
    "numero": "1500",
    "complemento": "LOJA 2",
    "bairro": "CONSOLACAO",
    "cep": "01304001",
    "municipio": "SAO PAULO",
    "uf": "SP",
    "ddd_telefone_1": "1132511234",
    "email": None,
    "qsa": [
        {
            "nome_socio": "GIUSEPPE ROSSI",
            "qualificacao_socio": "Sócio-Administrador",
            "data_entrada_sociedade": "2010-03-15"
        }
    ]
}

MOCK_CNPJWS_DATA = {
    "razao_social": "CANTINA BELLA NAPOLI LTDA",
    "capital_social": "150000.00",
    "natureza_juridica": {"id": "2062", "descricao": "Sociedade Empresária Limitada"},
    "socios": [
        {"nome": "GIUSEPPE ROSSI", "qualificacao_socio": {"descricao": "Sócio-Administrador"}}
    ],
    "estabelecimento": {
        "cnpj": "11222333000181",
        "nome_fantasia": "BELLA NAPOLI",
        "situacao_cadastral": "Ativa",
        "data_inicio_atividade": "2010-03-15",
        "tipo_logradouro": "RUA",
        "logradouro": "AUGUSTA",
        "numero": "1500",
        "complemento": None,
        "bairro": "CONSOLACAO",
        "cep": "01304001",
        "ddd1": "11",
        "telefone1": "32511234",
        "email": "contato@bellanapoli.com.br",
        "atividade_principal": {"id": "5611201", "descricao": "Restaurantes e similares"},
        "atividades_secundarias": [],
        "cidade": {"nome": "São Paulo"},
        "estado": {"sigla": "SP"},
    },
}

MOCK_NOMINATIM_RESULT = [
    {
        "lat": "-23.5558",
        "lon": "-46.6623",
        "display_name": "Rua Augusta, Consolação, São Paulo, SP, Brasil",
        "address": {
            "road": "Rua Augusta",
            "suburb": "Consolação",
            "city": "São Paulo",
            "state": "São Paulo",
            "postcode": "01304-001",
            "country": "Brasil",
        },
    }
]

MOCK_VIACEP_DATA = {
    "cep": "01304-001",
    "logradouro": "Rua Augusta",
    "bairro": "Consolação",
    "localidade": "São Paulo",
    "uf": "SP",
}

MOCK_MENU_TEXT = """CARDÁPIO BELLA NAPOLI

Pizza Margherita - R$ 35,00
Lasanha Bolonhesa R$ 38.50
"""

MOCK_FULL_MENU_TEXT = """1. Pizza Calabresa - R$ 42,00
2. Pizza Portuguesa - R$ 45,00
Espaguete ao Sugo - molho de tomate e manjericão - R$ 36,90
Picanha na Chapa R$ 89,90
Pudim de Leite: R$ 12,00
Refrigerante Lata R$ 6,50
Pizza Calabresa - R$ 42,00
"""

MOCK_GROK_RESPONSE = {
    "id": "chatcmpl-123",
    "choices": [
        {"message": {"role": "assistant", "content": "Prospect com alto potencial para farinha e queijo."}}
    ],
}

MOCK_GEMINI_RESPONSE = {
    "candidates": [
        {"content": {"parts": [{"text": "Script de vendas gerado pelo Gemini."}]}}
    ]
}


# ===========================================
# HELPERS
# ===========================================


class FakeClock:
    """Relogio controlado manualmente"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def mock_http_client(handler) -> httpx.AsyncClient:
    """AsyncClient que responde pelo handler (sem rede)"""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def not_found_handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(404, text="not found")


def provider_config(name: str, api_key: str = "test-key", **kwargs) -> ProviderConfig:
    endpoints = {
        "grok": ("https://api.x.ai/v1", "grok-2-1212"),
        "gemini": ("https://generativelanguage.googleapis.com/v1beta", "gemini-1.5-flash"),
    }
    endpoint, model_id = endpoints[name]
    return ProviderConfig(name=name, endpoint=endpoint, model_id=model_id, api_key=api_key, **kwargs)


# ===========================================
# FIXTURES
# ===========================================


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return CacheManager("test", default_ttl=60, maxsize=100, timer=clock)


@pytest.fixture
def limiter(clock):
    return RateLimiter(max_requests=3, window_seconds=60, provider="test", clock=clock)


@pytest.fixture
def rng():
    return random.Random(42)


@pytest.fixture
def offline_ai_providers():
    """Providers sem chave: nunca chegam a rede"""
    return {
        "grok": GrokProvider(provider_config("grok", api_key="")),
        "gemini": GeminiProvider(provider_config("gemini", api_key="")),
    }
