"""
Prospector - Settings
Configuracoes centralizadas do assistente de prospeccao
Atacado alimenticio
"""

from functools import lru_cache
from typing import List

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProviderConfig(BaseModel):
    """Configuracao de um provider de IA"""

    name: str
    endpoint: str
    model_id: str
    api_key: str = ""
    enabled: bool = True
    requests_per_window: int = 50
    window_seconds: float = 60.0


class Settings(BaseSettings):
    """Configuracoes do Prospector"""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # ===========================================
    # Environment
    # ===========================================
    environment: str = "development"
    debug: bool = False

    # ===========================================
    # HTTP
    # ===========================================
    http_timeout: float = 30.0
    http_max_attempts: int = 2
    user_agent: str = "Prospector/1.0 (contato@atacado.com.br)"

    # ===========================================
    # Consulta de CNPJ
    # ===========================================

    # URLs consultadas em ordem, o CNPJ e concatenado ao final
    cnpj_provider_urls: str = (
        "https://receitaws.com.br/v1/cnpj/,"
        "https://brasilapi.com.br/api/cnpj/v1/,"
        "https://publica.cnpj.ws/cnpj/"
    )
    cnpj_rate_limit: int = 2
    cnpj_rate_window: float = 60.0
    cnpj_timeout: float = 10.0

    # ===========================================
    # APIs de IA
    # ===========================================

    # Grok (xAI) - compativel com OpenAI chat completions
    grok_api_key: str = ""
    grok_base_url: str = "https://api.x.ai/v1"
    grok_model: str = "grok-2-1212"
    grok_enabled: bool = True
    grok_rate_limit: int = 50
    grok_rate_window: float = 60.0

    # Google Gemini - generateContent
    gemini_api_key: str = ""
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_model: str = "gemini-1.5-flash"
    gemini_enabled: bool = True
    gemini_rate_limit: int = 30
    gemini_rate_window: float = 60.0

    ai_timeout: float = 60.0

    # ===========================================
    # Geolocalizacao
    # ===========================================
    nominatim_url: str = "https://nominatim.openstreetmap.org"
    viacep_url: str = "https://viacep.com.br/ws"
    overpass_url: str = "https://overpass-api.de/api/interpreter"
    osrm_url: str = "https://router.project-osrm.org"
    geocoding_country: str = "br"
    geocoding_rate_limit: int = 60
    geocoding_rate_window: float = 60.0

    # ===========================================
    # Redes sociais
    # ===========================================

    # Proxies separados por virgula, a URL alvo e concatenada ao final
    social_proxy_urls: str = ""
    facebook_access_token: str = ""
    social_timeout: float = 10.0

    # ===========================================
    # Cache (segundos)
    # ===========================================
    cache_max_size: int = 1000
    cache_ttl_company: int = 86400
    cache_ttl_social: int = 3600
    cache_ttl_ai: int = 7200
    cache_ttl_geocoding: int = 86400
    cache_ttl_menu: int = 3600

    # ===========================================
    # Historico local
    # ===========================================
    history_path: str = ".prospector/history.json"

    # ===========================================
    # Concorrentes (JSON opcional; vazio usa a base padrao)
    # ===========================================
    competitors_path: str = ""

    # ===========================================
    # Logging
    # ===========================================
    log_level: str = "INFO"
    log_format: str = "console"

    # ===========================================
    # Propriedades Computadas
    # ===========================================

    @property
    def is_production(self) -> bool:
        """Verifica se está em produção"""
        return self.environment == "production"

    @property
    def has_grok(self) -> bool:
        """Verifica se Grok está configurado"""
        return bool(self.grok_api_key)

    @property
    def has_gemini(self) -> bool:
        """Verifica se Gemini está configurado"""
        return bool(self.gemini_api_key)

    @property
    def has_facebook_token(self) -> bool:
        return bool(self.facebook_access_token)

    @property
    def parsed_cnpj_provider_urls(self) -> List[str]:
        """Retorna lista ordenada de URLs de consulta de CNPJ"""
        return [url.strip() for url in self.cnpj_provider_urls.split(",") if url.strip()]

    @property
    def parsed_social_proxy_urls(self) -> List[str]:
        """Retorna lista de proxies para scraping de redes sociais"""
        return [url.strip() for url in self.social_proxy_urls.split(",") if url.strip()]

    @property
    def grok_provider(self) -> ProviderConfig:
        return ProviderConfig(
            name="grok",
            endpoint=self.grok_base_url,
            model_id=self.grok_model,
            api_key=self.grok_api_key,
            enabled=self.grok_enabled and self.has_grok,
            requests_per_window=self.grok_rate_limit,
            window_seconds=self.grok_rate_window,
        )

    @property
    def gemini_provider(self) -> ProviderConfig:
        return ProviderConfig(
            name="gemini",
            endpoint=self.gemini_base_url,
            model_id=self.gemini_model,
            api_key=self.gemini_api_key,
            enabled=self.gemini_enabled and self.has_gemini,
            requests_per_window=self.gemini_rate_limit,
            window_seconds=self.gemini_rate_window,
        )


@lru_cache()
def get_settings() -> Settings:
    """Retorna singleton das configuracoes"""
    return Settings()


# Alias para uso direto
settings = get_settings()
