from functools import lru_cache

from pydantic_settings import BaseSettings
from pydantic import Field


class EnvSettings(BaseSettings):
    # Входящий шлюз: ключ, который должны предъявлять клиенты /api/gateway/ldap
    gateway_api_key: str = Field("", alias="GATEWAY_API_KEY")

    # Исходящий прокси: удалённый экземпляр шлюза, который видит LDAP
    use_ldap_proxy: bool = Field(False, alias="USE_LDAP_PROXY")
    proxy_ldap_url: str = Field("", alias="PROXY_LDAP_URL")
    proxy_api_key: str = Field("", alias="PROXY_API_KEY")
    proxy_timeout_s: float = Field(30.0, alias="PROXY_TIMEOUT_S")

    # test/test и connection-test/connection-test на /api/auth/login
    diagnostic_logins: bool = Field(False, alias="AUTH_DIAGNOSTIC_LOGINS")

    # Лимит на /api/: запросов на IP за окно (0 отключает)
    rate_limit_max_requests: int = Field(100, alias="RATE_LIMIT_MAX_REQUESTS")
    rate_limit_window_s: float = Field(900.0, alias="RATE_LIMIT_WINDOW_S")

    # Через запятую; "*" разрешает любой Origin
    cors_allow_origins: str = Field("*", alias="CORS_ALLOW_ORIGINS")

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_retention_days: int = Field(30, alias="LOG_RETENTION_DAYS")
    log_dir: str = Field("data/logs", alias="LOG_DIR")

    class Config:
        populate_by_name = True

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_allow_origins.split(",") if o.strip()]


@lru_cache(maxsize=1)
def get_env() -> EnvSettings:
    return EnvSettings()
