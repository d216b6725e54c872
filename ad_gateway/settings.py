from __future__ import annotations

from functools import lru_cache
from typing import List

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings

from .ldap.errors import ConfigurationError

_REQUIRED = {
    "url": "LDAP_URL",
    "base_dn": "LDAP_BASE_DN",
    "bind_dn": "LDAP_BIND_DN",
    "bind_password": "LDAP_BIND_PASSWORD",
}


class DirectoryConfig(BaseSettings):
    """Параметры каталога. Загружаются один раз на процесс и не меняются."""

    url: str = Field("", alias="LDAP_URL")
    base_dn: str = Field("", alias="LDAP_BASE_DN")
    bind_dn: str = Field("", alias="LDAP_BIND_DN")
    bind_password: str = Field("", alias="LDAP_BIND_PASSWORD")

    domain_suffix: str = Field("", alias="LDAP_DOMAIN_SUFFIX")
    alt_domain_suffix: str = Field("", alias="LDAP_ALT_DOMAIN_SUFFIX")
    extra_domain_suffixes: str = Field("", alias="LDAP_EXTRA_DOMAIN_SUFFIXES")  # ';' separated

    # TLS
    tls_reject_unauthorized: bool = Field(False, alias="LDAP_TLS_REJECT_UNAUTHORIZED")
    ca_cert_file: str = Field("", alias="LDAP_CA_CERT_FILE")
    starttls: bool = Field(False, alias="LDAP_STARTTLS")

    # Таймауты и ретраи (миллисекунды, как в переменных окружения)
    connect_timeout_ms: int = Field(30000, alias="LDAP_CONNECT_TIMEOUT", ge=1)
    retry_attempts: int = Field(4, alias="LDAP_CONNECTION_RETRY_ATTEMPTS", ge=1)
    retry_delay_ms: int = Field(1000, alias="LDAP_CONNECTION_RETRY_DELAY", ge=0)

    class Config:
        populate_by_name = True
        frozen = True

    @property
    def domain_suffixes(self) -> List[str]:
        raw = [self.domain_suffix, self.alt_domain_suffix]
        raw += self.extra_domain_suffixes.split(";")
        out: List[str] = []
        for s in raw:
            s = (s or "").strip().strip(".")
            if s and s not in out:
                out.append(s)
        return out

    @property
    def use_ssl(self) -> bool:
        return self.url.strip().lower().startswith("ldaps://")

    @property
    def connect_timeout_s(self) -> float:
        return self.connect_timeout_ms / 1000.0

    @property
    def retry_delay_s(self) -> float:
        return self.retry_delay_ms / 1000.0

    def missing_fields(self) -> List[str]:
        return [env for name, env in _REQUIRED.items() if not str(getattr(self, name) or "").strip()]

    def validate_for_auth(self, endpoint: str | None = None) -> None:
        """Fail fast before any network I/O.

        `endpoint` is the address actually dialled when it differs from
        LDAP_URL (e.g. a tunnel's local port); the scheme check applies to it.
        """
        target = (endpoint or self.url or "").strip()
        missing = self.missing_fields()
        if target and "LDAP_URL" in missing:
            missing.remove("LDAP_URL")
        if missing:
            raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}")
        if not target.lower().startswith(("ldap://", "ldaps://")):
            raise ConfigurationError(f"LDAP endpoint must start with ldap:// or ldaps:// (got {target!r})")
        if not self.domain_suffixes:
            raise ConfigurationError("No domain suffix configured (LDAP_DOMAIN_SUFFIX)")


@lru_cache(maxsize=1)
def get_directory_config() -> DirectoryConfig:
    try:
        return DirectoryConfig()
    except ValidationError as e:
        raise ConfigurationError(f"Invalid LDAP configuration: {e}", cause=e) from e
