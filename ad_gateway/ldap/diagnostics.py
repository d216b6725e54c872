"""Проверка связи с каталогом (для служебного логина connection-test)."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httpx

from .authenticator import DirectoryAuthenticator
from .errors import ConnectionFailure

if TYPE_CHECKING:
    from ..settings import DirectoryConfig

log = logging.getLogger(__name__)

OUTBOUND_IP_URL = "https://api.ipify.org?format=json"


@dataclass
class ConnectionReport:
    success: bool
    details: str
    outbound_ip: str = "Unknown"
    config: dict[str, Any] = field(default_factory=dict)


def config_summary(cfg: "DirectoryConfig") -> dict[str, Any]:
    """Non-secret view of the directory settings."""
    return {
        "url": cfg.url,
        "baseDN": cfg.base_dn,
        "bindDN": cfg.bind_dn,
        "domainSuffixes": cfg.domain_suffixes,
        "tlsEnabled": cfg.use_ssl,
        "tlsRejectUnauthorized": cfg.tls_reject_unauthorized,
        "connectTimeout": cfg.connect_timeout_ms,
        "retryAttempts": cfg.retry_attempts,
    }


def outbound_ip(timeout_s: float = 5.0, client: httpx.Client | None = None) -> str:
    """Best-effort: external IP this process is seen from (to whitelist it on the DC firewall)."""
    try:
        if client is not None:
            resp = client.get(OUTBOUND_IP_URL, timeout=timeout_s)
        else:
            resp = httpx.get(OUTBOUND_IP_URL, timeout=timeout_s)
        resp.raise_for_status()
        return str(resp.json().get("ip") or "Unknown")
    except (httpx.HTTPError, ValueError) as e:
        log.info("Не удалось определить исходящий IP: %s", e)
        return "Unknown"


def check_connection(
    authenticator: DirectoryAuthenticator,
    *,
    lookup_ip: bool = True,
    http_client: httpx.Client | None = None,
) -> ConnectionReport:
    """Подключение + служебный bind с теми же ретраями, что и при входе."""
    cfg = authenticator.cfg
    cfg.validate_for_auth(authenticator.supervisor.endpoint)
    ip = outbound_ip(client=http_client) if lookup_ip else "Unknown"
    try:
        with authenticator.resolver.admin_session() as (dn, _):
            log.info("Проверка подключения: служебный bind %s выполнен", dn)
    except ConnectionFailure as e:
        log.warning("Проверка подключения не удалась: %s", e)
        return ConnectionReport(False, str(e), ip, config_summary(cfg))
    return ConnectionReport(True, f"LDAP connection and bind test successful ({dn})", ip, config_summary(cfg))
