from __future__ import annotations

import logging

import httpx

from ..ldap.errors import AuthenticationFailed, ProxyError

log = logging.getLogger(__name__)

GATEWAY_PATH = "/api/gateway/ldap"


class GatewayProxyClient:
    """Client for a remote instance of this gateway that can reach the directory.

    Returns True on success, raises AuthenticationFailed when the remote side
    rejected the credentials and ProxyError for anything else (so the caller
    can fall back to a direct LDAP attempt).
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout_s: float = 30.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.base_url = (base_url or "").strip().rstrip("/")
        self.api_key = api_key or ""
        self.timeout_s = float(timeout_s)
        self._client = client

    def authenticate(self, username: str, password: str) -> bool:
        if not self.base_url:
            raise ProxyError("PROXY_LDAP_URL is not configured")

        url = f"{self.base_url}{GATEWAY_PATH}"
        headers = {"Authorization": f"Bearer {self.api_key}"}
        payload = {"username": username, "password": password}
        log.info("Аутентификация %r через прокси %s", username, self.base_url)
        try:
            if self._client is not None:
                resp = self._client.post(url, json=payload, headers=headers, timeout=self.timeout_s)
            else:
                with httpx.Client(timeout=self.timeout_s) as c:
                    resp = c.post(url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise ProxyError(f"Прокси недоступен: {e}", cause=e) from e

        data = _json_or_empty(resp)
        if resp.status_code == 401 and data.get("success") is False:
            raise AuthenticationFailed("Прокси отклонил учётные данные")
        if resp.status_code >= 400:
            raise ProxyError(f"Прокси вернул {resp.status_code}: {resp.text[:200]}")
        if data.get("success") is True:
            return True
        raise AuthenticationFailed("Прокси не подтвердил вход")


def _json_or_empty(resp: httpx.Response) -> dict:
    try:
        data = resp.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}
