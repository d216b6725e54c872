from __future__ import annotations

import hmac

from fastapi import Depends, HTTPException, Request, status

from .env_settings import EnvSettings, get_env


def require_api_key(request: Request, env: EnvSettings = Depends(get_env)) -> None:
    """Bearer-ключ для /api/gateway/*. Пустой GATEWAY_API_KEY закрывает шлюз целиком."""
    auth = request.headers.get("authorization", "")
    if not auth.startswith("Bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing or invalid API key")
    token = auth[len("Bearer "):]
    expected = env.gateway_api_key or ""
    if not expected or not hmac.compare_digest(token.encode("utf-8"), expected.encode("utf-8")):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")


def client_meta(request: Request) -> tuple[str, str]:
    ip = request.client.host if request.client else ""
    ua = request.headers.get("user-agent", "")
    return ip, ua
