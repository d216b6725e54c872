from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse

from .. import __version__
from ..deps import client_meta, require_api_key
from ..schema import LoginRequest
from ..services import AuthenticatorProvider, audit_login, authenticate_direct, authenticator_provider

router = APIRouter()

GATEWAY_NAME = "LDAP API Gateway"

SERVICES: dict[str, dict[str, str]] = {
    "ldap": {
        "path": "/api/gateway/ldap",
        "description": "LDAP Authentication Service",
    },
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


@router.get("/health")
def health():
    return {"status": "healthy", "timestamp": _now(), "services": len(SERVICES)}


@router.get("/health/{service}")
def service_health(service: str):
    if service not in SERVICES:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Service not found")
    return {"service": service, "status": "healthy", "timestamp": _now()}


@router.get("/gateway")
def gateway_info():
    return {
        "name": GATEWAY_NAME,
        "version": __version__,
        "timestamp": _now(),
        "services": [{"name": k, **v} for k, v in SERVICES.items()],
    }


@router.get("/api/gateway/ldap")
def ldap_endpoint_info():
    return {
        "name": "LDAP Gateway API",
        "version": __version__,
        "timestamp": _now(),
        "endpoint": SERVICES["ldap"]["path"],
    }


@router.post("/api/gateway/ldap", dependencies=[Depends(require_api_key)])
def ldap_authenticate(
    body: LoginRequest,
    request: Request,
    provide_authenticator: AuthenticatorProvider = Depends(authenticator_provider),
):
    """Шлюз для других экземпляров: только прямой LDAP, без служебных логинов и без прокси."""
    username, password = body.credentials()
    if not username or not password:
        return JSONResponse({"error": "Username and password are required"}, status_code=400)

    authenticator = provide_authenticator()

    ip, ua = client_meta(request)
    result = authenticate_direct(username, password, authenticator)
    audit_login(username, "gateway", result.success, ip, ua, result.result_code)
    if not result.success:
        return JSONResponse(result.public(), status_code=401)
    return result.public()
