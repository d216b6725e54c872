from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ..deps import client_meta
from ..env_settings import EnvSettings, get_env
from ..ldap import DirectoryAuthenticator
from ..ldap.diagnostics import check_connection
from ..schema import LoginRequest
from ..services import AuthenticatorProvider, audit_login, authenticator_provider, unified_authenticate

log = logging.getLogger(__name__)

router = APIRouter()

TEST_LOGIN = ("test", "test")
CONNECTION_TEST_LOGIN = ("connection-test", "connection-test")


def _connection_test(authenticator: DirectoryAuthenticator) -> JSONResponse:
    report = check_connection(authenticator)
    if not report.success:
        return JSONResponse(
            {
                "error": "Connection test failed",
                "details": report.details,
                "outboundIP": report.outbound_ip,
                "config": report.config,
            },
            status_code=500,
        )
    return JSONResponse(
        {
            "success": True,
            "message": "LDAP connection and bind test successful",
            "details": report.details,
            "outboundIP": report.outbound_ip,
            "config": report.config,
        }
    )


# Синхронный обработчик: FastAPI выполнит его в threadpool, LDAP не блокирует event loop.
@router.post("/api/auth/login")
def login(
    body: LoginRequest,
    request: Request,
    env: EnvSettings = Depends(get_env),
    provide_authenticator: AuthenticatorProvider = Depends(authenticator_provider),
):
    username, password = body.credentials()
    ip, ua = client_meta(request)

    # Валидация ввода
    if not username or not password:
        return JSONResponse({"error": "Username and password are required"}, status_code=400)

    if env.diagnostic_logins:
        if (username, password) == TEST_LOGIN:
            audit_login(username, "test", True, ip, ua, "ok", "diagnostic-test-login")
            return {"success": True, "message": "Login successful"}
        if (username, password) == CONNECTION_TEST_LOGIN:
            log.info("Запуск проверки подключения к LDAP (ip=%s)", ip)
            return _connection_test(provide_authenticator())

    # Вызов сервиса
    result = unified_authenticate(username, password, provide_authenticator(), env)
    audit_login(username, result.via, result.success, ip, ua, result.result_code)
    if not result.success:
        return JSONResponse(result.public(), status_code=401)
    return result.public()
