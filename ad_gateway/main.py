from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .env_settings import get_env
from .ldap.errors import ConfigurationError
from .log_config import setup_logging
from .middleware import log_requests, rate_limit
from .routers import auth, gateway

log = logging.getLogger(__name__)

app = FastAPI(title="LDAP Gateway")
app.include_router(auth.router)
app.include_router(gateway.router)

# Последний добавленный middleware внешний: CORS -> журнал -> лимит
app.middleware("http")(rate_limit)
app.middleware("http")(log_requests)
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_env().cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def _startup():
    env = get_env()
    setup_logging(level=env.log_level, retention_days=env.log_retention_days, log_dir=env.log_dir)


@app.exception_handler(ConfigurationError)
async def _configuration_error(request: Request, exc: ConfigurationError):
    log.error("%s %s: LDAP не настроен: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        {"success": False, "error": "Сервис аутентификации не настроен."},
        status_code=500,
    )
