from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable

from ..env_settings import EnvSettings, get_env
from ..ldap import AuthOutcome, AuthStatus, DirectoryAuthenticator
from ..ldap.errors import AuthenticationFailed, ConfigurationError, ProxyError
from ..ldap.models import GENERIC_FAILURE_MESSAGE, SUCCESS_MESSAGE
from ..settings import get_directory_config
from .proxy import GatewayProxyClient

log = logging.getLogger(__name__)


@dataclass
class AuthResult:
    """Результат аутентификации пользователя."""
    success: bool
    via: str = "ldap"
    result_code: str = ""
    outcome: AuthOutcome | None = None

    def public(self) -> dict:
        if self.success:
            return {"success": True, "message": SUCCESS_MESSAGE}
        return {"success": False, "error": GENERIC_FAILURE_MESSAGE}


@lru_cache(maxsize=1)
def get_authenticator() -> DirectoryAuthenticator:
    return DirectoryAuthenticator(get_directory_config())


AuthenticatorProvider = Callable[[], DirectoryAuthenticator]


def authenticator_provider() -> AuthenticatorProvider:
    """Зависимость для роутеров: аутентификатор строится только после проверки ввода,
    поэтому пустой запрос получает 400 даже при ненастроенном LDAP."""
    return get_authenticator


def get_proxy_client(env: EnvSettings) -> GatewayProxyClient:
    return GatewayProxyClient(env.proxy_ldap_url, env.proxy_api_key, env.proxy_timeout_s)


def authenticate_direct(username: str, password: str, authenticator: DirectoryAuthenticator) -> AuthResult:
    """Прямая проверка через LDAP.

    Raises:
        ConfigurationError: каталог не настроен (ошибка сервиса, а не пользователя).
    """
    outcome = authenticator.authenticate(username, password)
    if outcome.status is AuthStatus.CONFIGURATION_ERROR:
        raise ConfigurationError(outcome.cause)
    return AuthResult(
        success=outcome.success,
        via="ldap",
        result_code="ok" if outcome.success else outcome.status.value,
        outcome=outcome,
    )


def authenticate(
    username: str,
    password: str,
    authenticator: DirectoryAuthenticator,
    env: EnvSettings | None = None,
    proxy: GatewayProxyClient | None = None,
) -> AuthResult:
    """Единая точка входа для HTTP-слоя.

    При USE_LDAP_PROXY сначала пробуем удалённый шлюз; если он недоступен
    (ProxyError), откатываемся на прямой LDAP. Отказ прокси по учётным данным
    окончателен.
    """
    env = env or get_env()
    if env.use_ldap_proxy:
        proxy = proxy or get_proxy_client(env)
        try:
            proxy.authenticate(username, password)
            return AuthResult(success=True, via="proxy", result_code="ok")
        except AuthenticationFailed as e:
            log.info("Прокси: %s", e)
            return AuthResult(success=False, via="proxy", result_code="invalid")
        except ProxyError as e:
            log.warning("Прокси не сработал, переходим на прямой LDAP: %s", e)

    return authenticate_direct(username, password, authenticator)
