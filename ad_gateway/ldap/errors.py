"""Ошибки аутентификации через каталог.

Внутренние стадии бросают конкретные исключения; наружу (HTTP) уходит
только булев результат и непрозрачное сообщение.
"""
from __future__ import annotations

from typing import Optional


class DirectoryAuthError(Exception):
    """Base exception for directory authentication errors."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause


class ConfigurationError(DirectoryAuthError):
    """Конфигурация отсутствует или некорректна. Не ретраится."""


class ConnectionFailure(DirectoryAuthError):
    """Transport/TLS fault, or the administrative identity was not accepted."""


class UserNotFound(DirectoryAuthError):
    """Ни один фильтр не нашёл запись для данного суффикса."""


class InvalidCredentials(DirectoryAuthError):
    """Каталог отклонил bind пользователя."""


class AuthenticationFailed(DirectoryAuthError):
    """All suffixes exhausted. This is the only failure external callers see."""


class ProxyError(DirectoryAuthError):
    """Удалённый шлюз недоступен или вернул ошибку."""


class ServiceBindRejected(ConnectionFailure):
    """Каталог отклонил служебную учётную запись в этом формате DN."""
