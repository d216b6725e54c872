"""Аутентификация через LDAP / Active Directory.

Public API:
    - DirectoryAuthenticator
    - AuthOutcome, AuthStatus, ResolvedIdentity
    - errors: ConfigurationError, ConnectionFailure, UserNotFound,
      InvalidCredentials, AuthenticationFailed
"""

from .authenticator import DirectoryAuthenticator
from .errors import (
    AuthenticationFailed,
    ConfigurationError,
    ConnectionFailure,
    DirectoryAuthError,
    InvalidCredentials,
    ProxyError,
    ServiceBindRejected,
    UserNotFound,
)
from .models import AuthOutcome, AuthStatus, ResolvedIdentity

__all__ = [
    "DirectoryAuthenticator",
    "AuthOutcome",
    "AuthStatus",
    "ResolvedIdentity",
    "DirectoryAuthError",
    "ConfigurationError",
    "ConnectionFailure",
    "UserNotFound",
    "InvalidCredentials",
    "AuthenticationFailed",
    "ProxyError",
    "ServiceBindRejected",
]
