"""Application service layer.

Stable import surface for routers:
    from ad_gateway.services import ...
"""

from .audit import audit_login
from .auth import (
    AuthenticatorProvider,
    AuthResult,
    authenticate as unified_authenticate,
    authenticate_direct,
    authenticator_provider,
    get_authenticator,
)
from .proxy import GatewayProxyClient

__all__ = [
    "audit_login",
    "AuthResult",
    "unified_authenticate",
    "authenticate_direct",
    "get_authenticator",
    "authenticator_provider",
    "AuthenticatorProvider",
    "GatewayProxyClient",
]
