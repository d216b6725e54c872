from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ldap3.core.exceptions import LDAPCommunicationError, LDAPException

from .connection import ConnectionSupervisor
from .errors import ConnectionFailure, InvalidCredentials
from .models import AuthStatus

if TYPE_CHECKING:
    from ..settings import DirectoryConfig

log = logging.getLogger(__name__)


class BindVerifier:
    """Единственный bind от имени пользователя. Отказ каталога окончателен, без ретраев."""

    def __init__(self, cfg: "DirectoryConfig", supervisor: ConnectionSupervisor) -> None:
        self.cfg = cfg
        self.supervisor = supervisor

    def verify(self, user_dn: str, password: str) -> AuthStatus:
        # Пустой пароль в simple bind = анонимный bind, который AD принимает.
        if not password:
            raise InvalidCredentials("Пустой пароль")

        with self.supervisor.session(user_dn, password) as conn:
            try:
                ok = bool(conn.bind())
            except LDAPCommunicationError as e:
                raise ConnectionFailure(f"Bind пользователя прерван: {e}", cause=e) from e
            except LDAPException as e:
                raise InvalidCredentials(f"Bind пользователя отклонён: {e}", cause=e) from e
            if not ok:
                res = dict(conn.result or {})
                raise InvalidCredentials(f"Bind пользователя отклонён: {res.get('description', '')}")

        log.debug("Bind пользователя выполнен: %s", user_dn)
        return AuthStatus.SUCCESS
