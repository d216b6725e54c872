from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Callable, List

from ldap3 import SYNC

from .connection import ConnectionFactory, ConnectionSupervisor
from .errors import ConfigurationError, ConnectionFailure, InvalidCredentials, UserNotFound
from .models import AuthOutcome, AuthStatus, ResolvedIdentity, SuffixAttempt
from .resolver import CredentialResolver
from .utils import first_success
from .verifier import BindVerifier

if TYPE_CHECKING:
    from ..settings import DirectoryConfig

log = logging.getLogger(__name__)

_RECOVERABLE = (UserNotFound, InvalidCredentials, ConnectionFailure)


def _status_of(e: BaseException) -> AuthStatus:
    if isinstance(e, InvalidCredentials):
        return AuthStatus.INVALID_CREDENTIALS
    if isinstance(e, UserNotFound):
        return AuthStatus.USER_NOT_FOUND
    return AuthStatus.CONNECTION_FAILURE


def _summarize(attempts: List[SuffixAttempt]) -> AuthStatus:
    """Самый информативный статус среди неудачных суффиксов (только для диагностики)."""
    statuses = {a.status for a in attempts}
    for st in (AuthStatus.INVALID_CREDENTIALS, AuthStatus.CONNECTION_FAILURE):
        if st in statuses:
            return st
    return AuthStatus.USER_NOT_FOUND


class DirectoryAuthenticator:
    """Аутентификация логин/пароль против LDAP/AD.

    Для каждого доменного суффикса по очереди:
    подключение -> служебный bind -> поиск DN -> unbind -> подключение -> bind
    пользователя -> unbind. Побеждает первый суффикс, на котором прошли и поиск,
    и bind пользователя.
    """

    def __init__(
        self,
        cfg: "DirectoryConfig",
        endpoint: str | None = None,
        connection_factory: ConnectionFactory | None = None,
        sleep: Callable[[float], None] = time.sleep,
        client_strategy: str = SYNC,
    ) -> None:
        self.cfg = cfg
        self.supervisor = ConnectionSupervisor(cfg, endpoint, connection_factory, sleep, client_strategy)
        self.resolver = CredentialResolver(cfg, self.supervisor)
        self.verifier = BindVerifier(cfg, self.supervisor)

    def authenticate(self, username: str, password: str) -> AuthOutcome:
        username = (username or "").strip()
        try:
            self.cfg.validate_for_auth(self.supervisor.endpoint)
        except ConfigurationError as e:
            log.error("LDAP не настроен: %s", e.message)
            return AuthOutcome(AuthStatus.CONFIGURATION_ERROR, cause=e.message)

        if not username or not password:
            return AuthOutcome(AuthStatus.INVALID_CREDENTIALS, cause="Пустой логин или пароль")

        attempts: List[SuffixAttempt] = []

        def try_suffix(suffix: str) -> ResolvedIdentity:
            log.info("Аутентификация %r, домен %s", username, suffix)
            identity = self.resolver.resolve(username, suffix)
            if not identity.is_valid():
                raise UserNotFound(f"Некорректный DN из поиска: {identity.dn!r}")
            self.verifier.verify(identity.dn, password)
            return identity

        def record(suffix: str, e: BaseException) -> None:
            st = _status_of(e)
            attempts.append(SuffixAttempt(domain_suffix=suffix, status=st, detail=str(e)))
            log.warning("Домен %s: %s (%s)", suffix, st.value, e)

        try:
            suffix, identity = first_success(
                self.cfg.domain_suffixes,
                try_suffix,
                recoverable=_RECOVERABLE,
                on_failure=record,
            )
        except ConfigurationError as e:
            log.error("LDAP не настроен: %s", e.message)
            return AuthOutcome(AuthStatus.CONFIGURATION_ERROR, cause=e.message, attempts=attempts)
        except _RECOVERABLE as e:
            st = _summarize(attempts)
            log.warning("Аутентификация %r не удалась по всем доменам (%s)", username, st.value)
            return AuthOutcome(st, cause=str(e), attempts=attempts)

        attempts.append(SuffixAttempt(domain_suffix=suffix, status=AuthStatus.SUCCESS))
        log.info("Аутентификация %r успешна (%s)", username, identity.dn)
        return AuthOutcome(AuthStatus.SUCCESS, identity=identity, attempts=attempts)
