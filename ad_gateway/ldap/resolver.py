from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Iterator, Tuple

from ldap3 import SUBTREE
from ldap3.core.exceptions import LDAPCommunicationError, LDAPException

from .connection import ConnectionSupervisor, release
from .errors import ConnectionFailure, ServiceBindRejected, UserNotFound
from .models import ResolvedIdentity
from .utils import bind_dn_forms, escape_ldap_filter_value, first_success, principal_name

if TYPE_CHECKING:
    from ..settings import DirectoryConfig

log = logging.getLogger(__name__)

USER_ATTRIBUTES = ["distinguishedName", "userPrincipalName", "cn", "mail", "sAMAccountName", "displayName"]


def build_search_filters(username: str, domain_suffix: str) -> list[str]:
    """Filters in the order they are tried: UPN, sAMAccountName, mail, then an OR of all three."""
    login = escape_ldap_filter_value(username)
    upn = principal_name(login, escape_ldap_filter_value(domain_suffix))
    by_upn = f"(userPrincipalName={upn})"
    by_sam = f"(sAMAccountName={login})"
    by_mail = f"(mail={upn})"
    return [by_upn, by_sam, by_mail, f"(|{by_upn}{by_sam}{by_mail})"]


def entry_dn(entry: Any) -> str:
    """DN записи: сначала entry_dn, затем атрибут distinguishedName."""
    dn = str(getattr(entry, "entry_dn", "") or "").strip()
    if dn and "=" in dn:
        return dn
    attrs = getattr(entry, "entry_attributes_as_dict", None) or {}
    val = attrs.get("distinguishedName") or ""
    if isinstance(val, (list, tuple)):
        val = val[0] if val else ""
    return str(val or "").strip()


class CredentialResolver:
    """Locates a user's DN with the service account."""

    def __init__(self, cfg: "DirectoryConfig", supervisor: ConnectionSupervisor) -> None:
        self.cfg = cfg
        self.supervisor = supervisor

    def resolve(self, username: str, domain_suffix: str) -> ResolvedIdentity:
        with self.admin_session() as (_, conn):
            return self.find_identity(conn, username, domain_suffix)

    def find_identity(self, conn: Any, username: str, domain_suffix: str) -> ResolvedIdentity:
        """Search on a connection already bound as the service account."""
        filters = build_search_filters(username, domain_suffix)
        try:
            flt, dn = first_success(
                filters,
                lambda f: self._search(conn, f),
                recoverable=(UserNotFound,),
            )
        except UserNotFound as e:
            raise UserNotFound(f"Пользователь {username!r} не найден для домена {domain_suffix}", cause=e) from e

        log.info("Пользователь %r найден (%s): %s", username, flt, dn)
        return ResolvedIdentity(dn=dn, domain_suffix=domain_suffix, search_filter=flt)

    @contextmanager
    def admin_session(self) -> Iterator[Tuple[str, Any]]:
        """Connection bound as the service account: `(accepted DN form, connection)`.

        Each DN form gets its own connection created with that form and the
        service password. A rejected form moves on to the next one; a transport
        failure ends the attempt immediately.
        """
        try:
            dn, conn = first_success(
                bind_dn_forms(self.cfg.bind_dn),
                self._service_connection,
                recoverable=(ServiceBindRejected,),
                on_failure=lambda form, e: log.info("%s, пробуем следующий формат", e),
            )
        except ServiceBindRejected as e:
            raise ConnectionFailure("Все варианты служебного bind не удались", cause=e) from e
        try:
            yield dn, conn
        finally:
            release(conn)

    def _service_connection(self, dn: str) -> Any:
        conn = self.supervisor.connect(dn, self.cfg.bind_password)
        try:
            ok = bool(conn.bind())
        except LDAPCommunicationError as e:
            release(conn)
            raise ConnectionFailure(f"Служебный bind {dn!r} прерван: {e}", cause=e) from e
        except LDAPException as e:
            release(conn)
            raise ServiceBindRejected(f"Служебный bind {dn!r}: {e}", cause=e) from e
        if not ok:
            res = dict(conn.result or {})
            release(conn)
            raise ServiceBindRejected(f"Служебный bind {dn!r} отклонён: {res.get('description', '')}")
        log.debug("Служебный bind выполнен: %s", dn)
        return conn

    def _search(self, conn: Any, flt: str) -> str:
        try:
            ok = conn.search(
                search_base=self.cfg.base_dn,
                search_filter=flt,
                search_scope=SUBTREE,
                attributes=USER_ATTRIBUTES,
                size_limit=2,
            )
        except LDAPCommunicationError as e:
            # Обрыв транспорта прерывает весь суффикс, а не только фильтр.
            raise ConnectionFailure(f"Поиск {flt} прерван: {e}", cause=e) from e
        except LDAPException as e:
            log.debug("Поиск %s завершился ошибкой: %s", flt, e)
            raise UserNotFound(f"Поиск {flt} не удался", cause=e) from e

        entries = list(conn.entries) if ok else []
        if not entries:
            log.debug("По фильтру %s ничего не найдено", flt)
            raise UserNotFound(f"Нет записей по фильтру {flt}")
        if len(entries) > 1:
            log.warning("Фильтр %s неоднозначен, берём первую запись", flt)

        dn = entry_dn(entries[0])
        if not dn:
            raise UserNotFound(f"Запись по фильтру {flt} без DN")
        return dn
