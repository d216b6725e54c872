"""
Test doubles for the directory.

FakeDirectory is an in-memory directory exposing the small slice of the
ldap3.Connection API the authenticator uses (open/start_tls/bind/search/
entries/result/unbind). Every connection it hands out is recorded so tests
can assert that each one was released exactly once.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

from ldap3.core.exceptions import LDAPSocketOpenError, LDAPSocketReceiveError

from ad_gateway.settings import DirectoryConfig

SERVICE_DN = "CORP\\svc-ldap"
SERVICE_PASSWORD = "svc-secret"

_TERM = re.compile(r"\((\w+)=([^()]*)\)")


def make_config(**overrides: Any) -> DirectoryConfig:
    """Build a DirectoryConfig from field names (mapped onto their env aliases)."""
    values: Dict[str, Any] = {
        "url": "ldaps://dc01.corp.local:636",
        "base_dn": "DC=corp,DC=local",
        # doubled backslash, as it usually arrives from .env files
        "bind_dn": "CORP\\\\svc-ldap",
        "bind_password": SERVICE_PASSWORD,
        "domain_suffix": "corp.local",
        "alt_domain_suffix": "",
        "retry_attempts": 4,
        "retry_delay_ms": 1000,
        "connect_timeout_ms": 5000,
    }
    values.update(overrides)
    fields = DirectoryConfig.model_fields
    return DirectoryConfig(**{(fields[k].alias or k): v for k, v in values.items()})


class FakeEntry:
    def __init__(self, dn: str, attrs: Dict[str, str], expose_dn: bool = True) -> None:
        self.entry_dn = dn if expose_dn else ""
        self.entry_attributes_as_dict = {k: [v] for k, v in attrs.items()}
        self.entry_attributes_as_dict["distinguishedName"] = [dn]


class FakeConnection:
    """Mirrors ldap3: the bind identity and the SIMPLE/ANONYMOUS mode are fixed
    when the connection is created; assigning `user`/`password` later changes
    nothing on the wire."""

    def __init__(self, directory: "FakeDirectory", user: Optional[str], password: Optional[str]) -> None:
        self.directory = directory
        self.user = user
        self.password = password
        self.authentication = "SIMPLE" if user else "ANONYMOUS"
        self._credentials = (user or "", password or "") if user else ("", "")
        self.bound_as: Optional[str] = None
        self.result: Dict[str, Any] = {}
        self.entries: List[FakeEntry] = []
        self.opened = False
        self.unbind_calls = 0
        self.domain_hint: Optional[str] = None

    def open(self) -> None:
        d = self.directory
        d.open_calls += 1
        if d.fail_opens > 0:
            d.fail_opens -= 1
            raise LDAPSocketOpenError("socket connection error while opening: timed out")
        self.opened = True

    def start_tls(self) -> bool:
        self.directory.start_tls_calls += 1
        return True

    def bind(self) -> bool:
        d = self.directory
        user, password = self._credentials
        d.binds.append(user)
        if self.authentication == "ANONYMOUS":
            # AD принимает анонимный bind, но поиск на таком соединении ничего не видит
            self.result = {"result": 0, "description": "success"}
            return True
        expected = d.accounts.get(user)
        ok = expected is not None and bool(password) and expected == password
        self.result = {"result": 0 if ok else 49, "description": "success" if ok else "invalidCredentials"}
        if ok:
            self.bound_as = user
        return ok

    def search(self, search_base, search_filter, search_scope=None, attributes=None, size_limit=0) -> bool:
        d = self.directory
        d.searches.append(search_filter)
        if d.search_transport_error:
            raise LDAPSocketReceiveError("connection reset by peer")
        terms = _TERM.findall(search_filter)
        for _, value in terms:
            if "@" in value and self.domain_hint is None:
                self.domain_hint = value.rsplit("@", 1)[1].lower()
        visible = [] if self.bound_as is None else [
            e for e in d.entries if not d.scoped or e["domain"] == self.domain_hint
        ]
        matches = [
            e for e in visible
            if any(e["attrs"].get(attr, "").lower() == value.lower() for attr, value in terms)
        ]
        self.entries = [FakeEntry(e["dn"], e["attrs"], e.get("expose_dn", True)) for e in matches]
        self.result = {"result": 0, "description": "success"}
        return bool(self.entries)

    def unbind(self) -> bool:
        self.unbind_calls += 1
        return True


class FakeDirectory:
    """In-memory directory + connection factory that counts every handle.

    With `scoped=True` an entry is only visible on connections whose searches
    target its domain (the first principal-name term seen on that connection),
    i.e. a forest whose domains are separate naming contexts.
    """

    def __init__(self, scoped: bool = False) -> None:
        self.scoped = scoped
        self.accounts: Dict[str, str] = {SERVICE_DN: SERVICE_PASSWORD}
        self.entries: List[Dict[str, Any]] = []
        self.connections: List[FakeConnection] = []
        self.binds: List[str] = []
        self.searches: List[str] = []
        self.open_calls = 0
        self.start_tls_calls = 0
        self.fail_opens = 0
        self.search_transport_error = False

    def add_user(self, sam: str, password: str, suffix: str, dn: Optional[str] = None, expose_dn: bool = True) -> str:
        dn = dn or f"CN={sam},OU=Users,DC={suffix.split('.')[0]},DC={suffix.split('.')[-1]}"
        self.entries.append(
            {
                "dn": dn,
                "domain": suffix.lower(),
                "expose_dn": expose_dn,
                "attrs": {
                    "sAMAccountName": sam,
                    "userPrincipalName": f"{sam}@{suffix}",
                    "mail": f"{sam}@mail.{suffix}",
                    "cn": sam,
                },
            }
        )
        self.accounts[dn] = password
        return dn

    def factory(self, user: Optional[str], password: Optional[str]) -> FakeConnection:
        conn = FakeConnection(self, user, password)
        self.connections.append(conn)
        return conn

    def all_released_once(self) -> bool:
        return all(c.unbind_calls == 1 for c in self.connections)


