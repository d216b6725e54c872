from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List

GENERIC_FAILURE_MESSAGE = "Неверный логин или пароль."
SUCCESS_MESSAGE = "Вход выполнен."


class AuthStatus(str, Enum):
    SUCCESS = "success"
    INVALID_CREDENTIALS = "invalid_credentials"
    USER_NOT_FOUND = "user_not_found"
    CONNECTION_FAILURE = "connection_failure"
    CONFIGURATION_ERROR = "configuration_error"


@dataclass(frozen=True)
class ResolvedIdentity:
    """DN, найденный администратором для логина под конкретным суффиксом."""

    dn: str
    domain_suffix: str
    search_filter: str

    def is_valid(self) -> bool:
        dn = (self.dn or "").strip()
        if not dn or "=" not in dn:
            return False
        # Каждый RDN должен иметь вид attr=value.
        return all("=" in part for part in _split_rdns(dn))


@dataclass(frozen=True)
class SuffixAttempt:
    """One row of the diagnostic trail: what happened for a single suffix."""

    domain_suffix: str
    status: AuthStatus
    detail: str = ""


@dataclass
class AuthOutcome:
    status: AuthStatus
    cause: str = ""
    identity: ResolvedIdentity | None = None
    attempts: List[SuffixAttempt] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.status is AuthStatus.SUCCESS

    def public(self) -> dict:
        """Ответ для внешнего вызывающего: стадия отказа не раскрывается."""
        if self.success:
            return {"success": True, "message": SUCCESS_MESSAGE}
        return {"success": False, "error": GENERIC_FAILURE_MESSAGE}


def _split_rdns(dn: str) -> list[str]:
    parts: list[str] = []
    cur: list[str] = []
    esc = False
    for ch in dn:
        if esc:
            cur.append(ch)
            esc = False
            continue
        if ch == "\\":
            cur.append(ch)
            esc = True
            continue
        if ch == ",":
            parts.append("".join(cur).strip())
            cur = []
            continue
        cur.append(ch)
    parts.append("".join(cur).strip())
    return parts
