from __future__ import annotations

from typing import Callable, Iterable, Optional, Tuple, Type, TypeVar

C = TypeVar("C")
R = TypeVar("R")


def escape_ldap_filter_value(value: str) -> str:
    """RFC 4515 escaping for LDAP filter values."""
    out: list[str] = []
    for ch in value:
        if ch == "\\":
            out.append("\\5c")
        elif ch == "*":
            out.append("\\2a")
        elif ch == "(":
            out.append("\\28")
        elif ch == ")":
            out.append("\\29")
        elif ch == "\x00":
            out.append("\\00")
        else:
            out.append(ch)
    return "".join(out)


def normalize_bind_dn(bind_dn: str) -> str:
    """Collapse doubled backslashes (`CORP\\\\svc` from .env files -> `CORP\\svc`)."""
    return (bind_dn or "").replace("\\\\", "\\")


def bind_dn_forms(bind_dn: str) -> list[str]:
    """Textual forms of the service identity, in the order they are tried."""
    forms: list[str] = []
    for dn in (normalize_bind_dn(bind_dn), bind_dn or ""):
        if dn and dn not in forms:
            forms.append(dn)
    return forms


def principal_name(username: str, domain_suffix: str) -> str:
    d = (domain_suffix or "").strip().strip(".")
    return f"{username}@{d}" if d else username


def first_success(
    candidates: Iterable[C],
    attempt: Callable[[C], R],
    *,
    recoverable: Tuple[Type[BaseException], ...],
    on_failure: Optional[Callable[[C, BaseException], None]] = None,
) -> Tuple[C, R]:
    """Пробует кандидатов по порядку, возвращает первый успешный `(candidate, result)`.

    Исключения из `recoverable` переводят к следующему кандидату, остальные
    пробрасываются сразу. Если все кандидаты исчерпаны, пробрасывается
    последнее пойманное исключение.
    """
    last: BaseException | None = None
    for candidate in candidates:
        try:
            return candidate, attempt(candidate)
        except recoverable as e:
            last = e
            if on_failure is not None:
                on_failure(candidate, e)
    if last is None:
        raise LookupError("no candidates to try")
    raise last
