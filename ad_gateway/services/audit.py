from __future__ import annotations

import logging

log = logging.getLogger("ad_gateway.audit")


def audit_login(
    username: str,
    auth_type: str,
    success: bool,
    ip: str,
    ua: str,
    result_code: str,
    details: str = "",
) -> None:
    """Одна строка аудита на каждое решение о входе. Пароль сюда не попадает никогда."""
    log.info(
        "login user=%r type=%s success=%s ip=%s ua=%r code=%s details=%r",
        username,
        auth_type,
        success,
        ip,
        ua[:256],
        result_code,
        details[:512],
    )
