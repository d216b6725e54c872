"""Настройка логирования приложения.

Файлы логов хранятся в директории LOG_DIR (по умолчанию `data/logs`
относительно CWD), организованы по дате через TimedRotatingFileHandler.

- Ротация: ежедневно (midnight).
- Хранение: настраивается через LOG_RETENTION_DAYS (по умолчанию 30).
- Уровень: настраивается через LOG_LEVEL (по умолчанию INFO).
"""
from __future__ import annotations

import glob
import logging
import os
import time
from logging.handlers import TimedRotatingFileHandler

_LOG_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s"
_LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Отслеживаем установленные handlers, чтобы при повторном вызове удалять старые.
_file_handler: logging.Handler | None = None
_console_handler: logging.Handler | None = None


def _ensure_log_dir(log_dir: str) -> str:
    path = log_dir if os.path.isabs(log_dir) else os.path.join(os.getcwd(), log_dir)
    os.makedirs(path, exist_ok=True)
    return path


def setup_logging(
    level: str = "INFO",
    retention_days: int = 30,
    log_dir: str = "data/logs",
) -> None:
    """Настраивает корневой логгер приложения.

    - Файловый handler: ротация по дате.
    - Консольный handler: для docker logs / stdout.
    - Уровень применяется ко всем.
    """
    global _file_handler, _console_handler

    level_str = (level or "INFO").strip().upper()
    if level_str not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        level_str = "INFO"
    log_level = getattr(logging, level_str, logging.INFO)

    retention_days = max(1, min(365, int(retention_days or 30)))

    root = logging.getLogger()

    if _file_handler and _file_handler in root.handlers:
        root.removeHandler(_file_handler)
        _file_handler.close()
    if _console_handler and _console_handler in root.handlers:
        root.removeHandler(_console_handler)

    path = _ensure_log_dir(log_dir)
    log_file = os.path.join(path, "app.log")

    formatter = logging.Formatter(_LOG_FORMAT, datefmt=_LOG_DATE_FORMAT)

    fh = TimedRotatingFileHandler(
        log_file,
        when="midnight",
        interval=1,
        backupCount=retention_days,
        encoding="utf-8",
        utc=True,
    )
    fh.suffix = "%Y-%m-%d"
    fh.setLevel(log_level)
    fh.setFormatter(formatter)
    _file_handler = fh

    ch = logging.StreamHandler()
    ch.setLevel(log_level)
    ch.setFormatter(formatter)
    _console_handler = ch

    root.setLevel(log_level)
    root.addHandler(fh)
    root.addHandler(ch)

    _cleanup_old_logs(path, retention_days)

    # Подавляем слишком шумные логгеры (ldap3 на DEBUG пишет весь обмен, включая bind)
    for name in ("uvicorn.access", "httpcore", "httpx", "ldap3"):
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    logging.getLogger("ad_gateway").info(
        "Логирование настроено: уровень=%s, хранение=%d дней, каталог=%s",
        level_str, retention_days, path,
    )


def _cleanup_old_logs(log_dir: str, retention_days: int) -> None:
    """Удаляет файлы логов старше retention_days."""
    cutoff = time.time() - (retention_days * 86400)
    for f in glob.glob(os.path.join(log_dir, "app.log.*")):
        try:
            if os.path.getmtime(f) < cutoff:
                os.remove(f)
        except OSError:
            pass
