from __future__ import annotations

import logging
import ssl
import time
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Callable, Iterator, Optional

from ldap3 import ANONYMOUS, NONE, SIMPLE, SYNC, Connection, Server, Tls
from ldap3.core.exceptions import LDAPException

from .errors import ConfigurationError, ConnectionFailure

if TYPE_CHECKING:
    from ..settings import DirectoryConfig

log = logging.getLogger(__name__)

# (user, password) -> ещё не открытое соединение
ConnectionFactory = Callable[[Optional[str], Optional[str]], Any]


def release(conn: Any) -> None:
    """Unbind a connection, tolerating one that never finished opening."""
    if conn is None:
        return
    try:
        conn.unbind()
    except (LDAPException, OSError) as e:
        log.debug("Ошибка unbind (игнорируется): %s", e)


class ConnectionSupervisor:
    """Opens directory connections with bounded retries and exponential backoff.

    Credentials are fixed when the connection is created: ldap3 chooses
    SIMPLE or ANONYMOUS authentication in `Connection.__init__`, so every
    identity gets its own connection.
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
        self.endpoint = (endpoint or cfg.url or "").strip()
        self.client_strategy = client_strategy
        self._sleep = sleep
        self._factory = connection_factory or self._default_factory
        self._server: Server | None = None

    @property
    def server(self) -> Server:
        # Строится при первом подключении: конфигурация к этому моменту уже проверена.
        if self._server is None:
            self._server = self._build_server()
        return self._server

    def _build_server(self) -> Server:
        tls_kwargs: dict[str, Any] = {
            "validate": ssl.CERT_REQUIRED if self.cfg.tls_reject_unauthorized else ssl.CERT_NONE,
        }
        # Свой CA имеет смысл только при включённой проверке.
        if self.cfg.tls_reject_unauthorized and self.cfg.ca_cert_file:
            tls_kwargs["ca_certs_file"] = self.cfg.ca_cert_file
        try:
            tls = Tls(**tls_kwargs)
            return Server(
                host=self.endpoint,
                use_ssl=self.endpoint.lower().startswith("ldaps://"),
                get_info=NONE,
                tls=tls,
                connect_timeout=self.cfg.connect_timeout_s,
            )
        except LDAPException as e:
            raise ConfigurationError(f"Некорректные параметры подключения к LDAP: {e}", cause=e) from e

    def _default_factory(self, user: str | None, password: str | None) -> Connection:
        return Connection(
            self.server,
            user=user,
            password=password,
            authentication=SIMPLE if user else ANONYMOUS,
            client_strategy=self.client_strategy,
            auto_bind=False,
            raise_exceptions=False,
            receive_timeout=self.cfg.connect_timeout_s,
        )

    def backoff_delay(self, attempt: int) -> float:
        """Delay in seconds before attempt `attempt + 1`."""
        return self.cfg.retry_delay_s * (2 ** (attempt - 1))

    def connect(self, user: str | None = None, password: str | None = None) -> Any:
        attempts = self.cfg.retry_attempts
        last: BaseException | None = None
        for attempt in range(1, attempts + 1):
            conn = None
            try:
                log.debug("Подключение к %s: попытка %d/%d", self.endpoint, attempt, attempts)
                conn = self._factory(user, password)
                conn.open()
                if self.cfg.starttls:
                    conn.start_tls()
                return conn
            except (LDAPException, OSError) as e:
                last = e
                log.warning("Попытка подключения %d/%d к %s не удалась: %s", attempt, attempts, self.endpoint, e)
                release(conn)
                if attempt < attempts:
                    delay = self.backoff_delay(attempt)
                    log.info("Повтор через %.2f с", delay)
                    self._sleep(delay)
        raise ConnectionFailure(
            f"Не удалось подключиться к {self.endpoint} за {attempts} попыток: {last}",
            cause=last,
        )

    @contextmanager
    def session(self, user: str | None = None, password: str | None = None) -> Iterator[Any]:
        conn = self.connect(user, password)
        try:
            yield conn
        finally:
            release(conn)
