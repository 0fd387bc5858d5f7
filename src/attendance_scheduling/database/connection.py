from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator, Optional

import mysql.connector
from mysql.connector import errorcode

from ..core.exceptions import TransactionConflict

logger = logging.getLogger(__name__)


@dataclass
class DBConfig:
    host: str
    port: int
    user: str
    password: str
    database: str
    isolation_level: str = "SERIALIZABLE"


class DatabaseConnection:
    """Singleton-like DB connection factory with a per-thread transaction scope.

    Outside ``atomic()`` every repository call gets a short-lived connection
    and commits on its own. Inside ``atomic()`` all repository calls made on
    the same thread share one connection and one transaction.
    """

    _instance: Optional["DatabaseConnection"] = None

    def __init__(self, config: DBConfig):
        self._config = config
        self._local = threading.local()

    @classmethod
    def get_instance(cls, config: DBConfig) -> "DatabaseConnection":
        if cls._instance is None:
            cls._instance = DatabaseConnection(config)
        return cls._instance

    def connect(self):
        return mysql.connector.connect(
            host=self._config.host,
            port=int(self._config.port),
            user=self._config.user,
            password=self._config.password,
            database=self._config.database,
        )

    def current(self) -> Optional[Any]:
        """Connection of the transaction bound to this thread, if any."""
        return getattr(self._local, "conn", None)

    @contextmanager
    def atomic(self) -> Iterator[Any]:
        active = self.current()
        if active is not None:
            # Nested scope joins the outer transaction.
            yield active
            return

        conn = self.connect()
        try:
            conn.start_transaction(isolation_level=self._config.isolation_level)
            self._local.conn = conn
            try:
                yield conn
            except mysql.connector.Error as exc:
                conn.rollback()
                if getattr(exc, "errno", None) == errorcode.ER_LOCK_DEADLOCK:
                    logger.warning("Transaction rolled back as deadlock victim: %s", exc)
                    raise TransactionConflict("The request collided with a concurrent update, please retry") from exc
                raise
            except Exception:
                conn.rollback()
                raise
            conn.commit()
        finally:
            self._local.conn = None
            conn.close()
