from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import mysql.connector

from ..core.exceptions import DependencyUnavailableError

DEFAULT_DATABASE = "hr_workflow"


@dataclass(frozen=True)
class DBConfig:
    host: str
    port: int
    user: str
    password: str
    database: str
    connect_timeout: int = 10

    @classmethod
    def from_settings(cls, settings: dict) -> "DBConfig":
        """Build from a settings-module ``DB_CONFIG`` dict; missing keys fall back to local defaults."""
        return cls(
            host=str(settings.get("host", "localhost")),
            port=int(settings.get("port", 3306)),
            user=str(settings.get("user", "root")),
            password=str(settings.get("password", "")),
            database=str(settings.get("database", DEFAULT_DATABASE)),
            connect_timeout=int(settings.get("connect_timeout", 10)),
        )


class DatabaseConnection:
    """Connection factory for the request store.

    Every repository call opens its own short-lived connection; that connection
    is the transaction boundary (see ``mysql_base.db_cursor``).
    """

    def __init__(self, config: DBConfig):
        self._config = config

    @property
    def database(self) -> str:
        return self._config.database

    def connect(self, *, database: Optional[str] = "", autocommit: bool = False):
        # database="" means the configured schema, None means no schema selected
        target = self._config.database if database == "" else database
        kwargs = dict(
            host=self._config.host,
            port=self._config.port,
            user=self._config.user,
            password=self._config.password,
            connection_timeout=self._config.connect_timeout,
            autocommit=autocommit,
            charset="utf8mb4",
            use_pure=True,
        )
        if target:
            kwargs["database"] = target
        try:
            return mysql.connector.connect(**kwargs)
        except (mysql.connector.InterfaceError, mysql.connector.OperationalError) as exc:
            raise DependencyUnavailableError(f"Database unavailable: {exc}") from exc
