"""
config.py
---------
Central configuration module. Loads environment variables (optionally
from a .env file) and exposes them as typed constants plus a `DBConfig`
object that the connection layer is built from.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv
from psycopg2.extensions import make_dsn

load_dotenv()


def _env(key: str, default: str) -> str:
    """Return the environment value for `key`, or `default` when unset or empty."""
    value = os.getenv(key)
    return value if value else default


# ── PostgreSQL ────────────────────────────────────────────
DB_USER: str = _env("DB_USER", "postgres")
DB_PASSWORD: str = _env("DB_PASSWORD", "postgres")
DB_HOST: str = _env("DB_HOST", "localhost")
DB_PORT: int = int(_env("DB_PORT", "5433"))
DB_NAME: str = _env("DB_NAME", "postgres")
DB_SSLMODE: str = _env("DB_SSLMODE", "disable")
DB_SCHEMA: str = _env("DB_SCHEMA", "raw,analytics")

# ── Connection pool ───────────────────────────────────────
DB_MAX_OPEN_CONNS: int = int(_env("DB_MAX_OPEN_CONNS", "25"))
DB_MAX_IDLE_CONNS: int = int(_env("DB_MAX_IDLE_CONNS", "5"))
DB_CONN_MAX_LIFETIME: float = float(_env("DB_CONN_MAX_LIFETIME", "300"))
DB_PING_TIMEOUT: float = float(_env("DB_PING_TIMEOUT", "10"))
DB_STATEMENT_TIMEOUT_MS: int = int(_env("DB_STATEMENT_TIMEOUT_MS", "0"))

# ── Logging ───────────────────────────────────────────────
LOG_LEVEL: str = _env("LOG_LEVEL", "INFO").upper()


@dataclass
class DBConfig:
    """
    Connection settings for the tracker database.

    Attributes:
        user / password / host / port / name: libpq connection parameters.
        sslmode: libpq SSL mode (disable, require, verify-full, ...).
        schema: Comma-separated search_path applied to every connection.
        max_open_conns: Upper bound on simultaneously open connections.
        max_idle_conns: Connections kept open while idle.
        conn_max_lifetime: Seconds after which a connection is retired.
        ping_timeout: Seconds allowed for connecting and the liveness check.
        statement_timeout_ms: Server-side per-statement timeout (0 = none).
    """
    user: str = "postgres"
    password: str = "postgres"
    host: str = "localhost"
    port: int = 5433
    name: str = "postgres"
    sslmode: str = "disable"
    schema: str = "raw,analytics"
    max_open_conns: int = 25
    max_idle_conns: int = 5
    conn_max_lifetime: float = 300.0
    ping_timeout: float = 10.0
    statement_timeout_ms: int = 0

    @classmethod
    def from_env(cls) -> "DBConfig":
        """Build a config from the module-level environment constants."""
        return cls(
            user=DB_USER,
            password=DB_PASSWORD,
            host=DB_HOST,
            port=DB_PORT,
            name=DB_NAME,
            sslmode=DB_SSLMODE,
            schema=DB_SCHEMA,
            max_open_conns=DB_MAX_OPEN_CONNS,
            max_idle_conns=DB_MAX_IDLE_CONNS,
            conn_max_lifetime=DB_CONN_MAX_LIFETIME,
            ping_timeout=DB_PING_TIMEOUT,
            statement_timeout_ms=DB_STATEMENT_TIMEOUT_MS,
        )

    def _options(self) -> str:
        opts = [f"-c search_path={self.schema}"]
        if self.statement_timeout_ms > 0:
            opts.append(f"-c statement_timeout={self.statement_timeout_ms}")
        return " ".join(opts)

    def dsn(self) -> str:
        """Assemble a libpq key=value DSN."""
        return make_dsn(
            host=self.host,
            port=self.port,
            user=self.user,
            password=self.password,
            dbname=self.name,
            sslmode=self.sslmode,
            connect_timeout=max(1, int(self.ping_timeout)),
            options=self._options(),
        )

    def safe_dsn(self) -> str:
        """The DSN with the password masked, for log output."""
        return (
            f"host={self.host} port={self.port} user={self.user} "
            f"dbname={self.name} sslmode={self.sslmode} search_path={self.schema}"
        )
