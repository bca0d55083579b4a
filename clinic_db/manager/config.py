from __future__ import annotations
import os
from typing import Optional, Mapping, Callable, Any, List
from .exceptions import ConfigError

PACKAGE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
PROJECT_ROOT = os.path.dirname(PACKAGE_DIR)

# Consulted only when it exists on disk; kept for older installations.
LEGACY_DB_PATH = r"C:\Users\LENOVO\Documents\homeopathy.db"
DEFAULT_DB_PATH = os.path.join(PROJECT_ROOT, "data", "database.sqlite")
DEFAULT_MIGRATIONS_DIR = os.path.join(PACKAGE_DIR, "migrations")


def _env_value(environ: Mapping[str, str], name: str) -> Optional[str]:
    value = environ.get(name)
    if value is None or value.strip() == "":
        return None
    return value.strip()


def _env_number(environ: Mapping[str, str], name: str, cast: Callable[[str], Any], default: Any) -> Any:
    raw = _env_value(environ, name)
    if raw is None:
        return default
    try:
        value = cast(raw)
    except ValueError as e:
        raise ConfigError(f"Invalid value for {name}: {raw!r}") from e
    if value < 0:
        raise ConfigError(f"{name} must be non-negative, got {raw!r}")
    return value


class DatabaseConfig:
    """
    Settings for the database core.

    Attributes:
        db_file (Optional[str]): Explicit database path. Wins over everything else.
        fallback_path (Optional[str]): Legacy location, used only if the file exists.
        default_path (str): Location used when neither of the above applies.
        migrations_dir (str): Directory scanned for migration files.
        busy_timeout_ms (int): Engine busy timeout, also used as the driver timeout.
        cache_size (int): ``PRAGMA cache_size`` value in pages.
        synchronous (str): ``PRAGMA synchronous`` level.
        journal_mode (str): ``PRAGMA journal_mode`` value.
        temp_store (str): ``PRAGMA temp_store`` location.
        foreign_keys (bool): Whether foreign-key enforcement is switched on.
        max_retries (int): Busy retries per statement.
        retry_base_delay (float): Seconds multiplied by the attempt number between retries.
        connect_retry_delay (float): Seconds to wait before reopening after a busy open.
        connect_retries (Optional[int]): Bound on busy reopen attempts. None means unbounded.
        track_migrations (bool): Record applied migrations so restarts skip them.
    """
    __slots__ = (
        "db_file",
        "fallback_path",
        "default_path",
        "migrations_dir",
        "busy_timeout_ms",
        "cache_size",
        "synchronous",
        "journal_mode",
        "temp_store",
        "foreign_keys",
        "max_retries",
        "retry_base_delay",
        "connect_retry_delay",
        "connect_retries",
        "track_migrations",
    )

    def __init__(
        self,
        db_file: Optional[str] = None,
        *,
        fallback_path: Optional[str] = LEGACY_DB_PATH,
        default_path: str = DEFAULT_DB_PATH,
        migrations_dir: str = DEFAULT_MIGRATIONS_DIR,
        busy_timeout_ms: int = 60000,
        cache_size: int = 10000,
        synchronous: str = "NORMAL",
        journal_mode: str = "WAL",
        temp_store: str = "MEMORY",
        foreign_keys: bool = True,
        max_retries: int = 3,
        retry_base_delay: float = 0.5,
        connect_retry_delay: float = 1.0,
        connect_retries: Optional[int] = None,
        track_migrations: bool = True,
    ) -> None:
        self.db_file = db_file
        self.fallback_path = fallback_path
        self.default_path = default_path
        self.migrations_dir = migrations_dir
        self.busy_timeout_ms = busy_timeout_ms
        self.cache_size = cache_size
        self.synchronous = synchronous
        self.journal_mode = journal_mode
        self.temp_store = temp_store
        self.foreign_keys = foreign_keys
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.connect_retry_delay = connect_retry_delay
        self.connect_retries = connect_retries
        self.track_migrations = track_migrations

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> DatabaseConfig:
        """
        Build a config from environment variables.

        Recognised variables: ``DB_FILE``, ``DB_FALLBACK_FILE``, ``DB_MIGRATIONS_DIR``,
        ``DB_BUSY_TIMEOUT_MS``, ``DB_MAX_RETRIES``, ``DB_RETRY_DELAY``,
        ``DB_CONNECT_RETRY_DELAY`` and ``DB_CONNECT_RETRIES``. Blank values are
        treated as unset. Keyword overrides win over the environment.
        """
        environ = os.environ if environ is None else environ
        settings = {
            "db_file": _env_value(environ, "DB_FILE"),
            "fallback_path": _env_value(environ, "DB_FALLBACK_FILE") or LEGACY_DB_PATH,
            "migrations_dir": _env_value(environ, "DB_MIGRATIONS_DIR") or DEFAULT_MIGRATIONS_DIR,
            "busy_timeout_ms": _env_number(environ, "DB_BUSY_TIMEOUT_MS", int, 60000),
            "max_retries": _env_number(environ, "DB_MAX_RETRIES", int, 3),
            "retry_base_delay": _env_number(environ, "DB_RETRY_DELAY", float, 0.5),
            "connect_retry_delay": _env_number(environ, "DB_CONNECT_RETRY_DELAY", float, 1.0),
            "connect_retries": _env_number(environ, "DB_CONNECT_RETRIES", int, None),
        }
        settings.update(overrides)
        return cls(**settings)

    def resolve_path(self) -> str:
        """Pick the database file: explicit override, existing fallback, then default."""
        if self.db_file and self.db_file.strip():
            return self.db_file
        if self.fallback_path and os.path.exists(self.fallback_path):
            return self.fallback_path
        return self.default_path

    def pragmas(self) -> List[str]:
        """PRAGMA statements applied, in order, every time the database is opened."""
        return [
            f"PRAGMA foreign_keys = {'ON' if self.foreign_keys else 'OFF'}",
            f"PRAGMA journal_mode = {self.journal_mode}",
            f"PRAGMA busy_timeout = {int(self.busy_timeout_ms)}",
            f"PRAGMA synchronous = {self.synchronous}",
            f"PRAGMA cache_size = {int(self.cache_size)}",
            f"PRAGMA temp_store = {self.temp_store}",
        ]

    def __repr__(self):
        fields = ", ".join(f"{name}={getattr(self, name)!r}" for name in self.__slots__)
        return f"DatabaseConfig({fields})"
