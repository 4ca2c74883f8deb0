"""
Engine Settings

Centralized configuration for the tournament engine.
All values are loaded from environment variables (a local .env is honoured).
"""
import os

from dotenv import load_dotenv

load_dotenv()


def get_bool_env(key: str, default: bool = False) -> bool:
    """Get a boolean value from environment variable."""
    value = os.getenv(key, str(default)).lower()
    return value in ('true', '1', 'yes', 'on', 'enabled')


def get_int_env(key: str, default: int) -> int:
    """Get a positive integer from environment variable."""
    raw = os.getenv(key)
    if raw is None or raw.strip() == "":
        return default
    value = int(raw)
    if value < 1:
        raise ValueError(f"{key} must be a positive integer, got {value}")
    return value


class Settings:
    """
    Runtime settings for the weekly cycles.

    Values are read once at import; tests override them with
    monkeypatch.setattr(Settings, ...).
    """

    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./storysquad.db")
    SQL_ECHO: bool = get_bool_env("SQL_ECHO", False)
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Bracket shape
    MATCHUPS_PER_SQUAD: int = get_int_env("MATCHUPS_PER_SQUAD", 4)

    # Points credited to the winning team and squad for each resolved faceoff
    FACEOFF_WIN_CREDIT: int = get_int_env("FACEOFF_WIN_CREDIT", 10)

    # Clustering
    SQUAD_SIZE: int = get_int_env("SQUAD_SIZE", 4)
    TEAM_SIZE: int = get_int_env("TEAM_SIZE", 2)

    @classmethod
    def as_dict(cls) -> dict:
        """Snapshot of the current settings (database URL credentials masked)."""
        url = cls.DATABASE_URL
        if "@" in url:
            scheme, _, rest = url.partition("://")
            url = f"{scheme}://***@{rest.split('@', 1)[1]}"
        return {
            "DATABASE_URL": url,
            "SQL_ECHO": cls.SQL_ECHO,
            "LOG_LEVEL": cls.LOG_LEVEL,
            "MATCHUPS_PER_SQUAD": cls.MATCHUPS_PER_SQUAD,
            "FACEOFF_WIN_CREDIT": cls.FACEOFF_WIN_CREDIT,
            "SQUAD_SIZE": cls.SQUAD_SIZE,
            "TEAM_SIZE": cls.TEAM_SIZE,
        }
