"""Database settings for survey storage.

``DATABASE_URL`` wins when set; otherwise the URL is assembled from the
``PG_*`` variables.  The same settings yield a psycopg2 URL for Alembic and
an asyncpg URL for the runtime engine, plus pool sizing and SQL echo.
"""

import os
from dataclasses import dataclass

_SYNC_PREFIX = "postgresql://"
_ASYNC_PREFIX = "postgresql+asyncpg://"


@dataclass(frozen=True)
class DatabaseSettings:
    url: str
    pool_size: int = 5
    max_overflow: int = 10
    echo: bool = False

    @classmethod
    def from_env(cls) -> "DatabaseSettings":
        url = os.getenv("DATABASE_URL") or "{prefix}{user}:{password}@{host}:{port}/{db}".format(
            prefix=_SYNC_PREFIX,
            user=os.getenv("PG_USER", "survey"),
            password=os.getenv("PG_PASSWORD", "survey"),
            host=os.getenv("PG_HOST", "localhost"),
            port=os.getenv("PG_PORT", "5432"),
            db=os.getenv("PG_DATABASE", "survey"),
        )
        return cls(
            url=url,
            pool_size=int(os.getenv("PG_POOL_SIZE", "5")),
            max_overflow=int(os.getenv("PG_MAX_OVERFLOW", "10")),
            echo=os.getenv("SURVEY_DB_ECHO", "").lower() in ("1", "true", "yes"),
        )

    @property
    def sync_url(self) -> str:
        """psycopg2 URL; Alembic migrations run synchronously."""
        return self.url.replace(_ASYNC_PREFIX, _SYNC_PREFIX, 1)

    @property
    def async_url(self) -> str:
        if self.url.startswith(_SYNC_PREFIX):
            return self.url.replace(_SYNC_PREFIX, _ASYNC_PREFIX, 1)
        return self.url


def get_sync_url() -> str:
    return DatabaseSettings.from_env().sync_url


def get_async_url() -> str:
    return DatabaseSettings.from_env().async_url
