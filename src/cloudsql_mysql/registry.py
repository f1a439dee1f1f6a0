"""Registry of pooled connections, one per resolved connection URL."""

import logging
import threading
from collections.abc import Callable

import sqlalchemy as sa

from cloudsql_mysql.errors import ConnectionFailedError

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """Memoizes one SQLAlchemy engine per resolved connection URL.

    Engines live for as long as the registry: there is no eviction. Only the
    lookup-or-create step is locked, engines pool their own connections and are
    safe to share between threads.

    Args:
        engine_factory: Callable creating an engine from a URL and engine
            options such as `creator`. Defaults to `sqlalchemy.create_engine`.
    """

    def __init__(self, engine_factory: Callable[..., sa.Engine] | None = None):
        self._engine_factory = engine_factory or _create_engine
        self._engines: dict[str, sa.Engine] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._engines)

    def __contains__(self, url: str) -> bool:
        return url in self._engines

    def acquire(self, url: str, **engine_options) -> sa.Engine:
        """Return the engine for `url`, creating and probing it on first use.

        `engine_options` are only used when the engine is created; engines are
        memoized by `url` alone.

        Raises:
            ConnectionFailedError: if the engine cannot be created or cannot
                open a connection. Nothing is cached in that case.
        """
        with self._lock:
            engine = self._engines.get(url)
            if engine is not None:
                return engine

            engine = self._open(url, engine_options)
            self._engines[url] = engine
            return engine

    def _open(self, url: str, engine_options: dict) -> sa.Engine:
        try:
            engine = self._engine_factory(url, **engine_options)
        except (sa.exc.SQLAlchemyError, ImportError, TypeError, ValueError) as exc:
            raise ConnectionFailedError(f'Unable to create a connection pool: {exc}') from exc

        logger.info('Opening connection pool to %r', engine.url)
        try:
            with engine.connect():
                pass
        # Connection creators raise their own error types, e.g. for missing credentials
        except Exception as exc:
            engine.dispose()
            raise ConnectionFailedError(f'Unable to connect to the Cloud SQL MySQL instance: {exc}') from exc

        return engine


def _create_engine(url: str, **engine_options) -> sa.Engine:
    return sa.create_engine(url, pool_pre_ping=True, **engine_options)
