"""Dependency gate — lazily built, process-wide store and verifier handles.

Learn: The app needs two external handles: a TodoStore (database) and a
Verifier (session checks). Either can be impossible to build — missing
env vars, bad URL, driver not installed. The gate builds each one on
first use and caches it. If construction fails it logs, returns None
and tries again on the next request. Missing configuration is the
exception: env vars cannot appear without a restart, so that outcome is
remembered and the factory is not called again.

None is the "unavailable" sentinel. Consumers map it to a 503 for the
request at hand; the process keeps serving public endpoints.

Concurrency: construction happens under a lock with a re-check inside,
so two requests arriving together at startup produce one handle, not two.
"""

import threading
from typing import Any, Callable, Optional

import structlog

from todogate.auth.credentials import CredentialService, Verifier
from todogate.config import Settings
from todogate.db.engine import build_engine
from todogate.db.store import SqlStore, TodoStore
from todogate.errors import ConfigurationMissing, DatabaseUnavailable

logger = structlog.get_logger()

StoreFactory = Callable[[Settings], TodoStore]
VerifierFactory = Callable[[Settings, Optional[TodoStore]], Verifier]


def default_store_factory(settings: Settings) -> TodoStore:
    if not settings.database_url:
        raise ConfigurationMissing(["TODOGATE_DATABASE_URL"])
    return SqlStore(build_engine(settings.database_url, echo=settings.debug))


def default_verifier_factory(settings: Settings, store: Optional[TodoStore]) -> Verifier:
    missing = settings.missing_auth_config()
    if missing:
        raise ConfigurationMissing(missing)
    # Sessions live in the same database as the todos
    if not isinstance(store, SqlStore):
        raise DatabaseUnavailable()
    return CredentialService(
        store.sessions,
        secret=settings.auth_secret,
        base_url=settings.app_url,
        cookie_name=settings.session_cookie_name,
        expire_days=settings.session_expire_days,
        algorithm=settings.jwt_algorithm,
        bcrypt_rounds=settings.bcrypt_rounds,
    )


class DependencyGate:
    """Builds the store and verifier once, hands out the cached handles."""

    def __init__(
        self,
        settings: Settings,
        store_factory: StoreFactory = default_store_factory,
        verifier_factory: VerifierFactory = default_verifier_factory,
    ):
        self.settings = settings
        self._store_factory = store_factory
        self._verifier_factory = verifier_factory
        self._store: Optional[TodoStore] = None
        self._verifier: Optional[Verifier] = None
        self._missing: dict[str, ConfigurationMissing] = {}
        self._lock = threading.Lock()

    def store(self) -> Optional[TodoStore]:
        """The store handle, or None if it can't be built right now."""
        if self._store is not None:
            return self._store
        with self._lock:
            if self._store is None:
                self._store = self._build(
                    "store", lambda: self._store_factory(self.settings)
                )
            return self._store

    def verifier(self) -> Optional[Verifier]:
        """The verifier handle, or None if it can't be built right now."""
        if self._verifier is not None:
            return self._verifier
        # The default verifier reuses the store's engine; build that first,
        # outside our lock (store() takes the same lock)
        store = self.store()
        with self._lock:
            if self._verifier is None:
                self._verifier = self._build(
                    "verifier", lambda: self._verifier_factory(self.settings, store)
                )
            return self._verifier

    def _build(self, name: str, factory: Callable[[], Any]) -> Optional[Any]:
        if name in self._missing:
            return None
        try:
            handle = factory()
        except ConfigurationMissing as e:
            logger.error(f"gate.{name}_unavailable", reason="config_missing", keys=e.keys)
            self._missing[name] = e
            return None
        except Exception as e:
            logger.error(
                f"gate.{name}_unavailable",
                reason="construction_failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            return None
        logger.info(f"gate.{name}_ready")
        return handle

    def status(self) -> dict[str, str]:
        """Readiness view — attempts construction, reports ok/unavailable."""
        return {
            "database": "ok" if self.store() is not None else "unavailable",
            "auth": "ok" if self.verifier() is not None else "unavailable",
        }

    async def aclose(self) -> None:
        """Dispose the store's connection pool (shutdown only)."""
        store, self._store, self._verifier = self._store, None, None
        self._missing.clear()
        close = getattr(store, "aclose", None)
        if close is not None:
            await close()
