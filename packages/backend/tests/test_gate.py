"""Dependency gate tests — lazy, cached, degrade-not-crash construction."""

import threading
import time

import pytest

from fakes import CountingVerifier, FakeStore, make_settings
from todogate.auth.credentials import CredentialService
from todogate.db.store import SqlStore
from todogate.errors import ConfigurationMissing
from todogate.gate import DependencyGate


def test_store_is_built_once_and_cached():
    built = []

    def factory(settings):
        built.append(1)
        return FakeStore()

    gate = DependencyGate(make_settings(), store_factory=factory)
    first = gate.store()
    assert gate.store() is first
    assert len(built) == 1


def test_nothing_is_built_until_first_use():
    built = []
    DependencyGate(make_settings(), store_factory=lambda s: built.append(1) or FakeStore())
    assert built == []


def test_missing_database_url_is_unavailable_not_fatal():
    gate = DependencyGate(make_settings(database_url=None))
    assert gate.store() is None
    assert gate.verifier() is None


def test_missing_auth_config_leaves_store_usable():
    gate = DependencyGate(
        make_settings(auth_secret=None, app_url=None),
        store_factory=lambda s: FakeStore(),
    )
    assert gate.store() is not None
    assert gate.verifier() is None


def test_failed_construction_is_retried_on_next_call():
    attempts = []

    def flaky(settings):
        attempts.append(1)
        if len(attempts) == 1:
            raise ConnectionError("db down")
        return FakeStore()

    gate = DependencyGate(make_settings(), store_factory=flaky)
    assert gate.store() is None
    assert gate.store() is not None
    assert len(attempts) == 2


def test_concurrent_first_access_builds_one_handle():
    built = []

    def slow_factory(settings):
        time.sleep(0.05)
        built.append(1)
        return FakeStore()

    gate = DependencyGate(make_settings(), store_factory=slow_factory)
    results = []
    threads = [threading.Thread(target=lambda: results.append(gate.store())) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(built) == 1
    assert all(r is results[0] for r in results)


def test_verifier_factory_receives_store():
    store = FakeStore()
    seen = []

    def verifier_factory(settings, s):
        seen.append(s)
        return CountingVerifier()

    gate = DependencyGate(
        make_settings(), store_factory=lambda s: store, verifier_factory=verifier_factory
    )
    assert isinstance(gate.verifier(), CountingVerifier)
    assert seen == [store]


@pytest.mark.asyncio
async def test_default_factories_build_sql_handles(tmp_path):
    gate = DependencyGate(
        make_settings(database_url=f"sqlite+aiosqlite:///{tmp_path / 'gate.db'}")
    )
    assert isinstance(gate.store(), SqlStore)
    assert isinstance(gate.verifier(), CredentialService)
    assert gate.status() == {"database": "ok", "auth": "ok"}
    await gate.aclose()


def test_status_reports_unavailable():
    gate = DependencyGate(make_settings(database_url=None))
    assert gate.status() == {"database": "unavailable", "auth": "unavailable"}


def test_missing_configuration_is_not_rebuilt():
    """Env vars can't appear without a restart, so the factory runs once."""
    attempts = []

    def unconfigured(settings):
        attempts.append(1)
        raise ConfigurationMissing(["TODOGATE_DATABASE_URL"])

    gate = DependencyGate(make_settings(), store_factory=unconfigured)
    for _ in range(5):
        assert gate.store() is None
    assert gate.status()["database"] == "unavailable"
    assert len(attempts) == 1
