"""Tests for engine construction and the get_db dependency."""

import pytest

from reposignal.db.session import _pool_options, build_engine

from conftest import _override_settings


def test_postgres_gets_bounded_pool():
    options = _pool_options("postgresql+asyncpg://u:p@db/reposignal")
    assert options["pool_size"] == 5
    assert options["pool_pre_ping"] is True


@pytest.mark.parametrize("url", ["sqlite+aiosqlite:///:memory:", "sqlite+aiosqlite:///./x.db"])
def test_sqlite_uses_dialect_default_pool(url):
    assert _pool_options(url) == {}


async def test_build_engine_for_sqlite():
    settings = _override_settings().model_copy(
        update={"database_url": "sqlite+aiosqlite:///:memory:"}
    )
    engine = build_engine(settings)
    try:
        assert engine.dialect.name == "sqlite"
    finally:
        await engine.dispose()
