"""
Shared pytest fixtures for the pack engine test suite.

- In-memory store shared between per-request store instances
- Engine factory bound to the default catalog
"""

import os

# Must be set before config/database modules are imported anywhere
os.environ.setdefault("DB_URL", "sqlite+aiosqlite:///:memory:")

import pytest  # noqa: E402

from database.memory_store import MemoryDatabase, MemoryGameStore  # noqa: E402
from game.catalog import default_catalog  # noqa: E402
from game.constants import DEFAULT_PACK_ID, PACK_UNIT_SECONDS  # noqa: E402
from game.engine import PackEngine  # noqa: E402
from tests.helpers import BASE_TIME  # noqa: E402

# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def catalog():
    return default_catalog()


@pytest.fixture
def memory_db():
    return MemoryDatabase()


@pytest.fixture
def make_engine(memory_db, catalog):
    """Build a fresh engine per simulated request, all sharing one database."""

    def _make(unit_seconds=PACK_UNIT_SECONDS):
        return PackEngine(MemoryGameStore(memory_db), catalog, unit_seconds=unit_seconds)

    return _make


@pytest.fixture
def engine(make_engine):
    return make_engine()


@pytest.fixture
def seed_user(memory_db):
    """Provision a guest with the given pack units, pity and owned masks."""

    async def _seed(user_id="u1", units=5, pity=0, masks=(), last_unit_ts=BASE_TIME):
        store = MemoryGameStore(memory_db)
        async with store.transaction():
            await store.get_or_create_user(True, user_id)
            progress = await store.get_user_pack_progress(user_id, DEFAULT_PACK_ID)
            progress.fractional_units = units
            progress.pity_counter = pity
            progress.last_unit_ts = last_unit_ts
            await store.upsert_user_pack_progress(progress)
            for mask in masks:
                await store.upsert_user_mask(mask)
        return user_id

    return _seed


@pytest.fixture
def read_store(memory_db):
    """A store for inspecting committed state after a request finished."""
    return MemoryGameStore(memory_db)
