"""
Pytest configuration.

Adds the project root to the Python path so tests can import domain,
repositories, services and api, and provides an in-memory store installed in
place of the Supabase client.
"""

import sys
from pathlib import Path

import pytest

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from config.settings import get_settings  # noqa: E402
from domain.context import RequestContext  # noqa: E402
from fake_supabase import FakeSupabase  # noqa: E402
from repositories import client as client_module  # noqa: E402

_ENGINE_ENV = ("TAX_RATE", "STOCK_COLUMN", "STOCK_UPDATE_MAX_ATTEMPTS", "LOG_LEVEL")


@pytest.fixture(autouse=True)
def _default_settings(monkeypatch):
    """Run every test with default engine settings."""

    for name in _ENGINE_ENV:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def store(monkeypatch) -> FakeSupabase:
    fake = FakeSupabase()
    monkeypatch.setattr(client_module, "_client", fake)
    return fake


@pytest.fixture
def ctx() -> RequestContext:
    return RequestContext(tenant_id="tenant-1", branch_id="branch-1", user_id="user-1")


@pytest.fixture
def other_branch_ctx() -> RequestContext:
    return RequestContext(tenant_id="tenant-1", branch_id="branch-2", user_id="user-2")


@pytest.fixture
def seed_product(store, ctx):
    """Create a product in the default branch and return its id."""

    def _seed(stock: int = 0, *, product_id: str = None, name: str = "Paracetamol 500mg", **extra):
        row = store.seed(
            "products",
            id=product_id or f"prod-{len(store.rows('products')) + 1}",
            tenant_id=ctx.tenant_id,
            branch_id=ctx.branch_id,
            name=name,
            stock_quantity=stock,
            status=extra.pop("status", "active"),
            **extra,
        )
        return row["id"]

    return _seed
