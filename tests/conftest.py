"""
Pytest configuration and shared fixtures for the catalog search tests.
"""
import os
import sys
from datetime import datetime, timedelta, timezone
from typing import Generator, List

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(__file__)), "src"))

# Load environment variables
from dotenv import load_dotenv
load_dotenv(os.path.join(os.path.dirname(os.path.dirname(__file__)), ".env"))


TEST_JWT_SECRET = "test-jwt-secret-with-at-least-32-bytes!"


# ============================================================================
# Fixtures: Test Data Factories
# ============================================================================

def make_item(item_id: str, name: str, **kwargs):
    """Build a SearchableItem with quiet defaults (no popularity, out of stock)."""
    from search.models import SearchableItem
    return SearchableItem(id=item_id, name=name, **kwargs)


@pytest.fixture
def sample_items() -> List:
    """A small mixed catalog: dresses, shirts, shoes across two brands."""
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return [
        make_item(
            "item-1", "Red Silk Dress",
            description="Evening dress in pure silk",
            brand="Zara", category="women", subcategory="dresses",
            tags=["red", "silk", "evening"], colors=["red"], sizes=["S", "M"],
            price=2500, sale_price=1999, rating_average=4.6, rating_count=80,
            inventory_quantity=5, views=420, likes=60, purchases=12,
            created_at=base + timedelta(days=3),
        ),
        make_item(
            "item-2", "Blue Cotton Shirt",
            description="Everyday cotton shirt",
            brand="Zara", category="men", subcategory="shirts",
            tags=["blue", "cotton"], colors=["blue"], sizes=["M", "L"],
            price=1200, rating_average=3.9, rating_count=30,
            inventory_quantity=0, views=90, likes=4, purchases=2,
            created_at=base + timedelta(days=5),
        ),
        make_item(
            "item-3", "Black Leather Shoes",
            description="Formal leather shoes",
            brand="Clarks", category="men", subcategory="shoes",
            tags=["black", "leather", "formal"], colors=["black"], sizes=["42", "43"],
            price=5500, rating_average=4.2, rating_count=15,
            inventory_quantity=2, views=150, likes=10, purchases=6,
            created_at=base + timedelta(days=1),
        ),
        make_item(
            "item-4", "Red Cotton Dress",
            description="Summer dress",
            brand="H&M", category="women", subcategory="dresses",
            tags=["red", "cotton", "summer"], colors=["red"], sizes=["M"],
            price=1500, rating_average=4.0, rating_count=10,
            inventory_quantity=8, views=40, likes=3, purchases=1,
            created_at=base + timedelta(days=7),
        ),
        make_item(
            "item-5", "Archived Red Scarf",
            brand="Zara", category="women", tags=["red"],
            price=300, is_active=False,
        ),
    ]


@pytest.fixture
def catalog(sample_items):
    from search.catalog import InMemoryCatalog
    return InMemoryCatalog(sample_items)


class FakeClock:
    """Controllable clock for time-window tests."""

    def __init__(self, start: datetime = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ============================================================================
# Fixtures: Services
# ============================================================================

@pytest.fixture
def trending(clock):
    from search.trending import TrendingTracker
    return TrendingTracker(clock=clock)


@pytest.fixture
def history(clock):
    from search.history import SearchHistoryStore
    return SearchHistoryStore(clock=clock)


@pytest.fixture
def completions():
    from search.suggestions import CompletionStore
    return CompletionStore()


@pytest.fixture
def suggestion_engine(catalog, trending, history, completions):
    from search.suggestions import SuggestionEngine
    return SuggestionEngine(catalog, trending, history, completions)


@pytest.fixture
def orchestrator(catalog, trending, history, suggestion_engine):
    from search.orchestrator import SearchOrchestrator
    from search.ranker import Ranker
    return SearchOrchestrator(
        catalog=catalog,
        ranker=Ranker(),
        trending=trending,
        history=history,
        suggestions=suggestion_engine,
    )


# ============================================================================
# Fixtures: FastAPI Test Client
# ============================================================================

@pytest.fixture
def test_settings():
    from config.settings import get_settings_for_testing
    return get_settings_for_testing(supabase_jwt_secret=TEST_JWT_SECRET)


@pytest.fixture
def app(test_settings, catalog):
    """FastAPI application over the sample catalog, tracking inline."""
    from api.app import create_app
    return create_app(test_settings, catalog=catalog)


@pytest.fixture
def client(app) -> Generator:
    """TestClient running the app lifespan (services are built on enter)."""
    from fastapi.testclient import TestClient
    with TestClient(app) as test_client:
        yield test_client


# ============================================================================
# Markers
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
    config.addinivalue_line("markers", "slow: marks tests as slow")


# ============================================================================
# JWT Token Generation
# ============================================================================

def generate_test_jwt(
    user_id: str = "test-user-001",
    exp_hours: int = 24,
    secret: str = TEST_JWT_SECRET,
) -> str:
    """
    Generate a Supabase-style JWT signed with the test secret.

    Args:
        user_id: The user ID to include in the token
        exp_hours: Hours until token expires (negative for an expired token)
        secret: Signing secret

    Returns:
        JWT token string
    """
    import jwt
    import time

    now = int(time.time())
    payload = {
        "sub": user_id,
        "aud": "authenticated",
        "role": "authenticated",
        "email": f"{user_id}@test.com",
        "aal": "aal1",
        "exp": now + (exp_hours * 3600),
        "iat": now,
        "is_anonymous": False,
    }

    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def test_jwt_token() -> str:
    """Fixture providing a valid test JWT token."""
    return generate_test_jwt()


@pytest.fixture
def auth_headers(test_jwt_token: str) -> dict:
    """Fixture providing auth headers with Bearer token."""
    return {"Authorization": f"Bearer {test_jwt_token}"}
