"""
Pytest configuration and fixtures for backend tests.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from rest_api.main import app
from rest_api.models import Base, MenuCategory, MenuItem, Profile
from rest_api.services.domain import settings_snapshot
from rest_api.services.permissions import role_cache
from shared.config.constants import Roles
from shared.config.settings import settings
from shared.infrastructure.db import enable_sqlite_transactions, get_db
from shared.security.auth import sign_jwt
from shared.security.rate_limit import limiter


# SQLite in-memory database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = enable_sqlite_transactions(
    create_engine(
        SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

CUSTOMER_ID = "a1b2c3d4-0000-4000-8000-000000000001"
OTHER_CUSTOMER_ID = "a1b2c3d4-0000-4000-8000-000000000002"
STAFF_ID = "a1b2c3d4-0000-4000-8000-000000000003"
ADMIN_ID = "a1b2c3d4-0000-4000-8000-000000000004"


@pytest.fixture(autouse=True)
def isolated_runtime(monkeypatch):
    """
    Reset process-wide state between tests.

    Real-time publishing and push delivery are switched off; tests that
    exercise them turn them on explicitly.
    """
    role_cache.invalidate()
    settings_snapshot.invalidate()
    monkeypatch.setattr(settings, "realtime_enabled", False)
    monkeypatch.setattr(settings, "push_enabled", False)
    monkeypatch.setattr(settings, "allow_cancel_from_preparing", False)
    limiter.enabled = False
    yield
    limiter.enabled = True
    role_cache.invalidate()
    settings_snapshot.invalidate()


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    Uses SQLite in-memory for isolation.
    """
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """
    Create a test client with database session override.

    The client is not used as a context manager so the application
    lifespan (table creation and seeding on the configured database)
    does not run.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


# =============================================================================
# Profiles
# =============================================================================


def _profile(db_session, identity_id: str, name: str, role: str) -> Profile:
    profile = Profile(identity_id=identity_id, display_name=name, role=role)
    db_session.add(profile)
    db_session.commit()
    return profile


@pytest.fixture
def customer(db_session):
    return _profile(db_session, CUSTOMER_ID, "Ana Student", Roles.CUSTOMER)


@pytest.fixture
def other_customer(db_session):
    return _profile(db_session, OTHER_CUSTOMER_ID, "Ben Student", Roles.CUSTOMER)


@pytest.fixture
def staff(db_session):
    return _profile(db_session, STAFF_ID, "Maria Counter", Roles.STAFF)


@pytest.fixture
def admin(db_session):
    return _profile(db_session, ADMIN_ID, "Admin User", Roles.ADMIN)


# =============================================================================
# Menu
# =============================================================================


@pytest.fixture
def category(db_session):
    category = MenuCategory(name="Entrees", description="Main dishes", display_order=2)
    db_session.add(category)
    db_session.commit()
    return category


@pytest.fixture
def menu_items(db_session, category):
    """Burger 850, fries 350, latte 400 (cents)."""
    items = {
        "burger": MenuItem(
            category_id=category.id, name="Hamburger", price_cents=850,
            allergens=["dairy", "gluten"], prep_time_minutes=12,
        ),
        "fries": MenuItem(
            category_id=category.id, name="French Fries", price_cents=350, prep_time_minutes=8,
        ),
        "latte": MenuItem(
            category_id=category.id, name="Latte", price_cents=400,
            allergens=["dairy"], prep_time_minutes=3,
        ),
    }
    db_session.add_all(items.values())
    db_session.commit()
    return items


# =============================================================================
# Auth headers
# =============================================================================


def bearer(identity_id: str, name: str | None = None) -> dict[str, str]:
    return {"Authorization": f"Bearer {sign_jwt(identity_id, name=name)}"}


@pytest.fixture
def customer_headers(customer):
    return bearer(CUSTOMER_ID)


@pytest.fixture
def other_customer_headers(other_customer):
    return bearer(OTHER_CUSTOMER_ID)


@pytest.fixture
def staff_headers(staff):
    return bearer(STAFF_ID)


@pytest.fixture
def admin_headers(admin):
    return bearer(ADMIN_ID)


@pytest.fixture
def make_headers():
    """Factory for bearer headers of arbitrary identities."""
    return bearer


# =============================================================================
# Orders
# =============================================================================


@pytest.fixture
def place_order(db_session, customer, menu_items):
    """
    Factory placing an order as the default customer.

    Usage:
        order = place_order(burger=1, fries=2)
    """
    from rest_api.services.domain import OrderService
    from shared.utils.schemas import OrderLineInput

    def _place(owner_id: str = CUSTOMER_ID, **quantities: int):
        quantities = quantities or {"burger": 1, "fries": 1, "latte": 1}
        lines = [
            OrderLineInput(menu_item_id=menu_items[name].id, quantity=qty)
            for name, qty in quantities.items()
        ]
        return OrderService(db_session).create_order(owner_id, lines)

    return _place


@pytest.fixture
def ready_order(db_session, place_order, staff):
    """An order moved all the way to `ready` by staff."""
    from rest_api.services.domain import OrderService

    order = place_order()
    service = OrderService(db_session)
    for status in ("confirmed", "preparing", "ready"):
        order = service.transition_status(order.id, status, STAFF_ID)
    return order
