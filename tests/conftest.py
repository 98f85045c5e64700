"""
Shared fixtures

Every test gets a fresh in-memory SQLite database (one shared connection via
StaticPool) and a TestClient whose get_db dependency yields sessions bound
to it. Rate limiting and the Redis cache are switched off before the app is
imported because both read their flags at import time.
"""

import os

os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["CACHE_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SECRET_KEY"] = "test-secret-key-not-for-production"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from datetime import date, timedelta  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from garagehub.database import Base, get_db  # noqa: E402
from garagehub.enums import BookingStatus, CarType, ServiceCategory, UserRole  # noqa: E402
from garagehub.main import app  # noqa: E402
from garagehub.models import Service, ServicePricing, Shop, User, Vehicle  # noqa: E402
from garagehub.models_booking import Booking, TimeSlot  # noqa: E402
from garagehub.security_utils import create_access_token, hash_password_bcrypt  # noqa: E402

TEST_PASSWORD = "garage2024pass"


# ============================================================================
# Seed helpers
# ============================================================================


def make_user(db, name, email, role=UserRole.OWNER):
    user = User(
        name=name,
        email=email,
        password_hash=hash_password_bcrypt(TEST_PASSWORD),
        role=role.value,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_shop(db, name, email, **fields):
    user = make_user(db, f"{name} Owner", email, UserRole.SHOP)
    shop = Shop(user_id=user.id, name=name, address="1 Main St, Springfield", **fields)
    db.add(shop)
    db.commit()
    db.refresh(shop)
    return shop


def make_vehicle(db, user, vin="1HGCM82633A004352"):
    vehicle = Vehicle(
        user_id=user.id,
        vin=vin,
        make="Honda",
        model="Accord",
        year=2018,
        car_type=CarType.SEDAN.value,
        is_primary=True,
    )
    db.add(vehicle)
    db.commit()
    db.refresh(vehicle)
    return vehicle


def make_slot(db, shop, day, start_time="09:00", end_time="10:00"):
    slot = TimeSlot(shop_id=shop.id, date=day, start_time=start_time, end_time=end_time, is_booked=False)
    db.add(slot)
    db.commit()
    db.refresh(slot)
    return slot


def make_booking(db, user, shop, vehicle, day, start_time="09:00", status=BookingStatus.PENDING):
    """Booking row without a slot claim"""
    booking = Booking(
        user_id=user.id,
        shop_id=shop.id,
        vehicle_id=vehicle.id,
        scheduled_date=day,
        scheduled_time=start_time,
        status=status.value,
    )
    db.add(booking)
    db.commit()
    db.refresh(booking)
    return booking


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}


# ============================================================================
# Database / client
# ============================================================================


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


# ============================================================================
# Marketplace fixtures
# ============================================================================


@pytest.fixture
def owner(db):
    return make_user(db, "Alice Driver", "alice@example.com")


@pytest.fixture
def other_owner(db):
    return make_user(db, "Bob Driver", "bob@example.com")


@pytest.fixture
def admin(db):
    return make_user(db, "Ada Admin", "admin@example.com", UserRole.ADMIN)


@pytest.fixture
def shop(db):
    return make_shop(db, "Precision Auto", "shop@example.com", verified=True, rating=4.5)


@pytest.fixture
def other_shop(db):
    return make_shop(db, "Budget Brakes", "brakes@example.com")


@pytest.fixture
def vehicle(db, owner):
    return make_vehicle(db, owner)


@pytest.fixture
def other_vehicle(db, other_owner):
    return make_vehicle(db, other_owner, vin="2T1BURHE0JC012345")


@pytest.fixture
def future_day():
    return date.today() + timedelta(days=3)


@pytest.fixture
def slot(db, shop, future_day):
    return make_slot(db, shop, future_day, "09:00", "10:00")


@pytest.fixture
def second_slot(db, shop, future_day):
    return make_slot(db, shop, future_day, "11:00", "12:00")


@pytest.fixture
def service(db):
    service = Service(
        name="Oil Change",
        category=ServiceCategory.MAINTENANCE.value,
        description="Synthetic oil and filter",
        duration="30-45 minutes",
        warranty="3 months",
    )
    service.pricing = [
        ServicePricing(car_type=CarType.SEDAN.value, min_price=49.99, max_price=79.99),
        ServicePricing(car_type=CarType.SUV.value, min_price=69.99, max_price=99.99),
    ]
    db.add(service)
    db.commit()
    db.refresh(service)
    return service
