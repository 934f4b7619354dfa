import os

os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import date, datetime, time, timedelta, timezone  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, create_engine  # noqa: E402

from tanyourpeach.core.security import create_token_for  # noqa: E402
from tanyourpeach.database import create_db_and_tables, enable_sqlite_foreign_keys, get_session  # noqa: E402
from tanyourpeach.main import app  # noqa: E402
from tanyourpeach.models.appointment import AppointmentCreate  # noqa: E402
from tanyourpeach.models.availability import Availability  # noqa: E402
from tanyourpeach.models.inventory import InventoryItem, ServiceInventoryUsage  # noqa: E402
from tanyourpeach.models.service import Service  # noqa: E402
from tanyourpeach.models.user import User  # noqa: E402
from tanyourpeach.services import appointment_service  # noqa: E402


@pytest.fixture(name="engine")
def engine_fixture():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    create_db_and_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture(name="session")
def session_fixture(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(session):
    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_header(user: User) -> dict:
    return {"Authorization": f"Bearer {create_token_for(user)}"}


def make_user(session: Session, email: str, is_admin: bool = False, name: str = "Someone") -> User:
    user = User(name=name, email=email, password_hash="not-a-real-hash", is_admin=is_admin)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def admin(session):
    return make_user(session, "admin@example.com", is_admin=True, name="Admin")


@pytest.fixture
def user(session):
    return make_user(session, "user@example.com", name="User")


@pytest.fixture
def other_user(session):
    return make_user(session, "other@example.com", name="Other")


@pytest.fixture
def admin_headers(admin):
    return auth_header(admin)


@pytest.fixture
def user_headers(user):
    return auth_header(user)


@pytest.fixture
def other_headers(other_user):
    return auth_header(other_user)


@pytest.fixture
def service(session):
    service = Service(name="Glow Up", base_price=50.0, duration_minutes=30, is_active=True)
    session.add(service)
    session.commit()
    session.refresh(service)
    return service


def make_slot(session: Session, day: date, start: time, end: time) -> Availability:
    slot = Availability(slot_date=day, start_time=start, end_time=end)
    session.add(slot)
    session.commit()
    session.refresh(slot)
    return slot


@pytest.fixture
def slot(session):
    return make_slot(session, date.today() + timedelta(days=1), time(14, 0), time(14, 30))


@pytest.fixture
def appointment(session, service, slot, user):
    """A PENDING appointment owned by `user`, with its initial history entry."""
    result = appointment_service.create_appointment(
        session,
        AppointmentCreate(
            service_id=service.id,
            availability_id=slot.id,
            client_name="Brenna",
            client_email=user.email,
            client_address="123 Peach St",
            appointment_date_time=datetime.combine(slot.slot_date, slot.start_time, tzinfo=timezone.utc),
        ),
        actor=user,
    )
    assert result.ok, result.error
    return result.value


def add_stock(session: Session, service: Service, name: str, quantity: int, unit_cost: float, used: int) -> InventoryItem:
    item = InventoryItem(item_name=name, quantity=quantity, unit_cost=unit_cost)
    session.add(item)
    session.commit()
    session.refresh(item)
    session.add(ServiceInventoryUsage(service_id=service.id, item_id=item.id, quantity_used=used))
    session.commit()
    return item


@pytest.fixture
def body_for():
    """Build a PUT body from an appointment, overriding some fields."""

    def build(appointment, **changes):
        body = {
            "service_id": appointment.service_id,
            "availability_id": appointment.availability_id,
            "client_name": appointment.client_name,
            "client_email": appointment.client_email,
            "client_address": appointment.client_address,
            "appointment_date_time": appointment.appointment_date_time.isoformat()
            if appointment.appointment_date_time
            else None,
            "travel_fee": appointment.travel_fee,
            "total_price": appointment.total_price,
            "notes": appointment.notes,
            "status": appointment.status.value,
        }
        body.update(changes)
        return body

    return build
