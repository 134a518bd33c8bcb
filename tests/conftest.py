import os

# Settings are read at import time, so the environment must be ready first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ.setdefault("PAYMENT_WEBHOOK_SECRET", "test-webhook-secret")

from datetime import date, datetime, time, timedelta  # noqa: E402
from types import SimpleNamespace  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from salon.database import Base, get_db  # noqa: E402
from salon.domain.appointments.router import get_appointment_service  # noqa: E402
from salon.domain.appointments.schemas import AppointmentCreate, ClientRef, SlotSelection  # noqa: E402
from salon.domain.appointments.service import AppointmentService  # noqa: E402
from salon.domain.promotions.router import get_promotion_service  # noqa: E402
from salon.domain.promotions.service import PromotionService  # noqa: E402
from salon.domain.scheduling.availability import AvailabilityResolver  # noqa: E402
from salon.domain.scheduling.router import get_availability_resolver  # noqa: E402
from salon.main import app  # noqa: E402
from salon.models import (  # noqa: E402
    Appointment,
    Client,
    Employee,
    EmployeeService,
    Promotion,
    Service,
    WorkingInterval,
)

# Monday; every booking in the suite is at least two days later
NOW = datetime(2030, 1, 7, 9, 0)
BOOKING_DAY = date(2030, 1, 9)  # Wednesday
SATURDAY = date(2030, 1, 12)


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def seed_salon(db) -> SimpleNamespace:
    """
    Two employees working Monday to Friday, 09:00-13:00.

    - manicure: 60 min, 10000, 30% deposit; Ana and Belen
    - nail_art: 45 min, 8000, no deposit; Ana only
    """
    manicure = Service(
        name="Manicure", duration_minutes=60, price=10000,
        requires_deposit=True, deposit_percentage=30,
    )
    nail_art = Service(name="Nail art", duration_minutes=45, price=8000, requires_deposit=False)
    ana = Employee(name="Ana")
    belen = Employee(name="Belen")
    db.add_all([manicure, nail_art, ana, belen])
    db.flush()

    db.add_all(
        [
            EmployeeService(employee_id=ana.id, service_id=manicure.id),
            EmployeeService(employee_id=ana.id, service_id=nail_art.id),
            EmployeeService(employee_id=belen.id, service_id=manicure.id),
        ]
    )
    for employee in (ana, belen):
        for day in range(1, 6):
            db.add(
                WorkingInterval(
                    employee_id=employee.id,
                    day_of_week=day,
                    start_time=time(9, 0),
                    end_time=time(13, 0),
                )
            )
    db.commit()
    return SimpleNamespace(manicure=manicure, nail_art=nail_art, ana=ana, belen=belen)


def booking(
    service_id: int,
    start: time,
    on_date: date = BOOKING_DAY,
    employee_id=None,
    whatsapp: str = "+5491155550001",
    promotion_code=None,
) -> AppointmentCreate:
    return AppointmentCreate(
        service_id=service_id,
        slot=SlotSelection(date=on_date, start_time=start, employee_id=employee_id),
        client=ClientRef(name="Lucia", whatsapp=whatsapp),
        promotion_code=promotion_code,
    )


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
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FakeClock(NOW)


@pytest.fixture
def salon(db):
    return seed_salon(db)


@pytest.fixture
def appointments(db, clock):
    return AppointmentService(db, clock)


@pytest.fixture
def make_client(db):
    def _make(whatsapp="+5491100000000", name="Client"):
        client = Client(name=name, whatsapp=whatsapp)
        db.add(client)
        db.commit()
        return client

    return _make


@pytest.fixture
def make_appointment(db, make_client):
    """Insert an appointment row directly, bypassing booking rules"""

    counter = iter(range(1, 1000))

    def _make(service, employee, starts_at, status="confirmed"):
        client = make_client(whatsapp=f"+54911000{next(counter):05d}")
        appointment = Appointment(
            service_id=service.id,
            client_id=client.id,
            employee_id=employee.id,
            scheduled_at=starts_at,
            ends_at=starts_at + timedelta(minutes=service.duration_minutes),
            status=status,
            total_price=service.price,
            deposit_amount=0,
        )
        db.add(appointment)
        db.commit()
        return appointment

    return _make


@pytest.fixture
def make_promotion(db):
    def _make(code="PROMO10", type="percentage", value=10, **kwargs):
        promotion = Promotion(name=code.title(), code=code, type=type, value=value, **kwargs)
        db.add(promotion)
        db.commit()
        return promotion

    return _make


@pytest.fixture
def client(db, clock):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_appointment_service] = lambda: AppointmentService(db, clock)
    app.dependency_overrides[get_promotion_service] = lambda: PromotionService(db, clock)
    app.dependency_overrides[get_availability_resolver] = lambda: AvailabilityResolver(db, clock)
    yield TestClient(app)
    app.dependency_overrides.clear()
