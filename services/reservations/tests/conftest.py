import os

# settings are read once at import time; point them at throwaway values first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RUN_MIGRATIONS"] = "false"
os.environ["SWEEPER_ENABLED"] = "false"
os.environ["JWT_SECRET"] = "test-secret"
os.environ.pop("CRON_SECRET", None)

from datetime import datetime, timedelta  # noqa: E402
from types import SimpleNamespace  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from app.main import app  # noqa: E402
from app.api.deps import get_clock  # noqa: E402
from app.application.sweeper import TimeoutSweeper  # noqa: E402
from app.domain.inventory_status import derive_status  # noqa: E402
from app.domain.models import Base, Inventory, Medicine, Pharmacy, Role, User  # noqa: E402
from app.infrastructure.auth_local import create_access_token  # noqa: E402
from app.infrastructure.db import get_db  # noqa: E402
from app.infrastructure.scheduler import get_sweeper  # noqa: E402


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'reservations.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 2, 9, 0, 0))


@pytest.fixture
def sweeper(session_factory, clock):
    return TimeoutSweeper(session_factory, clock=clock)


@pytest.fixture
def client(session_factory, clock, sweeper):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_sweeper] = lambda: sweeper
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth(user_id: int, role: Role) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user_id, role.value)}"}


@pytest.fixture
def world(db):
    """One medicine stocked (10 units) at a pharmacy, plus a second pharmacy and patient."""
    patient = User(email="pat@example.com", name="Pat Patient", phone="+15550001", role=Role.PATIENT)
    other_patient = User(email="olga@example.com", name="Olga Other", role=Role.PATIENT)
    staff = User(email="staff@central.example.com", name="Central Staff", role=Role.PHARMACY)
    other_staff = User(email="staff@corner.example.com", name="Corner Staff", role=Role.PHARMACY)
    db.add_all([patient, other_patient, staff, other_staff])
    db.flush()

    medicine = Medicine(
        name="Amoxicillin", active_ingredient="Amoxicillin trihydrate", dosage="500mg",
        prescription_required=True, category="Antibiotic", price_range="$10-$15",
    )
    unstocked = Medicine(
        name="Ibuprofen", active_ingredient="Ibuprofen", dosage="200mg",
        prescription_required=False, category="Analgesic", price_range="$3-$6",
    )
    pharmacy = Pharmacy(
        user_id=staff.id, name="Central Pharmacy", address="1 Main St", phone="+15550100",
        working_hours="08:00-20:00", is_approved=True,
    )
    other_pharmacy = Pharmacy(
        user_id=other_staff.id, name="Corner Pharmacy", address="9 Side St", phone="+15550200",
        working_hours="09:00-17:00", is_approved=True,
    )
    db.add_all([medicine, unstocked, pharmacy, other_pharmacy])
    db.flush()

    stock = Inventory(
        pharmacy_id=pharmacy.id, medicine_id=medicine.id, quantity=10,
        status=derive_status(10), last_updated=datetime(2026, 3, 1),
    )
    db.add(stock)
    db.commit()

    return SimpleNamespace(
        patient=patient, other_patient=other_patient, staff=staff, other_staff=other_staff,
        medicine=medicine, unstocked=unstocked, pharmacy=pharmacy, other_pharmacy=other_pharmacy,
        stock=stock,
        patient_headers=auth(patient.id, Role.PATIENT),
        other_patient_headers=auth(other_patient.id, Role.PATIENT),
        staff_headers=auth(staff.id, Role.PHARMACY),
        other_staff_headers=auth(other_staff.id, Role.PHARMACY),
    )


@pytest.fixture
def reserve(client, world):
    """Create a reservation through the API and return its JSON body."""
    def _reserve(quantity: int = 3, headers=None):
        resp = client.post(
            "/reservations/",
            json={"pharmacyId": world.pharmacy.id, "medicineId": world.medicine.id, "quantity": quantity},
            headers=headers or world.patient_headers,
        )
        assert resp.status_code == 201, resp.text
        return resp.json()
    return _reserve
