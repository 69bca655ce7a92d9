import os

# Settings are read at import time; point them at throwaway values first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ENV", "test")

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from pawcare.models.appointment import Appointment, AppointmentStatus
from pawcare.models.clinic import Clinic, Veterinarian
from pawcare.models.owner import Pet, PetOwnerProfile
from pawcare.services.repository import SqlAppointmentRepository, SqlDirectoryRepository

TODAY = date(2026, 10, 17)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@dataclass
class Seed:
    clinic: Clinic
    empty_clinic: Clinic
    cruz: Veterinarian
    reyes: Veterinarian
    owner: PetOwnerProfile
    other_owner: PetOwnerProfile
    petless_owner: PetOwnerProfile
    max: Pet
    luna: Pet


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
async def seed(session) -> Seed:
    clinic = Clinic(name="Happy Paws Clinic", address="RT Lim Boulevard, Zamboanga City")
    empty_clinic = Clinic(name="Quiet Clinic", address="Somewhere Else")
    session.add_all([clinic, empty_clinic])
    await session.flush()

    cruz = Veterinarian(
        full_name="Dr. Cruz",
        license_number="VET-001",
        years_of_experience=8,
        consultation_fee=Decimal("500"),
        is_available=True,
        clinic_id=clinic.id,
    )
    reyes = Veterinarian(
        full_name="Dr. Reyes",
        license_number="VET-002",
        consultation_fee=Decimal("400"),
        is_available=False,
        clinic_id=clinic.id,
    )
    owner = PetOwnerProfile(user_id="owner-1", full_name="Ana Santos")
    other_owner = PetOwnerProfile(user_id="owner-2", full_name="Ben Lim")
    petless_owner = PetOwnerProfile(user_id="owner-3", full_name="Carla Diaz")
    session.add_all([cruz, reyes, owner, other_owner, petless_owner])
    await session.flush()

    max_ = Pet(name="Max", species="dog", breed="Beagle", owner_id=owner.id)
    luna = Pet(name="Luna", species="cat", owner_id=other_owner.id)
    session.add_all([max_, luna])
    await session.commit()

    return Seed(
        clinic=clinic,
        empty_clinic=empty_clinic,
        cruz=cruz,
        reyes=reyes,
        owner=owner,
        other_owner=other_owner,
        petless_owner=petless_owner,
        max=max_,
        luna=luna,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 10, 17, 8, 0))


@pytest.fixture
def directory(session) -> SqlDirectoryRepository:
    return SqlDirectoryRepository(session)


@pytest.fixture
def appointments(session) -> SqlAppointmentRepository:
    return SqlAppointmentRepository(session)


async def add_appointments(
    session: AsyncSession,
    seed: Seed,
    d: date,
    times: list[time],
    status: AppointmentStatus = AppointmentStatus.PENDING,
    veterinarian: Veterinarian | None = None,
) -> list[Appointment]:
    vet = veterinarian or seed.cruz
    rows = [
        Appointment(
            pet_owner_id=seed.owner.id,
            patient_id=seed.max.id,
            veterinarian_id=vet.id,
            clinic_id=seed.clinic.id,
            appointment_date=d,
            appointment_time=t,
            status=status,
            total_amount=vet.consultation_fee,
        )
        for t in times
    ]
    session.add_all(rows)
    await session.commit()
    return rows
