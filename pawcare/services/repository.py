"""
Persistence boundary for the booking engine.

``AppointmentRepository`` and ``DirectoryRepository`` are the contracts the
wizard and validators depend on; the ``Sql*`` classes implement them over an
``AsyncSession``. Only creates and reads live here; status changes and
deletions belong to administrative flows.
"""

import logging
from collections.abc import Iterable
from datetime import date, time
from typing import Protocol

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from pawcare.core.errors import DailyLimitExceeded, RepositoryError, SlotUnavailable
from pawcare.models.appointment import (
    LIVE_STATUSES,
    Appointment,
    AppointmentStatus,
    NewAppointmentRequest,
    PaymentStatus,
)
from pawcare.models.clinic import Clinic, Veterinarian
from pawcare.models.owner import Pet, PetOwnerProfile

logger = logging.getLogger(__name__)

# Hard ceiling on live appointments per owner per calendar date
DAILY_APPOINTMENT_LIMIT = 5


class AppointmentRepository(Protocol):
    async def create(
        self, request: NewAppointmentRequest, daily_limit: int = DAILY_APPOINTMENT_LIMIT
    ) -> Appointment: ...

    async def count_for_owner_on_date(
        self, owner_id: int, d: date, statuses: Iterable[AppointmentStatus] = LIVE_STATUSES
    ) -> int: ...

    async def is_slot_taken(self, veterinarian_id: int, d: date, t: time) -> bool: ...

    async def booked_times(self, veterinarian_id: int, d: date) -> set[time]: ...

    async def list_for_owner(
        self,
        owner_id: int,
        status: AppointmentStatus | None = None,
        limit: int = 10,
        offset: int = 0,
    ) -> list[Appointment]: ...


class DirectoryRepository(Protocol):
    """Read-only lookups of profiles, pets, veterinarians and clinics."""

    async def get_owner_profile_id(self, actor_id: str) -> int | None: ...

    async def get_pet(self, pet_id: int) -> Pet | None: ...

    async def list_pets_for_owner(self, owner_id: int) -> list[Pet]: ...

    async def get_veterinarian(self, veterinarian_id: int) -> Veterinarian | None: ...

    async def get_clinic(self, clinic_id: int) -> Clinic | None: ...

    async def list_available_veterinarians(self, clinic_id: int) -> list[Veterinarian]: ...


def _status_values(statuses: Iterable[AppointmentStatus]) -> list[AppointmentStatus]:
    return [AppointmentStatus(s) for s in statuses]


class SqlAppointmentRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def count_for_owner_on_date(
        self, owner_id: int, d: date, statuses: Iterable[AppointmentStatus] = LIVE_STATUSES
    ) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(Appointment)
            .where(
                Appointment.pet_owner_id == owner_id,
                Appointment.appointment_date == d,
                Appointment.status.in_(_status_values(statuses)),
            )
        )
        return int(result.scalar_one())

    async def is_slot_taken(self, veterinarian_id: int, d: date, t: time) -> bool:
        result = await self.session.execute(
            select(Appointment.id).where(
                Appointment.veterinarian_id == veterinarian_id,
                Appointment.appointment_date == d,
                Appointment.appointment_time == t,
                Appointment.status.in_(_status_values(LIVE_STATUSES)),
            )
        )
        return result.first() is not None

    async def booked_times(self, veterinarian_id: int, d: date) -> set[time]:
        result = await self.session.execute(
            select(Appointment.appointment_time).where(
                Appointment.veterinarian_id == veterinarian_id,
                Appointment.appointment_date == d,
                Appointment.status.in_(_status_values(LIVE_STATUSES)),
            )
        )
        return {row[0] for row in result.all()}

    async def create(
        self, request: NewAppointmentRequest, daily_limit: int = DAILY_APPOINTMENT_LIMIT
    ) -> Appointment:
        """Write and commit one pending appointment, all or nothing.

        The owner's profile row stays locked until the commit so two sessions of
        the same owner cannot both pass the daily count. A live double booking
        of the same slot is rejected by the partial unique index. The returned
        appointment is durable.
        """
        try:
            await self.session.execute(
                select(PetOwnerProfile.id)
                .where(PetOwnerProfile.id == request.pet_owner_id)
                .with_for_update()
            )
            count = await self.count_for_owner_on_date(request.pet_owner_id, request.appointment_date)
            if count >= daily_limit:
                raise DailyLimitExceeded()
            appointment = Appointment(
                **request.model_dump(),
                status=AppointmentStatus.PENDING,
                payment_status=PaymentStatus.PENDING,
            )
            self.session.add(appointment)
            await self.session.flush()
            await self.session.refresh(appointment)
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            logger.info(
                "Slot conflict for veterinarian %s on %s %s",
                request.veterinarian_id,
                request.appointment_date,
                request.appointment_time,
            )
            raise SlotUnavailable() from e
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.exception("Error creating appointment: %s", e)
            raise RepositoryError() from e
        return appointment

    async def list_for_owner(
        self,
        owner_id: int,
        status: AppointmentStatus | None = None,
        limit: int = 10,
        offset: int = 0,
    ) -> list[Appointment]:
        q = (
            select(Appointment)
            .where(Appointment.pet_owner_id == owner_id)
            .order_by(Appointment.appointment_date, Appointment.appointment_time)
        )
        if status is not None:
            q = q.where(Appointment.status == status)
        result = await self.session.execute(q.offset(offset).limit(limit))
        return list(result.scalars().all())


class SqlDirectoryRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_owner_profile_id(self, actor_id: str) -> int | None:
        result = await self.session.execute(
            select(PetOwnerProfile.id).where(PetOwnerProfile.user_id == actor_id)
        )
        return result.scalar_one_or_none()

    async def get_pet(self, pet_id: int) -> Pet | None:
        return await self.session.get(Pet, pet_id)

    async def list_pets_for_owner(self, owner_id: int) -> list[Pet]:
        result = await self.session.execute(
            select(Pet)
            .where(Pet.owner_id == owner_id, Pet.is_active == True)  # noqa: E712
            .order_by(Pet.name)
        )
        return list(result.scalars().all())

    async def get_veterinarian(self, veterinarian_id: int) -> Veterinarian | None:
        return await self.session.get(Veterinarian, veterinarian_id)

    async def get_clinic(self, clinic_id: int) -> Clinic | None:
        return await self.session.get(Clinic, clinic_id)

    async def list_available_veterinarians(self, clinic_id: int) -> list[Veterinarian]:
        result = await self.session.execute(
            select(Veterinarian)
            .where(
                Veterinarian.clinic_id == clinic_id,
                Veterinarian.is_available == True,  # noqa: E712
            )
            .order_by(Veterinarian.full_name)
        )
        return list(result.scalars().all())
