from datetime import date, time
from decimal import Decimal
from unittest.mock import patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from pawcare.core.errors import DailyLimitExceeded, RepositoryError, SlotUnavailable
from pawcare.models.appointment import Appointment, AppointmentStatus, NewAppointmentRequest, PaymentStatus

from tests.conftest import add_appointments

D = date(2026, 10, 20)


def _request(seed, t: time = time(10, 30), **overrides) -> NewAppointmentRequest:
    data = dict(
        pet_owner_id=seed.owner.id,
        patient_id=seed.max.id,
        veterinarian_id=seed.cruz.id,
        clinic_id=seed.clinic.id,
        appointment_date=D,
        appointment_time=t,
        reason_for_visit="Annual check-up",
        total_amount=Decimal("500"),
    )
    data.update(overrides)
    return NewAppointmentRequest(**data)


async def _count_rows(session) -> int:
    result = await session.execute(select(func.count()).select_from(Appointment))
    return int(result.scalar_one())


class TestCreate:

    async def test_writes_pending_record(self, session, seed, appointments):
        appointment = await appointments.create(_request(seed))

        assert appointment.id is not None
        assert appointment.status == AppointmentStatus.PENDING
        assert appointment.payment_status == PaymentStatus.PENDING
        assert appointment.estimated_duration == 30
        assert appointment.total_amount == Decimal("500")
        assert appointment.booking_type == "web"
        assert appointment.created_at.tzinfo is None
        assert await _count_rows(session) == 1

    async def test_created_appointment_is_committed(self, session_maker, seed, appointments):
        appointment = await appointments.create(_request(seed))

        async with session_maker() as other:
            stored = await other.get(Appointment, appointment.id)
        assert stored is not None
        assert stored.status == AppointmentStatus.PENDING

    async def test_rejects_when_owner_is_at_daily_limit(self, session, seed, appointments):
        await add_appointments(
            session, seed, D, [time(9, 0), time(9, 30), time(10, 0), time(11, 0), time(11, 30)]
        )

        with pytest.raises(DailyLimitExceeded):
            await appointments.create(_request(seed, time(14, 0)))
        assert await _count_rows(session) == 5

    async def test_rejects_live_double_booking_of_slot(self, session, seed, appointments):
        await appointments.create(_request(seed))
        await session.commit()

        with pytest.raises(SlotUnavailable):
            await appointments.create(
                _request(seed, pet_owner_id=seed.other_owner.id, patient_id=seed.luna.id)
            )
        assert await _count_rows(session) == 1

    async def test_cancelled_appointment_frees_its_slot(self, session, seed, appointments):
        await add_appointments(session, seed, D, [time(10, 30)], status=AppointmentStatus.CANCELLED)

        appointment = await appointments.create(
            _request(seed, pet_owner_id=seed.other_owner.id, patient_id=seed.luna.id)
        )

        assert appointment.id is not None
        assert await _count_rows(session) == 2

    async def test_storage_failure_becomes_repository_error(self, session, seed, appointments):
        with patch.object(session, "flush", side_effect=OperationalError("INSERT", {}, Exception("disk I/O error"))):
            with pytest.raises(RepositoryError):
                await appointments.create(_request(seed))
        assert await _count_rows(session) == 0

    async def test_commit_failure_becomes_repository_error(self, session, seed, appointments):
        with patch.object(session, "commit", side_effect=OperationalError("COMMIT", {}, Exception("connection lost"))):
            with pytest.raises(RepositoryError):
                await appointments.create(_request(seed))
        assert await _count_rows(session) == 0


class TestReads:

    async def test_count_for_owner_on_date_filters_statuses(self, session, seed, appointments):
        await add_appointments(session, seed, D, [time(9, 0), time(9, 30)])
        await add_appointments(session, seed, D, [time(10, 0)], status=AppointmentStatus.CANCELLED)

        assert await appointments.count_for_owner_on_date(seed.owner.id, D) == 2
        assert await appointments.count_for_owner_on_date(
            seed.owner.id, D, [AppointmentStatus.CANCELLED]
        ) == 1
        assert await appointments.count_for_owner_on_date(seed.other_owner.id, D) == 0

    async def test_booked_times_and_slot_taken(self, session, seed, appointments):
        await add_appointments(session, seed, D, [time(9, 0), time(15, 30)])

        assert await appointments.booked_times(seed.cruz.id, D) == {time(9, 0), time(15, 30)}
        assert await appointments.is_slot_taken(seed.cruz.id, D, time(9, 0)) is True
        assert await appointments.is_slot_taken(seed.cruz.id, D, time(9, 30)) is False
        assert await appointments.is_slot_taken(seed.reyes.id, D, time(9, 0)) is False

    async def test_list_for_owner_orders_and_paginates(self, session, seed, appointments):
        await add_appointments(session, seed, date(2026, 10, 22), [time(9, 0)])
        await add_appointments(session, seed, D, [time(14, 0), time(9, 30)])
        await add_appointments(session, seed, D, [time(16, 0)], status=AppointmentStatus.CONFIRMED)

        rows = await appointments.list_for_owner(seed.owner.id)
        assert [(a.appointment_date, a.appointment_time) for a in rows] == [
            (D, time(9, 30)),
            (D, time(14, 0)),
            (D, time(16, 0)),
            (date(2026, 10, 22), time(9, 0)),
        ]

        page_two = await appointments.list_for_owner(seed.owner.id, limit=2, offset=2)
        assert len(page_two) == 2

        confirmed = await appointments.list_for_owner(seed.owner.id, status=AppointmentStatus.CONFIRMED)
        assert [a.appointment_time for a in confirmed] == [time(16, 0)]


class TestDirectory:

    async def test_profile_lookup(self, seed, directory):
        assert await directory.get_owner_profile_id("owner-1") == seed.owner.id
        assert await directory.get_owner_profile_id("nobody") is None

    async def test_only_available_veterinarians_are_listed(self, seed, directory):
        vets = await directory.list_available_veterinarians(seed.clinic.id)
        assert [v.full_name for v in vets] == ["Dr. Cruz"]
        assert await directory.list_available_veterinarians(seed.empty_clinic.id) == []

    async def test_inactive_pets_are_hidden(self, session, seed, directory):
        seed.max.is_active = False
        session.add(seed.max)
        await session.commit()

        assert await directory.list_pets_for_owner(seed.owner.id) == []
