from datetime import date, time
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from pawcare.core.errors import DailyLimitExceeded, SlotUnavailable, VeterinarianUnavailable
from pawcare.models.appointment import AppointmentStatus
from pawcare.models.clinic import Veterinarian
from pawcare.services.availability import AvailabilityValidator

from tests.conftest import add_appointments

D = date(2026, 10, 20)


@pytest.fixture
def mock_appointments():
    repo = AsyncMock()
    repo.count_for_owner_on_date.return_value = 0
    repo.is_slot_taken.return_value = False
    return repo


@pytest.fixture
def mock_directory():
    directory = AsyncMock()
    directory.get_veterinarian.return_value = Veterinarian(
        id=3, full_name="Dr. Cruz", license_number="VET-001", consultation_fee=Decimal("500"), is_available=True
    )
    return directory


class TestAvailabilityValidator:

    async def test_passes_when_all_rules_hold(self, mock_appointments, mock_directory):
        validator = AvailabilityValidator(mock_appointments, mock_directory)

        await validator.validate(1, D, 3, time(10, 30))

        mock_appointments.is_slot_taken.assert_awaited_once_with(3, D, time(10, 30))

    async def test_four_live_appointments_are_accepted(self, mock_appointments, mock_directory):
        mock_appointments.count_for_owner_on_date.return_value = 4
        validator = AvailabilityValidator(mock_appointments, mock_directory)

        await validator.validate(1, D, 3)

    @pytest.mark.parametrize("count", [5, 6, 12])
    async def test_five_or_more_live_appointments_are_rejected(self, mock_appointments, mock_directory, count):
        mock_appointments.count_for_owner_on_date.return_value = count
        validator = AvailabilityValidator(mock_appointments, mock_directory)

        with pytest.raises(DailyLimitExceeded):
            await validator.validate(1, D, 3)

    async def test_daily_cap_is_checked_before_veterinarian(self, mock_appointments, mock_directory):
        mock_appointments.count_for_owner_on_date.return_value = 5
        mock_directory.get_veterinarian.return_value.is_available = False
        validator = AvailabilityValidator(mock_appointments, mock_directory)

        with pytest.raises(DailyLimitExceeded):
            await validator.validate(1, D, 3)
        mock_directory.get_veterinarian.assert_not_called()

    async def test_unavailable_veterinarian_is_rejected(self, mock_appointments, mock_directory):
        mock_directory.get_veterinarian.return_value.is_available = False
        validator = AvailabilityValidator(mock_appointments, mock_directory)

        with pytest.raises(VeterinarianUnavailable):
            await validator.validate(1, D, 3, time(10, 30))
        mock_appointments.is_slot_taken.assert_not_called()

    async def test_missing_veterinarian_is_rejected(self, mock_appointments, mock_directory):
        mock_directory.get_veterinarian.return_value = None
        validator = AvailabilityValidator(mock_appointments, mock_directory)

        with pytest.raises(VeterinarianUnavailable):
            await validator.validate(1, D, 99)

    async def test_taken_slot_is_rejected(self, mock_appointments, mock_directory):
        mock_appointments.is_slot_taken.return_value = True
        validator = AvailabilityValidator(mock_appointments, mock_directory)

        with pytest.raises(SlotUnavailable):
            await validator.validate(1, D, 3, time(10, 30))

    async def test_slot_is_not_checked_without_time(self, mock_appointments, mock_directory):
        validator = AvailabilityValidator(mock_appointments, mock_directory)

        await validator.validate(1, D, 3)

        mock_appointments.is_slot_taken.assert_not_called()


class TestAvailabilityValidatorWithDatabase:

    async def test_only_live_statuses_count_toward_cap(self, session, seed, directory, appointments):
        await add_appointments(session, seed, D, [time(9, 0), time(9, 30), time(10, 0), time(10, 30)])
        await add_appointments(
            session, seed, D, [time(11, 0), time(11, 30)], status=AppointmentStatus.CANCELLED
        )
        await add_appointments(session, seed, D, [time(12, 0)], status=AppointmentStatus.COMPLETED)
        validator = AvailabilityValidator(appointments, directory)

        await validator.validate(seed.owner.id, D, seed.cruz.id)

        await add_appointments(session, seed, D, [time(13, 0)], status=AppointmentStatus.IN_PROGRESS)
        with pytest.raises(DailyLimitExceeded):
            await validator.validate(seed.owner.id, D, seed.cruz.id)

    async def test_other_dates_do_not_count(self, session, seed, directory, appointments):
        await add_appointments(
            session, seed, date(2026, 10, 21), [time(9, 0), time(9, 30), time(10, 0), time(10, 30), time(11, 0)]
        )
        validator = AvailabilityValidator(appointments, directory)

        await validator.validate(seed.owner.id, D, seed.cruz.id)

    async def test_flag_is_reread_from_store(self, session, seed, directory, appointments):
        validator = AvailabilityValidator(appointments, directory)
        seed.cruz.is_available = False
        session.add(seed.cruz)
        await session.commit()

        with pytest.raises(VeterinarianUnavailable):
            await validator.validate(seed.owner.id, D, seed.cruz.id)
