import logging
from datetime import date, time

from pawcare.core.errors import DailyLimitExceeded, SlotUnavailable, VeterinarianUnavailable
from pawcare.models.appointment import LIVE_STATUSES
from pawcare.services.repository import (
    DAILY_APPOINTMENT_LIMIT,
    AppointmentRepository,
    DirectoryRepository,
)

logger = logging.getLogger(__name__)


class AvailabilityValidator:
    """Pre-write checks for one (owner, date, veterinarian[, time]) booking.

    Rules run in order and stop at the first failure:
    daily cap, veterinarian availability, then slot occupancy when a time is given.
    """

    def __init__(self, appointments: AppointmentRepository, directory: DirectoryRepository) -> None:
        self.appointments = appointments
        self.directory = directory

    async def validate(
        self,
        owner_id: int,
        target_date: date,
        veterinarian_id: int,
        appointment_time: time | None = None,
    ) -> None:
        count = await self.appointments.count_for_owner_on_date(owner_id, target_date, LIVE_STATUSES)
        if count >= DAILY_APPOINTMENT_LIMIT:
            logger.info(
                "Daily limit reached: owner=%s date=%s count=%d", owner_id, target_date, count
            )
            raise DailyLimitExceeded()

        # Re-read: the flag may have flipped since the veterinarian was listed
        veterinarian = await self.directory.get_veterinarian(veterinarian_id)
        if veterinarian is None or not veterinarian.is_available:
            logger.info("Veterinarian %s is not available", veterinarian_id)
            raise VeterinarianUnavailable()

        if appointment_time is not None and await self.appointments.is_slot_taken(
            veterinarian_id, target_date, appointment_time
        ):
            raise SlotUnavailable()
