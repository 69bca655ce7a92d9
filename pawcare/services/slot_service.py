from collections.abc import Iterator
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import TYPE_CHECKING

from pawcare.core.config import settings

if TYPE_CHECKING:
    from pawcare.models.clinic import Clinic
    from pawcare.services.repository import AppointmentRepository


@dataclass(frozen=True)
class TimeSlot:
    start_time: time
    display_label: str


def format_slot_label(t: time) -> str:
    """12-hour label without a leading zero, e.g. 09:00 -> '9:00 AM'."""
    hour = t.hour % 12 or 12
    suffix = "AM" if t.hour < 12 else "PM"
    return f"{hour}:{t.minute:02d} {suffix}"


class TimeSlotGrid:
    """Bookable start times over the half-open interval [opening, closing).

    Iteration is lazy and can be repeated; each pass starts from the opening time.
    Malformed hours (closing <= opening) give an empty grid.
    """

    def __init__(self, opening: time, closing: time, slot_minutes: int) -> None:
        self.opening = opening
        self.closing = closing
        self.slot_minutes = slot_minutes

    def __iter__(self) -> Iterator[TimeSlot]:
        if self.slot_minutes <= 0 or self.closing <= self.opening:
            return
        # Anchor on an arbitrary day so timedelta arithmetic works on times
        anchor = date(2000, 1, 1)
        current = datetime.combine(anchor, self.opening)
        end = datetime.combine(anchor, self.closing)
        delta = timedelta(minutes=self.slot_minutes)
        while current < end:
            t = current.time()
            yield TimeSlot(start_time=t, display_label=format_slot_label(t))
            current += delta

    def __contains__(self, item: object) -> bool:
        if isinstance(item, TimeSlot):
            item = item.start_time
        return any(slot.start_time == item for slot in self)

    def __len__(self) -> int:
        return sum(1 for _ in self)


def generate_time_slots(
    opening: time | None = None,
    closing: time | None = None,
    slot_minutes: int | None = None,
) -> TimeSlotGrid:
    return TimeSlotGrid(
        opening=opening if opening is not None else settings.business_start,
        closing=closing if closing is not None else settings.business_end,
        slot_minutes=slot_minutes if slot_minutes is not None else settings.slot_duration_minutes,
    )


def slots_for_clinic(clinic: "Clinic | None") -> TimeSlotGrid:
    """Clinic operating hours when both are set, otherwise the configured business hours."""
    if clinic is not None and clinic.opening_time is not None and clinic.closing_time is not None:
        return generate_time_slots(clinic.opening_time, clinic.closing_time)
    return generate_time_slots()


def is_past_slot(d: date, t: time, now: datetime) -> bool:
    """Whether the slot starting at t on d has already started by now."""
    return d < now.date() or (d == now.date() and t <= now.time())


async def get_available_slots_for_date(
    appointments: "AppointmentRepository",
    veterinarian_id: int,
    d: date,
    clinic: "Clinic | None" = None,
    now: datetime | None = None,
) -> list[tuple[TimeSlot, bool]]:
    """Returns list of (slot, available). A slot is unavailable when a live
    appointment already holds it for this veterinarian, or, when now is given,
    when it has already started."""
    grid = slots_for_clinic(clinic)
    booked = await appointments.booked_times(veterinarian_id, d)
    return [
        (s, s.start_time not in booked and not (now is not None and is_past_slot(d, s.start_time, now)))
        for s in grid
    ]
