"""
Booking wizard: the step-by-step flow that turns an owner's selections into a
pending appointment.

The wizard is split in two. ``WizardState`` is a plain pydantic record (step,
selections, last error) that can be stored between requests and serialized.
``BookingWizard`` wraps a state together with the repositories of the current
request and performs the transitions. Each transition either succeeds fully or
raises a ``BookingError`` and leaves the state as it was.

Steps::

    SELECTING_VETERINARIAN -> SELECTING_PET -> SELECTING_DATE_TIME
        -> ENTERING_DETAILS -> CONFIRMING -> SUBMITTED

Steps 2-5 can go back one step; selections survive going back and forth.
SUBMITTED resets to the first step once the reset delay has passed.
"""

import enum
import logging
from collections.abc import Callable
from datetime import date, datetime, time, timedelta
from decimal import Decimal

from pydantic import BaseModel, Field

from pawcare.core.config import settings
from pawcare.core.errors import (
    BookingError,
    IncompleteSelection,
    InvalidSelection,
    InvalidTransition,
    NotFound,
    RepositoryError,
)
from pawcare.models.appointment import DEFAULT_DURATION_MINUTES, Appointment, NewAppointmentRequest
from pawcare.models.clinic import Veterinarian
from pawcare.models.owner import Pet
from pawcare.services.availability import AvailabilityValidator
from pawcare.services.ownership import OwnershipGuard
from pawcare.services.repository import AppointmentRepository, DirectoryRepository
from pawcare.services.slot_service import TimeSlotGrid, format_slot_label, generate_time_slots, is_past_slot

logger = logging.getLogger(__name__)

NO_VETERINARIANS_GUIDANCE = "No veterinarians are currently available at this clinic. Please try another clinic."
NO_PETS_GUIDANCE = "You don't have any pets registered yet. Add a pet to your profile before booking an appointment."
PAST_SLOT_MESSAGE = "That time has already passed. Please choose a later time slot."


class WizardStep(str, enum.Enum):
    SELECTING_VETERINARIAN = "selecting_veterinarian"
    SELECTING_PET = "selecting_pet"
    SELECTING_DATE_TIME = "selecting_date_time"
    ENTERING_DETAILS = "entering_details"
    CONFIRMING = "confirming"
    SUBMITTED = "submitted"


_FORWARD: dict[WizardStep, WizardStep] = {
    WizardStep.SELECTING_VETERINARIAN: WizardStep.SELECTING_PET,
    WizardStep.SELECTING_PET: WizardStep.SELECTING_DATE_TIME,
    WizardStep.SELECTING_DATE_TIME: WizardStep.ENTERING_DETAILS,
    WizardStep.ENTERING_DETAILS: WizardStep.CONFIRMING,
    WizardStep.CONFIRMING: WizardStep.SUBMITTED,
}

_BACKWARD: dict[WizardStep, WizardStep] = {
    WizardStep.SELECTING_PET: WizardStep.SELECTING_VETERINARIAN,
    WizardStep.SELECTING_DATE_TIME: WizardStep.SELECTING_PET,
    WizardStep.ENTERING_DETAILS: WizardStep.SELECTING_DATE_TIME,
    WizardStep.CONFIRMING: WizardStep.ENTERING_DETAILS,
}

ALLOWED_TRANSITIONS: dict[WizardStep, frozenset[WizardStep]] = {
    step: frozenset(
        s for s in (_FORWARD.get(step), _BACKWARD.get(step)) if s is not None
    )
    for step in WizardStep
}
ALLOWED_TRANSITIONS[WizardStep.SUBMITTED] = frozenset({WizardStep.SELECTING_VETERINARIAN})


class BookingSelection(BaseModel):
    veterinarian_id: int | None = None
    veterinarian_name: str | None = None
    pet_id: int | None = None
    pet_name: str | None = None
    appointment_date: date | None = None
    appointment_time: time | None = None
    reason_for_visit: str | None = None
    symptoms: str | None = None

    def missing(self) -> list[str]:
        required = {
            "veterinarian": self.veterinarian_id,
            "pet": self.pet_id,
            "date": self.appointment_date,
            "time": self.appointment_time,
        }
        return [name for name, value in required.items() if value is None]


class BookingSummary(BaseModel):
    veterinarian_name: str | None
    pet_name: str | None
    appointment_date: date | None
    appointment_time: time | None
    time_label: str | None
    reason_for_visit: str | None
    symptoms: str | None
    estimated_duration: int
    consultation_fee: Decimal | None


class WizardState(BaseModel):
    actor_id: str
    owner_id: int
    clinic_id: int
    clinic_opening: time | None = None
    clinic_closing: time | None = None
    booking_channel: str = "web"
    step: WizardStep = WizardStep.SELECTING_VETERINARIAN
    selection: BookingSelection = Field(default_factory=BookingSelection)
    consultation_fee: Decimal | None = None  # shown in the summary; re-read on submit
    guidance: str | None = None
    last_error: str | None = None
    last_error_code: str | None = None
    appointment_id: int | None = None
    submitted_at: datetime | None = None
    updated_at: datetime = Field(default_factory=datetime.now)


class BookingWizard:
    def __init__(
        self,
        state: WizardState,
        directory: DirectoryRepository,
        appointments: AppointmentRepository,
        clock: Callable[[], datetime] = datetime.now,
        reset_delay: timedelta | None = None,
        booking_window_days: int | None = None,
    ) -> None:
        self.state = state
        self.directory = directory
        self.appointments = appointments
        self.clock = clock
        self.reset_delay = (
            reset_delay if reset_delay is not None else timedelta(seconds=settings.wizard_reset_delay_seconds)
        )
        self.booking_window_days = (
            booking_window_days if booking_window_days is not None else settings.booking_window_days
        )
        self.guard = OwnershipGuard(directory)
        self.validator = AvailabilityValidator(appointments, directory)

    @classmethod
    async def start(
        cls,
        *,
        actor_id: str,
        owner_id: int,
        clinic_id: int,
        directory: DirectoryRepository,
        appointments: AppointmentRepository,
        veterinarian_id: int | None = None,
        booking_channel: str | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> "BookingWizard":
        """Open a wizard for a clinic, optionally with a veterinarian already chosen."""
        clinic = await directory.get_clinic(clinic_id)
        if clinic is None or not clinic.is_active:
            raise NotFound("Clinic not found")
        state = WizardState(
            actor_id=actor_id,
            owner_id=owner_id,
            clinic_id=clinic_id,
            clinic_opening=clinic.opening_time,
            clinic_closing=clinic.closing_time,
            booking_channel=booking_channel or settings.booking_channel,
            updated_at=clock(),
        )
        wizard = cls(state, directory, appointments, clock=clock)
        if veterinarian_id is not None:
            await wizard.select_veterinarian(veterinarian_id)
        else:
            await wizard._enter_veterinarian_step()
        return wizard

    # -- introspection ------------------------------------------------------

    @property
    def step(self) -> WizardStep:
        return self.state.step

    @property
    def selection(self) -> BookingSelection:
        return self.state.selection

    def time_slots(self) -> TimeSlotGrid:
        if self.state.clinic_opening is None or self.state.clinic_closing is None:
            return generate_time_slots()
        return generate_time_slots(self.state.clinic_opening, self.state.clinic_closing)

    def booking_window(self) -> tuple[date, date]:
        today = self.clock().date()
        return today, today + timedelta(days=self.booking_window_days)

    def can_proceed(self) -> bool:
        """Whether the current step has what it needs to move forward."""
        sel = self.state.selection
        step = self.state.step
        if step == WizardStep.SELECTING_VETERINARIAN:
            return sel.veterinarian_id is not None
        if step == WizardStep.SELECTING_PET:
            return sel.pet_id is not None
        if step == WizardStep.SELECTING_DATE_TIME:
            return sel.appointment_date is not None and sel.appointment_time is not None
        # Details are optional
        return step == WizardStep.ENTERING_DETAILS

    def summary(self) -> BookingSummary:
        sel = self.state.selection
        return BookingSummary(
            veterinarian_name=sel.veterinarian_name,
            pet_name=sel.pet_name,
            appointment_date=sel.appointment_date,
            appointment_time=sel.appointment_time,
            time_label=format_slot_label(sel.appointment_time) if sel.appointment_time else None,
            reason_for_visit=sel.reason_for_visit,
            symptoms=sel.symptoms,
            estimated_duration=DEFAULT_DURATION_MINUTES,
            consultation_fee=self.state.consultation_fee,
        )

    async def available_veterinarians(self) -> list[Veterinarian]:
        return await self.directory.list_available_veterinarians(self.state.clinic_id)

    async def available_pets(self) -> list[Pet]:
        return await self.directory.list_pets_for_owner(self.state.owner_id)

    # -- transitions --------------------------------------------------------

    def _transition(self, target: WizardStep) -> None:
        if target not in ALLOWED_TRANSITIONS[self.state.step]:
            raise InvalidTransition(
                f"Cannot move from {self.state.step.value} to {target.value}"
            )
        logger.debug("Wizard %s -> %s (actor %s)", self.state.step.value, target.value, self.state.actor_id)
        self.state.step = target
        self.state.last_error = None
        self.state.last_error_code = None
        self._touch()

    def _require_step(self, *steps: WizardStep) -> None:
        if self.state.step not in steps:
            raise InvalidTransition(
                f"This action is not available while {self.state.step.value.replace('_', ' ')}"
            )

    def _touch(self) -> None:
        self.state.updated_at = self.clock()

    async def _enter_veterinarian_step(self) -> None:
        vets = await self.available_veterinarians()
        self.state.guidance = None if vets else NO_VETERINARIANS_GUIDANCE

    async def _enter_pet_step(self) -> None:
        pets = await self.available_pets()
        self.state.guidance = None if pets else NO_PETS_GUIDANCE

    async def select_veterinarian(self, veterinarian_id: int) -> None:
        self._require_step(WizardStep.SELECTING_VETERINARIAN)
        vets = await self.available_veterinarians()
        vet = next((v for v in vets if v.id == veterinarian_id), None)
        if vet is None:
            raise InvalidSelection("Selected veterinarian is not available at this clinic")
        self.state.selection.veterinarian_id = vet.id
        self.state.selection.veterinarian_name = vet.full_name
        self.state.consultation_fee = vet.consultation_fee
        self._transition(WizardStep.SELECTING_PET)
        await self._enter_pet_step()

    async def select_pet(self, pet_id: int) -> None:
        self._require_step(WizardStep.SELECTING_PET)
        pets = await self.available_pets()
        if not pets:
            self.state.guidance = NO_PETS_GUIDANCE
            raise InvalidSelection(NO_PETS_GUIDANCE)
        pet = next((p for p in pets if p.id == pet_id), None)
        if pet is None:
            raise InvalidSelection("Please choose one of your pets")
        self.state.selection.pet_id = pet.id
        self.state.selection.pet_name = pet.name
        self.state.guidance = None
        self._transition(WizardStep.SELECTING_DATE_TIME)

    def select_date_time(self, appointment_date: date | None, appointment_time: time | None) -> None:
        """Record the date and/or time; moves on once both are set."""
        self._require_step(WizardStep.SELECTING_DATE_TIME)
        if appointment_date is not None:
            first, last = self.booking_window()
            if not first <= appointment_date <= last:
                raise InvalidSelection(
                    f"Please choose a date between {first.isoformat()} and {last.isoformat()}"
                )
        if appointment_time is not None and appointment_time not in self.time_slots():
            raise InvalidSelection("Please choose one of the available time slots")
        sel = self.state.selection
        d = appointment_date if appointment_date is not None else sel.appointment_date
        t = appointment_time if appointment_time is not None else sel.appointment_time
        if d is not None and t is not None and is_past_slot(d, t, self.clock()):
            raise InvalidSelection(PAST_SLOT_MESSAGE)
        if appointment_date is not None:
            sel.appointment_date = appointment_date
        if appointment_time is not None:
            sel.appointment_time = appointment_time
        self._touch()
        if self.can_proceed():
            self._transition(WizardStep.ENTERING_DETAILS)

    def enter_details(self, reason_for_visit: str | None = None, symptoms: str | None = None) -> None:
        self._require_step(WizardStep.ENTERING_DETAILS)
        self.state.selection.reason_for_visit = (reason_for_visit or "").strip() or None
        self.state.selection.symptoms = (symptoms or "").strip() or None
        self._touch()

    async def advance(self) -> None:
        """Explicit "continue": move forward with what is already selected."""
        step = self.state.step
        if step in (WizardStep.CONFIRMING, WizardStep.SUBMITTED):
            raise InvalidTransition("Use confirm to submit the booking")
        if not self.can_proceed():
            raise IncompleteSelection(message="Please complete this step before continuing")
        self._transition(_FORWARD[step])
        if self.state.step == WizardStep.SELECTING_PET:
            await self._enter_pet_step()
        else:
            self.state.guidance = None

    async def back(self) -> None:
        previous = _BACKWARD.get(self.state.step)
        if previous is None:
            raise InvalidTransition("Cannot go back from this step")
        self._transition(previous)
        if previous == WizardStep.SELECTING_VETERINARIAN:
            await self._enter_veterinarian_step()
        elif previous == WizardStep.SELECTING_PET:
            await self._enter_pet_step()
        else:
            self.state.guidance = None

    async def confirm(self) -> Appointment:
        """Validate and write the appointment. Only explicit confirmation writes."""
        self._require_step(WizardStep.CONFIRMING)
        try:
            appointment = await self._submit()
        except BookingError as e:
            self._record_error(e)
            raise
        except Exception as e:
            logger.exception("Unexpected error submitting booking: %s", e)
            err = RepositoryError()
            self._record_error(err)
            raise err from e
        self.state.appointment_id = appointment.id
        self.state.submitted_at = self.clock()
        self._transition(WizardStep.SUBMITTED)
        logger.info(
            "Appointment %s booked: owner=%s pet=%s vet=%s %s %s",
            appointment.id,
            self.state.owner_id,
            appointment.patient_id,
            appointment.veterinarian_id,
            appointment.appointment_date,
            appointment.appointment_time,
        )
        return appointment

    async def _submit(self) -> Appointment:
        sel = self.state.selection
        missing = sel.missing()
        if missing:
            raise IncompleteSelection(missing)
        # The chosen slot may have started while the wizard sat on confirmation
        if is_past_slot(sel.appointment_date, sel.appointment_time, self.clock()):
            raise InvalidSelection(PAST_SLOT_MESSAGE)

        await self.guard.ensure_owns_pet(self.state.actor_id, sel.pet_id)
        await self.validator.validate(
            self.state.owner_id, sel.appointment_date, sel.veterinarian_id, sel.appointment_time
        )

        # Fee is snapshotted now and never recomputed
        vet = await self.directory.get_veterinarian(sel.veterinarian_id)
        fee = vet.consultation_fee if vet is not None else Decimal("0")
        request = NewAppointmentRequest(
            pet_owner_id=self.state.owner_id,
            patient_id=sel.pet_id,
            veterinarian_id=sel.veterinarian_id,
            clinic_id=self.state.clinic_id,
            appointment_date=sel.appointment_date,
            appointment_time=sel.appointment_time,
            reason_for_visit=sel.reason_for_visit,
            symptoms=sel.symptoms,
            booking_type=self.state.booking_channel,
            estimated_duration=DEFAULT_DURATION_MINUTES,
            total_amount=fee,
        )
        return await self.appointments.create(request)

    def _record_error(self, error: BookingError) -> None:
        logger.info("Booking submission rejected (%s): %s", error.code, error.message)
        self.state.last_error = error.message
        self.state.last_error_code = error.code
        self._touch()

    # -- reset --------------------------------------------------------------

    def reset(self) -> None:
        """Clear every selection and start over from the first step."""
        if self.state.step != WizardStep.SUBMITTED:
            raise InvalidTransition("Only a submitted booking can be reset")
        self.state.selection = BookingSelection()
        self.state.consultation_fee = None
        self.state.appointment_id = None
        self.state.submitted_at = None
        self._transition(WizardStep.SELECTING_VETERINARIAN)

    async def reset_if_due(self) -> bool:
        """Apply the post-submission reset once the delay has elapsed."""
        if self.state.step != WizardStep.SUBMITTED or self.state.submitted_at is None:
            return False
        if self.clock() - self.state.submitted_at < self.reset_delay:
            return False
        self.reset()
        await self._enter_veterinarian_step()
        return True
