from datetime import date, time

from pydantic import BaseModel, Field

from pawcare.models.appointment import AppointmentPublic
from pawcare.models.clinic import VeterinarianPublic
from pawcare.models.owner import PetPublic
from pawcare.services.booking_wizard import BookingSelection, BookingSummary, WizardStep


class StartBookingRequest(BaseModel):
    clinic_id: int
    veterinarian_id: int | None = None  # pre-selected veterinarian skips the first step


class SelectVeterinarianRequest(BaseModel):
    veterinarian_id: int


class SelectPetRequest(BaseModel):
    pet_id: int


class SelectDateTimeRequest(BaseModel):
    appointment_date: date | None = None
    appointment_time: time | None = None


class EnterDetailsRequest(BaseModel):
    reason_for_visit: str | None = Field(default=None, max_length=1000)
    symptoms: str | None = Field(default=None, max_length=2000)


class WizardSnapshot(BaseModel):
    session_id: str
    clinic_id: int
    step: WizardStep
    can_proceed: bool
    selection: BookingSelection
    summary: BookingSummary
    booking_window_start: date
    booking_window_end: date
    guidance: str | None = None
    last_error: str | None = None
    last_error_code: str | None = None
    appointment_id: int | None = None


class SlotOption(BaseModel):
    start_time: time
    label: str
    available: bool


class WizardOptions(BaseModel):
    """Choices offered for the current step."""

    step: WizardStep
    veterinarians: list[VeterinarianPublic] = []
    pets: list[PetPublic] = []
    slots: list[SlotOption] = []
    slots_date: date | None = None


class ConfirmResponse(BaseModel):
    appointment: AppointmentPublic
    session: WizardSnapshot


class VeterinarianListResponse(BaseModel):
    clinic_id: int
    veterinarians: list[VeterinarianPublic]
