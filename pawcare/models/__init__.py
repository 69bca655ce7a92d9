from pawcare.models.owner import Pet, PetOwnerProfile, PetPublic
from pawcare.models.clinic import Clinic, Veterinarian, VeterinarianPublic
from pawcare.models.appointment import (
    LIVE_STATUSES,
    Appointment,
    AppointmentPublic,
    AppointmentStatus,
    NewAppointmentRequest,
    PaymentStatus,
)

__all__ = [
    "PetOwnerProfile",
    "Pet",
    "PetPublic",
    "Clinic",
    "Veterinarian",
    "VeterinarianPublic",
    "LIVE_STATUSES",
    "Appointment",
    "AppointmentPublic",
    "AppointmentStatus",
    "NewAppointmentRequest",
    "PaymentStatus",
]
