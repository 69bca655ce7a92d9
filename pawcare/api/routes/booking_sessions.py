import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from pawcare.api.deps import (
    get_appointment_repository,
    get_current_actor_id,
    get_directory,
    get_owner_profile_id,
    get_session_store,
    get_wizard,
)
from pawcare.api.schemas.booking import (
    ConfirmResponse,
    EnterDetailsRequest,
    SelectDateTimeRequest,
    SelectPetRequest,
    SelectVeterinarianRequest,
    SlotOption,
    StartBookingRequest,
    WizardOptions,
    WizardSnapshot,
)
from pawcare.core.config import settings
from pawcare.core.errors import BookingError
from pawcare.core.rate_limiter import create_rate_limiter
from pawcare.models.appointment import AppointmentPublic
from pawcare.models.clinic import VeterinarianPublic
from pawcare.models.owner import PetPublic
from pawcare.services.booking_wizard import BookingWizard, WizardStep
from pawcare.services.repository import SqlAppointmentRepository, SqlDirectoryRepository
from pawcare.services.session_store import BookingSessionStore
from pawcare.services.slot_service import is_past_slot

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/booking-sessions", tags=["booking"])

booking_write_limit = create_rate_limiter(
    limit=settings.booking_rate_limit,
    window_seconds=settings.booking_rate_limit_window_seconds,
    key_prefix="booking_write",
)


def _to_snapshot(session_id: str, wizard: BookingWizard) -> WizardSnapshot:
    state = wizard.state
    first, last = wizard.booking_window()
    return WizardSnapshot(
        session_id=session_id,
        clinic_id=state.clinic_id,
        step=state.step,
        can_proceed=wizard.can_proceed(),
        selection=state.selection,
        summary=wizard.summary(),
        booking_window_start=first,
        booking_window_end=last,
        guidance=state.guidance,
        last_error=state.last_error,
        last_error_code=state.last_error_code,
        appointment_id=state.appointment_id,
    )


@router.post(
    "", response_model=WizardSnapshot, status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(booking_write_limit)],
)
async def start_booking(
    body: StartBookingRequest,
    actor_id: str = Depends(get_current_actor_id),
    owner_id: int = Depends(get_owner_profile_id),
    store: BookingSessionStore = Depends(get_session_store),
    directory: SqlDirectoryRepository = Depends(get_directory),
    appointments: SqlAppointmentRepository = Depends(get_appointment_repository),
) -> WizardSnapshot:
    wizard = await BookingWizard.start(
        actor_id=actor_id,
        owner_id=owner_id,
        clinic_id=body.clinic_id,
        directory=directory,
        appointments=appointments,
        veterinarian_id=body.veterinarian_id,
    )
    session_id = store.add(wizard.state)
    logger.info("Booking session %s started for owner %s at clinic %s", session_id, owner_id, body.clinic_id)
    return _to_snapshot(session_id, wizard)


@router.get("/{session_id}", response_model=WizardSnapshot)
async def get_booking(session_id: str, wizard: BookingWizard = Depends(get_wizard)) -> WizardSnapshot:
    return _to_snapshot(session_id, wizard)


@router.get("/{session_id}/options", response_model=WizardOptions)
async def get_booking_options(
    session_id: str,
    wizard: BookingWizard = Depends(get_wizard),
) -> WizardOptions:
    """Choices for the current step: veterinarians, pets, or the slot grid of the chosen date."""
    step = wizard.step
    options = WizardOptions(step=step)
    if step == WizardStep.SELECTING_VETERINARIAN:
        vets = await wizard.available_veterinarians()
        options.veterinarians = [VeterinarianPublic.model_validate(v) for v in vets]
    elif step == WizardStep.SELECTING_PET:
        pets = await wizard.available_pets()
        options.pets = [PetPublic.model_validate(p) for p in pets]
    elif step == WizardStep.SELECTING_DATE_TIME:
        d = wizard.selection.appointment_date or wizard.booking_window()[0]
        booked = set()
        if wizard.selection.veterinarian_id is not None:
            booked = await wizard.appointments.booked_times(wizard.selection.veterinarian_id, d)
        now = wizard.clock()
        options.slots_date = d
        options.slots = [
            SlotOption(
                start_time=s.start_time,
                label=s.display_label,
                available=s.start_time not in booked and not is_past_slot(d, s.start_time, now),
            )
            for s in wizard.time_slots()
        ]
    return options


@router.post(
    "/{session_id}/veterinarian", response_model=WizardSnapshot,
    dependencies=[Depends(booking_write_limit)],
)
async def select_veterinarian(
    session_id: str,
    body: SelectVeterinarianRequest,
    wizard: BookingWizard = Depends(get_wizard),
) -> WizardSnapshot:
    await wizard.select_veterinarian(body.veterinarian_id)
    return _to_snapshot(session_id, wizard)


@router.post(
    "/{session_id}/pet", response_model=WizardSnapshot,
    dependencies=[Depends(booking_write_limit)],
)
async def select_pet(
    session_id: str,
    body: SelectPetRequest,
    wizard: BookingWizard = Depends(get_wizard),
) -> WizardSnapshot:
    await wizard.select_pet(body.pet_id)
    return _to_snapshot(session_id, wizard)


@router.post(
    "/{session_id}/date-time", response_model=WizardSnapshot,
    dependencies=[Depends(booking_write_limit)],
)
async def select_date_time(
    session_id: str,
    body: SelectDateTimeRequest,
    wizard: BookingWizard = Depends(get_wizard),
) -> WizardSnapshot:
    wizard.select_date_time(body.appointment_date, body.appointment_time)
    return _to_snapshot(session_id, wizard)


@router.post(
    "/{session_id}/details", response_model=WizardSnapshot,
    dependencies=[Depends(booking_write_limit)],
)
async def enter_details(
    session_id: str,
    body: EnterDetailsRequest,
    wizard: BookingWizard = Depends(get_wizard),
) -> WizardSnapshot:
    """Save reason and symptoms, then continue to the confirmation step."""
    wizard.enter_details(body.reason_for_visit, body.symptoms)
    await wizard.advance()
    return _to_snapshot(session_id, wizard)


@router.post(
    "/{session_id}/continue", response_model=WizardSnapshot,
    dependencies=[Depends(booking_write_limit)],
)
async def continue_booking(session_id: str, wizard: BookingWizard = Depends(get_wizard)) -> WizardSnapshot:
    await wizard.advance()
    return _to_snapshot(session_id, wizard)


@router.post(
    "/{session_id}/back", response_model=WizardSnapshot,
    dependencies=[Depends(booking_write_limit)],
)
async def go_back(session_id: str, wizard: BookingWizard = Depends(get_wizard)) -> WizardSnapshot:
    await wizard.back()
    return _to_snapshot(session_id, wizard)


@router.post(
    "/{session_id}/confirm", response_model=ConfirmResponse, status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(booking_write_limit)],
)
async def confirm_booking(
    session_id: str, wizard: BookingWizard = Depends(get_wizard)
) -> ConfirmResponse | JSONResponse:
    """Submit the booking. A rejection also returns the current wizard snapshot."""
    try:
        appointment = await wizard.confirm()
    except BookingError as e:
        return JSONResponse(
            status_code=e.status_code,
            content={
                "detail": e.message,
                "code": e.code,
                "session": _to_snapshot(session_id, wizard).model_dump(mode="json"),
            },
        )
    return ConfirmResponse(
        appointment=AppointmentPublic.model_validate(appointment),
        session=_to_snapshot(session_id, wizard),
    )


@router.delete(
    "/{session_id}", status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(booking_write_limit)],
)
async def abandon_booking(
    session_id: str,
    actor_id: str = Depends(get_current_actor_id),
    store: BookingSessionStore = Depends(get_session_store),
) -> None:
    """Close the wizard. Nothing was written, so there is nothing to undo."""
    store.discard(session_id, actor_id)
