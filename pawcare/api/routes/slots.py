from datetime import date, datetime, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query, status

from pawcare.api.deps import get_appointment_repository, get_directory
from pawcare.api.schemas.appointment import AvailableSlotsResponse, SlotInfo
from pawcare.core.config import settings
from pawcare.services.repository import SqlAppointmentRepository, SqlDirectoryRepository
from pawcare.services.slot_service import get_available_slots_for_date

router = APIRouter(prefix="/slots", tags=["slots"])


@router.get("/available", response_model=AvailableSlotsResponse)
async def available_slots(
    veterinarian_id: int = Query(...),
    date_param: date = Query(..., alias="date"),
    directory: SqlDirectoryRepository = Depends(get_directory),
    appointments: SqlAppointmentRepository = Depends(get_appointment_repository),
) -> AvailableSlotsResponse:
    """Return the slot grid of the veterinarian's clinic for the date; each slot says whether it is free."""
    vet = await directory.get_veterinarian(veterinarian_id)
    if vet is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Veterinarian not found")
    clinic = await directory.get_clinic(vet.clinic_id) if vet.clinic_id is not None else None
    slots_with_availability = await get_available_slots_for_date(
        appointments, veterinarian_id, date_param, clinic, now=datetime.now()
    )
    delta = timedelta(minutes=settings.slot_duration_minutes)
    slot_infos = [
        SlotInfo(
            start_time=s.start_time,
            end_time=(datetime.combine(date_param, s.start_time) + delta).time(),
            label=s.display_label,
            available=avail,
        )
        for s, avail in slots_with_availability
    ]
    return AvailableSlotsResponse(
        date=date_param.isoformat(),
        veterinarian_id=veterinarian_id,
        slots=slot_infos,
    )
