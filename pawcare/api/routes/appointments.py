import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from pawcare.api.deps import get_appointment_repository, get_owner_profile_id
from pawcare.models.appointment import Appointment, AppointmentPublic, AppointmentStatus
from pawcare.services.repository import SqlAppointmentRepository

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/appointments", tags=["appointments"])


def _to_public(a: Appointment) -> AppointmentPublic:
    return AppointmentPublic.model_validate(a)


@router.get("", response_model=list[AppointmentPublic])
async def list_my_appointments(
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    limit: int = Query(10, ge=1, le=100),
    page: int = Query(1, ge=1),
    owner_id: int = Depends(get_owner_profile_id),
    appointments: SqlAppointmentRepository = Depends(get_appointment_repository),
) -> list[AppointmentPublic]:
    """The caller's appointments ordered by date and time, optionally filtered by status."""
    try:
        rows = await appointments.list_for_owner(
            owner_id, status=status_filter, limit=limit, offset=(page - 1) * limit
        )
        return [_to_public(a) for a in rows]
    except Exception as e:
        logger.exception("List appointments failed: %s", e)
        raise HTTPException(status_code=500, detail=f"{type(e).__name__}: {e}") from e
