from fastapi import APIRouter, Depends, HTTPException, status

from pawcare.api.deps import get_directory
from pawcare.api.schemas.booking import VeterinarianListResponse
from pawcare.models.clinic import VeterinarianPublic
from pawcare.services.repository import SqlDirectoryRepository

router = APIRouter(prefix="/clinics", tags=["clinics"])


@router.get("/{clinic_id}/veterinarians", response_model=VeterinarianListResponse)
async def list_clinic_veterinarians(
    clinic_id: int,
    directory: SqlDirectoryRepository = Depends(get_directory),
) -> VeterinarianListResponse:
    """Veterinarians of the clinic that can currently take new bookings."""
    clinic = await directory.get_clinic(clinic_id)
    if clinic is None or not clinic.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Clinic not found")
    vets = await directory.list_available_veterinarians(clinic_id)
    return VeterinarianListResponse(
        clinic_id=clinic_id,
        veterinarians=[VeterinarianPublic.model_validate(v) for v in vets],
    )
