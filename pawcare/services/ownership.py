import logging

from pawcare.core.errors import OwnershipViolation
from pawcare.services.repository import DirectoryRepository

logger = logging.getLogger(__name__)


class OwnershipGuard:
    """Confirms the acting pet owner owns the pet being booked."""

    def __init__(self, directory: DirectoryRepository) -> None:
        self.directory = directory

    async def owns_pet(self, actor_id: str, pet_id: int) -> bool:
        owner_id = await self.directory.get_owner_profile_id(actor_id)
        if owner_id is None:
            logger.info("Ownership check: no pet owner profile for actor %s", actor_id)
            return False
        pet = await self.directory.get_pet(pet_id)
        if pet is None:
            logger.info("Ownership check: pet %s not found", pet_id)
            return False
        return pet.owner_id == owner_id

    async def ensure_owns_pet(self, actor_id: str, pet_id: int) -> None:
        if not await self.owns_pet(actor_id, pet_id):
            logger.warning("Pet ownership verification failed: actor=%s pet=%s", actor_id, pet_id)
            raise OwnershipViolation()
