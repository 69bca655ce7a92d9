from unittest.mock import AsyncMock

import pytest

from pawcare.core.errors import OwnershipViolation
from pawcare.models.owner import Pet
from pawcare.services.ownership import OwnershipGuard


@pytest.fixture
def mock_directory():
    directory = AsyncMock()
    directory.get_owner_profile_id.return_value = 1
    directory.get_pet.return_value = Pet(id=10, name="Max", species="dog", owner_id=1)
    return directory


class TestOwnershipGuard:

    async def test_owner_of_pet_is_authorized(self, mock_directory):
        guard = OwnershipGuard(mock_directory)

        await guard.ensure_owns_pet("owner-1", 10)

        mock_directory.get_owner_profile_id.assert_awaited_once_with("owner-1")
        mock_directory.get_pet.assert_awaited_once_with(10)

    @pytest.mark.parametrize("actor_profile_id, pet_owner_id", [(1, 2), (2, 1), (7, 3), (3, 7)])
    async def test_mismatched_owner_is_rejected(self, mock_directory, actor_profile_id, pet_owner_id):
        mock_directory.get_owner_profile_id.return_value = actor_profile_id
        mock_directory.get_pet.return_value = Pet(id=10, name="Max", species="dog", owner_id=pet_owner_id)
        guard = OwnershipGuard(mock_directory)

        with pytest.raises(OwnershipViolation):
            await guard.ensure_owns_pet("someone", 10)

    async def test_actor_without_profile_is_rejected(self, mock_directory):
        mock_directory.get_owner_profile_id.return_value = None
        guard = OwnershipGuard(mock_directory)

        assert await guard.owns_pet("stranger", 10) is False
        mock_directory.get_pet.assert_not_called()

    async def test_unknown_pet_is_rejected(self, mock_directory):
        mock_directory.get_pet.return_value = None
        guard = OwnershipGuard(mock_directory)

        with pytest.raises(OwnershipViolation):
            await guard.ensure_owns_pet("owner-1", 999)


class TestOwnershipGuardWithDatabase:

    async def test_real_owner_and_foreign_pet(self, seed, directory):
        guard = OwnershipGuard(directory)

        assert await guard.owns_pet("owner-1", seed.max.id) is True
        assert await guard.owns_pet("owner-1", seed.luna.id) is False
        assert await guard.owns_pet("owner-2", seed.max.id) is False
