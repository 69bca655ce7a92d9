from collections.abc import AsyncGenerator

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from pawcare.core.db import get_session
from pawcare.core.security import decode_access_token
from pawcare.services.booking_wizard import BookingWizard
from pawcare.services.repository import SqlAppointmentRepository, SqlDirectoryRepository
from pawcare.services.session_store import BookingSessionStore

security = HTTPBearer(auto_error=False)


async def get_current_actor_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> str:
    """Resolve the authenticated actor from the bearer token. Tokens are issued elsewhere."""
    if not credentials or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )
    actor_id = decode_access_token(credentials.credentials)
    if not actor_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return actor_id


def get_directory(session: AsyncSession = Depends(get_session)) -> SqlDirectoryRepository:
    return SqlDirectoryRepository(session)


def get_appointment_repository(session: AsyncSession = Depends(get_session)) -> SqlAppointmentRepository:
    return SqlAppointmentRepository(session)


async def get_owner_profile_id(
    actor_id: str = Depends(get_current_actor_id),
    directory: SqlDirectoryRepository = Depends(get_directory),
) -> int:
    owner_id = await directory.get_owner_profile_id(actor_id)
    if owner_id is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Pet owner profile not found",
        )
    return owner_id


def get_session_store(request: Request) -> BookingSessionStore:
    return request.app.state.booking_sessions


async def get_wizard(
    session_id: str,
    actor_id: str = Depends(get_current_actor_id),
    store: BookingSessionStore = Depends(get_session_store),
    directory: SqlDirectoryRepository = Depends(get_directory),
    appointments: SqlAppointmentRepository = Depends(get_appointment_repository),
) -> AsyncGenerator[BookingWizard, None]:
    """Hold the session's lock for the whole request and apply any pending reset."""
    async with store.checkout(session_id, actor_id) as state:
        wizard = BookingWizard(state, directory, appointments)
        await wizard.reset_if_due()
        yield wizard
