import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from uuid import uuid4

from pawcare.core.errors import NotFound
from pawcare.services.booking_wizard import WizardState

logger = logging.getLogger(__name__)


class BookingSessionStore:
    """In-process home for wizard states between requests.

    Sessions of different owners (or of the same owner in two tabs) are
    independent. Requests against one session are serialized by its lock.
    """

    def __init__(self) -> None:
        self._states: dict[str, WizardState] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._states)

    def add(self, state: WizardState) -> str:
        session_id = uuid4().hex
        self._states[session_id] = state
        self._locks[session_id] = asyncio.Lock()
        return session_id

    def _get(self, session_id: str, actor_id: str) -> WizardState:
        state = self._states.get(session_id)
        # Someone else's session is reported the same as a missing one
        if state is None or state.actor_id != actor_id:
            raise NotFound("Booking session not found")
        return state

    @asynccontextmanager
    async def checkout(self, session_id: str, actor_id: str) -> AsyncIterator[WizardState]:
        self._get(session_id, actor_id)
        async with self._locks[session_id]:
            # Re-fetch: the session may have been discarded while waiting
            yield self._get(session_id, actor_id)

    def discard(self, session_id: str, actor_id: str) -> None:
        self._get(session_id, actor_id)
        self._states.pop(session_id, None)
        self._locks.pop(session_id, None)

    def prune(self, max_idle: timedelta, now: datetime | None = None) -> int:
        """Drop sessions idle longer than max_idle. Returns count removed."""
        cutoff = (now or datetime.now()) - max_idle
        stale = [sid for sid, s in self._states.items() if s.updated_at < cutoff and not self._locks[sid].locked()]
        for sid in stale:
            self._states.pop(sid, None)
            self._locks.pop(sid, None)
        return len(stale)
