import asyncio
import dataclasses
from datetime import datetime
from typing import Iterator, Optional

from papelaria.models import SessionState


class StaleSessionError(Exception):
    def __init__(self, contact_id: str, expected_version: int, current_version: Optional[int]):
        self.contact_id = contact_id
        self.expected_version = expected_version
        self.current_version = current_version
        super().__init__(
            f"Stale session for {contact_id}: expected v{expected_version}, found v{current_version}"
        )


class SessionStore:
    """In-memory sessions keyed by contact id, one asyncio lock per contact.

    Callers hold ``lock(contact_id)`` around a get-or-create / replace pair.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, SessionState] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def lock(self, contact_id: str) -> asyncio.Lock:
        lock = self._locks.get(contact_id)
        if lock is None:
            lock = self._locks.setdefault(contact_id, asyncio.Lock())
        return lock

    def get(self, contact_id: str) -> Optional[SessionState]:
        return self._sessions.get(contact_id)

    def get_or_create(self, contact_id: str, now: datetime) -> SessionState:
        session = self._sessions.get(contact_id)
        if session is None:
            session = self._sessions.setdefault(contact_id, SessionState(contact_id=contact_id, last_activity=now))
        return session

    def replace(self, expected: SessionState, new: SessionState) -> SessionState:
        """Swap in ``new`` only if the stored session is still ``expected``."""
        if new.contact_id != expected.contact_id:
            raise ValueError("contact_id is immutable")
        current = self._sessions.get(expected.contact_id)
        if current is None or current.version != expected.version:
            raise StaleSessionError(
                expected.contact_id, expected.version, current.version if current else None
            )
        stored = dataclasses.replace(new, version=expected.version + 1)
        self._sessions[expected.contact_id] = stored
        return stored

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self) -> Iterator[SessionState]:
        return iter(list(self._sessions.values()))
