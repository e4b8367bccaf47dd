import base64
from datetime import datetime, timedelta
from typing import Optional
from unittest.mock import AsyncMock
from uuid import uuid4
from zoneinfo import ZoneInfo

import pytest

from papelaria.config import Settings
from papelaria.models import Attachment, InboundEvent, TimerHandle
from papelaria.services.alert_service import OperatorAlerts
from papelaria.services.catalog import default_catalog
from papelaria.services.gate_service import build_gate_chain
from papelaria.services.media_service import MediaIntake
from papelaria.services.result import STORAGE_ERROR, TRANSPORT_ERROR, Result
from papelaria.services.session_engine import SessionEngine
from papelaria.services.session_store import SessionStore

SAO_PAULO = ZoneInfo("America/Sao_Paulo")
CONTACT = "5531999990000@s.whatsapp.net"
BLOCKED = "5531888880000@s.whatsapp.net"
PDF_BYTES = b"%PDF-1.4 fake document"


def at(hour: int, minute: int = 0, day: int = 5) -> datetime:
    """March 2024: the 5th is a Tuesday, the 10th a Sunday."""
    return datetime(2024, 3, day, hour, minute, tzinfo=SAO_PAULO)


class ManualClock:
    def __init__(self, start: datetime):
        self.current = start

    def now(self) -> datetime:
        return self.current

    def set(self, when: datetime) -> None:
        self.current = when


class ManualTimerService:
    """Timers that only fire when the test advances time."""

    def __init__(self, clock: ManualClock):
        self.clock = clock
        self.scheduled: dict[str, tuple[TimerHandle, object]] = {}
        self.canceled: list[TimerHandle] = []

    def schedule_once(self, delay: timedelta, callback, label: str = "") -> TimerHandle:
        handle = TimerHandle(id=uuid4().hex, label=label, due_at=self.clock.now() + delay)
        self.scheduled[handle.id] = (handle, callback)
        return handle

    def cancel(self, handle: TimerHandle) -> bool:
        if self.scheduled.pop(handle.id, None) is None:
            return False
        self.canceled.append(handle)
        return True

    def cancel_all(self) -> int:
        count = len(self.scheduled)
        self.scheduled.clear()
        return count

    def pending_labels(self) -> list[str]:
        return sorted(handle.label for handle, _ in self.scheduled.values())

    async def advance(self, delta: timedelta) -> None:
        target = self.clock.now() + delta
        while True:
            due = [item for item in self.scheduled.values() if item[0].due_at <= target]
            if not due:
                break
            handle, callback = min(due, key=lambda item: item[0].due_at)
            del self.scheduled[handle.id]
            self.clock.set(handle.due_at)
            await callback(handle)
        self.clock.set(target)


class FakeTransport:
    def __init__(self):
        self.sent: list[tuple[str, str]] = []
        self.groups: set[str] = set()
        self.media: dict[str, Attachment] = {}
        self.fail_sends = False

    async def is_group_conversation(self, conversation_id: str) -> bool:
        return conversation_id in self.groups

    async def send_reply(self, contact_id: str, text: str) -> Result[bool]:
        if self.fail_sends:
            return Result.failure("gateway down", TRANSPORT_ERROR)
        self.sent.append((contact_id, text))
        return Result.success(True)

    async def fetch_attachment(self, message_id: str) -> Result[Attachment]:
        attachment = self.media.get(message_id)
        if attachment is None:
            return Result.failure("not found", TRANSPORT_ERROR)
        return Result.success(attachment)

    def texts_for(self, contact_id: str = CONTACT) -> list[str]:
        return [text for contact, text in self.sent if contact == contact_id]


class MemoryStorage:
    def __init__(self):
        self.files: dict[str, bytes] = {}
        self.fail = False

    def store_file(self, name: str, data: bytes) -> Result[str]:
        if self.fail:
            return Result.failure("disk full", STORAGE_ERROR)
        self.files[name] = data
        return Result.success(f"/uploads/{name}")


def make_event(
    text: str = "",
    contact_id: str = CONTACT,
    attachment: Optional[Attachment] = None,
    has_attachment: Optional[bool] = None,
    conversation_id: Optional[str] = None,
    is_group: Optional[bool] = None,
    sender_name: str = "Ana",
) -> InboundEvent:
    return InboundEvent(
        contact_id=contact_id,
        conversation_id=conversation_id or contact_id,
        message_id=uuid4().hex[:16].upper(),
        text=text,
        has_attachment=attachment is not None if has_attachment is None else has_attachment,
        attachment=attachment,
        sender_name=sender_name,
        is_group=is_group,
    )


def pdf_attachment() -> Attachment:
    return Attachment(mime_type="application/pdf", data=base64.b64encode(PDF_BYTES).decode())


@pytest.fixture
def clock():
    return ManualClock(at(10))


@pytest.fixture
def timers(clock):
    return ManualTimerService(clock)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def alerts():
    return AsyncMock(spec=OperatorAlerts)


@pytest.fixture
def test_settings():
    return Settings(_env_file=None, blocked_numbers=BLOCKED)


@pytest.fixture
def engine(test_settings, clock, timers, transport, storage, alerts):
    return SessionEngine(
        catalog=default_catalog(test_settings.shop_name),
        store=SessionStore(),
        gates=build_gate_chain(test_settings, clock, transport),
        transport=transport,
        intake=MediaIntake(storage, clock),
        clock=clock,
        timers=timers,
        alerts=alerts,
        pix_key=test_settings.pix_key,
    )
