from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol, Sequence

from papelaria.config import Settings
from papelaria.logging_config import get_logger
from papelaria.models import InboundEvent
from papelaria.services.timer_service import Clock

logger = get_logger("gate_service")


class RejectionReason(str, Enum):
    BLOCKED = "blocked"
    GROUP_CHAT = "group_chat"
    OUTSIDE_HOURS = "outside_hours"


@dataclass(frozen=True)
class Admission:
    admitted: bool
    reason: Optional[RejectionReason] = None

    @staticmethod
    def accept() -> "Admission":
        return Admission(admitted=True)

    @staticmethod
    def reject(reason: RejectionReason) -> "Admission":
        return Admission(admitted=False, reason=reason)


class GroupLookup(Protocol):
    async def is_group_conversation(self, conversation_id: str) -> bool: ...


class Gate(Protocol):
    async def check(self, event: InboundEvent) -> Optional[RejectionReason]: ...


class BlocklistGate:
    def __init__(self, blocked_ids: frozenset[str]):
        self.blocked_ids = blocked_ids

    async def check(self, event: InboundEvent) -> Optional[RejectionReason]:
        number = event.contact_id.split("@", 1)[0]
        if event.contact_id in self.blocked_ids or number in self.blocked_ids:
            return RejectionReason.BLOCKED
        return None


class GroupChatGate:
    def __init__(self, lookup: GroupLookup):
        self.lookup = lookup

    async def check(self, event: InboundEvent) -> Optional[RejectionReason]:
        is_group = event.is_group
        if is_group is None:
            is_group = await self.lookup.is_group_conversation(event.conversation_id)
        return RejectionReason.GROUP_CHAT if is_group else None


class BusinessHoursGate:
    """Open on weekdays first..last (inclusive) from open_hour:00 to close_hour:00 (exclusive)."""

    def __init__(self, clock: Clock, first_weekday: int, last_weekday: int, open_hour: int, close_hour: int):
        self.clock = clock
        self.first_weekday = first_weekday
        self.last_weekday = last_weekday
        self.open_hour = open_hour
        self.close_hour = close_hour

    def is_open(self) -> bool:
        now = self.clock.now()
        return (
            self.first_weekday <= now.weekday() <= self.last_weekday
            and self.open_hour <= now.hour < self.close_hour
        )

    async def check(self, event: InboundEvent) -> Optional[RejectionReason]:
        return None if self.is_open() else RejectionReason.OUTSIDE_HOURS


class GateChain:
    def __init__(self, gates: Sequence[Gate]):
        self.gates = list(gates)

    async def admit(self, event: InboundEvent) -> Admission:
        for gate in self.gates:
            reason = await gate.check(event)
            if reason is not None:
                logger.info(
                    "Event rejected",
                    extra={"context": {"contact_id": event.contact_id, "reason": reason.value}},
                )
                return Admission.reject(reason)
        return Admission.accept()


def build_gate_chain(settings: Settings, clock: Clock, lookup: GroupLookup) -> GateChain:
    """Blocklist, then group chats, then business hours."""
    return GateChain(
        [
            BlocklistGate(settings.blocked_ids),
            GroupChatGate(lookup),
            BusinessHoursGate(
                clock,
                first_weekday=settings.business_first_weekday,
                last_weekday=settings.business_last_weekday,
                open_hour=settings.business_open_hour,
                close_hour=settings.business_close_hour,
            ),
        ]
    )
