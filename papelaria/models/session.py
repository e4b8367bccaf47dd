from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class TimerHandle:
    id: str
    label: str
    due_at: datetime


@dataclass(frozen=True)
class SessionState:
    """Conversation state of one contact. Instances are immutable; the store swaps them."""

    contact_id: str
    last_activity: datetime
    awaiting_upload: Optional[str] = None  # pending-request kind: print, photo
    handoff_active: bool = False
    handoff_timer: Optional[TimerHandle] = None
    pending_follow_ups: frozenset[TimerHandle] = field(default_factory=frozenset)
    version: int = 0
