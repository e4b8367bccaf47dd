from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from papelaria.models import SessionState, TimerHandle
from papelaria.services.state_machine import state_of


class TimerView(BaseModel):
    id: str
    label: str
    due_at: datetime

    @classmethod
    def from_handle(cls, handle: TimerHandle) -> "TimerView":
        return cls(id=handle.id, label=handle.label, due_at=handle.due_at)


class SessionView(BaseModel):
    contact_id: str
    state: str
    last_activity: datetime
    awaiting_upload: Optional[str] = None
    handoff_active: bool = False
    handoff_timer: Optional[TimerView] = None
    pending_follow_ups: list[TimerView] = []
    version: int

    @classmethod
    def from_session(cls, session: SessionState) -> "SessionView":
        return cls(
            contact_id=session.contact_id,
            state=state_of(session).value,
            last_activity=session.last_activity,
            awaiting_upload=session.awaiting_upload,
            handoff_active=session.handoff_active,
            handoff_timer=TimerView.from_handle(session.handoff_timer) if session.handoff_timer else None,
            pending_follow_ups=sorted(
                (TimerView.from_handle(handle) for handle in session.pending_follow_ups),
                key=lambda view: view.due_at,
            ),
            version=session.version,
        )
