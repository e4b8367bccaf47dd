from papelaria.models.event import DEFAULT_SENDER_NAME, Attachment, InboundEvent
from papelaria.models.session import SessionState, TimerHandle

__all__ = [
    "Attachment",
    "InboundEvent",
    "DEFAULT_SENDER_NAME",
    "SessionState",
    "TimerHandle",
]
