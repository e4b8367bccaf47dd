from dataclasses import dataclass
from typing import Optional, Union

DEFAULT_SENDER_NAME = "Cliente"


@dataclass(frozen=True)
class Attachment:
    mime_type: str
    data: Union[bytes, str]  # raw bytes or base64 text from the gateway
    filename: Optional[str] = None


@dataclass(frozen=True)
class InboundEvent:
    contact_id: str
    conversation_id: str
    message_id: str
    text: str = ""
    has_attachment: bool = False
    attachment: Optional[Attachment] = None
    sender_name: str = DEFAULT_SENDER_NAME
    is_group: Optional[bool] = None  # set when the gateway already knows
