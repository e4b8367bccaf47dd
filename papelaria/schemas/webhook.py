from typing import Optional

from pydantic import AliasChoices, BaseModel, Field

from papelaria.models import DEFAULT_SENDER_NAME, Attachment, InboundEvent


class WebhookMetadata(BaseModel):
    sender: Optional[str] = None
    senderName: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("senderName", "sender_name", "pushName"),
    )
    timestamp: Optional[int] = None
    messageId: Optional[str] = None
    remoteJid: Optional[str] = None
    isGroup: Optional[bool] = Field(
        default=None,
        validation_alias=AliasChoices("isGroup", "is_group"),
    )


class WebhookMedia(BaseModel):
    mimetype: str = Field(validation_alias=AliasChoices("mimetype", "mimeType", "mime_type"))
    data: str
    filename: Optional[str] = None


class WebhookBody(BaseModel):
    messageType: Optional[str] = "text"
    message: Optional[str] = None
    metadata: Optional[WebhookMetadata] = None
    mediaData: Optional[WebhookMedia] = None
    hasMedia: Optional[bool] = None


class WebhookRequest(BaseModel):
    body: WebhookBody

    def to_event(self) -> Optional[InboundEvent]:
        """Build the engine event; None when the payload has no sender."""
        body = self.body
        metadata = body.metadata or WebhookMetadata()
        conversation_id = metadata.remoteJid or metadata.sender
        contact_id = metadata.sender or metadata.remoteJid
        if not contact_id:
            return None

        attachment = None
        if body.mediaData is not None:
            attachment = Attachment(
                mime_type=body.mediaData.mimetype,
                data=body.mediaData.data,
                filename=body.mediaData.filename,
            )
        has_attachment = attachment is not None or bool(body.hasMedia) or (body.messageType or "text") != "text"

        return InboundEvent(
            contact_id=contact_id,
            conversation_id=conversation_id,
            message_id=metadata.messageId or "",
            text=body.message or "",
            has_attachment=has_attachment,
            attachment=attachment,
            sender_name=(metadata.senderName or "").strip() or DEFAULT_SENDER_NAME,
            is_group=metadata.isGroup,
        )


class WebhookResponse(BaseModel):
    success: bool
    message: str
    admitted: bool = False
    rejection: Optional[str] = None
    intent: Optional[str] = None
    state: Optional[str] = None
    action: Optional[str] = None
    replies: list[str] = []
