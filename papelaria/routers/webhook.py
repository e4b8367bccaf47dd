from fastapi import APIRouter, Depends

from papelaria.logging_config import get_logger
from papelaria.runtime import get_engine
from papelaria.schemas.webhook import WebhookRequest, WebhookResponse
from papelaria.services.session_engine import SessionEngine

logger = get_logger("webhook")

router = APIRouter()


@router.post("/webhook", response_model=WebhookResponse)
async def handle_webhook(payload: WebhookRequest, engine: SessionEngine = Depends(get_engine)):
    """Inbound message from the WhatsApp gateway."""
    event = payload.to_event()
    if event is None:
        logger.warning("Webhook without sender", extra={"context": {"message_type": payload.body.messageType}})
        return WebhookResponse(success=False, message="Missing sender")

    outcome = await engine.handle_event(event)

    return WebhookResponse(
        success=True,
        message="processed" if outcome.admitted else "rejected",
        admitted=outcome.admitted,
        rejection=outcome.rejection.value if outcome.rejection else None,
        intent=outcome.intent.value if outcome.intent else None,
        state=outcome.state.value if outcome.state else None,
        action=outcome.action,
        replies=list(outcome.replies),
    )
