"""WhatsApp gateway client: outbound text, group lookup and media download."""

from typing import Optional, Protocol

import httpx

from papelaria.logging_config import get_logger
from papelaria.models import Attachment
from papelaria.services.result import BAD_PAYLOAD, TRANSPORT_ERROR, Result

logger = get_logger("gateway_service")

GROUP_JID_SUFFIX = "@g.us"


class Transport(Protocol):
    async def is_group_conversation(self, conversation_id: str) -> bool: ...

    async def send_reply(self, contact_id: str, text: str) -> Result[bool]: ...

    async def fetch_attachment(self, message_id: str) -> Result[Attachment]: ...


def is_group_jid(jid: str) -> bool:
    return (jid or "").strip().lower().endswith(GROUP_JID_SUFFIX)


class WhatsAppGateway:
    """HTTP client for the WhatsApp gateway that owns the paired session."""

    def __init__(
        self,
        base_url: str,
        token: Optional[str],
        instance_id: Optional[str],
        timeout_seconds: float = 30.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.instance_id = instance_id
        self.timeout_seconds = timeout_seconds

    def _auth_params(self) -> dict:
        params = {}
        if self.token:
            params["token"] = self.token
        if self.instance_id:
            params["instance_id"] = self.instance_id
        return params

    async def is_group_conversation(self, conversation_id: str) -> bool:
        return is_group_jid(conversation_id)

    async def send_reply(self, contact_id: str, text: str) -> Result[bool]:
        if not text:
            return Result.failure("Empty message", BAD_PAYLOAD)

        payload = {**self._auth_params(), "jid": contact_id, "msg": text}
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.post(f"{self.base_url}/send-text", json=payload)
        except httpx.HTTPError as e:
            logger.error(f"Error sending WhatsApp message: {e}", extra={"context": {"jid": contact_id}})
            return Result.failure(str(e), TRANSPORT_ERROR)

        if response.status_code != 200:
            logger.warning(
                f"Gateway rejected message: status={response.status_code}",
                extra={"context": {"jid": contact_id, "body": response.text[:200]}},
            )
            return Result.failure(f"status={response.status_code}", TRANSPORT_ERROR)
        return Result.success(True)

    async def fetch_attachment(self, message_id: str) -> Result[Attachment]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.get(f"{self.base_url}/media/{message_id}", params=self._auth_params())
        except httpx.HTTPError as e:
            logger.error(f"Error downloading media: {e}", extra={"context": {"message_id": message_id}})
            return Result.failure(str(e), TRANSPORT_ERROR)

        if response.status_code != 200:
            return Result.failure(f"status={response.status_code}", TRANSPORT_ERROR)

        try:
            body = response.json()
        except ValueError:
            return Result.failure("Media response is not JSON", BAD_PAYLOAD)

        mime_type = body.get("mimetype") or body.get("mimeType")
        data = body.get("data")
        if not mime_type or not data:
            return Result.failure("Media response without mimetype/data", BAD_PAYLOAD)
        return Result.success(Attachment(mime_type=mime_type, data=data, filename=body.get("filename")))
