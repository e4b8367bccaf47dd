from unittest.mock import AsyncMock, MagicMock, Mock, patch

import httpx
import pytest

from papelaria.services.gateway_service import WhatsAppGateway, is_group_jid
from papelaria.services.result import BAD_PAYLOAD, TRANSPORT_ERROR


def mock_async_client(mock_client_class, response=None, error=None):
    mock_client = MagicMock()
    mock_client_class.return_value.__aenter__.return_value = mock_client
    mock_client.post = AsyncMock(return_value=response, side_effect=error)
    mock_client.get = AsyncMock(return_value=response, side_effect=error)
    return mock_client


def gateway():
    return WhatsAppGateway("http://gateway/api/", "tok", "inst-1", timeout_seconds=5)


class TestGroupJid:
    def test_detects_groups(self):
        assert is_group_jid("120363000000000000@g.us")
        assert not is_group_jid("5531999990000@s.whatsapp.net")
        assert not is_group_jid("")


class TestSendReply:
    @pytest.mark.asyncio
    @patch("papelaria.services.gateway_service.httpx.AsyncClient")
    async def test_posts_text(self, mock_client_class):
        mock_client = mock_async_client(mock_client_class, Mock(status_code=200))

        result = await gateway().send_reply("5531@s.whatsapp.net", "Olá")

        assert result.ok is True
        url = mock_client.post.call_args[0][0]
        payload = mock_client.post.call_args[1]["json"]
        assert url == "http://gateway/api/send-text"
        assert payload == {"token": "tok", "instance_id": "inst-1", "jid": "5531@s.whatsapp.net", "msg": "Olá"}

    @pytest.mark.asyncio
    @patch("papelaria.services.gateway_service.httpx.AsyncClient")
    async def test_non_200_is_transport_error(self, mock_client_class):
        mock_async_client(mock_client_class, Mock(status_code=500, text="down"))

        result = await gateway().send_reply("5531@s.whatsapp.net", "Olá")

        assert result.ok is False
        assert result.error_code == TRANSPORT_ERROR

    @pytest.mark.asyncio
    @patch("papelaria.services.gateway_service.httpx.AsyncClient")
    async def test_network_error_is_transport_error(self, mock_client_class):
        mock_async_client(mock_client_class, error=httpx.ConnectError("refused"))

        result = await gateway().send_reply("5531@s.whatsapp.net", "Olá")

        assert result.error_code == TRANSPORT_ERROR

    @pytest.mark.asyncio
    async def test_empty_text_is_rejected(self):
        result = await gateway().send_reply("5531@s.whatsapp.net", "")
        assert result.error_code == BAD_PAYLOAD


class TestFetchAttachment:
    @pytest.mark.asyncio
    @patch("papelaria.services.gateway_service.httpx.AsyncClient")
    async def test_parses_media(self, mock_client_class):
        response = Mock(status_code=200)
        response.json.return_value = {"mimetype": "application/pdf", "data": "JVBERg==", "filename": "a.pdf"}
        mock_client = mock_async_client(mock_client_class, response)

        result = await gateway().fetch_attachment("MSG1")

        assert result.ok is True
        assert result.value.mime_type == "application/pdf"
        assert result.value.filename == "a.pdf"
        assert mock_client.get.call_args[0][0] == "http://gateway/api/media/MSG1"

    @pytest.mark.asyncio
    @patch("papelaria.services.gateway_service.httpx.AsyncClient")
    async def test_missing_data_is_bad_payload(self, mock_client_class):
        response = Mock(status_code=200)
        response.json.return_value = {"mimeType": "application/pdf"}
        mock_async_client(mock_client_class, response)

        result = await gateway().fetch_attachment("MSG1")

        assert result.error_code == BAD_PAYLOAD

    @pytest.mark.asyncio
    @patch("papelaria.services.gateway_service.httpx.AsyncClient")
    async def test_not_found(self, mock_client_class):
        mock_async_client(mock_client_class, Mock(status_code=404))

        result = await gateway().fetch_attachment("MSG1")

        assert result.error_code == TRANSPORT_ERROR
