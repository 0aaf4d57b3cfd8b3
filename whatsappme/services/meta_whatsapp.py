"""Cliente de la WhatsApp Cloud API (Graph API de Meta) vía REST."""

from __future__ import annotations

import asyncio
from typing import Any

import httpx

from whatsappme.core.config import Settings
from whatsappme.core.logging import get_logger
from whatsappme.core.phone import normalize_phone_number

from .gateway import GatewayError

logger = get_logger(__name__)

GRAPH_API_BASE = "https://graph.facebook.com"


class MetaWhatsAppGateway:
    """Implementación de `MessagingGateway` sobre la Cloud API."""

    name = "meta-whatsapp"

    def __init__(
        self,
        *,
        phone_number_id: str,
        access_token: str,
        api_version: str = "v18.0",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.phone_number_id = phone_number_id
        self._access_token = access_token
        self._base_url = f"{GRAPH_API_BASE}/{api_version}"
        self._timeout = timeout
        self._transport = transport
        logger.info(
            "gateway.initialized",
            extra={"gateway": self.name, "phone_number_id": phone_number_id},
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> MetaWhatsAppGateway:
        if not settings.phone_number_id or not settings.access_token:
            msg = "Meta WhatsApp credentials are not configured"
            raise RuntimeError(msg)
        return cls(
            phone_number_id=settings.phone_number_id,
            access_token=settings.access_token,
            api_version=settings.graph_api_version,
            timeout=settings.request_timeout,
        )

    @property
    def messages_url(self) -> str:
        return f"{self._base_url}/{self.phone_number_id}/messages"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._timeout,
            transport=self._transport,
            headers={"Authorization": f"Bearer {self._access_token}"},
        )

    async def send_text(self, to: str, text: str) -> str:
        payload: dict[str, Any] = {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": normalize_phone_number(to),
            "type": "text",
            "text": {"preview_url": False, "body": text},
        }
        try:
            async with self._client() as client:
                response = await client.post(self.messages_url, json=payload)
        except httpx.RequestError as exc:
            msg = f"Error de red al enviar mensaje: {exc}"
            logger.exception("gateway.send_failed", extra={"to": to})
            raise GatewayError(msg) from exc

        if response.is_error:
            detail = _error_detail(response)
            logger.error(
                "gateway.send_rejected",
                extra={"status_code": response.status_code, "detail": detail},
            )
            raise GatewayError(f"Meta API error: {detail}")

        try:
            message_id = response.json()["messages"][0]["id"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise GatewayError("No message ID returned from Meta API") from exc
        if not message_id:
            raise GatewayError("No message ID returned from Meta API")

        logger.info("gateway.message_sent", extra={"message_id": message_id})
        return message_id

    async def mark_as_read(self, message_id: str) -> None:
        payload = {
            "messaging_product": "whatsapp",
            "status": "read",
            "message_id": message_id,
        }
        try:
            async with self._client() as client:
                response = await client.post(self.messages_url, json=payload)
        except httpx.RequestError:
            logger.exception("gateway.mark_read_failed", extra={"message_id": message_id})
            return
        if response.is_error:
            logger.warning(
                "gateway.mark_read_rejected",
                extra={
                    "message_id": message_id,
                    "status_code": response.status_code,
                    "detail": _error_detail(response),
                },
            )

    async def send_typing_indicator(self, to: str, duration_ms: int = 5000) -> None:
        # La Cloud API no expone un indicador independiente; se simula con
        # una pausa corta antes del envío real.
        await asyncio.sleep(min(duration_ms, 1000) / 1000)


def _error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.reason_phrase or str(response.status_code)
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return response.reason_phrase or str(response.status_code)
