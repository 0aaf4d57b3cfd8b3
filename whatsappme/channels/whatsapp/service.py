"""Procesamiento de eventos del webhook de WhatsApp (Meta Cloud API).

Formato esperado::

    {
      "object": "whatsapp_business_account",
      "entry": [{
        "changes": [{
          "value": {
            "messages": [{"from", "id", "timestamp", "type", "text": {"body"}}],
            "statuses": [{"id", "status", "timestamp"}]
          }
        }]
      }]
    }

Una vez parseado el cuerpo, el webhook siempre se reconoce con éxito: los
fallos de entradas individuales se registran y no cortan el lote.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from whatsappme.core.logging import get_logger, log_event
from whatsappme.services.gateway import MessagingGateway
from whatsappme.services.relay import RelayService

from .schemas import InboundMessage, MessageStatus

logger = get_logger("whatsappme.channels.whatsapp")

WHATSAPP_OBJECT = "whatsapp_business_account"


@dataclass(slots=True)
class WebhookSummary:
    """Conteo de lo ocurrido en una entrega."""

    ignored: bool = False
    messages: int = 0
    skipped: int = 0
    failed: int = 0
    replies_resolved: int = 0
    statuses: int = 0


def _text_body(message: InboundMessage) -> str | None:
    return message.text.body if message.text else None


def _button_text(message: InboundMessage) -> str | None:
    return message.button.text if message.button else None


def _interactive_title(message: InboundMessage) -> str | None:
    interactive = message.interactive
    if interactive is None:
        return None
    reply = interactive.button_reply or interactive.list_reply
    return reply.title if reply else None


TEXT_EXTRACTORS: dict[str, Callable[[InboundMessage], str | None]] = {
    "text": _text_body,
    "button": _button_text,
    "interactive": _interactive_title,
}


def extract_text(message: InboundMessage) -> str | None:
    """Texto utilizable del mensaje, o ``None`` si el tipo no está soportado."""
    extractor = TEXT_EXTRACTORS.get(message.type)
    if extractor is None:
        return None
    return extractor(message) or None


def _as_list(container: dict[str, Any], field: str) -> list[Any]:
    """Lista bajo `field`; cualquier otra forma se registra y se omite."""
    items = container.get(field)
    if items is None:
        return []
    if not isinstance(items, list):
        logger.warning(
            "whatsapp.field_malformed",
            extra={"field": field, "field_type": type(items).__name__},
        )
        return []
    return items


def _iter_values(event: dict[str, Any]) -> Iterator[dict[str, Any]]:
    for entry in _as_list(event, "entry"):
        if not isinstance(entry, dict):
            continue
        for change in _as_list(entry, "changes"):
            if not isinstance(change, dict):
                continue
            value = change.get("value")
            if isinstance(value, dict):
                yield value


async def _mark_read(gateway: MessagingGateway, message_id: str) -> None:
    try:
        await gateway.mark_as_read(message_id)
    except Exception:  # best effort: no debe cortar el procesamiento
        logger.exception("whatsapp.mark_read_failed", extra={"message_id": message_id})


async def handle_message(relay: RelayService, raw: Any) -> bool | None:
    """Procesa un mensaje entrante.

    Returns:
        ``None`` si se omitió; en otro caso, si resolvió una espera pendiente.
    """
    try:
        message = InboundMessage.model_validate(raw)
    except ValidationError as exc:
        logger.warning("whatsapp.message_invalid", extra={"errors": exc.errors()})
        return None

    text = extract_text(message)
    if text is None:
        logger.info(
            "whatsapp.message_unsupported",
            extra={"message_type": message.type, "message_id": message.id},
        )
        return None

    log_event(
        logger,
        "whatsapp.message_received",
        sender=message.from_,
        message_id=message.id,
        preview=text[:50],
    )
    await _mark_read(relay.gateway, message.id)
    return relay.receive_message(message.from_, text, timestamp=message.sent_at)


def handle_status(raw: Any) -> bool:
    """Los recibos son informativos; sólo se registran."""
    try:
        status = MessageStatus.model_validate(raw)
    except ValidationError:
        logger.warning("whatsapp.status_invalid")
        return False
    log_event(
        logger,
        "whatsapp.status_update",
        message_id=status.id,
        status=status.status,
        status_timestamp=status.timestamp,
    )
    return True


async def process_event(relay: RelayService, event: dict[str, Any]) -> WebhookSummary:
    """Despacha mensajes y estados de una entrega ya verificada y parseada."""
    summary = WebhookSummary()
    if event.get("object") != WHATSAPP_OBJECT:
        logger.info("whatsapp.event_ignored", extra={"object": event.get("object")})
        summary.ignored = True
        return summary

    for value in _iter_values(event):
        for raw_message in _as_list(value, "messages"):
            try:
                resolved = await handle_message(relay, raw_message)
            except Exception:
                summary.failed += 1
                logger.exception("whatsapp.message_failed")
                continue
            if resolved is None:
                summary.skipped += 1
                continue
            summary.messages += 1
            if resolved:
                summary.replies_resolved += 1

        for raw_status in _as_list(value, "statuses"):
            try:
                if handle_status(raw_status):
                    summary.statuses += 1
            except Exception:
                logger.exception("whatsapp.status_failed")

    log_event(
        logger,
        "whatsapp.event_processed",
        messages=summary.messages,
        skipped=summary.skipped,
        failed=summary.failed,
        replies_resolved=summary.replies_resolved,
        statuses=summary.statuses,
    )
    return summary
