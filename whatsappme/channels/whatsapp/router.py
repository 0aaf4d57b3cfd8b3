"""Endpoints del webhook de WhatsApp (Meta Cloud API)."""

import json

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse

from whatsappme.api.deps import get_relay, get_settings
from whatsappme.core.config import Settings
from whatsappme.core.security import verify_token
from whatsappme.services.relay import RelayService

from . import service
from .deps import verify_meta_signature

router = APIRouter(prefix="/webhook", tags=["whatsapp"])


@router.get("", summary="Handshake de suscripción del webhook", response_class=PlainTextResponse)
async def verify_subscription(
    mode: str | None = Query(default=None, alias="hub.mode"),
    token: str | None = Query(default=None, alias="hub.verify_token"),
    challenge: str | None = Query(default=None, alias="hub.challenge"),
    settings: Settings = Depends(get_settings),
) -> PlainTextResponse:
    """Responde el `hub.challenge` cuando Meta presenta el token correcto."""
    if mode == "subscribe" and verify_token(settings.verify_token or "", token):
        service.logger.info("whatsapp.subscription_verified")
        return PlainTextResponse(challenge or "")
    service.logger.warning("whatsapp.subscription_rejected", extra={"mode": mode})
    return PlainTextResponse("Forbidden", status_code=403)


@router.post("", summary="Webhook de recepción WhatsApp", response_class=PlainTextResponse)
async def whatsapp_webhook(
    body: bytes = Depends(verify_meta_signature),
    relay: RelayService = Depends(get_relay),
) -> PlainTextResponse:
    """Procesa mensajes y estados entrantes ya firmados por Meta."""
    try:
        event = json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError):
        service.logger.warning("whatsapp.webhook_unparseable", extra={"payload_size": len(body)})
        return PlainTextResponse("Invalid request", status_code=400)
    if not isinstance(event, dict):
        service.logger.warning("whatsapp.webhook_not_object")
        return PlainTextResponse("Invalid request", status_code=400)

    await service.process_event(relay, event)
    return PlainTextResponse("OK")
