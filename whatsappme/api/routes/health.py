"""Endpoints informativos: descriptor raíz y salud."""
from typing import Any

from fastapi import APIRouter, Depends

from whatsappme.api.deps import get_relay
from whatsappme.services.relay import RelayService

router = APIRouter(tags=["health"])

DESCRIPTOR = {
    "title": "WhatsApp-Me",
    "description": (
        "Relay that lets a coding assistant message you on WhatsApp. Get notified on your "
        "phone when a task finishes, fails, or needs your input."
    ),
    "setup_details": "https://github.com/asharibali/whatsapp-me",
}


@router.get("/", summary="Descriptor del proyecto")
def root() -> dict[str, str]:
    return DESCRIPTOR


@router.get("/health", summary="Estado del servicio")
def healthcheck(relay: RelayService = Depends(get_relay)) -> dict[str, Any]:
    """Retorna conversaciones activas y uptime del proceso."""
    return {
        "status": "ok",
        "activeConversations": relay.active_conversation_count,
        "uptime": round(relay.uptime_seconds, 3),
    }
