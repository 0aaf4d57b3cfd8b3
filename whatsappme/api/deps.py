"""Dependencias compartidas para acceder al estado de la app."""

from fastapi import Request

from whatsappme.core.config import Settings
from whatsappme.services.relay import RelayService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_relay(request: Request) -> RelayService:
    """Retorna el `RelayService` construido al arrancar."""
    return request.app.state.relay
