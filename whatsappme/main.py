"""Punto de entrada de la aplicación FastAPI que recibe el webhook."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI

from whatsappme.api.routes.health import router as health_router
from whatsappme.channels.whatsapp.router import router as whatsapp_router
from whatsappme.core.config import Settings, settings as default_settings
from whatsappme.core.logging import configure_logging, get_logger, resolve_log_level
from whatsappme.core.middleware import RequestLoggingMiddleware
from whatsappme.services.meta_whatsapp import MetaWhatsAppGateway
from whatsappme.services.relay import RelayService

log = get_logger("whatsappme")


def build_relay(settings: Settings) -> RelayService:
    """Valida la configuración y arma el relay con el gateway de Meta."""
    settings.ensure_required()
    return RelayService(
        gateway=MetaWhatsAppGateway.from_settings(settings),
        operator_number=settings.user_phone_number or "",
    )


def setup_logging(settings: Settings) -> None:
    """Configura logging JSON con espejo en disco según `settings`."""
    default_log_level = logging.DEBUG if settings.environment != "production" else logging.INFO
    log_level = resolve_log_level(settings.log_level, default=default_log_level)
    per_logger_files = None
    if settings.log_file_path:
        log_dir = Path(settings.log_file_path).parent
        per_logger_files = {
            "whatsappme.request": str(log_dir / "whatsappme-request.log"),
            "whatsappme.channels.whatsapp": str(log_dir / "whatsappme-webhook.log"),
        }
    configure_logging(
        level=log_level,
        log_file=settings.log_file_path,
        per_logger_files=per_logger_files,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    if getattr(app.state, "relay", None) is None:
        app.state.relay = build_relay(app.state.settings)
    log.info(
        "server.ready",
        extra={"webhook_url": app.state.settings.webhook_url},
    )
    yield
    log.info("server.stopped")


def create_app(settings: Settings | None = None, relay: RelayService | None = None) -> FastAPI:
    """Crea y configura la instancia de FastAPI.

    Cuando no se inyecta `relay`, se construye en el arranque a partir de
    `settings`, lo que falla si faltan valores obligatorios.
    """
    settings = settings or default_settings

    app = FastAPI(title="WhatsApp-Me", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.relay = relay

    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(health_router)
    app.include_router(whatsapp_router)
    return app
