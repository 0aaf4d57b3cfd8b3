"""Arranque del proceso: servidor HTTP del webhook + herramientas MCP por stdio.

Ambos corren en el mismo event loop y comparten un único `RelayService`. El
proceso termina cuando el asistente cierra stdin o cuando el servidor HTTP se
detiene (SIGINT/SIGTERM).
"""

from __future__ import annotations

import argparse
import asyncio
import sys

import uvicorn

from whatsappme.core.config import ConfigurationError, Settings, settings as default_settings
from whatsappme.core.logging import get_logger
from whatsappme.core.security import mask_secret
from whatsappme.main import build_relay, create_app, setup_logging
from whatsappme.tools.server import build_tool_server

logger = get_logger("whatsappme.cli")


async def serve(settings: Settings) -> None:
    relay = build_relay(settings)
    app = create_app(settings, relay)
    http_server = uvicorn.Server(
        uvicorn.Config(
            app,
            host=settings.host,
            port=settings.port,
            log_config=None,
        )
    )
    tools = build_tool_server(relay, settings)

    logger.info(
        "relay.starting",
        extra={
            "port": settings.port,
            "webhook_url": settings.webhook_url,
            "operator": settings.user_phone_number,
            "access_token": mask_secret(settings.access_token),
        },
    )

    http_task = asyncio.create_task(http_server.serve(), name="whatsappme-http")
    tools_task = asyncio.create_task(tools.run_stdio_async(), name="whatsappme-tools")
    done, pending = await asyncio.wait(
        {http_task, tools_task}, return_when=asyncio.FIRST_COMPLETED
    )

    logger.info("relay.shutting_down")
    http_server.should_exit = True
    tools_task.cancel()
    await asyncio.gather(*pending, return_exceptions=True)
    for task in done:
        task.result()
    logger.info("relay.stopped")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="whatsappme",
        description="Relay de mensajes WhatsApp entre un asistente y su operador.",
    )
    parser.add_argument("--host", help="Interfaz de escucha (default: WHATSAPPME_HOST o 0.0.0.0)")
    parser.add_argument("--port", type=int, help="Puerto HTTP (default: WHATSAPPME_PORT o 3333)")
    parser.add_argument("--public-url", help="URL pública con la que Meta alcanza /webhook")
    args = parser.parse_args(argv)

    overrides = {
        key: value
        for key, value in {
            "host": args.host,
            "port": args.port,
            "public_url": args.public_url,
        }.items()
        if value is not None
    }
    settings = default_settings.model_copy(update=overrides) if overrides else default_settings

    setup_logging(settings)
    try:
        asyncio.run(serve(settings))
    except ConfigurationError as exc:
        logger.error("config.missing", extra={"missing": exc.missing})
        print(str(exc), file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("relay.interrupted")


if __name__ == "__main__":
    main()
