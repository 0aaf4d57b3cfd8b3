"""Servidor MCP (stdio) que expone el relay como herramientas del asistente.

Herramientas:
    - send_message            : envía al operador y opcionalmente espera respuesta
    - get_conversation_history: últimos mensajes de la conversación más reciente
    - get_setup_info          : URL del webhook y pasos de configuración en Meta
"""

import json
from typing import Any

from mcp.server.fastmcp import FastMCP

from whatsappme.core.config import Settings
from whatsappme.core.logging import get_logger
from whatsappme.services.relay import DEFAULT_REPLY_TIMEOUT_MS, RelayService

logger = get_logger(__name__)

NO_CONVERSATIONS = "No active conversations"

SETUP_INSTRUCTIONS = [
    "1. Go to Meta Developer Console > WhatsApp > Configuration",
    "2. Click 'Edit' and paste the 'webhook_url' and 'verify_token'",
    "3. In 'Webhook fields', select 'messages'",
    "4. Send a test message to verify the connection",
]


def setup_info(settings: Settings) -> dict[str, Any]:
    if not settings.webhook_url:
        raise ValueError("Public URL not initialized")
    return {
        "status": "active",
        "webhook_url": settings.webhook_url,
        "verify_token": settings.verify_token or "Not set",
        "phone_number_id": settings.phone_number_id or "Not set",
        "instructions": SETUP_INSTRUCTIONS,
    }


async def send_message_result(
    relay: RelayService,
    message: str,
    wait_for_reply: bool = False,
    timeout_ms: int = DEFAULT_REPLY_TIMEOUT_MS,
) -> dict[str, Any]:
    """Envía y arma el payload de la herramienta.

    Un timeout de espera no es un error: el envío se reporta exitoso con
    `error` describiendo la falta de respuesta.
    """
    if not message:
        raise ValueError("Message is required")

    if not wait_for_reply:
        sent = await relay.send_message(message)
        return {
            "success": True,
            "conversationId": sent.conversation_id,
            "messageId": sent.message_id,
            "status": "Message sent via WhatsApp",
        }

    if timeout_ms <= 0:
        timeout_ms = DEFAULT_REPLY_TIMEOUT_MS
    result = await relay.send_and_wait(message, timeout_ms / 1000)
    payload: dict[str, Any] = {
        "success": True,
        "conversationId": result.sent.conversation_id,
        "messageId": result.sent.message_id,
    }
    if result.outcome.timed_out:
        payload["status"] = "Message sent but no reply received"
        payload["error"] = result.outcome.error
    else:
        payload["userReply"] = result.outcome.reply
        payload["status"] = "Message sent and reply received"
    return payload


def history_result(relay: RelayService, limit: int = 20) -> dict[str, Any] | None:
    snapshot = relay.recent_history(limit if limit > 0 else 20)
    if snapshot is None:
        return None
    return {
        "conversationId": snapshot.conversation_id,
        "messageCount": len(snapshot.messages),
        "messages": [message.as_dict() for message in snapshot.messages],
    }


def build_tool_server(relay: RelayService, settings: Settings) -> FastMCP:
    """Crea el servidor MCP ligado a una instancia de `RelayService`."""
    server = FastMCP("whatsappme")

    @server.tool()
    async def get_setup_info() -> str:
        """Get the current webhook URL and setup status.

        Use this if the user needs to configure their Meta Developer Portal
        or check that the webhook is reachable.
        """
        return json.dumps(setup_info(settings), indent=2)

    @server.tool()
    async def send_message(
        message: str,
        wait_for_reply: bool = False,
        timeout_ms: int = DEFAULT_REPLY_TIMEOUT_MS,
    ) -> str:
        """Send a WhatsApp message to the user.

        Use this to notify the user about task completion, ask for input, or
        report progress.

        Args:
            message: The message to send to the user via WhatsApp.
            wait_for_reply: Whether to wait for the user's reply. Set to true
                if you need input from the user.
            timeout_ms: Timeout in milliseconds when waiting for a reply
                (default 3600000 = 1 hour).
        """
        payload = await send_message_result(relay, message, wait_for_reply, timeout_ms)
        return json.dumps(payload, indent=2, ensure_ascii=False)

    @server.tool()
    async def get_conversation_history(limit: int = 20) -> str:
        """Get the message history of the current conversation.

        Args:
            limit: Maximum number of recent messages to return (default 20).
        """
        payload = history_result(relay, limit)
        if payload is None:
            return NO_CONVERSATIONS
        return json.dumps(payload, indent=2, ensure_ascii=False)

    logger.info("tools.server_built", extra={"operator": relay.operator_number})
    return server
