"""Coordinador del relay: dueño del estado compartido del proceso.

Se construye una sola vez al arrancar y lo comparten las rutas HTTP (mensajes
entrantes) y las herramientas MCP (envíos y esperas).
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime

from whatsappme.core.logging import get_logger
from whatsappme.core.phone import normalize_phone_number

from .conversations import ConversationMessage, ConversationRegistry
from .gateway import GatewayError, MessagingGateway
from .pending_replies import PendingReplyTable, ReplyOutcome

logger = get_logger(__name__)

DEFAULT_REPLY_TIMEOUT_MS = 3_600_000


@dataclass(slots=True)
class SentMessage:
    conversation_id: str
    message_id: str


@dataclass(slots=True)
class RelayResult:
    """Envío exitoso más el desenlace de la espera de respuesta."""

    sent: SentMessage
    outcome: ReplyOutcome


@dataclass(slots=True)
class HistorySnapshot:
    conversation_id: str
    messages: list[ConversationMessage]


class RelayService:
    """Dueño único del estado compartido entre el webhook y las herramientas."""

    def __init__(
        self,
        *,
        gateway: MessagingGateway,
        operator_number: str,
        conversations: ConversationRegistry | None = None,
        pending: PendingReplyTable | None = None,
    ) -> None:
        self.gateway = gateway
        self.operator_number = operator_number
        self.conversations = conversations if conversations is not None else ConversationRegistry()
        self.pending = pending if pending is not None else PendingReplyTable()
        self._started = time.monotonic()

    @property
    def operator_key(self) -> str:
        return normalize_phone_number(self.operator_number)

    @property
    def active_conversation_count(self) -> int:
        return len(self.conversations.list_active())

    @property
    def uptime_seconds(self) -> float:
        return time.monotonic() - self._started

    async def send_message(self, text: str) -> SentMessage:
        """Envía `text` al operador y lo agrega al historial.

        Raises:
            GatewayError: el proveedor no confirmó el envío.
        """
        conversation_id = self.conversations.get_or_create(self.operator_number)
        logger.info(
            "relay.sending",
            extra={"conversation_id": conversation_id, "preview": text[:50]},
        )
        try:
            message_id = await self.gateway.send_text(self.operator_number, text)
        except GatewayError:
            logger.exception("relay.send_failed", extra={"conversation_id": conversation_id})
            raise

        self.conversations.append_message(conversation_id, "assistant", text)
        return SentMessage(conversation_id=conversation_id, message_id=message_id)

    async def send_and_wait(self, text: str, timeout: float) -> RelayResult:
        """Envía y espera la siguiente respuesta del operador o el timeout.

        La espera se registra sólo después de un envío exitoso.
        """
        sent = await self.send_message(text)
        logger.info(
            "relay.waiting_for_reply",
            extra={
                "conversation_id": sent.conversation_id,
                "key": self.operator_key,
                "timeout_s": timeout,
            },
        )
        outcome = await self.pending.wait_for_reply(self.operator_key, timeout)
        return RelayResult(sent=sent, outcome=outcome)

    def receive_message(
        self,
        sender: str,
        text: str,
        *,
        timestamp: datetime | None = None,
    ) -> bool:
        """Registra un mensaje entrante y resuelve la espera del remitente.

        Returns:
            ``True`` cuando el mensaje completó una espera pendiente.
        """
        conversation_id = self.conversations.get_or_create(sender)
        self.conversations.append_message(conversation_id, "user", text, timestamp)
        return self.pending.resolve(normalize_phone_number(sender), text)

    def recent_history(self, limit: int = 20) -> HistorySnapshot | None:
        """Historial de la conversación creada más recientemente."""
        conversation_id = self.conversations.latest()
        if conversation_id is None:
            return None
        return HistorySnapshot(
            conversation_id=conversation_id,
            messages=self.conversations.history(conversation_id, limit),
        )
