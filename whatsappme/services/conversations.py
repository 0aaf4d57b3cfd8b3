"""Registro en memoria de conversaciones por número telefónico."""

from __future__ import annotations

import itertools
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal

from whatsappme.core.logging import get_logger

logger = get_logger(__name__)

Role = Literal["assistant", "user"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class ConversationMessage:
    """Mensaje individual dentro del historial."""

    role: Role
    text: str
    timestamp: datetime

    def as_dict(self) -> dict[str, str]:
        return {
            "role": self.role,
            "text": self.text,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(slots=True)
class Conversation:
    """Hilo lógico de mensajes con un número."""

    conversation_id: str
    phone_number: str
    started_at: datetime = field(default_factory=_utcnow)
    last_message_at: datetime = field(default_factory=_utcnow)
    messages: list[ConversationMessage] = field(default_factory=list)
    # No existe todavía una ruta que cierre conversaciones.
    active: bool = True


class ConversationRegistry:
    """Mantiene `telefono -> conversation_id` y `conversation_id -> Conversation`.

    Las llaves de teléfono son el valor crudo tal como llega; la correlación
    de respuestas usa números normalizados en otra capa.
    """

    def __init__(self) -> None:
        self._conversations: dict[str, Conversation] = {}
        self._by_phone: dict[str, str] = {}
        self._sequence = itertools.count(1)

    def __len__(self) -> int:
        return len(self._conversations)

    def get_or_create(self, phone_number: str) -> str:
        """Reutiliza la conversación activa del número o crea una nueva."""
        conversation_id = self._by_phone.get(phone_number)
        if conversation_id is not None:
            conversation = self._conversations.get(conversation_id)
            if conversation is not None and conversation.active:
                return conversation_id

        conversation_id = f"conv-{next(self._sequence)}-{int(time.time() * 1000)}"
        self._conversations[conversation_id] = Conversation(
            conversation_id=conversation_id,
            phone_number=phone_number,
        )
        self._by_phone[phone_number] = conversation_id
        logger.info(
            "conversation.created",
            extra={"conversation_id": conversation_id, "phone_number": phone_number},
        )
        return conversation_id

    def append_message(
        self,
        conversation_id: str,
        role: Role,
        text: str,
        timestamp: datetime | None = None,
    ) -> None:
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            logger.warning(
                "conversation.append_unknown",
                extra={"conversation_id": conversation_id, "role": role},
            )
            return
        moment = timestamp or _utcnow()
        conversation.messages.append(ConversationMessage(role=role, text=text, timestamp=moment))
        conversation.last_message_at = moment

    def history(self, conversation_id: str, limit: int | None = None) -> list[ConversationMessage]:
        """Últimos `limit` mensajes en orden cronológico."""
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            return []
        if limit is None or limit >= len(conversation.messages):
            return list(conversation.messages)
        if limit <= 0:
            return []
        return conversation.messages[-limit:]

    def list_active(self) -> list[str]:
        return [
            conversation_id
            for conversation_id, conversation in self._conversations.items()
            if conversation.active
        ]

    def get(self, conversation_id: str) -> Conversation | None:
        return self._conversations.get(conversation_id)

    def latest(self) -> str | None:
        """Id de la conversación creada más recientemente."""
        active = self.list_active()
        return active[-1] if active else None
