"""Esquemas Pydantic para payloads del webhook de la Cloud API."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


class TextContent(BaseModel):
    body: str = ""


class ButtonContent(BaseModel):
    text: str = ""
    payload: str | None = None


class InteractiveReply(BaseModel):
    id: str | None = None
    title: str = ""


class InteractiveContent(BaseModel):
    type: str | None = None
    button_reply: InteractiveReply | None = None
    list_reply: InteractiveReply | None = None


class InboundMessage(BaseModel):
    """Mensaje entrante dentro de `entry[].changes[].value.messages[]`."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    from_: str = Field(..., alias="from")
    id: str
    type: str
    timestamp: str | None = None
    text: TextContent | None = None
    button: ButtonContent | None = None
    interactive: InteractiveContent | None = None

    @property
    def sent_at(self) -> datetime | None:
        """Timestamp del proveedor (segundos epoch) como datetime UTC."""
        if not self.timestamp:
            return None
        try:
            return datetime.fromtimestamp(int(self.timestamp), tz=timezone.utc)
        except (ValueError, OverflowError, OSError):
            return None


class MessageStatus(BaseModel):
    """Recibos de entrega/lectura de mensajes enviados."""

    model_config = ConfigDict(extra="ignore")

    id: str
    status: str
    timestamp: str | None = None
    recipient_id: str | None = None
