"""Contrato del gateway de mensajería que usa el núcleo."""

from typing import Protocol


class GatewayError(RuntimeError):
    """El proveedor rechazó o no completó un envío."""


class MessagingGateway(Protocol):
    """Operaciones salientes hacia WhatsApp."""

    name: str

    async def send_text(self, to: str, text: str) -> str:
        """Envía texto y retorna el id del mensaje; falla con `GatewayError`."""
        ...

    async def mark_as_read(self, message_id: str) -> None:
        """Best effort: nunca lanza."""
        ...

    async def send_typing_indicator(self, to: str, duration_ms: int = 5000) -> None:
        """Best effort: nunca lanza."""
        ...
