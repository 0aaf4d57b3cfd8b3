"""Tabla de esperas de respuesta por número normalizado.

Cada registro es una carrera entre dos desenlaces: un mensaje entrante que lo
resuelve (`resolve`) o el timer que lo expira. Exactamente uno de los dos
completa el future, una sola vez.

Registrar dos veces la misma llave reemplaza la entrada anterior sin cancelar
su timer: la espera previa ya no puede recibir la respuesta y sólo termina
por su propio timeout.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from whatsappme.core.logging import get_logger

logger = get_logger(__name__)


class ReplyTimeoutError(TimeoutError):
    """No llegó respuesta antes del deadline."""


@dataclass(slots=True)
class PendingReply:
    key: str
    future: asyncio.Future[str]
    timer: asyncio.TimerHandle
    deadline: float


@dataclass(slots=True)
class ReplyOutcome:
    """Resultado de una espera; el timeout no es un error."""

    reply: str | None = None
    timed_out: bool = False
    error: str | None = None


class PendingReplyTable:
    """Correlaciona a lo sumo una espera activa por llave."""

    def __init__(self) -> None:
        self._entries: dict[str, PendingReply] = {}

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def pending_keys(self) -> list[str]:
        return list(self._entries)

    def register(self, key: str, timeout: float) -> asyncio.Future[str]:
        """Registra una espera y devuelve el future que la completa."""
        loop = asyncio.get_running_loop()
        future: asyncio.Future[str] = loop.create_future()
        entry = PendingReply(
            key=key,
            future=future,
            timer=loop.call_later(timeout, self._on_deadline, key, future),
            deadline=loop.time() + timeout,
        )

        previous = self._entries.get(key)
        if previous is not None:
            logger.warning(
                "pending_reply.replaced",
                extra={"key": key, "previous_deadline": previous.deadline},
            )
        self._entries[key] = entry
        logger.info("pending_reply.registered", extra={"key": key, "timeout_s": timeout})
        return future

    def resolve(self, key: str, text: str) -> bool:
        """Entrega `text` a quien espera en `key`; sin espera es un no-op."""
        entry = self._entries.pop(key, None)
        if entry is None:
            logger.info(
                "pending_reply.none_waiting",
                extra={"key": key, "pending_keys": self.pending_keys()},
            )
            return False
        entry.timer.cancel()
        if entry.future.done():
            return False
        entry.future.set_result(text)
        logger.info("pending_reply.resolved", extra={"key": key})
        return True

    def expire(self, key: str) -> bool:
        """Expira la entrada actual de `key`, si sigue presente."""
        entry = self._entries.pop(key, None)
        if entry is None:
            return False
        entry.timer.cancel()
        return self._fail(key, entry.future)

    def _on_deadline(self, key: str, future: asyncio.Future[str]) -> None:
        # Un timer reemplazado no debe retirar al ocupante nuevo.
        self._discard(key, future)
        self._fail(key, future)

    def _fail(self, key: str, future: asyncio.Future[str]) -> bool:
        if future.done():
            return False
        future.set_exception(ReplyTimeoutError("Timeout waiting for user reply"))
        logger.info("pending_reply.expired", extra={"key": key})
        return True

    def _discard(self, key: str, future: asyncio.Future[str]) -> None:
        entry = self._entries.get(key)
        if entry is not None and entry.future is future:
            del self._entries[key]
            entry.timer.cancel()

    async def wait_for_reply(self, key: str, timeout: float) -> ReplyOutcome:
        """Registra una espera y la convierte en `ReplyOutcome`."""
        future = self.register(key, timeout)
        try:
            reply = await future
        except ReplyTimeoutError as exc:
            return ReplyOutcome(timed_out=True, error=str(exc))
        except asyncio.CancelledError:
            self._discard(key, future)
            raise
        return ReplyOutcome(reply=reply)
