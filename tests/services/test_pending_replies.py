"""Pruebas de la tabla de esperas de respuesta."""

import asyncio

import pytest

from whatsappme.services.pending_replies import PendingReplyTable, ReplyTimeoutError


async def test_register_then_resolve_delivers_text() -> None:
    table = PendingReplyTable()
    future = table.register("15551234567", timeout=5)

    assert table.resolve("15551234567", "yes, ship it") is True

    assert await future == "yes, ship it"
    assert "15551234567" not in table
    assert len(table) == 0


async def test_resolve_without_waiter_is_noop() -> None:
    table = PendingReplyTable()
    assert table.resolve("15551234567", "hello?") is False


async def test_wait_times_out_without_reply() -> None:
    table = PendingReplyTable()
    loop = asyncio.get_running_loop()
    started = loop.time()

    outcome = await asyncio.wait_for(table.wait_for_reply("15551234567", 0.05), timeout=2)

    assert outcome.timed_out is True
    assert outcome.reply is None
    assert outcome.error == "Timeout waiting for user reply"
    assert loop.time() - started >= 0.04
    assert "15551234567" not in table


async def test_wait_returns_reply() -> None:
    table = PendingReplyTable()
    waiter = asyncio.create_task(table.wait_for_reply("15551234567", 5))
    await asyncio.sleep(0)

    table.resolve("15551234567", "done")
    outcome = await waiter

    assert outcome.reply == "done"
    assert outcome.timed_out is False


async def test_resolve_after_expiry_does_nothing() -> None:
    table = PendingReplyTable()
    future = table.register("15551234567", timeout=5)

    assert table.expire("15551234567") is True
    assert table.resolve("15551234567", "late") is False
    with pytest.raises(ReplyTimeoutError):
        await future


async def test_expire_after_resolve_does_nothing() -> None:
    table = PendingReplyTable()
    future = table.register("15551234567", timeout=5)
    table.resolve("15551234567", "first")

    assert table.expire("15551234567") is False
    assert await future == "first"


async def test_second_registration_replaces_first() -> None:
    table = PendingReplyTable()
    first = asyncio.create_task(table.wait_for_reply("15551234567", 0.1))
    await asyncio.sleep(0)
    second = asyncio.create_task(table.wait_for_reply("15551234567", 5))
    await asyncio.sleep(0)

    assert table.resolve("15551234567", "for the newest waiter") is True

    assert (await second).reply == "for the newest waiter"
    first_outcome = await first
    assert first_outcome.timed_out is True


async def test_replaced_timer_keeps_newer_entry() -> None:
    table = PendingReplyTable()
    first = asyncio.create_task(table.wait_for_reply("15551234567", 0.02))
    await asyncio.sleep(0)
    second = table.register("15551234567", timeout=5)

    assert (await first).timed_out is True
    assert "15551234567" in table

    table.resolve("15551234567", "still delivered")
    assert await second == "still delivered"


async def test_cancelled_waiter_is_discarded() -> None:
    table = PendingReplyTable()
    waiter = asyncio.create_task(table.wait_for_reply("15551234567", 5))
    await asyncio.sleep(0)
    assert table.pending_keys() == ["15551234567"]

    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter

    assert len(table) == 0
