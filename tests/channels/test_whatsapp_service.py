"""Pruebas unitarias del procesador de eventos de WhatsApp."""

import pytest
from conftest import FakeGateway, text_event

from whatsappme.channels.whatsapp import service
from whatsappme.channels.whatsapp.schemas import InboundMessage
from whatsappme.services.relay import RelayService


def _message(**fields) -> InboundMessage:
    base = {"from": "15551234567", "id": "wamid.x", "timestamp": "1700000000"}
    return InboundMessage.model_validate({**base, **fields})


@pytest.mark.parametrize(
    ("fields", "expected"),
    [
        ({"type": "text", "text": {"body": "hola"}}, "hola"),
        ({"type": "button", "button": {"text": "Approve", "payload": "ok"}}, "Approve"),
        (
            {
                "type": "interactive",
                "interactive": {"type": "button_reply", "button_reply": {"id": "y", "title": "Yes"}},
            },
            "Yes",
        ),
        (
            {
                "type": "interactive",
                "interactive": {"type": "list_reply", "list_reply": {"id": "2", "title": "Option 2"}},
            },
            "Option 2",
        ),
        ({"type": "text", "text": {"body": ""}}, None),
        ({"type": "text"}, None),
        ({"type": "image", "image": {"id": "media-1"}}, None),
        ({"type": "reaction", "reaction": {"emoji": "👍"}}, None),
    ],
)
def test_extract_text(fields: dict, expected: str | None) -> None:
    assert service.extract_text(_message(**fields)) == expected


def test_sent_at_handles_bad_timestamps() -> None:
    assert _message(type="text", timestamp="not-a-number").sent_at is None
    assert _message(type="text", timestamp=None).sent_at is None
    assert _message(type="text").sent_at.year == 2023


async def test_process_event_summary(relay: RelayService, gateway: FakeGateway) -> None:
    event = text_event("+1 555 123 4567", "first")
    value = event["entry"][0]["changes"][0]["value"]
    value["messages"].append({"from": "15551234567", "id": "wamid.sticker", "type": "sticker"})
    value["statuses"] = [{"id": "wamid.out", "status": "read", "recipient_id": "15551234567"}]

    summary = await service.process_event(relay, event)

    assert summary.ignored is False
    assert summary.messages == 1
    assert summary.skipped == 1
    assert summary.failed == 0
    assert summary.statuses == 1
    assert summary.replies_resolved == 0
    assert gateway.read == ["wamid.in-1"]


async def test_process_event_counts_resolved_replies(relay: RelayService) -> None:
    future = relay.pending.register("15551234567", timeout=5)

    summary = await service.process_event(relay, text_event("15551234567", "ok"))

    assert summary.replies_resolved == 1
    assert await future == "ok"


async def test_process_event_ignores_other_objects(relay: RelayService) -> None:
    summary = await service.process_event(relay, {"object": "instagram", "entry": []})
    assert summary.ignored is True


async def test_process_event_tolerates_odd_shapes(relay: RelayService) -> None:
    event = {
        "object": "whatsapp_business_account",
        "entry": [None, {"changes": ["bad", {"value": None}, {"value": {"messages": None}}]}],
    }

    summary = await service.process_event(relay, event)

    assert summary.messages == 0
    assert summary.failed == 0


async def test_process_event_skips_non_list_fields(relay: RelayService) -> None:
    event = text_event("15551234567", "still here")
    event["entry"].append({"changes": "oops"})
    event["entry"][0]["changes"][0]["value"]["statuses"] = 1

    summary = await service.process_event(relay, event)

    assert summary.messages == 1
    assert summary.statuses == 0
    assert summary.failed == 0


async def test_unexpected_handler_error_is_counted(
    relay: RelayService, monkeypatch: pytest.MonkeyPatch
) -> None:
    def boom(*_args, **_kwargs):
        raise RuntimeError("registry exploded")

    monkeypatch.setattr(relay, "receive_message", boom)

    summary = await service.process_event(relay, text_event("15551234567", "hola"))

    assert summary.failed == 1
    assert summary.messages == 0
