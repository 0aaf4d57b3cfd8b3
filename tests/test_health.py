"""Pruebas de `/health` y del descriptor raíz."""

from httpx import AsyncClient

from whatsappme.services.relay import RelayService


async def test_health_returns_ok(async_client: AsyncClient) -> None:
    response = await async_client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["activeConversations"] == 0
    assert body["uptime"] >= 0


async def test_health_counts_conversations(async_client: AsyncClient, relay: RelayService) -> None:
    relay.conversations.get_or_create("15551234567")
    relay.conversations.get_or_create("447700900123")

    response = await async_client.get("/health")

    assert response.json()["activeConversations"] == 2


async def test_root_returns_descriptor(async_client: AsyncClient) -> None:
    response = await async_client.get("/")
    assert response.status_code == 200
    assert response.json()["title"] == "WhatsApp-Me"
    assert "x-request-id" in response.headers
