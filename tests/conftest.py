"""Fixtures compartidas para las pruebas."""

import hashlib
import hmac
import itertools
import json
from typing import Any

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from whatsappme.core.config import Settings
from whatsappme.main import create_app
from whatsappme.services.gateway import GatewayError
from whatsappme.services.relay import RelayService

APP_SECRET = "test-app-secret"
VERIFY_TOKEN = "verify-me-123"
OPERATOR_NUMBER = "+1 (555) 123-4567"


class FakeGateway:
    """Gateway en memoria que registra envíos y lecturas."""

    name = "fake"

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []
        self.read: list[str] = []
        self.fail_send = False
        self.fail_mark_read = False
        self._ids = itertools.count(1)

    async def send_text(self, to: str, text: str) -> str:
        if self.fail_send:
            raise GatewayError("Meta API error: (#131030) Recipient not in allowed list")
        self.sent.append((to, text))
        return f"wamid.fake-{next(self._ids)}"

    async def mark_as_read(self, message_id: str) -> None:
        if self.fail_mark_read:
            raise RuntimeError("graph api down")
        self.read.append(message_id)

    async def send_typing_indicator(self, to: str, duration_ms: int = 5000) -> None:
        return None


def sign(body: bytes, secret: str = APP_SECRET) -> str:
    """Genera el header `x-hub-signature-256` para `body`."""
    return "sha256=" + hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def text_event(sender: str, text: str, *, message_id: str = "wamid.in-1") -> dict[str, Any]:
    """Payload mínimo de la Cloud API con un mensaje de texto."""
    return {
        "object": "whatsapp_business_account",
        "entry": [
            {
                "id": "102290129340398",
                "changes": [
                    {
                        "field": "messages",
                        "value": {
                            "messaging_product": "whatsapp",
                            "metadata": {"phone_number_id": "106540352242922"},
                            "messages": [
                                {
                                    "from": sender,
                                    "id": message_id,
                                    "timestamp": "1700000000",
                                    "type": "text",
                                    "text": {"body": text},
                                }
                            ],
                        },
                    }
                ],
            }
        ],
    }


def encode(event: dict[str, Any]) -> bytes:
    return json.dumps(event).encode()


@pytest.fixture(name="settings")
def fixture_settings() -> Settings:
    return Settings(
        _env_file=None,
        phone_number_id="106540352242922",
        access_token="EAAG-test-token",
        app_secret=APP_SECRET,
        verify_token=VERIFY_TOKEN,
        user_phone_number=OPERATOR_NUMBER,
        public_url="https://relay.example.test/",
        log_file_path=None,
    )


@pytest.fixture(name="gateway")
def fixture_gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture(name="relay")
def fixture_relay(gateway: FakeGateway) -> RelayService:
    return RelayService(gateway=gateway, operator_number=OPERATOR_NUMBER)


@pytest.fixture(name="app")
def fixture_app(settings: Settings, relay: RelayService) -> FastAPI:
    return create_app(settings, relay)


@pytest.fixture(name="async_client")
async def fixture_async_client(app: FastAPI) -> AsyncClient:
    """Retorna un cliente asíncrono contra la app utilizando ASGITransport."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
