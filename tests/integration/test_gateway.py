"""
Integration tests against a running WhatsApp Web gateway and the real
completion service.

Requires environment variables:
  WA_RELAY_GATEWAY_URL  — gateway Socket.IO URL
  GROQ_API_KEY          — completion service key
  WA_RELAY_SESSION_DIR  — (optional) a paired session, defaults to ./session

Run: WA_RELAY_INTEGRATION=1 pytest tests/integration/ -v
"""

import os

import pytest

from wa_relay import CompletionClient, CredentialStore
from wa_relay.models.events import GatewayEvent
from wa_relay.transport.socketio import GatewayTransport

SKIP = not os.environ.get("WA_RELAY_INTEGRATION")
GATEWAY_URL = os.environ.get("WA_RELAY_GATEWAY_URL", "http://127.0.0.1:8765")
API_KEY = os.environ.get("GROQ_API_KEY", "")
SESSION_DIR = os.environ.get("WA_RELAY_SESSION_DIR", "session")

pytestmark = pytest.mark.skipif(SKIP, reason="WA_RELAY_INTEGRATION not set")


class TestCompletion:
    @pytest.mark.asyncio
    async def test_completes_a_greeting(self):
        client = CompletionClient(API_KEY)
        try:
            result = await client.complete("hello")
        finally:
            await client.close()
        assert result.ok, result.error
        assert result.text

    @pytest.mark.asyncio
    async def test_rejects_invalid_key(self):
        client = CompletionClient("invalid")
        try:
            result = await client.complete("hello")
        finally:
            await client.close()
        assert not result.ok


class TestGateway:
    @pytest.mark.asyncio
    async def test_connects_and_reports_status(self):
        store = CredentialStore(SESSION_DIR)
        transport = GatewayTransport(GATEWAY_URL)

        await transport.connect(store.load())
        assert transport.connected
        await transport.disconnect()
        assert not transport.connected
