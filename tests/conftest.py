"""Test configuration and common utilities.

Copyright (c) 2025 TicketLogin. All rights reserved.
"""

from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qsl, quote

import httpx
import pytest
import respx
from ticketlogin import TFA_MARKER, Credentials, TicketData, TicketLoginClient

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Callable, Generator


class MemoryStateStore:
    """In-memory stand-in for the persisted login form state."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self.values: dict[str, Any] = dict(initial or {})

    def get(self, key: str) -> Any:
        return self.values.get(key)

    def set(self, key: str, value: Any) -> None:
        self.values[key] = value

    def clear(self, key: str) -> None:
        self.values.pop(key, None)


class RecordingSessionSink:
    """Session sink that records what it was handed."""

    def __init__(self) -> None:
        self.established: list[TicketData] = []
        self.cleared = 0

    def establish(self, data: TicketData) -> None:
        self.established.append(data)

    def clear(self) -> None:
        self.cleared += 1


class FakeWebAuthn:
    """WebAuthn adapter double returning a canned assertion or error."""

    def __init__(
        self,
        result: dict[str, Any] | None = None,
        error: Exception | None = None,
        *,
        block: bool = False,
    ) -> None:
        self.result = result or {
            "id": "Y3JlZC0x",
            "type": "public-key",
            "rawId": "Y3JlZC0x",
            "response": {
                "authenticatorData": "YXV0aC1kYXRh",
                "clientDataJSON": "Y2xpZW50LWRhdGE",
                "signature": "c2lnbmF0dXJl",
            },
        }
        self.error = error
        self.block = block
        self.requests: list[Any] = []
        self.cancelled = False
        self.release = asyncio.Event()

    async def request_assertion(self, options: Any) -> dict[str, Any]:
        self.requests.append(options)
        if self.block:
            try:
                await self.release.wait()
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        if self.error is not None:
            raise self.error
        return json.loads(json.dumps(self.result))


class FakeTickets:
    """Ticket service double recording proof submissions."""

    def __init__(
        self,
        final: TicketData | None = None,
        error: Exception | None = None,
    ) -> None:
        self.final = final or TicketData(ticket="PBS:root@pam:final", username="root@pam")
        self.error = error
        self.proofs: list[tuple[str, str, str]] = []
        self.gate: asyncio.Event | None = None

    async def submit_proof(self, userid: str, ticket: str, proof: str) -> TicketData:
        self.proofs.append((userid, ticket, proof))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.final


def form_of(request: httpx.Request) -> dict[str, str]:
    """Decode the form body of a recorded request."""
    return dict(parse_qsl(request.content.decode()))


def challenge_ticket(challenge: dict[str, Any]) -> str:
    """Build a ticket carrying a second factor challenge."""
    return TFA_MARKER + quote(json.dumps(challenge))


async def until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Let the event loop run until ``predicate`` holds."""
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0)


@pytest.fixture
def base_url() -> str:
    """Return base URL for test server.

    Returns:
        str: The base URL for testing.

    """
    return "https://backup.ticketlogin.test:8007"


@pytest.fixture
def ticket_url(base_url: str) -> str:
    """Return the ticket endpoint URL.

    Returns:
        str: The ticket endpoint for testing.

    """
    return f"{base_url}/api2/json/access/ticket"


@pytest.fixture
async def client(base_url: str) -> AsyncGenerator[TicketLoginClient, None]:
    """Create test client.

    Yields:
        TicketLoginClient: Configured test client.

    """
    async with TicketLoginClient(base_url, timeout=5.0) as client:
        yield client


@pytest.fixture
def mock_responses() -> Generator[Any, None, None]:
    """Mock HTTP responses.

    Yields:
        The mock router for HTTP requests.

    """
    with respx.mock:
        yield respx


@pytest.fixture
def credentials() -> Credentials:
    """Sample primary credentials.

    Returns:
        Credentials: Login for root in the pam realm.

    """
    return Credentials(username="root", password="s3cret", realm="pam")


@pytest.fixture
def sample_ticket_response() -> dict[str, Any]:
    """Sample final ticket response.

    Returns:
        dict[str, Any]: Ticket endpoint response data.

    """
    return {
        "data": {
            "ticket": "PBS:root@pam:65F1A2B3::c2lnbmF0dXJl",
            "username": "root@pam",
            "CSRFPreventionToken": "65F1A2B3:Y3NyZg",
        },
    }


@pytest.fixture
def webauthn_challenge() -> dict[str, Any]:
    """Sample WebAuthn challenge data as sent by the backend.

    Returns:
        dict[str, Any]: Public key credential request options.

    """
    return {
        "publicKey": {
            "challenge": "q83vEjRWeJA",
            "timeout": 60000,
            "rpId": "backup.ticketlogin.test",
            "allowCredentials": [
                {"type": "public-key", "id": "Y3JlZC0x"},
                {"type": "public-key", "id": "Y3JlZC0y"},
            ],
            "userVerification": "discouraged",
        },
    }


@pytest.fixture
def state_store() -> MemoryStateStore:
    """Empty login form state store."""
    return MemoryStateStore()


@pytest.fixture
def session_sink() -> RecordingSessionSink:
    """Session sink recording established sessions."""
    return RecordingSessionSink()
