"""TicketLogin client using service composition.

Copyright (c) 2025 TicketLogin. All rights reserved.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Self

from ._base import BaseClient
from ._session import LoginSession
from ._tickets import TicketService
from .config import ClientSettings

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from ._negotiator import ChallengeNegotiator
    from ._session import SessionSink, StateStore
    from ._webauthn import WebAuthnAdapter
    from .models import Credentials, TicketData


class TicketLoginClient:
    """Ticket login client bundling the HTTP transport and its services."""

    def __init__(
        self,
        base_url: str | None = None,
        *,
        settings: ClientSettings | None = None,
        timeout: float | None = None,
        verify_tls: bool | None = None,
    ) -> None:
        """Initialize the client.

        Keyword arguments override the matching fields of ``settings``.

        Args:
            base_url: Base URL of the ticket issuing backend
            settings: Full client configuration
            timeout: Request timeout in seconds
            verify_tls: Whether to verify the backend certificate

        """
        settings = settings or ClientSettings()
        overrides = {
            "base_url": base_url,
            "timeout": timeout,
            "verify_tls": verify_tls,
        }
        settings = settings.model_copy(
            update={key: value for key, value in overrides.items() if value is not None}
        )

        self.settings = settings
        self._client = BaseClient(settings)
        self.tickets = TicketService(self._client)

    async def __aenter__(self) -> Self:
        """Async context manager entry.

        Returns:
            The client instance.

        """
        await self._client.__aenter__()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Async context manager exit."""
        await self._client.__aexit__(exc_type, exc_val, exc_tb)

    async def close(self) -> None:
        """Close the client and clean up resources."""
        await self._client.close()

    def session(
        self,
        state: StateStore,
        session: SessionSink,
        prompt: Callable[[ChallengeNegotiator], Awaitable[None]],
        *,
        webauthn: WebAuthnAdapter | None = None,
    ) -> LoginSession:
        """Create a login session bound to this client's ticket service."""
        return LoginSession(
            self.tickets,
            state,
            session,
            prompt,
            webauthn=webauthn,
        )

    async def login(
        self,
        credentials: Credentials,
        state: StateStore,
        session: SessionSink,
        prompt: Callable[[ChallengeNegotiator], Awaitable[None]],
        *,
        remember_username: bool = False,
        webauthn: WebAuthnAdapter | None = None,
    ) -> TicketData:
        """Run a complete login with a fresh session.

        Returns:
            Final ticket data.

        """
        login = self.session(state, session, prompt, webauthn=webauthn)
        return await login.login(credentials, remember_username=remember_username)
