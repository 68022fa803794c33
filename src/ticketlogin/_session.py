"""Login orchestration for TicketLogin.

Copyright (c) 2025 TicketLogin. All rights reserved.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Protocol

from ._challenge import decode_challenge, is_challenge
from ._negotiator import ChallengeNegotiator
from .exceptions import AuthFailed, TicketLoginError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from ._tickets import TicketService
    from ._webauthn import WebAuthnAdapter
    from .models import Credentials, TicketData

logger = logging.getLogger(__name__)

USERNAME_KEY = "login-username"
SAVE_USERNAME_KEY = "login-saveusername"

LOGIN_FAILED_MESSAGE = "Login failed. Please try again"


class StateStore(Protocol):
    """Key/value persistence for login form state."""

    def get(self, key: str) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def clear(self, key: str) -> None: ...


class SessionSink(Protocol):
    """Receives the final ticket and makes the session usable."""

    def establish(self, data: TicketData) -> None: ...

    def clear(self) -> None: ...


class LoginSession:
    """Runs a login from primary credentials to an established session.

    All failures end in the same ``AuthFailed`` with a generic message, so a
    caller cannot tell a wrong password from a wrong second factor.
    """

    def __init__(
        self,
        tickets: TicketService,
        state: StateStore,
        session: SessionSink,
        prompt: Callable[[ChallengeNegotiator], Awaitable[None]],
        *,
        webauthn: WebAuthnAdapter | None = None,
    ) -> None:
        """Initialize the login session.

        Args:
            tickets: Ticket service for primary and second factor requests
            state: Persistence for the saved username and its checkbox
            session: Receiver of the final ticket
            prompt: Second factor dialog. It drives the negotiator it is given
                and returns when the user closes it.
            webauthn: Adapter for hardware security keys

        """
        self._tickets = tickets
        self._state = state
        self._session = session
        self._prompt = prompt
        self._webauthn = webauthn

    def restore_username(self) -> str | None:
        """Return the saved username if the user asked to keep it."""
        if self._state.get(SAVE_USERNAME_KEY) is True:
            return self._state.get(USERNAME_KEY)
        return None

    async def login(
        self,
        credentials: Credentials,
        *,
        remember_username: bool = False,
    ) -> TicketData:
        """Log in, negotiating a second factor when the backend asks for one.

        Args:
            credentials: Username, password and realm
            remember_username: Whether to keep the username for next time

        Returns:
            Final ticket data, already handed to the session sink.

        Raises:
            AuthFailed: For any failure, primary or second factor.

        """
        self._remember_username(credentials.username, remember_username)

        try:
            data = await self._tickets.submit_primary(credentials)
            if is_challenge(data.ticket):
                logger.info("Second factor required for %s", data.username)
                data = await self._perform_tfa_challenge(data)
        except TicketLoginError as e:
            logger.warning("Login failed for %s: %s", credentials.userid, e.code)
            self._session.clear()
            raise AuthFailed(LOGIN_FAILED_MESSAGE) from e

        logger.info("Login succeeded for %s", data.username)
        self._session.establish(data)
        return data

    def _remember_username(self, username: str, remember: bool) -> None:
        if remember:
            self._state.set(USERNAME_KEY, username)
        else:
            self._state.clear(USERNAME_KEY)
        self._state.set(SAVE_USERNAME_KEY, remember)

    async def _perform_tfa_challenge(self, data: TicketData) -> TicketData:
        challenge = decode_challenge(data.ticket)
        negotiator = ChallengeNegotiator(
            self._tickets,
            data.username,
            data.ticket,
            challenge,
            webauthn=self._webauthn,
        )
        negotiator.start()

        dialog = asyncio.ensure_future(self._prompt(negotiator))
        closed = asyncio.ensure_future(negotiator.wait_closed())
        try:
            await asyncio.wait({dialog, closed}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            closed.cancel()
            if not dialog.done():
                dialog.cancel()
            negotiator.close()

        if dialog.done() and not dialog.cancelled() and dialog.exception() is not None:
            logger.error("Second factor dialog failed", exc_info=dialog.exception())

        return await negotiator.result()
