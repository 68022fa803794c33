"""Second factor negotiation.

Copyright (c) 2025 TicketLogin. All rights reserved.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from enum import Enum
from typing import TYPE_CHECKING

from fido2.utils import websafe_decode
from fido2.webauthn import (
    PublicKeyCredentialDescriptor,
    PublicKeyCredentialRequestOptions,
    PublicKeyCredentialType,
    UserVerificationRequirement,
)

from .exceptions import (
    AuthFailed,
    LocalValidationFailed,
    MalformedChallenge,
    NegotiationCancelled,
    NegotiationStateError,
    NoMethodAvailable,
    TicketLoginError,
    WebAuthnFailed,
    WebAuthnFailureCause,
)
from .models import (
    Challenge,
    NegotiationResult,
    TfaMethod,
    TicketData,
    WebAuthnChallengeData,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from ._tickets import TicketService
    from ._webauthn import WebAuthnAdapter

logger = logging.getLogger(__name__)

# Every text method has exactly one input field. A method needing several
# fields does not fit this table.
INPUT_PATTERNS: dict[TfaMethod, re.Pattern[str]] = {
    TfaMethod.TOTP: re.compile(r"[0-9]{6}"),
    TfaMethod.RECOVERY: re.compile(r"[0-9a-f]{4}(?:-[0-9a-f]{4}){3}"),
}

RECOVERY_LOW_THRESHOLD = 3


class NegotiationState(str, Enum):
    """States of a second factor negotiation."""

    SELECTING_METHOD = "selecting-method"
    AWAITING_INPUT = "awaiting-input"
    SUBMITTING = "submitting"
    RESOLVED = "resolved"
    REJECTED = "rejected"


_OPEN_STATES = (NegotiationState.SELECTING_METHOD, NegotiationState.AWAITING_INPUT)


def validate_input(method: TfaMethod, value: str) -> bool:
    """Check text input for a method against its expected shape."""
    pattern = INPUT_PATTERNS.get(method)
    return pattern is not None and pattern.fullmatch(value) is not None


def decode_request_options(
    data: WebAuthnChallengeData,
) -> PublicKeyCredentialRequestOptions:
    """Turn wire request options into options with raw byte fields.

    Raises:
        MalformedChallenge: If the challenge or a credential id is not
            valid base64url.

    """
    public_key = data.public_key
    try:
        challenge = websafe_decode(public_key.challenge)
        allow_credentials = [
            PublicKeyCredentialDescriptor(
                type=PublicKeyCredentialType.PUBLIC_KEY,
                id=websafe_decode(credential.id),
            )
            for credential in public_key.allow_credentials
        ]
    except ValueError as e:
        raise MalformedChallenge("WebAuthn challenge is not valid base64url") from e

    user_verification = None
    if public_key.user_verification:
        try:
            user_verification = UserVerificationRequirement(public_key.user_verification)
        except ValueError:
            logger.debug(
                "Ignoring unknown user verification %r", public_key.user_verification
            )

    return PublicKeyCredentialRequestOptions(
        challenge=challenge,
        timeout=public_key.timeout,
        rp_id=public_key.rp_id,
        allow_credentials=allow_credentials or None,
        user_verification=user_verification,
        extensions=public_key.extensions,
    )


class ChallengeNegotiator:
    """Drives one second factor challenge to a final ticket.

    The negotiator tracks which methods the challenge offers and which one is
    active, validates the active method's input, talks to the hardware key
    for WebAuthn and submits the tagged proof. Its outcome is read with
    ``result()``. Closing it before a proof was produced rejects it with
    ``NegotiationCancelled``.

    Must be created inside a running event loop.
    """

    def __init__(
        self,
        tickets: TicketService,
        userid: str,
        ticket: str,
        challenge: Challenge,
        *,
        webauthn: WebAuthnAdapter | None = None,
    ) -> None:
        """Initialize the negotiator.

        Args:
            tickets: Ticket service used to submit the proof
            userid: User id returned with the challenge ticket
            ticket: The challenge ticket
            challenge: Decoded challenge
            webauthn: Adapter for hardware keys, needed for WebAuthn

        Raises:
            NoMethodAvailable: If the challenge populates no known method.
            MalformedChallenge: If the userid or ticket is empty, or the
                WebAuthn options cannot be decoded.

        """
        if not userid:
            msg = "challenge ticket has no userid"
            raise MalformedChallenge(msg)
        if not ticket:
            msg = "challenge ticket is empty"
            raise MalformedChallenge(msg)

        # re-checked here, the challenge may not come from decode_challenge
        self._available = tuple(m for m in TfaMethod if challenge.is_available(m))
        if not self._available:
            raise NoMethodAvailable()

        self._request_options: PublicKeyCredentialRequestOptions | None = None
        if challenge.webauthn is not None:
            self._request_options = decode_request_options(challenge.webauthn)

        self._tickets = tickets
        self._userid = userid
        self._ticket = ticket
        self._challenge = challenge
        self._webauthn = webauthn

        self._active = self._available[0]
        self._state = NegotiationState.SELECTING_METHOD
        self._inputs: dict[TfaMethod, str] = {}
        self._cancelled = True
        self._closed = asyncio.Event()
        self._result: asyncio.Future[TicketData] = (
            asyncio.get_running_loop().create_future()
        )
        self._webauthn_task: asyncio.Task[None] | None = None
        self._submit_task: asyncio.Task[None] | None = None
        self.last_webauthn_error: WebAuthnFailed | None = None
        self.last_validation_error: LocalValidationFailed | None = None

        self._handlers: dict[TfaMethod, Callable[[], Awaitable[None]]] = {
            TfaMethod.WEBAUTHN: self._confirm_webauthn,
            TfaMethod.TOTP: self._login_totp,
            TfaMethod.RECOVERY: self._login_recovery,
        }

    @property
    def state(self) -> NegotiationState:
        """Current negotiation state."""
        return self._state

    @property
    def active_method(self) -> TfaMethod:
        """Currently selected method."""
        return self._active

    @property
    def available_methods(self) -> tuple[TfaMethod, ...]:
        """Methods offered by the challenge, in priority order."""
        return self._available

    @property
    def available_recovery_keys(self) -> tuple[str, ...]:
        """Identifiers of the unused recovery keys."""
        return tuple(self._challenge.recovery or ())

    @property
    def recovery_keys_low(self) -> bool:
        """Whether the user is running out of recovery keys."""
        keys = self.available_recovery_keys
        return bool(keys) and len(keys) <= RECOVERY_LOW_THRESHOLD

    @property
    def webauthn_pending(self) -> bool:
        """Whether a hardware request is in flight."""
        return self._webauthn_task is not None and not self._webauthn_task.done()

    @property
    def can_confirm(self) -> bool:
        """Whether the active method can be confirmed right now."""
        if self._state not in _OPEN_STATES:
            return False
        if self._active is TfaMethod.WEBAUTHN:
            return not self.webauthn_pending
        return validate_input(self._active, self._inputs.get(self._active, ""))

    @property
    def done(self) -> bool:
        """Whether the negotiation is resolved or rejected."""
        return self._result.done()

    def start(self) -> None:
        """Enter method selection, starting the hardware request if offered."""
        logger.debug("Second factor methods offered: %s", ", ".join(self._available))
        if TfaMethod.WEBAUTHN in self._available:
            self._begin_webauthn()

    def select_method(self, method: TfaMethod) -> None:
        """Make another available method the active one.

        Switching away from WebAuthn aborts a pending hardware request.

        Raises:
            NegotiationStateError: While a proof is submitted, after the
                negotiation ended, or for methods the challenge lacks.

        """
        if self._state not in _OPEN_STATES:
            msg = f"cannot switch method while {self._state.value}"
            raise NegotiationStateError(msg)
        if method not in self._available:
            msg = f"{method} is not available for this challenge"
            raise NegotiationStateError(msg)
        if method is self._active:
            return

        if self._active is TfaMethod.WEBAUTHN:
            self._cancel_webauthn()

        logger.info("Switching second factor method to %s", method)
        self._active = method
        if self._inputs.get(method):
            self._state = NegotiationState.AWAITING_INPUT
        else:
            self._state = NegotiationState.SELECTING_METHOD

    def set_input(self, value: str) -> None:
        """Set the input field of the active method.

        Raises:
            NegotiationStateError: If the negotiation is not open or the
                active method has no input field.

        """
        if self._state not in _OPEN_STATES:
            msg = f"cannot change input while {self._state.value}"
            raise NegotiationStateError(msg)
        if self._active not in INPUT_PATTERNS:
            msg = f"{self._active} takes no text input"
            raise NegotiationStateError(msg)

        self._inputs[self._active] = value
        self.last_validation_error = None
        self._state = NegotiationState.AWAITING_INPUT

    async def confirm(self) -> None:
        """Confirm the active method.

        For text methods this validates the input and submits it. Malformed
        input is not submitted; the failure is kept in
        ``last_validation_error`` and the negotiation stays open. For WebAuthn
        it runs another hardware round trip.

        Raises:
            NegotiationStateError: If the negotiation is not open or a
                hardware request is already pending.

        """
        if self._state not in _OPEN_STATES:
            msg = f"cannot confirm while {self._state.value}"
            raise NegotiationStateError(msg)
        await self._handlers[self._active]()

    def close(self) -> None:
        """Close the dialog.

        Rejects the negotiation with ``NegotiationCancelled`` unless a proof
        was produced. Safe to call more than once.
        """
        self._closed.set()
        if not self._cancelled:
            # a proof is being submitted and settles the outcome
            return
        self._cancel_webauthn()
        if not self.done:
            logger.info("Second factor dialog closed without a proof")
            self._reject(NegotiationCancelled())

    async def wait_closed(self) -> None:
        """Wait until the dialog is closed or a proof was produced."""
        await self._closed.wait()

    async def result(self) -> TicketData:
        """Wait for the final ticket.

        Raises:
            TicketLoginError: The error that rejected the negotiation.

        """
        return await asyncio.shield(self._result)

    async def _login_totp(self) -> None:
        result = self._accept_input(TfaMethod.TOTP)
        if result is not None:
            await self._finish(result)

    async def _login_recovery(self) -> None:
        result = self._accept_input(TfaMethod.RECOVERY)
        if result is not None:
            await self._finish(result)

    async def _confirm_webauthn(self) -> None:
        if self.webauthn_pending:
            msg = "already waiting for the security key"
            raise NegotiationStateError(msg)
        task = self._begin_webauthn()
        # wait() leaves the task alone if the caller is cancelled
        await asyncio.wait({task})

    def _accept_input(self, method: TfaMethod) -> NegotiationResult | None:
        value = self._inputs.get(method, "")
        if not validate_input(method, value):
            logger.debug("Rejected malformed %s input", method)
            self.last_validation_error = LocalValidationFailed(method.value)
            return None
        self.last_validation_error = None
        return NegotiationResult(method=method, payload=value)

    def _begin_webauthn(self) -> asyncio.Task[None]:
        task = asyncio.ensure_future(self._login_webauthn())
        task.add_done_callback(self._task_done)
        self._webauthn_task = task
        return task

    def _cancel_webauthn(self) -> None:
        if self.webauthn_pending:
            logger.debug("Aborting pending WebAuthn request")
            self._webauthn_task.cancel()

    async def _login_webauthn(self) -> None:
        if self._webauthn is None or self._request_options is None:
            self._webauthn_failed(
                WebAuthnFailed(
                    WebAuthnFailureCause.DENIED, "No security key support configured"
                )
            )
            return

        try:
            assertion = await self._webauthn.request_assertion(self._request_options)
        except WebAuthnFailed as e:
            self._webauthn_failed(e)
            return

        # the backend matches the proof against the challenge text it issued
        assertion["challenge"] = self._challenge.webauthn.public_key.challenge
        payload = json.dumps(assertion, separators=(",", ":"))
        await self._finish(NegotiationResult(method=TfaMethod.WEBAUTHN, payload=payload))

    def _webauthn_failed(self, error: WebAuthnFailed) -> None:
        self.last_webauthn_error = error
        if self.done:
            return
        if any(method is not TfaMethod.WEBAUTHN for method in self._available):
            logger.info("WebAuthn failed (%s), other methods remain", error.cause.value)
            return
        self._reject(error)

    def _task_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Second factor task crashed", exc_info=error)
            if not self.done:
                failure = AuthFailed("Second factor request failed")
                failure.__cause__ = error
                self._reject(failure)

    async def _finish(self, result: NegotiationResult) -> None:
        if self._state not in _OPEN_STATES:
            msg = "a proof was already submitted"
            raise NegotiationStateError(msg)

        self._cancelled = False
        self._state = NegotiationState.SUBMITTING
        self._closed.set()
        if result.method is not TfaMethod.WEBAUTHN:
            self._cancel_webauthn()

        logger.info("Submitting %s proof for %s", result.method, self._userid)
        # owned by the negotiator so closing the dialog cannot abort it
        task = asyncio.ensure_future(self._submit(result.proof))
        task.add_done_callback(self._task_done)
        self._submit_task = task
        await asyncio.wait({task})

    async def _submit(self, proof: str) -> None:
        try:
            data = await self._tickets.submit_proof(self._userid, self._ticket, proof)
        except TicketLoginError as e:
            logger.warning("Second factor rejected for %s", self._userid)
            self._reject(e)
            return

        if not self.done:
            self._state = NegotiationState.RESOLVED
            self._result.set_result(data)

    def _reject(self, error: BaseException) -> None:
        self._closed.set()
        if self.done:
            return
        self._state = NegotiationState.REJECTED
        self._result.set_exception(error)
