"""Hardware security key access for WebAuthn challenges.

Copyright (c) 2025 TicketLogin. All rights reserved.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Protocol

from fido2.client import ClientError
from fido2.ctap import CtapError
from fido2.utils import websafe_encode

from .exceptions import WebAuthnFailed, WebAuthnFailureCause

if TYPE_CHECKING:
    from collections.abc import Iterator

    from fido2.client import WebAuthnClient
    from fido2.webauthn import AuthenticationResponse, PublicKeyCredentialRequestOptions

logger = logging.getLogger(__name__)


class WaitingIndicator(Protocol):
    """The "waiting for device" affordance shown during a hardware request."""

    def show(self) -> None: ...

    def hide(self) -> None: ...


class NullIndicator:
    """Indicator that displays nothing."""

    def show(self) -> None:
        pass

    def hide(self) -> None:
        pass


def failure_cause(error: ClientError) -> WebAuthnFailureCause:
    """Map a python-fido2 client error onto a failure cause."""
    if (
        isinstance(error.cause, CtapError)
        and error.cause.code == CtapError.ERR.KEEPALIVE_CANCEL
    ):
        return WebAuthnFailureCause.CANCELLED
    if error.code == ClientError.ERR.TIMEOUT:
        return WebAuthnFailureCause.TIMEOUT
    if error.code == ClientError.ERR.OTHER_ERROR:
        return WebAuthnFailureCause.DEVICE_ERROR
    return WebAuthnFailureCause.DENIED


class WebAuthnAdapter:
    """Requests assertions from a hardware authenticator.

    The adapter expects request options whose challenge and credential ids are
    already raw bytes, and returns assertions with every byte field encoded as
    base64url, ready to be serialized into a proof.
    """

    def __init__(
        self,
        platform: WebAuthnClient,
        waiting: WaitingIndicator | None = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            platform: python-fido2 client, e.g. ``Fido2Client`` for a USB key
            waiting: Indicator shown while the device is being waited for

        """
        self._platform = platform
        self._waiting = waiting or NullIndicator()

    @contextmanager
    def _waiting_for_device(self) -> Iterator[None]:
        self._waiting.show()
        try:
            yield
        finally:
            self._waiting.hide()

    async def request_assertion(
        self, options: PublicKeyCredentialRequestOptions
    ) -> dict[str, Any]:
        """Ask the authenticator to sign the challenge.

        Cancelling the awaiting task aborts the pending device request.

        Args:
            options: Request options with raw byte challenge and credential ids

        Returns:
            Wire-ready assertion with base64url encoded byte fields.

        Raises:
            WebAuthnFailed: If the request is cancelled on the device, times
                out, is denied or the device cannot be reached.

        """
        event = threading.Event()
        with self._waiting_for_device():
            try:
                selection = await asyncio.to_thread(
                    self._platform.get_assertion, options, event
                )
                response = selection.get_response(0)
            except asyncio.CancelledError:
                # stops the polling loop of the worker thread
                event.set()
                raise
            except ClientError as e:
                cause = failure_cause(e)
                logger.warning("WebAuthn request failed: %s", cause.value)
                raise WebAuthnFailed(cause, details=repr(e)) from e
            except OSError as e:
                logger.warning("WebAuthn device error: %s", e)
                raise WebAuthnFailed(WebAuthnFailureCause.DEVICE_ERROR) from e

        return encode_assertion(response)


def encode_assertion(response: AuthenticationResponse) -> dict[str, Any]:
    """Encode an authentication response for transmission."""
    raw_id = bytes(response.raw_id)
    assertion = response.response
    return {
        "id": websafe_encode(raw_id),
        "type": "public-key",
        "rawId": websafe_encode(raw_id),
        "response": {
            "authenticatorData": websafe_encode(bytes(assertion.authenticator_data)),
            "clientDataJSON": websafe_encode(bytes(assertion.client_data)),
            "signature": websafe_encode(bytes(assertion.signature)),
        },
    }
