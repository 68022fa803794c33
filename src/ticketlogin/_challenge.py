"""Decoding of second factor challenges embedded in tickets.

A ticket that starts with ``TFA_MARKER`` is not a session ticket. The rest of
the string is the URL-encoded JSON challenge, for example::

    PBS:!tfa!%7B%22totp%22%3Atrue%7D

Copyright (c) 2025 TicketLogin. All rights reserved.
"""

from __future__ import annotations

import json
from urllib.parse import unquote

from pydantic import ValidationError

from .exceptions import MalformedChallenge
from .models import Challenge

TFA_MARKER = "PBS:!tfa!"


def is_challenge(ticket: str) -> bool:
    """Check whether a ticket carries a pending second factor challenge."""
    return ticket.startswith(TFA_MARKER)


def decode_challenge(ticket: str) -> Challenge:
    """Decode the challenge embedded in a ticket.

    Raises:
        MalformedChallenge: If the ticket has no marker, the payload does not
            decode to a JSON object, or no known second factor is present.

    """
    if not is_challenge(ticket):
        raise MalformedChallenge("Ticket does not carry a challenge")

    encoded = ticket[len(TFA_MARKER):]
    try:
        payload = json.loads(unquote(encoded, errors="strict"))
    except ValueError as e:
        raise MalformedChallenge("Challenge is not valid JSON") from e

    if not isinstance(payload, dict):
        raise MalformedChallenge("Challenge is not a JSON object")

    try:
        return Challenge.model_validate(payload)
    except ValidationError as e:
        raise MalformedChallenge(
            "Challenge has no usable second factor", details=e.errors()
        ) from e
