"""TicketLogin models package.

Copyright (c) 2025 TicketLogin. All rights reserved.
"""

from .challenge_models import (
    Challenge,
    CredentialDescriptor,
    NegotiationResult,
    PublicKeyRequest,
    TfaMethod,
    WebAuthnChallengeData,
)
from .credentials_models import Credentials
from .ticket_models import TicketData, TicketResponse

__all__ = [
    # Credential models
    "Credentials",
    # Ticket models
    "TicketData",
    "TicketResponse",
    # Challenge models
    "Challenge",
    "CredentialDescriptor",
    "NegotiationResult",
    "PublicKeyRequest",
    "TfaMethod",
    "WebAuthnChallengeData",
]
