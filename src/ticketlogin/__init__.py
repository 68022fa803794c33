"""
TicketLogin

Python client for ticket based logins with second factor negotiation.
Submits primary credentials, detects a second factor challenge embedded in
the returned ticket and negotiates WebAuthn, TOTP or recovery key proofs.
"""

from ._base import BaseClient, RequestConfig
from ._challenge import TFA_MARKER, decode_challenge, is_challenge
from ._negotiator import ChallengeNegotiator, NegotiationState, validate_input
from ._session import LoginSession, SessionSink, StateStore
from ._tickets import TicketService
from ._webauthn import NullIndicator, WaitingIndicator, WebAuthnAdapter
from .client import TicketLoginClient
from .config import ClientSettings
from .exceptions import *
from .models import *

__version__ = "1.0.0"

__all__ = [
    "TicketLoginClient",
    "ClientSettings",
    "BaseClient",
    "RequestConfig",
    "TicketService",
    "LoginSession",
    "StateStore",
    "SessionSink",
    "ChallengeNegotiator",
    "NegotiationState",
    "validate_input",
    "WebAuthnAdapter",
    "WaitingIndicator",
    "NullIndicator",
    "TFA_MARKER",
    "is_challenge",
    "decode_challenge",
    # Exceptions
    "TicketLoginError",
    "AuthFailed",
    "NetworkError",
    "TimeoutError",
    "MalformedChallenge",
    "NoMethodAvailable",
    "WebAuthnFailed",
    "WebAuthnFailureCause",
    "LocalValidationFailed",
    "NegotiationCancelled",
    "NegotiationStateError",
    # Models
    "Credentials",
    "TicketData",
    "TicketResponse",
    "Challenge",
    "CredentialDescriptor",
    "PublicKeyRequest",
    "WebAuthnChallengeData",
    "TfaMethod",
    "NegotiationResult",
]
