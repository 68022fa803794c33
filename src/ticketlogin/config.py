"""Client configuration.

Copyright (c) 2025 TicketLogin. All rights reserved.
"""

from __future__ import annotations

import os

from pydantic import BaseModel, Field

DEFAULT_TICKET_PATH = "/api2/json/access/ticket"


class ClientSettings(BaseModel):
    """Configuration for the ticket login client.

    Environment Variables:
        TICKETLOGIN_BASE_URL: Base URL of the backend, e.g. https://backup:8007
        TICKETLOGIN_TICKET_PATH: Path of the ticket endpoint
        TICKETLOGIN_TIMEOUT: Request timeout in seconds
        TICKETLOGIN_VERIFY_TLS: Verify the server certificate (true/false)
    """

    base_url: str = Field(
        default="https://localhost:8007",
        description="Base URL of the ticket issuing backend",
    )
    ticket_path: str = Field(
        default=DEFAULT_TICKET_PATH,
        description="Ticket endpoint, used for primary and second factor login",
    )
    timeout: float = Field(
        default=30.0,
        gt=0,
        description="Request timeout in seconds",
    )
    verify_tls: bool = Field(
        default=True,
        description="Verify the backend TLS certificate",
    )
    user_agent: str = Field(
        default="ticketlogin-python/1.0.0",
        description="User-Agent header sent with every request",
    )

    @classmethod
    def from_env(cls) -> ClientSettings:
        """Create configuration from environment variables."""

        def parse_bool(key: str, default: bool = False) -> bool:
            val = os.getenv(key, "").lower()
            if val in ("true", "1", "yes", "on"):
                return True
            if val in ("false", "0", "no", "off"):
                return False
            return default

        return cls(
            base_url=os.getenv("TICKETLOGIN_BASE_URL", "https://localhost:8007"),
            ticket_path=os.getenv("TICKETLOGIN_TICKET_PATH", DEFAULT_TICKET_PATH),
            timeout=float(os.getenv("TICKETLOGIN_TIMEOUT", "30.0")),
            verify_tls=parse_bool("TICKETLOGIN_VERIFY_TLS", True),
        )
