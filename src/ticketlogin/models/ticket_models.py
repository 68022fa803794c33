"""Ticket response models for TicketLogin.

Copyright (c) 2025 TicketLogin. All rights reserved.
"""

from pydantic import BaseModel, Field


class TicketData(BaseModel):
    """Ticket data returned by the ticket endpoint.

    Holds either a usable session ticket or, when the ticket carries the
    second factor marker, a pending challenge.
    """

    ticket: str = Field(min_length=1)
    username: str = Field(min_length=1)
    csrf_prevention_token: str | None = Field(
        default=None, alias="CSRFPreventionToken"
    )

    class Config:
        """Pydantic configuration."""

        extra = "allow"
        populate_by_name = True


class TicketResponse(BaseModel):
    """Envelope of a ticket endpoint response."""

    data: TicketData
