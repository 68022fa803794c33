"""Primary login credential models for TicketLogin.

Copyright (c) 2025 TicketLogin. All rights reserved.
"""

from pydantic import BaseModel, Field


class Credentials(BaseModel):
    """Primary login credentials for one submit attempt."""

    username: str = Field(min_length=1)
    password: str = Field(min_length=1)
    realm: str = Field(min_length=1)

    @property
    def userid(self) -> str:
        """Return the backend user id in ``user@realm`` form."""
        return f"{self.username}@{self.realm}"

    def to_form(self) -> dict[str, str]:
        """Build the ticket request body.

        The realm is folded into the username and never sent on its own.
        """
        return {
            "username": self.userid,
            "password": self.password,
        }
