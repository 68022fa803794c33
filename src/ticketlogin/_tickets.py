"""Ticket service for TicketLogin.

Copyright (c) 2025 TicketLogin. All rights reserved.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from ._base import BaseClient, RequestConfig
from .exceptions import AuthFailed
from .models import Credentials, TicketData, TicketResponse

logger = logging.getLogger(__name__)


class TicketService:
    """Service for the ticket endpoint.

    The same endpoint issues tickets for primary logins and finalizes second
    factor challenges. The service holds no state of its own.
    """

    def __init__(self, client: BaseClient) -> None:
        """Initialize ticket service.

        Args:
            client: The base HTTP client

        """
        self._client = client

    @property
    def endpoint(self) -> str:
        """Path of the ticket endpoint."""
        return self._client.settings.ticket_path

    async def submit_primary(self, credentials: Credentials) -> TicketData:
        """Submit primary credentials.

        Args:
            credentials: Username, password and realm

        Returns:
            Ticket data, possibly carrying a second factor challenge.

        """
        config = RequestConfig(form_data=credentials.to_form())
        logger.debug("Requesting ticket for %s", credentials.userid)
        response = await self._client.make_request("POST", self.endpoint, config=config)
        return self._parse(response)

    async def submit_proof(self, userid: str, ticket: str, proof: str) -> TicketData:
        """Finalize a second factor challenge.

        Args:
            userid: User id returned with the challenge ticket
            ticket: The challenge ticket from the primary login
            proof: Method tagged proof, e.g. ``totp:123456``

        Returns:
            Final ticket data.

        """
        data = {
            "username": userid,
            "password": proof,
            "tfa-challenge": ticket,
        }
        config = RequestConfig(form_data=data)
        logger.debug("Submitting second factor for %s", userid)
        response = await self._client.make_request("POST", self.endpoint, config=config)
        return self._parse(response)

    @staticmethod
    def _parse(response: dict[str, Any]) -> TicketData:
        try:
            return TicketResponse.model_validate(response).data
        except ValidationError as e:
            raise AuthFailed("Unexpected ticket response") from e
