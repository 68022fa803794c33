"""Base HTTP client for ticket endpoint requests.

Copyright (c) 2025 TicketLogin. All rights reserved.
"""

from __future__ import annotations

import logging
from typing import Any, NamedTuple
from urllib.parse import urljoin

import httpx  # type: ignore[import-untyped]

from .config import ClientSettings
from .exceptions import (
    AuthFailed,
    NetworkError,
    TimeoutError as AuthTimeoutError,
    create_error_from_response,
)

logger = logging.getLogger(__name__)


class RequestConfig(NamedTuple):
    """Configuration for HTTP requests."""

    form_data: dict[str, str] | None = None
    params: dict[str, Any] | None = None
    timeout: float | None = None


class BaseClient:
    """Base HTTP client for making API requests.

    Every request is attempted exactly once. A failed login must not be
    resubmitted behind the user's back, since repeated submissions can trip
    backend lockout policies.
    """

    def __init__(self, settings: ClientSettings | None = None) -> None:
        """Initialize base HTTP client.

        Args:
            settings: Client configuration, defaults to ``ClientSettings()``

        """
        self.settings = settings or ClientSettings()
        self.base_url = self.settings.base_url.rstrip("/")
        self.timeout = self.settings.timeout

        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            headers={"User-Agent": self.settings.user_agent},
            verify=self.settings.verify_tls,
        )

    async def __aenter__(self) -> BaseClient:
        """Async context manager entry.

        Returns:
            The client instance.

        """
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Async context manager exit."""
        await self._client.aclose()

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def make_request(
        self,
        method: str,
        endpoint: str,
        *,
        config: RequestConfig | None = None,
    ) -> dict[str, Any]:
        """Make a single HTTP request and decode its JSON body.

        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: API endpoint path
            config: Request configuration

        Returns:
            Parsed JSON response data.

        Raises:
            AuthFailed: For non-success statuses and undecodable bodies
            NetworkError: For network-related errors
            AuthTimeoutError: For timeout errors

        """
        if config is None:
            config = RequestConfig()

        url = urljoin(self.base_url + "/", endpoint.lstrip("/"))
        request_timeout = config.timeout or self.timeout

        logger.debug("%s %s", method, url)
        try:
            response = await self._execute_request(method, url, config, request_timeout)
        except httpx.TimeoutException as e:
            raise AuthTimeoutError("Request timeout") from e
        except httpx.NetworkError as e:
            raise NetworkError("Network error") from e
        except httpx.HTTPError as e:
            raise AuthFailed("Request failed") from e

        if not response.is_success:
            logger.debug("%s %s returned %s", method, url, response.status_code)
            raise create_error_from_response(response.status_code)

        try:
            payload = response.json()
        except ValueError as e:
            raise AuthFailed("Response is not valid JSON", status_code=response.status_code) from e

        if not isinstance(payload, dict):
            raise AuthFailed("Response is not a JSON object", status_code=response.status_code)
        return payload

    async def _execute_request(
        self,
        method: str,
        url: str,
        config: RequestConfig,
        timeout: float,
    ) -> httpx.Response:
        """Execute the actual HTTP request.

        Returns:
            The HTTP response.

        """
        if config.form_data is not None:
            return await self._client.request(
                method,
                url,
                data=config.form_data,
                params=config.params,
                timeout=timeout,
            )

        return await self._client.request(
            method,
            url,
            params=config.params,
            timeout=timeout,
        )
