"""Tests for client configuration.

Copyright (c) 2025 TicketLogin. All rights reserved.
"""

from __future__ import annotations

import pydantic
import pytest
from ticketlogin import ClientSettings
from ticketlogin.config import DEFAULT_TICKET_PATH


def test_defaults() -> None:
    settings = ClientSettings()

    assert settings.base_url == "https://localhost:8007"
    assert settings.ticket_path == DEFAULT_TICKET_PATH
    assert settings.timeout == 30.0
    assert settings.verify_tls is True


def test_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Settings are read from TICKETLOGIN_* variables."""
    monkeypatch.setenv("TICKETLOGIN_BASE_URL", "https://backup.example:8007")
    monkeypatch.setenv("TICKETLOGIN_TICKET_PATH", "/custom/ticket")
    monkeypatch.setenv("TICKETLOGIN_TIMEOUT", "12.5")
    monkeypatch.setenv("TICKETLOGIN_VERIFY_TLS", "off")

    settings = ClientSettings.from_env()

    assert settings.base_url == "https://backup.example:8007"
    assert settings.ticket_path == "/custom/ticket"
    assert settings.timeout == 12.5
    assert settings.verify_tls is False


@pytest.mark.parametrize(
    ("value", "expected"),
    [("yes", True), ("0", False), ("", True), ("bogus", True)],
)
def test_verify_tls_from_env(
    monkeypatch: pytest.MonkeyPatch, value: str, expected: bool
) -> None:
    """Unrecognized values fall back to verifying certificates."""
    monkeypatch.setenv("TICKETLOGIN_VERIFY_TLS", value)

    assert ClientSettings.from_env().verify_tls is expected


def test_timeout_must_be_positive() -> None:
    with pytest.raises(pydantic.ValidationError):
        ClientSettings(timeout=0)
