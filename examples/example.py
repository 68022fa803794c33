"""Example console login with the TicketLogin client."""
# Copyright (c) 2025 TicketLogin. All rights reserved.

import asyncio
import getpass
import logging
import os

from fido2.client import DefaultClientDataCollector, Fido2Client, UserInteraction
from fido2.hid import CtapHidDevice

from ticketlogin import (
    AuthFailed,
    ClientSettings,
    Credentials,
    NegotiationStateError,
    TfaMethod,
    TicketLoginClient,
    WebAuthnAdapter,
)


# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class ConsoleInteraction(UserInteraction):
    """Ask for touch and PIN on the console."""

    def prompt_up(self):
        logger.info(">>> Touch your security key <<<")

    def request_pin(self, permissions, rp_id):
        return getpass.getpass("Security key PIN: ")


class ConsoleIndicator:
    def show(self):
        logger.info("Waiting for security key...")

    def hide(self):
        logger.info("Done waiting for security key")


class MemoryStateStore:
    """Keeps the login form state in memory for this run."""

    def __init__(self):
        self.values = {}

    def get(self, key):
        return self.values.get(key)

    def set(self, key, value):
        self.values[key] = value

    def clear(self, key):
        self.values.pop(key, None)


class PrintingSession:
    def establish(self, data):
        logger.info("Session established for %s", data.username)

    def clear(self):
        logger.info("Session cleared")


def build_webauthn(origin):
    """Build a WebAuthn adapter for the first USB security key, if any."""
    device = next(CtapHidDevice.list_devices(), None)
    if device is None:
        logger.info("No security key found, WebAuthn will be unavailable")
        return None
    client = Fido2Client(
        device,
        DefaultClientDataCollector(origin),
        user_interaction=ConsoleInteraction(),
    )
    return WebAuthnAdapter(client, ConsoleIndicator())


async def ask(text):
    return await asyncio.to_thread(input, text)


async def console_dialog(negotiator):
    """Second factor dialog on the console. An empty answer closes it."""
    while not negotiator.done:
        methods = ", ".join(str(m) for m in negotiator.available_methods)
        logger.info("Second factor required. Available: %s", methods)

        if negotiator.recovery_keys_low:
            logger.warning(
                "Only %d recovery keys left", len(negotiator.available_recovery_keys)
            )
        if negotiator.last_webauthn_error is not None:
            logger.warning("Security key: %s", negotiator.last_webauthn_error.message)
        if negotiator.last_validation_error is not None:
            logger.warning("%s", negotiator.last_validation_error.message)

        if negotiator.active_method is TfaMethod.WEBAUTHN and negotiator.webauthn_pending:
            answer = await ask("Touch your key, or type a method name to switch: ")
        else:
            answer = await ask(f"{negotiator.active_method} (or a method name): ")
        answer = answer.strip()

        if not answer:
            return
        if negotiator.done:
            return

        try:
            if answer in {m.value for m in TfaMethod}:
                negotiator.select_method(TfaMethod(answer))
                continue
            if negotiator.active_method is TfaMethod.WEBAUTHN:
                await negotiator.confirm()
                continue
            negotiator.set_input(answer)
            await negotiator.confirm()
        except NegotiationStateError as e:
            logger.warning("%s", e.message)


async def main() -> None:
    """Execute main example function."""
    settings = ClientSettings.from_env()
    webauthn = build_webauthn(os.getenv("TICKETLOGIN_ORIGIN", settings.base_url))
    state = MemoryStateStore()

    async with TicketLoginClient(settings=settings) as client:
        login = client.session(state, PrintingSession(), console_dialog, webauthn=webauthn)

        username = login.restore_username() or await ask("Username: ")
        credentials = Credentials(
            username=username,
            password=getpass.getpass("Password: "),
            realm=await ask("Realm [pam]: ") or "pam",
        )

        try:
            data = await login.login(credentials, remember_username=True)
        except AuthFailed as e:
            logger.error("%s", e.message)
            return

        logger.info("Logged in as %s", data.username)


if __name__ == "__main__":
    asyncio.run(main())
