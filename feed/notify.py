"""Welcome e-mail notifications sent through Azure Service Bus."""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from typing import Any, Iterator

from azure.servicebus import ServiceBusClient, ServiceBusMessage

logger = logging.getLogger(__name__)

WELCOME_SUBJECT = "Welcome to the CertAthon Certification Portal"


def build_welcome_payload(email: str, first_name: str | None, default_password: str) -> dict[str, str]:
    return {
        "To": email,
        "Subject": WELCOME_SUBJECT,
        "Body": f"Hello {first_name or ''},\n\nYour temporary password is: {default_password}",
    }


class WelcomeNotifier:
    """Sends one welcome message per newly created user. Send failures propagate."""

    def __init__(self, sender: Any, default_password: str, timeout: float | None = None) -> None:
        self._sender = sender
        self._default_password = default_password
        self._timeout = timeout

    def send_welcome(self, email: str, first_name: str | None) -> None:
        payload = build_welcome_payload(email, first_name, self._default_password)
        message = ServiceBusMessage(json.dumps(payload), content_type="application/json")
        self._sender.send_messages(message, timeout=self._timeout)
        logger.info("Queued welcome message for %s", email)


@contextmanager
def open_email_sender(connection_string: str, queue_name: str) -> Iterator[Any]:
    """Service Bus client and queue sender, both closed on exit."""
    client = ServiceBusClient.from_connection_string(connection_string)
    with client:
        sender = client.get_queue_sender(queue_name=queue_name)
        with sender:
            yield sender
