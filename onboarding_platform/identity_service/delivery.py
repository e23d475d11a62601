"""
Out-of-band delivery of password reset links.
"""
import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class ResetDelivery(Protocol):
    """Receives a freshly issued reset token for an account email."""

    def deliver(self, email: str, token: str) -> None:
        ...


class ConsoleResetDelivery:
    """
    Dev delivery channel: writes the reset link to the service log
    instead of sending an email.
    """

    def __init__(self, reset_url_base: str):
        self.reset_url_base = reset_url_base.rstrip("/")

    def reset_url(self, token: str) -> str:
        return f"{self.reset_url_base}/{token}"

    def deliver(self, email: str, token: str) -> None:
        logger.info("[DEV] Password reset link for %s: %s", email, self.reset_url(token))
