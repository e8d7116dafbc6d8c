"""
Delivery stand-in that writes to the log.

Outside production the link or PIN itself is logged so the flows can be
exercised without a mail server.
"""

import logging

from src.app.services.notifier import INotifier

logger = logging.getLogger(__name__)


def mask_email(email: str) -> str:
    local, _, domain = email.partition("@")
    return f"{local[:2]}***@{domain}" if domain else "***"


class LoggingNotifier(INotifier):
    def __init__(self, reveal_secrets: bool = False):
        self.reveal_secrets = reveal_secrets

    async def send_magic_link(self, email: str, link: str) -> None:
        if self.reveal_secrets:
            logger.info(f"event=magic_link_delivered to={email} link={link}")
        else:
            logger.info(f"event=magic_link_delivered to={mask_email(email)}")

    async def send_password_reset(self, email: str, link: str) -> None:
        if self.reveal_secrets:
            logger.info(f"event=password_reset_delivered to={email} link={link}")
        else:
            logger.info(f"event=password_reset_delivered to={mask_email(email)}")

    async def send_login_pin(self, email: str, pin: str) -> None:
        if self.reveal_secrets:
            logger.info(f"event=pin_delivered to={email} pin={pin}")
        else:
            logger.info(f"event=pin_delivered to={mask_email(email)}")
