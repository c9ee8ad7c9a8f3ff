"""
gazeboard/output/mailer.py — Outbound e-mail over SMTP.

Messages are sent on a short-lived worker thread; the result is handed back
to the scheduler thread as ``on_done(error)``, where ``error`` is None on
success.
"""

from __future__ import annotations

import logging
import smtplib
import threading
from email.headerregistry import Address
from email.message import EmailMessage
from typing import Callable, Optional, Sequence

from gazeboard.core.clock import Scheduler
from gazeboard.core.config import EmailConfig

logger = logging.getLogger(__name__)


class MailerNotConfigured(RuntimeError):
    """Raised (and reported through ``on_done``) when no sender is set."""


class SmtpTransport:
    """
    SMTP sender with STARTTLS and password login.

    Args:
        config: The ``email`` config section.
        scheduler: Receives the completion callback.
    """

    def __init__(self, config: EmailConfig, scheduler: Scheduler) -> None:
        self._cfg = config
        self._scheduler = scheduler

    @property
    def configured(self) -> bool:
        return self._cfg.is_configured

    def compose(self, recipients: Sequence[str], body: str) -> EmailMessage:
        """Build the message: the buffer text followed by the footer."""
        name = self._cfg.sender_name or self._cfg.sender_address
        message = EmailMessage()
        message["From"] = Address(
            display_name=self._cfg.sender_name, addr_spec=self._cfg.sender_address
        )
        message["To"] = ", ".join(recipients)
        message["Subject"] = f"A message from {name}"
        message.set_content(f"{body}\n\n\n{self._cfg.footer}")
        return message

    def send(
        self,
        recipients: Sequence[str],
        body: str,
        on_done: Callable[[Optional[Exception]], None],
    ) -> None:
        """Send *body* to *recipients* in the background."""
        if not self.configured:
            error = MailerNotConfigured("e-mail sender address is not configured")
            self._scheduler.call_soon_threadsafe(lambda: on_done(error))
            return
        message = self.compose(recipients, body)
        threading.Thread(
            target=self._send_worker,
            args=(message, on_done),
            name="smtp-worker",
            daemon=True,
        ).start()

    def _send_worker(
        self,
        message: EmailMessage,
        on_done: Callable[[Optional[Exception]], None],
    ) -> None:
        error: Optional[Exception] = None
        try:
            with smtplib.SMTP(self._cfg.host, self._cfg.port, timeout=self._cfg.timeout_s) as smtp:
                if self._cfg.use_tls:
                    smtp.starttls()
                password = self._cfg.password
                if password:
                    smtp.login(self._cfg.sender_address, password)
                smtp.send_message(message)
            logger.info("E-mail sent to %s", message["To"])
        except (smtplib.SMTPException, OSError) as exc:
            error = exc
        self._scheduler.call_soon_threadsafe(lambda: on_done(error))
