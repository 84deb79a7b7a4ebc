"""
Outbound email adapters for decision notifications.

Design:
- Framework-agnostic; the decision use case calls `send_status_email` once
  after the status write has committed.
- `ResendEmailSender` posts to the Resend HTTP API using requests. Any
  transport or API failure surfaces as NotificationError; nothing is retried.
- `LogEmailSender` records messages in memory for development and tests.

Security:
- Never log the API key. Recipient addresses are logged only on failure paths
  by exception class, not by value.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol
import logging

# Small indirection to ease monkeypatching in tests
import requests as http

from .templates import render_status_email

logger = logging.getLogger("portal.notifications")


class NotificationError(RuntimeError):
    """Delivery attempt failed. The caller decides how to report it."""


class EmailSenderProtocol(Protocol):
    def send_status_email(self, *, to: str, status: str, feedback: Optional[str] = None) -> Dict[str, object]:
        ...


def http_post(url: str, json: Dict[str, object], headers: Dict[str, str], timeout: float):
    return http.post(url, json=json, headers=headers, timeout=timeout)


class ResendEmailSender:
    def __init__(self, *, api_key: str, sender: str, api_url: str = "https://api.resend.com/emails", timeout: float = 10.0) -> None:
        self._api_key = api_key
        self._sender = sender
        self._api_url = api_url
        self._timeout = timeout

    def send_status_email(self, *, to: str, status: str, feedback: Optional[str] = None) -> Dict[str, object]:
        """Send the fixed template for `status` to `to`.

        Raises:
            ValueError: status is not accepted/rejected, or recipient is empty.
            NotificationError: transport error or non-2xx response.
        """
        message = render_status_email(status, feedback)
        if not (to or "").strip():
            raise ValueError("recipient_required")
        if not self._api_key:
            raise NotificationError("email_not_configured")
        payload = {
            "from": self._sender,
            "to": [to.strip()],
            "subject": message.subject,
            "html": message.html,
        }
        headers = {"Authorization": f"Bearer {self._api_key}", "Content-Type": "application/json"}
        try:
            resp = http_post(self._api_url, json=payload, headers=headers, timeout=self._timeout)
        except http.RequestException as exc:
            logger.warning("Email transport failed: %s", exc.__class__.__name__)
            raise NotificationError("email_transport_failed") from exc
        if resp.status_code >= 300:
            logger.warning("Email API rejected message: status=%s", resp.status_code)
            raise NotificationError("email_rejected")
        try:
            body = resp.json()
        except ValueError:
            body = {}
        return body if isinstance(body, dict) else {}


@dataclass
class SentEmail:
    to: str
    status: str
    feedback: Optional[str]
    subject: str
    html: str


@dataclass
class LogEmailSender:
    """Development sender: renders and records messages instead of delivering them."""

    sent: List[SentEmail] = field(default_factory=list)

    def send_status_email(self, *, to: str, status: str, feedback: Optional[str] = None) -> Dict[str, object]:
        message = render_status_email(status, feedback)
        if not (to or "").strip():
            raise ValueError("recipient_required")
        self.sent.append(SentEmail(to=to, status=status, feedback=feedback, subject=message.subject, html=message.html))
        logger.info("Recorded %s notification (log backend)", status)
        return {"id": f"log-{len(self.sent)}"}


__all__ = [
    "EmailSenderProtocol",
    "LogEmailSender",
    "NotificationError",
    "ResendEmailSender",
    "SentEmail",
    "http_post",
]
