"""
Fixed email templates for application decisions.

Only the two terminal statuses have a template. Feedback is optional and
always HTML-escaped before it is placed into the body.
"""
from __future__ import annotations

from dataclasses import dataclass
from html import escape
from typing import Optional

SIGNATURE = "Internship Management Team"


@dataclass(frozen=True)
class EmailMessage:
    subject: str
    html: str


def _feedback_block(label: str, feedback: Optional[str], accent: str, background: str) -> str:
    text = (feedback or "").strip()
    if not text:
        return ""
    return (
        f'<div style="background-color: {background}; padding: 15px; border-left: 4px solid {accent}; margin: 20px 0;">'
        f'<p style="margin: 0;"><strong>{label}:</strong></p>'
        f'<p style="margin: 10px 0 0 0;">{escape(text)}</p>'
        "</div>"
    )


def _accepted(feedback: Optional[str]) -> EmailMessage:
    body = (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        '<h1 style="color: #059669;">Congratulations!</h1>'
        "<p>We are pleased to inform you that your internship application has been <strong>accepted</strong>.</p>"
        f"{_feedback_block('Message from Admin', feedback, '#059669', '#f0f9ff')}"
        "<p>Please check your student portal for next steps.</p>"
        f'<p style="margin-top: 30px;">Best regards,<br><strong>{SIGNATURE}</strong></p>'
        "</div>"
    )
    return EmailMessage(subject="Your Internship Application Has Been Accepted!", html=body)


def _rejected(feedback: Optional[str]) -> EmailMessage:
    body = (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        '<h1 style="color: #dc2626;">Application Update</h1>'
        "<p>Thank you for your interest in our internship program.</p>"
        "<p>After careful consideration, we regret to inform you that your application was not selected at this time.</p>"
        f"{_feedback_block('Feedback', feedback, '#dc2626', '#fef2f2')}"
        "<p>We encourage you to continue developing your skills and apply for future opportunities.</p>"
        f'<p style="margin-top: 30px;">Best regards,<br><strong>{SIGNATURE}</strong></p>'
        "</div>"
    )
    return EmailMessage(subject="Update on Your Internship Application", html=body)


_TEMPLATES = {"accepted": _accepted, "rejected": _rejected}


def render_status_email(status: str, feedback: Optional[str] = None) -> EmailMessage:
    """Compose the message for a decision; ValueError("invalid_status") for anything else."""
    builder = _TEMPLATES.get(str(status or "").strip().lower())
    if builder is None:
        raise ValueError("invalid_status")
    return builder(feedback)


__all__ = ["EmailMessage", "render_status_email"]
