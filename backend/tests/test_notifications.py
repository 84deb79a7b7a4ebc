from __future__ import annotations

import pytest
import requests

from notifications import sender as mod
from notifications.sender import LogEmailSender, NotificationError, ResendEmailSender
from notifications.templates import render_status_email


class _Resp:
    def __init__(self, status_code: int, body=None):
        self.status_code = status_code
        self._body = body if body is not None else {}

    def json(self):
        return self._body


def test_accepted_template_has_subject_and_feedback():
    msg = render_status_email("accepted", "Great fit")
    assert msg.subject == "Your Internship Application Has Been Accepted!"
    assert "Congratulations!" in msg.html
    assert "Message from Admin" in msg.html
    assert "Great fit" in msg.html


def test_rejected_template_without_feedback_omits_block():
    msg = render_status_email("rejected")
    assert msg.subject == "Update on Your Internship Application"
    assert "Feedback:" not in msg.html
    assert "Internship Management Team" in msg.html


def test_feedback_is_html_escaped():
    msg = render_status_email("rejected", "<script>alert(1)</script>")
    assert "<script>" not in msg.html
    assert "&lt;script&gt;" in msg.html


@pytest.mark.parametrize("status", ["pending", "approved", ""])
def test_only_terminal_statuses_have_templates(status):
    with pytest.raises(ValueError):
        render_status_email(status)


def test_resend_sender_posts_payload(monkeypatch):
    calls = []

    def fake_post(url, json, headers, timeout):
        calls.append({"url": url, "json": json, "headers": headers})
        return _Resp(200, {"id": "email-1"})

    monkeypatch.setattr(mod, "http_post", fake_post)
    s = ResendEmailSender(api_key="re_live_key", sender="Portal <noreply@example.com>")
    result = s.send_status_email(to="s@example.com", status="accepted", feedback="Welcome")
    assert result == {"id": "email-1"}
    assert calls[0]["url"] == "https://api.resend.com/emails"
    assert calls[0]["headers"]["Authorization"] == "Bearer re_live_key"
    assert calls[0]["json"]["to"] == ["s@example.com"]
    assert calls[0]["json"]["from"] == "Portal <noreply@example.com>"


def test_resend_sender_maps_failures(monkeypatch):
    s = ResendEmailSender(api_key="re_live_key", sender="noreply@example.com")

    monkeypatch.setattr(mod, "http_post", lambda *a, **kw: _Resp(422, {"message": "bad"}))
    with pytest.raises(NotificationError):
        s.send_status_email(to="s@example.com", status="rejected")

    def boom(*a, **kw):
        raise requests.Timeout("slow")

    monkeypatch.setattr(mod, "http_post", boom)
    with pytest.raises(NotificationError):
        s.send_status_email(to="s@example.com", status="rejected")


def test_resend_sender_without_key_does_not_call_out(monkeypatch):
    def unexpected(*a, **kw):  # pragma: no cover - must not be called
        raise AssertionError("network call without api key")

    monkeypatch.setattr(mod, "http_post", unexpected)
    with pytest.raises(NotificationError):
        ResendEmailSender(api_key="", sender="noreply@example.com").send_status_email(
            to="s@example.com", status="accepted"
        )


def test_log_sender_records_messages():
    outbox = LogEmailSender()
    outbox.send_status_email(to="s@example.com", status="accepted", feedback="Great fit")
    assert len(outbox.sent) == 1
    assert outbox.sent[0].to == "s@example.com"
    assert "Great fit" in outbox.sent[0].html
    with pytest.raises(ValueError):
        outbox.send_status_email(to=" ", status="accepted")
