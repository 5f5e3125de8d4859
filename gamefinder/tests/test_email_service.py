import smtplib

import pytest

from gamefinder.core.config import get_settings
from gamefinder.services import email_service


def test_reset_code_message_contents():
    msg = email_service.build_reset_code_message(
        "player@example.com", "4821", 1, "noreply@gamefinder.local"
    )

    assert msg["To"] == "player@example.com"
    assert msg["From"] == "noreply@gamefinder.local"
    assert msg["Subject"] == "Your GameFinder code"
    text = msg.get_body(preferencelist=("plain",)).get_content()
    assert "4821" in text
    assert "valid for 1 minute." in text
    html = msg.get_body(preferencelist=("html",)).get_content()
    assert "4821" in html


def test_reset_code_message_pluralizes_minutes():
    msg = email_service.build_reset_code_message(
        "player@example.com", "4821", 10, "noreply@gamefinder.local"
    )

    text = msg.get_body(preferencelist=("plain",)).get_content()
    assert "valid for 10 minutes." in text


def test_send_without_smtp_configuration_fails(monkeypatch):
    monkeypatch.setattr(get_settings(), "smtp_host", None)

    with pytest.raises(smtplib.SMTPException):
        email_service.send_reset_code_via_smtp("player@example.com", "4821", 1)
