import smtplib
from collections.abc import Callable
from email.message import EmailMessage

from gamefinder.core.config import get_settings, get_smtp_ctx

Notifier = Callable[[str, str, int], None]


def _minutes_label(minutes: int) -> str:
    return "1 minute" if minutes == 1 else f"{minutes} minutes"


def build_reset_code_message(
    to_email: str, code: str, validity_minutes: int, sender: str
) -> EmailMessage:
    valid_for = _minutes_label(validity_minutes)
    msg = EmailMessage()
    msg["Subject"] = "Your GameFinder code"
    msg["From"] = sender
    msg["To"] = to_email
    msg.set_content(f"Your code: {code}\nThis code is valid for {valid_for}.\n")
    msg.add_alternative(
        f"""<div style="font-family:Arial,sans-serif">
            <h2>Your code</h2>
            <p style="font-size:32px;font-weight:bold;letter-spacing:6px">{code}</p>
            <p>This code is valid for {valid_for}.</p>
            <p>If you did not ask to reset your password, you can safely ignore this email.</p>
            </div>""",
        subtype="html",
    )
    return msg


def send_reset_code_via_smtp(to_email: str, code: str, validity_minutes: int) -> None:
    settings = get_settings()
    if not settings.smtp_host or not settings.mail_sender:
        raise smtplib.SMTPException("SMTP is not configured")

    msg = build_reset_code_message(
        to_email, code, validity_minutes, settings.mail_sender
    )
    ctx = get_smtp_ctx()
    if settings.smtp_use_ssl:
        smtp = smtplib.SMTP_SSL(
            settings.smtp_host, settings.smtp_port, timeout=20, context=ctx
        )
    else:
        smtp = smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=20)

    with smtp:
        if not settings.smtp_use_ssl:
            smtp.ehlo()
            smtp.starttls(context=ctx)
            smtp.ehlo()
        if settings.smtp_username:
            smtp.login(settings.smtp_username, settings.smtp_password or "")
        smtp.send_message(msg)
