# Overview: Outbound operator notifications (SMTP when configured, log-only otherwise).

import smtplib
from email.mime.text import MIMEText

from flask import current_app


def send_email(to_address: str, subject: str, body: str) -> bool:
    """
    Send a plain-text email through the configured SMTP server.

    Returns False (and logs) when mail is not configured or delivery fails;
    callers never depend on mail for correctness.
    """
    config = current_app.config
    if not config.get("MAIL_SERVER") or not to_address:
        current_app.logger.info("Mail not configured; would send %r to %s", subject, to_address)
        return False

    msg = MIMEText(body, "plain")
    msg["From"] = config.get("MAIL_SENDER")
    msg["To"] = to_address
    msg["Subject"] = subject

    try:
        with smtplib.SMTP(config["MAIL_SERVER"], config.get("MAIL_PORT", 587)) as server:
            server.starttls()
            if config.get("MAIL_USERNAME"):
                server.login(config["MAIL_USERNAME"], config.get("MAIL_PASSWORD") or "")
            server.send_message(msg)
    except (smtplib.SMTPException, OSError):
        current_app.logger.exception("Failed to send %r to %s", subject, to_address)
        return False

    current_app.logger.info("Email %r sent to %s", subject, to_address)
    return True


def notify_pending_registration(*, business_name: str, username: str, email: str, approval_url: str) -> bool:
    body = (
        f"A new bakery is waiting for approval.\n\n"
        f"Business: {business_name}\n"
        f"Owner: {username} <{email}>\n\n"
        f"Approve: {approval_url}\n"
    )
    current_app.logger.info("Registration pending approval: business=%r user=%s", business_name, username)
    return send_email(current_app.config.get("OPERATOR_EMAIL"), f"Approve bakery: {business_name}", body)
