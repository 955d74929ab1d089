"""Outbound email over SMTP.

Delivery is best-effort: an unconfigured or failing SMTP server makes
``send_email`` return False instead of raising.
"""

from __future__ import annotations

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from agromart.core.config import settings

logger = logging.getLogger(__name__)

STATUS_SUBJECTS = {
    "approved": "Your verification was approved",
    "rejected": "Your verification was rejected",
    "flagged": "Action required: More info needed",
}


def render_status_email(status: str, reason: str | None = None, submission_id: int | None = None) -> dict[str, str]:
    """Subject, text and html for a verification status change."""
    lines = [f"Status: {status}"]
    if reason:
        lines.append(f"Reason: {reason}")
    if submission_id:
        lines.append(f"Submission #{submission_id}")
    text = "\n".join(lines)
    return {
        "subject": STATUS_SUBJECTS.get(status, "Verification update"),
        "text": text,
        "html": "<p>" + text.replace("\n", "<br/>") + "</p>",
    }


def _build_message(to: str, subject: str, text: str, html: str | None) -> MIMEMultipart:
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = settings.email_from
    msg["To"] = to
    msg.attach(MIMEText(text, "plain", "utf-8"))
    if html:
        msg.attach(MIMEText(html, "html", "utf-8"))
    return msg


def send_email(to: str, subject: str, text: str, html: str | None = None) -> bool:
    """Send one email. Returns True on success."""
    if not settings.smtp_host or not to:
        logger.debug("SMTP not configured, skipping email to %s", to)
        return False
    msg = _build_message(to, subject, text, html)
    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=settings.smtp_timeout_seconds) as smtp:
            if settings.smtp_use_tls:
                smtp.starttls()
            if settings.smtp_user:
                smtp.login(settings.smtp_user, settings.smtp_password)
            smtp.send_message(msg)
    except (smtplib.SMTPException, OSError):
        logger.warning("Email to %s failed", to, exc_info=True)
        return False
    return True


def send_status_email(to: str, status: str, reason: str | None = None, submission_id: int | None = None) -> bool:
    rendered = render_status_email(status, reason, submission_id)
    return send_email(to, rendered["subject"], rendered["text"], rendered["html"])
