# backend/utils/mailer.py
import logging
import smtplib
from email.message import EmailMessage

from config import settings

logger = logging.getLogger(__name__)


def send_mail(to: str, subject: str, body: str):
    """Send a plain-text mail, or only log it when no SMTP host is configured."""
    if not settings.SMTP_HOST:
        logger.info("Mail to %s (%s): %s", to, subject, body)
        return

    message = EmailMessage()
    message["From"] = settings.MAIL_FROM
    message["To"] = to
    message["Subject"] = subject
    message.set_content(body)

    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as smtp:
        smtp.send_message(message)
    logger.info("Mail sent to %s (%s)", to, subject)
