"""
Outbound email sink.

Sends are scheduled as FastAPI background tasks after the response, and
every failure stops here with a log line.
"""

import logging
import smtplib
import ssl
from email.mime.text import MIMEText
from typing import Optional

from app.core.config import Settings, settings


logger = logging.getLogger(__name__)


class EmailSink:
    def __init__(self, config: Optional[Settings] = None):
        self.config = config or settings

    @property
    def enabled(self) -> bool:
        return bool(self.config.SMTP_HOST)

    def send(self, to_address: str, subject: str, body: str) -> bool:
        if not self.enabled:
            logger.info("SMTP not configured, skipping email to %s: %s", to_address, subject)
            return False

        message = MIMEText(body, "plain", "utf-8")
        message["Subject"] = subject
        message["From"] = self.config.EMAIL_FROM
        message["To"] = to_address

        try:
            with smtplib.SMTP(self.config.SMTP_HOST, self.config.SMTP_PORT, timeout=10) as server:
                server.starttls(context=ssl.create_default_context())
                if self.config.SMTP_USER and self.config.SMTP_PASSWORD:
                    server.login(self.config.SMTP_USER, self.config.SMTP_PASSWORD)
                server.sendmail(self.config.EMAIL_FROM, [to_address], message.as_string())
        except Exception as e:
            logger.error("Failed to send email to %s (%s): %s", to_address, subject, e)
            return False

        logger.info("Email sent to %s: %s", to_address, subject)
        return True

    def send_availability_status(self, to_address: str, firstname: str, location: str, day: str, status: str) -> bool:
        subject = f"Availability {status}"
        body = (
            f"Hi {firstname},\n\n"
            f"your availability for {location} on {day} has been {status}.\n\n"
            f"{self.config.FRONTEND_URL}\n"
        )
        return self.send(to_address, subject, body)


def get_email_sink() -> EmailSink:
    return EmailSink()
