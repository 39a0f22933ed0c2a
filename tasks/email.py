"""
Email delivery background task
"""

import asyncio
import logging
from email.message import EmailMessage
from typing import List, Optional

import aiosmtplib

from celery_config import celery_app

logger = logging.getLogger(__name__)


def build_message(
    to: List[str],
    subject: str,
    text_body: str,
    html_body: Optional[str] = None,
    from_email: Optional[str] = None,
) -> EmailMessage:
    """Assemble a MIME message with a plain-text part and an optional HTML part."""
    message = EmailMessage()
    message["From"] = from_email or celery_app.conf.get("mail_from")
    message["To"] = ", ".join(to)
    message["Subject"] = subject
    message.set_content(text_body)
    if html_body:
        message.add_alternative(html_body, subtype="html")
    return message


async def _deliver(message: EmailMessage) -> None:
    conf = celery_app.conf
    await aiosmtplib.send(
        message,
        hostname=conf.get("smtp_host"),
        port=conf.get("smtp_port"),
        username=conf.get("smtp_username"),
        password=conf.get("smtp_password"),
        start_tls=conf.get("smtp_use_tls"),
    )


def _is_transient_error(error: Exception) -> bool:
    if isinstance(error, (aiosmtplib.SMTPConnectError, aiosmtplib.SMTPServerDisconnected)):
        return True
    if isinstance(error, aiosmtplib.SMTPResponseException):
        return 400 <= error.code < 500
    return isinstance(error, (ConnectionError, TimeoutError))


@celery_app.task(bind=True, max_retries=3, default_retry_delay=30)
def send_email_task(
    self,
    to: List[str],
    subject: str,
    text_body: str,
    html_body: Optional[str] = None,
    from_email: Optional[str] = None,
):
    """Deliver one email over SMTP, retrying transient failures."""
    message = build_message(to, subject, text_body, html_body, from_email)
    try:
        logger.info(f"Sending email: subject={subject!r}, task_id={self.request.id}")
        asyncio.run(_deliver(message))
    except Exception as e:
        logger.error(f"Email send failed: subject={subject!r}, error={e}")
        if _is_transient_error(e):
            raise self.retry(exc=e)
        raise
    return {"status": "sent", "to": to}
