# backend/utils/mailer.py
import httpx
import logging
from typing import List, Union
from urllib.parse import urljoin
from config import settings

logger = logging.getLogger(__name__)

class MailClient:
    def __init__(self):
        # Transactional email API (Resend-compatible)
        self.api_url = settings.RESEND_API_URL
        self.api_key = settings.RESEND_API_KEY
        self.sender = settings.MAIL_FROM

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def send(self, to: Union[str, List[str]], subject: str, html: str) -> bool:
        """
        Deliver one message. Delivery is fire-and-forget for callers: failures
        are logged and reported as False, never raised.
        """
        recipients = [to] if isinstance(to, str) else list(to)
        if not self.enabled:
            logger.warning("Email delivery disabled (no RESEND_API_KEY); dropping %r to %s", subject, recipients)
            return False

        url = urljoin(self.api_url, "/emails")
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        payload = {"from": self.sender, "to": recipients, "subject": subject, "html": html}
        async with httpx.AsyncClient(timeout=10.0) as client:
            try:
                response = await client.post(url, json=payload, headers=headers)
                response.raise_for_status()
            except (httpx.RequestError, httpx.HTTPStatusError) as e:
                logger.error(f"Email delivery to {recipients} failed: {e}")
                return False
        logger.info("Email %r sent to %s", subject, recipients)
        return True


def otp_email_html(code: str, minutes: int, heading: str = "Your Login Verification Code") -> str:
    return f"""
        <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
          <p style="color: #666; font-size: 16px;">{heading}</p>
          <h2 style="color: #333; font-size: 32px; letter-spacing: 5px; font-family: monospace;">{code}</h2>
          <p style="color: #999; font-size: 14px;">This code will expire in {minutes} minutes.</p>
          <p style="color: #999; font-size: 12px;">If you didn't request this code, please ignore this email.</p>
        </div>
    """


def welcome_email_html() -> str:
    return """
        <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
          <h1 style="color: #333;">Welcome to our newsletter!</h1>
          <p style="color: #666;">You'll be the first to hear about new drops, restocks and sales.</p>
        </div>
    """

mail_client = MailClient()
