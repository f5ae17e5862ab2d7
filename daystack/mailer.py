"""
mailer.py - Magic-link email delivery over SMTP.
Without a configured SMTP server (local development) the link is logged instead.
"""

import logging
from email.message import EmailMessage
from urllib.parse import urlparse

import aiosmtplib

from daystack.config import APP_NAME, EMAIL_SERVER, EMAIL_PORT, EMAIL_USER, EMAIL_PASSWORD, EMAIL_FROM

logger = logging.getLogger(__name__)


def render_magic_link(url: str) -> tuple[str, str]:
    """Plain-text and HTML bodies for a sign-in email."""
    host = urlparse(url).netloc
    text = f"Sign in to {host}\n\n{url}\n"
    html = f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h1 style="color: #333;">Sign in to {APP_NAME}</h1>
  <p>Click the link below to sign in to your account:</p>
  <a href="{url}" style="display: inline-block; background: #3b82f6; color: white; padding: 12px 24px; text-decoration: none; border-radius: 5px;">Sign In</a>
  <p style="margin-top: 20px; color: #666;">If you didn't request this email, you can safely ignore it.</p>
  <p style="color: #666;">This link will expire in 24 hours.</p>
</div>
"""
    return text, html


async def send_magic_link(to_email: str, url: str) -> None:
    """Send the sign-in link to the given address."""
    if not EMAIL_SERVER:
        logger.info(f"Magic link for {to_email}: {url}")
        return

    text, html = render_magic_link(url)
    message = EmailMessage()
    message["From"] = EMAIL_FROM
    message["To"] = to_email
    message["Subject"] = f"Sign in to {urlparse(url).netloc}"
    message.set_content(text)
    message.add_alternative(html, subtype="html")

    await aiosmtplib.send(
        message,
        hostname=EMAIL_SERVER,
        port=EMAIL_PORT,
        username=EMAIL_USER or None,
        password=EMAIL_PASSWORD or None,
        start_tls=True,
    )
    logger.info(f"Magic link sent to {to_email}")
