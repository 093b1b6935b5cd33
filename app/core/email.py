"""
Email Service for ctrl+v

Delivers one-time login codes through Resend. Delivery is reported back to
the caller as a boolean so the endpoint can decide between a normal
response, the development fallback, or a configuration error.
"""

import logging

import resend

from app.core.config import Settings

logger = logging.getLogger(__name__)


def build_magic_code_html(code: str, expires_in_minutes: int) -> str:
    return f"""
    <!DOCTYPE html>
    <html>
    <head>
        <meta charset="utf-8">
        <meta name="viewport" content="width=device-width, initial-scale=1.0">
        <title>Your ctrl+v access code</title>
    </head>
    <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
        <p>Your ctrl+v code is:</p>
        <p style="font-size:24px;font-weight:bold;letter-spacing:3px">{code}</p>
        <p>This code expires in {expires_in_minutes} minutes.</p>
        <p style="color: #666; font-size: 14px;">If you didn't request this code, you can ignore this email.</p>
    </body>
    </html>
    """


async def send_magic_code_email(settings: Settings, email: str, code: str) -> bool:
    """Send the login code email. Returns True only if Resend accepted it."""
    if not settings.email_configured:
        logger.warning("Resend is not configured; login code for %s was not emailed", email)
        return False

    resend.api_key = settings.resend_api_key.get_secret_value()

    params = {
        "from": settings.resend_from_email,
        "to": [email],
        "subject": "Your ctrl+v access code",
        "html": build_magic_code_html(code, settings.magic_code_lifetime_minutes),
    }

    try:
        resend.Emails.send(params)
    except Exception as e:
        logger.error("Failed to send login code email to %s: %s", email, e)
        return False

    logger.info("Login code email sent to %s", email)
    return True
