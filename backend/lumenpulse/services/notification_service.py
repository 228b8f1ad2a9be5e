"""Password reset email delivery."""

from urllib.parse import urlencode

import httpx
import structlog

from lumenpulse.config import settings

logger = structlog.get_logger()


def build_reset_link(raw_token: str) -> str:
    base = settings.frontend_url.rstrip("/")
    return f"{base}/auth/reset-password?{urlencode({'token': raw_token})}"


async def send_password_reset_email(email: str, raw_token: str) -> bool:
    """
    Deliver a password reset link.

    Posts to the configured email relay webhook, or logs a mock email when
    none is configured. Returns True if the message was handed off.
    Failures are logged but don't raise - the reset token stays issued.
    """
    reset_link = build_reset_link(raw_token)
    webhook_url = settings.email_webhook_url

    if not webhook_url:
        logger.info(
            "mock_email_sent",
            to=email,
            subject="Reset Your Passkey",
            reset_link=reset_link,
        )
        return True

    payload = {
        "to": email,
        "subject": "Reset Your Passkey",
        "text": f"Please use the following link to reset your passkey: {reset_link}",
    }

    try:
        async with httpx.AsyncClient() as client:
            response = await client.post(webhook_url, json=payload, timeout=10.0)
            response.raise_for_status()
            logger.info("password_reset_email_sent")
            return True
    except httpx.HTTPStatusError as e:
        logger.error("email_webhook_error", status_code=e.response.status_code)
        return False
    except httpx.RequestError as e:
        logger.error("email_webhook_request_error", error=str(e))
        return False
