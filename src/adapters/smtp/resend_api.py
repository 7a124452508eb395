"""
Resend email sender adapter - Implements EmailSender protocol.

Delivers verification codes through the Resend HTTP API. Delivery
failures are logged and reported as False; the pending registration
stays in place so the user can request a resend.
"""

import html
import logging

import resend
from resend.exceptions import ResendError

logger = logging.getLogger(__name__)

SUBJECT = "Verify your account"


def render_verification_html(first_name: str, code: str, expires_in_seconds: int) -> str:
    """Build the HTML body of the verification email."""
    minutes = max(1, expires_in_seconds // 60)
    return f"""<!DOCTYPE html>
<html>
  <head><meta charset="UTF-8"></head>
  <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
    <p>Hi {html.escape(first_name)},</p>
    <p>To complete your registration, please verify your email address using the code below:</p>
    <p style="font-size: 24px; font-weight: bold; letter-spacing: 2px;">{code}</p>
    <p>This code will expire in {minutes} minutes.</p>
    <p>If you didn't create this account, please ignore this email.</p>
  </body>
</html>
"""


class ResendEmailSender:
    """
    Implements EmailSender protocol via the resend library.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, api_key: str, from_email: str) -> None:
        resend.api_key = api_key
        self._from_email = from_email

    def send_verification_code(
        self, email: str, first_name: str, code: str, expires_in_seconds: int
    ) -> bool:
        """
        Send the verification email.

        Returns:
            True if Resend accepted the message, False otherwise
        """
        params = {
            "from": self._from_email,
            "to": [email],
            "subject": SUBJECT,
            "html": render_verification_html(first_name, code, expires_in_seconds),
        }

        try:
            response = resend.Emails.send(params)
        except ResendError as e:
            logger.error("Resend rejected verification email to %s: %s", email, e)
            return False
        except Exception:
            logger.exception("Error sending verification email to %s", email)
            return False

        logger.info("Verification email sent to %s (id: %s)", email, response.get("id"))
        return True
