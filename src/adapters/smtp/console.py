"""
Console email sender adapter - Implements EmailSender protocol.

This module provides a console-based implementation of the domain's
email sender port, logging verification codes to stdout for development.
"""

import logging

logger = logging.getLogger(__name__)


class ConsoleEmailSender:
    """
    Implements EmailSender protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    Selected when no email API key is configured.
    """

    def send_verification_code(
        self, email: str, first_name: str, code: str, expires_in_seconds: int
    ) -> bool:
        """
        Log verification code to console (simulates email delivery).

        Args:
            email: Recipient email address (normalized by domain layer)
            first_name: Recipient first name
            code: Plaintext one-time code
            expires_in_seconds: Code lifetime

        Returns:
            Always True
        """
        logger.info(
            "[VERIFICATION] Email: %s Name: %s Code: %s Expires in: %ds",
            email,
            first_name,
            code,
            expires_in_seconds,
        )
        return True
