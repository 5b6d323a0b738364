"""
Console SMS sender adapter - Implements Notifier protocol.

This module provides a console-based implementation of the domain's
notifier port, logging verification codes instead of sending an SMS.
"""

import logging

logger = logging.getLogger(__name__)


class ConsoleSmsSender:
    """
    Implements Notifier protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For demo/development purposes - prints verification codes to stdout.
    """

    async def send_verification_code(self, phone: str, code: str) -> None:
        """
        Log verification code to console (simulates SMS delivery).

        In production, this would be replaced with an SMS gateway adapter.
        The code is logged at INFO level to be visible in container logs.

        Args:
            phone: Recipient phone number (normalized by domain layer)
            code: Numeric verification code
        """
        logger.info("[VERIFICATION] Phone: %s Code: %s", phone, code)
