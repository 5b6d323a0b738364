"""
Verification code generation and verification.

CodeGenerator produces the one-time codes; Verifier is the single point of
truth for whether a submitted code is valid. Every caller routes through
Verifier.verify rather than inspecting the CodeStore directly.
"""

import logging
import secrets
from dataclasses import dataclass

from .ports import Clock, CodeStore, ConsumeResult, Purpose

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CodeGenerator:
    """
    Generate fixed-width numeric codes.

    Uses the secrets module for cryptographic randomness. Returns a string
    to preserve leading zeros.
    """

    length: int = 6

    def generate(self) -> str:
        return "".join(secrets.choice("0123456789") for _ in range(self.length))


@dataclass
class Verifier:
    """
    Check and consume a submitted code in one atomic store operation.

    MISMATCH, EXPIRED and NOT_FOUND are reported identically as invalid so
    callers cannot learn which failure occurred.
    """

    code_store: CodeStore
    clock: Clock

    async def verify(self, phone: str, purpose: Purpose, code: str) -> bool:
        result = await self.code_store.try_consume(phone, purpose, code, self.clock.now())
        if result is ConsumeResult.CONSUMED:
            return True
        logger.info("Code rejected for %s (%s): %s", phone, purpose.value, result.value)
        return False
