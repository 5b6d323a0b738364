"""
Session token issuance.

SessionIssuer decides which claims go into a session token and for how
long it is valid. The signing algorithm belongs to the TokenSigner port.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from .exceptions import InvalidToken
from .ports import Clock, TokenSigner, User


@dataclass
class SessionIssuer:
    """Mint and check signed, time-bounded session tokens."""

    signer: TokenSigner
    clock: Clock
    ttl: timedelta = field(default=timedelta(hours=24))

    async def issue(self, user: User) -> str:
        """
        Issue a session token for a user.

        Claims: sub (user id), phone, iat. The signer adds exp = iat + ttl.
        """
        claims = {
            "sub": user.id,
            "phone": user.phone,
            "iat": int(self.clock.now().timestamp()),
        }
        return self.signer.sign(claims, self.ttl)

    async def authenticate(self, token: str) -> dict[str, Any]:
        """
        Return the claims of a valid, unexpired token.

        Raises:
            InvalidToken: If the token fails verification or has expired
        """
        claims = self.signer.decode(token)
        exp = claims.get("exp")
        if not isinstance(exp, int | float) or not claims.get("sub"):
            raise InvalidToken("missing claims")
        if self.clock.now().timestamp() >= exp:
            raise InvalidToken("expired")
        return claims
