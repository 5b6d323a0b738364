"""
JWT token signer adapter - Implements TokenSigner protocol with PyJWT.

Expiry is written into the token here but checked by the domain's
SessionIssuer against the injected clock, so decode() only verifies the
signature and the presence of the registered claims.
"""

from datetime import timedelta
from typing import Any

import jwt
from jwt.exceptions import PyJWTError

from src.domain.exceptions import InvalidToken


class JwtTokenSigner:
    """Implements TokenSigner protocol via HMAC-signed JWTs."""

    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        self._secret = secret
        self._algorithm = algorithm

    def sign(self, claims: dict[str, Any], ttl: timedelta) -> str:
        payload = dict(claims)
        payload["exp"] = claims["iat"] + int(ttl.total_seconds())
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def decode(self, token: str) -> dict[str, Any]:
        try:
            return jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"verify_exp": False, "verify_iat": False, "require": ["exp", "sub"]},
            )
        except PyJWTError as e:
            raise InvalidToken(str(e)) from None
