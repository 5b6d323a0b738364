"""Token adapters - Session token signing."""

from .signer import JwtTokenSigner

__all__ = ["JwtTokenSigner"]
