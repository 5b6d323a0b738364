"""SMS adapters - Out-of-band code delivery."""

from .console import ConsoleSmsSender

__all__ = ["ConsoleSmsSender"]
