"""Repository adapters - Storage implementations."""

from .memory import InMemoryCodeStore, InMemoryRateLimiter, InMemoryUserDirectory
from .postgres import (
    PostgresCodeStore,
    PostgresRateLimiter,
    PostgresUserDirectory,
    run_migrations,
)

__all__ = [
    "InMemoryCodeStore",
    "InMemoryRateLimiter",
    "InMemoryUserDirectory",
    "PostgresCodeStore",
    "PostgresRateLimiter",
    "PostgresUserDirectory",
    "run_migrations",
]
