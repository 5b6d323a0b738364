"""
Shared fixtures for adversarial tests.

Provides an attacker-facing coordinator whose issued code is known in
advance, so tests can mix correct and incorrect submissions.
"""

from collections.abc import Callable

import pytest

from src.domain.auth import AuthCoordinator


@pytest.fixture
def issued_code() -> str:
    return "482913"


@pytest.fixture
def coordinator(
    make_coordinator: Callable[..., AuthCoordinator], issued_code: str
) -> AuthCoordinator:
    """Coordinator that always issues issued_code."""
    return make_coordinator(issued_code)
