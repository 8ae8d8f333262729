"""Shared fixtures: a populated memory store and a scriptable verifier."""

from __future__ import annotations

from typing import Any

import pytest

from provision.registry import ContextRegistry
from provision.store.memory import MemoryConfigStore
from provision.verification import Check, CheckOutcome

ALPHA = {
    "remote_host": "alpha.example.com",
    "services": {
        "http": {"type": "apache", "http_port": 8080},
        "db": {"type": "mysql"},
    },
}
BETA = {"remote_host": "beta.example.com", "services": {"http": {"type": "nginx"}}}
D10 = {"root": "/var/aegir/platforms/d10", "web_server": "alpha"}
EXAMPLE = {"platform": "d10", "db_server": "alpha"}


class FakeVerifier:
    """
    Verifier returning canned outcomes.

    Checks succeed unless their description contains one of the *failing*
    substrings, or *raise_on* matches, in which case ``run`` raises.
    """

    def __init__(self, failing: tuple[str, ...] = (), raise_on: str | None = None) -> None:
        self.failing = failing
        self.raise_on = raise_on
        self.checks: list[Check] = []

    def run(self, check: Check) -> CheckOutcome:
        self.checks.append(check)
        if self.raise_on and self.raise_on in check.description:
            raise RuntimeError(f"check crashed: {check.description}")
        if any(text in check.description for text in self.failing):
            return CheckOutcome.failure(f"{check.description} is down")
        return CheckOutcome.success()


@pytest.fixture
def records() -> dict[str, dict[str, Any]]:
    return {
        "server.alpha": ALPHA,
        "server.beta": BETA,
        "platform.d10": D10,
        "site.example": EXAMPLE,
    }


@pytest.fixture
def store(records: dict[str, dict[str, Any]]) -> MemoryConfigStore:
    return MemoryConfigStore(records)


@pytest.fixture
def registry(store: MemoryConfigStore) -> ContextRegistry:
    return ContextRegistry(store)


@pytest.fixture
def verifier() -> FakeVerifier:
    return FakeVerifier()


@pytest.fixture
def make_verifier() -> type[FakeVerifier]:
    return FakeVerifier
