"""
Verification: Checking that real infrastructure matches declared config.

This module provides:

- VerificationState: Per-context lifecycle (unverified → verifying → verified/failed)
- Check / CheckOutcome: A single check and its result
- Verifier: Protocol for the collaborator that executes checks
- LocalVerifier: Built-in verifier (TCP port connects, local path checks)
- VerificationFailure / VerificationResult: Aggregated, non-fail-fast results
- verify_all: Verify several contexts, optionally in parallel

Aggregation contract:
- A context's verification collects every failure instead of stopping at
  the first one.
- Exceptions raised by a verifier are converted into failures; they never
  escape to the caller.
- When contexts are verified in parallel, all results are collected before
  returning and one context's failure never affects another's result.
"""

from __future__ import annotations

import logging
import socket
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterable, Protocol, runtime_checkable

if TYPE_CHECKING:
    from provision.context.base import Context

logger = logging.getLogger(__name__)

LOCAL_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})


class VerificationState(str, Enum):
    """Verification lifecycle of a context."""

    UNVERIFIED = "unverified"
    VERIFYING = "verifying"
    VERIFIED = "verified"
    FAILED = "failed"


@dataclass(frozen=True)
class Check:
    """
    A single check to run against real infrastructure.

    Attributes:
        kind: Check type understood by the verifier (``"tcp_port"``,
            ``"path_exists"``).
        description: Human-readable summary used in failure messages.
        params: Check parameters (host, port, path, ...).
    """

    kind: str
    description: str
    params: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CheckOutcome:
    """Result of running a :class:`Check`."""

    ok: bool
    message: str = ""
    skipped: bool = False

    @classmethod
    def success(cls, message: str = "") -> CheckOutcome:
        return cls(ok=True, message=message)

    @classmethod
    def failure(cls, message: str) -> CheckOutcome:
        return cls(ok=False, message=message)

    @classmethod
    def skip(cls, message: str) -> CheckOutcome:
        return cls(ok=True, message=message, skipped=True)


@runtime_checkable
class Verifier(Protocol):
    """
    Protocol for the collaborator that executes checks.

    Implementations may reach hosts directly, go through SSH, or be fakes
    in tests. They report failures by returning an unsuccessful
    :class:`CheckOutcome`; raising is tolerated and converted to a failure.
    """

    def run(self, check: Check) -> CheckOutcome:
        ...


class LocalVerifier:
    """
    Verifier that runs checks from the current machine.

    Supports:
    - ``tcp_port``: connect to ``params["host"]:params["port"]``
    - ``path_exists``: test ``params["path"]`` when ``params["host"]`` is local;
      paths on remote hosts are skipped (remote execution is not available)
    """

    def __init__(self, timeout: float = 2.0) -> None:
        self.timeout = timeout

    def run(self, check: Check) -> CheckOutcome:
        method = getattr(self, f"_check_{check.kind}", None)
        if method is None:
            return CheckOutcome.failure(f"unsupported check kind {check.kind!r}")
        return method(check.params)

    def _check_tcp_port(self, params: dict[str, Any]) -> CheckOutcome:
        host, port = params["host"], int(params["port"])
        try:
            with socket.create_connection((host, port), timeout=self.timeout):
                return CheckOutcome.success(f"{host}:{port} reachable")
        except OSError as e:
            return CheckOutcome.failure(f"{host}:{port} unreachable ({e})")

    def _check_path_exists(self, params: dict[str, Any]) -> CheckOutcome:
        host = params.get("host", "localhost")
        path = params["path"]
        if host not in LOCAL_HOSTS:
            return CheckOutcome.skip(f"cannot inspect {path} on remote host {host}")
        if Path(path).exists():
            return CheckOutcome.success(f"{path} exists")
        return CheckOutcome.failure(f"{path} does not exist")

    def __repr__(self) -> str:
        return f"LocalVerifier(timeout={self.timeout})"


@dataclass(frozen=True)
class VerificationFailure:
    """
    One failed sub-check of a context's verification.

    Attributes:
        subject: What failed, e.g. ``"service:http"`` or ``"reference:web_server"``.
        check: Description of the check that failed.
        message: Why it failed.
    """

    subject: str
    check: str
    message: str

    def __str__(self) -> str:
        return f"[{self.subject}] {self.check}: {self.message}"


@dataclass
class VerificationResult:
    """All failures collected while verifying one context."""

    context_name: str
    context_type: str
    failures: list[VerificationFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def state(self) -> VerificationState:
        return VerificationState.VERIFIED if self.ok else VerificationState.FAILED

    def add(self, subject: str, check: str, message: str) -> None:
        self.failures.append(VerificationFailure(subject, check, message))

    def extend(self, failures: Iterable[VerificationFailure]) -> None:
        self.failures.extend(failures)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "context": self.context_name,
            "type": self.context_type,
            "ok": self.ok,
            "failures": [
                {"subject": f.subject, "check": f.check, "message": f.message}
                for f in self.failures
            ],
        }


def run_check(verifier: Verifier, check: Check, subject: str) -> VerificationFailure | None:
    """
    Run *check* and turn anything but success into a failure.

    Exceptions from the verifier are captured so they never surface raw.
    """
    try:
        outcome = verifier.run(check)
    except Exception as e:  # noqa: BLE001
        logger.debug("Verifier raised on %s (%s)", subject, check.description, exc_info=True)
        return VerificationFailure(subject, check.description, f"{type(e).__name__}: {e}")
    if outcome.skipped:
        logger.info("Skipped %s (%s): %s", subject, check.description, outcome.message)
    if outcome.ok:
        return None
    return VerificationFailure(subject, check.description, outcome.message or "check failed")


def verify_all(
    contexts: Iterable[Context],
    verifier: Verifier | None = None,
    max_workers: int = 1,
) -> dict[str, VerificationResult]:
    """
    Verify several contexts and collect every result.

    Contexts are independent, so with ``max_workers > 1`` they are verified
    on a thread pool. Results are returned in input order.

    Args:
        contexts: Contexts to verify.
        verifier: Verifier collaborator (defaults to :class:`LocalVerifier`).
        max_workers: Number of worker threads; 1 verifies sequentially.

    Returns:
        Mapping of context name to :class:`VerificationResult`.
    """
    contexts = list(contexts)
    verifier = verifier or LocalVerifier()

    def _verify(context: Context) -> VerificationResult:
        try:
            return context.verify(verifier)
        except Exception as e:  # noqa: BLE001
            logger.debug("Verification of %r raised", context.name, exc_info=True)
            result = VerificationResult(context.name, context.type)
            result.add("context", "verify", f"{type(e).__name__}: {e}")
            return result

    if max_workers <= 1 or len(contexts) <= 1:
        results = [_verify(context) for context in contexts]
    else:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            results = list(pool.map(_verify, contexts))

    return {result.context_name: result for result in results}
