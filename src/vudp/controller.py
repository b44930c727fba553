from __future__ import annotations

import logging
import socket
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Union

from .constants import DEFAULT_ALGORITHM, DEFAULT_MAX_ATTEMPTS, DEFAULT_TIMEOUT_MS
from .digest import DigestVerifier
from .errors import ExhaustedError, TransportError
from .resolver import Endpoint, resolve
from .session import Attempt, AttemptOutcome, ExchangeSession

log = logging.getLogger(__name__)

Resolver = Callable[[str, Union[str, int]], list[Endpoint]]
SessionFactory = Callable[..., ExchangeSession]


@dataclass(slots=True)
class EndpointReport:
    endpoint: Endpoint
    outcomes: list[AttemptOutcome] = field(default_factory=list)
    sends: int = 0
    open_error: Optional[str] = None


@dataclass(slots=True)
class ExchangeResult:
    payload: bytes = b""
    digest: bytes = b""
    endpoint: Optional[Endpoint] = None
    reports: list[EndpointReport] = field(default_factory=list)
    sends: int = 0
    timeouts: int = 0
    start_ts: float = field(default_factory=time.monotonic)
    end_ts: float | None = None

    @property
    def duration_s(self) -> float:
        if self.end_ts is None:
            return 0.0
        return max(0.0, self.end_ts - self.start_ts)


@dataclass(slots=True)
class FailoverController:
    """Send ``request`` to each resolved endpoint in turn until one returns a verified reply.

    Per endpoint at most ``max_attempts`` requests are sent. Only a timeout is retried
    on the same endpoint; a transport error, a malformed reply or a digest mismatch
    moves on to the next endpoint. The first verified reply ends the whole run.
    """

    host: str
    service: Union[str, int]
    request: Union[bytes, str]
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    algorithm: str = DEFAULT_ALGORITHM
    resolver: Resolver = resolve
    session_factory: SessionFactory = ExchangeSession.open
    socket_factory: Callable[..., socket.socket] = socket.socket

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be > 0, got {self.timeout_ms}")
        if isinstance(self.request, str):
            self.request = self.request.encode("utf-8")

    def run(self) -> ExchangeResult:
        verifier = DigestVerifier(self.algorithm)
        result = ExchangeResult()
        endpoints = self.resolver(self.host, self.service)

        for endpoint in endpoints:
            report = EndpointReport(endpoint)
            result.reports.append(report)

            try:
                session = self.session_factory(
                    endpoint,
                    timeout_ms=self.timeout_ms,
                    verifier=verifier,
                    socket_factory=self.socket_factory,
                )
            except TransportError as e:
                report.open_error = str(e)
                log.warning("skipping %s: %s", endpoint, e)
                continue

            with session:
                attempt = self._drive(session, report, result)

            if attempt is not None and attempt.ok:
                result.payload = attempt.payload or b""
                result.digest = attempt.digest or b""
                result.endpoint = endpoint
                result.end_ts = time.monotonic()
                log.info(
                    "verified reply from %s after %d attempt(s)", endpoint, len(report.outcomes)
                )
                return result

        result.end_ts = time.monotonic()
        log.error(
            "no valid response from %s:%s after %d endpoint(s), %d request(s)",
            self.host,
            self.service,
            len(result.reports),
            result.sends,
        )
        raise ExhaustedError(
            f"no valid response from {self.host}:{self.service} after trying "
            f"{len(result.reports)} address(es) and {result.sends} request(s)",
            result.reports,
        )

    def _drive(
        self, session: ExchangeSession, report: EndpointReport, result: ExchangeResult
    ) -> Optional[Attempt]:
        attempt: Optional[Attempt] = None
        for n in range(1, self.max_attempts + 1):
            failed = session.send_request(self.request)
            if failed is not None:
                report.outcomes.append(failed.outcome)
                log.warning("send failed on %s; trying next address", session.endpoint)
                return failed
            report.sends += 1
            result.sends += 1

            attempt = session.await_response()
            report.outcomes.append(attempt.outcome)

            if attempt.outcome.retry_in_place:
                result.timeouts += 1
                log.warning(
                    "timeout (attempt %d of %d) on %s", n, self.max_attempts, session.endpoint
                )
                continue
            if attempt.ok:
                return attempt

            log.warning(
                "%s from %s; trying next address", attempt.outcome.value, session.endpoint
            )
            return attempt

        log.warning("giving up on %s after %d attempt(s)", session.endpoint, self.max_attempts)
        return attempt


def exchange(
    host: str,
    service: Union[str, int],
    request: Union[bytes, str],
    **kwargs,
) -> bytes:
    """Convenience wrapper returning only the verified payload."""
    return FailoverController(host, service, request, **kwargs).run().payload
