from __future__ import annotations

import enum
import logging
import socket
from dataclasses import dataclass
from typing import Optional

from .constants import DEFAULT_TIMEOUT_MS, RECV_BUFSIZE
from .digest import DigestVerifier, Response, Verification
from .errors import IntegrityMismatchError, MalformedResponseError, TransportError
from .net import DatagramSocket, SocketFactory
from .resolver import Endpoint

log = logging.getLogger(__name__)


class SessionState(enum.Enum):
    IDLE = "idle"
    CONNECTED = "connected"
    AWAITING_REPLY = "awaiting_reply"
    SUCCESS = "success"
    TIMEOUT = "timeout"
    MALFORMED = "malformed"
    MISMATCHED = "mismatched"
    TRANSPORT_ERROR = "transport_error"
    CLOSED = "closed"


class AttemptOutcome(enum.Enum):
    SUCCESS = "success"
    TIMEOUT = "timeout"
    MALFORMED = "malformed"
    MISMATCHED = "mismatched"
    TRANSPORT_ERROR = "transport_error"

    @property
    def retry_in_place(self) -> bool:
        return self is AttemptOutcome.TIMEOUT


@dataclass(frozen=True, slots=True)
class Attempt:
    outcome: AttemptOutcome
    payload: Optional[bytes] = None
    digest: Optional[bytes] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.outcome is AttemptOutcome.SUCCESS


class ExchangeSession:
    """One endpoint's connected datagram socket and the attempts made through it.

    Use :meth:`open` to create one; sessions are context managers and close on exit.
    """

    def __init__(
        self,
        endpoint: Endpoint,
        udp: DatagramSocket,
        verifier: DigestVerifier,
        bufsize: int = RECV_BUFSIZE,
    ):
        self.endpoint = endpoint
        self.udp = udp
        self.verifier = verifier
        self.bufsize = max(bufsize, verifier.digest_size)
        self.state = SessionState.CONNECTED

    @classmethod
    def open(
        cls,
        endpoint: Endpoint,
        *,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        verifier: DigestVerifier | None = None,
        socket_factory: SocketFactory = socket.socket,
    ) -> "ExchangeSession":
        if timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be > 0, got {timeout_ms}")
        try:
            udp = DatagramSocket.connected(endpoint, timeout_ms, socket_factory)
        except OSError as e:
            log.warning("cannot open %s: %s", endpoint, e)
            raise TransportError(f"cannot open {endpoint}: {e}") from e
        log.debug("opened %s (deadline %d ms)", endpoint, timeout_ms)
        return cls(endpoint, udp, verifier or DigestVerifier())

    def _finish(self, attempt: Attempt) -> Attempt:
        self.state = SessionState[attempt.outcome.name]
        return attempt

    def send_request(self, request: bytes) -> Optional[Attempt]:
        """Send ``request`` as a single datagram.

        Returns None on success, otherwise a TRANSPORT_ERROR attempt.
        """
        try:
            self.udp.send(request)
        except OSError as e:
            log.warning("send to %s failed: %s", self.endpoint, e)
            return self._finish(Attempt(AttemptOutcome.TRANSPORT_ERROR, error=TransportError(str(e))))
        self.state = SessionState.AWAITING_REPLY
        log.debug("sent %d bytes to %s", len(request), self.endpoint)
        return None

    def await_response(self) -> Attempt:
        try:
            raw = self.udp.recv(self.bufsize)
        except TimeoutError as e:
            log.debug("no reply from %s within deadline", self.endpoint)
            return self._finish(Attempt(AttemptOutcome.TIMEOUT, error=e))
        except OSError as e:
            log.warning("receive from %s failed: %s", self.endpoint, e)
            return self._finish(Attempt(AttemptOutcome.TRANSPORT_ERROR, error=TransportError(str(e))))

        try:
            response = Response.from_bytes(raw, self.verifier.digest_size)
        except MalformedResponseError as e:
            log.warning("malformed reply from %s: %s", self.endpoint, e)
            return self._finish(Attempt(AttemptOutcome.MALFORMED, error=e))

        if self.verifier.verify(response.digest, response.payload) is Verification.MATCHED:
            log.debug("digest ok from %s (%d bytes)", self.endpoint, len(raw))
            return self._finish(
                Attempt(AttemptOutcome.SUCCESS, payload=response.payload, digest=response.digest)
            )

        log.warning(
            "digest mismatch from %s (read %d bytes, digest %s)",
            self.endpoint,
            len(raw),
            response.digest.hex(),
        )
        mismatch = IntegrityMismatchError(f"digest mismatch from {self.endpoint}")
        return self._finish(Attempt(AttemptOutcome.MISMATCHED, digest=response.digest, error=mismatch))

    def exchange(self, request: bytes) -> Attempt:
        """One attempt: send, then wait for the reply."""
        failed = self.send_request(request)
        if failed is not None:
            return failed
        return self.await_response()

    def close(self) -> None:
        if self.state is SessionState.CLOSED:
            return
        self.udp.close()
        self.state = SessionState.CLOSED

    def __enter__(self) -> "ExchangeSession":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
