from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from .constants import DEFAULT_QUOTE, DEFAULT_REPLY_SIZE, RECV_BUFSIZE
from .digest import DigestVerifier
from .net import DatagramSocket, Impairment

log = logging.getLogger(__name__)

ReplyFn = Callable[[bytes], bytes]


def padded_quote(quote: bytes = DEFAULT_QUOTE, size: int = DEFAULT_REPLY_SIZE) -> ReplyFn:
    """Reply with ``quote`` padded with spaces to ``size`` bytes, whatever was asked."""

    def reply(_request: bytes) -> bytes:
        return quote.ljust(size, b" ")

    return reply


@dataclass(slots=True)
class ServerStats:
    requests: int = 0
    replies: int = 0
    dropped: int = 0


@dataclass(slots=True)
class Responder:
    """Answers every datagram with ``digest(message) || message``.

    ``corrupt`` sends an all-zero digest instead, and ``truncate`` sends only the
    first few bytes; both exist to exercise a client's failover paths.
    """

    udp: DatagramSocket
    reply: ReplyFn = field(default_factory=padded_quote)
    verifier: DigestVerifier = field(default_factory=DigestVerifier)
    corrupt: bool = False
    truncate: bool = False
    stats: ServerStats = field(default_factory=ServerStats)

    @classmethod
    def listening(
        cls,
        host: str = "127.0.0.1",
        port: int = 0,
        *,
        timeout_ms: int = 0,
        impairment: Impairment | None = None,
        **kwargs,
    ) -> "Responder":
        udp = DatagramSocket.listening(host, port, timeout_ms=timeout_ms, impairment=impairment)
        return cls(udp, **kwargs)

    @property
    def address(self):
        return self.udp.getsockname()

    def build_reply(self, request: bytes) -> bytes:
        message = self.reply(request)
        if self.corrupt:
            return bytes(self.verifier.digest_size) + message
        sealed = self.verifier.seal(message)
        if self.truncate:
            return sealed[: self.verifier.digest_size // 2]
        return sealed

    def handle_one(self) -> Optional[bytes]:
        """Serve a single request. Returns the request bytes, or None on receive timeout."""
        try:
            request, addr = self.udp.recvfrom(RECV_BUFSIZE)
        except TimeoutError:
            return None
        self.stats.requests += 1
        log.debug("request from %s: %r", addr, request)

        if self.udp.sendto(self.build_reply(request), addr):
            self.stats.replies += 1
        else:
            self.stats.dropped += 1
            log.debug("dropped reply to %s", addr)
        return request

    def serve_forever(self, max_requests: int | None = None) -> ServerStats:
        log.info("responding on %s", self.address)
        try:
            while max_requests is None or self.stats.requests < max_requests:
                self.handle_one()
        finally:
            self.close()
        return self.stats

    def close(self) -> None:
        self.udp.close()
