from __future__ import annotations

import logging
import socket
import time
from dataclasses import dataclass
from typing import Callable, Iterator, Optional, Union

from .constants import STREAM_BUFSIZE
from .errors import TransportError
from .resolver import Endpoint, resolve

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ReadStats:
    data: bytes
    total_bytes: int
    last_read: int
    read_duration_s: float
    elapsed_s: float


class StreamClient:
    """Connects to the first reachable stream endpoint and reads until the peer closes."""

    def __init__(
        self,
        host: str,
        service: Union[str, int],
        bufsize: int = STREAM_BUFSIZE,
        resolver: Callable[..., list[Endpoint]] = resolve,
        socket_factory: Callable[..., socket.socket] = socket.socket,
    ):
        self.host = host
        self.service = service
        self.bufsize = bufsize
        self.resolver = resolver
        self.socket_factory = socket_factory
        self.sock: Optional[socket.socket] = None
        self.endpoint: Optional[Endpoint] = None

    def connect(self) -> Endpoint:
        self.sock, self.endpoint = self._open()
        return self.endpoint

    def _open(self) -> tuple[socket.socket, Endpoint]:
        for endpoint in self.resolver(self.host, self.service, socket.SOCK_STREAM):
            try:
                sock = self.socket_factory(endpoint.family, endpoint.socktype, endpoint.proto)
            except OSError as e:
                log.debug("cannot create socket for %s: %s", endpoint, e)
                continue
            try:
                sock.connect(endpoint.address)
            except OSError as e:
                log.debug("connect to %s failed: %s", endpoint, e)
                sock.close()
                continue
            log.info("connected to %s", endpoint)
            return sock, endpoint
        raise TransportError(f"failed to connect to {self.host}:{self.service}")

    def reads(self) -> Iterator[ReadStats]:
        """Yield one ReadStats per successful read; stops at end of stream."""
        sock = self.sock
        if sock is None:
            sock, self.endpoint = self._open()
            self.sock = sock
        total = 0
        start = time.monotonic()
        while True:
            read_start = time.monotonic()
            try:
                chunk = sock.recv(self.bufsize)
            except OSError as e:
                raise TransportError(f"read from {self.endpoint} failed: {e}") from e
            read_end = time.monotonic()
            if not chunk:
                log.info("%s closed the stream after %d bytes", self.endpoint, total)
                return
            total += len(chunk)
            yield ReadStats(
                data=chunk,
                total_bytes=total,
                last_read=len(chunk),
                read_duration_s=read_end - read_start,
                elapsed_s=read_end - start,
            )

    def close(self) -> None:
        sock, self.sock = self.sock, None
        if sock is not None:
            sock.close()

    def __enter__(self) -> "StreamClient":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
