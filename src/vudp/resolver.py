from __future__ import annotations

import logging
import socket
from dataclasses import dataclass
from typing import Any, Tuple, Union

from .errors import ResolutionError

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Endpoint:
    family: int
    socktype: int
    proto: int
    address: Tuple[Any, ...]

    @property
    def host(self) -> str:
        return self.address[0]

    @property
    def port(self) -> int:
        return self.address[1]

    def __str__(self) -> str:
        if self.family == socket.AF_INET6:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"


def resolve(
    host: str,
    service: Union[str, int],
    socktype: int = socket.SOCK_DGRAM,
    flags: int = 0,
) -> list[Endpoint]:
    """Resolve ``host``/``service`` to every candidate endpoint, in resolver order.

    Both address families are accepted; nothing is cached between calls.
    """
    try:
        infos = socket.getaddrinfo(host, service, socket.AF_UNSPEC, socktype, 0, flags)
    except socket.gaierror as e:
        raise ResolutionError(host, service, e.strerror or str(e)) from e
    except UnicodeError as e:
        raise ResolutionError(host, service, str(e)) from e

    endpoints = [
        Endpoint(family=family, socktype=stype, proto=proto, address=tuple(sockaddr))
        for family, stype, proto, _canon, sockaddr in infos
    ]
    if not endpoints:
        raise ResolutionError(host, service, "no addresses returned")

    log.debug("resolved %s:%s -> %s", host, service, ", ".join(str(ep) for ep in endpoints))
    return endpoints
