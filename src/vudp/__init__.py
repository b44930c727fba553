"""Verified request/response over UDP.

A request is sent as one datagram to each address a name resolves to, in turn.
The reply is ``digest(message) || message``; it is trusted only once the digest
checks out. Timeouts are retried on the same address, anything else fails over
to the next one.
"""

from .controller import ExchangeResult, FailoverController, exchange
from .digest import DigestVerifier, Response, Verification
from .errors import (
    ExhaustedError,
    IntegrityMismatchError,
    MalformedResponseError,
    ResolutionError,
    TransportError,
    VudpError,
)
from .resolver import Endpoint, resolve
from .session import Attempt, AttemptOutcome, ExchangeSession

__all__ = [
    "Attempt",
    "AttemptOutcome",
    "DigestVerifier",
    "Endpoint",
    "ExchangeResult",
    "ExchangeSession",
    "ExhaustedError",
    "FailoverController",
    "IntegrityMismatchError",
    "MalformedResponseError",
    "ResolutionError",
    "Response",
    "TransportError",
    "Verification",
    "VudpError",
    "exchange",
    "resolve",
]
