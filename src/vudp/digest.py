from __future__ import annotations

import enum
import hashlib
import hmac
from dataclasses import dataclass

from .constants import DEFAULT_ALGORITHM
from .errors import MalformedResponseError


class Verification(enum.Enum):
    MATCHED = "matched"
    MISMATCHED = "mismatched"


class DigestVerifier:
    """Computes and checks the digest that prefixes every reply."""

    def __init__(self, algorithm: str = DEFAULT_ALGORITHM):
        try:
            h = hashlib.new(algorithm)
        except (ValueError, TypeError) as e:
            raise ValueError(f"unsupported digest algorithm: {algorithm!r}") from e
        if h.digest_size == 0:
            raise ValueError(f"digest algorithm has variable output: {algorithm!r}")
        self.algorithm = algorithm
        self.digest_size = h.digest_size

    def digest(self, payload: bytes) -> bytes:
        return hashlib.new(self.algorithm, payload).digest()

    def verify(self, received: bytes, payload: bytes) -> Verification:
        if hmac.compare_digest(received, self.digest(payload)):
            return Verification.MATCHED
        return Verification.MISMATCHED

    def seal(self, payload: bytes) -> bytes:
        return self.digest(payload) + payload

    def __repr__(self) -> str:
        return f"DigestVerifier({self.algorithm!r})"


@dataclass(frozen=True, slots=True)
class Response:
    digest: bytes
    payload: bytes

    @staticmethod
    def from_bytes(raw: bytes, digest_size: int) -> "Response":
        if len(raw) < digest_size:
            raise MalformedResponseError(
                f"reply too short: {len(raw)} bytes, need >= {digest_size}"
            )
        return Response(digest=bytes(raw[:digest_size]), payload=bytes(raw[digest_size:]))
