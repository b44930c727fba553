from __future__ import annotations


class VudpError(Exception):
    pass


class ResolutionError(VudpError):
    """Host/service did not resolve to any endpoint."""

    def __init__(self, host: str, service: str | int, reason: str):
        super().__init__(f"cannot resolve {host}:{service}: {reason}")
        self.host = host
        self.service = service
        self.reason = reason


class TransportError(VudpError):
    pass


class MalformedResponseError(VudpError):
    pass


class IntegrityMismatchError(VudpError):
    pass


class ExhaustedError(VudpError):
    """Every endpoint and attempt failed. ``reports`` lists what happened per endpoint."""

    def __init__(self, message: str, reports: list | None = None):
        super().__init__(message)
        self.reports = list(reports or [])
