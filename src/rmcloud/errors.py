from __future__ import annotations

from typing import Optional


class RemarkableError(RuntimeError):
    """Base error for the reMarkable cloud uploader."""


class ServiceUnreachable(RemarkableError):
    """DNS, TLS, timeout or connection failure before a response arrived."""


class ServiceRejected(RemarkableError):
    """The service answered with a status other than 200."""

    def __init__(self, status: int, body: str = "", *, url: Optional[str] = None) -> None:
        self.status = status
        self.body = body
        self.url = url
        where = f" from {url}" if url else ""
        detail = f": {body[:200]}" if body else ""
        super().__init__(f"HTTP {status}{where}{detail}")


class MalformedServiceResponse(RemarkableError):
    """A 200 response whose body could not be understood.

    The raw body is kept on `raw_body` for diagnostics.
    """

    def __init__(self, raw_body: str, reason: str = "unexpected response shape") -> None:
        self.raw_body = raw_body
        self.reason = reason
        super().__init__(f"{reason}: {raw_body[:200]!r}")


class CredentialLoadError(RemarkableError):
    """The stored token could not be read."""


class CredentialStoreError(RemarkableError):
    """The token could not be written."""


class ArchiveError(RemarkableError):
    """Building the document archive failed."""


class PreconditionError(RemarkableError, ValueError):
    """A caller-side precondition does not hold (nothing was sent)."""


class PairingAborted(PreconditionError):
    """The user declined to enter a pairing code."""


class DocumentReadError(RemarkableError):
    """The local document could not be read."""


def describe_error(exc: BaseException) -> str:
    """Render `exc` and its `__cause__` chain as a single line."""
    parts = []
    seen = set()
    cur: Optional[BaseException] = exc
    while cur is not None and id(cur) not in seen:
        seen.add(id(cur))
        msg = str(cur) or cur.__class__.__name__
        parts.append(f"{cur.__class__.__name__}: {msg}")
        cur = cur.__cause__
    return " <- ".join(parts)


__all__ = [
    "RemarkableError",
    "ServiceUnreachable",
    "ServiceRejected",
    "MalformedServiceResponse",
    "CredentialLoadError",
    "CredentialStoreError",
    "ArchiveError",
    "PreconditionError",
    "PairingAborted",
    "DocumentReadError",
    "describe_error",
]
