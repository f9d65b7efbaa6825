from __future__ import annotations

"""
Error taxonomy shared by resolvers and the HTTP layer.

"Not found" is deliberately absent: resolvers return None for it.
"""

from typing import Optional


class MetadataError(Exception):
    """Base class for every metadata-server error."""


class ResolutionError(MetadataError):
    """A token lookup failed for a reason other than absence."""

    def __init__(self, key: str, detail: str):
        super().__init__(f"{key}: {detail}")
        self.key = key
        self.detail = detail


class MalformedDocument(ResolutionError):
    """A document exists but does not decode as the expected schema."""


class StorageFailure(ResolutionError):
    """The backing store failed (any I/O error other than a missing file)."""


class ConstructionFailure(MetadataError):
    """The storage root is unusable; the resolver must not be created."""


class InvalidTokenId(MetadataError, ValueError):
    """Caller supplied something that is not a decimal uint256."""

    def __init__(self, raw: str, reason: Optional[str] = None):
        msg = f"invalid token id {raw!r}"
        if reason:
            msg = f"{msg} ({reason})"
        super().__init__(msg)
        self.raw = raw
