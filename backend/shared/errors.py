"""
Error taxonomy for the tracker.
Per-character errors are caught by the sync pipeline; listing failures abort a pass.
"""
from __future__ import annotations

from typing import Optional


class TrackerError(Exception):
    """Base for all tracker errors."""


class NotConfigured(TrackerError):
    """Provider credentials are missing."""


class CredentialRefreshFailed(TrackerError):
    """The OAuth client-credentials exchange failed."""


class ProviderError(TrackerError):
    """A provider answered with a non-success status or could not be reached."""

    def __init__(self, provider: str, status: Optional[int], message: str = "") -> None:
        self.provider = provider
        self.status = status
        detail = message or (f"unexpected status code: {status}" if status is not None else "request failed")
        super().__init__(f"{provider}: {detail}")


class DecodeError(TrackerError):
    """A provider response body could not be decoded."""


class StoreError(TrackerError):
    """Character store listing or persistence failure."""


class NotifyError(TrackerError):
    """Notification delivery failure."""
