"""
Error Taxonomy
Exceptions shared by the REST client, transport session and caches.
"""
from typing import Optional


class SyncError(Exception):
    """Base class for all client-side synchronization errors."""

    default_message = "Synchronization error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class TransportError(SyncError):
    """Push connection could not be established or an emit failed."""

    default_message = "Push transport unavailable"


class FetchError(SyncError):
    """A REST read failed. The owning cache keeps its previous state."""

    default_message = "Failed to fetch data"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class MalformedEventError(SyncError):
    """A push payload is missing required identity or fails validation."""

    default_message = "Malformed push event"

    def __init__(self, message: Optional[str] = None, event_name: Optional[str] = None):
        self.event_name = event_name
        super().__init__(message)


class ActionRejected(SyncError):
    """The server declined a write. Returned inside a failed ActionResult."""

    default_message = "Action rejected by server"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class AuthenticationError(SyncError):
    """Login, registration or credential restore failed."""

    default_message = "Authentication failed"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)
