"""
Push Channel Interface
Abstract base class for persistent push connections
"""
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional, Union

EventHandler = Callable[[Any], Union[None, Awaitable[None]]]
LifecycleHandler = Callable[[], Union[None, Awaitable[None]]]
ErrorHandler = Callable[[Any], Union[None, Awaitable[None]]]


class PushChannel(ABC):
    """
    One low-level push connection.

    Framing, handshake and automatic reconnection belong to the
    implementation. The transport session owns at most one channel at a
    time and layers subscription replay on top of it.
    """

    @abstractmethod
    async def connect(self, url: str, token: str) -> None:
        """
        Open the connection, authenticating with a bearer token.

        Raises:
            TransportError: If the initial connection fails
        """
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the connection and stop reconnecting."""
        pass

    @abstractmethod
    async def emit(self, event: str, data: Any = None) -> None:
        """
        Send a named event.

        Raises:
            TransportError: If the channel is not connected
        """
        pass

    @abstractmethod
    def on(self, event: str, handler: EventHandler) -> None:
        """Register a handler for a named inbound event."""
        pass

    @abstractmethod
    def on_connect(self, handler: LifecycleHandler) -> None:
        """Called after every successful connection, including reconnects."""
        pass

    @abstractmethod
    def on_disconnect(self, handler: LifecycleHandler) -> None:
        pass

    @abstractmethod
    def on_error(self, handler: ErrorHandler) -> None:
        """Called with connection and protocol errors."""
        pass

    @property
    @abstractmethod
    def connected(self) -> bool:
        pass

    @property
    def session_id(self) -> Optional[str]:
        return None
