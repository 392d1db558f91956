"""
Socket.IO Push Channel
python-socketio implementation of the push channel.

Reconnection is handled by the socket.io client itself; every successful
(re)connection fires the "connect" lifecycle handlers so the transport
session can replay subscriptions.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional

import socketio
from socketio import exceptions as socketio_exceptions

from leadsync.core.config import Settings
from leadsync.core.errors import TransportError
from leadsync.domain.interfaces.push_channel import (
    ErrorHandler,
    EventHandler,
    LifecycleHandler,
    PushChannel,
)

logger = logging.getLogger(__name__)


async def _call(handler, *args) -> None:
    result = handler(*args)
    if asyncio.iscoroutine(result):
        await result


class SocketIOPushChannel(PushChannel):
    """
    Push channel over a socket.io AsyncClient.

    The bearer token is sent in the socket.io auth payload
    ({"token": ...}), matching the server's handshake middleware.
    """

    def __init__(self, settings: Settings, client: Optional[socketio.AsyncClient] = None):
        self.settings = settings
        self._sio = client or socketio.AsyncClient(
            reconnection=True,
            reconnection_attempts=settings.reconnection_attempts,
            reconnection_delay=settings.reconnection_delay,
        )
        self._handlers: Dict[str, List[EventHandler]] = {}
        self._connect_handlers: List[LifecycleHandler] = []
        self._disconnect_handlers: List[LifecycleHandler] = []
        self._error_handlers: List[ErrorHandler] = []

        self._sio.on("connect", self._handle_connect)
        self._sio.on("disconnect", self._handle_disconnect)
        self._sio.on("connect_error", self._handle_connect_error)
        self._sio.on("error", self._handle_error)

    # ========== Lifecycle ==========

    async def connect(self, url: str, token: str) -> None:
        try:
            await self._sio.connect(
                url,
                auth={"token": token},
                transports=self.settings.transports,
                socketio_path=self.settings.socketio_path,
            )
        except socketio_exceptions.ConnectionError as e:
            logger.error(f"Socket connection error: {e}")
            logger.error(f"Attempted to connect to: {url}")
            raise TransportError(f"Could not connect to {url}: {e}") from e

    async def disconnect(self) -> None:
        await self._sio.disconnect()

    async def emit(self, event: str, data: Any = None) -> None:
        if not self.connected:
            raise TransportError(f"Cannot emit {event}: socket not connected")
        try:
            await self._sio.emit(event, data)
        except socketio_exceptions.SocketIOError as e:
            raise TransportError(f"Emit {event} failed: {e}") from e

    @property
    def connected(self) -> bool:
        """
        True once the default namespace is connected.

        python-socketio registers the namespace before running "connect"
        handlers but sets its own connected flag only after they return.
        """
        return bool(self._sio.namespaces)

    @property
    def session_id(self) -> Optional[str]:
        return self._sio.sid

    # ========== Handler registration ==========

    def on(self, event: str, handler: EventHandler) -> None:
        if event not in self._handlers:
            self._handlers[event] = []

            async def dispatch(data=None, _event=event):
                for registered in list(self._handlers.get(_event, [])):
                    await _call(registered, data)

            self._sio.on(event, dispatch)
        self._handlers[event].append(handler)

    def on_connect(self, handler: LifecycleHandler) -> None:
        self._connect_handlers.append(handler)

    def on_disconnect(self, handler: LifecycleHandler) -> None:
        self._disconnect_handlers.append(handler)

    def on_error(self, handler: ErrorHandler) -> None:
        self._error_handlers.append(handler)

    # ========== socket.io callbacks ==========

    async def _handle_connect(self) -> None:
        logger.info(f"Socket connected (sid={self._sio.sid})")
        for handler in list(self._connect_handlers):
            await _call(handler)

    async def _handle_disconnect(self, reason: Any = None) -> None:
        logger.info(f"Socket disconnected: {reason}")
        for handler in list(self._disconnect_handlers):
            await _call(handler)

    async def _handle_connect_error(self, error: Any = None) -> None:
        logger.error(f"Socket connection error: {error}")
        for handler in list(self._error_handlers):
            await _call(handler, error)

    async def _handle_error(self, error: Any = None) -> None:
        logger.error(f"Socket error: {error}")
        for handler in list(self._error_handlers):
            await _call(handler, error)
