"""
Transport Session
Owns the single live push connection bound to a credential.

Responsibilities:
- At most one channel at a time; connect tears down the previous one
- Per-lead subscription registry, replayed after every (re)connection
- Event handler registry that survives reconnects and re-connects
- Transport failures are logged and reported on a side channel, never
  raised into caller control flow
"""
import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

from leadsync.core.config import Settings
from leadsync.core.errors import TransportError
from leadsync.domain.interfaces.push_channel import EventHandler, PushChannel
from leadsync.domain.models.push_events import SubscriptionEventType

logger = logging.getLogger(__name__)

ErrorListener = Callable[[TransportError], None]
StatusListener = Callable[[bool], None]


class TransportSession:
    """
    Process-wide push session with an explicit lifecycle.

    Created once and injected into the components that need it; connect
    when a credential becomes available, disconnect on logout. Without a
    connection the rest of the engine keeps working over REST.
    """

    def __init__(
        self,
        settings: Settings,
        channel_factory: Callable[[], PushChannel]
    ):
        self.settings = settings
        self._channel_factory = channel_factory
        self._channel: Optional[PushChannel] = None
        self._credential: Optional[str] = None
        # dict keeps subscription order for replay
        self._subscriptions: Dict[int, None] = {}
        self._handlers: Dict[str, List[EventHandler]] = {}
        self._error_listeners: List[ErrorListener] = []
        self._status_listeners: List[StatusListener] = []
        self.last_error: Optional[TransportError] = None

    # ========== Properties ==========

    @property
    def handle(self) -> Optional[PushChannel]:
        return self._channel

    @property
    def connected(self) -> bool:
        return self._channel is not None and self._channel.connected

    @property
    def subscriptions(self) -> frozenset:
        return frozenset(self._subscriptions)

    # ========== Lifecycle ==========

    async def connect(self, credential: Optional[str]) -> Optional[PushChannel]:
        """
        Open a push connection for the credential.

        Any existing connection is torn down first. Without a credential
        this only tears down and returns None. A failed connection is
        reported on the error side channel and also returns None.
        """
        await self._teardown()

        if not credential:
            logger.warning("No token provided for socket connection")
            return None

        channel = self._channel_factory()
        self._bind(channel)
        self._channel = channel
        self._credential = credential

        url = self.settings.resolved_socket_url
        try:
            await channel.connect(url, credential)
        except TransportError as e:
            self._report_error(e)
            logger.warning("Push channel unavailable - running in REST-only mode")
            await self._teardown()
            return None

        logger.info(f"Push session connected to {url}")
        return channel

    async def disconnect(self) -> None:
        """Close the connection. Subscriptions stay registered for the next connect."""
        await self._teardown()
        self._credential = None

    async def _teardown(self) -> None:
        channel = self._channel
        if channel is None:
            return
        self._channel = None
        try:
            await channel.disconnect()
        except TransportError as e:
            self._report_error(e)
        logger.info("Push session disconnected")

    # ========== Subscriptions ==========

    async def subscribe(self, lead_id: int) -> None:
        """Register interest in one lead. Idempotent per lead id."""
        if lead_id in self._subscriptions:
            return
        self._subscriptions[lead_id] = None
        await self._emit(SubscriptionEventType.LEAD_SUBSCRIBE.value, lead_id)

    async def unsubscribe(self, lead_id: int) -> None:
        """
        Release interest in one lead.

        The registry entry is removed before the first suspension point so
        a reconnect racing this call cannot replay it.
        """
        if lead_id not in self._subscriptions:
            return
        del self._subscriptions[lead_id]
        await self._emit(SubscriptionEventType.LEAD_UNSUBSCRIBE.value, lead_id)

    async def _replay_subscriptions(self, channel: PushChannel) -> None:
        """
        Re-send every registered subscription on a channel that just connected.

        Runs from the channel's connect callback, which fires before the
        channel reports itself connected, so the connected check is skipped.
        """
        if not self._subscriptions:
            return
        logger.info(f"Replaying {len(self._subscriptions)} subscription(s) after connect")
        sent = set()
        while channel is self._channel:
            # subscribe() calls made during the replay are picked up next pass
            pending = [lead_id for lead_id in self._subscriptions if lead_id not in sent]
            if not pending:
                return
            for lead_id in pending:
                if lead_id not in self._subscriptions:
                    continue
                sent.add(lead_id)
                await self._emit(SubscriptionEventType.LEAD_SUBSCRIBE.value, lead_id, channel=channel)

    async def _emit(self, event: str, data: Any, channel: Optional[PushChannel] = None) -> None:
        if channel is None:
            channel = self._channel
            if channel is None or not channel.connected:
                logger.debug(f"Not connected; {event}({data}) deferred until connect")
                return
        try:
            await channel.emit(event, data)
        except TransportError as e:
            self._report_error(e)

    # ========== Event handlers ==========

    def on(self, event_name: str, handler: EventHandler) -> None:
        """
        Register a handler for a named push event.

        Handlers are kept by the session and bound to every channel it
        opens, so they survive reconnects and re-logins.
        """
        if event_name not in self._handlers:
            self._handlers[event_name] = []
            if self._channel is not None:
                self._bind_event(self._channel, event_name)
        self._handlers[event_name].append(handler)

    def off(self, event_name: str, handler: Optional[EventHandler] = None) -> None:
        """Remove one handler, or every handler for the event."""
        handlers = self._handlers.get(event_name)
        if not handlers:
            return
        if handler is None:
            handlers.clear()
        elif handler in handlers:
            handlers.remove(handler)

    def on_error(self, listener: ErrorListener) -> None:
        self._error_listeners.append(listener)

    def on_status(self, listener: StatusListener) -> None:
        self._status_listeners.append(listener)

    def _bind(self, channel: PushChannel) -> None:
        for event_name in self._handlers:
            self._bind_event(channel, event_name)

        async def handle_connect():
            if channel is not self._channel:
                return
            self._notify_status(True)
            await self._replay_subscriptions(channel)

        def handle_disconnect():
            if channel is not self._channel:
                return
            self._notify_status(False)

        def handle_error(error):
            if channel is not self._channel:
                return
            self._report_error(TransportError(str(error) if error else None))

        channel.on_connect(handle_connect)
        channel.on_disconnect(handle_disconnect)
        channel.on_error(handle_error)

    def _bind_event(self, channel: PushChannel, event_name: str) -> None:
        async def dispatch(data):
            if channel is not self._channel:
                logger.debug(f"Ignoring {event_name} from a torn-down channel")
                return
            for handler in list(self._handlers.get(event_name, [])):
                try:
                    result = handler(data)
                    if asyncio.iscoroutine(result):
                        await result
                except Exception as e:
                    logger.error(f"Handler for {event_name} failed: {e}", exc_info=True)

        channel.on(event_name, dispatch)

    # ========== Side channel ==========

    def _report_error(self, error: TransportError) -> None:
        self.last_error = error
        logger.error(f"Transport error: {error.message}")
        for listener in list(self._error_listeners):
            try:
                listener(error)
            except Exception as e:
                logger.error(f"Transport error listener failed: {e}")

    def _notify_status(self, connected: bool) -> None:
        for listener in list(self._status_listeners):
            try:
                listener(connected)
            except Exception as e:
                logger.error(f"Transport status listener failed: {e}")
