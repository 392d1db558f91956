"""
Sync Engine
Composition root that wires the transport session, caches, reconciler and
action pipeline around one REST client.
"""
import logging
from typing import Optional

from leadsync.core.config import Settings, load_settings
from leadsync.core.errors import AuthenticationError, FetchError
from leadsync.domain.interfaces.crm_api import CRMApi
from leadsync.domain.models.lead import UserRef
from leadsync.services.action_pipeline import ActionPipeline
from leadsync.services.aggregate_cache import DashboardCache
from leadsync.services.auth_service import AuthService
from leadsync.services.detail_cache import LeadDetailCache
from leadsync.services.event_reconciler import EventReconciler
from leadsync.services.query_cache import LeadListCache
from leadsync.services.transport_session import TransportSession

logger = logging.getLogger(__name__)


class SyncEngine:
    """
    Client-side synchronization engine.

    Usage:
        async with SyncEngine.create() as engine:
            await engine.login(email, password)
            window = await engine.lead_list.load(FilterSpec())
            await engine.lead_detail.focus(window.items[0].id)
            result = await engine.actions.submit(UpdateLead(...))
    """

    def __init__(self, settings: Settings, api: CRMApi, transport: TransportSession):
        self.settings = settings
        self.api = api
        self.transport = transport
        self.auth = AuthService(api)
        self.lead_list = LeadListCache(api, settings)
        self.lead_detail = LeadDetailCache(api, settings, transport=transport)
        self.dashboard = DashboardCache(api, settings)
        self.reconciler = EventReconciler(self.lead_list, self.lead_detail, self.dashboard)
        self.actions = ActionPipeline(api, self.lead_list, self.lead_detail, self.dashboard)
        self._started = False

    @classmethod
    def create(cls, settings: Optional[Settings] = None) -> "SyncEngine":
        """Build an engine backed by the httpx REST client and a socket.io channel."""
        from leadsync.infrastructure.api.client import CRMApiClient
        from leadsync.infrastructure.push.socketio_channel import SocketIOPushChannel

        settings = settings or load_settings()
        api = CRMApiClient(settings)
        transport = TransportSession(
            settings,
            channel_factory=lambda: SocketIOPushChannel(settings)
        )
        return cls(settings, api, transport)

    # ========== Lifecycle ==========

    async def start(self) -> None:
        if self._started:
            return
        self.reconciler.attach(self.transport)
        await self.reconciler.start()
        self._started = True

    async def stop(self) -> None:
        if not self._started:
            return
        await self.lead_detail.unfocus()
        await self.transport.disconnect()
        await self.reconciler.stop()
        self.reconciler.detach(self.transport)
        self._started = False

    async def __aenter__(self) -> "SyncEngine":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    # ========== Session ==========

    async def login(self, email: str, password: str) -> UserRef:
        user = await self.auth.login(email, password)
        await self._on_authenticated(user)
        return user

    async def register(
        self,
        name: str,
        email: str,
        password: str,
        role: Optional[str] = None
    ) -> UserRef:
        user = await self.auth.register(name, email, password, role=role)
        await self._on_authenticated(user)
        return user

    async def restore_session(self, token: Optional[str]) -> Optional[UserRef]:
        """
        Resume from a stored token. Returns None (and stays signed out)
        if the token is missing or rejected.
        """
        try:
            user = await self.auth.restore(token)
        except AuthenticationError as e:
            logger.warning(f"Session restore failed: {e.message}")
            await self.transport.disconnect()
            return None
        await self._on_authenticated(user)
        return user

    async def logout(self) -> None:
        """Release the focus, drop the push connection and clear every cache."""
        await self.lead_detail.unfocus()
        await self.transport.disconnect()
        self.lead_list.clear()
        self.dashboard.clear()
        self.auth.logout()
        logger.info("Signed out")

    async def _on_authenticated(self, user: UserRef) -> None:
        self.dashboard.user_role = user.role
        self.dashboard.mark_stale()
        await self.transport.connect(self.auth.token)
        if self.auth.can_view_directory:
            try:
                await self.auth.load_users()
            except FetchError as e:
                logger.warning(f"User directory unavailable: {e.message}")
