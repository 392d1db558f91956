"""
Auth Service
Holds the signed-in user and credential used by the REST client and the
push session.
"""
import logging
from typing import List, Optional

from leadsync.core.errors import AuthenticationError
from leadsync.domain.interfaces.crm_api import CRMApi
from leadsync.domain.models.lead import UserRef, UserRole

logger = logging.getLogger(__name__)

DIRECTORY_ROLES = {UserRole.ADMIN.value, UserRole.MANAGER.value}


class AuthService:
    """
    Credential state for one signed-in user.

    Token storage is the caller's concern: restore() accepts a token kept
    from a previous session and validates it against /auth/me.
    """

    def __init__(self, api: CRMApi):
        self.api = api
        self.token: Optional[str] = None
        self.user: Optional[UserRef] = None
        self.users: List[UserRef] = []

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None and self.user is not None

    @property
    def can_view_directory(self) -> bool:
        return self.user is not None and self.user.role in DIRECTORY_ROLES

    async def login(self, email: str, password: str) -> UserRef:
        token, user = await self.api.login(email, password)
        self._set_credential(token, user)
        logger.info(f"Signed in as user {user.id}")
        return user

    async def register(
        self,
        name: str,
        email: str,
        password: str,
        role: Optional[str] = None
    ) -> UserRef:
        token, user = await self.api.register(name, email, password, role=role)
        self._set_credential(token, user)
        logger.info(f"Registered and signed in as user {user.id}")
        return user

    async def restore(self, token: str) -> UserRef:
        """
        Resume a session from a stored token.

        Raises:
            AuthenticationError: The token is missing or no longer valid;
                credential state is cleared
        """
        if not token:
            raise AuthenticationError("No token found")
        self.api.set_token(token)
        try:
            user = await self.api.get_current_user()
        except AuthenticationError:
            self.logout()
            raise
        self._set_credential(token, user)
        return user

    async def load_users(self) -> List[UserRef]:
        """Load the user directory (Admin/Manager only; others get an empty list)."""
        if not self.can_view_directory:
            self.users = []
            return self.users
        self.users = await self.api.list_users()
        return self.users

    def logout(self) -> None:
        self.token = None
        self.user = None
        self.users = []
        self.api.set_token(None)

    def _set_credential(self, token: str, user: UserRef) -> None:
        self.token = token
        self.user = user
        self.api.set_token(token)
