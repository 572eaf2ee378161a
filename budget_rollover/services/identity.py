"""
Identity Collaborator

The engine never manages sessions or tokens. It asks an IdentityProvider
for the current user id before every operation and refuses to run when
none is resolved.
"""

from abc import ABC, abstractmethod
from typing import Optional


class IdentityProvider(ABC):
    """Supplies the id of the currently authenticated user."""

    @abstractmethod
    async def current_user_id(self) -> Optional[str]:
        """
        Resolve the current user.

        Returns:
            The user id, or None when nobody is authenticated
        """
        pass


class StaticIdentityProvider(IdentityProvider):
    """
    Always resolves to the same user.

    Used for single-user deployments (user id from configuration) and tests.
    Pass None to model a signed-out session.
    """

    def __init__(self, user_id: Optional[str] = None):
        self._user_id = user_id or None

    async def current_user_id(self) -> Optional[str]:
        return self._user_id
