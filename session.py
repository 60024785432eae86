"""Current-user session kept in the `currentUser` storage slot."""
import logging
from typing import Optional

from pydantic import TypeAdapter

from schemas import User

logger = logging.getLogger(__name__)

CURRENT_USER_SLOT = "currentUser"

_user_adapter = TypeAdapter(User)


class Session:
    """
    Holds at most one logged-in identity.

    `login` fully replaces whatever was stored before; `logout` removes it.
    `get_current_user` returns None when nobody is logged in, which callers
    treat as "send to the entry page", not as an error.
    """

    def __init__(self, storage):
        self.storage = storage

    def login(self, user: User) -> bool:
        user.is_logged_in = True
        self._persist(user)
        logger.info(f"{user.type} {user.email} logged in")
        return True

    def logout(self, user: Optional[User] = None) -> bool:
        current = user or self.get_current_user()
        self.storage.remove(CURRENT_USER_SLOT)
        if current is not None:
            current.is_logged_in = False
            logger.info(f"{current.type} {current.email} logged out")
        return True

    def refresh(self, user: User) -> None:
        """Re-persist a logged-in user after its local state changed."""
        if not user.is_logged_in:
            return
        self._persist(user)

    def get_current_user(self) -> Optional[User]:
        raw = self.storage.get(CURRENT_USER_SLOT)
        if raw is None:
            return None
        return _user_adapter.validate_python(raw)

    def _persist(self, user: User) -> None:
        self.storage.set(CURRENT_USER_SLOT, user.model_dump(mode="json", by_alias=True))
