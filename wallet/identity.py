from typing import Optional, Protocol

from .models import Identity
from .storage import KeyValueStore

USER_ID_KEY = "currentUserId"
PHONE_KEY = "currentPhone"


class IdentityProvider(Protocol):
    def current_user(self) -> Optional[Identity]: ...


class StaticIdentityProvider:
    def __init__(self, user_id: Optional[str] = None, phone: Optional[str] = None):
        self.identity = Identity(id=user_id, phone=phone) if user_id else None

    def current_user(self) -> Optional[Identity]:
        return self.identity


class StoreIdentityProvider:
    """Reads the logged-in user from the same local store the session writes to."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    def current_user(self) -> Optional[Identity]:
        user_id = self.store.get(USER_ID_KEY)
        if not user_id:
            return None
        return Identity(id=user_id, phone=self.store.get(PHONE_KEY) or None)

    def login(self, user_id: str, phone: Optional[str] = None) -> Identity:
        self.store.set(USER_ID_KEY, user_id)
        self.store.set(PHONE_KEY, phone or "")
        return Identity(id=user_id, phone=phone)

    def logout(self) -> None:
        self.store.delete(USER_ID_KEY)
        self.store.delete(PHONE_KEY)
