# storefront/services/session_service.py
import threading
from typing import Callable, List, Protocol

from storefront.domain.schemas import AuthPayload, User
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class TokenStore(Protocol):
    """Secure local storage for the bearer token (keychain, keystore...)."""

    def load(self) -> AuthPayload | None: ...

    def save(self, token: str, user: User) -> None: ...

    def clear(self) -> None: ...


class InMemoryTokenStore:
    def __init__(self, token: str | None = None, user: User | None = None):
        self._token = token
        self._user = user

    def load(self) -> AuthPayload | None:
        if self._token and self._user:
            return AuthPayload(token=self._token, user=self._user)
        return None

    def save(self, token: str, user: User) -> None:
        self._token = token
        self._user = user

    def clear(self) -> None:
        self._token = None
        self._user = None


class SessionService:
    """
    -current user and bearer token
    -unauthorized channel: every 401 ends the session for all subscribers
    """

    def __init__(self, store: TokenStore | None = None):
        self.store = store or InMemoryTokenStore()
        self.token: str | None = None
        self.user: User | None = None
        self._listeners: List[Callable[[], None]] = []
        self._lock = threading.Lock()

    @property
    def is_logged_in(self) -> bool:
        return bool(self.token)

    @property
    def is_admin(self) -> bool:
        return self.user is not None and self.user.role == "admin"

    def restore(self) -> bool:
        stored = self.store.load()
        if not stored or not stored.token or not stored.user:
            return False

        self.token = stored.token
        self.user = stored.user
        logger.info(f"Restored session for user {self.user.id}")
        return True

    def start(self, token: str, user: User):
        self.store.save(token, user)
        self.token = token
        self.user = user
        logger.info(f"Session started for user {user.id} ({user.role})")

    def clear(self):
        self.store.clear()
        self.token = None
        self.user = None

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def invalidate(self):
        logger.warning("Session rejected by backend (401), logging out")
        self.clear()

        with self._lock:
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener()
            except Exception as e:
                logger.error(f"Unauthorized listener {listener!r} failed: {e}")


class AuthService:
    def __init__(self, client, session: SessionService):
        self.client = client
        self.session = session

    def login(self, email: str, password: str) -> User:
        if not email.strip() or not password:
            raise ValueError("Email and password are required")

        payload = AuthPayload.model_validate(self.client.login(email.strip(), password))
        if not payload.token or not payload.user:
            raise ValueError("Login response is missing token or user")

        self.session.start(payload.token, payload.user)
        return payload.user

    def register(self, username: str, email: str, password: str, role: str = "customer") -> bool:
        """Returns True when the backend logged the new user in right away."""
        if not username.strip() or not email.strip() or not password:
            raise ValueError("Username, email and password are required")

        payload = AuthPayload.model_validate(
            self.client.register(username.strip(), email.strip(), password, role) or {}
        )
        if payload.token and payload.user:
            self.session.start(payload.token, payload.user)
            return True

        logger.info(f"Registered {email}, login required")
        return False

    def logout(self):
        user_id = self.session.user.id if self.session.user else None
        self.session.clear()
        logger.info(f"User {user_id} logged out")
