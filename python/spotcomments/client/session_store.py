"""Session store for the extension client.

Holds the current app session (token + external subject) as an explicit
object injected into whatever issues authenticated requests. Listeners are
notified on every change so views can refresh their signed-in state.
"""

from collections.abc import Callable
from dataclasses import dataclass

from spotcomments.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ClientSession:
    token: str
    privy_user_id: str


SessionListener = Callable[[ClientSession | None], None]


class SessionStore:
    """In-memory holder of the current session."""

    def __init__(self, session: ClientSession | None = None):
        self._session = session
        self._listeners: list[SessionListener] = []

    def get(self) -> ClientSession | None:
        return self._session

    @property
    def authenticated(self) -> bool:
        return self._session is not None

    def set(self, session: ClientSession) -> None:
        self._session = session
        self._notify()

    def clear(self) -> None:
        """Discard the session. The token stays valid server-side until expiry."""
        if self._session is None:
            return
        self._session = None
        self._notify()

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a change listener. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._session)
            except Exception:
                logger.exception("session_listener_failed")
