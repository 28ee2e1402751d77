"""Comment panel state machine.

States: closed, loading, ready, error.

    closed --open()--> loading --ok--> ready
                               \-fail-> error --retry()--> loading
    ready/error --refresh()--> loading        (tab switch, navigation, poll)
    any --close()--> closed

While open, a poll task refreshes every poll_interval_s. close() cancels it
and bumps the fetch sequence, so a fetch still in flight is dropped when it
lands: no transition happens after close until the panel is reopened. The
same sequence makes overlapping fetches last-fetch-wins.

Writes (send, delete) need a session, and always refetch on success rather
than merging the server response into the list.
"""

import asyncio
from collections.abc import Callable
from enum import Enum
from typing import Protocol

from spotcomments.client.api import ApiClientError
from spotcomments.client.config import ClientConfig
from spotcomments.client.navigation import NavigationContext
from spotcomments.client.session_store import SessionStore
from spotcomments.logging import get_logger

logger = get_logger(__name__)

SIGN_IN_REQUIRED = "Please sign in to post comments."
LOAD_FAILED = "Failed to load comments. Please try again."


class PanelState(str, Enum):
    CLOSED = "closed"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class CommentsSource(Protocol):
    """The subset of CommentsApiClient the panel talks to."""

    async def get_comments(self, playlist_id: str, track_uri: str | None = None) -> list[dict]: ...

    async def post_comment(
        self, playlist_id: str, text: str, track_uri: str | None = None
    ) -> dict: ...

    async def delete_comment(self, comment_id: int | str) -> dict: ...


StateListener = Callable[[PanelState], None]


class CommentPanel:
    """Drawer showing comments for the current NavigationContext."""

    def __init__(
        self,
        api: CommentsSource,
        session_store: SessionStore,
        context: Callable[[], NavigationContext],
        config: ClientConfig | None = None,
        on_login_required: Callable[[], None] | None = None,
    ):
        self.api = api
        self.session_store = session_store
        self.config = config or ClientConfig()
        self._context = context
        self._on_login_required = on_login_required

        self.state = PanelState.CLOSED
        self.comments: list[dict] = []
        self.error: str | None = None
        self.notice: str | None = None
        self.draft = ""
        self.sending = False

        self._fetch_seq = 0
        self._poll_task: asyncio.Task | None = None
        self._listeners: list[StateListener] = []

    # =========================================================================
    # Observation
    # =========================================================================

    def subscribe(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def _set_state(self, state: PanelState) -> None:
        self.state = state
        for listener in list(self._listeners):
            listener(state)

    @property
    def is_open(self) -> bool:
        return self.state is not PanelState.CLOSED

    @property
    def compose_enabled(self) -> bool:
        return self.is_open and not self.sending

    @property
    def polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def open(self) -> None:
        if self.is_open:
            return
        self._start_polling()
        await self._fetch()

    def close(self) -> None:
        self._fetch_seq += 1
        self._stop_polling()
        if self.state is not PanelState.CLOSED:
            self._set_state(PanelState.CLOSED)

    async def toggle(self) -> None:
        if self.is_open:
            self.close()
        else:
            await self.open()

    async def refresh(self) -> None:
        """Reload for the current context. No-op while closed."""
        if not self.is_open:
            return
        await self._fetch()

    async def retry(self) -> None:
        if self.state is not PanelState.ERROR:
            return
        await self._fetch()

    def _start_polling(self) -> None:
        self._stop_polling()
        self._poll_task = asyncio.create_task(self._poll())

    def _stop_polling(self) -> None:
        if self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None

    async def _poll(self) -> None:
        while True:
            await asyncio.sleep(self.config.poll_interval_s)
            if self.is_open:
                await self._fetch()

    # =========================================================================
    # Fetch
    # =========================================================================

    def _target(self) -> tuple[str | None, str | None]:
        ctx = self._context()
        track_uri = ctx.track_uri if ctx.active_tab == "track" else None
        return ctx.playlist_id, track_uri

    async def _fetch(self) -> None:
        self._fetch_seq += 1
        seq = self._fetch_seq
        ctx = self._context()
        playlist_id = ctx.playlist_id
        track_uri = ctx.track_uri if ctx.active_tab == "track" else None

        self._set_state(PanelState.LOADING)

        if playlist_id is None or (ctx.active_tab == "track" and track_uri is None):
            self.comments = []
            self.error = None
            self._set_state(PanelState.READY)
            return

        try:
            comments = await asyncio.wait_for(
                self.api.get_comments(playlist_id, track_uri),
                timeout=self.config.timeout_s,
            )
        except (ApiClientError, TimeoutError) as e:
            if seq != self._fetch_seq:
                return
            logger.warning("panel_fetch_failed", playlist_id=playlist_id, error=str(e))
            self.error = LOAD_FAILED
            self._set_state(PanelState.ERROR)
            return

        if seq != self._fetch_seq:
            logger.debug("panel_fetch_stale", playlist_id=playlist_id)
            return

        self.comments = comments
        self.error = None
        self._set_state(PanelState.READY)

    # =========================================================================
    # Writes
    # =========================================================================

    def _require_session(self) -> bool:
        if self.session_store.authenticated:
            return True
        self.notice = SIGN_IN_REQUIRED
        if self._on_login_required is not None:
            self._on_login_required()
        return False

    async def send(self, text: str | None = None) -> bool:
        """Post the draft (or text) to the current target. Returns success."""
        body = (self.draft if text is None else text).strip()
        playlist_id, track_uri = self._target()
        if not body or playlist_id is None or self.sending:
            return False
        if not self._require_session():
            return False

        self.sending = True
        try:
            await self.api.post_comment(playlist_id, body, track_uri)
        except ApiClientError as e:
            self.notice = f"Failed to send comment: {e.message}"
            if e.is_unauthorized:
                self.session_store.clear()
            return False
        finally:
            self.sending = False

        self.draft = ""
        self.notice = None
        await self.refresh()
        return True

    async def delete(self, comment_id: int | str) -> bool:
        if not self._require_session():
            return False

        try:
            await self.api.delete_comment(comment_id)
        except ApiClientError as e:
            self.notice = f"Failed to delete comment: {e.message}"
            if e.is_unauthorized:
                self.session_store.clear()
            return False

        self.notice = None
        await self.refresh()
        return True
