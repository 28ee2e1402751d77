"""Extension wiring: session, API client, navigation, and the comment panel.

CommentsExtension is what a content script host drives. It owns:
- the SessionStore and the CommentsApiClient that reads from it
- a NavigationWatcher fed by an optional LocationObserver
- the CommentPanel, refreshed when navigation changes what it should show

Navigation callbacks are synchronous; panel refreshes they trigger are
scheduled as tasks and tracked so stop() can cancel them.
"""

import asyncio
from collections.abc import Coroutine, Iterable
from typing import Any

from spotcomments.client.api import CommentsApiClient
from spotcomments.client.config import ClientConfig
from spotcomments.client.navigation import (
    LocationObserver,
    LocationSource,
    NavigationContext,
    NavigationWatcher,
    Tab,
)
from spotcomments.client.panel import CommentPanel
from spotcomments.client.session_store import SessionStore
from spotcomments.logging import get_logger

logger = get_logger(__name__)


class CommentsExtension:
    def __init__(
        self,
        config: ClientConfig | None = None,
        session_store: SessionStore | None = None,
        api: CommentsApiClient | None = None,
        location_source: LocationSource | None = None,
    ):
        self.config = config or ClientConfig()
        self.session_store = session_store or SessionStore()
        self.api = api or CommentsApiClient(self.session_store, self.config)
        self.watcher = NavigationWatcher(
            on_refresh=self._on_context_refresh,
            on_cleared=self._on_left_playlist,
        )
        self.panel = CommentPanel(
            self.api,
            self.session_store,
            context=lambda: self.watcher.context,
            config=self.config,
        )
        self.observer = (
            LocationObserver(
                location_source,
                self.watcher.handle,
                interval_s=self.config.location_poll_interval_s,
            )
            if location_source is not None
            else None
        )
        self._pending: set[asyncio.Task] = set()

    @property
    def context(self) -> NavigationContext:
        return self.watcher.context

    def _schedule(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _on_context_refresh(self, context: NavigationContext) -> None:
        if self.panel.is_open:
            self._schedule(self.panel.refresh())

    def _on_left_playlist(self) -> None:
        self.panel.close()

    async def drain(self) -> None:
        """Wait for scheduled panel refreshes to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> None:
        if self.observer is not None:
            self.observer.start()

    async def stop(self) -> None:
        if self.observer is not None:
            await self.observer.stop()
        self.panel.close()
        for task in list(self._pending):
            task.cancel()
        await asyncio.gather(*list(self._pending), return_exceptions=True)
        await self.api.aclose()

    # =========================================================================
    # User actions
    # =========================================================================

    async def toggle_panel(self) -> None:
        if self.context.playlist_id is None:
            return
        await self.panel.toggle()

    async def switch_tab(self, tab: Tab) -> None:
        self.watcher.switch_tab(tab)
        await self.drain()

    async def open_track(self, track_uri: str) -> None:
        """Open the panel on a track's comments (from a row indicator)."""
        self.watcher.select_track(track_uri)
        if self.panel.is_open:
            await self.drain()
        else:
            await self.panel.open()

    async def sign_in(self, privy_token: str) -> None:
        await self.api.exchange_token(privy_token)
        await self.panel.refresh()

    async def sign_out(self) -> None:
        self.api.logout()
        await self.panel.refresh()

    async def tracks_with_comments(self, track_uris: Iterable[str]) -> set[str]:
        """Which of the visible tracks should show a comment indicator.

        Best-effort: an unavailable API means no indicators, never an error.
        """
        playlist_id = self.context.playlist_id
        if playlist_id is None:
            return set()
        counts = await self.api.get_track_counts(playlist_id, track_uris)
        return {uri for uri, count in counts.items() if count > 0}
