"""Navigation watcher for the Spotify web player.

The page gives no native navigation event, so detection is split in two:

- LocationObserver samples a LocationSource (current URL + title) on a fixed
  interval and emits LocationChanged whenever either differs from the last
  sample. It neither knows nor cares how the page rewrote its history.
- NavigationWatcher turns those raw events into NavigationContext updates
  and asks for a panel refresh exactly once per distinct new playlist.

Rules applied by NavigationWatcher.handle():
- an event whose URL equals the last handled URL is ignored
- URL without a playlist: context cleared, no refresh
- new playlist id: track reset to None, tab reset to "playlist", refresh once
- same playlist: only the track selection may change; a refresh happens only
  when the track tab is showing and the selected track changed
"""

import asyncio
import re
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Literal, Protocol

from spotcomments.logging import get_logger

logger = get_logger(__name__)

PLAYLIST_PATTERN = re.compile(r"/playlist/([A-Za-z0-9]+)")
TRACK_PATH_PATTERN = re.compile(r"/track/([A-Za-z0-9]+)")
TRACK_URI_PATTERN = re.compile(r"spotify(?::|%3A)track(?::|%3A)([A-Za-z0-9]+)", re.IGNORECASE)

TRACK_URI_PREFIX = "spotify:track:"

Tab = Literal["playlist", "track"]


@dataclass(frozen=True)
class LocationChanged:
    url: str
    title: str = ""


@dataclass(frozen=True)
class NavigationContext:
    """What the panel should currently show comments for."""

    playlist_id: str | None = None
    track_uri: str | None = None
    active_tab: Tab = "playlist"


def extract_playlist_id(url: str) -> str | None:
    match = PLAYLIST_PATTERN.search(url)
    return match.group(1) if match else None


def extract_track_uri(url: str) -> str | None:
    """Find a track in the URL, as a /track/<id> path or an embedded spotify:track:<id>."""
    match = TRACK_URI_PATTERN.search(url) or TRACK_PATH_PATTERN.search(url)
    return TRACK_URI_PREFIX + match.group(1) if match else None


RefreshCallback = Callable[[NavigationContext], None]


class NavigationWatcher:
    """Maintains the NavigationContext from a stream of LocationChanged events."""

    def __init__(
        self,
        on_refresh: RefreshCallback | None = None,
        on_cleared: Callable[[], None] | None = None,
    ):
        self.context = NavigationContext()
        self._last_url: str | None = None
        self._on_refresh = on_refresh
        self._on_cleared = on_cleared

    def handle(self, event: LocationChanged) -> bool:
        """Apply one location event. Returns True if a refresh was requested."""
        if event.url == self._last_url:
            return False
        self._last_url = event.url

        playlist_id = extract_playlist_id(event.url)
        track_uri = extract_track_uri(event.url)

        if playlist_id is None:
            if self.context.playlist_id is not None:
                logger.debug("navigation_left_playlist", playlist_id=self.context.playlist_id)
                self.context = NavigationContext()
                if self._on_cleared is not None:
                    self._on_cleared()
            return False

        if playlist_id != self.context.playlist_id:
            logger.debug("navigation_playlist_changed", playlist_id=playlist_id)
            self.context = NavigationContext(playlist_id=playlist_id)
            return self._refresh()

        if track_uri is not None and track_uri != self.context.track_uri:
            self.context = replace(self.context, track_uri=track_uri)
            if self.context.active_tab == "track":
                return self._refresh()

        return False

    def select_track(self, track_uri: str) -> bool:
        """User picked a track (e.g. a row indicator): show its comments."""
        changed = track_uri != self.context.track_uri or self.context.active_tab != "track"
        self.context = replace(self.context, track_uri=track_uri, active_tab="track")
        return self._refresh() if changed and self.context.playlist_id else False

    def switch_tab(self, tab: Tab) -> bool:
        """Switch between playlist and track comments. Refreshes on change."""
        if tab == self.context.active_tab:
            return False
        self.context = replace(self.context, active_tab=tab)
        return self._refresh() if self.context.playlist_id else False

    def _refresh(self) -> bool:
        if self._on_refresh is not None:
            self._on_refresh(self.context)
        return True


class LocationSource(Protocol):
    """Anything that can report the page's current URL and title."""

    def current(self) -> LocationChanged: ...


class LocationObserver:
    """Polls a LocationSource and emits LocationChanged on any difference."""

    def __init__(
        self,
        source: LocationSource,
        on_change: Callable[[LocationChanged], None],
        interval_s: float = 1.0,
    ):
        self.source = source
        self.on_change = on_change
        self.interval_s = interval_s
        self._last: LocationChanged | None = None
        self._task: asyncio.Task | None = None

    def poll_once(self) -> LocationChanged | None:
        """Sample the source once; emit and return the event if it changed."""
        location = self.source.current()
        if location == self._last:
            return None
        self._last = location
        self.on_change(location)
        return location

    async def _run(self) -> None:
        while True:
            try:
                self.poll_once()
            except Exception:
                logger.exception("location_poll_failed")
            await asyncio.sleep(self.interval_s)

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()
