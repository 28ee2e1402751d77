"""Extension client library.

The browser extension's behavior as asyncio Python: session store, API
client, navigation watcher, and the comment panel state machine.
"""

from spotcomments.client.api import ApiClientError, ApiTimeoutError, CommentsApiClient
from spotcomments.client.config import ClientConfig
from spotcomments.client.extension import CommentsExtension
from spotcomments.client.navigation import (
    LocationChanged,
    LocationObserver,
    NavigationContext,
    NavigationWatcher,
)
from spotcomments.client.panel import CommentPanel, PanelState
from spotcomments.client.session_store import ClientSession, SessionStore

__all__ = [
    "ApiClientError",
    "ApiTimeoutError",
    "ClientConfig",
    "ClientSession",
    "CommentPanel",
    "CommentsApiClient",
    "CommentsExtension",
    "LocationChanged",
    "LocationObserver",
    "NavigationContext",
    "NavigationWatcher",
    "PanelState",
    "SessionStore",
]
