"""Client-side configuration for the extension library."""

from dataclasses import dataclass

DEFAULT_BASE_URL = "https://localhost:8443"


@dataclass(frozen=True)
class ClientConfig:
    """Tunables shared by the API client, panel, and navigation observer.

    Attributes:
        base_url: Comments API origin.
        timeout_s: Per-request timeout; also bounds a panel fetch.
        poll_interval_s: Panel refresh interval while open.
        count_memo_ttl_s: How long a fetched per-track count is reused.
        location_poll_interval_s: Location observer sampling interval.
    """

    base_url: str = DEFAULT_BASE_URL
    timeout_s: float = 10.0
    poll_interval_s: float = 30.0
    count_memo_ttl_s: float = 30.0
    location_poll_interval_s: float = 1.0
