"""Shared tracker constants.

Centralises polling defaults, API paths, and other literals used by the
poller, the HTTP status source, and configuration loading.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Polling defaults
# ---------------------------------------------------------------------------

DEFAULT_POLL_INTERVAL_SECONDS: float = 0.5
"""Base delay between two status fetches."""

DEFAULT_POLL_JITTER_RATIO: float = 0.1
"""Symmetric jitter applied to each poll delay (0.1 = +/-10%)."""

DEFAULT_MAX_RETRIES: int = 3
"""Retries of a failed status fetch before raising ``TransportFault``."""

DEFAULT_RETRY_BASE_SECONDS: float = 1.0
DEFAULT_RETRY_CAP_SECONDS: float = 30.0

DEFAULT_WAIT_TIMEOUT_SECONDS: float = 0.0
"""Overall wait timeout; 0 means wait until cancelled."""

# ---------------------------------------------------------------------------
# API defaults
# ---------------------------------------------------------------------------

DEFAULT_API_ENDPOINT: str = "https://api.hetzner.cloud/v1"
DEFAULT_REQUEST_TIMEOUT_SECONDS: float = 30.0

ACTIONS_PATH: str = "/actions"
"""Bulk action status endpoint, queried with repeated ``id`` parameters."""

DEFAULT_STATUS_BATCH_SIZE: int = 25
MAX_STATUS_BATCH_SIZE: int = 50
"""Largest ``per_page`` value the actions endpoint accepts."""

#: HTTP status codes that indicate a temporary server-side condition.
RETRYABLE_HTTP_STATUSES: frozenset[int] = frozenset({408, 425, 429, 500, 502, 503, 504})

USER_AGENT: str = "action-tracker/0.1.0"
