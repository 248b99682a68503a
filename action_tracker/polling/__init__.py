"""Poll cadence and fetch retry policy."""

from action_tracker.polling.backoff import constant_backoff, exponential_backoff
from action_tracker.polling.poller import Poller

__all__ = ["Poller", "constant_backoff", "exponential_backoff"]
