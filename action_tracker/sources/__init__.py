"""Action status sources.

Implements the pluggable status-source pattern:
- StatusSource: Abstract base class defining the bulk ``fetch`` contract
- HttpActionSource: The cloud API ``GET /actions`` endpoint over httpx

Tests inject scripted sources through the same interface.
"""

from action_tracker.sources.base import (
    StatusSource,
    StatusSourceAuthError,
    StatusSourceContractError,
    StatusSourceError,
)
from action_tracker.sources.http import HttpActionSource

__all__ = [
    "HttpActionSource",
    "StatusSource",
    "StatusSourceAuthError",
    "StatusSourceContractError",
    "StatusSourceError",
]
