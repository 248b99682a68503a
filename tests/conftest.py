"""Shared pytest fixtures for the action tracker test suite."""

from __future__ import annotations

import pytest

from action_tracker.core.config import TrackerConfig


@pytest.fixture()
def fast_config() -> TrackerConfig:
    """Config with millisecond poll and retry delays and no jitter."""
    return TrackerConfig(
        poll_interval_s=0.005,
        poll_jitter_ratio=0.0,
        max_retries=3,
        retry_base_s=0.001,
        retry_cap_s=0.005,
    )
