"""Pytest configuration for all tests."""

import pytest
from prometheus_client import CollectorRegistry

from repomirror.cache.base import InMemoryCacheStore
from repomirror.events.metrics import MirrorMetrics


@pytest.fixture
def cache() -> InMemoryCacheStore:
    return InMemoryCacheStore()


@pytest.fixture
def metrics() -> MirrorMetrics:
    """Metrics bound to a private registry so tests never collide."""
    return MirrorMetrics(registry=CollectorRegistry())
