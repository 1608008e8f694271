"""
Shared pytest fixtures for entitycaps tests.

This module provides common fixtures including:
- RecordingTransport: Transport double recording every discovery query sent
- ManualClock: Controllable monotonic clock for expiry tests
- ResolvedRecorder: Listener collecting resolution events
- Coordinator factory wired to all of the above
"""

import os
import sys
from dataclasses import dataclass
from typing import Callable, List, Optional

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from entitycaps.config.provider import APIConfig, DiscoveryConfig
from entitycaps.modules.capability import (
    CapabilityAnnouncement,
    DiscoveryResponse,
    Fingerprint,
    PeerCapabilitiesResolved,
)
from entitycaps.modules.coordinator import DiscoveryCoordinator


# =============================================================================
# Transport Double
# =============================================================================


@dataclass
class SentQuery:
    """Record of a discovery query sent during testing."""
    correlation_id: str
    target_peer: str
    query_node: str


class RecordingTransport:
    """
    DiscoveryTransport that records queries and hands out sequential ids.

    Usage:
        def test_something(transport, coordinator):
            coordinator.handle_announcement(announce("alice@example.com/home"))
            assert transport.nodes == ["app#v1"]
    """

    def __init__(self, prefix: str = "q-"):
        self.prefix = prefix
        self.sent: List[SentQuery] = []
        self.error: Optional[Exception] = None
        self._count = 0

    def send_discovery_query(self, target_peer: str, query_node: str) -> str:
        if self.error is not None:
            raise self.error
        self._count += 1
        correlation_id = f"{self.prefix}{self._count}"
        self.sent.append(SentQuery(correlation_id, target_peer, query_node))
        return correlation_id

    @property
    def nodes(self) -> List[str]:
        """Query nodes in the order they were sent."""
        return [query.query_node for query in self.sent]

    @property
    def last(self) -> SentQuery:
        return self.sent[-1]

    def id_for(self, query_node: str) -> str:
        """Correlation id of the most recent query for a node."""
        matches = [q for q in self.sent if q.query_node == query_node]
        assert matches, f"No query sent for {query_node}; sent: {self.nodes}"
        return matches[-1].correlation_id


class ManualClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ResolvedRecorder:
    """Coordinator listener that keeps every resolution event."""

    def __init__(self):
        self.events: List[PeerCapabilitiesResolved] = []

    def __call__(self, event: PeerCapabilitiesResolved) -> None:
        self.events.append(event)

    @property
    def peers(self) -> List[str]:
        return [event.peer for event in self.events]

    def for_peer(self, peer: str) -> List[PeerCapabilitiesResolved]:
        return [event for event in self.events if event.peer == peer]


# =============================================================================
# Builders
# =============================================================================


def announce(
    peer: str,
    node: str = "app",
    ver: str = "v1",
    extensions: Optional[List[str]] = None,
    hash: Optional[str] = "sha-1",
) -> CapabilityAnnouncement:
    """Build an announcement; the default fingerprint key is ``app#v1``."""
    return CapabilityAnnouncement(
        peer=peer,
        fingerprint=Fingerprint(node=node, ver=ver, hash=hash),
        extension_ids=list(extensions or []),
    )


def reply(correlation_id: str, *features: str, **kwargs) -> DiscoveryResponse:
    """Build a discovery response carrying the given raw features."""
    return DiscoveryResponse(correlation_id=correlation_id, raw_features=list(features), **kwargs)


class StaticConfigProvider:
    """ConfigProvider returning fixed configuration objects."""

    def __init__(
        self,
        discovery: Optional[DiscoveryConfig] = None,
        api: Optional[APIConfig] = None,
    ):
        self.discovery = discovery or DiscoveryConfig()
        self.api = api or APIConfig()

    def get_discovery_config(self) -> DiscoveryConfig:
        return self.discovery

    def get_api_config(self) -> APIConfig:
        return self.api


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def resolved():
    return ResolvedRecorder()


@pytest.fixture
def make_coordinator(transport, clock, resolved) -> Callable[..., DiscoveryCoordinator]:
    """Factory for coordinators using the shared transport, clock and recorder."""

    def factory(config: Optional[DiscoveryConfig] = None) -> DiscoveryCoordinator:
        coordinator = DiscoveryCoordinator(transport, config=config, clock=clock)
        coordinator.subscribe(resolved)
        return coordinator

    return factory


@pytest.fixture
def coordinator(make_coordinator) -> DiscoveryCoordinator:
    """Coordinator with default configuration (no expiry, no retries)."""
    return make_coordinator()


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "api: Tests exercising the HTTP interface"
    )
