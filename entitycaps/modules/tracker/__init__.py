"""
Tracker Module - Black Box Interface

Purpose: One in-flight discovery query per fingerprint / extension
Interface: request_main(), request_extension(), resolve(), reissue(), drop()
Hidden: Pending maps, correlation token bookkeeping

Responses are matched by correlation id alone, never by their content.
"""

from .tracker import (
    CorrelationToken,
    DiscoveryRequestTracker,
    PendingDiscovery,
    PendingExtensionDiscovery,
    QueryKind,
    Resolution,
)

__all__ = [
    "CorrelationToken",
    "DiscoveryRequestTracker",
    "PendingDiscovery",
    "PendingExtensionDiscovery",
    "QueryKind",
    "Resolution",
]
