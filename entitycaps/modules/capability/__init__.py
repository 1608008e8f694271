"""
Capability Module - Black Box Interface

Purpose: Data model for advertised and resolved capabilities
Interface: Fingerprint, CapabilityAnnouncement, DiscoveryResponse, CapabilitySet
Hidden: Normalization of extension lists, merge rules

Every other module speaks in these types; none of them knows the wire format.
"""

from .capability import (
    CapabilityAnnouncement,
    CapabilitySet,
    DiscoveryResponse,
    Fingerprint,
    PeerCapabilitiesResolved,
    remove_duplicates,
)
from .errors import (
    CapabilityDiscoveryError,
    DuplicateResolution,
    NotPending,
    QuerySendError,
    RemoteDiscoveryError,
    UnknownCorrelation,
)

__all__ = [
    "CapabilityAnnouncement",
    "CapabilitySet",
    "DiscoveryResponse",
    "Fingerprint",
    "PeerCapabilitiesResolved",
    "remove_duplicates",
    "CapabilityDiscoveryError",
    "DuplicateResolution",
    "NotPending",
    "QuerySendError",
    "RemoteDiscoveryError",
    "UnknownCorrelation",
]
