"""
API Module - Black Box Interface

Purpose: HTTP routing for gateways, clients and operators
Interface: REST endpoints, SSE event stream
Hidden: Request validation, response shaping

The API module only orchestrates - it contains no business logic.
All logic is delegated to the coordinator.
"""

from .events import PeerDirectory, ResolutionBroadcaster
from .models import (
    AnnouncementAck,
    AnnouncementRequest,
    CapabilitySetResponse,
    DiscoveryResponseRequest,
    FingerprintModel,
    OutboundQueryModel,
    QueryBatch,
    ResponseAck,
    ResponseStatus,
)
from .router import create_discovery_router

__all__ = [
    "AnnouncementAck",
    "AnnouncementRequest",
    "CapabilitySetResponse",
    "DiscoveryResponseRequest",
    "FingerprintModel",
    "OutboundQueryModel",
    "PeerDirectory",
    "QueryBatch",
    "ResolutionBroadcaster",
    "ResponseAck",
    "ResponseStatus",
    "create_discovery_router",
]
