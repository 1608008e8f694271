"""
Capability discovery endpoints for entitycaps.

The gateway that owns the XMPP connection posts parsed announcements and
discovery responses here and pulls the queries it must send. Applications
read resolved capabilities or subscribe to the event stream.
"""

import logging
from typing import Dict, Optional

from fastapi import APIRouter, HTTPException, Query
from sse_starlette.sse import EventSourceResponse

from entitycaps.modules.coordinator import DiscoveryCoordinator
from entitycaps.modules.transport import QueryOutbox

from .events import PeerDirectory, ResolutionBroadcaster
from .models import (
    AnnouncementAck,
    AnnouncementRequest,
    CapabilitySetResponse,
    DiscoveryResponseRequest,
    OutboundQueryModel,
    QueryBatch,
    ResponseAck,
    ResponseStatus,
)

logger = logging.getLogger("entitycaps.api")


def create_discovery_router(
    coordinator: DiscoveryCoordinator,
    outbox: QueryOutbox,
    directory: PeerDirectory,
    broadcaster: ResolutionBroadcaster,
) -> APIRouter:
    """
    Create capability discovery router with injected modules.

    Args:
        coordinator: Discovery coordinator handling inbound events
        outbox: Transport the coordinator queues queries on
        directory: Latest resolved capabilities per peer
        broadcaster: Resolution event fan-out for SSE

    Returns:
        FastAPI router with discovery endpoints
    """
    router = APIRouter(tags=["capabilities"])

    # Gateway Endpoints

    @router.post("/announcements", response_model=AnnouncementAck, status_code=202)
    async def post_announcement(request: AnnouncementRequest):
        """
        Accept a capability announcement from a peer's presence.

        Returns:
            202: Announcement accepted; ``resolved`` tells whether the peer
                was resolved from cache immediately
        """
        resolved = coordinator.handle_announcement(request.to_announcement())
        return AnnouncementAck(resolved=resolved)

    @router.post("/responses", response_model=ResponseAck)
    async def post_response(request: DiscoveryResponseRequest):
        """
        Accept the reply to a discovery query.

        Replies with an unknown or stale correlation id are discarded, not
        rejected; the gateway has nothing to fix in that case.
        """
        outcome = coordinator.handle_response(request.to_response())
        status = ResponseStatus.ACCEPTED if outcome.accepted else ResponseStatus.DISCARDED
        return ResponseAck(status=status, emitted=outcome.emitted)

    @router.get("/queries", response_model=QueryBatch)
    async def pull_queries(limit: Optional[int] = Query(None, ge=1, le=100)):
        """Pull discovery queries the gateway should send, oldest first."""
        queries = [OutboundQueryModel.from_query(q) for q in outbox.pull_queries(limit)]
        return QueryBatch(queries=queries, count=len(queries))

    # Client Endpoints

    @router.get("/capabilities")
    async def list_capabilities() -> Dict:
        """List fingerprints whose capabilities are cached."""
        fingerprints = coordinator.cached_fingerprints()
        return {"fingerprints": fingerprints, "count": len(fingerprints)}

    @router.get("/capabilities/{fingerprint:path}", response_model=CapabilitySetResponse)
    async def get_capabilities(fingerprint: str):
        """
        Get cached capabilities for a fingerprint (``node#ver``, URL-encoded).

        Returns:
            200: Cached capability set
            404: Fingerprint not resolved yet
        """
        capabilities = coordinator.cached_capabilities(fingerprint)
        if capabilities is None:
            raise HTTPException(404, f"No capabilities cached for '{fingerprint}'")
        return CapabilitySetResponse.from_capabilities(capabilities)

    @router.get("/peers/{peer:path}/capabilities", response_model=CapabilitySetResponse)
    async def get_peer_capabilities(peer: str):
        """
        Get the capabilities most recently resolved for a peer.

        Returns:
            200: Resolved capability set
            404: Peer never resolved
        """
        capabilities = directory.get(peer)
        if capabilities is None:
            raise HTTPException(404, f"No capabilities resolved for peer '{peer}'")
        return CapabilitySetResponse.from_capabilities(capabilities)

    @router.get("/events")
    async def stream_events():
        """SSE stream of ``capabilities`` events, one per resolved peer."""
        logger.info("Resolution event stream opened")
        return EventSourceResponse(broadcaster.stream())

    # Monitoring Endpoints

    @router.get("/debug/pending")
    async def get_pending() -> Dict:
        """Pending discovery queries and peers still waiting on them."""
        return coordinator.snapshot()

    @router.get("/debug/diagnostics")
    async def get_diagnostics(limit: Optional[int] = Query(None, ge=1, le=1000)) -> Dict:
        """Recent discarded, failed and starved requests."""
        events = coordinator.diagnostics.recent(limit)
        return {
            "events": [event.to_dict() for event in events],
            "counts": coordinator.diagnostics.counts(),
        }

    return router
