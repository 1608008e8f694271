"""
Fan-out of resolution events to HTTP consumers.

Both classes here are coordinator listeners: the directory remembers the
latest resolved set per peer for lookups, the broadcaster feeds Server-Sent
Events connections.
"""

import asyncio
import json
import logging
from typing import AsyncGenerator, Dict, List, Optional, Set

from entitycaps.modules.capability import CapabilitySet, PeerCapabilitiesResolved

logger = logging.getLogger("entitycaps.api.events")


class PeerDirectory:
    """Latest resolved capabilities per peer."""

    def __init__(self):
        self._peers: Dict[str, CapabilitySet] = {}

    def record(self, event: PeerCapabilitiesResolved) -> None:
        self._peers[event.peer] = event.capabilities.copy()

    def get(self, peer: str) -> Optional[CapabilitySet]:
        capabilities = self._peers.get(peer)
        return capabilities.copy() if capabilities else None

    def peers(self) -> List[str]:
        return sorted(self._peers)

    def __len__(self) -> int:
        return len(self._peers)


class ResolutionBroadcaster:
    """Hands every resolution event to each open stream."""

    def __init__(self, max_queue_size: int = 100):
        """
        Initialize broadcaster.

        Args:
            max_queue_size: Events buffered per stream before new ones are dropped
        """
        self.max_queue_size = max_queue_size
        self._queues: Set[asyncio.Queue] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._queues)

    def publish(self, event: PeerCapabilitiesResolved) -> None:
        """Queue an event for every stream. Must be called on the event loop thread."""
        for queue in list(self._queues):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning(f"Dropping resolution event for {event.peer}: stream is not keeping up")

    def open(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.max_queue_size)
        self._queues.add(queue)
        return queue

    def close(self, queue: asyncio.Queue) -> None:
        self._queues.discard(queue)

    async def stream(self) -> AsyncGenerator[Dict[str, str], None]:
        """Yield SSE messages for resolution events until the consumer goes away."""
        queue = self.open()
        try:
            while True:
                event = await queue.get()
                yield {"event": "capabilities", "data": json.dumps(event.to_dict())}
        finally:
            self.close(queue)
