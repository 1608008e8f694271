"""
In-memory discovery transport.

Queries are queued with a fresh correlation id and pulled in FIFO order by
whatever delivers them to the network.
"""

import itertools
import logging
from collections import Counter, deque
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from typing import Any, Deque, Dict, List, Optional

logger = logging.getLogger("entitycaps.transport")

# Shared across outboxes so correlation ids are unique within the process
_query_counter = itertools.count(1)


@dataclass
class OutboundQuery:
    """A discovery query waiting to be put on the wire by a gateway."""

    correlation_id: str
    target_peer: str
    query_node: str
    queued_at: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class QueryOutbox:
    """
    In-memory DiscoveryTransport.

    The coordinator pushes queries here; the process holding the XMPP
    connection pulls them, sends each as a disco#info IQ using the
    correlation id as the stanza id, and posts the reply back.
    """

    def __init__(self, max_queries_per_fetch: int = 10, id_prefix: str = "caps-"):
        """
        Initialize outbox.

        Args:
            max_queries_per_fetch: Max queries to return per pull
            id_prefix: Prefix for generated correlation ids
        """
        self.max_queries_per_fetch = max_queries_per_fetch
        self.id_prefix = id_prefix
        self._queue: Deque[OutboundQuery] = deque()
        self._metrics: Counter = Counter()

    def send_discovery_query(self, target_peer: str, query_node: str) -> str:
        """
        Queue a query for a gateway to deliver.

        Returns:
            Correlation id assigned to the query
        """
        correlation_id = f"{self.id_prefix}{next(_query_counter)}"
        query = OutboundQuery(
            correlation_id=correlation_id,
            target_peer=target_peer,
            query_node=query_node,
            queued_at=datetime.now(UTC).isoformat(),
        )
        self._queue.append(query)
        self._metrics["queries_queued"] += 1

        logger.debug(f"Queued discovery query {correlation_id} for {query_node} to {target_peer}")
        return correlation_id

    def pull_queries(self, limit: Optional[int] = None) -> List[OutboundQuery]:
        """
        Pull queued queries, oldest first.

        Args:
            limit: Max queries to return (defaults to max_queries_per_fetch)

        Returns:
            List of queries (empty if none available)
        """
        limit = self.max_queries_per_fetch if limit is None else limit
        queries = []

        while self._queue and len(queries) < limit:
            queries.append(self._queue.popleft())

        if queries:
            self._metrics["queries_delivered"] += len(queries)

        return queries

    def depth(self) -> int:
        """Number of queries waiting to be pulled."""
        return len(self._queue)

    def clear(self) -> int:
        """
        Drop every queued query.

        Returns:
            Number of queries dropped
        """
        count = len(self._queue)
        self._queue.clear()
        return count

    def metrics(self) -> Dict[str, int]:
        return {
            "queries_queued": self._metrics["queries_queued"],
            "queries_delivered": self._metrics["queries_delivered"],
        }
