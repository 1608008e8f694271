"""Transport interfaces following Black Box Design principles."""
from typing import Protocol


class DiscoveryTransport(Protocol):
    """Protocol for sending discovery queries - allows swappable implementations."""

    def send_discovery_query(self, target_peer: str, query_node: str) -> str:
        """
        Send a disco#info query for a node to a peer.

        Args:
            target_peer: Address of the entity to query
            query_node: Node attribute for the query (``node#ver`` or
                ``node#ver#ext``)

        Returns:
            Correlation id that the matching response will carry
        """
        ...
