"""
Transport Module - Black Box Interface

Purpose: Hand outgoing discovery queries to whatever owns the connection
Interface: send_discovery_query(), pull_queries()
Hidden: Queue implementation, correlation id allocation

Can be replaced with a direct XMPP client or any message bus.
"""

from .interfaces import DiscoveryTransport
from .outbox import OutboundQuery, QueryOutbox

__all__ = ["DiscoveryTransport", "OutboundQuery", "QueryOutbox"]
