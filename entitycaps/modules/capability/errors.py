"""Exceptions raised by the discovery modules."""

from typing import Optional


class CapabilityDiscoveryError(Exception):
    """Base class for capability discovery errors."""


class UnknownCorrelation(CapabilityDiscoveryError):
    """A response arrived for a query that is not (or no longer) tracked."""

    def __init__(self, correlation_id: str):
        super().__init__(f"No pending discovery query for correlation id {correlation_id!r}")
        self.correlation_id = correlation_id


class DuplicateResolution(CapabilityDiscoveryError):
    """A peer would be emitted more than once for one announcement."""


class NotPending(DuplicateResolution):
    """The ledger has no pending record for this peer."""

    def __init__(self, peer: str):
        super().__init__(f"Peer {peer!r} is not pending resolution")
        self.peer = peer


class RemoteDiscoveryError(CapabilityDiscoveryError):
    """The queried entity answered with an error instead of features."""

    def __init__(self, correlation_id: str, condition: Optional[str] = None):
        super().__init__(
            f"Discovery query {correlation_id!r} failed remotely: {condition or 'unknown error'}"
        )
        self.correlation_id = correlation_id
        self.condition = condition


class QuerySendError(CapabilityDiscoveryError):
    """The transport could not send a discovery query."""

    def __init__(self, query_node: str, reason: str):
        super().__init__(f"Failed to send discovery query for {query_node}: {reason}")
        self.query_node = query_node
        self.reason = reason
