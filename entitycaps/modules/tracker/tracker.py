"""
Discovery request tracking for entitycaps.

Keeps exactly one outstanding discovery query per fingerprint and per
(fingerprint, extension id), and maps each response back to the logical
request that caused it.

Correlation uses only the id the transport assigned when the query was sent.
Some servers (Gmail, notably) leave the node attribute out of their reply, so
the response body cannot tell us which fingerprint or extension it answers.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set, Tuple, Union

from entitycaps.modules.capability import Fingerprint, QuerySendError, UnknownCorrelation
from entitycaps.modules.transport import DiscoveryTransport

logger = logging.getLogger("entitycaps.tracker")


class QueryKind(str, Enum):
    """What a discovery query asks for."""

    MAIN = "main"
    EXTENSION = "extension"


@dataclass(frozen=True)
class CorrelationToken:
    """Context for one sent query, looked up by its correlation id."""

    correlation_id: str
    kind: QueryKind
    fingerprint: Fingerprint
    target_peer: str
    query_node: str
    extension_id: Optional[str] = None
    issued_at: float = 0.0
    attempt: int = 1


@dataclass
class PendingDiscovery:
    """An in-flight main capability query and the peers waiting on it."""

    fingerprint: Fingerprint
    token: CorrelationToken
    waiters: Set[str] = field(default_factory=set)

    @property
    def key(self) -> Union[str, Tuple[str, str]]:
        return self.fingerprint.key

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.token.kind.value,
            "fingerprint": self.fingerprint.key,
            "extension_id": self.token.extension_id,
            "correlation_id": self.token.correlation_id,
            "query_node": self.token.query_node,
            "target_peer": self.token.target_peer,
            "attempt": self.token.attempt,
            "waiters": sorted(self.waiters),
        }


@dataclass
class PendingExtensionDiscovery(PendingDiscovery):
    """An in-flight legacy extension query."""

    extension_id: str = ""

    @property
    def key(self) -> Tuple[str, str]:
        return (self.fingerprint.key, self.extension_id)


@dataclass
class Resolution:
    """The logical request a response (or its absence) settled."""

    token: CorrelationToken
    waiters: Set[str]

    @property
    def kind(self) -> QueryKind:
        return self.token.kind

    @property
    def fingerprint(self) -> Fingerprint:
        return self.token.fingerprint

    @property
    def extension_id(self) -> Optional[str]:
        return self.token.extension_id


class DiscoveryRequestTracker:
    """Coalesces discovery queries and correlates their responses."""

    def __init__(
        self,
        transport: DiscoveryTransport,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize tracker.

        Args:
            transport: Sends queries and assigns correlation ids
            clock: Monotonic time source used to stamp tokens
        """
        self.transport = transport
        self.clock = clock
        self._main: Dict[str, PendingDiscovery] = {}
        self._extensions: Dict[Tuple[str, str], PendingExtensionDiscovery] = {}
        self._by_correlation: Dict[str, PendingDiscovery] = {}

    def request_main(self, fingerprint: Fingerprint, waiter: str) -> CorrelationToken:
        """
        Make sure a main capability query for this fingerprint is in flight.

        Sends a query only if none is outstanding. The waiter is added to the
        request either way.

        Raises:
            QuerySendError: If a new query was needed and could not be sent
        """
        pending = self.get_or_create_main(fingerprint, waiter)
        pending.waiters.add(waiter)
        return pending.token

    def request_extension(
        self, fingerprint: Fingerprint, extension_id: str, waiter: str
    ) -> CorrelationToken:
        """
        Make sure an extension query for (fingerprint, extension_id) is in flight.

        Raises:
            QuerySendError: If a new query was needed and could not be sent
        """
        pending = self.get_or_create_extension(fingerprint, extension_id, waiter)
        pending.waiters.add(waiter)
        return pending.token

    def get_or_create_main(self, fingerprint: Fingerprint, target_peer: str) -> PendingDiscovery:
        """Return the pending main query, sending one to target_peer if needed."""
        pending = self._main.get(fingerprint.key)
        if pending is None:
            token = self._send(QueryKind.MAIN, fingerprint, target_peer)
            pending = PendingDiscovery(fingerprint=fingerprint, token=token)
            self._main[pending.key] = pending
            self._by_correlation[token.correlation_id] = pending
        return pending

    def get_or_create_extension(
        self, fingerprint: Fingerprint, extension_id: str, target_peer: str
    ) -> PendingExtensionDiscovery:
        """Return the pending extension query, sending one to target_peer if needed."""
        pending = self._extensions.get((fingerprint.key, extension_id))
        if pending is None:
            token = self._send(QueryKind.EXTENSION, fingerprint, target_peer, extension_id)
            pending = PendingExtensionDiscovery(
                fingerprint=fingerprint, token=token, extension_id=extension_id
            )
            self._extensions[pending.key] = pending
            self._by_correlation[token.correlation_id] = pending
        return pending

    def resolve(self, correlation_id: str) -> Resolution:
        """
        End the request a response belongs to.

        Args:
            correlation_id: Id carried by the response

        Returns:
            Resolution with the token and the peers that were waiting

        Raises:
            UnknownCorrelation: If no pending query has this id (never issued,
                already resolved, or superseded by a retry)
        """
        pending = self._by_correlation.get(correlation_id)
        if pending is None:
            raise UnknownCorrelation(correlation_id)
        return self.drop(pending)

    def reissue(self, pending: PendingDiscovery) -> CorrelationToken:
        """
        Send the query again under a new correlation id.

        A late response to the old id is then unknown and discarded.

        Raises:
            QuerySendError: If the query could not be sent; the old token stays valid
        """
        old = pending.token
        token = self._send(
            old.kind,
            pending.fingerprint,
            old.target_peer,
            old.extension_id,
            attempt=old.attempt + 1,
        )
        del self._by_correlation[old.correlation_id]
        pending.token = token
        self._by_correlation[token.correlation_id] = pending
        return token

    def drop(self, pending: PendingDiscovery) -> Resolution:
        """End a request without a usable response."""
        self._by_correlation.pop(pending.token.correlation_id, None)
        if isinstance(pending, PendingExtensionDiscovery):
            self._extensions.pop(pending.key, None)
        else:
            self._main.pop(pending.key, None)
        return Resolution(token=pending.token, waiters=set(pending.waiters))

    def expired(self, now: float, timeout: float) -> List[PendingDiscovery]:
        """Pending requests whose current query was sent at least timeout seconds ago."""
        return [
            pending
            for pending in self._by_correlation.values()
            if now - pending.token.issued_at >= timeout
        ]

    def get(self, correlation_id: str) -> Optional[PendingDiscovery]:
        """Look up the pending request for a correlation id without ending it."""
        return self._by_correlation.get(correlation_id)

    def pending_main(self, fingerprint: Fingerprint) -> Optional[PendingDiscovery]:
        return self._main.get(fingerprint.key)

    def pending_extension(
        self, fingerprint: Fingerprint, extension_id: str
    ) -> Optional[PendingExtensionDiscovery]:
        return self._extensions.get((fingerprint.key, extension_id))

    def snapshot(self) -> List[Dict[str, Any]]:
        """Describe every pending request (for monitoring)."""
        return [pending.to_dict() for pending in self._by_correlation.values()]

    def __len__(self) -> int:
        return len(self._by_correlation)

    def _send(
        self,
        kind: QueryKind,
        fingerprint: Fingerprint,
        target_peer: str,
        extension_id: Optional[str] = None,
        attempt: int = 1,
    ) -> CorrelationToken:
        if kind is QueryKind.EXTENSION:
            query_node = fingerprint.extension_node(extension_id)
        else:
            query_node = fingerprint.key

        try:
            correlation_id = self.transport.send_discovery_query(target_peer, query_node)
        except Exception as e:
            raise QuerySendError(query_node, str(e)) from e

        if correlation_id in self._by_correlation:
            raise QuerySendError(
                query_node, f"transport reused correlation id {correlation_id}"
            )

        logger.info(
            f"Sent discovery query {correlation_id} for {query_node} to {target_peer} "
            f"(attempt {attempt})"
        )
        return CorrelationToken(
            correlation_id=correlation_id,
            kind=kind,
            fingerprint=fingerprint,
            target_peer=target_peer,
            query_node=query_node,
            extension_id=extension_id,
            issued_at=self.clock(),
            attempt=attempt,
        )
