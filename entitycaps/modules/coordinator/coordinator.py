"""
Capability discovery coordinator.

Receives capability announcements and discovery responses, keeps the caches
populated, and tells subscribers about each announcing peer exactly once,
as soon as its main capability set and every extension it advertised are
known.

Per announcement a peer moves through:

    unresolved -> awaiting main (0..1) / awaiting extensions (0..n) -> resolved

Everything runs on the caller's thread. Each handle_* call applies all of its
cache and ledger changes before returning; nothing here ever waits for a
response.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from entitycaps.config.provider import DiscoveryConfig
from entitycaps.modules.cache import CapabilityCache, ExtensionCache
from entitycaps.modules.capability import (
    CapabilityAnnouncement,
    CapabilitySet,
    DiscoveryResponse,
    Fingerprint,
    PeerCapabilitiesResolved,
    QuerySendError,
    RemoteDiscoveryError,
    UnknownCorrelation,
    remove_duplicates,
)
from entitycaps.modules.diagnostics import DiagnosticEvent, DiagnosticKind, DiagnosticsRecorder
from entitycaps.modules.features import FeatureTranslator
from entitycaps.modules.ledger import SubscriberLedger
from entitycaps.modules.tracker import (
    CorrelationToken,
    DiscoveryRequestTracker,
    PendingDiscovery,
    QueryKind,
)
from entitycaps.modules.transport import DiscoveryTransport

logger = logging.getLogger("entitycaps.coordinator")

ResolutionListener = Callable[[PeerCapabilitiesResolved], None]


@dataclass
class ResponseOutcome:
    """What handling one discovery response did."""

    accepted: bool
    emitted: List[str] = field(default_factory=list)


class DiscoveryCoordinator:
    """
    Orchestrates caches, query tracking and per-peer readiness.

    Owns every map it uses; callers only see copies of cached data.
    """

    def __init__(
        self,
        transport: DiscoveryTransport,
        config: Optional[DiscoveryConfig] = None,
        translator: Optional[FeatureTranslator] = None,
        diagnostics: Optional[DiagnosticsRecorder] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize coordinator.

        Args:
            transport: Sends discovery queries
            config: Timeout and retry policy (defaults never expire queries)
            translator: Raw feature -> named flag translation
            diagnostics: Recorder for discarded and starved requests
            clock: Monotonic time source for query expiry
        """
        self.config = config or DiscoveryConfig()
        self.translator = translator or FeatureTranslator()
        self.diagnostics = diagnostics or DiagnosticsRecorder(self.config.diagnostics_history)
        self.clock = clock

        self._capability_cache = CapabilityCache()
        self._extension_cache = ExtensionCache()
        self._tracker = DiscoveryRequestTracker(transport, clock=clock)
        self._ledger = SubscriberLedger(self._capability_cache)
        self._listeners: List[ResolutionListener] = []

    # Subscribers

    def subscribe(self, listener: ResolutionListener) -> Callable[[], None]:
        """
        Register a listener for resolved peers.

        Returns:
            Function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # Inbound events

    def handle_announcement(self, announcement: CapabilityAnnouncement) -> bool:
        """
        Process a peer advertising a fingerprint.

        Args:
            announcement: Parsed capability announcement

        Returns:
            True if the peer was resolved during this call

        Logic:
        1. Everything cached and peer not already pending: emit right away
        2. Otherwise register the peer and request what is missing
        3. Emit if the refreshed record turned out to be complete
        """
        peer = announcement.peer
        fingerprint = announcement.fingerprint
        main_cached = self._capability_cache.has(fingerprint)
        missing = self._extension_cache.missing(fingerprint, announcement.extension_ids)

        if main_cached and not missing and not self._ledger.is_pending(peer):
            logger.debug(f"Capabilities for {fingerprint.key} already known, resolving {peer}")
            self._publish(peer, announcement)
            return True

        self._ledger.register_peer(peer, announcement)

        for extension_id in missing:
            self._ledger.add_outstanding_extension(peer, extension_id)
            self._request(fingerprint, peer, extension_id)

        if not main_cached:
            self._request(fingerprint, peer)

        if self._ledger.is_fully_resolved(peer):
            self._emit(peer)
            return True

        return False

    def handle_response(self, response: DiscoveryResponse) -> ResponseOutcome:
        """
        Process the reply to a discovery query.

        Unknown or stale correlation ids are recorded and ignored.

        Args:
            response: Parsed discovery response

        Returns:
            ResponseOutcome with the peers resolved by this response
        """
        if response.is_error:
            accepted = self.handle_error(response.correlation_id, response.error)
            return ResponseOutcome(accepted=accepted)

        try:
            resolution = self._tracker.resolve(response.correlation_id)
        except UnknownCorrelation as e:
            self._discard_unknown(e)
            return ResponseOutcome(accepted=False)

        token = resolution.token
        if response.node and response.node != token.query_node:
            logger.debug(
                f"Response {token.correlation_id} echoed node {response.node}, "
                f"expected {token.query_node}"
            )

        if resolution.kind is QueryKind.MAIN:
            self._store_main(token, response)
        else:
            self._extension_cache.put_for(
                token.fingerprint, token.extension_id, remove_duplicates(response.raw_features)
            )
            for waiter in resolution.waiters:
                record = self._ledger.get(waiter)
                # Peers that re-announced another fingerprint wait on that fingerprint's extension
                if record and record.announcement.fingerprint == token.fingerprint:
                    self._ledger.remove_outstanding_extension(waiter, token.extension_id)

        emitted = []
        for waiter in sorted(resolution.waiters):
            if self._ledger.is_fully_resolved(waiter):
                self._emit(waiter)
                emitted.append(waiter)

        return ResponseOutcome(accepted=True, emitted=emitted)

    def handle_error(self, correlation_id: str, condition: Optional[str] = None) -> bool:
        """
        Process an error reply to a discovery query.

        The request ends without populating the cache and its waiters stay
        pending, unless retry_on_error allows the query to be sent again.

        Returns:
            True if the correlation id belonged to a pending query
        """
        pending = self._tracker.get(correlation_id)
        if pending is None:
            self._discard_unknown(UnknownCorrelation(correlation_id))
            return False

        error = RemoteDiscoveryError(correlation_id, condition)
        if self.config.retry_on_error and self._retry(pending, reason=str(error)):
            return True

        resolution = self._tracker.drop(pending)
        self.diagnostics.record(
            DiagnosticEvent(
                kind=DiagnosticKind.REMOTE_ERROR,
                correlation_id=correlation_id,
                fingerprint=resolution.fingerprint.key,
                extension_id=resolution.extension_id,
                waiters=sorted(resolution.waiters),
                detail=str(error),
            )
        )
        return True

    def expire_stale(self, now: Optional[float] = None) -> int:
        """
        Retry or give up on queries that have waited longer than query_timeout.

        No-op when no timeout is configured.

        Args:
            now: Current monotonic time (defaults to the coordinator clock)

        Returns:
            Number of stalled queries handled
        """
        timeout = self.config.query_timeout
        if timeout is None:
            return 0

        now = self.clock() if now is None else now
        expired = self._tracker.expired(now, timeout)

        for pending in expired:
            if self._retry(pending, reason=f"no response after {timeout}s"):
                continue

            resolution = self._tracker.drop(pending)
            self.diagnostics.record(
                DiagnosticEvent(
                    kind=DiagnosticKind.QUERY_TIMEOUT,
                    correlation_id=resolution.token.correlation_id,
                    fingerprint=resolution.fingerprint.key,
                    extension_id=resolution.extension_id,
                    waiters=sorted(resolution.waiters),
                    detail=f"{resolution.token.query_node} gave no response after "
                    f"{resolution.token.attempt} attempt(s)",
                )
            )

        return len(expired)

    # Read access

    def cached_capabilities(self, fingerprint_key: str) -> Optional[CapabilitySet]:
        """Copy of the cached capability set for ``node#ver``, if any."""
        capabilities = self._capability_cache.get(fingerprint_key)
        return capabilities.copy() if capabilities else None

    def cached_extension(self, fingerprint: Fingerprint, extension_id: str) -> Optional[List[str]]:
        features = self._extension_cache.get_for(fingerprint, extension_id)
        return list(features) if features is not None else None

    def cached_fingerprints(self) -> List[str]:
        return sorted(self._capability_cache.keys())

    def is_pending(self, peer: str) -> bool:
        return self._ledger.is_pending(peer)

    def snapshot(self) -> Dict[str, Any]:
        """Pending queries and peers plus cache sizes (for monitoring)."""
        return {
            "pending_queries": self._tracker.snapshot(),
            "pending_peers": [record.to_dict() for record in self._ledger.pending_peers()],
            "cached_fingerprints": len(self._capability_cache),
            "cached_extensions": len(self._extension_cache),
        }

    def stats(self) -> Dict[str, int]:
        return {
            "pending_queries": len(self._tracker),
            "pending_peers": len(self._ledger),
            "cached_fingerprints": len(self._capability_cache),
            "cached_extensions": len(self._extension_cache),
        }

    # Internals

    def _request(
        self, fingerprint: Fingerprint, peer: str, extension_id: Optional[str] = None
    ) -> Optional[CorrelationToken]:
        try:
            if extension_id is None:
                return self._tracker.request_main(fingerprint, peer)
            return self._tracker.request_extension(fingerprint, extension_id, peer)
        except QuerySendError as e:
            self.diagnostics.record(
                DiagnosticEvent(
                    kind=DiagnosticKind.SEND_FAILED,
                    fingerprint=fingerprint.key,
                    extension_id=extension_id,
                    waiters=[peer],
                    detail=str(e),
                )
            )
            return None

    def _retry(self, pending: PendingDiscovery, reason: str) -> bool:
        """Reissue a query if the retry budget allows. Returns True if reissued."""
        old = pending.token
        if old.attempt > self.config.max_retries:
            return False

        try:
            token = self._tracker.reissue(pending)
        except QuerySendError as e:
            logger.error(f"Retry of {old.correlation_id} failed: {e}")
            return False

        self.diagnostics.record(
            DiagnosticEvent(
                kind=DiagnosticKind.QUERY_RETRIED,
                correlation_id=token.correlation_id,
                fingerprint=pending.fingerprint.key,
                extension_id=token.extension_id,
                waiters=sorted(pending.waiters),
                detail=f"{reason}; reissued {old.correlation_id} as "
                f"{token.correlation_id} (attempt {token.attempt})",
            )
        )
        return True

    def _discard_unknown(self, error: UnknownCorrelation) -> None:
        self.diagnostics.record(
            DiagnosticEvent(
                kind=DiagnosticKind.UNKNOWN_CORRELATION,
                correlation_id=error.correlation_id,
                detail=str(error),
            )
        )

    def _store_main(self, token: CorrelationToken, response: DiscoveryResponse) -> None:
        raw_features = remove_duplicates(response.raw_features)
        capabilities = CapabilitySet(
            raw_features=raw_features,
            features=self.translator.translate(raw_features),
            client_name=response.client_name,
            hash=token.fingerprint.hash,
        )
        if not self._capability_cache.put_for(token.fingerprint, capabilities):
            logger.debug(f"Keeping existing capabilities for {token.fingerprint.key}")

    def _emit(self, peer: str) -> None:
        record = self._ledger.release(peer)
        self._publish(peer, record.announcement)

    def _publish(self, peer: str, announcement: CapabilityAnnouncement) -> None:
        fingerprint = announcement.fingerprint
        main = self._capability_cache.get_for(fingerprint)
        capabilities = main.merged_with(
            self._extension_cache.features_for(fingerprint, announcement.extension_ids),
            self.translator,
        )
        event = PeerCapabilitiesResolved(peer=peer, capabilities=capabilities)

        logger.info(
            f"Resolved capabilities for {peer} "
            f"({fingerprint.key}, {len(capabilities.raw_features)} features)"
        )

        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Capabilities listener failed for {peer}: {e}")
                self.diagnostics.record(
                    DiagnosticEvent(
                        kind=DiagnosticKind.LISTENER_FAILED,
                        fingerprint=fingerprint.key,
                        waiters=[peer],
                        detail=str(e),
                    )
                )
