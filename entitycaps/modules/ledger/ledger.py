"""
Per-peer readiness for entitycaps.

Tracks which announcing peers are still waiting on discovery results and
which of their legacy extensions are outstanding. Outstanding extensions are
always those of the fingerprint the peer announced last. Releasing a peer
removes its record, so each announcement is emitted at most once.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from entitycaps.modules.cache import CapabilityCache
from entitycaps.modules.capability import CapabilityAnnouncement, NotPending

logger = logging.getLogger("entitycaps.ledger")


@dataclass
class PendingPeer:
    """A peer whose announcement is waiting on discovery results."""

    peer: str
    announcement: CapabilityAnnouncement
    outstanding_extensions: Set[str] = field(default_factory=set)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "peer": self.peer,
            "fingerprint": self.announcement.fingerprint.key,
            "extension_ids": list(self.announcement.extension_ids),
            "outstanding_extensions": sorted(self.outstanding_extensions),
        }


class SubscriberLedger:
    def __init__(self, capability_cache: CapabilityCache):
        """
        Initialize ledger.

        Args:
            capability_cache: Cache consulted to decide whether a peer's main
                capability set is known
        """
        self.capability_cache = capability_cache
        self._peers: Dict[str, PendingPeer] = {}

    def register_peer(self, peer: str, announcement: CapabilityAnnouncement) -> PendingPeer:
        """
        Create or refresh the pending record for a peer.

        Args:
            peer: Announcing peer address
            announcement: Announcement to use when the peer is emitted

        Returns:
            The peer's pending record

        Logic:
        1. Create the record if the peer is not pending
        2. Otherwise replace its announcement
        3. Drop outstanding extensions the new announcement no longer lists,
           or all of them when the fingerprint changed
        """
        record = self._peers.get(peer)
        if record is None:
            record = PendingPeer(peer=peer, announcement=announcement)
            self._peers[peer] = record
            logger.debug(f"Peer {peer} pending on {announcement.fingerprint.key}")
            return record

        if record.announcement.fingerprint != announcement.fingerprint:
            record.outstanding_extensions.clear()
        else:
            record.outstanding_extensions &= set(announcement.extension_ids)
        record.announcement = announcement
        logger.debug(f"Peer {peer} re-announced {announcement.fingerprint.key}")
        return record

    def add_outstanding_extension(self, peer: str, extension_id: str) -> None:
        self._require(peer).outstanding_extensions.add(extension_id)

    def remove_outstanding_extension(self, peer: str, extension_id: str) -> None:
        self._require(peer).outstanding_extensions.discard(extension_id)

    def is_pending(self, peer: str) -> bool:
        return peer in self._peers

    def get(self, peer: str) -> Optional[PendingPeer]:
        return self._peers.get(peer)

    def is_fully_resolved(self, peer: str) -> bool:
        """
        Check if everything the peer's announcement needs is known.

        True iff the main capability set for the announced fingerprint is
        cached and no extension is outstanding. A peer that is not pending
        is never fully resolved.
        """
        record = self._peers.get(peer)
        if record is None:
            return False
        return (
            self.capability_cache.has(record.announcement.fingerprint)
            and not record.outstanding_extensions
        )

    def release(self, peer: str) -> PendingPeer:
        """
        Remove and return a peer's pending record.

        Raises:
            NotPending: If the peer has no record (e.g. it was already released)
        """
        record = self._peers.pop(peer, None)
        if record is None:
            raise NotPending(peer)
        return record

    def pending_peers(self) -> List[PendingPeer]:
        return list(self._peers.values())

    def __len__(self) -> int:
        return len(self._peers)

    def _require(self, peer: str) -> PendingPeer:
        record = self._peers.get(peer)
        if record is None:
            raise NotPending(peer)
        return record
