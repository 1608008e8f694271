"""
Ledger Module - Black Box Interface

Purpose: Track which peers are still waiting on discovery data
Interface: register_peer(), add/remove_outstanding_extension(), is_fully_resolved(), release()
Hidden: Per-peer records, outstanding extension sets

release() succeeds once per pending record, which is what keeps each
announcement from being emitted twice.
"""

from .ledger import PendingPeer, SubscriberLedger

__all__ = ["PendingPeer", "SubscriberLedger"]
