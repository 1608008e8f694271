"""
Coordinator Module - Black Box Interface

Purpose: Turn capability announcements into one resolved event per peer
Interface: handle_announcement(), handle_response(), handle_error(), expire_stale(), subscribe()
Hidden: Caches, query tracker, subscriber ledger, merge rules

Single-threaded and synchronous; drive it from one event loop.
"""

from .coordinator import DiscoveryCoordinator, ResolutionListener, ResponseOutcome
from .sweeper import ExpirySweeper

__all__ = ["DiscoveryCoordinator", "ExpirySweeper", "ResolutionListener", "ResponseOutcome"]
