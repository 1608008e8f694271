"""
Cache Module - Black Box Interface

Purpose: Remember resolved capability sets and legacy extension features
Interface: get(), put(), missing(), features_for()
Hidden: Key layout, write-once enforcement

In-memory only. Entries are never evicted or refreshed.
"""

from .cache import CapabilityCache, ExtensionCache, WriteOnceCache

__all__ = ["CapabilityCache", "ExtensionCache", "WriteOnceCache"]
