"""
In-memory capability caches.

Fingerprints are content-addressed (the verification string is a hash of the
capability payload), so a resolved entry never changes for the life of the
process. Both caches are therefore write-once and unbounded: the first value
stored for a key wins and nothing is ever evicted.
"""

import logging
from typing import Dict, Generic, Iterable, Iterator, List, Optional, Tuple, TypeVar

from entitycaps.modules.capability import CapabilitySet, Fingerprint

logger = logging.getLogger("entitycaps.cache")

K = TypeVar("K")
V = TypeVar("V")


class WriteOnceCache(Generic[K, V]):
    """Mapping where a second put for an existing key is ignored."""

    def __init__(self):
        self._entries: Dict[K, V] = {}

    def get(self, key: K) -> Optional[V]:
        return self._entries.get(key)

    def put(self, key: K, value: V) -> bool:
        """
        Store value unless the key is already cached.

        Returns:
            True if stored, False if an entry already existed
        """
        if key in self._entries:
            logger.debug(f"Ignoring second write for cached key {key}")
            return False

        self._entries[key] = value
        return True

    def keys(self) -> List[K]:
        return list(self._entries)

    def __contains__(self, key) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[K]:
        return iter(list(self._entries))


class CapabilityCache(WriteOnceCache[str, CapabilitySet]):
    """Resolved capability sets keyed by fingerprint (``node#ver``)."""

    def get_for(self, fingerprint: Fingerprint) -> Optional[CapabilitySet]:
        return self.get(fingerprint.key)

    def has(self, fingerprint: Fingerprint) -> bool:
        return fingerprint.key in self

    def put_for(self, fingerprint: Fingerprint, capabilities: CapabilitySet) -> bool:
        stored = self.put(fingerprint.key, capabilities)
        if stored:
            logger.debug(
                f"Cached {len(capabilities.raw_features)} features for {fingerprint.key}"
            )
        return stored


class ExtensionCache(WriteOnceCache[Tuple[str, str], List[str]]):
    """Raw feature lists for legacy extensions keyed by (fingerprint, extension id)."""

    def get_for(self, fingerprint: Fingerprint, extension_id: str) -> Optional[List[str]]:
        return self.get((fingerprint.key, extension_id))

    def has(self, fingerprint: Fingerprint, extension_id: str) -> bool:
        return (fingerprint.key, extension_id) in self

    def put_for(
        self, fingerprint: Fingerprint, extension_id: str, raw_features: Iterable[str]
    ) -> bool:
        return self.put((fingerprint.key, extension_id), list(raw_features))

    def missing(self, fingerprint: Fingerprint, extension_ids: Iterable[str]) -> List[str]:
        """Return the extension ids not yet cached for this fingerprint, in order."""
        return [ext for ext in extension_ids if not self.has(fingerprint, ext)]

    def features_for(
        self, fingerprint: Fingerprint, extension_ids: Iterable[str]
    ) -> List[List[str]]:
        """
        Return cached feature lists for the given extensions.

        Extensions that are not cached are skipped.
        """
        result = []
        for ext in extension_ids:
            features = self.get_for(fingerprint, ext)
            if features is not None:
                result.append(list(features))
        return result
