"""
Capability data model for entitycaps.

This module defines the records exchanged between the coordinator and its
collaborators: the fingerprint a peer advertises in presence, the parsed
discovery response, and the resolved capability set handed to subscribers.

Design Principles:
- Fingerprints are content-addressed: the same fingerprint always means the
  same features, so resolved sets never need refreshing
- Records handed out of the cache are never mutated; merging builds a new set
- Parsing of the wire format happens elsewhere; these are already-parsed values
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Optional


def remove_duplicates(items: Iterable[str]) -> List[str]:
    """Return items with duplicates removed, keeping first-seen order."""
    seen = set()
    result = []
    for item in items:
        if item in seen:
            continue
        seen.add(item)
        result.append(item)
    return result


@dataclass(frozen=True)
class Fingerprint:
    """
    Capability fingerprint advertised by a peer.

    Identity is the node URI plus the verification string. The hash
    algorithm tag is carried along for reporting but is not part of the key.
    """

    node: str
    ver: str
    hash: Optional[str] = field(default=None, compare=False)

    @property
    def key(self) -> str:
        """Cache key and main discovery query node (``node#ver``)."""
        return f"{self.node}#{self.ver}"

    def extension_node(self, extension_id: str) -> str:
        """Discovery query node for a legacy extension of this fingerprint."""
        return f"{self.key}#{extension_id}"

    def __str__(self) -> str:
        return self.key


@dataclass
class CapabilityAnnouncement:
    """A peer advertising a fingerprint and optional legacy extensions."""

    peer: str
    fingerprint: Fingerprint
    extension_ids: List[str] = field(default_factory=list)

    def __post_init__(self):
        # Presence parsers split an empty ext attribute into [""]
        self.extension_ids = remove_duplicates(e for e in self.extension_ids if e)

    @classmethod
    def from_presence(
        cls,
        peer: str,
        node: str,
        ver: str,
        hash: Optional[str] = None,
        ext: Optional[str] = None,
    ) -> "CapabilityAnnouncement":
        """
        Create from the attributes of a presence ``<c/>`` element.

        ``ext`` is the raw space-separated attribute value.
        """
        return cls(
            peer=peer,
            fingerprint=Fingerprint(node=node, ver=ver, hash=hash),
            extension_ids=(ext or "").split(" "),
        )


@dataclass
class DiscoveryResponse:
    """
    Parsed reply to a discovery query.

    ``node`` is whatever the responder echoed back. Some servers omit it or
    return the wrong value, so it is informational only; correlation always
    goes through ``correlation_id``.
    """

    correlation_id: str
    raw_features: List[str] = field(default_factory=list)
    client_name: Optional[str] = None
    node: Optional[str] = None
    error: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.error is not None


@dataclass
class CapabilitySet:
    """
    Resolved capabilities for a fingerprint.

    ``features`` maps well-known short names (``muc``, ``xhtml``, ...) to
    whether the entity supports them. ``raw_features`` is every feature
    identifier the entity reported, deduplicated.
    """

    raw_features: List[str] = field(default_factory=list)
    features: Dict[str, bool] = field(default_factory=dict)
    client_name: Optional[str] = None
    hash: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CapabilitySet":
        """Create from dictionary (e.g., from JSON)."""
        return cls(
            raw_features=list(data.get("raw_features", [])),
            features=dict(data.get("features", {})),
            client_name=data.get("client_name"),
            hash=data.get("hash"),
        )

    def copy(self) -> "CapabilitySet":
        """Return an independent copy (lists and maps are not shared)."""
        return CapabilitySet(
            raw_features=list(self.raw_features),
            features=dict(self.features),
            client_name=self.client_name,
            hash=self.hash,
        )

    def merged_with(
        self, extension_features: Iterable[Iterable[str]], translator
    ) -> "CapabilitySet":
        """
        Build a new set combining this one with extension feature lists.

        Raw features are concatenated in order, deduplicated and translated
        again. Neither this set nor the extension lists are modified.

        Args:
            extension_features: Raw feature lists, one per extension
            translator: Object with ``translate(raw_features) -> Dict[str, bool]``

        Returns:
            New CapabilitySet
        """
        raw = list(self.raw_features)
        for features in extension_features:
            raw.extend(features)
        raw = remove_duplicates(raw)

        return CapabilitySet(
            raw_features=raw,
            features=translator.translate(raw),
            client_name=self.client_name,
            hash=self.hash,
        )


@dataclass
class PeerCapabilitiesResolved:
    """Notification that a peer's advertised capabilities are fully known."""

    peer: str
    capabilities: CapabilitySet

    def to_dict(self) -> Dict[str, Any]:
        return {"peer": self.peer, "capabilities": self.capabilities.to_dict()}
