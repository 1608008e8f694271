"""
entitycaps API data models.

These models define the JSON bodies accepted and returned by the HTTP
interface. Each request model converts itself into the plain capability
types the coordinator works with.
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from entitycaps.modules.capability import (
    CapabilityAnnouncement,
    CapabilitySet,
    DiscoveryResponse,
    Fingerprint,
)
from entitycaps.modules.transport import OutboundQuery

# Enums


class ResponseStatus(str, Enum):
    """Outcome of posting a discovery response."""

    ACCEPTED = "accepted"
    DISCARDED = "discarded"


# Request Models (API Input)


class FingerprintModel(BaseModel):
    """Capability fingerprint from a presence <c/> element."""

    node: str = Field(..., description="Node URI identifying the software", min_length=1)
    ver: str = Field(..., description="Verification string", min_length=1)
    hash: Optional[str] = Field(None, description="Hash algorithm used for ver (e.g. sha-1)")


class AnnouncementRequest(BaseModel):
    """A peer advertising its capability fingerprint."""

    peer: str = Field(..., description="Announcing peer address", min_length=1, max_length=3071)
    fingerprint: FingerprintModel
    extension_ids: List[str] = Field(
        default_factory=list,
        description="Legacy extension ids (list, or the raw space-separated ext attribute)",
        max_length=50,
    )

    @field_validator("extension_ids", mode="before")
    @classmethod
    def split_extension_attribute(cls, v):
        """Accept the raw ext attribute value as well as a list."""
        if isinstance(v, str):
            return v.split()
        return v

    def to_announcement(self) -> CapabilityAnnouncement:
        return CapabilityAnnouncement(
            peer=self.peer,
            fingerprint=Fingerprint(
                node=self.fingerprint.node,
                ver=self.fingerprint.ver,
                hash=self.fingerprint.hash,
            ),
            extension_ids=list(self.extension_ids),
        )


class DiscoveryResponseRequest(BaseModel):
    """Reply to a discovery query, relayed by the gateway."""

    correlation_id: str = Field(
        ..., description="Id of the query being answered (the IQ id)", min_length=1
    )
    raw_features: List[str] = Field(default_factory=list, description="Feature var attributes")
    client_name: Optional[str] = Field(None, description="Identity name, if reported")
    node: Optional[str] = Field(None, description="Node the responder echoed back, if any")
    error: Optional[str] = Field(
        None, description="Error condition when the IQ type was 'error'"
    )

    def to_response(self) -> DiscoveryResponse:
        return DiscoveryResponse(
            correlation_id=self.correlation_id,
            raw_features=list(self.raw_features),
            client_name=self.client_name,
            node=self.node,
            error=self.error,
        )


# Response Models (API Output)


class AnnouncementAck(BaseModel):
    """Response after posting an announcement."""

    status: str = "accepted"
    resolved: bool = Field(..., description="True if the peer was resolved immediately")


class ResponseAck(BaseModel):
    """Response after posting a discovery response."""

    status: ResponseStatus
    emitted: List[str] = Field(
        default_factory=list, description="Peers resolved by this response"
    )


class CapabilitySetResponse(BaseModel):
    """Resolved capabilities."""

    raw_features: List[str]
    features: Dict[str, bool]
    client_name: Optional[str] = None
    hash: Optional[str] = None

    @classmethod
    def from_capabilities(cls, capabilities: CapabilitySet) -> "CapabilitySetResponse":
        return cls(**capabilities.to_dict())


class OutboundQueryModel(BaseModel):
    """A discovery query for the gateway to send."""

    correlation_id: str
    target_peer: str
    query_node: str
    queued_at: str

    @classmethod
    def from_query(cls, query: OutboundQuery) -> "OutboundQueryModel":
        return cls(**query.to_dict())


class QueryBatch(BaseModel):
    """Queries pulled from the outbox."""

    queries: List[OutboundQueryModel]
    count: int
