"""
Feature name table.

Maps raw XMPP feature identifiers to short names. The built-in table can be
extended from a YAML file; entries from the file win over built-in ones.
"""

from __future__ import annotations

import logging
import os
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, conint

logger = logging.getLogger("entitycaps.features")


# Simple names for commonly used XMPP features.
COMMON_FEATURES: Dict[str, str] = {
    # XEP-0012 Last Activity (and XEP-0256 Last Activity in Presence)
    "jabber:iq:last": "lastActivity",
    # XEP-0045: Multi-User Chat
    "http://jabber.org/protocol/muc": "muc",
    # XEP-0047 IBB (In-band bytestreams)
    "http://jabber.org/protocol/ibb": "byteStreams",
    # XEP-0071 XHTML-IM (rich-text messages)
    "http://jabber.org/protocol/xhtml-im": "xhtml",
    # XEP-0084: User Avatar
    "urn:xmpp:avatar:metadata+notify": "avatar",
    # XEP-0092: Software Version
    "jabber:iq:version": "version",
    # XEP-0096: SI File Transfer
    "http://jabber.org/protocol/si/profile/file-transfer": "siFileTransfer",
    # XEP-0107: User Mood
    "http://jabber.org/protocol/mood+notify": "mood",
    # XEP-0167: Jingle RTP Sessions
    "urn:xmpp:jingle:apps:rtp:0": "rtpv0",
    "urn:xmpp:jingle:apps:rtp:1": "rtpv1",
    "urn:xmpp:jingle:apps:rtp:audio": "rtpaudio",
    "urn:xmpp:jingle:apps:rtp:video": "rtpvideo",
    # XEP-0224: Attention
    "urn:xmpp:attention:0": "attention",
    # XEP-0231 BoB (Bits of Binary)
    "urn:xmpp:bob": "bob",
    # Google extensions
    "http://www.google.com/xmpp/protocol/camera/v1": "googleCamera",
    "http://www.google.com/xmpp/protocol/video/v1": "googleVideo",
    "http://www.google.com/xmpp/protocol/voice/v1": "googleVoice",
    "google:mail:notify": "gmailNotify",
}


class FeatureEntry(BaseModel):
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)


class FeatureTableSpec(BaseModel):
    version: conint(ge=1)
    features: List[FeatureEntry] = Field(default_factory=list)


def _load_spec(path: str) -> FeatureTableSpec:
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return FeatureTableSpec(**data)


def _candidate_paths() -> List[Optional[str]]:
    """Return candidate file paths to search for an extra feature table."""
    return [
        os.getenv("ENTITYCAPS_FEATURE_TABLE_FILE"),
        "/etc/entitycaps/features.yaml",
    ]


def load_feature_table(path: Optional[str] = None) -> Dict[str, str]:
    """Load the feature table, extended with entries from a YAML file.

    Lookup order when ``path`` is not given:
    - ENTITYCAPS_FEATURE_TABLE_FILE
    - /etc/entitycaps/features.yaml

    The file looks like::

        version: 1
        features:
          - id: urn:xmpp:receipts
            name: receipts

    An unreadable or invalid file is skipped; the built-in table is always
    the base.
    """
    table = dict(COMMON_FEATURES)
    candidates = [path] if path else _candidate_paths()

    for candidate in filter(None, candidates):
        if not os.path.isfile(candidate):
            continue
        try:
            spec = _load_spec(candidate)
        except Exception as e:  # noqa: BLE001 - fall through to the next candidate
            logger.warning(f"Ignoring feature table {candidate}: {e}")
            continue

        table.update({entry.id: entry.name for entry in spec.features})
        logger.info(f"Loaded {len(spec.features)} feature names from {candidate}")
        break

    return table
