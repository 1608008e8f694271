"""
Features Module - Black Box Interface

Purpose: Translate raw feature identifiers into user-friendly flags
Interface: FeatureTranslator, translate_features(), load_feature_table()
Hidden: The table of well-known XMPP features, YAML overrides

Stateless: the same raw features always produce the same map.
"""

from .table import COMMON_FEATURES, load_feature_table
from .translator import FeatureTranslator, translate_features

__all__ = [
    "COMMON_FEATURES",
    "FeatureTranslator",
    "load_feature_table",
    "translate_features",
]
