"""Feature name translation for discovery results."""

from typing import Dict, Iterable, List, Mapping, Optional

from entitycaps.modules.capability import remove_duplicates

from .table import COMMON_FEATURES


class FeatureTranslator:
    """Turns raw feature identifiers into a map of well-known feature names."""

    def __init__(self, table: Optional[Mapping[str, str]] = None):
        """
        Initialize translator.

        Args:
            table: Raw feature identifier -> short name. Defaults to the
                built-in table of common XMPP features.
        """
        self._table = dict(COMMON_FEATURES if table is None else table)

    @property
    def names(self) -> List[str]:
        """All short names this translator reports, in table order."""
        return remove_duplicates(self._table.values())

    def translate(self, raw_features: Iterable[str]) -> Dict[str, bool]:
        """
        Map raw features to named flags.

        Every known name is present in the result; names whose feature the
        entity did not report are False.
        """
        features = {name: False for name in self.names}

        for raw_feature in raw_features:
            name = self._table.get(raw_feature)
            if name:
                features[name] = True

        return features


_default_translator = FeatureTranslator()


def translate_features(raw_features: Iterable[str]) -> Dict[str, bool]:
    """Translate with the built-in table."""
    return _default_translator.translate(raw_features)
