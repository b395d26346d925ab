# paired_diff/column_map.py
"""
Bidirectional mapping between raw feature identifiers and derived column names.

Feature ids are taken verbatim from the measurement matrix row index and are
never sanitized, so a probe id such as '211980_at' maps to '211980_at_diff'
and back without any prefixing or character substitution.
"""

from typing import Dict, Iterable, List, Optional

import pandas as pd

from .config import PairedDiffConfig
from .exceptions import SchemaError


class FeatureColumnMap:
    """Feature id <-> column name correspondence, built once per run."""

    def __init__(self, feature_ids: Iterable, separator: str = '_', diff_suffix: str = 'diff'):
        self._features: List[str] = [str(f) for f in feature_ids]
        self.separator = separator
        self.diff_suffix = diff_suffix

        seen = set()
        duplicates = []
        for feature in self._features:
            if feature in seen:
                duplicates.append(feature)
            seen.add(feature)
        if duplicates:
            raise SchemaError(f"Feature ids must be unique; duplicated: {sorted(set(duplicates))}.")

        self._diff_to_feature: Dict[str, str] = {self.diff_column(f): f for f in self._features}

    @classmethod
    def from_matrix(cls, matrix: pd.DataFrame, config: PairedDiffConfig) -> 'FeatureColumnMap':
        """Build the map from the row index of a features x samples matrix."""
        return cls(matrix.index, separator=config.column_separator, diff_suffix=config.diff_suffix)

    @property
    def features(self) -> List[str]:
        return list(self._features)

    def __len__(self) -> int:
        return len(self._features)

    def __contains__(self, feature) -> bool:
        return self.diff_column(feature) in self._diff_to_feature

    def wide_column(self, feature, timepoint) -> str:
        return f"{feature}{self.separator}{timepoint}"

    def diff_column(self, feature) -> str:
        return f"{feature}{self.separator}{self.diff_suffix}"

    def wide_columns(self, timepoint, features: Optional[Iterable[str]] = None) -> Dict[str, str]:
        """Wide column name -> feature id for one timepoint, in feature order."""
        features = self._features if features is None else features
        return {self.wide_column(f, timepoint): f for f in features}

    def feature_for_diff_column(self, column: str) -> str:
        """Reverse lookup; raises KeyError for columns that are not diff columns."""
        return self._diff_to_feature[column]

    def resolve(self, feature) -> Optional[str]:
        """Diff column for a requested feature id, or None if the id is unknown."""
        feature = str(feature)
        if feature not in self:
            return None
        return self.diff_column(feature)
