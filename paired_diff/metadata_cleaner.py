# paired_diff/metadata_cleaner.py
import logging

import numpy as np
import pandas as pd
from pandas.api.types import is_float_dtype

from .config import PairedDiffConfig
from .exceptions import SchemaError

logger = logging.getLogger(__name__)

SAMPLE_ID = 'sample_id'
SUBJECT_ID = 'subject_id'
TIMEPOINT = 'timepoint'


def _subject_keys(subjects: pd.Series) -> pd.Series:
    """String subject keys; integral floats (an integer id column holding NaN) lose their '.0'."""
    if is_float_dtype(subjects):
        observed = subjects.dropna()
        if np.isfinite(observed).all() and (observed == observed.round()).all():
            subjects = subjects.astype('Int64')
    return subjects.astype(str).astype(object).where(subjects.notna(), np.nan)


class MetadataCleaner:
    """Extracts sample id, subject id, timepoint and covariate from raw sample annotations."""

    def __init__(self, config: PairedDiffConfig):
        self.config = config

    @property
    def source_columns(self):
        return [self.config.sample_column, self.config.subject_column,
                self.config.timepoint_column, self.config.covariate_column]

    def clean(self, metadata: pd.DataFrame) -> pd.DataFrame:
        """
        Normalize a raw annotation table to four columns.

        Args:
            metadata: Raw per-sample annotation table, one row per sample.

        Returns:
            pd.DataFrame: Columns sample_id, subject_id (string), timepoint (raw label)
            and the covariate (float, NaN where the raw value is not numeric).

        Raises:
            SchemaError: If any configured source column is absent.
        """
        missing = [c for c in self.source_columns if c not in metadata.columns]
        if missing:
            raise SchemaError("Metadata is missing expected source columns.", missing)

        subjects = metadata[self.config.subject_column]
        clean = pd.DataFrame({
            SAMPLE_ID: metadata[self.config.sample_column].astype(str).to_numpy(),
            SUBJECT_ID: _subject_keys(subjects).to_numpy(),
            TIMEPOINT: metadata[self.config.timepoint_column].to_numpy(),
            self.config.covariate_name: pd.to_numeric(
                metadata[self.config.covariate_column], errors='coerce').astype(float).to_numpy(),
        })

        duplicates = clean[SAMPLE_ID].duplicated(keep='first')
        if duplicates.any():
            logger.warning(f"Found {duplicates.sum()} duplicate sample IDs in metadata. Keeping first occurrence.")
            clean = clean.loc[~duplicates].reset_index(drop=True)

        n_bad_covariate = int(clean[self.config.covariate_name].isna().sum())
        if n_bad_covariate:
            logger.warning(f"{n_bad_covariate} samples have a missing or non-numeric {self.config.covariate_name}.")

        logger.info(f"Cleaned metadata: {len(clean)} samples, "
                    f"{clean[SUBJECT_ID].nunique()} subjects.")
        return clean
