# paired_diff/reshaper.py
"""
Long-to-wide reshaping of paired measurements.

Merges cleaned sample metadata with the transposed measurement matrix and
pivots so that each subject occupies one row with one column per
(feature, timepoint) pair, named '{feature}_{timepoint}'.
"""

import logging
from typing import List, Tuple

import pandas as pd

from .column_map import FeatureColumnMap
from .config import PairedDiffConfig
from .exceptions import PivotError, SchemaError
from .metadata_cleaner import SAMPLE_ID, SUBJECT_ID, TIMEPOINT

logger = logging.getLogger(__name__)


class WideReshaper:
    """Builds the one-row-per-subject table from samples x features data."""

    def __init__(self, config: PairedDiffConfig):
        self.config = config

    def reshape(self, clean_metadata: pd.DataFrame, matrix: pd.DataFrame,
                column_map: FeatureColumnMap) -> Tuple[pd.DataFrame, List[str]]:
        """
        Join metadata to measurements and pivot to one row per subject.

        Args:
            clean_metadata: Output of MetadataCleaner.clean.
            matrix: Measurement matrix, features as rows and sample ids as columns.
            column_map: Feature id <-> column name map built from the same matrix.

        Returns:
            Tuple[pd.DataFrame, List[str]]: The wide table (subject_id, covariate,
            then one column per feature x timepoint) and the ids of samples dropped
            because they had no metadata row, no measurements, or no usable
            subject/timepoint.

        Raises:
            SchemaError: On duplicated sample ids in the matrix, feature ids that
                clash with metadata or derived column names, or duplicated
                subject/timepoint samples under duplicate_policy='error'.
            PivotError: If no sample carries a usable timepoint label.
        """
        covariate = self.config.covariate_name
        features = column_map.features

        clashing = sorted({SAMPLE_ID, SUBJECT_ID, TIMEPOINT, covariate} & set(features))
        if clashing:
            raise SchemaError(f"Feature ids clash with metadata column names: {clashing}.")

        # samples as rows, features as columns
        expr_t = matrix.T
        expr_t.index = [str(s) for s in matrix.columns]
        expr_t.columns = features
        if expr_t.index.duplicated().any():
            dupes = sorted(set(expr_t.index[expr_t.index.duplicated()]))
            raise SchemaError(f"Measurement matrix has duplicated sample ids: {dupes}.")

        meta_samples = set(clean_metadata[SAMPLE_ID])
        matrix_samples = set(expr_t.index)
        no_metadata = [s for s in expr_t.index if s not in meta_samples]
        no_measurements = [s for s in clean_metadata[SAMPLE_ID] if s not in matrix_samples]
        if no_metadata:
            logger.warning(f"Dropping {len(no_metadata)} samples without a metadata row: {no_metadata}")
        if no_measurements:
            logger.warning(f"Dropping {len(no_measurements)} metadata rows without measurements: {no_measurements}")

        full_df = clean_metadata.merge(expr_t, left_on=SAMPLE_ID, right_index=True, how="inner")
        full_df = full_df.reset_index(drop=True)

        unusable = full_df[SUBJECT_ID].isna() | full_df[TIMEPOINT].isna()
        if unusable.any():
            unusable_ids = full_df.loc[unusable, SAMPLE_ID].tolist()
            logger.warning(f"Dropping {len(unusable_ids)} samples with no subject id or timepoint: {unusable_ids}")
            full_df = full_df.loc[~unusable]
        else:
            unusable_ids = []

        if full_df.empty:
            raise PivotError("No usable timepoint values found: zero samples carry both "
                             "measurements and a timepoint label.")

        full_df = full_df.assign(**{TIMEPOINT: full_df[TIMEPOINT].astype(str)})
        timepoints = sorted(full_df[TIMEPOINT].unique())

        long_df = self._resolve_duplicates(full_df, features)

        logger.info("   ... Pivoting to wide format")
        values = long_df.set_index([SUBJECT_ID, TIMEPOINT])[features]
        wide = values.unstack(TIMEPOINT)
        wide = wide.reindex(columns=pd.MultiIndex.from_product([features, timepoints]))
        wide.columns = [column_map.wide_column(f, tp) for f, tp in wide.columns]
        self._check_column_names(wide.columns, covariate)

        subject_covariate = full_df.groupby(SUBJECT_ID)[covariate].first()
        wide.insert(0, covariate, subject_covariate.reindex(wide.index).to_numpy())
        wide.index.name = SUBJECT_ID
        wide = wide.reset_index()

        logger.info(f"Wide table: {len(wide)} subjects, {len(features)} features x "
                    f"{len(timepoints)} timepoints {timepoints}.")
        return wide, no_metadata + no_measurements + unusable_ids

    def _resolve_duplicates(self, full_df: pd.DataFrame, features: List[str]) -> pd.DataFrame:
        """Apply duplicate_policy to subjects with several samples at one timepoint."""
        keys = [SUBJECT_ID, TIMEPOINT]
        duplicated = full_df.duplicated(keys, keep=False)
        if not duplicated.any():
            return full_df

        pairs = sorted(set(map(tuple, full_df.loc[duplicated, keys].to_numpy().tolist())))
        policy = self.config.duplicate_policy
        if policy == 'error':
            raise SchemaError(f"Subjects with more than one sample at the same timepoint: {pairs}.")

        logger.warning(f"Resolving {len(pairs)} duplicated subject/timepoint pairs with policy '{policy}'.")
        if policy == 'first':
            return full_df.drop_duplicates(keys, keep='first')
        return full_df.groupby(keys, as_index=False, sort=False)[features].mean()

    def _check_column_names(self, columns: pd.Index, covariate: str):
        if columns.duplicated().any():
            dupes = sorted(set(columns[columns.duplicated()]))
            raise SchemaError(f"Feature/timepoint column names are ambiguous: {dupes}.")
        reserved = sorted({SUBJECT_ID, covariate} & set(columns))
        if reserved:
            raise SchemaError(f"Derived column names clash with metadata columns: {reserved}.")
