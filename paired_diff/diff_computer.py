# paired_diff/diff_computer.py
import logging
from typing import List, Tuple

import numpy as np
import pandas as pd

from .column_map import FeatureColumnMap
from .config import PairedDiffConfig
from .exceptions import PivotError
from .metadata_cleaner import SUBJECT_ID

logger = logging.getLogger(__name__)


class DiffComputer:
    """
    Computes post-minus-pre differences for every feature observed at both timepoints.

    Subjects missing either timepoint for any retained feature, or missing the
    covariate, are dropped entirely (row-wise complete-case filtering).
    """

    def __init__(self, config: PairedDiffConfig):
        self.config = config

    def paired_features(self, wide: pd.DataFrame, column_map: FeatureColumnMap) -> List[str]:
        """Features, in matrix order, with at least one value at both PRE and POST."""
        pre, post = self.config.pre_label, self.config.post_label
        observed = set(wide.columns[wide.notna().any(axis=0).to_numpy()])
        return [f for f in column_map.features
                if column_map.wide_column(f, pre) in observed and column_map.wide_column(f, post) in observed]

    def compute(self, wide: pd.DataFrame, column_map: FeatureColumnMap) -> Tuple[pd.DataFrame, List[str]]:
        """
        Build the subject-level diff table.

        Args:
            wide: Output of WideReshaper.reshape.
            column_map: Feature id <-> column name map built from the measurement matrix.

        Returns:
            Tuple[pd.DataFrame, List[str]]: Diff table (subject_id, covariate, then
            '{feature}_diff' columns) and the ids of subjects dropped for a missing diff or covariate.

        Raises:
            PivotError: If no feature is observed at both timepoints, or no subject
                survives complete-case filtering.
        """
        pre, post = self.config.pre_label, self.config.post_label
        covariate = self.config.covariate_name

        logger.info("   ... Calculating (Post - Pre) differences")
        valid_features = self.paired_features(wide, column_map)
        if not valid_features:
            raise PivotError(f"No feature has values at both '{pre}' and '{post}'; "
                             f"zero usable rows for differencing.")
        excluded = len(column_map) - len(valid_features)
        if excluded:
            logger.info(f"Excluding {excluded} features not observed at both timepoints.")

        pre_columns = column_map.wide_columns(pre, valid_features)
        post_columns = column_map.wide_columns(post, valid_features)
        pre_frame = wide[list(pre_columns)]
        post_frame = wide[list(post_columns)]
        self._check_alignment(pre_frame, post_frame, pre_columns, post_columns, valid_features)

        mat_diff = post_frame.to_numpy(dtype=float) - pre_frame.to_numpy(dtype=float)
        diff_df = pd.DataFrame(mat_diff, index=wide.index,
                               columns=[column_map.diff_column(f) for f in valid_features])

        final_df = pd.concat([wide[[SUBJECT_ID, covariate]], diff_df], axis=1)

        complete = ~np.isnan(mat_diff).any(axis=1) & wide[covariate].notna().to_numpy()
        dropped = final_df.loc[~complete, SUBJECT_ID].tolist()
        if dropped:
            logger.warning(f"Dropping {len(dropped)} subjects with missing timepoint or covariate data: {dropped}")
        final_df = final_df.loc[complete].reset_index(drop=True)

        if final_df.empty:
            raise PivotError("Zero usable rows: every subject is missing a timepoint "
                             "for at least one retained feature.")

        logger.info(f"Data munging complete. Subjects: {len(final_df)} Features: {len(valid_features)}")
        return final_df, dropped

    @staticmethod
    def _check_alignment(pre_frame: pd.DataFrame, post_frame: pd.DataFrame,
                         pre_columns, post_columns, features: List[str]):
        """Both operands must share subject order and feature order before subtracting."""
        assert pre_frame.shape == post_frame.shape, "PRE/POST matrices differ in shape"
        assert pre_frame.index.equals(post_frame.index), "PRE/POST matrices differ in subject order"
        pre_order = [pre_columns[c] for c in pre_frame.columns]
        post_order = [post_columns[c] for c in post_frame.columns]
        assert pre_order == post_order == features, "PRE/POST matrices differ in feature order"
