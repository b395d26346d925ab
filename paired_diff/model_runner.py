# paired_diff/model_runner.py
"""
Per-feature regression models on subject-level changes.

Two models are fitted independently for every requested feature:
1. Intercept only (diff ~ 1): does the mean change differ from zero?
2. Covariate (diff ~ covariate): does the covariate modulate the change?

A feature that cannot be fitted is skipped with a warning; the rest of the
batch always runs.
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd
import statsmodels.api as sm

from .column_map import FeatureColumnMap
from .config import PairedDiffConfig

logger = logging.getLogger(__name__)

INTERCEPT_MODEL = 'Intercept_Only'

INTERCEPT_COLUMNS = ['feature_id', 'model', 'n_obs', 'estimate_mean_diff', 'se', 't_value', 'p_value']
COVARIATE_COLUMNS = ['feature_id', 'model', 'n_obs', 'intercept', 'slope', 'slope_se',
                     'slope_t_value', 'slope_p_value']


class FeatureSkip(Exception):
    """A feature that cannot be modelled; recorded and skipped, never fatal."""


class ModelRunner:
    """
    Fits OLS models per feature against the diff table.

    Feature ids are resolved to diff columns through the FeatureColumnMap, so
    the requested ids are the raw matrix ids with no name sanitization.
    """

    def __init__(self, config: PairedDiffConfig, column_map: FeatureColumnMap):
        """
        Initialize the ModelRunner.

        Args:
            config: Configuration object providing the covariate name and the
                minimum number of observations per fit.
            column_map: Map used to turn feature ids into diff column names.
        """
        self.config = config
        self.column_map = column_map
        self.covariate = config.covariate_name

    @property
    def covariate_model(self) -> str:
        return f"{self.covariate.capitalize()}_Effect"

    def run_intercept_models(self, diff_df: pd.DataFrame,
                             features: Iterable[str]) -> Tuple[pd.DataFrame, List[Dict]]:
        """
        Fit diff ~ 1 for every feature.

        Returns:
            Tuple[pd.DataFrame, List[Dict]]: One row per fitted feature in request
            order, and the skipped features with the reason they were skipped.
        """
        logger.info("Running Intercept Models (Mean Change)...")
        return self._run(diff_df, features, INTERCEPT_MODEL, self._fit_intercept, INTERCEPT_COLUMNS)

    def run_covariate_models(self, diff_df: pd.DataFrame,
                             features: Iterable[str]) -> Tuple[pd.DataFrame, List[Dict]]:
        """
        Fit diff ~ covariate for every feature.

        Returns:
            Tuple[pd.DataFrame, List[Dict]]: One row per fitted feature in request
            order, and the skipped features with the reason they were skipped.
        """
        logger.info(f"Running {self.covariate} Models (Change ~ {self.covariate})...")
        return self._run(diff_df, features, self.covariate_model, self._fit_covariate, COVARIATE_COLUMNS)

    def _run(self, diff_df, features, model_name, fit, columns):
        rows = []
        skipped = []
        for feature in features:
            try:
                column = self._resolve_column(diff_df, feature)
                result = fit(diff_df, column)
            except FeatureSkip as e:
                logger.warning(f"Skipping {model_name} model for {feature}: {e}")
                skipped.append({'feature_id': str(feature), 'model': model_name, 'reason': str(e)})
                continue
            rows.append({'feature_id': str(feature), 'model': model_name, **result})

        logger.info(f"{model_name}: fitted {len(rows)} features, skipped {len(skipped)}.")
        return pd.DataFrame(rows, columns=columns), skipped

    def _resolve_column(self, diff_df: pd.DataFrame, feature) -> str:
        column: Optional[str] = self.column_map.resolve(feature)
        if column is None:
            raise FeatureSkip("feature id not present in the measurement matrix")
        if column not in diff_df.columns:
            raise FeatureSkip(f"column '{column}' not found in diff table")
        return column

    def _min_observations(self, n_params: int) -> int:
        return max(self.config.min_observations, n_params + 1)

    def _fit_intercept(self, diff_df: pd.DataFrame, column: str) -> Dict:
        y = pd.to_numeric(diff_df[column], errors='coerce').dropna()
        needed = self._min_observations(1)
        if len(y) < needed:
            raise FeatureSkip(f"insufficient observations ({len(y)} < {needed})")

        try:
            res = sm.OLS(y.to_numpy(), np.ones((len(y), 1))).fit()
        except (ValueError, np.linalg.LinAlgError) as e:
            raise FeatureSkip(f"model fit failed: {e}") from e

        return {
            'n_obs': int(res.nobs),
            'estimate_mean_diff': float(res.params[0]),
            'se': float(res.bse[0]),
            't_value': float(res.tvalues[0]),
            'p_value': float(res.pvalues[0]),
        }

    def _fit_covariate(self, diff_df: pd.DataFrame, column: str) -> Dict:
        data = diff_df[[column, self.covariate]].apply(pd.to_numeric, errors='coerce').dropna()
        needed = self._min_observations(2)
        if len(data) < needed:
            raise FeatureSkip(f"insufficient observations ({len(data)} < {needed})")
        if data[self.covariate].nunique() < 2:
            raise FeatureSkip(f"{self.covariate} does not vary across subjects")

        X = sm.add_constant(data[self.covariate].to_numpy(), has_constant='add')
        try:
            res = sm.OLS(data[column].to_numpy(), X).fit()
        except (ValueError, np.linalg.LinAlgError) as e:
            raise FeatureSkip(f"model fit failed: {e}") from e

        return {
            'n_obs': int(res.nobs),
            'intercept': float(res.params[0]),
            'slope': float(res.params[1]),
            'slope_se': float(res.bse[1]),
            'slope_t_value': float(res.tvalues[1]),
            'slope_p_value': float(res.pvalues[1]),
        }
