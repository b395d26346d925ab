# paired_diff/descriptive.py
"""
Summary statistics of the raw measurement matrix, computed before any munging.
"""

import logging
from typing import Dict

import numpy as np
import pandas as pd
from scipy import stats

from .exceptions import PivotError
from .metadata_cleaner import SAMPLE_ID, TIMEPOINT

logger = logging.getLogger(__name__)


def _finite_values(matrix: pd.DataFrame) -> np.ndarray:
    values = matrix.to_numpy(dtype=float).ravel()
    return values[~np.isnan(values)]


def summarize_measurements(matrix: pd.DataFrame) -> Dict:
    """
    Global distribution of all measurement values.

    Args:
        matrix: Measurement matrix, features as rows and samples as columns.

    Returns:
        Dictionary with global mean and SD, the six-number summary (min, first
        quartile, median, mean, third quartile, max), skewness, excess kurtosis
        and per-sample means.

    Raises:
        PivotError: If the matrix holds no non-missing value.
    """
    values = _finite_values(matrix)
    if values.size == 0:
        raise PivotError("Zero usable rows: the measurement matrix has no non-missing values.")

    q1, median, q3 = np.percentile(values, [25, 50, 75])
    global_mean = float(np.mean(values))
    global_sd = float(np.std(values, ddof=1)) if values.size > 1 else float('nan')

    logger.info(f"Global Mean: {global_mean:.3f}")
    logger.info(f"Global SD: {global_sd:.3f}")

    return {
        'n_values': int(values.size),
        'n_missing': int(matrix.size - values.size),
        'global_mean': global_mean,
        'global_sd': global_sd,
        'summary_stats': {
            'min': float(values.min()),
            'q1': float(q1),
            'median': float(median),
            'mean': global_mean,
            'q3': float(q3),
            'max': float(values.max()),
        },
        'skewness': float(stats.skew(values)),
        'kurtosis': float(stats.kurtosis(values)),
        'sample_means': {str(k): float(v) for k, v in matrix.mean(axis=0).items()},
    }


def summarize_by_timepoint(matrix: pd.DataFrame, clean_metadata: pd.DataFrame) -> pd.DataFrame:
    """Sample count, mean, median and SD of all measurement values per timepoint label."""
    sample_timepoints = clean_metadata.dropna(subset=[TIMEPOINT]).set_index(SAMPLE_ID)[TIMEPOINT]
    columns = pd.Index([str(c) for c in matrix.columns])

    rows = []
    for timepoint in sorted(sample_timepoints.astype(str).unique()):
        samples = set(sample_timepoints.index[(sample_timepoints.astype(str) == timepoint).to_numpy()])
        mask = columns.isin(samples)
        values = _finite_values(matrix.loc[:, mask])
        rows.append({
            TIMEPOINT: timepoint,
            'n_samples': int(mask.sum()),
            'mean': float(np.mean(values)) if values.size else float('nan'),
            'median': float(np.median(values)) if values.size else float('nan'),
            'sd': float(np.std(values, ddof=1)) if values.size > 1 else float('nan'),
        })

    return pd.DataFrame(rows, columns=[TIMEPOINT, 'n_samples', 'mean', 'median', 'sd'])
