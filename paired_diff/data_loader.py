# paired_diff/data_loader.py
import logging
import pandas as pd
from pathlib import Path
from typing import List


logger = logging.getLogger(__name__)


def _separator(path: Path) -> str:
    if path.suffix.lower() not in {'.csv', '.tsv', '.txt'}:
        raise ValueError(f"Unsupported format: {path.suffix}")
    return ',' if path.suffix.lower() == '.csv' else '\t'


class DataLoader:
    """Handles loading of the measurement matrix, sample metadata and feature lists."""

    def load_measurement_matrix(self, file_path: str) -> pd.DataFrame:
        """
        Load a features x samples matrix from CSV/TSV.

        The first column holds feature ids (kept as strings, so probe ids such as
        '211980_at' are never altered), the header holds sample ids. Non-numeric
        cells become NaN. Duplicate feature ids keep their first occurrence.
        """
        path = Path(file_path)
        logger.info(f"Loading measurement matrix from: {path}")

        df = pd.read_csv(path, sep=_separator(path), index_col=0, dtype=str)
        df.index = df.index.astype(str)
        df.columns = [str(c) for c in df.columns]
        df = df.apply(pd.to_numeric, errors='coerce')

        duplicates = df.index.duplicated(keep=False)
        if duplicates.any():
            logger.warning(f"Found {duplicates.sum()} rows with duplicate feature IDs. Keeping first occurrence.")
            df = df[~df.index.duplicated(keep='first')]

        logger.info(f"Loaded {df.shape[0]} features x {df.shape[1]} samples.")
        return df

    def load_metadata(self, file_path: str) -> pd.DataFrame:
        """
        Load sample metadata from CSV/TSV with every value read as a string.
        """
        path = Path(file_path)
        logger.info(f"Loading metadata from: {path}")

        df = pd.read_csv(path, sep=_separator(path), dtype=str)
        logger.info(f"Loaded metadata for {len(df)} samples with {df.shape[1]} columns.")
        return df

    def load_feature_list(self, file_path: str) -> List[str]:
        """
        Load feature ids from a text file, one per line.
        """
        path = Path(file_path)
        logger.info(f"Loading feature list from: {path}")

        features = [line.strip() for line in path.read_text().splitlines() if line.strip()]
        logger.info(f"Loaded {len(features)} features.")
        return features
