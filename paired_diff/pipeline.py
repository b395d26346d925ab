# paired_diff/pipeline.py
import logging
from typing import Dict, Iterable, List, Optional

import pandas as pd

from .column_map import FeatureColumnMap
from .config import PairedDiffConfig
from .data_loader import DataLoader
from .descriptive import summarize_by_timepoint, summarize_measurements
from .diff_computer import DiffComputer
from .metadata_cleaner import MetadataCleaner
from .model_runner import ModelRunner
from .output_generator import OutputGenerator
from .reshaper import WideReshaper

logger = logging.getLogger(__name__)


class PairedDiffPipeline:
    """
    Orchestrates the paired_diff pipeline.
    """

    def __init__(self, config: Optional[PairedDiffConfig] = None):
        self.config = config or PairedDiffConfig()
        logger.info(f"Initializing PairedDiffPipeline with config: {vars(self.config)}")
        self.loader = DataLoader()
        self.cleaner = MetadataCleaner(self.config)
        self.reshaper = WideReshaper(self.config)
        self.diff_computer = DiffComputer(self.config)
        self.output_generator = OutputGenerator(self.config)

    def run(self, matrix: pd.DataFrame, metadata: pd.DataFrame,
            features: Optional[Iterable[str]] = None) -> Dict:
        """
        Run the in-memory core: clean, reshape, difference and model.

        Args:
            matrix: Measurement matrix, features as rows and sample ids as columns.
            metadata: Raw per-sample annotation table.
            features: Feature ids to model. Defaults to config.target_features.

        Returns:
            dict: 'wide_table', 'diff_table', 'intercept_results', 'covariate_results',
            'raw_summary', 'timepoint_summary' and the 'report' of recoverable
            conditions (dropped samples and subjects, skipped features).
        """
        features = list(features) if features is not None else list(self.config.target_features)
        if not features:
            logger.warning("No features requested; model result tables will be empty.")

        column_map = FeatureColumnMap.from_matrix(matrix, self.config)

        logger.info("📥 Stage 1: Metadata Cleaning")
        clean_metadata = self.cleaner.clean(metadata)

        raw_summary = None
        timepoint_summary = None
        if self.config.summarize_raw:
            logger.info("🔍 Summarizing raw data...")
            raw_summary = summarize_measurements(matrix)
            timepoint_summary = summarize_by_timepoint(matrix, clean_metadata)

        logger.info("🔄 Stage 2: Reshaping (Long -> Wide)")
        wide, dropped_samples = self.reshaper.reshape(clean_metadata, matrix, column_map)

        logger.info("➖ Stage 3: Differences (Post - Pre)")
        diff_df, dropped_subjects = self.diff_computer.compute(wide, column_map)

        logger.info("📈 Stage 4: Per-Feature Models")
        runner = ModelRunner(self.config, column_map)
        intercept_results, intercept_skipped = runner.run_intercept_models(diff_df, features)
        covariate_results, covariate_skipped = runner.run_covariate_models(diff_df, features)

        report = self._build_report(matrix, clean_metadata, wide, diff_df, features,
                                    dropped_samples, dropped_subjects,
                                    intercept_skipped + covariate_skipped)
        logger.info("✅ Pipeline completed successfully")
        return {
            'wide_table': wide,
            'diff_table': diff_df,
            'intercept_results': intercept_results,
            'covariate_results': covariate_results,
            'raw_summary': raw_summary,
            'timepoint_summary': timepoint_summary,
            'report': report,
        }

    def run_pipeline(self, matrix_path: str, metadata_path: str,
                     features: Optional[List[str]] = None, features_path: Optional[str] = None,
                     output_dir: Optional[str] = "output") -> Dict:
        """
        Load inputs from disk, run the core, and export the results.

        Args:
            matrix_path (str): Path to the features x samples measurement matrix.
            metadata_path (str): Path to the sample metadata table.
            features (Optional[List[str]]): Feature ids to model.
            features_path (Optional[str]): Text file of feature ids, appended to `features`.
            output_dir (Optional[str]): Output directory; nothing is written if None.

        Returns:
            dict: Pipeline results, as returned by run().
        """
        matrix = self.loader.load_measurement_matrix(matrix_path)
        metadata = self.loader.load_metadata(metadata_path)
        if features_path:
            features = list(features or []) + self.loader.load_feature_list(features_path)

        results = self.run(matrix, metadata, features)

        if output_dir:
            logger.info("📤 Stage 5: Output Generation")
            results['output_files'] = [str(p) for p in self.output_generator.export(results, output_dir)]
        return results

    def _build_report(self, matrix, clean_metadata, wide, diff_df, features,
                      dropped_samples, dropped_subjects, skipped) -> Dict:
        n_diff_columns = diff_df.shape[1] - 2
        return {
            'n_features_matrix': int(matrix.shape[0]),
            'n_samples_matrix': int(matrix.shape[1]),
            'n_samples_metadata': int(len(clean_metadata)),
            'dropped_samples': [str(s) for s in dropped_samples],
            'n_subjects_wide': int(len(wide)),
            'n_subjects': int(len(diff_df)),
            'n_features_retained': int(n_diff_columns),
            'dropped_subjects': [str(s) for s in dropped_subjects],
            'n_dropped_subjects': len(dropped_subjects),
            'features_requested': [str(f) for f in features],
            'skipped_features': skipped,
        }


def run_paired_diff_analysis(**kwargs) -> Dict:
    """
    Entry-point function for pipeline execution from files.
    """
    config = kwargs.pop('config', None) or PairedDiffConfig()
    pipeline = PairedDiffPipeline(config)
    logger.info("Starting pipeline execution...")
    return pipeline.run_pipeline(**kwargs)
