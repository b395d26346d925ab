# paired_diff/output_generator.py
"""
Export of paired_diff results: model tables and diff table as CSV, run report as JSON.
"""

import json
import logging
import math
from datetime import datetime
from pathlib import Path
from typing import Dict, List

import pandas as pd

from .config import PairedDiffConfig

logger = logging.getLogger(__name__)


def _json_safe(value):
    """Replace NaN and infinite floats with None so the report is strict JSON."""
    if isinstance(value, dict):
        return {k: _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


class OutputGenerator:
    """Writes pipeline results to an output directory."""

    def __init__(self, config: PairedDiffConfig):
        self.config = config

    def export(self, results: Dict, output_dir: str) -> List[Path]:
        """
        Write every configured output for a finished run.

        Args:
            results: Dictionary returned by PairedDiffPipeline.run.
            output_dir: Target directory, created if absent.

        Returns:
            List[Path]: Paths of the files written.
        """
        output_path = Path(output_dir)
        if not output_path.exists():
            output_path.mkdir(parents=True)
            logger.info(f"📂 Created output directory: {output_path}")

        written = []
        if 'csv' in self.config.output_formats:
            written += self.generate_csv_output(results, output_path)
        if 'json' in self.config.output_formats:
            written.append(self.generate_json_report(results, output_path))

        logger.info(f"Results saved to {output_path}")
        return written

    def generate_csv_output(self, results: Dict, output_path: Path) -> List[Path]:
        tables = {
            "results_intercept_model.csv": results['intercept_results'],
            f"results_{self.config.covariate_name}_model.csv": results['covariate_results'],
        }
        if self.config.export_diff_table:
            tables["diff_table.csv"] = results['diff_table']

        written = []
        for filename, table in tables.items():
            file_path = output_path / filename
            table.to_csv(file_path, index=False)
            logger.info(f"Saved {len(table)} rows to: {file_path}")
            written.append(file_path)
        return written

    def generate_json_report(self, results: Dict, output_path: Path) -> Path:
        """Timestamped JSON with the run report and raw-data summaries."""
        payload = {'report': results['report']}
        if results.get('raw_summary') is not None:
            payload['raw_summary'] = results['raw_summary']
        timepoint_summary = results.get('timepoint_summary')
        if isinstance(timepoint_summary, pd.DataFrame):
            payload['timepoint_summary'] = timepoint_summary.to_dict(orient='records')

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        file_path = output_path / f"paired_diff_report_{timestamp}.json"
        with open(file_path, 'w') as f:
            json.dump(_json_safe(payload), f, indent=2, allow_nan=False)
        logger.info(f"Saved run report to: {file_path}")
        return file_path
