import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

import yaml

from paired_diff import __version__
from paired_diff.config import PairedDiffConfig, load_config
from paired_diff.exceptions import PairedDiffError
from paired_diff.pipeline import run_paired_diff_analysis

logger = logging.getLogger(__name__)


def validate_file_path(file_path: str, file_type: str) -> Path:
    """Validate if file exists and has correct extension."""
    path = Path(file_path)
    if not path.is_file():
        logger.error(f"{file_type} file does not exist: {file_path}")
        sys.exit(1)

    valid_extensions = {
        'matrix': ('.csv', '.tsv', '.txt'),
        'meta': ('.csv', '.tsv', '.txt'),
        'features': ('.txt', '.csv', '.tsv'),
        'config': ('.json', '.yml', '.yaml')
    }

    if file_type in valid_extensions and path.suffix.lower() not in valid_extensions[file_type]:
        logger.error(f"Invalid {file_type} file format: {file_path}. Expected extensions: {valid_extensions[file_type]}")
        sys.exit(1)

    return path


def setup_argument_parser() -> argparse.ArgumentParser:
    """Set up the argument parser with organized argument groups."""
    parser = argparse.ArgumentParser(
        prog="paired_diff",
        description=(
            "paired_diff: per-feature change analysis for paired pre/post measurements.\n"
            "Reshapes a features x samples matrix to one row per subject, computes "
            "post - pre differences and fits intercept-only and covariate models per feature."
        ),
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
        epilog=("Example: paired_diff --matrix data/expression.csv --meta data/pdata.csv "
                "--features 211980_at 204114_at 212013_at --output-dir output/")
    )

    input_group = parser.add_argument_group('Required Input Files')
    input_group.add_argument(
        "--matrix", required=True, type=str,
        help="Path to measurement matrix (CSV/TSV, features as rows, sample ids as columns)."
    )
    input_group.add_argument(
        "--meta", required=True, type=str,
        help="Path to sample metadata file (CSV/TSV, one row per sample)."
    )

    feature_group = parser.add_argument_group('Features')
    feature_group.add_argument(
        "--features", nargs="+", default=None,
        help="Feature ids to model."
    )
    feature_group.add_argument(
        "--features-file", type=str, default=None,
        help="Text file with one feature id per line."
    )

    optional_group = parser.add_argument_group('Optional Parameters')
    optional_group.add_argument(
        "--output-dir", type=str, default="output",
        help="Directory to save result tables and the run report."
    )

    config_group = parser.add_argument_group('Configuration')
    config_group.add_argument(
        "--config", type=str, default=None,
        help="Optional JSON or YAML config file with pipeline parameters."
    )
    config_group.add_argument(
        "--version", action="version", version=f"paired_diff {__version__}",
        help="Show program's version number and exit."
    )

    return parser


def read_config(config_path: Optional[str]) -> PairedDiffConfig:
    """Load configuration, exiting on an unreadable file."""
    if not config_path:
        return PairedDiffConfig()
    path = validate_file_path(config_path, 'config')
    try:
        return load_config(str(path))
    except (ValueError, OSError, yaml.YAMLError) as e:
        logger.error(f"Error loading config file: {e}")
        sys.exit(1)


def main(argv=None):
    """Main function to orchestrate the paired_diff pipeline."""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)]
    )
    parser = setup_argument_parser()
    args = parser.parse_args(argv)

    try:
        matrix_path = validate_file_path(args.matrix, 'matrix')
        meta_path = validate_file_path(args.meta, 'meta')
        features_path = validate_file_path(args.features_file, 'features') if args.features_file else None

        logger.info("Starting paired_diff pipeline")
        logger.info(f"Measurement matrix: {matrix_path}")
        logger.info(f"Metadata: {meta_path}")
        if features_path:
            logger.info(f"Feature list: {features_path}")
        logger.info(f"Output directory: {args.output_dir}")

        config = read_config(args.config)
        if not args.features and not features_path and not config.target_features:
            logger.error("No features to model: pass --features, --features-file or set target_features in the config.")
            sys.exit(1)

        results = run_paired_diff_analysis(
            matrix_path=str(matrix_path),
            metadata_path=str(meta_path),
            features=args.features,
            features_path=str(features_path) if features_path else None,
            output_dir=args.output_dir,
            config=config
        )

        report = results['report']
        logger.info(f"Subjects: {report['n_subjects']}, features retained: {report['n_features_retained']}, "
                    f"skipped model fits: {len(report['skipped_features'])}")
        logger.info("paired_diff pipeline completed successfully")

    except KeyboardInterrupt:
        logger.error("Pipeline interrupted by user")
        sys.exit(1)
    except (PairedDiffError, ValueError, OSError) as e:
        logger.error(f"Pipeline failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
