# paired_diff/config.py
"""
Configuration module for paired_diff.
This file defines a dataclass to hold configurable parameters for the pipeline,
allowing easy modification of settings like metadata column names, timepoint
labels and model fitting thresholds.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

import yaml

logger = logging.getLogger(__name__)

DUPLICATE_POLICIES = ('error', 'mean', 'first')


@dataclass
class PairedDiffConfig:
    """
    Configuration class for paired_diff pipeline parameters.
    An instance is passed to every pipeline stage; no stage reads settings from
    anywhere else.

    Attributes:
        sample_column (str): Metadata column holding the sample identifiers that
            match the measurement matrix column labels (default: 'geo_accession').
        subject_column (str): Raw metadata column holding the subject identifier
            (default: 'patientid:ch1').
        timepoint_column (str): Raw metadata column holding the timepoint label
            (default: 'time:ch1').
        covariate_column (str): Raw metadata column holding the numeric covariate
            (default: 'age:ch1').
        covariate_name (str): Name given to the cleaned covariate column, also used
            to label the covariate model and its export file (default: 'age').
        pre_label (str): Timepoint label of the baseline sample (default: 'pre-training').
        post_label (str): Timepoint label of the follow-up sample (default: 'post-training').
        duplicate_policy (str): What to do when a subject has more than one sample at
            the same timepoint: 'error' raises SchemaError, 'mean' averages the
            duplicates, 'first' keeps the first one in input order (default: 'error').
        column_separator (str): Separator between feature id and suffix in derived
            column names (default: '_').
        diff_suffix (str): Suffix of diff columns (default: 'diff').
        min_observations (int): Minimum number of non-missing observations needed to
            fit a model. Never lower than the number of parameters plus one
            (default: 2).
        target_features (List[str]): Features to model when the caller does not pass
            a feature list (default: empty).
        output_formats (List[str]): Export formats, any of 'csv' and 'json'
            (default: ['csv', 'json']).
        export_diff_table (bool): Also write the subject-level diff table (default: True).
        summarize_raw (bool): Compute raw measurement summaries before munging
            (default: True).
    """
    sample_column: str = 'geo_accession'
    subject_column: str = 'patientid:ch1'
    timepoint_column: str = 'time:ch1'
    covariate_column: str = 'age:ch1'
    covariate_name: str = 'age'
    pre_label: str = 'pre-training'
    post_label: str = 'post-training'
    duplicate_policy: str = 'error'
    column_separator: str = '_'
    diff_suffix: str = 'diff'
    min_observations: int = 2
    target_features: List[str] = field(default_factory=list)
    output_formats: List[str] = field(default_factory=lambda: ["csv", "json"])
    export_diff_table: bool = True
    summarize_raw: bool = True

    def __post_init__(self):
        if self.duplicate_policy not in DUPLICATE_POLICIES:
            raise ValueError(f"duplicate_policy must be one of {DUPLICATE_POLICIES}, "
                             f"got '{self.duplicate_policy}'")
        if self.pre_label == self.post_label:
            raise ValueError("pre_label and post_label must differ.")


def load_config(config_path: str) -> PairedDiffConfig:
    """
    Load configuration from a JSON or YAML file.

    Keys that match a PairedDiffConfig field override the default; unknown keys
    are logged and ignored.

    Raises:
        ValueError: If the file extension is not .json, .yml or .yaml.
    """
    path = Path(config_path)
    suffix = path.suffix.lower()
    with path.open('r') as f:
        if suffix == '.json':
            user_cfg = json.load(f)
        elif suffix in {'.yml', '.yaml'}:
            user_cfg = yaml.safe_load(f) or {}
        else:
            raise ValueError(f"Unsupported config format: {path.suffix}")

    known = {}
    for key, value in user_cfg.items():
        if key in PairedDiffConfig.__dataclass_fields__:
            known[key] = value
        else:
            logger.warning(f"Unknown configuration parameter: {key}")

    return PairedDiffConfig(**known)
