# paired_diff/__init__.py
"""
paired_diff: per-feature change analysis for paired pre/post measurements.

Turns a features x samples measurement matrix and its sample metadata into a
subject-level table of post - pre differences, then fits an intercept-only
model and a covariate model for each requested feature.
"""

__version__ = "0.1.0"

from .column_map import FeatureColumnMap
from .config import PairedDiffConfig, load_config
from .diff_computer import DiffComputer
from .exceptions import PairedDiffError, PivotError, SchemaError
from .metadata_cleaner import MetadataCleaner
from .model_runner import ModelRunner
from .pipeline import PairedDiffPipeline, run_paired_diff_analysis
from .reshaper import WideReshaper
