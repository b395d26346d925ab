import numpy as np
import pandas as pd
import pytest

from paired_diff.column_map import FeatureColumnMap
from paired_diff.config import PairedDiffConfig

PRE = 'pre-training'
POST = 'post-training'


@pytest.fixture
def config():
    return PairedDiffConfig()


@pytest.fixture
def raw_metadata():
    """GEO-style sample annotations: subjects A, B, C each sampled pre and post."""
    return pd.DataFrame({
        'title': [f'muscle biopsy {i}' for i in range(1, 7)],
        'geo_accession': ['GSM1', 'GSM2', 'GSM3', 'GSM4', 'GSM5', 'GSM6'],
        'patientid:ch1': ['A', 'A', 'B', 'B', 'C', 'C'],
        'time:ch1': [PRE, POST, PRE, POST, PRE, POST],
        'age:ch1': ['21', '21', '30', '30', '45', '45'],
    })


@pytest.fixture
def matrix():
    """
    Two probes x six samples.

    211980_at: A 10 -> 12, B 8 -> 8, C NA -> 9
    204114_at: A 5 -> 6.5, B 4 -> 4.5, C 7 -> 7.5
    """
    return pd.DataFrame(
        {
            'GSM1': [10.0, 5.0],
            'GSM2': [12.0, 6.5],
            'GSM3': [8.0, 4.0],
            'GSM4': [8.0, 4.5],
            'GSM5': [np.nan, 7.0],
            'GSM6': [9.0, 7.5],
        },
        index=pd.Index(['211980_at', '204114_at'], name='ID_REF'),
    )


@pytest.fixture
def column_map(matrix, config):
    return FeatureColumnMap.from_matrix(matrix, config)


@pytest.fixture
def clean_metadata(raw_metadata, config):
    from paired_diff.metadata_cleaner import MetadataCleaner
    return MetadataCleaner(config).clean(raw_metadata)


@pytest.fixture
def covariate_diff_table():
    """Eight subjects whose change is 2 * age plus small deterministic noise."""
    ages = np.array([20.0, 25.0, 30.0, 35.0, 40.0, 45.0, 50.0, 55.0])
    noise = np.array([0.1, -0.1, 0.05, -0.05, 0.02, -0.02, 0.08, -0.08])
    return pd.DataFrame({
        'subject_id': [f'S{i}' for i in range(len(ages))],
        'age': ages,
        'F_diff': 2 * ages + noise,
        'G_diff': np.linspace(-1.0, 1.0, len(ages)),
    })
