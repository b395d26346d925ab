import numpy as np
import pandas as pd
import pytest

from paired_diff.column_map import FeatureColumnMap
from paired_diff.config import PairedDiffConfig
from paired_diff.diff_computer import DiffComputer
from paired_diff.exceptions import PivotError
from paired_diff.reshaper import WideReshaper

PRE = 'pre-training'
POST = 'post-training'


@pytest.fixture
def wide(clean_metadata, matrix, column_map, config):
    wide, _ = WideReshaper(config).reshape(clean_metadata, matrix, column_map)
    return wide


def test_scenario_drops_subject_missing_pre(wide, column_map, config):
    diff_df, dropped = DiffComputer(config).compute(wide, column_map)

    assert diff_df['subject_id'].tolist() == ['A', 'B']
    assert diff_df['211980_at_diff'].tolist() == [2.0, 0.0]
    assert dropped == ['C']


def test_diff_equals_post_minus_pre(wide, column_map, config):
    diff_df, _ = DiffComputer(config).compute(wide, column_map)

    raw = wide.set_index('subject_id')
    for _, row in diff_df.iterrows():
        for feature in column_map.features:
            expected = raw.loc[row['subject_id'], f'{feature}_{POST}'] - raw.loc[row['subject_id'], f'{feature}_{PRE}']
            assert row[f'{feature}_diff'] == pytest.approx(expected)


def test_columns_are_metadata_then_diffs_in_matrix_order(wide, column_map, config):
    diff_df, _ = DiffComputer(config).compute(wide, column_map)

    assert list(diff_df.columns) == ['subject_id', 'age', '211980_at_diff', '204114_at_diff']
    assert diff_df['age'].tolist() == [21.0, 30.0]


def test_subject_dropped_even_when_other_features_complete(wide, column_map, config):
    # C has a complete 204114_at pair but no 211980_at baseline
    diff_df, _ = DiffComputer(config).compute(wide, column_map)

    assert 'C' not in diff_df['subject_id'].tolist()


def test_row_count_matches_fully_paired_subjects(wide, column_map, config):
    diff_df, _ = DiffComputer(config).compute(wide, column_map)

    pre_cols = [f'{f}_{PRE}' for f in column_map.features]
    post_cols = [f'{f}_{POST}' for f in column_map.features]
    fully_paired = wide[pre_cols + post_cols].notna().all(axis=1).sum()
    assert len(diff_df) == fully_paired


def test_features_with_one_timepoint_are_excluded(config):
    column_map = FeatureColumnMap(['F', 'G'])
    wide = pd.DataFrame({
        'subject_id': ['A', 'B'],
        'age': [20.0, 30.0],
        f'F_{PRE}': [1.0, 2.0],
        f'F_{POST}': [3.0, 5.0],
        f'G_{PRE}': [1.0, 1.0],
        f'G_{POST}': [np.nan, np.nan],
    })

    diff_df, dropped = DiffComputer(config).compute(wide, column_map)

    assert list(diff_df.columns) == ['subject_id', 'age', 'F_diff']
    assert diff_df['F_diff'].tolist() == [2.0, 3.0]
    assert dropped == []


def test_missing_post_label_raises_pivot_error(wide, column_map):
    config = PairedDiffConfig(post_label='follow-up')

    with pytest.raises(PivotError):
        DiffComputer(config).compute(wide, column_map)


def test_zero_usable_rows_raises_pivot_error(config):
    column_map = FeatureColumnMap(['F', 'G'])
    wide = pd.DataFrame({
        'subject_id': ['A', 'B'],
        'age': [20.0, 30.0],
        f'F_{PRE}': [1.0, np.nan],
        f'F_{POST}': [3.0, 5.0],
        f'G_{PRE}': [1.0, 1.0],
        f'G_{POST}': [np.nan, 2.0],
    })

    with pytest.raises(PivotError, match="Zero usable rows"):
        DiffComputer(config).compute(wide, column_map)


def test_alignment_check_rejects_reordered_subjects():
    pre = pd.DataFrame({f'F_{PRE}': [1.0, 2.0]}, index=[0, 1])
    post = pd.DataFrame({f'F_{POST}': [3.0, 4.0]}, index=[1, 0])

    with pytest.raises(AssertionError, match="subject order"):
        DiffComputer._check_alignment(pre, post, {f'F_{PRE}': 'F'}, {f'F_{POST}': 'F'}, ['F'])


def test_alignment_check_rejects_reordered_features():
    pre = pd.DataFrame({f'F_{PRE}': [1.0], f'G_{PRE}': [1.0]})
    post = pd.DataFrame({f'G_{POST}': [1.0], f'F_{POST}': [1.0]})
    pre_columns = {f'F_{PRE}': 'F', f'G_{PRE}': 'G'}
    post_columns = {f'F_{POST}': 'F', f'G_{POST}': 'G'}

    with pytest.raises(AssertionError, match="feature order"):
        DiffComputer._check_alignment(pre, post, pre_columns, post_columns, ['F', 'G'])


def test_compute_does_not_mutate_wide_table(wide, column_map, config):
    before = wide.copy()
    DiffComputer(config).compute(wide, column_map)
    pd.testing.assert_frame_equal(wide, before)


def test_subject_with_missing_covariate_is_dropped(config):
    column_map = FeatureColumnMap(['F'])
    wide = pd.DataFrame({
        'subject_id': ['A', 'B', 'C'],
        'age': [20.0, np.nan, 40.0],
        f'F_{PRE}': [1.0, 2.0, 3.0],
        f'F_{POST}': [2.0, 4.0, 6.0],
    })

    diff_df, dropped = DiffComputer(config).compute(wide, column_map)

    assert diff_df['subject_id'].tolist() == ['A', 'C']
    assert not diff_df['age'].isna().any()
    assert dropped == ['B']
