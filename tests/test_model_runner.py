import numpy as np
import pandas as pd
import pytest

from paired_diff.column_map import FeatureColumnMap
from paired_diff.config import PairedDiffConfig
from paired_diff.model_runner import COVARIATE_COLUMNS, INTERCEPT_COLUMNS, ModelRunner


@pytest.fixture
def runner(config):
    return ModelRunner(config, FeatureColumnMap(['F', 'G']))


def test_intercept_only_estimates_mean_change(runner):
    diff_df = pd.DataFrame({'subject_id': ['A', 'B'], 'age': [21.0, 30.0], 'F_diff': [2.0, 0.0]})

    results, skipped = runner.run_intercept_models(diff_df, ['F'])

    row = results.iloc[0]
    assert list(results.columns) == INTERCEPT_COLUMNS
    assert row['feature_id'] == 'F'
    assert row['model'] == 'Intercept_Only'
    assert row['n_obs'] == 2
    assert row['estimate_mean_diff'] == pytest.approx(1.0)
    assert row['se'] == pytest.approx(1.0)
    assert row['t_value'] == pytest.approx(1.0)
    assert row['p_value'] == pytest.approx(0.5)
    assert skipped == []


def test_covariate_model_recovers_slope(runner, covariate_diff_table):
    results, skipped = runner.run_covariate_models(covariate_diff_table, ['F'])

    row = results.iloc[0]
    assert list(results.columns) == COVARIATE_COLUMNS
    assert row['model'] == 'Age_Effect'
    assert row['slope'] == pytest.approx(2.0, abs=0.01)
    assert row['intercept'] == pytest.approx(0.0, abs=0.5)
    assert row['slope_p_value'] < 0.05
    assert row['slope_se'] > 0
    assert skipped == []


def test_unknown_feature_is_skipped_and_others_still_fit(runner, covariate_diff_table):
    results, skipped = runner.run_intercept_models(covariate_diff_table, ['F', 'NOT_A_PROBE', 'G'])

    assert results['feature_id'].tolist() == ['F', 'G']
    assert skipped == [{'feature_id': 'NOT_A_PROBE', 'model': 'Intercept_Only',
                        'reason': 'feature id not present in the measurement matrix'}]


def test_feature_without_diff_column_is_skipped(config, covariate_diff_table):
    runner = ModelRunner(config, FeatureColumnMap(['F', 'G', 'H']))

    results, skipped = runner.run_covariate_models(covariate_diff_table, ['H', 'F'])

    assert results['feature_id'].tolist() == ['F']
    assert skipped[0]['feature_id'] == 'H'
    assert "not found in diff table" in skipped[0]['reason']


def test_insufficient_observations_is_skipped(runner):
    diff_df = pd.DataFrame({'subject_id': ['A', 'B', 'C'], 'age': [20.0, 30.0, 40.0],
                            'F_diff': [1.0, np.nan, np.nan], 'G_diff': [1.0, 2.0, 4.0]})

    intercept, intercept_skipped = runner.run_intercept_models(diff_df, ['F', 'G'])
    covariate, covariate_skipped = runner.run_covariate_models(diff_df, ['F', 'G'])

    assert intercept['feature_id'].tolist() == ['G']
    assert covariate['feature_id'].tolist() == ['G']
    assert intercept_skipped[0]['reason'] == 'insufficient observations (1 < 2)'
    assert covariate_skipped[0]['reason'] == 'insufficient observations (1 < 3)'


def test_constant_covariate_is_skipped(runner):
    diff_df = pd.DataFrame({'subject_id': ['A', 'B', 'C'], 'age': [30.0, 30.0, 30.0],
                            'F_diff': [1.0, 2.0, 4.0]})

    results, skipped = runner.run_covariate_models(diff_df, ['F'])

    assert results.empty
    assert list(results.columns) == COVARIATE_COLUMNS
    assert skipped[0]['reason'] == 'age does not vary across subjects'


def test_min_observations_from_config(covariate_diff_table):
    config = PairedDiffConfig(min_observations=10)
    runner = ModelRunner(config, FeatureColumnMap(['F', 'G']))

    results, skipped = runner.run_intercept_models(covariate_diff_table, ['F'])

    assert results.empty
    assert skipped[0]['reason'] == 'insufficient observations (8 < 10)'


def test_removing_a_feature_leaves_other_estimates_unchanged(runner, covariate_diff_table):
    both, _ = runner.run_covariate_models(covariate_diff_table, ['F', 'G'])
    only_g, _ = runner.run_covariate_models(covariate_diff_table, ['G'])

    pd.testing.assert_frame_equal(both.iloc[[1]].reset_index(drop=True), only_g)


def test_results_follow_requested_order(runner, covariate_diff_table):
    results, _ = runner.run_intercept_models(covariate_diff_table, ['G', 'F'])

    assert results['feature_id'].tolist() == ['G', 'F']


def test_numeric_leading_probe_ids_resolve_verbatim(config):
    runner = ModelRunner(config, FeatureColumnMap(['211980_at']))
    diff_df = pd.DataFrame({'subject_id': ['A', 'B', 'C'], 'age': [20.0, 30.0, 40.0],
                            '211980_at_diff': [0.5, 1.5, 1.0]})

    results, skipped = runner.run_intercept_models(diff_df, ['211980_at'])

    assert results['estimate_mean_diff'].item() == pytest.approx(1.0)
    assert skipped == []


def test_covariate_model_label_uses_covariate_name(covariate_diff_table):
    config = PairedDiffConfig(covariate_name='bmi')
    runner = ModelRunner(config, FeatureColumnMap(['F']))
    table = covariate_diff_table.rename(columns={'age': 'bmi'})

    results, _ = runner.run_covariate_models(table, ['F'])

    assert results['model'].tolist() == ['Bmi_Effect']
