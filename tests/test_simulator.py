"""Tests for the synthetic data generator."""

import numpy as np
import pandas as pd
import pytest

from multilevel_contrast.simulator import (
    PARAMETERS,
    assign_conditions,
    make_covariance,
    simulate_experiment,
    simulate_participants,
    summarize_random_effects,
)


def test_default_experiment_has_200_balanced_rows():
    participants, trials = simulate_experiment(PARAMETERS)

    assert len(participants) == 20
    assert len(trials) == 200
    assert set(trials["condition"].unique()) == {0, 1}
    assert (trials["condition"] == 0).sum() == 100
    assert (trials["condition"] == 1).sum() == 100
    assert list(trials.columns) == ["participant", "trial", "condition", "mean", "measurement"]


def test_rows_are_participant_major():
    _, trials = simulate_experiment(PARAMETERS)

    assert trials["participant"].tolist()[:10] == [1] * 10
    assert trials["trial"].tolist()[:12] == list(range(1, 11)) + [1, 2]
    assert trials.groupby("participant").size().eq(10).all()


def test_same_seed_gives_identical_tables():
    participants_a, trials_a = simulate_experiment(PARAMETERS)
    participants_b, trials_b = simulate_experiment(PARAMETERS)

    pd.testing.assert_frame_equal(participants_a, participants_b)
    pd.testing.assert_frame_equal(trials_a, trials_b)


def test_explicit_generator_matches_seeded_default():
    _, from_seed = simulate_experiment(PARAMETERS)
    _, from_rng = simulate_experiment(PARAMETERS, np.random.default_rng(PARAMETERS["simulation_seed"]))

    pd.testing.assert_frame_equal(from_seed, from_rng)


def test_different_seed_changes_measurements():
    other = dict(PARAMETERS, simulation_seed=2)
    _, trials_a = simulate_experiment(PARAMETERS)
    _, trials_b = simulate_experiment(other)

    assert not np.allclose(trials_a["measurement"], trials_b["measurement"])


def test_global_random_state_is_untouched():
    np.random.seed(123)
    expected = np.random.random()

    np.random.seed(123)
    simulate_experiment(PARAMETERS)
    assert np.random.random() == expected


def test_mean_is_intercept_plus_slope_times_condition():
    participants, trials = simulate_experiment(PARAMETERS)
    merged = trials.merge(participants, on="participant")

    np.testing.assert_allclose(merged["mean"], merged["intercept"] + merged["slope"] * merged["condition"])


def test_condition_pattern_runs_across_the_flattened_table():
    np.testing.assert_array_equal(assign_conditions(5), [0, 1, 0, 1, 0])

    params = dict(PARAMETERS, n_participants=3, n_trials=3)
    _, trials = simulate_experiment(params)

    # Odd trial count: participant 2 starts on condition 1
    assert trials["condition"].tolist() == [0, 1, 0, 1, 0, 1, 0, 1, 0]
    assert trials.loc[trials["participant"] == 2, "condition"].tolist() == [1, 0, 1]
    assert (trials["condition"] == 0).sum() == 5


def test_random_effects_converge_to_configured_values():
    params = dict(PARAMETERS, n_participants=20000)
    participants = simulate_participants(params, np.random.default_rng(7))
    moments = summarize_random_effects(participants)

    assert moments["intercept_mean"] == pytest.approx(params["intercept_mean"], abs=0.03)
    assert moments["effect_mean"] == pytest.approx(params["effect_mean"], abs=0.05)
    assert moments["intercept_sd"] == pytest.approx(params["intercept_sd"], abs=0.03)
    assert moments["slope_sd"] == pytest.approx(params["slope_sd"], abs=0.05)
    assert moments["correlation"] == pytest.approx(params["correlation"], abs=0.05)


def test_make_covariance():
    cov = make_covariance(0.5, 1.0, -0.5)

    np.testing.assert_allclose(cov, [[0.25, -0.25], [-0.25, 1.0]])


@pytest.mark.parametrize("args", [(-0.1, 1.0, 0.0), (0.5, 1.0, 1.5)])
def test_make_covariance_rejects_invalid_inputs(args):
    with pytest.raises(ValueError):
        make_covariance(*args)


@pytest.mark.parametrize("key", ["n_participants", "n_trials"])
def test_rejects_empty_designs(key):
    with pytest.raises(ValueError, match=key):
        simulate_experiment(dict(PARAMETERS, **{key: 0}))
