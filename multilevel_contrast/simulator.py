# Simulate a multilevel two-condition experiment with correlated random effects

import numpy as np
import pandas as pd

# Default simulation parameters
PARAMETERS = {
    "n_participants": 20,
    "n_trials": 10,
    "intercept_mean": 0.0,
    "effect_mean": 0.5,
    "intercept_sd": 0.5,
    "slope_sd": 1.0,
    "correlation": -0.5,
    "noise_sd": 1.0,
    "simulation_seed": 1,
}

# Condition codes repeated over the flattened participant x trial table
CONDITION_PATTERN = np.array([0, 1])


def make_covariance(intercept_sd, slope_sd, correlation):
    """Build the 2x2 covariance matrix of the participant intercept and slope."""
    if intercept_sd < 0 or slope_sd < 0:
        raise ValueError(f"Standard deviations must be non-negative, got {intercept_sd} and {slope_sd}")
    if not -1.0 <= correlation <= 1.0:
        raise ValueError(f"Correlation must lie in [-1, 1], got {correlation}")

    covariance = correlation * intercept_sd * slope_sd
    return np.array([
        [intercept_sd ** 2, covariance],
        [covariance, slope_sd ** 2],
    ])


def print_parameters(parameters):
    print(f"Parameters set for simulation:")
    print(f"  + Participants (P): {parameters['n_participants']}")
    print(f"  + Trials per participant (T): {parameters['n_trials']}")
    print(f"  + Intercept mean: {parameters['intercept_mean']}")
    print(f"  + Effect size (slope mean): {parameters['effect_mean']}")
    print(f"  + Intercept SD: {parameters['intercept_sd']}")
    print(f"  + Slope SD: {parameters['slope_sd']}")
    print(f"  + Intercept/slope correlation: {parameters['correlation']}")
    print(f"  + Measurement noise SD: {parameters['noise_sd']}")
    print(f"  + Seed: {parameters['simulation_seed']}")


def print_summary(trials):
    by_condition = trials.groupby("condition")["measurement"].agg(["count", "mean", "std"])

    print(f"Summary of simulated data:")
    print(f"  + Rows: {len(trials)} ({trials['participant'].nunique()} participants)")
    for condition, row in by_condition.iterrows():
        print(f"  + Condition {condition}: n={int(row['count'])}, "
              f"mean={row['mean']:.4f}, sd={row['std']:.4f}")


def simulate_participants(parameters, rng):
    """Draw per-participant intercepts and slopes from a bivariate normal.

    Args:
        parameters: Simulation parameters (see PARAMETERS)
        rng: numpy Generator used for the draws

    Returns:
        DataFrame with columns participant (1..P), intercept and slope
    """
    n_participants = parameters["n_participants"]
    if n_participants < 1:
        raise ValueError(f"n_participants must be at least 1, got {n_participants}")

    means = np.array([parameters["intercept_mean"], parameters["effect_mean"]])
    covariance = make_covariance(parameters["intercept_sd"],
                                 parameters["slope_sd"],
                                 parameters["correlation"])

    effects = rng.multivariate_normal(means, covariance, size=n_participants)

    return pd.DataFrame({
        "participant": np.arange(1, n_participants + 1),
        "intercept": effects[:, 0],
        "slope": effects[:, 1],
    })


def assign_conditions(n_rows):
    """Condition flag for each row of the participant-major trial table.

    The 0/1 pattern runs across the whole table rather than restarting for
    each participant, so with an odd number of trials consecutive
    participants start on different conditions. An odd total leaves
    condition 0 with one extra row.
    """
    return np.resize(CONDITION_PATTERN, n_rows)


def simulate_experiment(parameters, rng=None):
    """Simulate participants and their trial-level measurements.

    Args:
        parameters: Simulation parameters (see PARAMETERS)
        rng: Optional numpy Generator. When omitted a new one is seeded from
            parameters['simulation_seed'].

    Returns:
        (participants, trials) DataFrames. trials has one row per
        participant x trial with columns participant, trial, condition,
        mean and measurement.
    """
    if rng is None:
        rng = np.random.default_rng(parameters.get("simulation_seed", None))

    n_trials = parameters["n_trials"]
    if n_trials < 1:
        raise ValueError(f"n_trials must be at least 1, got {n_trials}")

    participants = simulate_participants(parameters, rng)
    n_participants = len(participants)
    n_rows = n_participants * n_trials

    # Participant-major layout: all trials of participant 1, then participant 2, ...
    trials = pd.DataFrame({
        "participant": np.repeat(participants["participant"].to_numpy(), n_trials),
        "trial": np.tile(np.arange(1, n_trials + 1), n_participants),
        "condition": assign_conditions(n_rows),
    })

    intercepts = np.repeat(participants["intercept"].to_numpy(), n_trials)
    slopes = np.repeat(participants["slope"].to_numpy(), n_trials)
    trials["mean"] = intercepts + slopes * trials["condition"]
    trials["measurement"] = trials["mean"] + rng.normal(0.0, parameters["noise_sd"], size=n_rows)

    return participants, trials


def summarize_random_effects(participants):
    """Empirical moments of the drawn participant effects."""
    return {
        "intercept_mean": float(participants["intercept"].mean()),
        "effect_mean": float(participants["slope"].mean()),
        "intercept_sd": float(participants["intercept"].std(ddof=1)),
        "slope_sd": float(participants["slope"].std(ddof=1)),
        "correlation": float(participants["intercept"].corr(participants["slope"])),
    }
