"""Reshape posterior predictive draws into a long per-condition table."""

import numpy as np
import pandas as pd

from .model import posterior_predict

# Condition levels the contrast is computed between
CONDITIONS = [0, 1]


def condition_grid():
    """One row per condition level, without a participant column."""
    return pd.DataFrame({"condition": CONDITIONS})


def reshape_predictions(predictions, newdata):
    """Unpivot a (draws x conditions) prediction matrix into long form.

    Args:
        predictions: Array of shape (S, C); row s holds posterior draw s
        newdata: DataFrame whose C rows label the prediction columns

    Returns:
        DataFrame with columns condition, replication (1..S) and measurement.
        Both conditions predicted from the same draw share a replication id.
    """
    predictions = np.asarray(predictions)
    if predictions.ndim != 2:
        raise ValueError(f"Predictions must be a 2-D (draws x conditions) array, got shape {predictions.shape}")
    if predictions.shape[1] != len(newdata):
        raise ValueError(
            f"Predictions have {predictions.shape[1]} columns but newdata has {len(newdata)} rows"
        )

    n_draws = predictions.shape[0]
    replications = np.arange(1, n_draws + 1)

    # Transpose to (conditions x draws), label rows, then melt
    wide = pd.DataFrame(predictions.T, columns=replications)
    wide.insert(0, "condition", newdata["condition"].to_numpy())

    long = wide.melt(id_vars="condition", var_name="replication", value_name="measurement")
    long["replication"] = long["replication"].astype("int64")

    return long[["condition", "replication", "measurement"]]


def predict_conditions(idata, rng=None, allow_new_levels=False):
    """Population-level posterior predictive draws for both conditions, in long form."""
    newdata = condition_grid()
    predictions = posterior_predict(idata, newdata, rng=rng, allow_new_levels=allow_new_levels)
    return reshape_predictions(predictions, newdata)
