"""Contrast between conditions and its interval summary."""

import numpy as np
import arviz as az

# Credibility masses reported for the contrast
HDI_PROBS = (0.95, 0.99)


def compute_contrast(long_df):
    """Per-replication difference between condition 1 and condition 0.

    Rows are paired by an explicit merge on the replication id, so the order
    of the input table does not matter.

    Args:
        long_df: DataFrame with condition, replication and measurement columns

    Returns:
        DataFrame with columns replication and contrast, sorted by replication
    """
    missing = [col for col in ("condition", "replication", "measurement") if col not in long_df.columns]
    if missing:
        raise ValueError(f"Posterior table is missing required columns: {missing}")

    counts = long_df.groupby(["replication", "condition"]).size().unstack("condition", fill_value=0)
    for condition in (0, 1):
        if condition not in counts.columns:
            raise ValueError(f"Posterior table has no rows for condition {condition}")
    bad = counts[(counts[0] != 1) | (counts[1] != 1)]
    if not bad.empty:
        raise ValueError(
            f"Each replication needs exactly one row per condition; "
            f"{len(bad)} replications do not (e.g. replication {bad.index[0]})"
        )

    control = long_df.loc[long_df["condition"] == 0, ["replication", "measurement"]]
    treatment = long_df.loc[long_df["condition"] == 1, ["replication", "measurement"]]

    paired = control.merge(treatment, on="replication", suffixes=("_0", "_1"), validate="one_to_one")
    paired["contrast"] = paired["measurement_1"] - paired["measurement_0"]

    return paired[["replication", "contrast"]].sort_values("replication").reset_index(drop=True)


def hdi(samples, hdi_prob):
    """Return (low, high) of the highest-density interval for a 1D array."""
    samples = np.asarray(samples, dtype=float).ravel()
    if not 0 < hdi_prob < 1:
        raise ValueError(f"hdi_prob must lie in (0, 1), got {hdi_prob}")
    if samples.size == 0:
        raise ValueError("Cannot compute an HDI of an empty sample")
    if not np.all(np.isfinite(samples)):
        raise ValueError("Samples contain non-finite values")
    if np.ptp(samples) == 0:
        raise ValueError("Cannot compute an HDI of a zero-variance sample")

    interval = az.hdi(samples, hdi_prob=hdi_prob)
    return float(interval[0]), float(interval[1])


def summarize_contrast(samples):
    """Interval and directional summary of the contrast samples."""
    samples = np.asarray(samples, dtype=float).ravel()

    summary = {}
    for prob in HDI_PROBS:
        low, high = hdi(samples, prob)
        pct = int(round(prob * 100))
        summary[f"lower_{pct}"] = low
        summary[f"upper_{pct}"] = high

    summary["mean"] = float(np.mean(samples))
    summary["median"] = float(np.median(samples))
    summary["above_zero"] = float(np.mean(samples > 0))
    summary["below_zero"] = float(np.mean(samples < 0))

    return summary


def _percent(p):
    # Snap float noise first: 100 * 0.565 is 56.49999999999999
    return int(np.floor(np.round(100 * p, 9) + 0.5))


def direction_label(summary):
    """Label the larger directional probability, e.g. '92%>0'.

    Percentages are rounded to the nearest integer, halves up.
    """
    above, below = summary["above_zero"], summary["below_zero"]
    if above >= below:
        return f"{_percent(above)}%>0"
    return f"{_percent(below)}%<0"


def print_summary(summary):
    print("Contrast (condition 1 - condition 0):")
    print(f"  + Mean: {summary['mean']:.3f}")
    print(f"  + Median: {summary['median']:.3f}")
    print(f"  + 95% HDI: [{summary['lower_95']:.3f}, {summary['upper_95']:.3f}]")
    print(f"  + 99% HDI: [{summary['lower_99']:.3f}, {summary['upper_99']:.3f}]")
    print(f"  + P(contrast > 0): {summary['above_zero']:.3f}")
    print(f"  + P(contrast < 0): {summary['below_zero']:.3f}")
