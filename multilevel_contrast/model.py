"""
Hierarchical Bayesian regression of measurement on condition.

The model mirrors ``measurement ~ condition + (condition | participant)``:
a population-level intercept and condition effect, plus correlated
participant-level deviations in both.
"""

import json
from pathlib import Path

import numpy as np
import pandas as pd
import pymc as pm
import arviz as az

# Default sampler settings: 4 chains of 1000 warmup + 1000 kept draws
SAMPLING = {
    "draws": 1000,
    "tune": 1000,
    "chains": 4,
    "cores": 4,
    "target_accept": 0.9,
    "random_seed": 1,
}

# Order of the varying effects within each participant
EFFECTS = ("Intercept", "condition")

# Parameters reported in the fit summary
POPULATION_VARIABLES = ["Intercept", "b_condition", "participant_sd", "participant_corr", "sigma"]

# Variables a trace must carry for posterior prediction
REQUIRED_VARIABLES = ("Intercept", "b_condition", "sigma", "participant_chol")

# R-hat above this value is reported as a convergence warning
RHAT_THRESHOLD = 1.01


def build_hierarchical_model(data):
    """Build the varying-intercept, varying-slope regression model

    Parameters:
    -----------
    data : pd.DataFrame
        Trial-level data with participant, condition and measurement columns

    Returns:
    --------
    pm.Model
        PyMC model for the multilevel regression
    """
    missing = [col for col in ("participant", "condition", "measurement") if col not in data.columns]
    if missing:
        raise ValueError(f"Data is missing required columns: {missing}")

    participant_idx, participants = pd.factorize(data["participant"], sort=True)
    condition = data["condition"].to_numpy(dtype=float)
    y = data["measurement"].to_numpy(dtype=float)

    coords = {"participant": participants.tolist(), "effect": list(EFFECTS)}

    with pm.Model(coords=coords) as model_hierarchical:
        # --- Population-level priors ---
        intercept = pm.StudentT("Intercept", nu=3, mu=float(np.median(y)), sigma=2.5)
        b_condition = pm.Normal("b_condition", mu=0.0, sigma=2.5)

        # --- Participant-level covariance ---
        chol, corr, stds = pm.LKJCholeskyCov(
            "chol_cov",
            n=len(EFFECTS),
            eta=1.0,
            sd_dist=pm.HalfStudentT.dist(nu=3, sigma=2.5, shape=len(EFFECTS)),
            compute_corr=True,
            store_in_trace=False,
        )
        pm.Deterministic("participant_sd", stds, dims="effect")
        pm.Deterministic("participant_corr", corr[0, 1])
        pm.Deterministic("participant_chol", chol)

        # Non-centered participant deviations: u = L z
        z = pm.Normal("z", mu=0.0, sigma=1.0, dims=("participant", "effect"))
        u = pm.Deterministic("u", pm.math.dot(z, chol.T), dims=("participant", "effect"))

        sigma = pm.HalfStudentT("sigma", nu=3, sigma=2.5)

        # --- Likelihood ---
        mu = (intercept + u[participant_idx, 0]
              + (b_condition + u[participant_idx, 1]) * condition)
        pm.Normal("measurement", mu=mu, sigma=sigma, observed=y)

    return model_hierarchical


def sample_posterior(model, draws, tune, chains, cores, target_accept, random_seed=None):
    """Sample from the posterior distribution

    Parameters:
    -----------
    model : pm.Model
        The PyMC model to sample from
    draws : int
        Number of samples per chain after tuning
    tune : int
        Number of warmup steps discarded per chain
    chains : int
        Number of independent chains to run
    cores : int
        Number of chains run in parallel
    target_accept : float
        Parameter for NUTS algorithm, higher values can help with difficult posteriors
    random_seed : int, optional
        Seed passed to the sampler

    Returns:
    --------
    az.InferenceData
        Posterior samples
    """
    with model:
        idata = pm.sample(draws=draws, tune=tune, chains=chains, cores=cores,
                          target_accept=target_accept, random_seed=random_seed,
                          return_inferencedata=True)
    return idata


def _normalize_parameters(parameters):
    return json.loads(json.dumps(parameters, sort_keys=True, default=float))


def check_trace(idata, trace_path=None):
    """Raise if a trace cannot be used for prediction."""
    if not hasattr(idata, "posterior"):
        raise ValueError(f"Trace {trace_path} has no posterior group")
    missing = [name for name in REQUIRED_VARIABLES if name not in idata.posterior]
    if missing:
        raise ValueError(f"Trace {trace_path} is missing posterior variables: {missing}")


def fit_or_load(data, trace_path, sampling=None, parameters=None, refit=False):
    """Load a cached posterior trace, or fit the model and cache it.

    The cache is keyed on the file name only. A trace fitted with different
    simulation parameters is reused with a warning, so delete the file (or
    pass refit=True) after changing the simulation.

    Parameters:
    -----------
    data : pd.DataFrame
        Trial-level data passed to build_hierarchical_model
    trace_path : str or Path
        Location of the netCDF trace file
    sampling : dict, optional
        Sampler settings, defaults to SAMPLING
    parameters : dict, optional
        Simulation parameters stored alongside a new trace and compared
        against those of a cached one
    refit : bool
        Fit even when the trace file exists

    Returns:
    --------
    az.InferenceData
        Posterior samples
    """
    trace_path = Path(trace_path)
    sampling = SAMPLING if sampling is None else sampling

    if trace_path.exists() and not refit:
        print(f"Found existing posterior trace at: {trace_path.resolve()}")
        print("Loading existing posterior trace...")
        # Eager load releases the file so a later refit can overwrite it
        with az.rc_context(rc={"data.load": "eager"}):
            idata = az.from_netcdf(trace_path)
        check_trace(idata, trace_path)

        stored = idata.posterior.attrs.get("simulation_parameters")
        if parameters is not None and stored is not None:
            if json.loads(stored) != _normalize_parameters(parameters):
                print("WARNING: cached trace was fitted with different simulation parameters; "
                      f"delete {trace_path} or refit to use the current data")
        return idata

    print("Building hierarchical model...")
    model = build_hierarchical_model(data)

    print("Sampling from model (this may take a few minutes)...")
    idata = sample_posterior(model, **sampling)

    if parameters is not None:
        idata.posterior.attrs["simulation_parameters"] = json.dumps(
            _normalize_parameters(parameters), sort_keys=True)

    trace_path.parent.mkdir(parents=True, exist_ok=True)
    print(f"Saving posterior trace to: {trace_path}")
    az.to_netcdf(idata, trace_path)

    return idata


def summarize_fit(idata, hdi_prob=0.95):
    """Summary statistics and convergence diagnostics of the population-level parameters."""
    summary = az.summary(idata, var_names=POPULATION_VARIABLES, hdi_prob=hdi_prob)

    if "r_hat" in summary.columns:
        unconverged = summary[summary["r_hat"] > RHAT_THRESHOLD]
        for name, row in unconverged.iterrows():
            print(f"WARNING: {name} has r_hat={row['r_hat']:.3f} (> {RHAT_THRESHOLD}), "
                  "chains may not have converged")

    return summary


def posterior_predict(idata, newdata, rng=None, allow_new_levels=False):
    """Draw posterior predictive measurements at new condition values.

    Predictions are made at the population level: participant deviations are
    left out, or with allow_new_levels=True replaced by those of a new,
    unseen participant drawn from each draw's fitted covariance. Observation
    noise with the draw's sigma is always added.

    Parameters:
    -----------
    idata : az.InferenceData
        Posterior samples from build_hierarchical_model
    newdata : pd.DataFrame
        Rows to predict, with a condition column
    rng : np.random.Generator, optional
        Generator for the predictive noise
    allow_new_levels : bool
        Add effects of a newly drawn participant

    Returns:
    --------
    np.ndarray
        Predictions of shape (draws, len(newdata)); row s uses posterior draw s
    """
    if "condition" not in newdata.columns:
        raise ValueError("newdata must contain a 'condition' column")
    check_trace(idata)
    if rng is None:
        rng = np.random.default_rng()

    post = idata.posterior.stack(sample=("chain", "draw"))
    intercept = post["Intercept"].values  # (S,)
    b_condition = post["b_condition"].values  # (S,)
    sigma = post["sigma"].values  # (S,)
    condition = newdata["condition"].to_numpy(dtype=float)

    mu = intercept[:, None] + b_condition[:, None] * condition[None, :]  # (S, n_rows)

    if allow_new_levels:
        chol = post["participant_chol"].transpose("sample", ...).values  # (S, 2, 2)
        z = rng.standard_normal((len(intercept), len(EFFECTS)))
        u = np.einsum("sij,sj->si", chol, z)  # (S, 2)
        mu = mu + u[:, [0]] + u[:, [1]] * condition[None, :]

    return mu + rng.standard_normal(mu.shape) * sigma[:, None]
