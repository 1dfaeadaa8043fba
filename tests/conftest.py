"""
Pytest configuration and shared fixtures.

Provides:
- a non-interactive matplotlib backend
- a factory for small synthetic posterior traces with the variables the
  hierarchical model produces, so most tests avoid running the sampler
"""

import matplotlib
matplotlib.use("Agg")

import numpy as np
import pytest
import arviz as az


def build_idata(intercept=0.0, b_condition=0.5, sigma=1.0, participant_sd=(0.5, 1.0), participant_corr=-0.5,
                chains=2, draws=500, spread=0.05, seed=0):
    """Synthetic InferenceData centred on the given parameter values."""
    rng = np.random.default_rng(seed)
    shape = (chains, draws)

    sd = np.asarray(participant_sd, dtype=float)
    corr = np.array([[1.0, participant_corr], [participant_corr, 1.0]])
    # Lower-triangular factor of diag(sd) R diag(sd), same for every draw
    chol = np.broadcast_to(np.linalg.cholesky(np.outer(sd, sd) * corr), shape + (2, 2)).copy()

    posterior = {
        "Intercept": intercept + spread * rng.standard_normal(shape),
        "b_condition": b_condition + spread * rng.standard_normal(shape),
        "sigma": np.abs(sigma + spread * rng.standard_normal(shape)),
        "participant_sd": np.broadcast_to(sd, shape + (2,)) + spread * np.abs(rng.standard_normal(shape + (2,))),
        "participant_corr": np.clip(participant_corr + spread * rng.standard_normal(shape), -1, 1),
        "participant_chol": chol,
    }
    return az.from_dict(
        posterior=posterior,
        coords={"effect": ["Intercept", "condition"]},
        dims={"participant_sd": ["effect"]},
    )


@pytest.fixture
def make_idata():
    """Return the synthetic trace factory."""
    return build_idata


@pytest.fixture
def fake_idata():
    """Default synthetic trace: intercept 0, effect 0.5, sigma 1."""
    return build_idata()
