# Figures for the posterior contrast between conditions

import numpy as np
import matplotlib.pyplot as plt
import arviz as az
from scipy.stats import gaussian_kde

from .contrast import direction_label

# Parameters shown in the convergence diagnostics plot
TRACE_VARIABLES = ["Intercept", "b_condition", "participant_sd", "participant_corr", "sigma"]


def _save_or_show(fig, save_to_file, description):
    if save_to_file is not None:
        fig.savefig(save_to_file, dpi=300, bbox_inches='tight')
        print(f"{description} saved to '{save_to_file}'")
        plt.close(fig)
    else:
        plt.show()


def plot_contrast_density(contrast, summary, save_to_file=None):
    """Density of the contrast samples with the 95% HDI and the mean."""
    contrast = np.asarray(contrast, dtype=float)

    density = gaussian_kde(contrast)
    grid = np.linspace(contrast.min(), contrast.max(), 512)

    fig, ax = plt.subplots(figsize=(10, 6))
    ax.fill_between(grid, density(grid), color='mediumseagreen', alpha=0.5)
    ax.plot(grid, density(grid), color='black', linewidth=1.5)

    # Interval bar and point estimate along the baseline
    ax.hlines(y=0, xmin=summary['lower_95'], xmax=summary['upper_95'],
              color='black', linewidth=5, label="95% HDI")
    ax.plot(summary['mean'], 0, marker='o', markersize=10,
            markerfacecolor='white', markeredgecolor='black', markeredgewidth=2,
            linestyle='none', label=f"Mean: {summary['mean']:.2f}")
    ax.axvline(0, color='gray', linestyle='--', alpha=0.7)

    ax.set_title(f"Posterior contrast: condition 1 - condition 0 ({len(contrast)} draws)", fontsize=12)
    ax.set_xlabel("Difference in measurement", fontsize=12)
    ax.set_ylabel("Density", fontsize=12)
    ax.legend()
    ax.grid(True, linestyle=':', alpha=0.6)
    fig.tight_layout()

    _save_or_show(fig, save_to_file, "Contrast density plot")
    return fig


def plot_contrast_pointrange(summary, save_to_file=None):
    """Point-range of the contrast: 99% and 95% HDIs, median and directional probability."""
    label = direction_label(summary)

    fig, ax = plt.subplots(figsize=(8, 3))
    ax.hlines(y=0, xmin=summary['lower_99'], xmax=summary['upper_99'],
              color='black', linewidth=1.5, label="99% HDI")
    ax.hlines(y=0, xmin=summary['lower_95'], xmax=summary['upper_95'],
              color='black', linewidth=5, label="95% HDI")
    ax.plot(summary['median'], 0, marker='o', markersize=10,
            markerfacecolor='white', markeredgecolor='black', markeredgewidth=2,
            linestyle='none', label=f"Median: {summary['median']:.2f}")
    ax.axvline(0, color='gray', linestyle='--', alpha=0.7)

    ax.text(summary['median'], 0.2, label, ha='center', va='bottom', fontsize=12, weight='bold')

    ax.set_ylim(-0.5, 0.5)
    ax.set_yticks([0])
    ax.set_yticklabels(["Contrast"])
    ax.set_xlabel("Difference in measurement (condition 1 - condition 0)", fontsize=12)
    ax.legend(loc='lower right', fontsize=8)
    ax.grid(True, axis='x', linestyle=':', alpha=0.6)
    fig.tight_layout()

    _save_or_show(fig, save_to_file, "Contrast point-range plot")
    return fig


def plot_convergence(idata, save_to_file=None):
    """Trace plots of the population-level parameters."""
    axes = az.plot_trace(idata, var_names=TRACE_VARIABLES)
    fig = axes.ravel()[0].figure
    fig.tight_layout()

    _save_or_show(fig, save_to_file, "Convergence diagnostics plot")
    return fig
