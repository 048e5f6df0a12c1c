"""Report figures. Every function returns a matplotlib Figure for the report repository."""

import math
from typing import Optional

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import statsmodels.api as sm

from ...domain.entities.irrigation import Irrigation
from ...domain.use_cases.check_autocorrelation import AutocorrelationReport


def _grid(n_panels: int, n_cols: int = 3, panel_size=(4.5, 3.2)):
    n_cols = max(1, min(n_cols, n_panels))
    n_rows = max(1, math.ceil(n_panels / n_cols))
    fig, axes = plt.subplots(
        n_rows,
        n_cols,
        figsize=(panel_size[0] * n_cols, panel_size[1] * n_rows),
        squeeze=False,
    )
    flat = axes.ravel()
    for ax in flat[n_panels:]:
        ax.set_visible(False)
    return fig, flat


def plot_time_series(
    data: pd.DataFrame,
    value_column: str,
    title: str,
    group_column: str = "region",
    ylabel: Optional[str] = None,
):
    """
    Time series of one measure faceted by irrigation (rows) and crop type (columns).

    One line per region (or state for unaggregated data).
    """
    irrigations = sorted(data["irrigation"].unique())
    crop_types = sorted(data["crop_type"].unique())
    fig, axes = plt.subplots(
        len(irrigations),
        len(crop_types),
        figsize=(6 * len(crop_types), 3.5 * len(irrigations)),
        squeeze=False,
        sharex=True,
    )
    for i, irrigation in enumerate(irrigations):
        for j, crop_type in enumerate(crop_types):
            ax = axes[i, j]
            panel = data[(data["irrigation"] == irrigation) & (data["crop_type"] == crop_type)]
            for label, series in panel.groupby(group_column):
                series = series.sort_values("year")
                ax.plot(series["year"], series[value_column], marker="o", ms=3, label=str(label))
            ax.set_title(f"{crop_type} | {Irrigation(irrigation).to_label()}")
            ax.set_ylabel(ylabel or value_column)
            ax.grid(alpha=0.3)
    axes[-1, 0].set_xlabel("Year")
    handles, labels = axes[0, 0].get_legend_handles_labels()
    if handles:
        fig.legend(handles, labels, loc="upper right", fontsize=8)
    fig.suptitle(title, fontweight="bold")
    fig.tight_layout()
    return fig


def plot_residuals_vs_fitted(fitted: np.ndarray, residuals: np.ndarray, title: str):
    fig, ax = plt.subplots(figsize=(6, 4.5))
    ax.scatter(fitted, residuals, alpha=0.6, s=20)
    ax.axhline(y=0, color="red", linestyle="--", alpha=0.8)
    ax.set_xlabel("Fitted values")
    ax.set_ylabel("Residuals")
    ax.set_title(title)
    return fig


def plot_qq(residuals: np.ndarray, title: str):
    fig, ax = plt.subplots(figsize=(5, 5))
    sm.qqplot(np.asarray(residuals, dtype=float), line="s", ax=ax)
    ax.set_title(title)
    return fig


def plot_stratum_residuals(data: pd.DataFrame, title: str, residual_column: str = "residual"):
    """Residuals against fitted values, one panel per (region, irrigation) stratum."""
    strata = list(data.groupby(["region", "irrigation"]))
    fig, axes = _grid(len(strata))
    for ax, ((region, irrigation), group) in zip(axes, strata):
        ax.scatter(group["fitted"], group[residual_column], s=15, alpha=0.7)
        ax.axhline(0, color="red", linestyle="--", alpha=0.8)
        ax.set_title(f"{region} / {irrigation}", fontsize=9)
        ax.set_xlabel("Fitted")
        ax.set_ylabel("Residual")
    fig.suptitle(title, fontweight="bold")
    fig.tight_layout()
    return fig


def plot_acf_by_stratum(report: AutocorrelationReport, title: str):
    """Stem plots of each stratum's sample ACF with the ±1.96/sqrt(n) band."""
    groups = report.tested
    fig, axes = _grid(max(1, len(groups)))
    if not groups:
        axes[0].text(0.5, 0.5, "No stratum with enough observations", ha="center", va="center")
        axes[0].set_axis_off()
    for ax, group in zip(axes, groups):
        lags = np.arange(len(group.acf))
        ax.vlines(lags, 0, group.acf)
        ax.plot(lags, group.acf, "o", ms=4)
        band = 1.96 / np.sqrt(group.n_obs)
        ax.axhspan(-band, band, color="tab:blue", alpha=0.15)
        ax.axhline(0, color="black", lw=0.8)
        ax.set_ylim(-1.05, 1.05)
        flag = "autocorrelated" if group.autocorrelated else "ok"
        ax.set_title(f"{group.stratum} (LB p={group.lb_pvalue:.3f}, {flag})", fontsize=8)
        ax.set_xlabel("Lag (years)")
    fig.suptitle(title, fontweight="bold")
    fig.tight_layout()
    return fig
