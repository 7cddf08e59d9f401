# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 ecoassim developers

"""
Data assimilation diagnostics.

Provides verification metrics for ensemble LAI forecasts:
- Effective sample size of importance weights
- Unweighted ensemble quantiles
- Rank histogram (reliability)
- CRPS (continuous ranked probability score)
- Spread-error ratio
- Open-loop comparison
- Parameter summaries across analysis windows
"""

import logging
from typing import Dict, Sequence

import numpy as np
import pandas as pd

from ecoassim.core.constants import ModelDefaults
from ecoassim.core.exceptions import DimensionMismatchError
from ecoassim.models.ssem import SCALAR_PARAMS, SSEMParameters

logger = logging.getLogger(__name__)


def effective_sample_size(weights: np.ndarray) -> float:
    """Kish effective sample size, (Σw)² / Σw².

    Equals N for equal weights and 1 when a single member carries all the
    weight. Zero or non-finite totals give NaN.
    """
    weights = np.asarray(weights, dtype=np.float64)
    total = weights.sum()
    sum_sq = np.sum(weights ** 2)
    if not np.isfinite(total) or sum_sq <= 0 or not np.isfinite(sum_sq):
        return float('nan')
    return float(total ** 2 / sum_sq)


def ensemble_quantiles(
    trajectory: np.ndarray,
    probs: Sequence[float] = ModelDefaults.QUANTILES,
) -> np.ndarray:
    """Unweighted quantiles across members.

    Args:
        trajectory: Shape (n_timesteps, n_members) or (n_timesteps, n_members, n_vars).

    Returns:
        Array with the member axis replaced by a trailing quantile axis:
        (n_timesteps, n_quantiles) or (n_timesteps, n_vars, n_quantiles).
    """
    q = np.quantile(np.asarray(trajectory, dtype=np.float64), probs, axis=1)
    return np.moveaxis(q, 0, -1)


def rank_histogram(
    ensemble_predictions: np.ndarray,
    observations: np.ndarray,
) -> np.ndarray:
    """Compute rank histogram for ensemble reliability assessment.

    A uniform histogram indicates a well-calibrated ensemble.

    Args:
        ensemble_predictions: Shape (n_windows, n_members).
        observations: Shape (n_windows,).

    Returns:
        Histogram counts of shape (n_members + 1,).
    """
    ensemble_predictions = np.asarray(ensemble_predictions, dtype=np.float64)
    observations = np.asarray(observations, dtype=np.float64)
    if ensemble_predictions.shape[0] != observations.shape[0]:
        raise DimensionMismatchError(
            f"{ensemble_predictions.shape[0]} prediction rows but {observations.shape[0]} observations"
        )

    valid = ~np.isnan(observations)
    preds = np.sort(ensemble_predictions[valid], axis=1)
    obs = observations[valid]

    n_members = ensemble_predictions.shape[1]
    ranks = np.array([np.searchsorted(preds[i], obs[i]) for i in range(len(obs))], dtype=int)
    return np.bincount(ranks, minlength=n_members + 1)


def crps(
    ensemble_predictions: np.ndarray,
    observations: np.ndarray,
) -> float:
    """Compute mean Continuous Ranked Probability Score (CRPS).

    Lower CRPS indicates better probabilistic forecast quality. Windows
    without an observation are skipped; NaN if none remain.

    Args:
        ensemble_predictions: Shape (n_windows, n_members).
        observations: Shape (n_windows,).

    Returns:
        Mean CRPS value.
    """
    ensemble_predictions = np.asarray(ensemble_predictions, dtype=np.float64)
    observations = np.asarray(observations, dtype=np.float64)

    valid = ~np.isnan(observations)
    preds = ensemble_predictions[valid]
    obs = observations[valid]
    if len(obs) == 0:
        return float('nan')

    n_members = preds.shape[1]

    # |x_i - obs| term
    abs_diff = np.mean(np.abs(preds - obs[:, np.newaxis]), axis=1)

    # Inter-member spread term, mean |x_i - x_j| over distinct pairs
    pairwise = np.abs(preds[:, :, np.newaxis] - preds[:, np.newaxis, :]).sum(axis=(1, 2))
    spread = pairwise / (n_members * (n_members - 1)) if n_members > 1 else np.zeros_like(abs_diff)

    return float(np.mean(abs_diff - 0.5 * spread))


def spread_error_ratio(
    ensemble_predictions: np.ndarray,
    observations: np.ndarray,
) -> float:
    """Compute the spread-error ratio.

    A well-calibrated ensemble has a ratio close to 1.0:
    - ratio > 1: ensemble is over-dispersive (too much spread)
    - ratio < 1: ensemble is under-dispersive (too little spread)

    Args:
        ensemble_predictions: Shape (n_windows, n_members).
        observations: Shape (n_windows,).

    Returns:
        Spread-error ratio.
    """
    ensemble_predictions = np.asarray(ensemble_predictions, dtype=np.float64)
    observations = np.asarray(observations, dtype=np.float64)

    valid = ~np.isnan(observations)
    preds = ensemble_predictions[valid]
    obs = observations[valid]
    if len(obs) == 0:
        return float('nan')

    spread = np.mean(np.std(preds, axis=1))
    rmse = np.sqrt(np.mean((np.mean(preds, axis=1) - obs) ** 2))

    if rmse < 1e-12:
        return float('inf')

    return float(spread / rmse)


def open_loop_comparison(
    da_predictions: np.ndarray,
    open_loop_predictions: np.ndarray,
    observations: np.ndarray,
) -> Dict[str, float]:
    """Compare assimilated LAI against the open-loop (prior-only) run.

    Args:
        da_predictions: Assimilated central estimate, shape (n_windows,).
        open_loop_predictions: Open-loop ensemble mean, shape (n_windows,).
        observations: Observations, shape (n_windows,).

    Returns:
        Dictionary with RMSE and correlation for both runs.
    """
    valid = ~np.isnan(observations) & ~np.isnan(da_predictions) & ~np.isnan(open_loop_predictions)

    da = da_predictions[valid]
    ol = open_loop_predictions[valid]
    obs = observations[valid]

    if len(obs) == 0:
        return {'da_rmse': np.nan, 'ol_rmse': np.nan, 'da_corr': np.nan, 'ol_corr': np.nan}

    da_rmse = float(np.sqrt(np.mean((da - obs) ** 2)))
    ol_rmse = float(np.sqrt(np.mean((ol - obs) ** 2)))

    da_corr = float(np.corrcoef(da, obs)[0, 1]) if len(obs) > 1 else np.nan
    ol_corr = float(np.corrcoef(ol, obs)[0, 1]) if len(obs) > 1 else np.nan

    return {
        'da_rmse': da_rmse,
        'ol_rmse': ol_rmse,
        'da_corr': da_corr,
        'ol_corr': ol_corr,
        'rmse_improvement': float((ol_rmse - da_rmse) / ol_rmse * 100) if ol_rmse > 1e-12 else 0.0,
    }


def parameter_summary(history: Sequence[SSEMParameters]) -> pd.DataFrame:
    """Ensemble mean and std-dev of each parameter at every snapshot.

    The first row is normally the prior and the last the posterior, so the
    frame shows how resampling narrowed each parameter.

    Args:
        history: Parameter snapshots, e.g. ``ResamplingResult.parameter_history``.

    Returns:
        DataFrame indexed by snapshot with ``<name>_mean`` and ``<name>_sd``
        columns; allocation fractions appear as falloc_ra, falloc_wood and
        falloc_leaf.
    """
    rows = []
    for params in history:
        row = {}
        for name in SCALAR_PARAMS:
            values = np.asarray(getattr(params, name), dtype=np.float64)
            row[f'{name}_mean'] = values.mean()
            row[f'{name}_sd'] = values.std(ddof=1) if values.size > 1 else 0.0
        falloc = np.asarray(params.falloc, dtype=np.float64)
        for j, label in enumerate(('falloc_ra', 'falloc_wood', 'falloc_leaf')):
            row[f'{label}_mean'] = falloc[:, j].mean()
            row[f'{label}_sd'] = falloc[:, j].std(ddof=1) if falloc.shape[0] > 1 else 0.0
        rows.append(row)

    df = pd.DataFrame(rows)
    df.index.name = 'snapshot'
    return df
