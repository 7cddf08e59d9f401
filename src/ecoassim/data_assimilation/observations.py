# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 ecoassim developers

"""
LAI observations and their alignment with the simulation timestep.

Observations arrive at a coarser cadence than the model (one composite per
``window`` simulation steps). ``window_means`` reduces a simulated LAI
trajectory to that cadence so the two can be compared.
"""

import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd

from ecoassim.core.constants import ModelDefaults
from ecoassim.core.exceptions import (
    DataAcquisitionError,
    DimensionMismatchError,
    ValidationError,
    ecoassim_error_handler,
    require,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ObservationSeries:
    """LAI estimates per observation window.

    Attributes:
        lai: LAI estimate; NaN marks a missing window.
        lai_sd: Reported standard deviation of the estimate.
        qc: Optional quality code per window (lower is better).
    """
    lai: np.ndarray
    lai_sd: np.ndarray
    qc: Optional[np.ndarray] = None

    def __post_init__(self):
        lai = np.asarray(self.lai, dtype=np.float64)
        lai_sd = np.asarray(self.lai_sd, dtype=np.float64)
        if lai.ndim != 1 or lai.shape != lai_sd.shape:
            raise DimensionMismatchError(
                f"LAI and LAI std-dev must be 1-D and equal length, got {lai.shape} and {lai_sd.shape}"
            )
        object.__setattr__(self, 'lai', lai)
        object.__setattr__(self, 'lai_sd', lai_sd)
        if self.qc is not None:
            qc = np.asarray(self.qc)
            if qc.shape != lai.shape:
                raise DimensionMismatchError(
                    f"Quality codes have shape {qc.shape}, expected {lai.shape}"
                )
            object.__setattr__(self, 'qc', qc)

    def __len__(self) -> int:
        return len(self.lai)

    @property
    def is_missing(self) -> np.ndarray:
        """Boolean mask of windows without a usable reading."""
        return ~np.isfinite(self.lai) | ~np.isfinite(self.lai_sd) | (self.lai_sd <= 0)

    def n_available(self) -> int:
        return int(np.sum(~self.is_missing))

    def slice(self, n_windows: int) -> 'ObservationSeries':
        """First ``n_windows`` windows of the series."""
        if n_windows > len(self):
            raise DimensionMismatchError(
                f"Observation series has {len(self)} windows, {n_windows} required"
            )
        return ObservationSeries(
            lai=self.lai[:n_windows],
            lai_sd=self.lai_sd[:n_windows],
            qc=None if self.qc is None else self.qc[:n_windows],
        )

    @classmethod
    def from_dataframe(
        cls,
        df: pd.DataFrame,
        lai_column: str = 'LAI',
        sd_column: str = 'LAI_sd',
        qc_column: Optional[str] = 'qc',
    ) -> 'ObservationSeries':
        required = [lai_column, sd_column]
        missing = [c for c in required if c not in df.columns]
        if missing:
            raise DataAcquisitionError(f"Observation table is missing columns: {', '.join(missing)}")

        qc = None
        if qc_column and qc_column in df.columns:
            qc = pd.to_numeric(df[qc_column], errors='coerce').to_numpy(dtype=np.float64)

        return cls(
            lai=pd.to_numeric(df[lai_column], errors='coerce').to_numpy(dtype=np.float64),
            lai_sd=pd.to_numeric(df[sd_column], errors='coerce').to_numpy(dtype=np.float64),
            qc=qc,
        )


def apply_quality_control(
    observations: ObservationSeries,
    qc_threshold: float = ModelDefaults.OBS_QC_THRESHOLD,
    sd_floor: float = ModelDefaults.OBS_SD_FLOOR,
) -> ObservationSeries:
    """Mask failed retrievals and floor the reported uncertainty.

    Windows whose quality code exceeds ``qc_threshold``, or whose LAI or
    std-dev is not finite, become missing (LAI set to NaN). Standard
    deviations below ``sd_floor`` are raised to it.

    Args:
        observations: Raw observation series.
        qc_threshold: Highest acceptable quality code.
        sd_floor: Minimum standard deviation.

    Returns:
        New ObservationSeries; the input is not modified.
    """
    require(sd_floor > 0, f"sd_floor must be positive, got {sd_floor}")

    lai = observations.lai.copy()
    lai_sd = observations.lai_sd.copy()

    bad = ~np.isfinite(lai) | ~np.isfinite(lai_sd)
    if observations.qc is not None:
        qc = np.asarray(observations.qc, dtype=np.float64)
        # Missing quality codes are treated as failures
        bad |= ~np.isfinite(qc) | (qc > qc_threshold)
    lai[bad] = np.nan

    low_sd = np.isfinite(lai_sd) & (lai_sd < sd_floor)
    lai_sd[low_sd] = sd_floor

    logger.info(
        "Observation QC: %d of %d windows masked, %d std-devs floored at %.3f",
        int(bad.sum()), len(lai), int(low_sd.sum()), sd_floor,
    )
    return replace(observations, lai=lai, lai_sd=lai_sd)


def load_observations(
    path: Path,
    lai_column: str = 'LAI',
    sd_column: str = 'LAI_sd',
    qc_column: Optional[str] = 'qc',
) -> ObservationSeries:
    """Load an LAI observation table (one row per window) from CSV."""
    path = Path(path)
    require(path.exists(), f"Observation file not found: {path}", DataAcquisitionError)

    with ecoassim_error_handler(f"reading observation table {path}", logger, error_type=DataAcquisitionError):
        df = pd.read_csv(path)
    observations = ObservationSeries.from_dataframe(df, lai_column, sd_column, qc_column)
    logger.info("Loaded %d observation windows from %s", len(observations), path)
    return observations


def n_windows(n_timesteps: int, window: int) -> int:
    """Number of observation windows covering ``n_timesteps`` (last one may be partial)."""
    return -(-n_timesteps // window)


def window_means(lai: np.ndarray, window: int) -> np.ndarray:
    """Average a simulated LAI trajectory over consecutive observation windows.

    Windows are non-overlapping and run left to right; a trailing partial
    window is averaged over the steps it contains.

    Args:
        lai: Simulated LAI, shape (n_timesteps, n_members) or (n_timesteps,).
        window: Simulation steps per observation window.

    Returns:
        Array of shape (n_windows, n_members) (or (n_windows,) for 1-D input).
    """
    if window < 1:
        raise ValidationError(f"window must be a positive number of timesteps, got {window}")

    lai = np.asarray(lai, dtype=np.float64)
    if lai.ndim not in (1, 2):
        raise DimensionMismatchError(f"LAI must be 1-D or 2-D, got shape {lai.shape}")
    if lai.shape[0] == 0:
        raise ValidationError("Cannot align an empty LAI trajectory")

    n_steps = lai.shape[0]
    starts = np.arange(0, n_steps, window)
    counts = np.minimum(starts + window, n_steps) - starts

    sums = np.add.reduceat(lai, starts, axis=0)
    if lai.ndim == 2:
        counts = counts[:, np.newaxis]
    return sums / counts
