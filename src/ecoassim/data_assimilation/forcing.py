# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 ecoassim developers

"""
Meteorological forcing for the SSEM.

Forcing is one (PAR, air temperature) pair per simulation timestep. It is
read-only for the lifetime of a run.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

import numpy as np
import pandas as pd

from ecoassim.core.exceptions import (
    DataAcquisitionError,
    DimensionMismatchError,
    ecoassim_error_handler,
    require,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Forcing:
    """PAR (µmol photons m⁻² s⁻¹) and air temperature (°C) per timestep."""
    par: np.ndarray
    temp: np.ndarray

    def __post_init__(self):
        par = np.array(self.par, dtype=np.float64)
        temp = np.array(self.temp, dtype=np.float64)
        if par.ndim != 1 or temp.ndim != 1 or par.shape != temp.shape:
            raise DimensionMismatchError(
                f"PAR and temperature must be 1-D and equal length, got {par.shape} and {temp.shape}"
            )
        par.setflags(write=False)
        temp.setflags(write=False)
        object.__setattr__(self, 'par', par)
        object.__setattr__(self, 'temp', temp)

    def __len__(self) -> int:
        return len(self.par)

    def n_invalid(self) -> int:
        """Number of timesteps with non-finite PAR or temperature."""
        return int(np.sum(~np.isfinite(self.par) | ~np.isfinite(self.temp)))

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame, par_column: str = 'PAR', temp_column: str = 'temp') -> 'Forcing':
        missing = [c for c in (par_column, temp_column) if c not in df.columns]
        if missing:
            raise DataAcquisitionError(f"Forcing table is missing columns: {', '.join(missing)}")
        return cls(
            par=pd.to_numeric(df[par_column], errors='coerce').to_numpy(dtype=np.float64),
            temp=pd.to_numeric(df[temp_column], errors='coerce').to_numpy(dtype=np.float64),
        )


def load_forcing(path: Path, par_column: str = 'PAR', temp_column: str = 'temp') -> Forcing:
    """Load forcing from a CSV table with one row per timestep.

    Args:
        path: CSV file.
        par_column: Name of the PAR column.
        temp_column: Name of the air temperature column.

    Returns:
        Forcing series.
    """
    path = Path(path)
    require(path.exists(), f"Forcing file not found: {path}", DataAcquisitionError)

    with ecoassim_error_handler(f"reading forcing table {path}", logger, error_type=DataAcquisitionError):
        df = pd.read_csv(path)
    forcing = Forcing.from_dataframe(df, par_column, temp_column)

    n_invalid = forcing.n_invalid()
    if n_invalid:
        logger.warning("Forcing has %d timesteps with missing or non-finite values", n_invalid)
    logger.info("Loaded %d forcing timesteps from %s", len(forcing), path)
    return forcing
