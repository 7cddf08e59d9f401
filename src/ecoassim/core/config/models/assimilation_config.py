# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 ecoassim developers

"""
Forecasting and data assimilation configuration models.

Contains PriorConfig for the initial ensemble, ObservationConfig for LAI
quality control and alignment, ParticleFilterConfig for the filters, and
EcoAssimConfig as the parent container.
"""

from typing import Optional, Tuple

from pydantic import BaseModel, Field, field_validator

from ecoassim.core.constants import ModelDefaults
from .base import FROZEN_CONFIG


class PriorConfig(BaseModel):
    """Hyperparameters of the initial-condition and parameter priors."""
    model_config = FROZEN_CONFIG

    # Initial conditions
    lai_mean: float = Field(default=4.0, alias='PRIOR_LAI_MEAN', gt=0.0)
    lai_sd: float = Field(default=0.4, alias='PRIOR_LAI_SD', ge=0.0)
    wood_mean: float = Field(
        default=100.0, alias='PRIOR_WOOD_MEAN', ge=0.0,
        description='Initial wood carbon (Mg C/ha)'
    )
    wood_sd: float = Field(default=10.0, alias='PRIOR_WOOD_SD', ge=0.0)
    soil_mean: float = Field(
        default=120.0, alias='PRIOR_SOIL_MEAN', ge=0.0,
        description='Initial soil organic carbon (Mg C/ha)'
    )
    soil_sd: float = Field(default=12.0, alias='PRIOR_SOIL_SD', ge=0.0)

    # Parameters
    sla_mean: float = Field(
        default=15.0, alias='PRIOR_SLA_MEAN', gt=0.0,
        description='Specific leaf area (m2/kg C)'
    )
    sla_sd: float = Field(default=1.5, alias='PRIOR_SLA_SD', ge=0.0)
    alpha_mean: float = Field(
        default=0.02, alias='PRIOR_ALPHA_MEAN', gt=0.0,
        description='Light-use efficiency (umol C / umol photon)'
    )
    alpha_sd: float = Field(default=0.005, alias='PRIOR_ALPHA_SD', ge=0.0)
    q10_mean: float = Field(default=2.1, alias='PRIOR_Q10_MEAN', gt=0.0)
    q10_sd: float = Field(default=0.1, alias='PRIOR_Q10_SD', ge=0.0)
    rbasal_mean: float = Field(
        default=0.008, alias='PRIOR_RBASAL_MEAN', gt=0.0,
        description='Basal heterotrophic respiration (umol C m-2 s-1 per Mg C/ha at 0 C)'
    )
    rbasal_sd: float = Field(default=0.002, alias='PRIOR_RBASAL_SD', ge=0.0)

    # Process error (std-devs per timestep, Mg C/ha)
    tau_leaf: float = Field(default=0.005, alias='PRIOR_TAU_LEAF', gt=0.0)
    tau_wood: float = Field(default=0.01, alias='PRIOR_TAU_WOOD', gt=0.0)
    tau_soil: float = Field(default=0.01, alias='PRIOR_TAU_SOIL', gt=0.0)
    tau_shape: float = Field(
        default=10.0, alias='PRIOR_TAU_SHAPE', gt=0.0,
        description='Gamma shape of the process-error precision priors'
    )

    # Allocation and turnover
    falloc_mean: Tuple[float, float, float] = Field(
        default=(0.5, 0.3, 0.2), alias='PRIOR_FALLOC_MEAN',
        description='Mean allocation fractions (Ra, NPP wood, NPP leaf)'
    )
    falloc_n_eff: float = Field(
        default=100.0, alias='PRIOR_FALLOC_N_EFF', gt=0.0,
        description='Poisson mean of the Dirichlet effective sample size'
    )
    litterfall_mean: float = Field(
        default=1.0 / (365 * 48), alias='PRIOR_LITTERFALL_MEAN', gt=0.0, lt=1.0,
        description='Leaf turnover fraction per timestep'
    )
    litterfall_sd: float = Field(default=1.0 / (365 * 48) / 10, alias='PRIOR_LITTERFALL_SD', gt=0.0)
    mortality_mean: float = Field(
        default=1.0 / (50 * 365 * 48), alias='PRIOR_MORTALITY_MEAN', gt=0.0, lt=1.0,
        description='Coarse woody debris turnover fraction per timestep'
    )
    mortality_sd: float = Field(default=1.0 / (50 * 365 * 48) / 10, alias='PRIOR_MORTALITY_SD', gt=0.0)

    @field_validator('falloc_mean', mode='before')
    @classmethod
    def _split_falloc(cls, value):
        if isinstance(value, str):
            return tuple(float(v) for v in value.split(',') if v.strip())
        return value

    @field_validator('falloc_mean')
    @classmethod
    def _check_simplex(cls, value):
        if any(v < 0 for v in value) or abs(sum(value) - 1.0) > 1e-6:
            raise ValueError(f"falloc_mean must be non-negative and sum to 1, got {value}")
        return value


class ObservationConfig(BaseModel):
    """LAI observation quality control and alignment settings."""
    model_config = FROZEN_CONFIG

    qc_threshold: int = Field(
        default=ModelDefaults.OBS_QC_THRESHOLD, alias='OBS_QC_THRESHOLD',
        description='Quality codes above this value are treated as missing'
    )
    sd_floor: float = Field(
        default=ModelDefaults.OBS_SD_FLOOR, alias='OBS_SD_FLOOR', gt=0.0,
        description='Minimum LAI standard deviation'
    )
    window_steps: int = Field(
        default=ModelDefaults.OBS_WINDOW_STEPS, alias='OBS_WINDOW_STEPS', ge=1,
        description='Simulation timesteps per observation window'
    )
    lai_column: str = Field(default='LAI', alias='OBS_LAI_COLUMN')
    sd_column: str = Field(default='LAI_sd', alias='OBS_SD_COLUMN')
    qc_column: Optional[str] = Field(default='qc', alias='OBS_QC_COLUMN')


class ParticleFilterConfig(BaseModel):
    """Ensemble forecast and particle filter settings."""
    model_config = FROZEN_CONFIG

    ensemble_size: int = Field(default=200, alias='PF_ENSEMBLE_SIZE', ge=2)
    seed: Optional[int] = Field(default=None, alias='PF_SEED', ge=0)
    timestep_seconds: float = Field(
        default=ModelDefaults.TIMESTEP_SECONDS, alias='PF_TIMESTEP_SECONDS', gt=0.0
    )
    horizon: Optional[int] = Field(
        default=None, alias='PF_HORIZON', ge=1,
        description='Number of timesteps to simulate (None = full forcing record)'
    )
    quantiles: Tuple[float, ...] = Field(
        default=ModelDefaults.QUANTILES, alias='PF_QUANTILES'
    )
    resample: bool = Field(
        default=True, alias='PF_RESAMPLE',
        description='Run the resampling particle filter in addition to reweighting'
    )

    @field_validator('quantiles', mode='before')
    @classmethod
    def _split_quantiles(cls, value):
        if isinstance(value, str):
            return tuple(float(v) for v in value.split(',') if v.strip())
        return value

    @field_validator('quantiles')
    @classmethod
    def _check_quantiles(cls, value):
        if not value or any(q < 0.0 or q > 1.0 for q in value):
            raise ValueError(f"quantiles must lie in [0, 1], got {value}")
        return value


class EcoAssimConfig(BaseModel):
    """Top-level forecasting and data assimilation configuration."""
    model_config = FROZEN_CONFIG

    experiment_id: str = Field(default='run_1', alias='EXPERIMENT_ID')
    forcing_path: Optional[str] = Field(default=None, alias='FORCING_PATH')
    observations_path: Optional[str] = Field(default=None, alias='OBSERVATIONS_PATH')
    output_dir: str = Field(default='output', alias='OUTPUT_DIR')
    par_column: str = Field(default='PAR', alias='FORCING_PAR_COLUMN')
    temp_column: str = Field(default='temp', alias='FORCING_TEMP_COLUMN')

    priors: PriorConfig = Field(default_factory=PriorConfig)
    observations: ObservationConfig = Field(default_factory=ObservationConfig)
    particle_filter: ParticleFilterConfig = Field(default_factory=ParticleFilterConfig)
