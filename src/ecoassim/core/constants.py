# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 ecoassim developers

"""
Physical constants and unit conversion factors for ecoassim.

Centralizes all hardcoded constants so the process model, priors and
filters share a single source of truth for unit conversions.
"""


class UnitConversion:
    """
    Unit conversion factors for carbon-cycle calculations.

    Carbon pools are carried in Mg C/ha, fluxes are computed in
    µmol C m⁻² s⁻¹, leaf area index is dimensionless (m² leaf / m² ground).
    """

    # Time constants
    SECONDS_PER_HOUR = 3600
    """Seconds in one hour."""

    SECONDS_PER_DAY = 86400
    """Seconds in one day (24 hours × 3600 seconds)."""

    # Carbon flux conversions
    MOL_PER_UMOL = 1e-6
    """Moles per micromole."""

    GRAMS_C_PER_MOL = 12.0
    """Molar mass of carbon (g/mol)."""

    MG_PER_GRAM = 1e-6
    """Megagrams (tonnes) per gram."""

    M2_PER_HA = 1e4
    """Square meters per hectare."""

    LAI_CONVERSION = 0.1
    """
    Convert leaf carbon × specific leaf area to leaf area index.

    Leaf carbon is in Mg C/ha and SLA in m²/kg C, so

        1 Mg/ha = 1000 kg / 10,000 m² = 0.1 kg/m²

    and LAI = leaf_C × SLA × 0.1.
    """

    @classmethod
    def flux_to_pool(cls, timestep_seconds: float) -> float:
        """
        Factor converting a flux in µmol C m⁻² s⁻¹ to Mg C/ha per timestep.

        Derivation:
            1e-6 mol/µmol × 12 g/mol × 1e-6 Mg/g × 1e4 m²/ha × Δt s

        For the default 30-minute step this is 2.16e-4.

        Args:
            timestep_seconds: Model timestep length in seconds.

        Returns:
            Conversion factor k.
        """
        return (
            cls.MOL_PER_UMOL
            * cls.GRAMS_C_PER_MOL
            * cls.MG_PER_GRAM
            * cls.M2_PER_HA
            * timestep_seconds
        )


class ModelDefaults:
    """Default numerical settings shared across the package."""

    TIMESTEP_SECONDS = 1800
    """Model timestep (30 minutes, flux-tower cadence)."""

    PAR_THRESHOLD = 1e-20
    """PAR below this value is treated as night; GPP is zero for all members."""

    OBS_WINDOW_STEPS = 384
    """Simulation steps per observation window (8-day composite / 30 min)."""

    OBS_QC_THRESHOLD = 1
    """Observation quality codes above this value are treated as missing."""

    OBS_SD_FLOOR = 0.66
    """Minimum observation standard deviation for LAI."""

    QUANTILES = (0.025, 0.5, 0.975)
    """Quantiles reported for ensemble summaries."""

    ALLOCATION_TOLERANCE = 1e-8
    """Tolerance on the allocation-fraction simplex constraint."""


FLUX_TO_POOL_DEFAULT = UnitConversion.flux_to_pool(ModelDefaults.TIMESTEP_SECONDS)
"""Flux-to-pool conversion factor k for the default 30-minute timestep."""
