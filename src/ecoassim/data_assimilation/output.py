"""
Data assimilation output writer.

Writes particle filter results to CF-1.6 compliant NetCDF files.
"""

import logging
from pathlib import Path
from typing import Dict, Optional

import numpy as np
import xarray as xr

from ecoassim.models.ssem import TRAJECTORY_VARIABLES
from .observations import ObservationSeries
from .particle_filter import NonResamplingResult, ResamplingResult

logger = logging.getLogger(__name__)


VARIABLE_ATTRS: Dict[str, Dict[str, str]] = {
    'leaf_c': {'units': 'Mg C ha-1', 'long_name': 'Leaf carbon'},
    'wood_c': {'units': 'Mg C ha-1', 'long_name': 'Wood carbon'},
    'soil_c': {'units': 'Mg C ha-1', 'long_name': 'Soil organic carbon'},
    'lai': {'units': '1', 'long_name': 'Leaf area index'},
    'gpp': {'units': 'umol C m-2 s-1', 'long_name': 'Gross primary production'},
    'nep': {'units': 'umol C m-2 s-1', 'long_name': 'Net ecosystem production'},
    'ra': {'units': 'umol C m-2 s-1', 'long_name': 'Autotrophic respiration'},
    'npp_wood': {'units': 'umol C m-2 s-1', 'long_name': 'Net primary production allocated to wood'},
    'npp_leaf': {'units': 'umol C m-2 s-1', 'long_name': 'Net primary production allocated to leaves'},
    'rh': {'units': 'umol C m-2 s-1', 'long_name': 'Heterotrophic respiration'},
    'litterfall': {'units': 'Mg C ha-1 timestep-1', 'long_name': 'Leaf litterfall'},
    'cwd': {'units': 'Mg C ha-1 timestep-1', 'long_name': 'Coarse woody debris production'},
}


def trajectory_to_dataset(
    trajectory: np.ndarray,
    prefix: str = '',
    time_index: Optional[np.ndarray] = None,
) -> xr.Dataset:
    """Wrap a (time, member, variable) trajectory as one variable per output column.

    Args:
        trajectory: Array of shape (n_timesteps, n_members, 12).
        prefix: Prepended to each variable name (e.g. ``'open_loop_'``).
        time_index: Optional time coordinate of length n_timesteps.

    Returns:
        Dataset with dimensions ``time`` and ``member``.
    """
    trajectory = np.asarray(trajectory)
    n_timesteps, n_members, n_vars = trajectory.shape
    if n_vars != len(TRAJECTORY_VARIABLES):
        raise ValueError(
            f"Trajectory has {n_vars} variables, expected {len(TRAJECTORY_VARIABLES)}"
        )

    time_coord = np.arange(n_timesteps) if time_index is None else np.asarray(time_index)[:n_timesteps]
    ds = xr.Dataset(
        data_vars={
            f'{prefix}{name}': (['time', 'member'], trajectory[:, :, j])
            for j, name in enumerate(TRAJECTORY_VARIABLES)
        },
        coords={'time': time_coord, 'member': np.arange(n_members)},
    )
    for name in TRAJECTORY_VARIABLES:
        ds[f'{prefix}{name}'].attrs = dict(VARIABLE_ATTRS[name])
    return ds


class DAOutputManager:
    """Writes particle filter results to NetCDF."""

    def build_dataset(
        self,
        open_loop: np.ndarray,
        observations: ObservationSeries,
        window: int,
        non_resampling: Optional[NonResamplingResult] = None,
        resampling: Optional[ResamplingResult] = None,
        time_index: Optional[np.ndarray] = None,
        attrs: Optional[Dict[str, object]] = None,
    ) -> xr.Dataset:
        """Assemble the output dataset.

        Args:
            open_loop: Open-loop trajectory (n_timesteps, n_members, 12).
            observations: Observations used, one per window.
            window: Simulation steps per observation window.
            non_resampling: Result of the non-resampling filter.
            resampling: Result of the resampling filter.
            time_index: Optional datetime index.
            attrs: Extra global attributes.

        Returns:
            xarray Dataset with dimensions time, member, window and quantile.
        """
        ds = trajectory_to_dataset(open_loop, prefix='open_loop_', time_index=time_index)
        n_timesteps = open_loop.shape[0]
        n_windows = len(observations)

        ds = ds.assign_coords(window=np.arange(n_windows))
        ds['observed_lai'] = (['window'], observations.lai)
        ds['observed_lai'].attrs = {'units': '1', 'long_name': 'Observed leaf area index'}
        ds['observed_lai_sd'] = (['window'], observations.lai_sd)
        ds['observed_lai_sd'].attrs = {'units': '1', 'long_name': 'Observation standard deviation'}
        ds['window_end'] = (['window'], np.minimum((np.arange(n_windows) + 1) * window, n_timesteps))
        ds['window_end'].attrs = {'units': 'timesteps', 'long_name': 'Timestep count at the end of each window'}

        if non_resampling is not None:
            ds = ds.assign_coords(quantile=np.asarray(non_resampling.probs))
            ds['simulated_lai'] = (['window', 'member'], non_resampling.simulated_lai)
            ds['simulated_lai'].attrs = {'units': '1', 'long_name': 'Window-mean simulated leaf area index'}
            ds['weight'] = (['window', 'member'], non_resampling.normalized_weights)
            ds['weight'].attrs = {
                'units': '1',
                'long_name': 'Importance weight relative to the ensemble mean',
            }
            ds['lai_quantile'] = (['window', 'quantile'], non_resampling.quantiles)
            ds['lai_quantile'].attrs = {'units': '1', 'long_name': 'Weighted leaf area index quantiles'}

        analysis_mask = np.zeros(n_timesteps, dtype=bool)
        n_analyses = 0
        if resampling is not None:
            resampled_ds = trajectory_to_dataset(
                resampling.trajectory, prefix='resampled_', time_index=time_index,
            )
            ds = ds.merge(resampled_ds)

            for step, resampled in zip(resampling.analysis_steps, resampling.resampled):
                if resampled:
                    analysis_mask[step - 1] = True
            n_analyses = resampling.n_analyses

            effective_size = np.full(n_windows, np.nan)
            effective_size[:len(resampling.effective_sizes)] = resampling.effective_sizes
            ds['effective_ensemble_size'] = (['window'], effective_size)
            ds['effective_ensemble_size'].attrs = {'units': '1', 'long_name': 'Effective ensemble size'}

        ds['analysis_performed'] = (['time'], analysis_mask)

        # CF-1.6 attributes
        ds.attrs.update({
            'Conventions': 'CF-1.6',
            'title': 'ecoassim particle filter results',
            'method': 'Particle filter (non-resampling and resampling)',
            'n_members': int(open_loop.shape[1]),
            'n_windows': n_windows,
            'window_steps': int(window),
            'n_analyses': n_analyses,
        })
        if attrs:
            ds.attrs.update({k: v for k, v in attrs.items() if v is not None})
        return ds

    def write(
        self,
        output_path: Path,
        open_loop: np.ndarray,
        observations: ObservationSeries,
        window: int,
        non_resampling: Optional[NonResamplingResult] = None,
        resampling: Optional[ResamplingResult] = None,
        time_index: Optional[np.ndarray] = None,
        attrs: Optional[Dict[str, object]] = None,
    ) -> Path:
        """Write particle filter results to a NetCDF file.

        Args:
            output_path: Path to the output NetCDF file.
            (remaining arguments as for ``build_dataset``)

        Returns:
            Path to the written file.
        """
        ds = self.build_dataset(
            open_loop, observations, window,
            non_resampling=non_resampling,
            resampling=resampling,
            time_index=time_index,
            attrs=attrs,
        )

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        encoding = {}
        for var in ds.data_vars:
            encoding[str(var)] = {'zlib': True, 'complevel': 4}

        ds.to_netcdf(output_path, encoding=encoding)
        logger.info("Wrote DA output: %s", output_path)
        return output_path

