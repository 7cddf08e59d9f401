"""
Command handlers for the ecoassim CLI.

Each handler takes the parsed argument namespace and returns an exit code.
"""

import logging
from argparse import Namespace
from typing import Any, Dict

from ecoassim.core.config import load_config

LOG_FORMAT = '[%(asctime)s] [%(levelname)s] [%(name)s] - %(message)s'

EXIT_SUCCESS = 0
EXIT_FAILURE = 1


def setup_logging(debug: bool = False) -> None:
    """Configure the root logger for command-line use."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format=LOG_FORMAT,
        force=True,
    )


def _cli_overrides(args: Namespace) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if getattr(args, 'output_dir', None):
        overrides['OUTPUT_DIR'] = args.output_dir
    if getattr(args, 'seed', None) is not None:
        overrides['PF_SEED'] = args.seed
    if getattr(args, 'ensemble_size', None) is not None:
        overrides['PF_ENSEMBLE_SIZE'] = args.ensemble_size
    return overrides


def run_command(args: Namespace) -> int:
    """
    Execute: ecoassim run --config CONFIG

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    from ecoassim.data_assimilation.da_manager import DataAssimilationManager

    setup_logging(args.debug)
    logger = logging.getLogger('ecoassim')

    config = load_config(args.config, overrides=_cli_overrides(args))
    manager = DataAssimilationManager(config, logger=logger)
    output_path = manager.run_data_assimilation()

    print(f"Results written to {output_path}")
    return EXIT_SUCCESS


def validate_command(args: Namespace) -> int:
    """
    Execute: ecoassim validate --config CONFIG

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    setup_logging(args.debug)

    config = load_config(args.config)
    pf = config.particle_filter
    print(f"Configuration valid: {args.config}")
    print(f"  experiment:     {config.experiment_id}")
    print(f"  ensemble size:  {pf.ensemble_size}")
    print(f"  window steps:   {config.observations.window_steps}")
    print(f"  resampling:     {'on' if pf.resample else 'off'}")
    return EXIT_SUCCESS
