"""
ecoassim CLI Argument Parser.

Provides the command-line parser with one subcommand per action:

    - run: Execute the assimilation workflow from a configuration file
    - validate: Load and validate a configuration file without running
"""

import argparse
from typing import List, Optional

try:
    from ecoassim.ecoassim_version import __version__
except ImportError:
    __version__ = "0+unknown"


class CLIParser:
    """
    Main CLI parser with subcommand architecture.

    Attributes:
        common_parser: Parent parser with global options (--config, --debug)
        parser: Main argument parser with all subcommands registered
    """

    def __init__(self):
        """Initialize the CLI parser with common options and all subcommands."""
        self.common_parser = self._create_common_parser()
        self.parser = self._create_parser()

    def _create_common_parser(self) -> argparse.ArgumentParser:
        """Create a parent parser with common arguments."""
        parser = argparse.ArgumentParser(add_help=False)
        parser.add_argument('--config', type=str, required=True,
                            help='Path to YAML configuration file')
        parser.add_argument('--debug', action='store_true',
                            help='Enable debug output')
        return parser

    def _create_parser(self) -> argparse.ArgumentParser:
        """Create the main parser with global options and subparsers."""
        from .commands import run_command, validate_command

        parser = argparse.ArgumentParser(
            prog='ecoassim',
            description='Ensemble forecasting and particle filter assimilation of LAI',
        )
        parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

        subparsers = parser.add_subparsers(dest='command', required=True)

        run_parser = subparsers.add_parser(
            'run', parents=[self.common_parser],
            help='Run the assimilation workflow',
        )
        run_parser.add_argument('--output-dir', type=str, dest='output_dir',
                                help='Override OUTPUT_DIR')
        run_parser.add_argument('--seed', type=int,
                                help='Override PF_SEED')
        run_parser.add_argument('--ensemble-size', type=int, dest='ensemble_size',
                                help='Override PF_ENSEMBLE_SIZE')
        run_parser.set_defaults(func=run_command)

        validate_parser = subparsers.add_parser(
            'validate', parents=[self.common_parser],
            help='Validate a configuration file',
        )
        validate_parser.set_defaults(func=validate_command)

        return parser

    def parse_args(self, args: Optional[List[str]] = None) -> argparse.Namespace:
        """Parse command-line arguments (``sys.argv`` when ``args`` is None)."""
        return self.parser.parse_args(args)
