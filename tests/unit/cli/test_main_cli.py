"""Tests for the command-line entry point."""

import pytest

from ecoassim.cli import CLIParser
from ecoassim.main_cli import main


@pytest.fixture
def config_file(tmp_path, forcing_csv, observation_csv_factory):
    obs_csv = observation_csv_factory([4.0, 4.1, 4.0, 4.2], [0.66] * 4, [0, 0, 1, 0])
    path = tmp_path / "config.yaml"
    path.write_text(
        "EXPERIMENT_ID: cli\n"
        f"FORCING_PATH: {forcing_csv}\n"
        f"OBSERVATIONS_PATH: {obs_csv}\n"
        f"OUTPUT_DIR: {tmp_path / 'out'}\n"
        "PF_ENSEMBLE_SIZE: 8\n"
        "OBS_WINDOW_STEPS: 24\n"
    )
    return path


class TestParser:

    def test_run_overrides(self):
        args = CLIParser().parse_args(
            ['run', '--config', 'c.yaml', '--seed', '5', '--ensemble-size', '20']
        )
        assert args.command == 'run'
        assert args.seed == 5
        assert args.ensemble_size == 20
        assert args.debug is False

    def test_config_required(self):
        with pytest.raises(SystemExit):
            CLIParser().parse_args(['validate'])


class TestMain:

    def test_validate(self, config_file, capsys):
        assert main(['validate', '--config', str(config_file)]) == 0
        assert "Configuration valid" in capsys.readouterr().out

    def test_run_writes_results(self, config_file, tmp_path, capsys):
        exit_code = main(['run', '--config', str(config_file), '--seed', '11'])
        assert exit_code == 0
        assert (tmp_path / 'out' / 'cli' / 'data_assimilation' / 'cli_pf_results.nc').exists()
        assert "Results written to" in capsys.readouterr().out

    def test_output_dir_override(self, config_file, tmp_path):
        other = tmp_path / 'elsewhere'
        assert main(['run', '--config', str(config_file), '--seed', '3',
                     '--output-dir', str(other)]) == 0
        assert (other / 'cli' / 'data_assimilation' / 'cli_pf_results.nc').exists()

    def test_missing_config(self, tmp_path, capsys):
        assert main(['validate', '--config', str(tmp_path / 'absent.yaml')]) == 1
        assert "Error:" in capsys.readouterr().err

    def test_invalid_config(self, tmp_path, capsys):
        path = tmp_path / "bad.yaml"
        path.write_text("PF_ENSEMBLE_SIZE: 0\n")
        assert main(['validate', '--config', str(path)]) == 1
