"""Tests for the exception hierarchy, constants and timing mixin."""

import logging

import pytest

from ecoassim.core import (
    ConfigurationError,
    DataAcquisitionError,
    DegenerateWeightsError,
    DimensionMismatchError,
    EcoAssimError,
    ModelDefaults,
    TimingMixin,
    UnitConversion,
    ValidationError,
)
from ecoassim.core.exceptions import ecoassim_error_handler, require


class TestHierarchy:

    @pytest.mark.parametrize("exc_cls", [
        ConfigurationError,
        DataAcquisitionError,
        ValidationError,
        DimensionMismatchError,
        DegenerateWeightsError,
    ])
    def test_all_exceptions_subclass_base(self, exc_cls):
        assert issubclass(exc_cls, EcoAssimError)

    def test_dimension_mismatch_is_validation_error(self):
        assert issubclass(DimensionMismatchError, ValidationError)

    def test_degenerate_weights_carries_window(self):
        err = DegenerateWeightsError("all zero", window=3)
        assert err.window == 3
        assert str(err) == "all zero"
        assert DegenerateWeightsError("x").window is None


class TestHelpers:

    def test_require_passes(self):
        require(True, "never raised")

    def test_require_default_type(self):
        with pytest.raises(ValidationError, match="bad"):
            require(False, "bad")

    def test_require_custom_type(self):
        with pytest.raises(ConfigurationError):
            require(False, "bad", ConfigurationError)

    def test_error_handler_wraps_generic(self):
        with pytest.raises(DataAcquisitionError) as exc_info:
            with ecoassim_error_handler("reading", error_type=DataAcquisitionError):
                raise OSError("disk")
        assert isinstance(exc_info.value.__cause__, OSError)

    def test_error_handler_passes_ecoassim_errors(self):
        with pytest.raises(DimensionMismatchError):
            with ecoassim_error_handler("aligning"):
                raise DimensionMismatchError("lengths")

    def test_error_handler_suppresses_when_asked(self):
        with ecoassim_error_handler("optional step", reraise=False):
            raise RuntimeError("ignored")


class TestConstants:

    def test_defaults(self):
        assert ModelDefaults.TIMESTEP_SECONDS == 1800
        assert ModelDefaults.OBS_WINDOW_STEPS == 384
        assert UnitConversion.LAI_CONVERSION == 0.1

    def test_flux_to_pool(self):
        assert UnitConversion.flux_to_pool(1800) == pytest.approx(1e-6 * 12 * 1e-6 * 1e4 * 1800)


class TestTimingMixin:

    def test_logs_duration(self, caplog):
        class Worker(TimingMixin):
            logger = logging.getLogger("ecoassim.test.timing")

        with caplog.at_level(logging.INFO, logger="ecoassim.test.timing"):
            with Worker().time_limit("unit task"):
                pass
        assert "Completed task: unit task" in caplog.text
