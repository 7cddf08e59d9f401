# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 ecoassim developers

"""
Custom exception hierarchy for ecoassim.

This module defines a hierarchy of exceptions that provide clear, specific
error types for the different failure modes of the forecasting and
assimilation workflow.
"""

import logging
from contextlib import contextmanager
from typing import Optional


class EcoAssimError(Exception):
    """
    Base exception for all ecoassim-specific errors.

    All custom exceptions in ecoassim should inherit from this class.
    This allows catching all ecoassim errors with a single except clause.
    """
    pass


class ConfigurationError(EcoAssimError):
    """
    Configuration-related errors.

    Raised when:
    - Configuration file cannot be loaded or parsed
    - Configuration values fail validation
    """
    pass


class DataAcquisitionError(EcoAssimError):
    """
    Forcing or observation data cannot be loaded.

    Raised when:
    - Forcing or observation table is missing
    - Required columns are absent from a table
    """
    pass


class ValidationError(EcoAssimError):
    """
    Data or parameter validation failures.

    Raised when:
    - Allocation fractions leave the simplex
    - Process-error standard deviations are negative
    - Window sizes or quantile probabilities are invalid
    - Input arrays are empty
    """
    pass


class DimensionMismatchError(ValidationError):
    """
    Array sizes disagree at an interface boundary.

    Raised when:
    - Ensemble state and parameter record have different member counts
    - Forcing is shorter than the requested horizon
    - Observation series length differs from the number of windows
    """
    pass


class DegenerateWeightsError(EcoAssimError):
    """
    All resampling weights are zero or numerically indistinguishable from zero.

    Raised by the resampling particle filter instead of silently falling
    back to uniform weights. The ensemble held by the filter is left as it
    was before the failed analysis step.

    Attributes:
        window: Index of the observation window where the failure occurred.
    """

    def __init__(self, message: str, window: Optional[int] = None):
        super().__init__(message)
        self.window = window


# =============================================================================
# Validation Helpers
# =============================================================================

def require(condition: bool, message: str, error_type: type = None) -> None:
    """
    Validate a condition, raising an exception if it fails.

    Args:
        condition: The condition that must be True
        message: Error message if condition is False
        error_type: Exception type to raise (default: ValidationError)

    Raises:
        ValidationError (or specified error_type) if condition is False
    """
    if error_type is None:
        error_type = ValidationError
    if not condition:
        raise error_type(message)


@contextmanager
def ecoassim_error_handler(
    operation: str,
    logger: Optional[logging.Logger] = None,
    reraise: bool = True,
    error_type: type = EcoAssimError
):
    """
    Context manager for standardized error handling.

    ecoassim errors are logged and re-raised as-is; anything else is
    wrapped in ``error_type``.

    Args:
        operation: Description of the operation being performed (for logging)
        logger: Logger instance for error messages. If None, errors are not logged.
        reraise: Whether to re-raise the exception after handling (default: True)
        error_type: ecoassim exception type to convert generic exceptions to

    Example:
        >>> with ecoassim_error_handler("loading forcing", logger, error_type=DataAcquisitionError):
        ...     forcing = load_forcing(path)
    """
    try:
        yield
    except EcoAssimError:
        if logger:
            logger.error(f"Error during {operation}", exc_info=True)
        if reraise:
            raise
    except Exception as e:
        if logger:
            logger.error(f"Error during {operation}: {e}", exc_info=True)
        if reraise:
            raise error_type(f"Failed during {operation}: {e}") from e


__all__ = [
    'EcoAssimError',
    'ConfigurationError',
    'DataAcquisitionError',
    'ValidationError',
    'DimensionMismatchError',
    'DegenerateWeightsError',
    'require',
    'ecoassim_error_handler',
]
