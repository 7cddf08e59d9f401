# src/ecoassim/__init__.py
try:
    from .ecoassim_version import __version__
except ImportError:
    try:
        from importlib.metadata import version, PackageNotFoundError
        __version__ = version("ecoassim")
    except (ImportError, PackageNotFoundError):
        __version__ = "0.0.0"

__all__ = ["__version__"]
