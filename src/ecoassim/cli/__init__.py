"""Command-line interface for ecoassim."""

from .argument_parser import CLIParser

__all__ = ['CLIParser']
