# src/ecoassim/models/__init__.py
"""Ecosystem process models."""
