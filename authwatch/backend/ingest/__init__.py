"""
ingest/__init__.py

Public API for the ingest sub-package.
"""

from .parser import classify_geo, parse_status, parse_submission

__all__ = ["classify_geo", "parse_status", "parse_submission"]
