"""Recruiting partner portal backend: candidate reconciliation, duplicate detection and contact enrichment."""

__version__ = "0.1.0"
