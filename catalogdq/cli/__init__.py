"""CLI interface for the catalogdq data-quality core.

This package provides command-line access to bulk import, row validation and
duplicate detection over tabular files, plus configuration checks.
"""
