"""Headline harvester: multi-source headline extraction with persistent dedup."""

__version__ = "0.3.0"
