"""Periodic link-health checker for a link aggregator."""

__version__ = "0.1.0"
