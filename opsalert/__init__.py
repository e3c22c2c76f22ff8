"""Operational alerting and health-aggregation engine."""

__version__ = "0.1.0"
