"""Alerting engine exceptions."""

from __future__ import annotations


class AlertingError(Exception):
    """Base exception for alerting engine errors."""


class InvalidRuleError(AlertingError):
    """An alert rule is misconfigured (raised at load time)."""


class InvalidAlertInputError(AlertingError, ValueError):
    """A lifecycle call received malformed input."""


class AlertManagerClosedError(AlertingError):
    """The alert manager is shutting down and rejects further writes."""
