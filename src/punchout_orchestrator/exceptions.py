"""Custom exceptions for the PunchOut console."""

from __future__ import annotations


class PunchOutError(Exception):
    """Base exception for all console errors."""

    pass


class ConfigurationError(PunchOutError):
    """Raised for configuration issues (bad YAML, invalid values)."""

    pass


class CustomerNotFoundError(PunchOutError):
    """Raised when no deployed onboarding matches the requested customer."""

    def __init__(self, customer_id: str, environment: str) -> None:
        self.customer_id = customer_id
        self.environment = environment
        super().__init__(
            f"No deployed customer '{customer_id}' in environment '{environment}'"
        )
