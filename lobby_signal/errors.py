class InvalidArgumentError(ValueError):
    """Malformed request to the statistics utility (e.g. percentile outside 0-100)."""


class PrivacyViolationError(AssertionError):
    """A brand-facing payload carried identifying fields or a sub-threshold bucket."""
