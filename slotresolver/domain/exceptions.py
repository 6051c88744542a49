"""
Domain-specific exception hierarchy for slot resolution.
"""


class SlotResolverError(Exception):
    """Base class for all application-level errors."""


class UpstreamUnavailable(SlotResolverError):
    """Raised when the slot provider or the rule store cannot be read."""


class RateLimited(UpstreamUnavailable):
    """Raised when an upstream answers with a rate-limit signal (HTTP 429)."""


class InvalidRequest(SlotResolverError):
    """Raised when a request identifier or parameter is missing or malformed."""


class ResolutionTimeout(SlotResolverError):
    """Raised when the caller's deadline elapses before collaborators answer."""


class RuleParseWarning(SlotResolverError):
    """
    Raised by rule-row builders when one row cannot be read.

    Never escapes a resolution: the rule set builder logs it and treats the
    row as inapplicable.
    """
