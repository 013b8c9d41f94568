"""
Error taxonomy.

Degenerate statistics never raise (they return a status). Exceptions here
describe domain-source failures; the aggregator classifies them as transient
(retry) or permanent (report immediately).
"""

from typing import Optional


class ExecSightError(Exception):
    """Base class for all ExecSight errors."""
    pass


class DomainFetchError(ExecSightError):
    """A domain source failed to produce data."""

    def __init__(self, message: str, domain: Optional[str] = None):
        self.domain = domain
        super().__init__(message)


class TransientSourceError(DomainFetchError):
    """Timeout or overloaded backend; likely to succeed on retry."""
    pass


class PermanentSourceError(DomainFetchError):
    """Retrying will not help (bad credentials, invalid request)."""
    pass


class PermissionDeniedError(PermanentSourceError):
    """The user is not allowed to read this domain."""
    pass


class ScopeViolationError(PermanentSourceError):
    """A source returned data for a different user or domain than requested."""

    def __init__(
        self,
        message: str,
        domain: Optional[str] = None,
        expected: Optional[str] = None,
        actual: Optional[str] = None,
    ):
        self.expected = expected
        self.actual = actual
        super().__init__(message, domain=domain)
