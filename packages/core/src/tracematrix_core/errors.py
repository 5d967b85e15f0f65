"""Exception taxonomy for the traceability engine.

Analyzer components never raise on well-formed input. Every error
originates at one of two boundaries: request validation (before any fetch)
or tracker I/O.
"""

from __future__ import annotations


class TraceabilityError(Exception):
    """Base class for all traceability errors."""


class ConfigurationError(TraceabilityError):
    """Required context (owner, repository, token) is missing."""


class RequestValidationError(TraceabilityError):
    """A filter, source kind, or option value is malformed."""


class NotFoundError(TraceabilityError):
    """The requested repository or resource does not exist."""

    def __init__(self, resource: str, repository: str) -> None:
        self.resource = resource
        self.repository = repository
        super().__init__(f"{resource} not found in repository {repository}")


class PermissionDeniedError(TraceabilityError):
    """The credentials lack the scope needed to read a resource."""

    def __init__(self, resource: str, repository: str, status_code: int) -> None:
        self.resource = resource
        self.repository = repository
        self.status_code = status_code
        super().__init__(
            f"Access to {resource} in {repository} was denied (HTTP {status_code}). "
            "Check that GITHUB_TOKEN is set and has the 'repo' scope "
            "(or 'public_repo' for public repositories)."
        )


class UpstreamError(TraceabilityError):
    """The tracker API or the network failed. Never retried."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)
