"""Error taxonomy for gateway calls, persisted metadata, and retry chains."""

from __future__ import annotations


class RouterError(Exception):
    """Base class for every error raised by eventrouter."""


class GatewayError(RouterError):
    """A provisioning call against AWS failed.

    resource names the AWS resource being created or described; region is the
    region the call was made in (empty for global services such as IAM).
    """

    def __init__(self, message: str, resource: str = "", region: str = "") -> None:
        super().__init__(message)
        self.resource = resource
        self.region = region


class AlreadyExistsError(GatewayError):
    """The resource exists already. Callers fall back to a describe call."""


class NotFoundError(GatewayError):
    """The referenced resource does not exist."""

    def __init__(self, message: str = "", resource: str = "", region: str = "") -> None:
        super().__init__(message or f"resource not found: {resource}", resource, region)


class TransientError(GatewayError):
    """Throttling, 5xx, or network failure. The next scheduled retry recovers."""


class FatalError(GatewayError):
    """Non-retryable failure (4xx other than already-exists / not-found)."""


class FilterError(RouterError):
    """A subscription filter or trigger configuration has an unsupported shape.

    Fatal like FatalError (never retried) but raised before any AWS call, so it
    carries no resource or region.
    """


class MetadataDecodeError(RouterError):
    """Persisted trigger or integration metadata could not be decoded."""


class RuleNotAvailableError(RouterError):
    """Routing did not become available within the retry policy's attempt limit."""


class UnknownActionError(RouterError):
    """A scheduled action name is not handled by the receiver."""
