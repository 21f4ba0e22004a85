"""Map botocore exceptions onto the eventrouter error taxonomy."""

from __future__ import annotations

from botocore.exceptions import (
    ClientError,
    ConnectionError as BotoConnectionError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)

from eventrouter.errors import (
    AlreadyExistsError,
    FatalError,
    GatewayError,
    NotFoundError,
    TransientError,
)

ALREADY_EXISTS_CODES = frozenset(
    {
        "ResourceAlreadyExistsException",
        "EntityAlreadyExists",
    }
)
NOT_FOUND_CODES = frozenset(
    {
        "ResourceNotFoundException",
        "NoSuchEntity",
        "NotFoundException",
    }
)
TRANSIENT_CODES = frozenset(
    {
        "ThrottlingException",
        "Throttling",
        "TooManyRequestsException",
        "RequestLimitExceeded",
        "InternalException",
        "InternalFailure",
        "ServiceUnavailable",
        "ServiceUnavailableException",
        "ServiceFailure",
        "ConcurrentModificationException",
    }
)


def error_code(exc: ClientError) -> str:
    return exc.response.get("Error", {}).get("Code", "")


def classify_client_error(
    exc: Exception,
    resource: str = "",
    region: str = "",
) -> GatewayError:
    """Translate a botocore exception into a GatewayError subclass.

    The returned error is not raised; callers decide whether to swallow it
    (already-exists) or raise it with ``from exc``.
    """
    if isinstance(exc, ClientError):
        code = error_code(exc)
        message = exc.response.get("Error", {}).get("Message", "") or str(exc)
        status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0)
        if code in ALREADY_EXISTS_CODES:
            return AlreadyExistsError(message, resource=resource, region=region)
        if code in NOT_FOUND_CODES:
            return NotFoundError(resource=resource, region=region)
        if code in TRANSIENT_CODES or (isinstance(status, int) and status >= 500):
            return TransientError(message, resource=resource, region=region)
        return FatalError(f"{code or 'error'}: {message}", resource=resource, region=region)

    if isinstance(
        exc,
        (BotoConnectionError, EndpointConnectionError, ConnectTimeoutError, ReadTimeoutError),
    ):
        return TransientError(str(exc), resource=resource, region=region)
    return FatalError(str(exc), resource=resource, region=region)
