"""Tests for botocore error classification and the exception tree."""

from botocore.exceptions import ClientError, EndpointConnectionError, NoCredentialsError
import pytest

from eventrouter.aws.errors import classify_client_error, error_code
from eventrouter.errors import (
    AlreadyExistsError,
    FatalError,
    FilterError,
    GatewayError,
    NotFoundError,
    RouterError,
    TransientError,
)


def _client_error(code: str, status: int = 400, message: str = "boom") -> ClientError:
    return ClientError(
        {
            "Error": {"Code": code, "Message": message},
            "ResponseMetadata": {"HTTPStatusCode": status},
        },
        "CreateConnection",
    )


def test_error_code_reads_response_code() -> None:
    """error_code returns the AWS error code from the response."""
    assert error_code(_client_error("ThrottlingException")) == "ThrottlingException"


@pytest.mark.parametrize(
    "code",
    ["ResourceAlreadyExistsException", "EntityAlreadyExists"],
)
def test_already_exists_codes(code: str) -> None:
    """EventBridge and IAM already-exists codes map to AlreadyExistsError."""
    err = classify_client_error(_client_error(code), resource="connection dest-1", region="us-east-1")
    assert isinstance(err, AlreadyExistsError)
    assert err.resource == "connection dest-1"
    assert err.region == "us-east-1"


def test_not_found_message_names_resource() -> None:
    """NotFoundError carries a user-facing 'resource not found: X' message."""
    err = classify_client_error(_client_error("ResourceNotFoundException"), resource="rule r1")
    assert isinstance(err, NotFoundError)
    assert str(err) == "resource not found: rule r1"


def test_throttling_is_transient() -> None:
    """Throttling codes are transient."""
    err = classify_client_error(_client_error("ThrottlingException"))
    assert isinstance(err, TransientError)


def test_5xx_without_known_code_is_transient() -> None:
    """Any 5xx status is transient, whatever the code."""
    err = classify_client_error(_client_error("SomethingOdd", status=503))
    assert isinstance(err, TransientError)


def test_other_4xx_is_fatal_with_code_in_message() -> None:
    """Other 4xx errors are fatal and keep the code and message."""
    err = classify_client_error(_client_error("ValidationException", message="bad pattern"))
    assert isinstance(err, FatalError)
    assert "ValidationException" in str(err)
    assert "bad pattern" in str(err)


def test_connection_errors_are_transient() -> None:
    """Network failures raised by botocore are transient."""
    err = classify_client_error(EndpointConnectionError(endpoint_url="https://events.us-east-1.amazonaws.com"))
    assert isinstance(err, TransientError)


def test_other_botocore_errors_are_fatal() -> None:
    """Non-network botocore errors (e.g. missing credentials) are fatal."""
    err = classify_client_error(NoCredentialsError())
    assert isinstance(err, FatalError)


def test_exception_tree() -> None:
    """Every gateway error is a RouterError; FilterError is a RouterError outside the gateway tree."""
    assert issubclass(GatewayError, RouterError)
    for cls in (AlreadyExistsError, NotFoundError, TransientError, FatalError):
        assert issubclass(cls, GatewayError)
    assert issubclass(FilterError, RouterError)
    assert not issubclass(FilterError, GatewayError)
    assert not hasattr(FilterError("bad shape"), "resource")
