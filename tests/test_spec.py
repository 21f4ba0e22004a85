"""Tests for router.yaml schema validation."""

from pathlib import Path

import jsonschema
import pytest
import yaml

from eventrouter.spec.validator import load_schema, validate_router_spec


def _router(**spec: object) -> dict:
    return {
        "apiVersion": "eventrouter.io/v1",
        "kind": "Router",
        "metadata": {"name": "my-router"},
        "spec": {"installation": {"id": "i-1"}, **spec},
    }


def test_all_fixtures_validate() -> None:
    """All fixtures must pass schema validation (keeps fixtures in sync with schema)."""
    fixture_dir = Path(__file__).resolve().parent.parent / "fixtures"
    paths = sorted(fixture_dir.glob("*.yaml"))
    assert paths
    for path in paths:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
        validate_router_spec(data)


def test_minimal_router_is_valid() -> None:
    """Only installation.id is required in spec."""
    validate_router_spec(_router())


def test_missing_api_version() -> None:
    """Missing apiVersion raises ValidationError."""
    data = _router()
    del data["apiVersion"]
    with pytest.raises(jsonschema.ValidationError, match="apiVersion"):
        validate_router_spec(data)


def test_unsupported_version() -> None:
    """Unsupported apiVersion raises ValueError."""
    data = _router()
    data["apiVersion"] = "eventrouter.io/v99"
    with pytest.raises(ValueError, match="Unsupported apiVersion"):
        validate_router_spec(data)


def test_non_mapping_document() -> None:
    """A YAML list or scalar is rejected."""
    with pytest.raises(jsonschema.ValidationError, match="mapping"):
        validate_router_spec(["not", "a", "router"])  # type: ignore[arg-type]


def test_missing_installation_id() -> None:
    """installation.id is required."""
    data = _router()
    data["spec"]["installation"] = {"region": "us-east-1"}
    with pytest.raises(jsonschema.ValidationError, match="spec.installation"):
        validate_router_spec(data)


def test_unknown_keys_are_rejected() -> None:
    """Extra keys anywhere in spec fail validation."""
    with pytest.raises(jsonschema.ValidationError, match="validation failed"):
        validate_router_spec(_router(extra=True))


def test_retry_policy_bounds() -> None:
    """Retry delays must be positive and maxAttempts at least 1."""
    with pytest.raises(jsonschema.ValidationError):
        validate_router_spec(_router(retry={"aws.ecr.onImagePush": {"intervalSeconds": 0}}))
    with pytest.raises(jsonschema.ValidationError):
        validate_router_spec(_router(retry={"aws.ecr.onImagePush": {"maxAttempts": 0}}))
    validate_router_spec(_router(retry={"aws.ecr.onImagePush": {"maxAttempts": None}}))


def test_scheduler_arns_must_look_like_arns() -> None:
    """scheduler.targetArn and roleArn must be ARNs."""
    with pytest.raises(jsonschema.ValidationError, match="targetArn"):
        validate_router_spec(_router(scheduler={"targetArn": "my-lambda"}))


def test_load_schema_v1() -> None:
    """The v1 schema loads and targets draft 2020-12."""
    schema = load_schema("eventrouter.io/v1")
    assert schema["$schema"].endswith("2020-12/schema")
