"""Tests for router.yaml loading and validation."""

import os
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from eventrouter.config import (
    AwsClientConfig,
    InstallationConfig,
    RouterConfig,
    create_aws_provider,
    load_router_config,
    normalize_tags,
)
from eventrouter.routing.commands import BOUNDED_RETRY_POLICY, DEFAULT_RETRY_POLICY, RetryPolicy

FIXTURES = Path(__file__).resolve().parent.parent / "fixtures"


def test_router_config_from_file() -> None:
    """The full fixture parses every section."""
    config = RouterConfig.from_file(str(FIXTURES / "router.yaml"))

    assert config.name == "platform-router"
    inst = config.installation
    assert inst.id == "6f1c2a9e-4b7d-4e21-9a55-2f0d8c3b7e41"
    assert inst.account_id == "123456789012"
    assert inst.tags == {"team": "platform", "env": "prod"}
    assert inst.callback_url == (
        "https://hooks.example.com/api/v1/integrations/6f1c2a9e-4b7d-4e21-9a55-2f0d8c3b7e41/events"
    )
    assert config.scheduler is not None
    assert config.scheduler.group_name == "platform-router-retries"
    assert config.aws == AwsClientConfig(max_attempts=2, connect_timeout=3, read_timeout=8)


def test_router_config_defaults() -> None:
    """The minimal fixture falls back to defaults."""
    config = RouterConfig.from_file(str(FIXTURES / "router-minimal.yaml"))

    assert config.installation.region == "us-east-1"
    assert config.installation.name_prefix == "eventrouter"
    assert config.installation.auth_header_name == "X-EventRouter-Secret"
    assert config.scheduler is None
    assert config.aws == AwsClientConfig()
    assert config.retry == {}


def test_retry_policy_override_and_default() -> None:
    """Configured triggers get their override; others keep the given default."""
    config = RouterConfig.from_file(str(FIXTURES / "router.yaml"))

    assert config.retry_policy("aws.codebuild.onBuild", DEFAULT_RETRY_POLICY) == RetryPolicy(5, 15, 20)
    assert config.retry_policy("aws.ecr.onImagePush", BOUNDED_RETRY_POLICY) is BOUNDED_RETRY_POLICY


def test_resource_tags_add_managed_by() -> None:
    """Resource tags always carry managed-by=eventrouter."""
    inst = InstallationConfig(id="i", tags={"team": "platform"})
    assert inst.resource_tags == {"team": "platform", "managed-by": "eventrouter"}


def test_normalize_tags_trims_and_drops_blank_keys() -> None:
    """Blank keys are dropped, values trimmed, later duplicates win."""
    raw = [
        {"key": " team ", "value": " a "},
        {"key": "", "value": "x"},
        {"key": "team", "value": "b"},
    ]
    assert normalize_tags(raw) == {"team": "b"}
    assert normalize_tags(None) == {}


def test_router_config_invalid_spec_fails_validation(tmp_path: Path) -> None:
    """A router.yaml failing the schema raises SystemExit with the validation message."""
    yaml_file = tmp_path / "router.yaml"
    yaml_file.write_text(
        """
apiVersion: eventrouter.io/v1
kind: Router
metadata:
  name: ok-router
spec:
  installation:
    id: i-1
    accountId: "12345"
"""
    )
    with pytest.raises(SystemExit) as exc_info:
        RouterConfig.from_file(str(yaml_file))
    assert "validation failed" in str(exc_info.value).lower()
    assert "accountId" in str(exc_info.value)


def test_router_config_file_not_found() -> None:
    """A missing file raises SystemExit."""
    with pytest.raises(SystemExit):
        RouterConfig.from_file("/nonexistent/router.yaml")


def test_load_router_config_missing_env_var() -> None:
    """ROUTER_YAML_PATH is required."""
    saved = os.environ.pop("ROUTER_YAML_PATH", None)
    try:
        with pytest.raises(SystemExit):
            load_router_config()
    finally:
        if saved is not None:
            os.environ["ROUTER_YAML_PATH"] = saved


def test_load_router_config_reads_env_path() -> None:
    """ROUTER_YAML_PATH pointing at a valid file loads it."""
    with patch.dict(os.environ, {"ROUTER_YAML_PATH": str(FIXTURES / "router-minimal.yaml")}):
        assert load_router_config().name == "minimal"


@patch("eventrouter.config.pulumi_aws.ProviderDefaultTagsArgs")
@patch("eventrouter.config.pulumi_aws.Provider")
def test_create_aws_provider_sets_default_tags(mock_provider: MagicMock, mock_tags: MagicMock) -> None:
    """The Pulumi provider tags everything with the router name and managed-by."""
    config = RouterConfig.from_file(str(FIXTURES / "router.yaml"))

    create_aws_provider(config)

    assert mock_provider.call_args[0][0] == "aws-tagged"
    assert mock_provider.call_args[1]["region"] == "us-east-1"
    tags = mock_tags.call_args[1]["tags"]
    assert tags["service"] == "platform-router"
    assert tags["managed-by"] == "eventrouter"
    assert tags["team"] == "platform"
