"""router.yaml configuration loading and validation."""

from dataclasses import dataclass, field
import os
from pathlib import Path
from typing import Any

import jsonschema
import pulumi_aws
import yaml

from eventrouter.routing.commands import RetryPolicy
from eventrouter.spec.validator import validate_router_spec

DEFAULT_NAME_PREFIX = "eventrouter"
DEFAULT_AUTH_HEADER = "X-EventRouter-Secret"
MANAGED_BY_TAG = "managed-by"
MANAGED_BY_VALUE = "eventrouter"


def normalize_tags(raw: list[dict[str, Any]] | None) -> dict[str, str]:
    """Trim keys and values; drop entries with an empty key. Later keys win."""
    tags: dict[str, str] = {}
    for item in raw or []:
        key = str(item.get("key", "")).strip()
        if not key:
            continue
        tags[key] = str(item.get("value", "")).strip()
    return tags


@dataclass
class InstallationConfig:
    """One AWS account/role binding of the integration."""

    id: str
    region: str = "us-east-1"
    account_id: str = ""
    name_prefix: str = DEFAULT_NAME_PREFIX
    webhooks_base_url: str = ""
    auth_header_name: str = DEFAULT_AUTH_HEADER
    tags: dict[str, str] = field(default_factory=dict)

    @property
    def callback_url(self) -> str:
        base = self.webhooks_base_url.rstrip("/")
        return f"{base}/api/v1/integrations/{self.id}/events"

    @property
    def resource_tags(self) -> dict[str, str]:
        """Installation tags plus the managed-by marker used by `eventrouter list`."""
        return {**self.tags, MANAGED_BY_TAG: MANAGED_BY_VALUE}


@dataclass
class RetryPolicyConfig:
    first_delay: float = 5.0
    interval: float = 10.0
    max_attempts: int | None = None

    def to_policy(self) -> RetryPolicy:
        return RetryPolicy(
            first_delay=self.first_delay,
            interval=self.interval,
            max_attempts=self.max_attempts,
        )


@dataclass
class SchedulerConfig:
    """EventBridge Scheduler settings for the scheduled-retry adapter."""

    group_name: str | None = None
    target_arn: str = ""
    role_arn: str = ""


@dataclass
class AwsClientConfig:
    # 1 = no botocore-level retries; recovery happens through scheduled retries.
    max_attempts: int = 1
    connect_timeout: float = 5.0
    read_timeout: float = 10.0


@dataclass
class RouterConfig:
    """Parsed and validated router.yaml configuration."""

    name: str
    raw_spec: dict[str, Any]
    installation: InstallationConfig
    retry: dict[str, RetryPolicyConfig] = field(default_factory=dict)
    scheduler: SchedulerConfig | None = None
    aws: AwsClientConfig = field(default_factory=AwsClientConfig)

    def retry_policy(self, trigger_name: str, default: RetryPolicy) -> RetryPolicy:
        """Return the configured override for trigger_name, else default."""
        override = self.retry.get(trigger_name)
        return override.to_policy() if override else default

    @classmethod
    def from_dict(cls, router: dict[str, Any]) -> "RouterConfig":
        """Build from an already-validated router document."""
        metadata = router["metadata"]
        spec = router["spec"]

        inst = spec["installation"]
        installation = InstallationConfig(
            id=inst["id"],
            region=inst.get("region", "us-east-1"),
            account_id=str(inst.get("accountId", "")),
            name_prefix=inst.get("namePrefix", DEFAULT_NAME_PREFIX),
            webhooks_base_url=inst.get("webhooksBaseUrl", ""),
            auth_header_name=inst.get("authHeaderName", DEFAULT_AUTH_HEADER),
            tags=normalize_tags(inst.get("tags")),
        )

        retry: dict[str, RetryPolicyConfig] = {}
        for trigger_name, r in (spec.get("retry") or {}).items():
            retry[trigger_name] = RetryPolicyConfig(
                first_delay=r.get("firstDelaySeconds", 5.0),
                interval=r.get("intervalSeconds", 10.0),
                max_attempts=r.get("maxAttempts"),
            )

        scheduler = None
        if "scheduler" in spec and spec["scheduler"] is not None:
            s = spec["scheduler"]
            scheduler = SchedulerConfig(
                group_name=s.get("groupName"),
                target_arn=s.get("targetArn", ""),
                role_arn=s.get("roleArn", ""),
            )

        aws = AwsClientConfig()
        if "aws" in spec and spec["aws"] is not None:
            a = spec["aws"]
            aws = AwsClientConfig(
                max_attempts=a.get("maxAttempts", 1),
                connect_timeout=a.get("connectTimeoutSeconds", 5.0),
                read_timeout=a.get("readTimeoutSeconds", 10.0),
            )

        return cls(
            name=metadata["name"],
            raw_spec=spec,
            installation=installation,
            retry=retry,
            scheduler=scheduler,
            aws=aws,
        )

    @classmethod
    def from_file(cls, path: str) -> "RouterConfig":
        """Load and validate router.yaml from file path."""
        if not Path(path).exists():
            raise SystemExit(f"router.yaml not found: {path}")

        with open(path, encoding="utf-8") as f:
            router: dict[str, Any] = yaml.safe_load(f)

        try:
            validate_router_spec(router)
        except jsonschema.ValidationError as e:
            raise SystemExit(str(e)) from e

        return cls.from_dict(router)


def load_router_config() -> RouterConfig:
    """Load router.yaml from ROUTER_YAML_PATH environment variable."""
    path = os.environ.get("ROUTER_YAML_PATH")
    if not path:
        raise SystemExit("ROUTER_YAML_PATH environment variable required")
    if not Path(path).exists():
        raise SystemExit("ROUTER_YAML_PATH must point to router.yaml")
    return RouterConfig.from_file(path)


def create_aws_provider(config: RouterConfig) -> pulumi_aws.Provider:
    """Create AWS provider with default resource tags for host infrastructure."""
    return pulumi_aws.Provider(
        "aws-tagged",
        region=config.installation.region,
        default_tags=pulumi_aws.ProviderDefaultTagsArgs(
            tags={
                **config.installation.tags,
                "service": config.name,
                MANAGED_BY_TAG: MANAGED_BY_VALUE,
            }
        ),
    )
