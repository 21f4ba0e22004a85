"""EventBridge resource gateway: idempotent create-or-fetch over boto3.

Connection and API destination creation fall back to a describe call when
AWS reports the resource exists already, so concurrent provisioners converge
on the same ARN. PutRule and PutTargets are create-or-replace server-side
and need no fallback.

Only rules carry tags: EventBridge does not tag connections or API
destinations.
"""

from __future__ import annotations

import hashlib
import json
import re
from typing import Any, NoReturn

from botocore.exceptions import BotoCoreError, ClientError
import structlog

from eventrouter.aws.errors import classify_client_error
from eventrouter.errors import AlreadyExistsError, FatalError

logger = structlog.get_logger(__name__)

RULE_NAME_MAX = 64
TARGET_ID_MAX = 64


def destination_name(name_prefix: str, installation_id: str) -> str:
    """Name shared by the connection and API destination of one installation."""
    return _cap(f"{name_prefix}-{installation_id}", RULE_NAME_MAX)


def rule_name(name_prefix: str, installation_id: str, source: str) -> str:
    """Rule name for one (installation, source); capped at 64 characters."""
    slug = re.sub(r"[^A-Za-z0-9_-]+", "-", source).strip("-")
    return _cap(f"{name_prefix}-{installation_id}-{slug}", RULE_NAME_MAX)


def target_id(name_prefix: str) -> str:
    return _cap(f"{name_prefix}-api-destination", TARGET_ID_MAX)


def _cap(name: str, limit: int) -> str:
    if len(name) <= limit:
        return name
    digest = hashlib.sha256(name.encode()).hexdigest()[:8]
    return f"{name[: limit - 9]}-{digest}"


def event_pattern(source: str, detail_types: set[str] | frozenset[str]) -> str:
    return json.dumps(
        {"source": [source], "detail-type": sorted(detail_types)},
        separators=(",", ":"),
    )


def _aws_tags(tags: dict[str, str]) -> list[dict[str, str]]:
    return [{"Key": k, "Value": v} for k, v in sorted(tags.items())]


class ResourceGateway:
    """Create-or-fetch calls against the EventBridge API in one region."""

    def __init__(self, client: Any, region: str, tags: dict[str, str] | None = None) -> None:
        self._client = client
        self.region = region
        self._tags = dict(tags or {})

    def _raise(self, exc: Exception, resource: str) -> NoReturn:
        raise classify_client_error(exc, resource=resource, region=self.region) from exc

    def ensure_connection(self, name: str, auth_header_name: str, auth_secret: str) -> str:
        """Return the ARN of connection name, creating it with API-key auth if needed."""
        resource = f"connection {name}"
        try:
            resp = self._client.create_connection(
                Name=name,
                Description=f"Signed webhook delivery for {name}",
                AuthorizationType="API_KEY",
                AuthParameters={
                    "ApiKeyAuthParameters": {
                        "ApiKeyName": auth_header_name,
                        "ApiKeyValue": auth_secret,
                    }
                },
            )
        except (ClientError, BotoCoreError) as e:
            err = classify_client_error(e, resource=resource, region=self.region)
            if not isinstance(err, AlreadyExistsError):
                raise err from e
            return self._describe_connection(name)

        arn = resp["ConnectionArn"]
        logger.info("created connection", name=name, region=self.region, arn=arn)
        return arn

    def _describe_connection(self, name: str) -> str:
        try:
            resp = self._client.describe_connection(Name=name)
        except (ClientError, BotoCoreError) as e:
            self._raise(e, f"connection {name}")
        return resp["ConnectionArn"]

    def ensure_api_destination(self, name: str, connection_arn: str, callback_url: str) -> str:
        """Return the ARN of API destination name, creating it if needed."""
        resource = f"api destination {name}"
        try:
            resp = self._client.create_api_destination(
                Name=name,
                ConnectionArn=connection_arn,
                InvocationEndpoint=callback_url,
                HttpMethod="POST",
            )
        except (ClientError, BotoCoreError) as e:
            err = classify_client_error(e, resource=resource, region=self.region)
            if not isinstance(err, AlreadyExistsError):
                raise err from e
            return self._describe_api_destination(name)

        arn = resp["ApiDestinationArn"]
        logger.info("created api destination", name=name, region=self.region, arn=arn)
        return arn

    def _describe_api_destination(self, name: str) -> str:
        try:
            resp = self._client.describe_api_destination(Name=name)
        except (ClientError, BotoCoreError) as e:
            self._raise(e, f"api destination {name}")
        return resp["ApiDestinationArn"]

    def ensure_rule(self, name: str, pattern: str, description: str) -> str:
        """Create or replace rule name; returns its ARN."""
        kwargs: dict[str, Any] = {
            "Name": name,
            "EventPattern": pattern,
            "State": "ENABLED",
            "Description": description,
        }
        if self._tags:
            kwargs["Tags"] = _aws_tags(self._tags)
        try:
            resp = self._client.put_rule(**kwargs)
        except (ClientError, BotoCoreError) as e:
            self._raise(e, f"rule {name}")
        return resp["RuleArn"]

    def ensure_target(
        self,
        rule: str,
        target: str,
        destination_arn: str,
        invoker_role_arn: str,
    ) -> None:
        """Point rule at the API destination; re-putting the same target id overwrites it."""
        try:
            resp = self._client.put_targets(
                Rule=rule,
                Targets=[
                    {
                        "Id": target,
                        "Arn": destination_arn,
                        "RoleArn": invoker_role_arn,
                    }
                ],
            )
        except (ClientError, BotoCoreError) as e:
            self._raise(e, f"target {target} on rule {rule}")

        if resp.get("FailedEntryCount", 0):
            entries = resp.get("FailedEntries") or [{}]
            first = entries[0]
            raise FatalError(
                f"failed to put target: {first.get('ErrorCode', '')} {first.get('ErrorMessage', '')}".strip(),
                resource=f"target {target} on rule {rule}",
                region=self.region,
            )
