"""IAM role EventBridge assumes to invoke API destinations."""

from __future__ import annotations

import json
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError
import structlog

from eventrouter.aws.errors import classify_client_error
from eventrouter.errors import AlreadyExistsError

logger = structlog.get_logger(__name__)

INVOKE_POLICY_NAME = "invoke-api-destination"
ROLE_NAME_MAX = 64


def invoker_role_name(name_prefix: str, installation_id: str) -> str:
    """Role names cap at 64 characters, so only the last id segment is used."""
    suffix = installation_id.split("-")[-1]
    return f"{name_prefix}-destination-invoker-{suffix}"[:ROLE_NAME_MAX]


def _trust_policy() -> str:
    return json.dumps(
        {
            "Version": "2012-10-17",
            "Statement": [
                {
                    "Effect": "Allow",
                    "Principal": {"Service": "events.amazonaws.com"},
                    "Action": "sts:AssumeRole",
                }
            ],
        }
    )


def _invoke_policy(account_id: str) -> str:
    return json.dumps(
        {
            "Version": "2012-10-17",
            "Statement": [
                {
                    "Effect": "Allow",
                    "Action": "events:InvokeApiDestination",
                    "Resource": f"arn:aws:events:*:{account_id}:api-destination/*",
                }
            ],
        }
    )


def ensure_invoker_role(
    client: Any,
    role_name: str,
    account_id: str,
    tags: dict[str, str] | None = None,
) -> str:
    """Create (or fetch) the invoker role and (re)attach its inline policy; return its ARN."""
    resource = f"role {role_name}"
    try:
        kwargs: dict[str, Any] = {
            "RoleName": role_name,
            "AssumeRolePolicyDocument": _trust_policy(),
            "Description": "Lets EventBridge rules invoke API destinations",
        }
        if tags:
            kwargs["Tags"] = [{"Key": k, "Value": v} for k, v in sorted(tags.items())]
        role_arn = client.create_role(**kwargs)["Role"]["Arn"]
        logger.info("created invoker role", role=role_name, arn=role_arn)
    except (ClientError, BotoCoreError) as e:
        err = classify_client_error(e, resource=resource)
        if not isinstance(err, AlreadyExistsError):
            raise err from e
        try:
            role_arn = client.get_role(RoleName=role_name)["Role"]["Arn"]
        except (ClientError, BotoCoreError) as get_err:
            raise classify_client_error(get_err, resource=resource) from get_err

    try:
        client.put_role_policy(
            RoleName=role_name,
            PolicyName=INVOKE_POLICY_NAME,
            PolicyDocument=_invoke_policy(account_id),
        )
    except (ClientError, BotoCoreError) as e:
        raise classify_client_error(e, resource=f"policy {INVOKE_POLICY_NAME} on {resource}") from e

    return role_arn
