"""Scheduled-retry adapter on EventBridge Scheduler one-time schedules.

Each callback becomes an ``at(...)`` schedule that invokes the host's
callback target (usually a Lambda) with a JSON payload and deletes itself
after it fires. EventBridge Scheduler fires at minute granularity, so short
delays are rounded up by AWS.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
import json
from typing import Any
import uuid

from botocore.exceptions import BotoCoreError, ClientError
import structlog

from eventrouter.aws.errors import classify_client_error
from eventrouter.config import SchedulerConfig

logger = structlog.get_logger(__name__)

KIND_TRIGGER = "trigger"
KIND_INTEGRATION = "integration"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def at_expression(when: datetime) -> str:
    return f"at({when.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%S')})"


class EventBridgeScheduler:
    """Implements the Scheduler protocol for one owner (a trigger or the integration).

    owner is merged into every payload so the callback target can route it,
    e.g. {"integrationId": ..., "triggerId": ...}.
    """

    def __init__(
        self,
        client: Any,
        config: SchedulerConfig,
        owner: dict[str, str],
        name_prefix: str = "eventrouter",
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if not config.target_arn or not config.role_arn:
            raise ValueError("scheduler.targetArn and scheduler.roleArn are required")
        self._client = client
        self._config = config
        self._owner = dict(owner)
        self._name_prefix = name_prefix
        self._clock = clock

    def schedule_callback(self, action: str, parameters: dict[str, Any], delay: float) -> str:
        return self._create(KIND_TRIGGER, action, parameters, delay)

    def schedule_action_call(self, action: str, parameters: dict[str, Any], delay: float) -> str:
        return self._create(KIND_INTEGRATION, action, parameters, delay)

    def _create(self, kind: str, action: str, parameters: dict[str, Any], delay: float) -> str:
        name = f"{self._name_prefix}-{kind}-{uuid.uuid4().hex[:20]}"
        when = self._clock() + timedelta(seconds=delay)
        payload = {**self._owner, "kind": kind, "action": action, "parameters": parameters}
        kwargs: dict[str, Any] = {
            "Name": name,
            "ScheduleExpression": at_expression(when),
            "ScheduleExpressionTimezone": "UTC",
            "FlexibleTimeWindow": {"Mode": "OFF"},
            "ActionAfterCompletion": "DELETE",
            "Target": {
                "Arn": self._config.target_arn,
                "RoleArn": self._config.role_arn,
                "Input": json.dumps(payload, sort_keys=True),
            },
        }
        if self._config.group_name:
            kwargs["GroupName"] = self._config.group_name
        try:
            self._client.create_schedule(**kwargs)
        except (ClientError, BotoCoreError) as e:
            raise classify_client_error(e, resource=f"schedule {name}") from e
        logger.info("scheduled", schedule=name, kind=kind, action=action, delay_seconds=delay)
        return name
