"""Host infrastructure for scheduled availability checks.

Each retry is a one-time EventBridge Scheduler schedule created at runtime by
EventBridgeScheduler. Those schedules land in the group created here and run
as the role created here, which may only invoke the router's callback target.
"""

from dataclasses import dataclass
import json

import pulumi
import pulumi_aws

from eventrouter.config import RouterConfig, SchedulerConfig

SCHEDULER_PRINCIPAL = "scheduler.amazonaws.com"


@dataclass
class RetrySchedulerResources:
    schedule_group: pulumi_aws.scheduler.ScheduleGroup
    role: pulumi_aws.iam.Role
    policy: pulumi_aws.iam.RolePolicy


def group_name(config: RouterConfig) -> str:
    """Configured scheduler.groupName, else `<router>-retries`."""
    scheduler = config.scheduler or SchedulerConfig()
    return scheduler.group_name or f"{config.name}-retries"


def role_name(config: RouterConfig) -> str:
    """Role named by scheduler.roleArn, so the runtime adapter and the role agree."""
    scheduler = config.scheduler or SchedulerConfig()
    if scheduler.role_arn:
        return scheduler.role_arn.rsplit("/", 1)[-1]
    return f"{config.name}-retry-scheduler"


def trust_policy() -> str:
    return json.dumps(
        {
            "Version": "2012-10-17",
            "Statement": [
                {
                    "Action": "sts:AssumeRole",
                    "Effect": "Allow",
                    "Principal": {"Service": SCHEDULER_PRINCIPAL},
                }
            ],
        }
    )


def invoke_policy(target_arn: str) -> str:
    """lambda:InvokeFunction on the callback target and its versions; any function when unset."""
    resources = [target_arn, f"{target_arn}:*"] if target_arn else ["*"]
    return json.dumps(
        {
            "Version": "2012-10-17",
            "Statement": [
                {
                    "Sid": "InvokeCallbackTarget",
                    "Action": "lambda:InvokeFunction",
                    "Effect": "Allow",
                    "Resource": resources,
                }
            ],
        }
    )


def create_retry_scheduler(config: RouterConfig, aws_provider: pulumi_aws.Provider) -> RetrySchedulerResources:
    """Create the schedule group, the role schedules run as, and its invoke policy."""
    opts = pulumi.ResourceOptions(provider=aws_provider)
    scheduler = config.scheduler or SchedulerConfig()
    if not scheduler.target_arn:
        pulumi.log.warn("scheduler.targetArn is not set; retry role may invoke any Lambda function")

    schedule_group = pulumi_aws.scheduler.ScheduleGroup(
        f"{config.name}_retry_group",
        name=group_name(config),
        opts=opts,
    )
    role = pulumi_aws.iam.Role(
        f"{config.name}_retry_role",
        name=role_name(config),
        assume_role_policy=trust_policy(),
        opts=opts,
    )
    policy = pulumi_aws.iam.RolePolicy(
        f"{config.name}_retry_invoke",
        role=role.name,
        policy=invoke_policy(scheduler.target_arn),
        opts=opts,
    )
    return RetrySchedulerResources(schedule_group, role, policy)
