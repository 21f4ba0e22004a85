"""
Event router host infrastructure: provisions from router.yaml the EventBridge
Scheduler group and role that scheduled availability checks run through.
Per-region routing (connections, API destinations, rules) is provisioned at
runtime by the integration, not here.
"""
import pulumi

from eventrouter.config import create_aws_provider, load_router_config
from eventrouter.infra.scheduler import create_retry_scheduler

config = load_router_config()
aws_provider = create_aws_provider(config)
retry_scheduler = create_retry_scheduler(config, aws_provider)

pulumi.export("service_name", config.name)
pulumi.export("installation_id", config.installation.id)
pulumi.export("schedule_group", retry_scheduler.schedule_group.name)
pulumi.export("scheduler_role_arn", retry_scheduler.role.arn)
