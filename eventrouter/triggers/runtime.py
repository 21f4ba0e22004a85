"""Trigger entry points shared by every registered trigger type.

The host calls setup() when a trigger is saved, handle_action() when one of
its scheduled callbacks fires, and on_message() for each event the
integration routes to it.
"""

from collections.abc import Iterable, Mapping
from typing import Any

import structlog

from eventrouter.errors import UnknownActionError
from eventrouter.routing.commands import (
    CHECK_DESTINATION_AVAILABILITY,
    CHECK_RULE_AVAILABILITY,
    Command,
    ScheduleActionCall,
    ScheduleCallback,
)
from eventrouter.routing.machine import RoutingOutcome, check_availability, ensure_routed
from eventrouter.routing.matcher import select
from eventrouter.routing.models import TriggerSubscription
from eventrouter.triggers.context import Scheduler, TriggerContext
from eventrouter.triggers.registry import get_trigger

logger = structlog.get_logger(__name__)

CHECK_ACTIONS = (CHECK_DESTINATION_AVAILABILITY, CHECK_RULE_AVAILABILITY)


def apply_commands(commands: Iterable[Command], scheduler: Scheduler) -> None:
    for command in commands:
        if isinstance(command, ScheduleActionCall):
            scheduler.schedule_action_call(command.action, dict(command.parameters), command.delay)
        elif isinstance(command, ScheduleCallback):
            scheduler.schedule_callback(command.action, dict(command.parameters), command.delay)


def _commit(outcome: RoutingOutcome, ctx: TriggerContext) -> TriggerSubscription:
    # Persist first so a callback that fires early sees the new token.
    if outcome.changed:
        ctx.metadata.set(outcome.subscription.to_dict())
    apply_commands(outcome.commands, ctx.scheduler)
    return outcome.subscription


def setup(name: str, configuration: dict[str, Any], ctx: TriggerContext) -> TriggerSubscription:
    """Build the trigger's filter and take the first routing step.

    Re-running setup with an unchanged configuration on a subscribed trigger
    is a no-op. A changed configuration orphans the old subscription.
    """
    trigger = get_trigger(name)
    event_filter = trigger.build_filter(configuration)
    current = TriggerSubscription.from_dict(ctx.metadata.get())
    outcome = ensure_routed(
        event_filter,
        current,
        ctx.rule_cache(),
        ctx.subscriber,
        ctx.retry_policy(name, trigger.policy),
    )
    return _commit(outcome, ctx)


def handle_action(
    name: str,
    action: str,
    parameters: Mapping[str, Any],
    ctx: TriggerContext,
) -> TriggerSubscription | None:
    """Run a scheduled availability check; None when the retry chain ends."""
    if action not in CHECK_ACTIONS:
        raise UnknownActionError(f"unknown action: {action}")

    trigger = get_trigger(name)
    current = TriggerSubscription.from_dict(ctx.metadata.get())
    outcome = check_availability(
        current,
        str(parameters.get("token") or ""),
        ctx.rule_cache(),
        ctx.subscriber,
        ctx.retry_policy(name, trigger.policy),
    )
    if outcome is None:
        return None
    return _commit(outcome, ctx)


def on_message(name: str, event: Mapping[str, Any], ctx: TriggerContext) -> bool:
    """Emit event if it passes the trigger's persisted filter; return whether it did."""
    trigger = get_trigger(name)
    current = TriggerSubscription.from_dict(ctx.metadata.get())
    if current is None:
        logger.warning("dropping event, trigger has no routing metadata", trigger=name)
        return False
    if not select(event, current.filter, trigger=name, trigger_id=ctx.trigger_id):
        return False
    ctx.events.emit(trigger.event_type, dict(event))
    return True
