"""Provisioning state machine: NeedsProvisioning -> AwaitingAvailability -> Subscribed.

Each call is one request/response step. The machine reads an immutable
RuleCache snapshot, may call the subscriber, and returns the subscription to
persist plus the commands (scheduled retries, provisioning kickoffs) for the
caller to hand to the platform scheduler. Waiting happens between calls, in
persisted state, never inside one.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Protocol
import uuid

import structlog

from eventrouter.errors import FatalError, RuleNotAvailableError
from eventrouter.routing.cache import RuleCache
from eventrouter.routing.commands import (
    CHECK_DESTINATION_AVAILABILITY,
    CHECK_RULE_AVAILABILITY,
    DEFAULT_RETRY_POLICY,
    KICKOFF_DELAY,
    PROVISION_DESTINATION,
    PROVISION_RULE,
    Command,
    RetryPolicy,
    ScheduleActionCall,
    ScheduleCallback,
)
from eventrouter.routing.models import (
    STAGE_DESTINATION,
    STAGE_RULE,
    EventFilter,
    SubscriptionState,
    TriggerSubscription,
)

logger = structlog.get_logger(__name__)


class Subscriber(Protocol):
    """The platform message bus: subscribes a trigger to a pattern."""

    def subscribe(self, pattern: dict[str, Any]) -> str:
        ...


@dataclass(frozen=True)
class RoutingOutcome:
    """Result of one state-machine step."""

    subscription: TriggerSubscription
    commands: tuple[Command, ...] = ()
    changed: bool = True

    @property
    def retry(self) -> ScheduleCallback | None:
        for command in self.commands:
            if isinstance(command, ScheduleCallback):
                return command
        return None


def new_token() -> str:
    return uuid.uuid4().hex


def ensure_routed(
    event_filter: EventFilter,
    current: TriggerSubscription | None,
    cache: RuleCache,
    subscriber: Subscriber,
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    follow_up: bool = False,
) -> RoutingOutcome:
    """Bring a trigger subscription one step closer to Subscribed.

    Setup calls this with follow_up=False; scheduled checks call it (through
    check_availability) with follow_up=True and the persisted subscription.

    Raises:
        RuleNotAvailableError: follow_up and the policy's attempt limit is reached.
        FatalError: the subscriber returned no subscription id.
    """
    region, source, detail_type = event_filter.region, event_filter.source, event_filter.detail_type
    log = logger.bind(region=region, source=source, detail_type=detail_type)

    if current is not None and current.subscribed and current.filter == event_filter:
        return RoutingOutcome(current, changed=False)

    if current is not None and current.filter != event_filter:
        if current.subscription_id:
            log.info("orphaning stale subscription", subscription_id=current.subscription_id)
        current = None

    if follow_up and current is not None:
        base = current
        attempts = current.attempts + 1
    else:
        base = TriggerSubscription(filter=event_filter, token=new_token())
        attempts = 0

    if cache.is_routed(region, source, detail_type):
        subscription_id = subscriber.subscribe(event_filter.to_pattern())
        if not subscription_id:
            raise FatalError("subscribe returned an empty subscription id", resource=source, region=region)
        log.info("subscribed", subscription_id=subscription_id)
        return RoutingOutcome(
            replace(
                base,
                state=SubscriptionState.SUBSCRIBED,
                subscription_id=str(subscription_id),
                attempts=attempts,
                requested=None,
            )
        )

    if follow_up and policy.exhausted(attempts):
        raise RuleNotAvailableError(
            f"rule not available for {source} '{detail_type}' in {region or 'default region'} "
            f"after {attempts} checks"
        )

    if cache.lookup_destination(region) is None:
        stage = STAGE_DESTINATION
        kickoff = ScheduleActionCall(PROVISION_DESTINATION, {"region": region}, KICKOFF_DELAY)
        check_action = CHECK_DESTINATION_AVAILABILITY
    else:
        stage = STAGE_RULE
        kickoff = ScheduleActionCall(
            PROVISION_RULE,
            {"region": region, "source": source, "detailType": detail_type},
            KICKOFF_DELAY,
        )
        check_action = CHECK_RULE_AVAILABILITY

    # Re-sent on every step that is not ready; provisioning is idempotent.
    log.info("requested provisioning", action=kickoff.action, repeat=base.requested == stage)
    delay = policy.delay_for(attempts)
    commands: list[Command] = [kickoff, ScheduleCallback(check_action, {"token": base.token}, delay)]
    log.info(
        "routing not available yet, checking again",
        check=check_action,
        delay_seconds=delay,
        attempts=attempts,
    )

    return RoutingOutcome(
        replace(
            base,
            state=SubscriptionState.AWAITING_AVAILABILITY,
            subscription_id="",
            attempts=attempts,
            requested=stage,
        ),
        tuple(commands),
    )


def check_availability(
    current: TriggerSubscription | None,
    token: str,
    cache: RuleCache,
    subscriber: Subscriber,
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
) -> RoutingOutcome | None:
    """Follow-up entry point for checkDestinationAvailability / checkRuleAvailability.

    Returns None when the retry chain ends here: the trigger has no metadata
    any more, a newer Setup superseded this chain, or it is already subscribed.
    """
    if current is None:
        logger.warning("dropping availability check, trigger has no routing metadata")
        return None
    if token and token != current.token:
        logger.info("dropping superseded availability check", token=token)
        return None
    if current.subscribed:
        return None
    return ensure_routed(current.filter, current, cache, subscriber, policy, follow_up=True)
