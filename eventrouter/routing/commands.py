"""Outbound commands emitted by the provisioning state machine.

The state machine never sleeps and never calls the scheduler itself. It
returns these commands and the trigger runtime hands them to the host
platform's scheduler.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

CHECK_DESTINATION_AVAILABILITY = "checkDestinationAvailability"
CHECK_RULE_AVAILABILITY = "checkRuleAvailability"
PROVISION_DESTINATION = "provisionDestination"
PROVISION_RULE = "provisionRule"

KICKOFF_DELAY = 1.0


@dataclass(frozen=True)
class RetryPolicy:
    """Fixed-interval follow-up schedule for one trigger type.

    max_attempts=None retries until routing becomes available.
    """

    first_delay: float = 5.0
    interval: float = 10.0
    max_attempts: int | None = None

    def delay_for(self, attempts: int) -> float:
        """Delay before the next check, given checks already performed."""
        return self.first_delay if attempts == 0 else self.interval

    def exhausted(self, attempts: int) -> bool:
        return self.max_attempts is not None and attempts >= self.max_attempts


DEFAULT_RETRY_POLICY = RetryPolicy()
BOUNDED_RETRY_POLICY = RetryPolicy(first_delay=10.0, interval=10.0, max_attempts=6)


@dataclass(frozen=True)
class ScheduleCallback:
    """Re-invoke this trigger's action after delay seconds."""

    action: str
    parameters: dict[str, Any] = field(default_factory=dict)
    delay: float = 0.0


@dataclass(frozen=True)
class ScheduleActionCall:
    """Ask the integration (one level up) to run action after delay seconds."""

    action: str
    parameters: dict[str, Any] = field(default_factory=dict)
    delay: float = KICKOFF_DELAY


Command = ScheduleCallback | ScheduleActionCall
