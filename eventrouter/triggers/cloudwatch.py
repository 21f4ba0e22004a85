"""CloudWatch On Alarm: alarm state transitions."""

from typing import Any

from eventrouter.errors import FilterError
from eventrouter.routing.models import EventFilter, equals
from eventrouter.triggers.registry import predicate_list, register, require_field

SOURCE = "aws.cloudwatch"
DETAIL_TYPE_ALARM_STATE_CHANGE = "CloudWatch Alarm State Change"

ALARM_STATES = ("OK", "ALARM", "INSUFFICIENT_DATA")
DEFAULT_STATE = "ALARM"


@register(
    "aws.cloudwatch.onAlarm",
    source=SOURCE,
    detail_type=DETAIL_TYPE_ALARM_STATE_CHANGE,
    event_type="aws.cloudwatch.alarm",
)
def on_alarm(configuration: dict[str, Any]) -> EventFilter:
    """Match alarms entering state, optionally narrowed by alarm-name predicates.

    configuration keys:
        region: required.
        state: OK, ALARM or INSUFFICIENT_DATA (default ALARM).
        alarms: predicate list on the alarm name; empty matches every alarm.
    """
    state = str(configuration.get("state") or DEFAULT_STATE).strip().upper()
    if state not in ALARM_STATES:
        raise FilterError(f"unsupported alarm state: {state!r}")
    return EventFilter(
        source=SOURCE,
        detail_type=DETAIL_TYPE_ALARM_STATE_CHANGE,
        region=require_field(configuration, "region"),
        detail={
            "state.value": equals(state),
            "alarmName": predicate_list(configuration.get("alarms")),
        },
    )
