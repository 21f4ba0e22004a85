"""Subscription matcher: decide whether an inbound AWS event reaches a trigger."""

from __future__ import annotations

from collections.abc import Mapping
import json
from typing import Any

import structlog

from eventrouter.routing.models import EventFilter

logger = structlog.get_logger(__name__)

_MISSING = object()


def extract_field(detail: Mapping[str, Any], name: str) -> Any:
    """Look up name in detail; ``a.b`` reads one nested level.

    A literal key containing a dot wins over the nested reading.
    """
    if name in detail:
        return detail[name]
    head, sep, tail = name.partition(".")
    if not sep:
        return _MISSING
    parent = detail.get(head)
    if isinstance(parent, Mapping) and tail in parent:
        return parent[tail]
    return _MISSING


def coerce(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value, sort_keys=True, separators=(",", ":"))
    return str(value)


def mismatch_reason(event: Mapping[str, Any], event_filter: EventFilter) -> str | None:
    """Return why event does not match event_filter, or None when it matches."""
    if event_filter.region and event.get("region") != event_filter.region:
        return f"region {event.get('region')!r} != {event_filter.region!r}"
    if event.get("source") != event_filter.source:
        return f"source {event.get('source')!r} != {event_filter.source!r}"
    if event.get("detail-type") != event_filter.detail_type:
        return f"detail-type {event.get('detail-type')!r} != {event_filter.detail_type!r}"

    detail = event.get("detail")
    if not isinstance(detail, Mapping):
        detail = {}

    for name, predicates in event_filter.detail.items():
        if not predicates:
            continue
        value = extract_field(detail, name)
        if value is _MISSING or value is None:
            return f"detail.{name} is missing"
        actual = coerce(value)
        if not any(p.evaluate(actual) for p in predicates):
            return f"detail.{name} {actual!r} does not match any predicate"
    return None


def matches(event: Mapping[str, Any], event_filter: EventFilter) -> bool:
    """Pure match of one EventBridge envelope against a trigger filter.

    Region is checked only when the filter names one; source and detail-type
    are exact; detail predicates are OR within a field and AND across fields.
    """
    return mismatch_reason(event, event_filter) is None


def select(event: Mapping[str, Any], event_filter: EventFilter, **context: Any) -> bool:
    """matches(), logging the reason for a drop at info level."""
    reason = mismatch_reason(event, event_filter)
    if reason is not None:
        logger.info("skipping event", reason=reason, **context)
        return False
    return True
