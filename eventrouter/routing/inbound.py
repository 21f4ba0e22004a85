"""Inbound webhook dispatch for events delivered by API destinations.

EventBridge sends the connection's API key in a header on every call. The
body is one EventBridge envelope; it is offered to every subscription of the
integration and delivered to those whose pattern matches.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
import hmac
import json
from typing import Any, Protocol

import structlog

from eventrouter.errors import MetadataDecodeError
from eventrouter.routing.matcher import matches
from eventrouter.routing.models import EventFilter

logger = structlog.get_logger(__name__)


class IntegrationSubscription(Protocol):
    """A subscription created through Subscriber.subscribe, as listed by the host."""

    @property
    def pattern(self) -> Mapping[str, Any]:
        ...

    def send_message(self, message: dict[str, Any]) -> None:
        ...


@dataclass(frozen=True)
class DispatchResult:
    status: int
    delivered: int = 0
    message: str = ""


def filter_from_pattern(pattern: Mapping[str, Any]) -> EventFilter:
    """Inverse of EventFilter.to_pattern."""
    data = dict(pattern)
    if "detail-type" in data:
        data["detailType"] = data.pop("detail-type")
    return EventFilter.from_dict(data)


def dispatch_event(
    headers: Mapping[str, str],
    body: bytes | str,
    secret: str | None,
    subscriptions: Iterable[IntegrationSubscription],
    header_name: str,
) -> DispatchResult:
    """Authenticate one delivery and fan it out to matching subscriptions.

    Returns 400 for a missing header or unparseable body, 403 for a wrong
    key, 200 otherwise (even when nothing matched).
    """
    lowered = {k.lower(): v for k, v in headers.items()}
    api_key = lowered.get(header_name.lower(), "")
    if not api_key:
        return DispatchResult(400, message=f"missing {header_name} header")
    if not secret or not hmac.compare_digest(api_key.encode(), secret.encode()):
        return DispatchResult(403, message=f"invalid {header_name} header")

    try:
        event = json.loads(body)
    except (TypeError, ValueError) as e:
        return DispatchResult(400, message=f"error parsing request body: {e}")
    if not isinstance(event, dict):
        return DispatchResult(400, message="request body must be a JSON object")

    delivered = 0
    for subscription in subscriptions:
        try:
            event_filter = filter_from_pattern(subscription.pattern)
        except MetadataDecodeError as e:
            logger.warning("skipping subscription with invalid pattern", error=str(e))
            continue
        if not matches(event, event_filter):
            continue
        try:
            subscription.send_message(event)
        except Exception:
            # One failing subscriber must not block delivery to the rest.
            logger.exception("error sending message to subscription", source=event.get("source"))
            continue
        delivered += 1

    logger.info(
        "dispatched event",
        source=event.get("source"),
        detail_type=event.get("detail-type"),
        delivered=delivered,
    )
    return DispatchResult(200, delivered=delivered)
