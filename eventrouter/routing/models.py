"""Routing data model and its persisted (camelCase) representation.

Integration metadata and trigger subscriptions live in platform-owned
key-value storage as plain dicts; every type here round-trips through
``to_dict`` / ``from_dict``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from functools import lru_cache
import re
from typing import Any

from eventrouter.errors import FilterError, MetadataDecodeError

EQUALS = "equals"
NOT_EQUALS = "notEquals"
MATCHES = "matches"
PREDICATE_TYPES = (EQUALS, NOT_EQUALS, MATCHES)


@lru_cache(maxsize=256)
def compile_pattern(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern)


@dataclass(frozen=True)
class Predicate:
    type: str
    value: str

    def __post_init__(self) -> None:
        if self.type not in PREDICATE_TYPES:
            raise FilterError(f"unsupported predicate type: {self.type!r}")
        if not isinstance(self.value, str):
            raise FilterError(f"predicate value must be a string, got {type(self.value).__name__}")
        if self.type == MATCHES:
            try:
                compile_pattern(self.value)
            except re.error as e:
                raise FilterError(f"invalid regular expression {self.value!r}: {e}") from e

    def evaluate(self, actual: str) -> bool:
        if self.type == EQUALS:
            return actual == self.value
        if self.type == NOT_EQUALS:
            return actual != self.value
        return compile_pattern(self.value).search(actual) is not None

    def to_dict(self) -> dict[str, str]:
        return {"type": self.type, "value": self.value}

    @classmethod
    def from_config(cls, raw: Any) -> "Predicate":
        """Accept {"type": ..., "value": ...} or a bare string (equals)."""
        if isinstance(raw, str):
            return cls(EQUALS, raw)
        if isinstance(raw, Mapping) and "type" in raw and "value" in raw:
            return cls(str(raw["type"]), str(raw["value"]))
        raise FilterError(f"unsupported predicate: {raw!r}")


def equals(value: str) -> tuple[Predicate, ...]:
    """Single-equality predicate list; empty value means wildcard."""
    value = value.strip()
    return (Predicate(EQUALS, value),) if value else ()


@dataclass(frozen=True)
class EventFilter:
    """A trigger's narrowed view of the shared event stream.

    detail maps a field name (``a.b`` for one nested level) to the predicates
    that must match it. A field with no predicates matches anything.
    """

    source: str
    detail_type: str
    region: str = ""
    detail: dict[str, tuple[Predicate, ...]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.source:
            raise FilterError("filter source is required")
        if not self.detail_type:
            raise FilterError("filter detail type is required")

    def to_dict(self) -> dict[str, Any]:
        return {
            "region": self.region,
            "source": self.source,
            "detailType": self.detail_type,
            "detail": {
                name: [p.to_dict() for p in predicates]
                for name, predicates in sorted(self.detail.items())
            },
        }

    def to_pattern(self) -> dict[str, Any]:
        """Subscription pattern handed to the platform's message bus."""
        pattern = self.to_dict()
        pattern["detail-type"] = pattern.pop("detailType")
        return pattern

    @classmethod
    def from_dict(cls, data: Any) -> "EventFilter":
        if not isinstance(data, Mapping):
            raise MetadataDecodeError(f"filter must be a mapping, got {type(data).__name__}")
        try:
            raw_detail = data.get("detail") or {}
            if not isinstance(raw_detail, Mapping):
                raise MetadataDecodeError("filter detail must be a mapping")
            detail = {
                str(name): tuple(Predicate.from_config(p) for p in predicates or [])
                for name, predicates in raw_detail.items()
            }
            return cls(
                source=data["source"],
                detail_type=data["detailType"],
                region=data.get("region") or "",
                detail=detail,
            )
        except (KeyError, TypeError, FilterError) as e:
            raise MetadataDecodeError(f"invalid persisted filter: {e}") from e


class SubscriptionState(str, Enum):
    NEEDS_PROVISIONING = "needsProvisioning"
    AWAITING_AVAILABILITY = "awaitingAvailability"
    SUBSCRIBED = "subscribed"


# Stage names recorded in TriggerSubscription.requested
STAGE_DESTINATION = "destination"
STAGE_RULE = "rule"


@dataclass(frozen=True)
class TriggerSubscription:
    """Per-trigger routing state, persisted in trigger metadata."""

    filter: EventFilter
    state: SubscriptionState = SubscriptionState.NEEDS_PROVISIONING
    subscription_id: str = ""
    attempts: int = 0
    requested: str | None = None
    token: str = ""

    @property
    def subscribed(self) -> bool:
        return self.state is SubscriptionState.SUBSCRIBED and bool(self.subscription_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "subscriptionId": self.subscription_id,
            "filter": self.filter.to_dict(),
            "attempts": self.attempts,
            "requested": self.requested,
            "token": self.token,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "TriggerSubscription | None":
        """Decode persisted metadata; empty metadata means no subscription yet."""
        if data is None or data == {}:
            return None
        if not isinstance(data, Mapping):
            raise MetadataDecodeError(f"trigger metadata must be a mapping, got {type(data).__name__}")
        if "filter" not in data or data["filter"] is None:
            raise MetadataDecodeError("trigger metadata is missing its filter")
        try:
            state = SubscriptionState(data.get("state", SubscriptionState.NEEDS_PROVISIONING.value))
            attempts = int(data.get("attempts") or 0)
        except (ValueError, TypeError) as e:
            raise MetadataDecodeError(f"invalid trigger metadata: {e}") from e
        return cls(
            filter=EventFilter.from_dict(data["filter"]),
            state=state,
            subscription_id=str(data.get("subscriptionId") or ""),
            attempts=attempts,
            requested=data.get("requested"),
            token=str(data.get("token") or ""),
        )


@dataclass(frozen=True)
class RoutingRule:
    """One EventBridge rule per (region, source), covering several detail types."""

    region: str
    source: str
    rule_arn: str
    target_id: str
    detail_types: frozenset[str] = frozenset()

    def with_detail_type(self, detail_type: str, rule_arn: str) -> "RoutingRule":
        return replace(self, rule_arn=rule_arn, detail_types=self.detail_types | {detail_type})

    def to_dict(self) -> dict[str, Any]:
        return {
            "ruleArn": self.rule_arn,
            "targetId": self.target_id,
            "detailTypes": sorted(self.detail_types),
        }


@dataclass(frozen=True)
class APIDestination:
    """The signed HTTPS callback EventBridge invokes; one per region."""

    region: str
    connection_arn: str
    api_destination_arn: str

    def to_dict(self) -> dict[str, str]:
        return {
            "connectionArn": self.connection_arn,
            "apiDestinationArn": self.api_destination_arn,
        }


@dataclass(frozen=True)
class IntegrationMetadata:
    """Integration-owned snapshot of provisioned routing infrastructure.

    Instances are immutable; the ``with_*`` methods return updated copies for
    the caller to persist.
    """

    destinations: dict[str, APIDestination] = field(default_factory=dict)
    rules: dict[tuple[str, str], RoutingRule] = field(default_factory=dict)
    invoker_role_arn: str = ""

    def with_destination(self, destination: APIDestination) -> "IntegrationMetadata":
        return replace(self, destinations={**self.destinations, destination.region: destination})

    def with_rule(self, rule: RoutingRule) -> "IntegrationMetadata":
        return replace(self, rules={**self.rules, (rule.region, rule.source): rule})

    def with_invoker_role(self, role_arn: str) -> "IntegrationMetadata":
        return replace(self, invoker_role_arn=role_arn)

    def to_dict(self) -> dict[str, Any]:
        rules: dict[str, dict[str, Any]] = {}
        for (region, source), rule in sorted(self.rules.items()):
            rules.setdefault(region, {})[source] = rule.to_dict()
        data: dict[str, Any] = {
            "eventBridge": {
                "apiDestinations": {
                    region: dest.to_dict() for region, dest in sorted(self.destinations.items())
                },
                "rules": rules,
            },
        }
        if self.invoker_role_arn:
            data["iam"] = {"targetDestinationRoleArn": self.invoker_role_arn}
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "IntegrationMetadata":
        if not data:
            return cls()
        if not isinstance(data, Mapping):
            raise MetadataDecodeError(f"integration metadata must be a mapping, got {type(data).__name__}")
        try:
            eb = data.get("eventBridge") or {}
            destinations = {
                region: APIDestination(
                    region=region,
                    connection_arn=d["connectionArn"],
                    api_destination_arn=d["apiDestinationArn"],
                )
                for region, d in (eb.get("apiDestinations") or {}).items()
            }
            rules: dict[tuple[str, str], RoutingRule] = {}
            for region, by_source in (eb.get("rules") or {}).items():
                for source, r in (by_source or {}).items():
                    rules[(region, source)] = RoutingRule(
                        region=region,
                        source=source,
                        rule_arn=r.get("ruleArn", ""),
                        target_id=r.get("targetId", ""),
                        detail_types=frozenset(r.get("detailTypes") or []),
                    )
            iam = data.get("iam") or {}
        except (KeyError, TypeError, AttributeError) as e:
            raise MetadataDecodeError(f"invalid integration metadata: {e}") from e
        return cls(
            destinations=destinations,
            rules=rules,
            invoker_role_arn=iam.get("targetDestinationRoleArn", ""),
        )
