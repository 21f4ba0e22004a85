"""Trigger registry: one filter builder per trigger type."""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from eventrouter.errors import FilterError
from eventrouter.routing.commands import DEFAULT_RETRY_POLICY, RetryPolicy
from eventrouter.routing.models import EventFilter, Predicate


class FilterBuilder(Protocol):
    """Turns a trigger's configuration into the filter it subscribes with."""

    def __call__(self, configuration: dict[str, Any]) -> EventFilter:
        ...


@dataclass
class TriggerDef:
    """Registered trigger: filter builder, routing key, and retry policy."""

    name: str
    build_filter: Callable[[dict[str, Any]], EventFilter]
    source: str
    detail_type: str
    policy: RetryPolicy
    event_type: str


TRIGGERS: dict[str, TriggerDef] = {}


def register(
    name: str,
    source: str,
    detail_type: str,
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    event_type: str | None = None,
) -> Callable[[FilterBuilder], FilterBuilder]:
    """Decorator to register a trigger's filter builder in TRIGGERS.

    event_type is the payload type emitted on a match; it defaults to the
    trigger name.
    """

    def decorator(fn: FilterBuilder) -> FilterBuilder:
        TRIGGERS[name] = TriggerDef(
            name=name,
            build_filter=fn,
            source=source,
            detail_type=detail_type,
            policy=policy,
            event_type=event_type or name,
        )
        return fn

    return decorator


def get_trigger(name: str) -> TriggerDef:
    """Look up a registered trigger; KeyError lists the known names."""
    if name not in TRIGGERS:
        available = ", ".join(sorted(TRIGGERS)) or "(none)"
        raise KeyError(f"unknown trigger: {name!r}. Available triggers: {available}")
    return TRIGGERS[name]


def require_field(configuration: dict[str, Any], key: str) -> str:
    """Return a non-blank configuration value or raise FilterError."""
    value = str(configuration.get(key) or "").strip()
    if not value:
        raise FilterError(f"{key} is required")
    return value


def predicate_list(raw: Any) -> tuple[Predicate, ...]:
    """Decode a configured predicate list; None or [] is a wildcard."""
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise FilterError(f"expected a list of predicates, got {type(raw).__name__}")
    return tuple(Predicate.from_config(p) for p in raw)
