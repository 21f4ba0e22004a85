"""Trigger execution context: the host platform's collaborators, as protocols."""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

from eventrouter.config import RouterConfig
from eventrouter.routing.cache import RuleCache
from eventrouter.routing.commands import RetryPolicy
from eventrouter.routing.machine import Subscriber

__all__ = [
    "EventSink",
    "MetadataStore",
    "Scheduler",
    "SecretStore",
    "Subscriber",
    "TriggerContext",
]


class Scheduler(Protocol):
    """Delayed re-invocation primitive supplied by the host."""

    def schedule_callback(self, action: str, parameters: dict[str, Any], delay: float) -> Any:
        ...

    def schedule_action_call(self, action: str, parameters: dict[str, Any], delay: float) -> Any:
        ...


class MetadataStore(Protocol):
    """Trigger-scoped key-value storage, last write wins."""

    def get(self) -> Any:
        ...

    def set(self, value: Any) -> None:
        ...


class EventSink(Protocol):
    def emit(self, event_type: str, payload: dict[str, Any]) -> None:
        ...


class SecretStore(Protocol):
    """Integration-scoped secrets; get_secret returns None when unset."""

    def get_secret(self, name: str) -> str | None:
        ...

    def set_secret(self, name: str, value: str) -> None:
        ...


@dataclass
class TriggerContext:
    """Context passed to trigger entry points: storage, scheduler, bus, and emitted events."""

    metadata: MetadataStore
    scheduler: Scheduler
    subscriber: Subscriber
    integration_metadata: Callable[[], Any]
    events: EventSink
    config: RouterConfig | None = None
    trigger_id: str = ""
    _cache: RuleCache | None = field(default=None, repr=False)

    def rule_cache(self) -> RuleCache:
        """RuleCache over the integration metadata as of this invocation."""
        if self._cache is None:
            self._cache = RuleCache.from_raw(self.integration_metadata())
        return self._cache

    def retry_policy(self, trigger_name: str, default: RetryPolicy) -> RetryPolicy:
        if self.config is None:
            return default
        return self.config.retry_policy(trigger_name, default)
