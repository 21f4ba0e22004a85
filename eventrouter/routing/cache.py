"""Rule cache: answers routing questions from integration metadata, without I/O."""

from __future__ import annotations

from typing import Any

from eventrouter.routing.models import APIDestination, IntegrationMetadata, RoutingRule


class RuleCache:
    """Read model over one IntegrationMetadata snapshot.

    The cache never mutates; it reflects the last provisioning state the
    integration persisted. Build a new cache from fresh metadata on every
    invocation.
    """

    def __init__(self, metadata: IntegrationMetadata | None = None) -> None:
        self._metadata = metadata or IntegrationMetadata()

    @classmethod
    def from_raw(cls, raw: Any) -> "RuleCache":
        """Seed from the integration's persisted metadata dict."""
        return cls(IntegrationMetadata.from_dict(raw))

    @property
    def metadata(self) -> IntegrationMetadata:
        return self._metadata

    @property
    def invoker_role_arn(self) -> str:
        return self._metadata.invoker_role_arn

    def lookup_rule(self, region: str, source: str) -> RoutingRule | None:
        return self._metadata.rules.get((region, source))

    def lookup_destination(self, region: str) -> APIDestination | None:
        return self._metadata.destinations.get(region)

    @staticmethod
    def contains(rule: RoutingRule | None, detail_type: str) -> bool:
        return rule is not None and detail_type in rule.detail_types

    def is_routed(self, region: str, source: str, detail_type: str) -> bool:
        """True when region has a rule for source that already covers detail_type."""
        return self.contains(self.lookup_rule(region, source), detail_type)
