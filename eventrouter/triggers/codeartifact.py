"""CodeArtifact On Package Version: package version state changes."""

from typing import Any

from eventrouter.routing.models import EventFilter, equals
from eventrouter.triggers.registry import register, require_field

SOURCE = "aws.codeartifact"
DETAIL_TYPE_PACKAGE_VERSION_STATE_CHANGE = "CodeArtifact Package Version State Change"

# Optional equality filters; each key is both the config key and the detail field.
FILTER_FIELDS = (
    "domainName",
    "domainOwner",
    "repositoryName",
    "packageFormat",
    "packageNamespace",
    "packageName",
    "packageVersion",
    "packageVersionState",
    "operationType",
)


@register(
    "aws.codeArtifact.onPackageVersion",
    source=SOURCE,
    detail_type=DETAIL_TYPE_PACKAGE_VERSION_STATE_CHANGE,
    event_type="aws.codeartifact.package.version",
)
def on_package_version(configuration: dict[str, Any]) -> EventFilter:
    filters = configuration.get("filters") or {}
    return EventFilter(
        source=SOURCE,
        detail_type=DETAIL_TYPE_PACKAGE_VERSION_STATE_CHANGE,
        region=require_field(configuration, "region"),
        detail={name: equals(str(filters.get(name) or "")) for name in FILTER_FIELDS},
    )
