"""CodeBuild On Build: build state changes for one project."""

from typing import Any

from eventrouter.routing.models import EventFilter, equals
from eventrouter.triggers.registry import register, require_field

SOURCE = "aws.codebuild"
DETAIL_TYPE_BUILD_STATE_CHANGE = "CodeBuild Build State Change"


@register(
    "aws.codebuild.onBuild",
    source=SOURCE,
    detail_type=DETAIL_TYPE_BUILD_STATE_CHANGE,
    event_type="aws.codebuild.build",
)
def on_build(configuration: dict[str, Any]) -> EventFilter:
    """configuration: region (required), project (name; empty matches every project)."""
    return EventFilter(
        source=SOURCE,
        detail_type=DETAIL_TYPE_BUILD_STATE_CHANGE,
        region=require_field(configuration, "region"),
        detail={"project-name": equals(str(configuration.get("project") or ""))},
    )
