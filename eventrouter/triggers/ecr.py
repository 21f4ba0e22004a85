"""ECR On Image Push and On Image Scan.

Both use the bounded retry policy: routing that is not ready within about a
minute fails Setup instead of polling forever.
"""

from typing import Any

from eventrouter.routing.commands import BOUNDED_RETRY_POLICY
from eventrouter.routing.models import EventFilter, equals
from eventrouter.triggers.registry import predicate_list, register, require_field

SOURCE = "aws.ecr"
DETAIL_TYPE_IMAGE_ACTION = "ECR Image Action"
DETAIL_TYPE_IMAGE_SCAN = "ECR Image Scan"


@register(
    "aws.ecr.onImagePush",
    source=SOURCE,
    detail_type=DETAIL_TYPE_IMAGE_ACTION,
    policy=BOUNDED_RETRY_POLICY,
    event_type="aws.ecr.image.push",
)
def on_image_push(configuration: dict[str, Any]) -> EventFilter:
    """Successful pushes; repository and imageTags (predicates) narrow the match."""
    return EventFilter(
        source=SOURCE,
        detail_type=DETAIL_TYPE_IMAGE_ACTION,
        region=require_field(configuration, "region"),
        detail={
            "action-type": equals("PUSH"),
            "result": equals("SUCCESS"),
            "repository-name": equals(str(configuration.get("repository") or "")),
            "image-tag": predicate_list(configuration.get("imageTags")),
        },
    )


@register(
    "aws.ecr.onImageScan",
    source=SOURCE,
    detail_type=DETAIL_TYPE_IMAGE_SCAN,
    policy=BOUNDED_RETRY_POLICY,
    event_type="aws.ecr.image.scan",
)
def on_image_scan(configuration: dict[str, Any]) -> EventFilter:
    return EventFilter(
        source=SOURCE,
        detail_type=DETAIL_TYPE_IMAGE_SCAN,
        region=require_field(configuration, "region"),
        detail={
            "repository-name": equals(str(configuration.get("repository") or "")),
            "scan-status": equals(str(configuration.get("scanStatus") or "")),
        },
    )
