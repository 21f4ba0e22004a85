"""Tests for the per-trigger filter builders."""

import pytest

from eventrouter.errors import FilterError
from eventrouter.routing.models import Predicate
from eventrouter.triggers.registry import TRIGGERS


def _build(name: str, configuration: dict):
    return TRIGGERS[name].build_filter(configuration)


def test_codebuild_on_build_filters_project() -> None:
    """CodeBuild On Build filters on project-name in the configured region."""
    event_filter = _build("aws.codebuild.onBuild", {"region": "us-east-1", "project": "backend-build"})

    assert event_filter.source == "aws.codebuild"
    assert event_filter.detail_type == "CodeBuild Build State Change"
    assert event_filter.region == "us-east-1"
    assert event_filter.detail == {"project-name": (Predicate("equals", "backend-build"),)}
    assert TRIGGERS["aws.codebuild.onBuild"].event_type == "aws.codebuild.build"


def test_codebuild_without_project_matches_all_projects() -> None:
    """No project means a wildcard on project-name."""
    event_filter = _build("aws.codebuild.onBuild", {"region": "us-east-1"})
    assert event_filter.detail == {"project-name": ()}


@pytest.mark.parametrize(
    "name",
    [
        "aws.codebuild.onBuild",
        "aws.cloudwatch.onAlarm",
        "aws.codeArtifact.onPackageVersion",
        "aws.ecr.onImagePush",
        "aws.ecr.onImageScan",
    ],
)
def test_region_is_required(name: str) -> None:
    """Every trigger needs a region to know where to provision routing."""
    with pytest.raises(FilterError, match="region is required"):
        _build(name, {})


def test_cloudwatch_on_alarm_defaults_to_alarm_state() -> None:
    """state defaults to ALARM and alarms predicates apply to alarmName."""
    event_filter = _build(
        "aws.cloudwatch.onAlarm",
        {"region": "us-east-1", "alarms": [{"type": "matches", "value": "^api-"}]},
    )
    assert event_filter.detail["state.value"] == (Predicate("equals", "ALARM"),)
    assert event_filter.detail["alarmName"] == (Predicate("matches", "^api-"),)


def test_cloudwatch_rejects_unknown_state() -> None:
    """Only OK, ALARM and INSUFFICIENT_DATA are valid states."""
    with pytest.raises(FilterError, match="unsupported alarm state"):
        _build("aws.cloudwatch.onAlarm", {"region": "us-east-1", "state": "FIRING"})


def test_codeartifact_optional_filters() -> None:
    """Configured filters become equals predicates; the rest are wildcards."""
    event_filter = _build(
        "aws.codeArtifact.onPackageVersion",
        {"region": "us-east-1", "filters": {"packageName": "lodash", "packageVersionState": "Published"}},
    )
    assert event_filter.detail["packageName"] == (Predicate("equals", "lodash"),)
    assert event_filter.detail["packageVersionState"] == (Predicate("equals", "Published"),)
    assert event_filter.detail["domainName"] == ()
    assert event_filter.source == "aws.codeartifact"


def test_ecr_on_image_push_requires_successful_push() -> None:
    """Image push only matches successful PUSH actions; tags narrow further."""
    event_filter = _build(
        "aws.ecr.onImagePush",
        {"region": "eu-west-1", "repository": "api", "imageTags": ["latest"]},
    )
    assert event_filter.detail_type == "ECR Image Action"
    assert event_filter.detail["action-type"] == (Predicate("equals", "PUSH"),)
    assert event_filter.detail["result"] == (Predicate("equals", "SUCCESS"),)
    assert event_filter.detail["repository-name"] == (Predicate("equals", "api"),)
    assert event_filter.detail["image-tag"] == (Predicate("equals", "latest"),)


def test_ecr_triggers_use_bounded_retries() -> None:
    """ECR triggers give up after six 10s checks."""
    for name in ("aws.ecr.onImagePush", "aws.ecr.onImageScan"):
        policy = TRIGGERS[name].policy
        assert (policy.first_delay, policy.interval, policy.max_attempts) == (10.0, 10.0, 6)


def test_unbounded_triggers_use_default_policy() -> None:
    """Other triggers check after 5s, then every 10s, without a bound."""
    policy = TRIGGERS["aws.codebuild.onBuild"].policy
    assert (policy.first_delay, policy.interval, policy.max_attempts) == (5.0, 10.0, None)
