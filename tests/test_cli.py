"""Tests for the eventrouter CLI commands."""

import json
from pathlib import Path
import sys
from unittest.mock import MagicMock, patch

import pytest

from eventrouter import cli

ROOT = Path(__file__).resolve().parent.parent
FIXTURES = ROOT / "fixtures"
CODEBUILD_EVENT = str(FIXTURES / "events" / "codebuild-build-state-change.json")


def _main(*argv: str) -> None:
    with patch.object(sys, "argv", ["eventrouter", *argv]), patch("eventrouter.cli.configure_logging"):
        cli.main()


def test_validate_ok(capsys: pytest.CaptureFixture[str]) -> None:
    """validate prints OK for a valid router.yaml."""
    _main("validate", str(FIXTURES / "router.yaml"))
    assert "OK (router 'platform-router'" in capsys.readouterr().out


def test_validate_invalid_exits(tmp_path: Path) -> None:
    """validate exits with the validation message for an invalid file."""
    bad = tmp_path / "router.yaml"
    bad.write_text("apiVersion: eventrouter.io/v1\nkind: Router\nmetadata: {name: x}\nspec: {}\n")
    with pytest.raises(SystemExit) as exc_info:
        _main("validate", str(bad))
    assert "validation failed" in str(exc_info.value)


def test_triggers_lists_registered(capsys: pytest.CaptureFixture[str]) -> None:
    """triggers lists every registered trigger with its routing key."""
    _main("triggers")
    out = capsys.readouterr().out
    assert "aws.codebuild.onBuild" in out
    assert "aws.ecr.onImageScan" in out
    assert "CodeBuild Build State Change" in out


def test_match_reports_match(capsys: pytest.CaptureFixture[str]) -> None:
    """match prints the emitted event type when the event passes the filter."""
    _main(
        "match",
        CODEBUILD_EVENT,
        "--trigger",
        "aws.codebuild.onBuild",
        "--config",
        json.dumps({"region": "us-east-1", "project": "backend-build"}),
    )
    assert capsys.readouterr().out.strip() == "match: aws.codebuild.build"


def test_match_reports_reason_and_exits_1(capsys: pytest.CaptureFixture[str]) -> None:
    """A mismatch prints the reason and exits 1."""
    with pytest.raises(SystemExit) as exc_info:
        _main(
            "match",
            CODEBUILD_EVENT,
            "--trigger",
            "aws.codebuild.onBuild",
            "--config",
            json.dumps({"region": "us-east-1", "project": "frontend"}),
        )
    assert exc_info.value.code == 1
    assert "no match: detail.project-name" in capsys.readouterr().out


def test_match_unknown_trigger_exits_2() -> None:
    """An unknown trigger name exits 2."""
    with pytest.raises(SystemExit) as exc_info:
        _main("match", CODEBUILD_EVENT, "--trigger", "aws.nope")
    assert exc_info.value.code == 2


def test_match_invalid_configuration_exits_2(capsys: pytest.CaptureFixture[str]) -> None:
    """A configuration the filter builder rejects exits 2."""
    with pytest.raises(SystemExit) as exc_info:
        _main("match", CODEBUILD_EVENT, "--trigger", "aws.codebuild.onBuild", "--config", "{}")
    assert exc_info.value.code == 2
    assert "region is required" in capsys.readouterr().err


@patch("eventrouter.cli.ClientFactory")
def test_list_groups_managed_resources_by_type(mock_factory: MagicMock, capsys: pytest.CaptureFixture[str]) -> None:
    """list queries the tagging API for managed-by=eventrouter and groups ARNs by type."""
    tagging = mock_factory.return_value.tagging
    paginator = tagging.return_value.get_paginator.return_value
    paginator.paginate.return_value = [
        {
            "ResourceTagList": [
                {"ResourceARN": "arn:aws:events:us-east-1:123456789012:rule/eventrouter-i-aws-codebuild"},
                {"ResourceARN": "arn:aws:iam::123456789012:role/eventrouter-i-invoker"},
            ]
        }
    ]

    _main("list", "--region", "us-east-1")

    tagging.assert_called_once_with("us-east-1")
    assert paginator.paginate.call_args[1]["TagFilters"] == [{"Key": "managed-by", "Values": ["eventrouter"]}]
    out = capsys.readouterr().out
    assert "events/rule" in out
    assert "iam/role" in out


@patch("eventrouter.cli.ClientFactory")
def test_list_empty(mock_factory: MagicMock, capsys: pytest.CaptureFixture[str]) -> None:
    """No managed resources prints a friendly message."""
    paginator = mock_factory.return_value.tagging.return_value.get_paginator.return_value
    paginator.paginate.return_value = [{"ResourceTagList": []}]
    _main("list", "--region", "eu-west-1")
    assert "No eventrouter-managed resources found in eu-west-1." in capsys.readouterr().out


@patch("eventrouter.cli._run")
@patch("eventrouter.cli._project_root", return_value=ROOT)
def test_deploy_selects_or_inits_stack_then_runs_up(mock_root: MagicMock, mock_run: MagicMock) -> None:
    """deploy inits the stack when select fails, sets the region, and runs pulumi up."""
    mock_run.side_effect = [MagicMock(returncode=1), MagicMock(returncode=0), MagicMock(), MagicMock()]

    _main("deploy", str(FIXTURES / "router.yaml"))

    commands = [c[0][0] for c in mock_run.call_args_list]
    assert commands[0][:3] == ["pulumi", "stack", "select"]
    assert commands[0][3] == "dev.platform-router.us-east-1"
    assert commands[1][:3] == ["pulumi", "stack", "init"]
    assert commands[2][:5] == ["pulumi", "config", "set", "aws:region", "us-east-1"]
    assert commands[3][:2] == ["pulumi", "up"]
    env = mock_run.call_args_list[3][1]["env"]
    assert env["ROUTER_YAML_PATH"] == str((FIXTURES / "router.yaml").resolve())
