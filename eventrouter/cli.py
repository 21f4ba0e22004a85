"""
Event router CLI: validate, list, match, deploy.
`eventrouter validate` checks a router.yaml; `eventrouter deploy` provisions its
host infrastructure; `eventrouter match` dry-runs a trigger filter on an event.
"""

import json
import os
from pathlib import Path
import subprocess
import sys
from typing import Any

import structlog

from eventrouter.aws.clients import ClientFactory
from eventrouter.config import MANAGED_BY_TAG, MANAGED_BY_VALUE, RouterConfig
from eventrouter.errors import FilterError
from eventrouter.log import configure_logging
from eventrouter.routing.matcher import mismatch_reason
from eventrouter.triggers.registry import TRIGGERS, get_trigger

logger = structlog.get_logger(__name__)

PULUMI_DIR = "eventrouter"
DEFAULT_STACK_PREFIX = "dev"


def _project_root() -> Path:
    """Directory containing eventrouter/Pulumi.yaml; defaults to cwd."""
    return Path.cwd()


def _run(cmd: list[str], env: dict[str, str] | None = None, check: bool = True) -> subprocess.CompletedProcess:
    full_env = os.environ.copy()
    if env:
        full_env.update(env)
    return subprocess.run(
        cmd,
        cwd=_project_root(),
        env=full_env,
        check=check,
    )


def _load_json(path: str) -> Any:
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def _stack_name(config: RouterConfig, prefix: str) -> str:
    return f"{prefix}.{config.name}.{config.installation.region}"


# --- validate ---


def _cmd_validate(router_yaml_path: str) -> None:
    config = RouterConfig.from_file(router_yaml_path)
    print(f"{router_yaml_path}: OK (router '{config.name}', installation '{config.installation.id}')")


# --- triggers ---


def _cmd_triggers() -> None:
    for name in sorted(TRIGGERS):
        t = TRIGGERS[name]
        bound = t.policy.max_attempts if t.policy.max_attempts is not None else "unbounded"
        print(f"{name}\n  {t.source} / {t.detail_type}\n  emits {t.event_type}, retries: {bound}")


# --- list ---


def _cmd_list(region: str) -> None:
    client = ClientFactory().tagging(region)
    by_type: dict[str, list[str]] = {}

    paginator = client.get_paginator("get_resources")
    for page in paginator.paginate(
        TagFilters=[{"Key": MANAGED_BY_TAG, "Values": [MANAGED_BY_VALUE]}],
        ResourcesPerPage=100,
    ):
        for r in page.get("ResourceTagList", []):
            arn = r.get("ResourceARN", "")
            # arn:aws:events:region:acct:rule/name -> events/rule
            parts = arn.split(":")
            resource_type = f"{parts[2]}/{parts[5].split('/')[0]}" if len(parts) > 5 else "resource"
            by_type.setdefault(resource_type, []).append(arn)

    if not by_type:
        print(f"No eventrouter-managed resources found in {region}.")
        return
    for resource_type in sorted(by_type):
        print(f"\n{resource_type}")
        for arn in sorted(by_type[resource_type]):
            print(f"  {arn}")


# --- match ---


def _cmd_match(trigger_name: str, configuration_json: str, event_path: str) -> None:
    try:
        trigger = get_trigger(trigger_name)
    except KeyError as e:
        print(e.args[0], file=sys.stderr)
        sys.exit(2)
    try:
        configuration = json.loads(configuration_json)
        if not isinstance(configuration, dict):
            raise ValueError("configuration must be a JSON object")
        event_filter = trigger.build_filter(configuration)
    except (ValueError, FilterError) as e:
        print(f"invalid trigger configuration: {e}", file=sys.stderr)
        sys.exit(2)

    event = _load_json(event_path)
    reason = mismatch_reason(event, event_filter)
    if reason is None:
        print(f"match: {trigger.event_type}")
        return
    print(f"no match: {reason}")
    sys.exit(1)


# --- deploy ---


def _cmd_deploy(router_yaml_path: str, stack_prefix: str) -> None:
    path = Path(router_yaml_path)
    if not path.is_absolute():
        path = _project_root() / path
    config = RouterConfig.from_file(str(path))
    if not (_project_root() / PULUMI_DIR / "Pulumi.yaml").exists():
        print("eventrouter/Pulumi.yaml not found. Run this from the repo root.", file=sys.stderr)
        sys.exit(1)

    stack = _stack_name(config, stack_prefix)
    env = {"ROUTER_YAML_PATH": str(path.resolve())}
    select = _run(["pulumi", "stack", "select", stack, "-C", PULUMI_DIR], env=env, check=False)
    if select.returncode != 0:
        _run(["pulumi", "stack", "init", stack, "-C", PULUMI_DIR], env=env)
    _run(
        ["pulumi", "config", "set", "aws:region", config.installation.region, "-C", PULUMI_DIR],
        env=env,
    )
    logger.info("deploying", stack=stack, router=config.name)
    _run(["pulumi", "up", "-C", PULUMI_DIR, "-y"], env=env)
    print(f"Router '{config.name}' deployed (stack {stack}).")


def main() -> None:
    import argparse

    parser = argparse.ArgumentParser(
        description="Manage eventrouter configuration and host infrastructure."
    )
    parser.add_argument("--log-level", default=os.environ.get("EVENTROUTER_LOG_LEVEL", "INFO"))
    parser.add_argument("--json-logs", action="store_true", help="Emit logs as JSON lines")
    sub = parser.add_subparsers(dest="command", required=True)
    validate_p = sub.add_parser("validate", help="Validate a router.yaml")
    validate_p.add_argument("router_yaml", help="Path to router.yaml")
    sub.add_parser("triggers", help="List registered trigger types")
    list_p = sub.add_parser("list", help="List eventrouter-managed AWS resources")
    list_p.add_argument("--region", default=os.environ.get("AWS_REGION", "us-east-1"))
    match_p = sub.add_parser("match", help="Check an event JSON file against a trigger filter")
    match_p.add_argument("event", help="Path to an EventBridge event JSON file")
    match_p.add_argument("--trigger", required=True, help="Trigger name, e.g. aws.codebuild.onBuild")
    match_p.add_argument("--config", default="{}", help="Trigger configuration as JSON")
    deploy_p = sub.add_parser("deploy", help="Provision host infrastructure for a router.yaml")
    deploy_p.add_argument("router_yaml", help="Path to router.yaml")
    deploy_p.add_argument("--stack-prefix", default=DEFAULT_STACK_PREFIX)
    args = parser.parse_args()

    configure_logging(args.log_level, json_output=args.json_logs)

    if args.command == "validate":
        _cmd_validate(args.router_yaml)
    elif args.command == "triggers":
        _cmd_triggers()
    elif args.command == "list":
        _cmd_list(args.region)
    elif args.command == "match":
        _cmd_match(args.trigger, args.config, args.event)
    elif args.command == "deploy":
        _cmd_deploy(args.router_yaml, args.stack_prefix)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
