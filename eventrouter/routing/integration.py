"""Integration-level provisioning actions.

The state machine only asks for infrastructure (``provisionDestination``,
``provisionRule``); these handlers run one level up, in the integration, and
return updated IntegrationMetadata for the host to persist. Every step is an
idempotent create-or-fetch, so re-running an action converges.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
import secrets as _secrets
from typing import Any

import structlog

from eventrouter.aws.clients import ClientFactory
from eventrouter.aws.eventbridge import (
    ResourceGateway,
    destination_name,
    event_pattern,
    rule_name,
    target_id,
)
from eventrouter.aws.iam import ensure_invoker_role, invoker_role_name
from eventrouter.config import InstallationConfig
from eventrouter.errors import FatalError, UnknownActionError
from eventrouter.routing.commands import PROVISION_DESTINATION, PROVISION_RULE
from eventrouter.routing.models import APIDestination, IntegrationMetadata, RoutingRule
from eventrouter.triggers.context import SecretStore

logger = structlog.get_logger(__name__)

CONNECTION_SECRET_NAME = "eventbridge.connection.secret"


def ensure_connection_secret(store: SecretStore) -> str:
    """Return the API-key secret shared by every connection, generating it once."""
    secret = store.get_secret(CONNECTION_SECRET_NAME)
    if secret:
        return secret
    secret = _secrets.token_urlsafe(32)
    store.set_secret(CONNECTION_SECRET_NAME, secret)
    logger.info("generated connection secret", name=CONNECTION_SECRET_NAME)
    return secret


def _required(parameters: Mapping[str, Any], key: str) -> str:
    value = str(parameters.get(key) or "").strip()
    if not value:
        raise FatalError(f"{key} is required")
    return value


class IntegrationProvisioner:
    """Provisions the shared per-region EventBridge plumbing of one installation."""

    def __init__(
        self,
        installation: InstallationConfig,
        gateway_for: Callable[[str], ResourceGateway],
        iam_client: Any,
        secret_store: SecretStore,
    ) -> None:
        self.installation = installation
        self._gateway_for = gateway_for
        self._iam = iam_client
        self._secrets = secret_store

    @classmethod
    def from_clients(
        cls,
        installation: InstallationConfig,
        clients: ClientFactory,
        secret_store: SecretStore,
    ) -> "IntegrationProvisioner":
        tags = installation.resource_tags

        def gateway_for(region: str) -> ResourceGateway:
            return ResourceGateway(clients.events(region), region, tags)

        return cls(installation, gateway_for, clients.iam(), secret_store)

    def sync(self, metadata: IntegrationMetadata) -> IntegrationMetadata:
        """Install-time setup: invoker role plus a destination in the home region."""
        ensure_connection_secret(self._secrets)
        metadata = self._ensure_invoker_role(metadata)
        return self.provision_destination(metadata, self.installation.region)

    def _ensure_invoker_role(self, metadata: IntegrationMetadata) -> IntegrationMetadata:
        if metadata.invoker_role_arn:
            return metadata
        inst = self.installation
        if not inst.account_id:
            raise FatalError("installation accountId is required to create the invoker role")
        role_arn = ensure_invoker_role(
            self._iam,
            invoker_role_name(inst.name_prefix, inst.id),
            inst.account_id,
            inst.resource_tags,
        )
        return metadata.with_invoker_role(role_arn)

    def provision_destination(self, metadata: IntegrationMetadata, region: str) -> IntegrationMetadata:
        if region in metadata.destinations:
            return metadata

        inst = self.installation
        if not inst.webhooks_base_url:
            raise FatalError("installation webhooksBaseUrl is required to create an API destination")

        secret = ensure_connection_secret(self._secrets)
        gateway = self._gateway_for(region)
        name = destination_name(inst.name_prefix, inst.id)
        connection_arn = gateway.ensure_connection(name, inst.auth_header_name, secret)
        destination_arn = gateway.ensure_api_destination(name, connection_arn, inst.callback_url)

        logger.info("api destination ready", region=region, arn=destination_arn)
        return metadata.with_destination(
            APIDestination(
                region=region,
                connection_arn=connection_arn,
                api_destination_arn=destination_arn,
            )
        )

    def provision_rule(
        self,
        metadata: IntegrationMetadata,
        region: str,
        source: str,
        detail_type: str,
    ) -> IntegrationMetadata:
        """Create the (region, source) rule or widen it to cover detail_type."""
        existing = metadata.rules.get((region, source))
        if existing is not None and detail_type in existing.detail_types:
            return metadata

        destination = metadata.destinations.get(region)
        if destination is None:
            raise FatalError(
                f"no api destination in {region}, provision it first",
                resource=f"rule for {source}",
                region=region,
            )

        metadata = self._ensure_invoker_role(metadata)
        inst = self.installation
        gateway = self._gateway_for(region)
        name = rule_name(inst.name_prefix, inst.id, source)
        tid = target_id(inst.name_prefix)
        detail_types = (existing.detail_types if existing else frozenset()) | {detail_type}

        rule_arn = gateway.ensure_rule(
            name,
            event_pattern(source, detail_types),
            f"Routes {source} events to {inst.name_prefix}",
        )
        gateway.ensure_target(name, tid, destination.api_destination_arn, metadata.invoker_role_arn)

        logger.info(
            "rule ready",
            region=region,
            source=source,
            detail_types=sorted(detail_types),
            arn=rule_arn,
        )
        return metadata.with_rule(
            RoutingRule(
                region=region,
                source=source,
                rule_arn=rule_arn,
                target_id=tid,
                detail_types=detail_types,
            )
        )

    def handle_action(
        self,
        name: str,
        parameters: Mapping[str, Any],
        metadata: IntegrationMetadata,
    ) -> IntegrationMetadata:
        """Dispatch a ScheduleActionCall kicked off by a trigger."""
        if name == PROVISION_DESTINATION:
            return self.provision_destination(metadata, _required(parameters, "region"))
        if name == PROVISION_RULE:
            return self.provision_rule(
                metadata,
                _required(parameters, "region"),
                _required(parameters, "source"),
                _required(parameters, "detailType"),
            )
        raise UnknownActionError(f"unknown action: {name}")
