"""Credentialed boto3 clients for one integration installation.

botocore signs every request; this module only decides which credentials and
which retry/timeout settings each client is built with.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import boto3
from botocore.config import Config

from eventrouter.config import AwsClientConfig


@dataclass(frozen=True)
class AwsCredentials:
    """Temporary credentials for the installation's assumed role."""

    access_key_id: str
    secret_access_key: str
    session_token: str = ""

    @classmethod
    def from_secrets(cls, secrets: dict[str, str]) -> "AwsCredentials":
        """Build from the secret names the integration stores credentials under."""
        missing = [k for k in ("accessKeyId", "secretAccessKey") if not secrets.get(k)]
        if missing:
            raise ValueError(f"missing AWS credential secrets: {', '.join(missing)}")
        return cls(
            access_key_id=secrets["accessKeyId"],
            secret_access_key=secrets["secretAccessKey"],
            session_token=secrets.get("sessionToken", ""),
        )


class ClientFactory:
    """Builds and caches boto3 clients per (service, region)."""

    def __init__(
        self,
        credentials: AwsCredentials | None = None,
        client_config: AwsClientConfig | None = None,
    ) -> None:
        self._credentials = credentials
        self._client_config = client_config or AwsClientConfig()
        self._clients: dict[tuple[str, str], Any] = {}

    def _session(self) -> boto3.Session:
        if self._credentials is None:
            return boto3.Session()
        return boto3.Session(
            aws_access_key_id=self._credentials.access_key_id,
            aws_secret_access_key=self._credentials.secret_access_key,
            aws_session_token=self._credentials.session_token or None,
        )

    def _botocore_config(self) -> Config:
        cfg = self._client_config
        return Config(
            retries={"max_attempts": cfg.max_attempts, "mode": "standard"},
            connect_timeout=cfg.connect_timeout,
            read_timeout=cfg.read_timeout,
        )

    def client(self, service: str, region: str) -> Any:
        """Get (or create) the client for service in region."""
        key = (service, region)
        if key not in self._clients:
            self._clients[key] = self._session().client(
                service,
                region_name=region,
                config=self._botocore_config(),
            )
        return self._clients[key]

    def events(self, region: str) -> Any:
        return self.client("events", region)

    def iam(self) -> Any:
        # IAM is global; us-east-1 is its signing region.
        return self.client("iam", "us-east-1")

    def scheduler(self, region: str) -> Any:
        return self.client("scheduler", region)

    def tagging(self, region: str) -> Any:
        return self.client("resourcegroupstaggingapi", region)
