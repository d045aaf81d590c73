"""Session proxy - per-invocation downstream client factory."""

from __future__ import annotations

from functools import cached_property
from typing import TYPE_CHECKING, Any, Self

import boto3
from botocore.config import Config as BotoConfig
from pydantic import BaseModel, ConfigDict, PrivateAttr

if TYPE_CHECKING:
    from resource_handler.core.request import Credentials


class SessionProxy(BaseModel):
    """Client factory handed to a handler for a single invocation.

    Built fresh by the entrypoint from the caller's credentials; handlers
    must not keep it (or clients made from it) across invocations.

    Examples:
        # From the host's credentials
        session = SessionProxy.from_credentials(creds, region="eu-west-1")

        # Tests / local runs
        session = SessionProxy.from_session(boto3.Session(profile_name="dev"))
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    region: str | None = None
    endpoint_url: str | None = None

    _injected_session: boto3.Session | None = PrivateAttr(default=None)
    _clients: dict[str, Any] = PrivateAttr(default_factory=dict)

    @classmethod
    def from_session(
        cls,
        session: boto3.Session,
        *,
        endpoint_url: str | None = None,
    ) -> Self:
        """Wrap a pre-configured boto3 session (or a mock in tests)."""
        proxy = cls(region=getattr(session, "region_name", None), endpoint_url=endpoint_url)
        proxy._injected_session = session
        return proxy

    @classmethod
    def from_credentials(
        cls,
        credentials: Credentials,
        *,
        region: str | None = None,
        endpoint_url: str | None = None,
    ) -> Self:
        session = boto3.Session(
            aws_access_key_id=credentials.access_key_id,
            aws_secret_access_key=credentials.secret_access_key.get_secret_value(),
            aws_session_token=(
                credentials.session_token.get_secret_value()
                if credentials.session_token is not None
                else None
            ),
            region_name=region,
        )
        proxy = cls(region=region, endpoint_url=endpoint_url)
        proxy._injected_session = session
        return proxy

    @cached_property
    def session(self) -> boto3.Session:
        if self._injected_session is not None:
            return self._injected_session
        return boto3.Session(region_name=self.region)

    def client(self, service_name: str) -> Any:
        """Get (and memoize for this invocation) a client for *service_name*."""
        if service_name not in self._clients:
            kwargs: dict[str, Any] = {
                # Single attempt per call; transient faults come back as IN_PROGRESS.
                "config": BotoConfig(retries={"max_attempts": 1, "mode": "standard"}),
            }
            if self.endpoint_url:
                kwargs["endpoint_url"] = self.endpoint_url
            if self.region:
                kwargs["region_name"] = self.region
            self._clients[service_name] = self.session.client(service_name, **kwargs)
        return self._clients[service_name]
