"""Shared fixtures for unit tests."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from resource_handler.config import load_settings
from resource_handler.core.session import SessionProxy

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from resource_handler.config.settings import HandlerSettings


@pytest.fixture(autouse=True)
def _clean_handler_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove HANDLER_* env vars so unit tests don't leak host config."""
    for var in list(os.environ):
        if var.startswith("HANDLER_"):
            monkeypatch.delenv(var, raising=False)


@pytest.fixture
def make_settings(tmp_path: Path) -> Callable[..., HandlerSettings]:
    """Factory fixture: write YAML + optional .env, return loaded settings."""

    def _make(yaml_str: str, *, dotenv: str | None = None) -> HandlerSettings:
        (tmp_path / "handler.yaml").write_text(yaml_str)
        if dotenv is not None:
            (tmp_path / ".env").write_text(dotenv)
        return load_settings(tmp_path / "handler.yaml")

    return _make


@pytest.fixture
def make_client_error() -> Callable[..., ClientError]:
    """Factory fixture: a real botocore ``ClientError`` for a service error code."""

    def _make(
        code: str,
        message: str = "boom",
        *,
        status: int = 400,
        operation: str = "Operation",
    ) -> ClientError:
        return ClientError(
            {
                "Error": {"Code": code, "Message": message},
                "ResponseMetadata": {"HTTPStatusCode": status},
            },
            operation,
        )

    return _make


@pytest.fixture
def route53() -> MagicMock:
    return MagicMock()


@pytest.fixture
def session(route53: MagicMock) -> SessionProxy:
    boto_session = MagicMock()
    boto_session.region_name = "us-east-1"
    boto_session.client.return_value = route53
    return SessionProxy.from_session(boto_session)
