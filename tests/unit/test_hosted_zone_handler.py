"""Tests for the Route 53 HostedZoneHandler."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from resource_handler.core.errors import HandlerError, HandlerErrorCode
from resource_handler.core.progress import OperationStatus
from resource_handler.core.request import ResourceHandlerRequest
from resource_handler.handlers.hosted_zone_handler import HostedZoneContext, HostedZoneHandler
from resource_handler.handlers.stabilize import StabilizationPolicy
from resource_handler.resources.hosted_zone import (
    HostedZoneConfig,
    HostedZoneResource,
    HostedZoneTag,
)

if TYPE_CHECKING:
    from collections.abc import Callable
    from unittest.mock import MagicMock

    from botocore.exceptions import ClientError

    from resource_handler.core.session import SessionProxy

_TOKEN = "tok-1"


@pytest.fixture
def handler() -> HostedZoneHandler:
    policy = StabilizationPolicy(max_attempts=3, delay_seconds=5, retry_delay_seconds=2)
    return HostedZoneHandler(policy, page_size=2)


@pytest.fixture
def r53(route53: MagicMock) -> MagicMock:
    """Route 53 mock with a live zone ``Z1`` and no pre-existing zones by name."""
    route53.list_hosted_zones_by_name.return_value = {"HostedZones": []}
    route53.create_hosted_zone.return_value = {
        "HostedZone": _zone("Z1", comment="managed"),
        "ChangeInfo": {"Id": "/change/C1", "Status": "PENDING"},
    }
    route53.get_hosted_zone.return_value = {
        "HostedZone": _zone("Z1", comment="managed"),
        "DelegationSet": {"NameServers": ["ns-1.example.net", "ns-2.example.net"]},
    }
    route53.list_tags_for_resource.return_value = {
        "ResourceTagSet": {"Tags": [{"Key": "env", "Value": "dev"}]}
    }
    route53.delete_hosted_zone.return_value = {
        "ChangeInfo": {"Id": "/change/D1", "Status": "PENDING"}
    }
    return route53


def _zone(
    zone_id: str,
    name: str = "example.com.",
    *,
    comment: str | None = None,
    caller_reference: str = "other",
    private: bool = False,
) -> dict[str, Any]:
    config: dict[str, Any] = {"PrivateZone": private}
    if comment is not None:
        config["Comment"] = comment
    return {
        "Id": f"/hostedzone/{zone_id}",
        "Name": name,
        "CallerReference": caller_reference,
        "Config": config,
    }


def _desired(**kwargs: Any) -> HostedZoneResource:
    kwargs.setdefault("hosted_zone_config", HostedZoneConfig(comment="managed"))
    kwargs.setdefault("hosted_zone_tags", [HostedZoneTag(key="env", value="dev")])
    return HostedZoneResource(name="example.com", **kwargs)


def _request(
    desired: HostedZoneResource | None = None,
    previous: HostedZoneResource | None = None,
    **kwargs: Any,
) -> ResourceHandlerRequest[HostedZoneResource]:
    kwargs.setdefault("client_request_token", _TOKEN)
    return ResourceHandlerRequest(
        desired_resource_state=desired,
        previous_resource_state=previous,
        **kwargs,
    )


class TestCreate:
    def test_first_invocation_creates_and_waits(
        self, session: SessionProxy, handler: HostedZoneHandler, r53: MagicMock
    ) -> None:
        event = handler.create(session, _request(_desired()), HostedZoneContext())

        r53.create_hosted_zone.assert_called_once_with(
            Name="example.com",
            CallerReference=_TOKEN,
            HostedZoneConfig={"Comment": "managed", "PrivateZone": False},
        )
        r53.change_tags_for_resource.assert_called_once_with(
            ResourceType="hostedzone",
            ResourceId="Z1",
            AddTags=[{"Key": "env", "Value": "dev"}],
        )
        assert event.status == OperationStatus.IN_PROGRESS
        assert event.callback_delay_seconds == 5
        assert event.callback_context == HostedZoneContext(
            attempt=1, hosted_zone_id="Z1", change_id="/change/C1", tagged=True
        )
        assert event.resource_model.id == "Z1"

    def test_pending_change_keeps_waiting(
        self, session: SessionProxy, handler: HostedZoneHandler, r53: MagicMock
    ) -> None:
        r53.get_change.return_value = {"ChangeInfo": {"Id": "/change/C1", "Status": "PENDING"}}
        ctx = HostedZoneContext(attempt=1, hosted_zone_id="Z1", change_id="/change/C1", tagged=True)

        event = handler.create(session, _request(_desired()), ctx)

        r53.create_hosted_zone.assert_not_called()
        r53.change_tags_for_resource.assert_not_called()
        r53.get_change.assert_called_once_with(Id="/change/C1")
        assert event.status == OperationStatus.IN_PROGRESS
        assert event.callback_context.attempt == 2

    def test_insync_change_returns_model_with_id(
        self, session: SessionProxy, handler: HostedZoneHandler, r53: MagicMock
    ) -> None:
        r53.get_change.return_value = {"ChangeInfo": {"Id": "/change/C1", "Status": "INSYNC"}}
        ctx = HostedZoneContext(attempt=1, hosted_zone_id="Z1", change_id="/change/C1", tagged=True)

        event = handler.create(session, _request(_desired()), ctx)

        assert event.status == OperationStatus.SUCCESS
        assert event.callback_context is None
        model = event.resource_model
        assert model.id == "Z1"
        assert model.name == "example.com"
        assert model.name_servers == ["ns-1.example.net", "ns-2.example.net"]
        assert model.tag_map() == {"env": "dev"}

    def test_not_stabilized_after_max_attempts(
        self, session: SessionProxy, handler: HostedZoneHandler, r53: MagicMock
    ) -> None:
        r53.get_change.return_value = {"ChangeInfo": {"Id": "/change/C1", "Status": "PENDING"}}
        ctx = HostedZoneContext(attempt=2, hosted_zone_id="Z1", change_id="/change/C1", tagged=True)

        event = handler.create(session, _request(_desired()), ctx)

        assert event.status == OperationStatus.FAILED
        assert event.error_code == HandlerErrorCode.NOT_STABILIZED

    def test_adopts_zone_created_by_lost_invocation(
        self, session: SessionProxy, handler: HostedZoneHandler, r53: MagicMock
    ) -> None:
        r53.list_hosted_zones_by_name.return_value = {
            "HostedZones": [
                _zone("Z0", caller_reference="someone-else"),
                _zone("Z1", caller_reference=_TOKEN),
            ]
        }

        event = handler.create(session, _request(_desired()), HostedZoneContext())

        r53.list_hosted_zones_by_name.assert_called_once_with(DNSName="example.com", MaxItems="2")
        r53.create_hosted_zone.assert_not_called()
        assert event.status == OperationStatus.SUCCESS
        assert event.resource_model.id == "Z1"

    def test_same_name_with_other_caller_reference_is_not_adopted(
        self, session: SessionProxy, handler: HostedZoneHandler, r53: MagicMock
    ) -> None:
        r53.list_hosted_zones_by_name.return_value = {
            "HostedZones": [_zone("Z0", caller_reference="someone-else"), _zone("Z9", "other.org.")]
        }

        handler.create(session, _request(_desired()), HostedZoneContext())

        r53.create_hosted_zone.assert_called_once()

    def test_no_tags_and_no_comment(
        self, session: SessionProxy, handler: HostedZoneHandler, r53: MagicMock
    ) -> None:
        desired = _desired(hosted_zone_config=None, hosted_zone_tags=[])

        event = handler.create(session, _request(desired), HostedZoneContext())

        r53.create_hosted_zone.assert_called_once_with(Name="example.com", CallerReference=_TOKEN)
        r53.change_tags_for_resource.assert_not_called()
        assert event.callback_context.tagged

    def test_read_only_id_rejected(self, session: SessionProxy, handler: HostedZoneHandler) -> None:
        with pytest.raises(HandlerError) as excinfo:
            handler.create(session, _request(_desired(id="Z1")), HostedZoneContext())
        assert excinfo.value.code == HandlerErrorCode.INVALID_REQUEST

    def test_tokenless_create_derives_reference_from_logical_id(
        self, session: SessionProxy, handler: HostedZoneHandler, r53: MagicMock
    ) -> None:
        request = _request(
            _desired(), client_request_token="", logical_resource_identifier="Zone"
        )

        handler.create(session, request, HostedZoneContext())
        handler.create(session, request, HostedZoneContext())

        first, second = r53.create_hosted_zone.call_args_list
        assert first.kwargs["CallerReference"] == second.kwargs["CallerReference"]
        assert first.kwargs["CallerReference"] != _TOKEN

    def test_tokenless_reference_differs_per_logical_id(
        self, session: SessionProxy, handler: HostedZoneHandler, r53: MagicMock
    ) -> None:
        for logical_id in ("ZoneA", "ZoneB"):
            handler.create(
                session,
                _request(_desired(), client_request_token="", logical_resource_identifier=logical_id),
                HostedZoneContext(),
            )

        first, second = r53.create_hosted_zone.call_args_list
        assert first.kwargs["CallerReference"] != second.kwargs["CallerReference"]

    def test_missing_desired_state_rejected(
        self, session: SessionProxy, handler: HostedZoneHandler
    ) -> None:
        with pytest.raises(HandlerError) as excinfo:
            handler.create(session, _request(), HostedZoneContext())
        assert excinfo.value.code == HandlerErrorCode.INVALID_REQUEST

    def test_throttled_create_is_retried(
        self,
        session: SessionProxy,
        handler: HostedZoneHandler,
        r53: MagicMock,
        make_client_error: Callable[..., ClientError],
    ) -> None:
        r53.create_hosted_zone.side_effect = make_client_error("Throttling", "Rate exceeded")

        event = handler.create(session, _request(_desired()), HostedZoneContext())

        assert event.status == OperationStatus.IN_PROGRESS
        assert event.callback_context == HostedZoneContext(retries=1)
        assert event.callback_delay_seconds == 2

    def test_tagging_failure_keeps_created_zone(
        self,
        session: SessionProxy,
        handler: HostedZoneHandler,
        r53: MagicMock,
        make_client_error: Callable[..., ClientError],
    ) -> None:
        r53.change_tags_for_resource.side_effect = make_client_error("ThrottlingException")

        event = handler.create(session, _request(_desired()), HostedZoneContext())

        assert event.status == OperationStatus.IN_PROGRESS
        ctx = event.callback_context
        assert ctx.hosted_zone_id == "Z1"
        assert ctx.change_id == "/change/C1"
        assert not ctx.tagged

        r53.change_tags_for_resource.side_effect = None
        r53.get_change.return_value = {"ChangeInfo": {"Id": "/change/C1", "Status": "INSYNC"}}
        event = handler.create(session, _request(_desired()), ctx)

        assert r53.create_hosted_zone.call_count == 1
        assert r53.change_tags_for_resource.call_count == 2
        assert event.status == OperationStatus.SUCCESS

    def test_limit_exceeded_fails(
        self,
        session: SessionProxy,
        handler: HostedZoneHandler,
        r53: MagicMock,
        make_client_error: Callable[..., ClientError],
    ) -> None:
        r53.create_hosted_zone.side_effect = make_client_error("TooManyHostedZones", "limit")

        event = handler.create(session, _request(_desired()), HostedZoneContext())

        assert event.status == OperationStatus.FAILED
        assert event.error_code == HandlerErrorCode.SERVICE_LIMIT_EXCEEDED
        assert event.message == "limit"


class TestRead:
    def test_returns_current_state(
        self, session: SessionProxy, handler: HostedZoneHandler, r53: MagicMock
    ) -> None:
        event = handler.read(
            session, _request(HostedZoneResource(name="example.com", id="Z1")), HostedZoneContext()
        )

        r53.get_hosted_zone.assert_called_once_with(Id="Z1")
        r53.list_tags_for_resource.assert_called_once_with(ResourceType="hostedzone", ResourceId="Z1")
        assert event.status == OperationStatus.SUCCESS
        assert event.resource_model == HostedZoneResource(
            name="example.com",
            hosted_zone_config=HostedZoneConfig(comment="managed"),
            hosted_zone_tags=[HostedZoneTag(key="env", value="dev")],
            id="Z1",
            name_servers=["ns-1.example.net", "ns-2.example.net"],
        )

    def test_deleted_zone_is_not_found(
        self,
        session: SessionProxy,
        handler: HostedZoneHandler,
        r53: MagicMock,
        make_client_error: Callable[..., ClientError],
    ) -> None:
        r53.get_hosted_zone.side_effect = make_client_error("NoSuchHostedZone", status=404)

        with pytest.raises(HandlerError) as excinfo:
            handler.read(
                session, _request(HostedZoneResource(name="example.com", id="Z1")), HostedZoneContext()
            )
        assert excinfo.value.code == HandlerErrorCode.NOT_FOUND
        assert "Z1" in excinfo.value.message

    def test_missing_id_is_not_found(
        self, session: SessionProxy, handler: HostedZoneHandler, r53: MagicMock
    ) -> None:
        with pytest.raises(HandlerError) as excinfo:
            handler.read(session, _request(_desired()), HostedZoneContext())
        assert excinfo.value.code == HandlerErrorCode.NOT_FOUND
        r53.get_hosted_zone.assert_not_called()

    def test_throttling_is_surfaced(
        self,
        session: SessionProxy,
        handler: HostedZoneHandler,
        r53: MagicMock,
        make_client_error: Callable[..., ClientError],
    ) -> None:
        r53.get_hosted_zone.side_effect = make_client_error("Throttling")

        with pytest.raises(HandlerError) as excinfo:
            handler.read(
                session, _request(HostedZoneResource(name="example.com", id="Z1")), HostedZoneContext()
            )
        assert excinfo.value.code == HandlerErrorCode.THROTTLING


class TestUpdate:
    def test_equal_states_make_no_calls(
        self, session: SessionProxy, handler: HostedZoneHandler, r53: MagicMock
    ) -> None:
        previous = _desired(id="Z1")

        event = handler.update(session, _request(_desired(), previous), HostedZoneContext())

        assert event.status == OperationStatus.SUCCESS
        assert event.resource_model == previous
        assert r53.method_calls == []

    def test_name_change_not_updatable(
        self, session: SessionProxy, handler: HostedZoneHandler, r53: MagicMock
    ) -> None:
        desired = HostedZoneResource(name="other.com")

        with pytest.raises(HandlerError) as excinfo:
            handler.update(session, _request(desired, _desired(id="Z1")), HostedZoneContext())
        assert excinfo.value.code == HandlerErrorCode.NOT_UPDATABLE
        assert r53.method_calls == []

    def test_comment_change(
        self, session: SessionProxy, handler: HostedZoneHandler, r53: MagicMock
    ) -> None:
        desired = _desired(hosted_zone_config=HostedZoneConfig(comment="new"))

        event = handler.update(session, _request(desired, _desired(id="Z1")), HostedZoneContext())

        r53.update_hosted_zone_comment.assert_called_once_with(Id="Z1", Comment="new")
        r53.change_tags_for_resource.assert_not_called()
        assert event.status == OperationStatus.SUCCESS
        assert event.resource_model.id == "Z1"

    def test_comment_removed(
        self, session: SessionProxy, handler: HostedZoneHandler, r53: MagicMock
    ) -> None:
        desired = _desired(hosted_zone_config=HostedZoneConfig(comment=None))

        handler.update(session, _request(desired, _desired(id="Z1")), HostedZoneContext())

        r53.update_hosted_zone_comment.assert_called_once_with(Id="Z1")

    def test_tag_delta(
        self, session: SessionProxy, handler: HostedZoneHandler, r53: MagicMock
    ) -> None:
        previous = _desired(
            id="Z1",
            hosted_zone_tags=[
                HostedZoneTag(key="env", value="dev"),
                HostedZoneTag(key="team", value="a"),
                HostedZoneTag(key="old", value="x"),
            ],
        )
        desired = _desired(
            hosted_zone_tags=[
                HostedZoneTag(key="env", value="dev"),
                HostedZoneTag(key="team", value="b"),
                HostedZoneTag(key="new", value="y"),
            ],
        )

        handler.update(session, _request(desired, previous), HostedZoneContext())

        r53.update_hosted_zone_comment.assert_not_called()
        r53.change_tags_for_resource.assert_called_once_with(
            ResourceType="hostedzone",
            ResourceId="Z1",
            AddTags=[{"Key": "new", "Value": "y"}, {"Key": "team", "Value": "b"}],
            RemoveTagKeys=["old"],
        )

    def test_throttled_update_is_retried(
        self,
        session: SessionProxy,
        handler: HostedZoneHandler,
        r53: MagicMock,
        make_client_error: Callable[..., ClientError],
    ) -> None:
        r53.update_hosted_zone_comment.side_effect = make_client_error("PriorRequestNotComplete")
        desired = _desired(hosted_zone_config=HostedZoneConfig(comment="new"))

        event = handler.update(session, _request(desired, _desired(id="Z1")), HostedZoneContext())

        assert event.status == OperationStatus.IN_PROGRESS
        assert event.callback_context.retries == 1

    def test_deleted_zone_is_not_found(
        self,
        session: SessionProxy,
        handler: HostedZoneHandler,
        r53: MagicMock,
        make_client_error: Callable[..., ClientError],
    ) -> None:
        r53.update_hosted_zone_comment.side_effect = make_client_error("NoSuchHostedZone")
        desired = _desired(hosted_zone_config=HostedZoneConfig(comment="new"))

        with pytest.raises(HandlerError) as excinfo:
            handler.update(session, _request(desired, _desired(id="Z1")), HostedZoneContext())
        assert excinfo.value.code == HandlerErrorCode.NOT_FOUND

    def test_previous_state_required(
        self, session: SessionProxy, handler: HostedZoneHandler
    ) -> None:
        with pytest.raises(HandlerError) as excinfo:
            handler.update(session, _request(_desired(id="Z1")), HostedZoneContext())
        assert excinfo.value.code == HandlerErrorCode.INVALID_REQUEST


class TestDelete:
    def test_first_invocation_deletes_and_waits(
        self, session: SessionProxy, handler: HostedZoneHandler, r53: MagicMock
    ) -> None:
        event = handler.delete(session, _request(_desired(id="Z1")), HostedZoneContext())

        r53.delete_hosted_zone.assert_called_once_with(Id="Z1")
        assert event.status == OperationStatus.IN_PROGRESS
        assert event.callback_context == HostedZoneContext(
            attempt=1, hosted_zone_id="Z1", change_id="/change/D1"
        )

    def test_insync_is_success(
        self, session: SessionProxy, handler: HostedZoneHandler, r53: MagicMock
    ) -> None:
        r53.get_change.return_value = {"ChangeInfo": {"Id": "/change/D1", "Status": "INSYNC"}}
        ctx = HostedZoneContext(attempt=1, hosted_zone_id="Z1", change_id="/change/D1")

        event = handler.delete(session, _request(_desired(id="Z1")), ctx)

        r53.delete_hosted_zone.assert_not_called()
        assert event.status == OperationStatus.SUCCESS
        assert event.resource_model is None

    def test_already_deleted_is_success(
        self,
        session: SessionProxy,
        handler: HostedZoneHandler,
        r53: MagicMock,
        make_client_error: Callable[..., ClientError],
    ) -> None:
        r53.delete_hosted_zone.side_effect = make_client_error("NoSuchHostedZone", status=404)

        event = handler.delete(session, _request(_desired(id="Z1")), HostedZoneContext())

        assert event.status == OperationStatus.SUCCESS

    def test_expired_change_with_zone_gone_is_success(
        self,
        session: SessionProxy,
        handler: HostedZoneHandler,
        r53: MagicMock,
        make_client_error: Callable[..., ClientError],
    ) -> None:
        r53.get_change.side_effect = make_client_error("NoSuchChange", "gone", status=404)
        r53.get_hosted_zone.side_effect = make_client_error("NoSuchHostedZone", status=404)
        ctx = HostedZoneContext(attempt=1, hosted_zone_id="Z1", change_id="C1")

        event = handler.delete(session, _request(_desired(id="Z1")), ctx)

        assert event.status == OperationStatus.SUCCESS
        r53.get_hosted_zone.assert_called_once_with(Id="Z1")
        r53.delete_hosted_zone.assert_not_called()

    def test_expired_change_with_zone_left_deletes_again(
        self,
        session: SessionProxy,
        handler: HostedZoneHandler,
        r53: MagicMock,
        make_client_error: Callable[..., ClientError],
    ) -> None:
        r53.get_change.side_effect = make_client_error("NoSuchChange", "gone", status=404)
        ctx = HostedZoneContext(attempt=1, hosted_zone_id="Z1", change_id="C1")

        event = handler.delete(session, _request(_desired(id="Z1")), ctx)

        assert event.status == OperationStatus.IN_PROGRESS
        assert event.callback_context == HostedZoneContext(attempt=2, hosted_zone_id="Z1")

        handler.delete(session, _request(_desired(id="Z1")), event.callback_context)

        r53.delete_hosted_zone.assert_called_once_with(Id="Z1")

    def test_non_empty_zone_is_conflict(
        self,
        session: SessionProxy,
        handler: HostedZoneHandler,
        r53: MagicMock,
        make_client_error: Callable[..., ClientError],
    ) -> None:
        r53.delete_hosted_zone.side_effect = make_client_error("HostedZoneNotEmpty", "has records")

        event = handler.delete(session, _request(_desired(id="Z1")), HostedZoneContext())

        assert event.status == OperationStatus.FAILED
        assert event.error_code == HandlerErrorCode.RESOURCE_CONFLICT

    def test_missing_id_rejected(self, session: SessionProxy, handler: HostedZoneHandler) -> None:
        with pytest.raises(HandlerError) as excinfo:
            handler.delete(session, _request(_desired()), HostedZoneContext())
        assert excinfo.value.code == HandlerErrorCode.INVALID_REQUEST


class TestList:
    def test_first_page(
        self, session: SessionProxy, handler: HostedZoneHandler, r53: MagicMock
    ) -> None:
        r53.list_hosted_zones.return_value = {
            "HostedZones": [_zone("Z1"), _zone("Z2", "b.org.", comment="b")],
            "IsTruncated": True,
            "NextMarker": "Z3",
        }

        event = handler.list(session, _request(), HostedZoneContext())

        r53.list_hosted_zones.assert_called_once_with(MaxItems="2")
        assert event.status == OperationStatus.SUCCESS
        assert [m.id for m in event.resource_models] == ["Z1", "Z2"]
        assert event.resource_models[1].comment == "b"
        assert event.next_token == "Z3"

    def test_last_page_has_no_token(
        self, session: SessionProxy, handler: HostedZoneHandler, r53: MagicMock
    ) -> None:
        r53.list_hosted_zones.return_value = {"HostedZones": [_zone("Z3")], "IsTruncated": False}

        event = handler.list(session, _request(next_token="Z3"), HostedZoneContext())

        r53.list_hosted_zones.assert_called_once_with(MaxItems="2", Marker="Z3")
        assert event.next_token is None

    def test_private_zones_skipped(
        self, session: SessionProxy, handler: HostedZoneHandler, r53: MagicMock
    ) -> None:
        r53.list_hosted_zones.return_value = {
            "HostedZones": [_zone("Z1"), _zone("Z2", private=True)],
            "IsTruncated": False,
        }

        event = handler.list(session, _request(), HostedZoneContext())

        assert [m.id for m in event.resource_models] == ["Z1"]

    def test_same_token_same_page(
        self, session: SessionProxy, handler: HostedZoneHandler, r53: MagicMock
    ) -> None:
        r53.list_hosted_zones.return_value = {"HostedZones": [_zone("Z5")], "IsTruncated": False}

        first = handler.list(session, _request(next_token="Z5"), HostedZoneContext())
        second = handler.list(session, _request(next_token="Z5"), HostedZoneContext())

        assert first.resource_models == second.resource_models
        assert r53.list_hosted_zones.call_args_list[0] == r53.list_hosted_zones.call_args_list[1]
