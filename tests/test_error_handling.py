"""Tests for error classification and the HTTP/API failure mapping."""

import asyncio
import json
from unittest.mock import patch

import httpx
import pytest
from hypothesis import given, settings, strategies as st

from chill_gamer.models import Session, WatchlistSnapshot
from chill_gamer.services import (
    AppError,
    AuthenticationRequiredError,
    ErrorCategory,
    ErrorHandlingService,
    ErrorSeverity,
    HttpClientService,
    NetworkError,
    NotFoundError,
    StaleReferenceError,
    ValidationError,
)
from chill_gamer.services.catalog_api import CatalogApiClient
from chill_gamer.services.errors import DuplicateConstraintError
from chill_gamer.services.result import Failure, report_failure

from fake_server import BASE_URL, FakeChillGamerServer, make_http


def client_for(handler) -> HttpClientService:
    return HttpClientService(BASE_URL, timeout=1.0, transport=httpx.MockTransport(handler))


class TestHttpClientErrors:
    """Every transport or status failure becomes a NetworkError with technical details logged."""

    @given(
        path=st.text(alphabet="abcdefghijklmnopqrstuvwxyz0123456789-", min_size=1, max_size=30).map(lambda p: f"/{p}"),
        error_type=st.sampled_from(["connect", "timeout", "http_4xx", "http_5xx"]),
        error_message=st.text(min_size=5, max_size=60),
    )
    @settings(deadline=None)
    def test_failures_become_network_errors(self, path: str, error_type: str, error_message: str) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if error_type == "connect":
                raise httpx.ConnectError(error_message, request=request)
            if error_type == "timeout":
                raise httpx.ReadTimeout(error_message, request=request)
            status = 404 if error_type == "http_4xx" else 500
            return httpx.Response(status, json={"message": error_message})

        async def run() -> NetworkError:
            client = client_for(handler)
            try:
                with pytest.raises(NetworkError) as exc_info:
                    await client.get_json(path)
                return exc_info.value
            finally:
                await client.close()

        with patch("chill_gamer.services.http_client.log") as mock_logger:
            error = asyncio.run(run())

            assert mock_logger.warning.called
            logged = mock_logger.warning.call_args.kwargs
            assert logged["url"].endswith(path)

        assert error.category == ErrorCategory.NETWORK
        assert error.recoverable
        assert error.message
        if error_type == "http_4xx":
            assert error.status_code == 404
        elif error_type == "http_5xx":
            assert error.status_code == 500
        else:
            assert error.status_code is None
            assert error_message in (error.technical_details or "")

    @pytest.mark.asyncio
    async def test_malformed_json_is_a_network_error(self) -> None:
        client = client_for(lambda request: httpx.Response(200, content=b"{not json"))
        with pytest.raises(NetworkError) as exc_info:
            await client.get_json("/games")
        assert exc_info.value.status_code == 200
        assert "could not be read" in exc_info.value.message
        await client.close()

    @pytest.mark.asyncio
    async def test_empty_body_decodes_to_none(self) -> None:
        client = client_for(lambda request: httpx.Response(204))
        assert await client.delete("/watchlist/w1") is None
        await client.close()

    @pytest.mark.asyncio
    async def test_requests_are_not_retried(self) -> None:
        attempts: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request.url.path)
            return httpx.Response(503)

        client = client_for(handler)
        with pytest.raises(NetworkError):
            await client.get_json("/reviews")
        assert attempts == ["/chill-gamer/reviews"]
        await client.close()


class TestApiStatusMapping:

    @pytest.mark.asyncio
    async def test_conflict_on_watchlist_add_is_duplicate(self) -> None:
        server = FakeChillGamerServer(watchlist=[{"_id": "w1", "userEmail": "a@example.com", "gameTitle": "Y"}])
        api = CatalogApiClient(make_http(server))
        with pytest.raises(DuplicateConstraintError) as exc_info:
            await api.add_to_watchlist(WatchlistSnapshot(game_title="Y"), Session(user_email="a@example.com"))
        assert exc_info.value.category == ErrorCategory.DUPLICATE_CONSTRAINT
        assert exc_info.value.game_title == "Y"

    @pytest.mark.asyncio
    async def test_missing_watchlist_item_on_remove_is_stale(self, api) -> None:
        with pytest.raises(StaleReferenceError) as exc_info:
            await api.remove_from_watchlist("gone")
        assert exc_info.value.entity_id == "gone"

    @pytest.mark.asyncio
    async def test_missing_review_is_not_found(self, api) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            await api.get_review("nope")
        assert exc_info.value.category == ErrorCategory.NOT_FOUND

    @pytest.mark.asyncio
    async def test_server_error_on_remove_stays_network(self, api, server: FakeChillGamerServer) -> None:
        server.fail("DELETE", "/watchlist/w1", 500)
        with pytest.raises(NetworkError) as exc_info:
            await api.remove_from_watchlist("w1")
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_entity_missing_id_is_rejected(self) -> None:
        server = FakeChillGamerServer(games=[{"title": "No Id"}])
        api = CatalogApiClient(make_http(server))
        with pytest.raises(NetworkError, match="unexpected response"):
            await api.get_games()

    @pytest.mark.asyncio
    async def test_object_where_list_expected_is_rejected(self, server: FakeChillGamerServer) -> None:
        server.reviews = {"oops": True}  # type: ignore[assignment]
        api = CatalogApiClient(make_http(server))
        with pytest.raises(NetworkError):
            await api.get_reviews()

    @pytest.mark.asyncio
    async def test_email_path_segment_is_escaped(self, api, server: FakeChillGamerServer) -> None:
        await api.get_user_reviews("odd name@example.com")
        await api.get_watchlist("ana@example.com")
        paths = [call[1] for call in server.requests]
        assert paths == ["/reviews/user/odd name@example.com", "/watchlist/ana@example.com"]


class TestErrorHandlingService:

    def test_classifies_httpx_errors(self) -> None:
        service = ErrorHandlingService()
        request = httpx.Request("GET", "http://testserver/games")

        timeout = service.classify(httpx.ReadTimeout("slow", request=request))
        assert isinstance(timeout, NetworkError)
        assert "timed out" in timeout.message

        response = httpx.Response(503, request=request)
        status = service.classify(httpx.HTTPStatusError("bad", request=request, response=response))
        assert isinstance(status, NetworkError)
        assert status.status_code == 503
        assert status.url == "http://testserver/games"

        connect = service.classify(httpx.ConnectError("refused"), context={"url": "http://x"})
        assert isinstance(connect, NetworkError)
        assert connect.url == "http://x"

    def test_classifies_other_errors(self) -> None:
        service = ErrorHandlingService()

        decode = service.classify(json.JSONDecodeError("Expecting value", "x", 0))
        assert decode.category == ErrorCategory.NETWORK

        value = service.classify(ValueError("rating must be 1-5"), context={"field": "rating", "value": 9})
        assert isinstance(value, ValidationError)
        assert value.field == "rating"

        unexpected = service.classify(RuntimeError("boom"), "op", "component")
        assert unexpected.category == ErrorCategory.UNEXPECTED
        assert unexpected.context is not None
        assert unexpected.context.operation == "op"

        bug = service.classify(TypeError("unsupported operand"), "op", "component")
        assert bug.category == ErrorCategory.UNEXPECTED
        assert not isinstance(bug, ValidationError)

        auth = AuthenticationRequiredError(operation="toggle")
        assert service.classify(auth) is auth

    @pytest.mark.parametrize(
        "status_code, fragment",
        [
            (400, "invalid"),
            (404, "not found"),
            (409, "already exists"),
            (429, "Too many requests"),
            (500, "server encountered"),
            (418, "HTTP error 418"),
        ],
    )
    def test_http_error_message(self, status_code: int, fragment: str) -> None:
        assert fragment in ErrorHandlingService.http_error_message(status_code)

    def test_status_specific_suggestions(self) -> None:
        assert "no longer exist" in NetworkError("x", status_code=404).suggested_actions[0]
        assert "server" in NetworkError("x", status_code=502).suggested_actions[0]
        assert "connection" in NetworkError("x").suggested_actions[0]

    @given(count=st.integers(min_value=1, max_value=30), limit=st.integers(min_value=1, max_value=10))
    def test_history_is_bounded_and_ordered(self, count: int, limit: int) -> None:
        service = ErrorHandlingService(max_history_size=limit)
        for i in range(count):
            service.handle_error(AppError(f"error {i}"), "op", "test")

        recent = service.get_recent_errors(100)
        assert len(recent) == min(count, limit)
        assert recent[-1].message == f"error {count - 1}"
        assert sum(service.get_error_count_by_category().values()) == len(recent)

    def test_user_message_lists_at_most_three_suggestions(self) -> None:
        service = ErrorHandlingService()
        friendly = service.handle_error(
            AppError("Something broke", suggested_actions=["a", "b", "c", "d"]),
            "op",
            "test",
        )
        message = service.create_user_message(friendly)
        assert message.startswith("Something broke")
        assert message.count("•") == 3
        assert service.create_user_message(friendly, include_suggestions=False) == "Something broke"

    def test_logs_by_severity(self) -> None:
        service = ErrorHandlingService()
        with patch("chill_gamer.services.errors.log") as mock_logger:
            service.handle_error(NetworkError("down"), "op", "test")
            service.handle_error(NotFoundError("missing"), "op", "test")
            service.handle_error(DuplicateConstraintError("dup"), "op", "test")

        assert mock_logger.error.call_count == 1
        assert mock_logger.warning.call_count == 1
        assert mock_logger.info.call_count == 1
        assert mock_logger.error.call_args.kwargs["category"] == "network"


class TestReportFailure:

    def test_records_with_error_service(self) -> None:
        service = ErrorHandlingService()
        failure = report_failure(NetworkError("down", status_code=500), service, "op", "test", message="Failed")

        assert isinstance(failure, Failure)
        assert failure.kind == ErrorCategory.NETWORK
        assert failure.message == "Failed"
        assert failure.detail and "500" in failure.detail
        assert service.get_recent_errors(1)[0].message == "down"

    def test_logs_without_error_service(self) -> None:
        with patch("chill_gamer.services.result.log") as mock_logger:
            failure = report_failure(StaleReferenceError("gone"), None, "op", "test")

        assert failure.message == "gone"
        assert failure.severity == ErrorSeverity.ERROR
        mock_logger.warning.assert_called_once()
        assert mock_logger.warning.call_args.kwargs["category"] == "stale_reference"
