from __future__ import annotations

import httpx
import pytest

from factories import FakeSleep
from gamesync.config import Settings
from gamesync.services.budget import BudgetReservation
from gamesync.services.errors import BUDGET_EXHAUSTED_PREFIX, BudgetExhaustedError, SwushAPIError
from gamesync.services.swush_client import UPSTREAM_MAX_PAGE_SIZE, create_swush_client
from swush_fakes import GAME_PATH, SwushStub, make_client


class TestRequests:
    @pytest.mark.asyncio
    async def test_sends_api_key_and_spends_one_call(self):
        stub = SwushStub()
        reservation = BudgetReservation(None, 5)
        async with make_client(stub) as client:
            payload = await client.get_game("aftonbladet", "allsvenskan", reservation)

        assert payload["gameId"] == 77
        assert stub.requests[0].headers["x-api-key"] == "test-key"
        assert reservation.used == 1

    @pytest.mark.asyncio
    async def test_verify_api_key(self):
        async with make_client(SwushStub()) as client:
            assert await client.verify_api_key(BudgetReservation(None, 1))

    @pytest.mark.asyncio
    async def test_users_request_uses_max_page_size(self):
        stub = SwushStub()
        async with make_client(stub) as client:
            await client.get_users("aftonbladet", "allsvenskan", BudgetReservation(None, 1), page_size=10000)

        params = stub.requests[0].url.params
        assert params["pageSize"] == str(UPSTREAM_MAX_PAGE_SIZE)
        assert params["includeUserteams"] == "true"

    @pytest.mark.asyncio
    async def test_http_error(self):
        stub = SwushStub({GAME_PATH: httpx.Response(503, text="maintenance")})
        async with make_client(stub) as client:
            with pytest.raises(SwushAPIError) as excinfo:
                await client.get_game("aftonbladet", "allsvenskan", BudgetReservation(None, 1))

        assert excinfo.value.status_code == 503
        assert str(excinfo.value) == "HTTP 503: Service Unavailable"

    @pytest.mark.asyncio
    async def test_timeout(self):
        def time_out(request):
            raise httpx.ReadTimeout("too slow", request=request)

        async with make_client(SwushStub({GAME_PATH: time_out})) as client:
            with pytest.raises(SwushAPIError) as excinfo:
                await client.get_game("aftonbladet", "allsvenskan", BudgetReservation(None, 1))

        assert excinfo.value.status_code == 408

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        stub = SwushStub({GAME_PATH: httpx.Response(200, text="<html>")})
        async with make_client(stub) as client:
            with pytest.raises(SwushAPIError) as excinfo:
                await client.get_game("aftonbladet", "allsvenskan", BudgetReservation(None, 1))

        assert excinfo.value.status_code == 500

    @pytest.mark.asyncio
    async def test_refused_call_never_reaches_upstream(self):
        stub = SwushStub()
        async with make_client(stub) as client:
            with pytest.raises(BudgetExhaustedError) as excinfo:
                await client.get_game("aftonbladet", "allsvenskan", BudgetReservation(None, 0))

        assert str(excinfo.value).startswith(BUDGET_EXHAUSTED_PREFIX)
        assert stub.requests == []


class TestPagination:
    @pytest.mark.asyncio
    async def test_fetches_every_page_with_delay(self):
        sleep = FakeSleep()
        async with make_client(SwushStub(), sleep=sleep, page_delay_seconds=1.1) as client:
            payload = await client.get_all_users("aftonbladet", "allsvenskan", BudgetReservation(None, 2))

        assert [user["id"] for user in payload["users"]] == [1, 2, 3]
        assert payload["pages"] == 1
        assert sleep.calls == [1.1]

    @pytest.mark.asyncio
    async def test_failed_later_page_is_skipped(self):
        def page_two_fails(request):
            if request.url.params.get("page") == "2":
                return httpx.Response(500, text="boom")
            return httpx.Response(200, json={"page": 1, "pages": 2, "users": [{"id": 1, "externalId": "x"}]})

        stub = SwushStub({f"{GAME_PATH}/users": page_two_fails})
        async with make_client(stub, sleep=FakeSleep()) as client:
            payload = await client.get_all_users("aftonbladet", "allsvenskan", BudgetReservation(None, 2))

        assert [user["id"] for user in payload["users"]] == [1]

    @pytest.mark.asyncio
    async def test_budget_refusal_on_later_page_propagates(self):
        async with make_client(SwushStub(), sleep=FakeSleep()) as client:
            with pytest.raises(BudgetExhaustedError):
                await client.get_all_users("aftonbladet", "allsvenskan", BudgetReservation(None, 1))


class TestFactory:
    def test_requires_credentials(self):
        with pytest.raises(RuntimeError):
            create_swush_client(Settings(swush_api_base_url=None, swush_api_key=None))

    @pytest.mark.asyncio
    async def test_builds_from_settings(self):
        client = create_swush_client(Settings(
            swush_api_base_url="https://swush.test/v1/partner/",
            swush_api_key="abc",
            swush_timeout_seconds=10,
        ))
        assert client.base_url == "https://swush.test/v1/partner"
        assert client.timeout == 10
        await client.close()
