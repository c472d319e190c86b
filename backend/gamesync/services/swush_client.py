"""
SWUSH partner API client.

Every request draws one call from the caller's budget reservation before it
goes out; a refused call raises ``BudgetExhaustedError``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional

import httpx

from gamesync.services.errors import BudgetExhaustedError, SwushAPIError

if TYPE_CHECKING:
    from gamesync.config import Settings
    from gamesync.services.budget import BudgetReservation


logger = logging.getLogger(__name__)

# SWUSH maximum page size for the users listing; cost estimates use it too.
UPSTREAM_MAX_PAGE_SIZE = 5000
DEFAULT_TIMEOUT_SECONDS = 60.0
# Just over one second: SWUSH allows at most one request per second
RATE_LIMIT_DELAY_SECONDS = 1.1
SLOW_REQUEST_SECONDS = 5.0


class SwushClient:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        page_delay_seconds: float = RATE_LIMIT_DELAY_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.page_delay_seconds = page_delay_seconds
        self._sleep = sleep
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "x-api-key": api_key,
                "Accept": "application/json",
                "User-Agent": "gamesync/1.0",
            },
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "SwushClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _request(
        self,
        endpoint: str,
        reservation: "BudgetReservation",
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        if not reservation.take_call():
            logger.error("Daily SWUSH budget exhausted before %s", endpoint)
            raise BudgetExhaustedError(
                f"Daily API budget exhausted after {reservation.used} calls for this game."
            )

        url = f"{self.base_url}{endpoint}"
        started = time.monotonic()
        try:
            logger.debug("Fetching %s", url)
            response = await self._client.get(endpoint, params=params)
        except httpx.TimeoutException as exc:
            raise SwushAPIError(f"Request timeout after {self.timeout}s for {endpoint}", status_code=408, url=url) from exc
        except httpx.HTTPError as exc:
            logger.error("SWUSH network error for %s: %s", url, exc)
            raise SwushAPIError(f"Network error for {endpoint}: {exc}", url=url) from exc

        duration = time.monotonic() - started
        if response.status_code >= 400:
            logger.error(
                "SWUSH HTTP error %s for %s after %.2fs: %s",
                response.status_code,
                url,
                duration,
                response.text[:500],
            )
            raise SwushAPIError(
                f"HTTP {response.status_code}: {response.reason_phrase}",
                status_code=response.status_code,
                url=url,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise SwushAPIError("Invalid JSON response from SWUSH API", status_code=500, url=url) from exc

        if duration > SLOW_REQUEST_SECONDS:
            logger.warning("Slow SWUSH request %s took %.2fs", url, duration)
        return payload

    async def verify_api_key(self, reservation: "BudgetReservation") -> bool:
        payload = await self._request("/apikeycheck", reservation)
        return isinstance(payload, dict) and payload.get("message") == "Ok: Valid API Key"

    async def get_game(self, subsite_key: str, game_key: str, reservation: "BudgetReservation") -> Dict[str, Any]:
        return await self._request(f"/season/subsites/{subsite_key}/games/{game_key}", reservation)

    async def get_elements(
        self,
        subsite_key: str,
        game_key: str,
        reservation: "BudgetReservation",
        round_index: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        params = {"round": round_index} if round_index is not None else None
        payload = await self._request(
            f"/season/subsites/{subsite_key}/games/{game_key}/elements",
            reservation,
            params=params,
        )
        return payload or []

    async def get_users(
        self,
        subsite_key: str,
        game_key: str,
        reservation: "BudgetReservation",
        page: int = 1,
        page_size: int = UPSTREAM_MAX_PAGE_SIZE,
    ) -> Dict[str, Any]:
        params = {
            "includeUserteams": "true",
            "includeLineups": "true",
            "page": page,
            "pageSize": min(page_size, UPSTREAM_MAX_PAGE_SIZE),
        }
        return await self._request(
            f"/season/subsites/{subsite_key}/games/{game_key}/users",
            reservation,
            params=params,
        )

    async def get_all_users(
        self,
        subsite_key: str,
        game_key: str,
        reservation: "BudgetReservation",
    ) -> Dict[str, Any]:
        """Fetch every users page; a failed later page is logged and skipped."""
        first = await self.get_users(subsite_key, game_key, reservation, page=1)
        total_pages = int(first.get("pages") or 1)
        users = list(first.get("users") or [])

        for page in range(2, total_pages + 1):
            await self._sleep(self.page_delay_seconds)
            try:
                payload = await self.get_users(subsite_key, game_key, reservation, page=page)
            except BudgetExhaustedError:
                raise
            except SwushAPIError as exc:
                logger.error("Failed to fetch users page %s/%s for %s: %s", page, total_pages, game_key, exc)
                continue
            users.extend(payload.get("users") or [])

        merged = dict(first)
        merged.update({"users": users, "page": 1, "pages": 1})
        return merged


def create_swush_client(settings: "Settings") -> SwushClient:
    if not settings.swush_api_base_url or not settings.swush_api_key:
        raise RuntimeError("Missing SWUSH API settings (SWUSH_API_BASE_URL, SWUSH_API_KEY)")
    return SwushClient(
        base_url=settings.swush_api_base_url,
        api_key=settings.swush_api_key,
        timeout=settings.swush_timeout_seconds,
        page_delay_seconds=settings.swush_page_delay_seconds,
    )
