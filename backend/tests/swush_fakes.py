"""Canned SWUSH responses served through httpx.MockTransport."""

from __future__ import annotations

import httpx

from gamesync.services.swush_client import SwushClient

BASE_URL = "https://swush.test/v1/partner"
GAME_PATH = "/v1/partner/season/subsites/aftonbladet/games/allsvenskan"

GAME_DETAILS = {
    "gameId": 77,
    "currentRoundIndex": 3,
    "userteamsCount": 3,
    "rounds": [
        {"index": 2, "state": "Ended", "start": "2026-03-07T12:00:00Z", "end": "2026-03-09T20:00:00Z"},
        {
            "index": 3,
            "state": "CurrentOpen",
            "start": "2026-03-15T12:00:00Z",
            "end": "2026-03-17T20:00:00Z",
            "tradeCloses": "2026-03-15T11:00:00Z",
        },
    ],
}

ELEMENTS = [
    {"elementId": 101, "shortName": "Larsson", "fullName": "Sam Larsson", "teamName": "AIK", "value": 90},
    {"elementId": 102, "shortName": "Berg", "fullName": "Marcus Berg", "teamName": "IFK", "popularity": 0.42},
]

USER_PAGES = {
    1: {
        "page": 1,
        "pages": 2,
        "users": [
            {
                "id": 1,
                "externalId": "ext-1",
                "name": "Anna",
                "injured": 1,
                "userteams": [
                    {"name": "Anna FC", "score": 120, "rank": 4, "roundScore": 30, "lineupElementIds": [101, 102]},
                ],
            },
            {"id": 2, "externalId": None, "name": "No external id", "userteams": []},
        ],
    },
    2: {
        "page": 2,
        "pages": 2,
        "users": [
            {"id": 3, "externalId": "ext-3", "name": "Bo", "userteams": [{"name": "Bo United", "score": 80}]},
        ],
    },
}


class SwushStub:
    """Routes requests by path and records what was asked for."""

    def __init__(self, overrides=None):
        self.overrides = overrides or {}
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path in self.overrides:
            override = self.overrides[path]
            return override(request) if callable(override) else override
        if path == GAME_PATH:
            return httpx.Response(200, json=GAME_DETAILS)
        if path == f"{GAME_PATH}/elements":
            return httpx.Response(200, json=ELEMENTS)
        if path == f"{GAME_PATH}/users":
            page = int(request.url.params.get("page", "1"))
            return httpx.Response(200, json=USER_PAGES[page])
        if path == "/v1/partner/apikeycheck":
            return httpx.Response(200, json={"message": "Ok: Valid API Key"})
        return httpx.Response(404, json={"message": "Not found"})

    def paths(self):
        return [request.url.path for request in self.requests]


def make_client(stub: SwushStub, sleep=None, **kwargs) -> SwushClient:
    if sleep is not None:
        kwargs["sleep"] = sleep
    return SwushClient(
        base_url=BASE_URL,
        api_key="test-key",
        transport=httpx.MockTransport(stub),
        **kwargs,
    )
