"""Tests du client API Bungie (retry, enveloppe, pagination)."""

from __future__ import annotations

import asyncio
import json
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from aiohttp import ClientConnectionError, ClientResponseError, test_utils, web
from conftest import CHARACTER_ID, MEMBER_ID, make_pgcr

from activity_store.data.domain.refdata import CharacterClass, Mode, Platform
from activity_store.data.sync.api_client import (
    ACTIVITY_PAGE_SIZE,
    BungieAPIClient,
    _unwrap_envelope,
    get_api_key_from_env,
    request_with_retries,
)
from activity_store.data.sync.engine import ActivitySyncEngine
from activity_store.errors import ApiError


def _response_error(status: int) -> ClientResponseError:
    return ClientResponseError(request_info=MagicMock(), history=(), status=status, message="erreur")


def _envelope(response: Any, error_code: int = 1) -> dict[str, Any]:
    return {"Response": response, "ErrorCode": error_code, "ErrorStatus": "Success", "Message": "Ok"}


def _history_page(ids: list[int]) -> dict[str, Any]:
    return {
        "activities": [
            {
                "period": "2024-03-01T20:00:00Z",
                "activityDetails": {
                    "referenceId": 1,
                    "directorActivityHash": 2,
                    "instanceId": str(i),
                    "mode": 5,
                    "modes": [5],
                },
                "values": {},
            }
            for i in ids
        ]
    }


@pytest.fixture
def no_sleep():
    with patch("activity_store.data.sync.api_client.asyncio.sleep", new=AsyncMock()) as sleep:
        yield sleep


class TestRequestWithRetries:
    """Retry avec backoff exponentiel."""

    @pytest.mark.asyncio
    async def test_success_first_try(self, no_sleep) -> None:
        factory = AsyncMock(return_value={"ok": True})

        assert await request_with_retries(factory) == {"ok": True}
        factory.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_retries_transient_errors(self, no_sleep) -> None:
        factory = AsyncMock(side_effect=[ClientConnectionError(), _response_error(503), {"ok": True}])

        assert await request_with_retries(factory, tries=4, base_sleep=0.5) == {"ok": True}
        assert factory.await_count == 3
        assert [c.args[0] for c in no_sleep.await_args_list] == [0.5, 1.0]

    @pytest.mark.asyncio
    async def test_exhausted_tries_raise_api_error(self, no_sleep) -> None:
        factory = AsyncMock(side_effect=asyncio.TimeoutError())

        with pytest.raises(ApiError):
            await request_with_retries(factory, tries=3)
        assert factory.await_count == 3

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [401, 403, 404, 410])
    async def test_no_retry_on_client_errors(self, no_sleep, status: int) -> None:
        factory = AsyncMock(side_effect=_response_error(status))

        with pytest.raises(ApiError) as exc_info:
            await request_with_retries(factory)
        assert exc_info.value.status == status
        factory.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_non_json_body_raises_api_error(self, no_sleep) -> None:
        factory = AsyncMock(side_effect=json.JSONDecodeError("Expecting value", "<html>", 0))

        with pytest.raises(ApiError):
            await request_with_retries(factory)
        factory.assert_awaited_once()


class TestEnvelope:
    """Enveloppe de réponse Bungie."""

    def test_returns_response(self) -> None:
        assert _unwrap_envelope(_envelope({"a": 1})) == {"a": 1}

    def test_error_code_raises(self) -> None:
        with pytest.raises(ApiError) as exc_info:
            _unwrap_envelope({"ErrorCode": 1665, "ErrorStatus": "DestinyPrivacyRestriction", "Message": "Privé"})
        assert exc_info.value.error_code == 1665

    def test_non_object_raises(self) -> None:
        with pytest.raises(ApiError):
            _unwrap_envelope(["not", "an", "object"])


class TestApiKey:
    """Lecture de la clé API."""

    def test_key_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DESTINY_API_KEY", " abc123 ")
        assert get_api_key_from_env() == "abc123"

    def test_missing_key_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DESTINY_API_KEY", "")
        with (
            patch("activity_store.data.sync.api_client._load_dotenv_if_present"),
            pytest.raises(ValueError),
        ):
            get_api_key_from_env()


class TestBungieAPIClient:
    """Opérations du client, avec _get_json simulé."""

    def test_session_requires_context_manager(self) -> None:
        client = BungieAPIClient(api_key="key")
        with pytest.raises(RuntimeError):
            _ = client.session

    @pytest.mark.asyncio
    async def test_fetch_roster(self) -> None:
        client = BungieAPIClient(api_key="key")
        client._get_json = AsyncMock(
            return_value={
                "profile": {
                    "data": {
                        "userInfo": {
                            "bungieGlobalDisplayName": "Guardian",
                            "bungieGlobalDisplayNameCode": 7,
                            "displayName": "guardian",
                        }
                    }
                },
                "characters": {
                    "data": {
                        CHARACTER_ID: {
                            "characterId": CHARACTER_ID,
                            "classType": 1,
                            "dateLastPlayed": "2024-03-01T20:00:00Z",
                            "light": 1810,
                        }
                    }
                },
            }
        )

        player = await client.fetch_roster(MEMBER_ID, Platform.STEAM)

        assert player.display_name == "Guardian#0007"
        assert player.characters[0].class_type == CharacterClass.HUNTER
        url = client._get_json.await_args.args[0]
        assert f"/Destiny2/3/Profile/{MEMBER_ID}/" in url

    @pytest.mark.asyncio
    async def test_fetch_characters_empty_profile(self) -> None:
        client = BungieAPIClient(api_key="key")
        client._get_json = AsyncMock(return_value={})

        assert await client.fetch_characters(MEMBER_ID, Platform.STEAM) is None

    @pytest.mark.asyncio
    async def test_fetch_event_detail(self) -> None:
        client = BungieAPIClient(api_key="key")
        client._get_json = AsyncMock(return_value=make_pgcr(42))

        detail = await client.fetch_event_detail(42)

        assert detail is not None
        assert detail.instance_id == 42

    @pytest.mark.asyncio
    async def test_fetch_event_detail_empty_and_invalid(self) -> None:
        client = BungieAPIClient(api_key="key")
        client._get_json = AsyncMock(side_effect=[None, {"period": "invalide"}])

        assert await client.fetch_event_detail(42) is None
        with pytest.raises(ApiError):
            await client.fetch_event_detail(42)

    @pytest.mark.asyncio
    async def test_fetch_events_since_stops_at_since_id(self) -> None:
        client = BungieAPIClient(api_key="key")
        client._get_json = AsyncMock(return_value=_history_page([50, 40, 30, 20]))

        activities = await client.fetch_events_since(MEMBER_ID, CHARACTER_ID, Platform.STEAM, Mode.ALL_PVP, 30)

        assert [a.activity_details.instance_id for a in activities] == [50, 40]
        client._get_json.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_fetch_events_since_pages(self) -> None:
        client = BungieAPIClient(api_key="key")
        first_page = list(range(1000, 1000 - ACTIVITY_PAGE_SIZE, -1))
        client._get_json = AsyncMock(side_effect=[_history_page(first_page), _history_page([10, 5])])

        activities = await client.fetch_events_since(MEMBER_ID, CHARACTER_ID, Platform.STEAM, Mode.ALL_PVP, 0)

        assert len(activities) == ACTIVITY_PAGE_SIZE + 2
        pages = [c.kwargs["params"]["page"] for c in client._get_json.await_args_list]
        assert pages == [0, 1]

    @pytest.mark.asyncio
    async def test_fetch_events_since_keeps_oldest(self) -> None:
        client = BungieAPIClient(api_key="key", max_activities=2)
        client._get_json = AsyncMock(return_value=_history_page([40, 30, 20, 10]))

        activities = await client.fetch_events_since(MEMBER_ID, CHARACTER_ID, Platform.STEAM, Mode.ALL_PVP, 0)

        assert [a.activity_details.instance_id for a in activities] == [20, 10]

    @pytest.mark.asyncio
    async def test_fetch_events_since_nothing_new(self) -> None:
        client = BungieAPIClient(api_key="key")
        client._get_json = AsyncMock(return_value=_history_page([30]))

        assert (
            await client.fetch_events_since(MEMBER_ID, CHARACTER_ID, Platform.STEAM, Mode.ALL_PVP, 30)
            is None
        )

    @pytest.mark.asyncio
    async def test_fetch_events_since_history_unavailable(self) -> None:
        client = BungieAPIClient(api_key="key")
        client._get_json = AsyncMock(side_effect=ApiError("privé", error_code=1665))

        assert (
            await client.fetch_events_since(MEMBER_ID, CHARACTER_ID, Platform.STEAM, Mode.ALL_PVP, 0)
            is None
        )

    @pytest.mark.asyncio
    async def test_context_manager_opens_session(self) -> None:
        async with BungieAPIClient(api_key="key") as client:
            assert client.session.headers["X-API-Key"] == "key"
        assert client._session is None


# =============================================================================
# Client réel contre un serveur local
# =============================================================================


def _maintenance_app() -> web.Application:
    """Profil valide, historique remplacé par une page HTML de maintenance."""

    async def profile(request: web.Request) -> web.Response:
        return web.json_response(
            _envelope(
                {
                    "profile": {"data": {"userInfo": {"displayName": "Guardian"}}},
                    "characters": {
                        "data": {CHARACTER_ID: {"characterId": CHARACTER_ID, "classType": 0}}
                    },
                }
            )
        )

    async def history(request: web.Request) -> web.Response:
        return web.Response(text="<html>maintenance</html>", content_type="text/html")

    app = web.Application()
    app.router.add_get("/Destiny2/{platform}/Profile/{member_id}/", profile)
    app.router.add_get(
        "/Destiny2/{platform}/Account/{member_id}/Character/{character_id}/Stats/Activities/",
        history,
    )
    return app


class TestMaintenancePage:
    """Corps HTML renvoyé avec un statut 200."""

    @pytest.mark.asyncio
    async def test_history_page_error_is_scoped(self, store) -> None:
        async with test_utils.TestServer(_maintenance_app()) as server:
            base_url = str(server.make_url("")).rstrip("/")
            with (
                patch("activity_store.data.sync.api_client.API_BASE_URL", base_url),
                patch("activity_store.data.sync.api_client.STATS_BASE_URL", base_url),
            ):
                async with BungieAPIClient(api_key="key") as client:
                    result = await ActivitySyncEngine(store, client).sync(MEMBER_ID, Platform.STEAM)

        assert result.total_synced == 0
        assert any(Mode.PRIVATE_MATCHES_ALL.name in e for e in result.errors)
        assert any(Mode.ALL_PVP.name in e for e in result.errors)
        assert store.get_member_row_id(MEMBER_ID) is not None
