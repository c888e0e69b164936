"""End-to-end runs of the bundled example integrations through IntegrationService.

Third-party APIs are answered by an ``httpx.MockTransport`` router, so every
test exercises extraction, transpilation, synthesis, the sandbox and the
service together without a network.
"""

import base64
import json
import logging

import httpx
import pytest

from hivelang_runtime.runtime import (
    ErrorKind,
    InMemorySourceProvider,
    IntegrationService,
    IntegrationSource,
    RuntimeCache,
)

pytestmark = pytest.mark.asyncio


def gmail_api(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path.endswith("/messages/send"):
        return httpx.Response(200, json={"id": "sent-1"})
    if path.endswith("/messages"):
        return httpx.Response(200, json={"messages": [{"id": "m1"}, {"id": "m2"}]})
    message_id = path.rsplit("/", 1)[-1]
    headers = [{"name": "Subject", "value": f"Subject {message_id}"}]
    if message_id == "m1":
        headers.append({"name": "From", "value": "grace@example.com"})
    return httpx.Response(200, json={"snippet": f"snippet {message_id}", "payload": {"headers": headers}})


def github_api(request: httpx.Request) -> httpx.Response:
    if request.method == "POST":
        payload = json.loads(request.content)
        return httpx.Response(
            201,
            json={
                "id": 99,
                "number": 7,
                "html_url": "https://github.com/o/r/issues/7",
                "state": "open",
                "title": payload["title"],
            },
        )
    return httpx.Response(200, json=[{"title": "Open bug", "state": "open"}, {"title": "Done", "state": "closed"}])


def calendar_api(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"items": [{"summary": "Standup"}]})


def trello_api(request: httpx.Request) -> httpx.Response:
    if request.method == "PUT":
        return httpx.Response(200, json={"id": "card-1"})
    return httpx.Response(
        200,
        json=[{"id": "l1", "name": "Todo", "pos": 1, "closed": False}, {"id": "l2", "name": "Done", "pos": 2}],
    )


ROUTES = {
    "gmail.googleapis.com": gmail_api,
    "api.github.com": github_api,
    "www.googleapis.com": calendar_api,
    "api.trello.com": trello_api,
}


class Router:
    def __init__(self) -> None:
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return ROUTES[request.url.host](request)


@pytest.fixture
def router() -> Router:
    return Router()


@pytest.fixture
def service(integration_sources, make_sandbox, router) -> IntegrationService:
    provider = InMemorySourceProvider(
        [IntegrationSource(id=stem, name=stem.title(), slug=stem, source=text) for stem, text in integration_sources.items()]
    )
    return IntegrationService(provider, cache=RuntimeCache(max_size=2), sandbox=make_sandbox(router))


def context(slug: str, **user) -> dict:
    return {
        "user": {"id": "user-1", **user},
        "integration": {"id": slug, "name": slug.title(), "slug": slug},
    }


class TestGithub:
    async def test_create_issue(self, service, router):
        result = await service.invoke(
            "github",
            "create_issue",
            {"repo_owner": "o", "repo_name": "r", "title": "Crash", "body": "Steps"},
            context("github", api_key="ghp_1"),
        )
        assert result.success is True
        assert result.value == {"id": 99, "number": 7, "url": "https://github.com/o/r/issues/7", "state": "open"}

        request = router.requests[0]
        assert request.url == "https://api.github.com/repos/o/r/issues"
        assert request.headers["Authorization"] == "token ghp_1"
        assert request.headers["Accept"] == "application/vnd.github.v3+json"
        assert json.loads(request.content) == {"title": "Crash", "body": "Steps"}

    async def test_list_issues_filters_open(self, service, router):
        result = await service.invoke("github", "list_issues", ["o", "r", "all"], context("github", api_key="k"))
        assert result.value == ["Open bug"]
        assert router.requests[0].url.params["state"] == "all"


class TestGmail:
    async def test_list_reads_each_message(self, service, router):
        result = await service.invoke("gmail", "list", [5, True], context("gmail", access_token="ya29"))
        assert result.success is True
        assert result.value == {
            "count": 2,
            "items": [
                {"id": "m1", "from": "grace@example.com", "subject": "Subject m1", "snippet": "snippet m1"},
                {"id": "m2", "from": "", "subject": "Subject m2", "snippet": "snippet m2"},
            ],
        }
        first = router.requests[0]
        assert first.url.params["maxResults"] == "5"
        assert first.url.params["q"] == "is:unread"
        assert all(r.headers["Authorization"] == "Bearer ya29" for r in router.requests)
        assert len(router.requests) == 3

    async def test_send_encodes_the_message(self, service, router):
        result = await service.invoke(
            "gmail", "send", ["ada@example.com", "Hi", "Hello there"], context("gmail", access_token="ya29")
        )
        assert result.value == {"id": "sent-1", "sent": True}
        raw = json.loads(router.requests[0].content)["raw"]
        assert base64.b64decode(raw).decode() == "To: ada@example.com\r\nSubject: Hi\r\n\r\nHello there"


class TestCalendar:
    @pytest.mark.parametrize(
        "delay, expected",
        [("1h", 3_600_000), ("30m", 1_800_000), ("2d", 172_800_000)],
    )
    async def test_reminder_delay(self, service, delay, expected):
        result = await service.invoke("calendar", "reminder_delay", [delay], context("calendar"))
        assert result.value == expected

    async def test_unrecognised_delay_warns(self, service, caplog):
        with caplog.at_level(logging.WARNING, logger="hivelang_runtime.capability"):
            result = await service.invoke("calendar", "reminder_delay", ["soon"], context("calendar"))
        assert result.value == 0
        assert "[HiveLang] calendar.reminder_delay: unrecognised delay soon" in caplog.text

    async def test_list_events_window(self, service, router):
        result = await service.invoke("calendar", "list_events", [1], context("calendar", access_token="t"))
        assert result.value == [{"summary": "Standup"}]
        params = router.requests[0].url.params
        assert params["singleEvents"] == "true"
        assert params["timeMin"].endswith("Z")
        assert params["timeMin"] < params["timeMax"]


class TestTrello:
    async def test_get_lists(self, service, router):
        result = await service.invoke("trello", "get_lists", ["b1"], context("trello", api_key="k", token="t"))
        assert result.value == [{"id": "l1", "name": "Todo", "pos": 1}, {"id": "l2", "name": "Done", "pos": 2}]
        params = router.requests[0].url.params
        assert (params["key"], params["token"]) == ("k", "t")

    async def test_move_card(self, service, router):
        result = await service.invoke("trello", "move_card", ["c1", "l2"], context("trello", api_key="k", token="t"))
        assert result.value is True
        request = router.requests[0]
        assert request.method == "PUT"
        assert request.url.params["idList"] == "l2"

    async def test_summary_logs(self, service, router, caplog):
        cards = [{"name": "alpha", "points": 3}, {"name": "beta"}]
        with caplog.at_level(logging.INFO, logger="hivelang_runtime.capability"):
            result = await service.invoke("trello", "summary", [cards], context("trello"))
        assert result.value == "ALPHA, BETA (3 points)"
        assert "[HiveLang] trello.summary: summarised 2 cards" in caplog.text
        assert router.requests == []


class TestServiceAcrossIntegrations:
    async def test_cache_evicts_oldest_integration(self, service):
        for slug in ("calendar", "trello", "github"):
            await service.invoke(slug, "missing", [], context(slug))
        assert service.cache.keys() == ["trello", "github"]

    async def test_failures_do_not_leak_between_integrations(self, service, router):
        failed = await service.invoke("gmail", "list", [1, False], None)
        assert failed.error_kind == ErrorKind.context_missing
        ok = await service.invoke("trello", "summary", [[]], context("trello"))
        assert ok.value == " (0 points)"
        assert router.requests == []
