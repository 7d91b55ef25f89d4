# tests/test_scrape.py
import asyncio

import pytest
from playwright.async_api import TimeoutError as PWTimeout

from lottracker import scrape
from lottracker.errors import FetchError, FetchErrorKind


class FakeResponse:
    def __init__(self, status=200, payload=None):
        self.status = status
        self.payload = payload

    async def json(self):
        if self.payload is None:
            raise ValueError("not json")
        return self.payload


class FakePage:
    def __init__(self, response=None, body="Lot 123", html="<html></html>", goto_error=None):
        self.response = response if response is not None else FakeResponse()
        self.body = body
        self.html = html
        self.goto_error = goto_error
        self.visits = []
        self.routes = []

    async def route(self, pattern, handler):
        self.routes.append(pattern)

    async def goto(self, url, **kwargs):
        self.visits.append(url)
        if self.goto_error:
            raise self.goto_error
        return self.response

    async def inner_text(self, selector):
        return self.body

    async def content(self):
        return self.html


class FakeRequest:
    def __init__(self, response):
        self.response = response
        self.urls = []

    async def get(self, url, **kwargs):
        self.urls.append(url)
        return self.response


class FakeContext:
    def __init__(self, page=None, api_response=None):
        self.page = page
        self.request = FakeRequest(api_response)
        self.closed = False

    async def new_page(self):
        return self.page

    async def close(self):
        self.closed = True


class FakeBrowser:
    def __init__(self, context):
        self.context = context

    async def new_context(self, **kwargs):
        return self.context


def fetcher_with(context):
    fetcher = scrape.LotFetcher()

    async def get_browser():
        return FakeBrowser(context)

    fetcher._get_browser = get_browser
    return fetcher


@pytest.mark.parametrize(
    "exc,kind",
    [
        (PWTimeout("Timeout 60000ms exceeded."), FetchErrorKind.TIMEOUT),
        (asyncio.TimeoutError(), FetchErrorKind.TIMEOUT),
        (Exception("Navigation timeout of 30000 ms exceeded"), FetchErrorKind.TIMEOUT),
        (Exception("net::ERR_NAME_NOT_RESOLVED at https://x"), FetchErrorKind.NETWORK),
        (Exception("net::ERR_CONNECTION_REFUSED"), FetchErrorKind.NETWORK),
        (Exception("CAPTCHA or access denied"), FetchErrorKind.BLOCKED),
        (Exception("HTTP 403"), FetchErrorKind.BLOCKED),
        (Exception("HTTP 404"), FetchErrorKind.NOT_FOUND),
        (Exception("something odd"), FetchErrorKind.UNKNOWN),
    ],
)
def test_classify_fetch_error(exc, kind):
    assert scrape.classify_fetch_error(exc).kind == kind


def test_classify_fetch_error_passes_fetch_errors_through():
    err = FetchError(FetchErrorKind.BLOCKED)
    assert scrape.classify_fetch_error(err) is err


@pytest.mark.parametrize(
    "status,kind",
    [(403, FetchErrorKind.BLOCKED), (404, FetchErrorKind.NOT_FOUND), (500, FetchErrorKind.UNKNOWN)],
)
def test_error_for_status(status, kind):
    assert scrape.error_for_status(status).kind == kind
    assert scrape.error_for_status(200) is None


def test_fetch_error_kind_http_status():
    assert FetchError(FetchErrorKind.TIMEOUT).http_status == 504
    assert FetchError(FetchErrorKind.NETWORK).http_status == 502
    assert FetchError(FetchErrorKind.BLOCKED).http_status == 403
    assert FetchError(FetchErrorKind.NOT_FOUND).http_status == 404
    assert FetchError(FetchErrorKind.UNKNOWN).http_status == 500


def test_lot_urls():
    assert scrape.lot_page_url("123").endswith("/lot/123")
    assert scrape.lot_api_url("123").endswith("/public/data/lotdetails/solr/123")


@pytest.mark.asyncio
async def test_fetch_html_returns_content_and_closes_context():
    page = FakePage(html="<html>lot</html>")
    context = FakeContext(page)
    html = await fetcher_with(context).fetch_html("123")
    assert html == "<html>lot</html>"
    assert page.visits == [scrape.lot_page_url("123")]
    assert page.routes == ["**/*"]
    assert context.closed is True


@pytest.mark.asyncio
async def test_fetch_html_detects_captcha():
    context = FakeContext(FakePage(body="Please solve this CAPTCHA to continue"))
    with pytest.raises(FetchError) as info:
        await fetcher_with(context).fetch_html("123")
    assert info.value.kind == FetchErrorKind.BLOCKED
    assert context.closed is True


@pytest.mark.asyncio
async def test_fetch_html_maps_http_status():
    context = FakeContext(FakePage(response=FakeResponse(404)))
    with pytest.raises(FetchError) as info:
        await fetcher_with(context).fetch_html("123")
    assert info.value.kind == FetchErrorKind.NOT_FOUND


@pytest.mark.asyncio
async def test_fetch_html_maps_browser_timeout():
    context = FakeContext(FakePage(goto_error=PWTimeout("Timeout 60000ms exceeded.")))
    with pytest.raises(FetchError) as info:
        await fetcher_with(context).fetch_html("123")
    assert info.value.kind == FetchErrorKind.TIMEOUT
    assert context.closed is True


@pytest.mark.asyncio
async def test_fetch_json_returns_payload():
    payload = {"data": {"lotDetails": {"ln": 1, "ld": {}}}}
    context = FakeContext(api_response=FakeResponse(200, payload))
    assert await fetcher_with(context).fetch_json("1") == payload
    assert context.request.urls == [scrape.lot_api_url("1")]


@pytest.mark.asyncio
async def test_fetch_json_rejects_non_json():
    context = FakeContext(api_response=FakeResponse(200, None))
    with pytest.raises(FetchError) as info:
        await fetcher_with(context).fetch_json("1")
    assert info.value.kind == FetchErrorKind.UNKNOWN


@pytest.mark.asyncio
async def test_close_without_browser_is_noop():
    await scrape.LotFetcher().close()


@pytest.mark.parametrize(
    "message,kind",
    [
        ("Page crashed while loading https://www.copart.com/lot/44040312", FetchErrorKind.UNKNOWN),
        ("Target closed: https://www.copart.com/lot/55403404", FetchErrorKind.UNKNOWN),
        ("Response status code: 404", FetchErrorKind.NOT_FOUND),
        ("Request failed: status 403", FetchErrorKind.BLOCKED),
    ],
)
def test_classify_fetch_error_reads_status_not_lot_digits(message, kind):
    assert scrape.classify_fetch_error(Exception(message)).kind == kind
