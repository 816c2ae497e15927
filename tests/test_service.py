import asyncio
import dataclasses

import pytest

from conftest import LONG_TEXT, FakeBrowser, FakeLLMClient, page
from sitefacts.config import ApiSettings, ContentRules
from sitefacts.errors import ExtractionError, QueryError, RequestTimeoutError, ValidationError
from sitefacts.scraper import Crawler
from sitefacts.service import ExtractionService

REPLY = """- COMPANY MISSION/VISION: Make logistics safer.
- PRODUCT DESCRIPTION: Industrial robots for warehouses.
- UNIQUE VALUE PROPOSITION: N/A"""


def make_service(settings, pages, replies):
    browser = FakeBrowser(pages)
    crawler = Crawler(settings.browser, session_factory=browser)
    client = FakeLLMClient(replies)
    return ExtractionService(settings, crawler=crawler, client=client), browser, client


@pytest.mark.asyncio
async def test_extract_builds_full_result(settings):
    service, browser, client = make_service(settings, {"https://acme.test": page(LONG_TEXT)}, [REPLY])
    result = await service.extract("acme.test", "open")

    assert result.extracted_fields == {
        "mission": "Make logistics safer.",
        "product": "Industrial robots for warehouses.",
        "value": "N/A",
    }
    assert result.raw_content == LONG_TEXT
    assert result.id
    meta = result.metadata
    assert meta.mode == "open"
    assert meta.model == "test-model"
    assert meta.version == "1.0.0"
    assert meta.confidence == 0.8
    assert meta.token_count == 20
    assert meta.processing_time >= 0
    assert meta.source_url.url == "https://acme.test"
    assert meta.source_url.type == "homepage"

    data = result.to_dict()
    assert set(data) == {"id", "metadata", "rawContent", "extractedFields"}
    assert data["metadata"]["sourceUrl"] == {"url": "https://acme.test", "type": "homepage"}
    assert data["metadata"]["tokenCount"] == 20


@pytest.mark.asyncio
async def test_extract_defaults_to_strict(settings):
    service, _, client = make_service(settings, {"https://acme.test": page(LONG_TEXT)}, [REPLY])
    result = await service.extract("https://acme.test")
    assert result.metadata.mode == "strict"
    assert client.calls[0]["options"]["temperature"] == 0.15


@pytest.mark.asyncio
async def test_extract_requires_url(settings):
    service, browser, client = make_service(settings, {}, [REPLY])
    with pytest.raises(ValidationError):
        await service.extract(None)
    assert browser.opened == 0
    assert client.calls == []


@pytest.mark.asyncio
async def test_unparseable_reply_gives_sentinels(settings):
    service, _, _ = make_service(settings, {"https://acme.test": page(LONG_TEXT)}, ["I could not find anything useful."])
    result = await service.extract("https://acme.test")
    assert result.extracted_fields == {"mission": "N/A", "product": "N/A", "value": "N/A"}


@pytest.mark.asyncio
async def test_low_quality_content_is_advisory_by_default(settings):
    service, _, client = make_service(settings, {"https://acme.test": page("Loading...")}, [REPLY])
    result = await service.extract("https://acme.test")
    assert result.raw_content == "Loading..."
    assert len(client.calls) == 1


@pytest.mark.asyncio
async def test_low_quality_content_blocks_when_enforced(settings):
    settings = dataclasses.replace(settings, content=ContentRules(enforce=True))
    service, _, client = make_service(settings, {"https://acme.test": page("Loading...")}, [REPLY])
    with pytest.raises(ExtractionError):
        await service.extract("https://acme.test")
    assert client.calls == []


@pytest.mark.asyncio
async def test_scrape_failure_surfaces_extraction_error(settings):
    service, browser, client = make_service(settings, {}, [REPLY])
    with pytest.raises(ExtractionError) as excinfo:
        await service.extract("https://acme.test/missing")
    assert excinfo.value.message == "Failed to scrape page after multiple attempts"
    assert client.calls == []


@pytest.mark.asyncio
async def test_extraction_timeout_releases_browser(settings):
    class SlowSession:
        def __init__(self, browser):
            self.browser = browser

        async def __aenter__(self):
            self.browser.opened += 1
            return self

        async def __aexit__(self, exc_type, exc, tb):
            self.browser.closed += 1
            return False

        async def fetch_page(self, url, allow_empty=False):
            await asyncio.sleep(5)

    class SlowBrowser(FakeBrowser):
        def __call__(self, settings):
            return SlowSession(self)

    settings = dataclasses.replace(settings, api=ApiSettings(extraction_timeout_s=0.05))
    browser = SlowBrowser()
    service = ExtractionService(
        settings,
        crawler=Crawler(settings.browser, session_factory=browser),
        client=FakeLLMClient([REPLY]),
    )
    with pytest.raises(RequestTimeoutError):
        await service.extract("https://acme.test")
    assert browser.opened == browser.closed == 1


@pytest.mark.asyncio
async def test_query_response(settings):
    service, _, _ = make_service(settings, {}, ["They build warehouse robots."])
    response = await service.query("What do they build?", "- PRODUCT DESCRIPTION: robots", "strict")

    assert response.to_dict() == {
        "answer": "They build warehouse robots.",
        "confidence": 0.8,
        "processingTime": response.processing_time,
        "tokenCount": 20,
    }


@pytest.mark.asyncio
async def test_query_exhaustion(settings):
    service, _, client = make_service(settings, {}, ["", "", ""])
    with pytest.raises(QueryError):
        await service.query("What do they build?", "- PRODUCT DESCRIPTION: robots")
    assert len(client.calls) == 3
