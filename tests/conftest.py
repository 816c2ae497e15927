import pytest

from sitefacts.config import ApiSettings, BrowserSettings, ContentRules, LLMSettings, Settings
from sitefacts.errors import ExtractionError, NetworkError
from sitefacts.models import PageContent

LONG_TEXT = (
    "Acme builds industrial robots for warehouses. "
    "Our mission is to make logistics safer for everyone. "
    "We ship worldwide."
)


class FakeBrowser:
    """Stands in for BrowserSession: pages map URL -> PageContent or an exception to raise."""

    def __init__(self, pages=None):
        self.pages = dict(pages or {})
        self.opened = 0
        self.closed = 0
        self.fetched = []

    def __call__(self, settings):
        return FakeSession(self)


class FakeSession:
    def __init__(self, browser):
        self.browser = browser

    async def __aenter__(self):
        self.browser.opened += 1
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.browser.closed += 1
        return False

    async def fetch_page(self, url, allow_empty=False):
        self.browser.fetched.append(url)
        page = self.browser.pages.get(url)
        if isinstance(page, list):
            # successive outcomes, the last one repeats
            page = page.pop(0) if len(page) > 1 else page[0]
        if page is None:
            raise NetworkError("Failed to load page", f"HTTP 404 for {url}")
        if isinstance(page, Exception):
            raise page
        if not page.text.strip() and not allow_empty:
            raise ExtractionError("No content found on the page", url)
        return page


class FakeResponse:
    def __init__(self, content, prompt_tokens=12, completion_tokens=8):
        self.content = content
        self.prompt_tokens = prompt_tokens
        self.completion_tokens = completion_tokens

    def model_dump(self):
        return {
            "message": {"role": "assistant", "content": self.content},
            "prompt_eval_count": self.prompt_tokens,
            "eval_count": self.completion_tokens,
        }


class FakeLLMClient:
    """Mimics ollama.AsyncClient.chat; replies are consumed in order, exceptions are raised."""

    def __init__(self, replies=None):
        self.replies = list(replies or [])
        self.calls = []

    async def chat(self, **kwargs):
        self.calls.append(kwargs)
        reply = self.replies.pop(0) if self.replies else ""
        if isinstance(reply, Exception):
            raise reply
        return FakeResponse(reply)


def page(text, html=None, url="https://example.com", links=()):
    return PageContent(text=text, html=html or f"<html><body>{text}</body></html>", final_url=url, links=tuple(links))


@pytest.fixture
def browser_settings():
    return BrowserSettings(retry_delay_ms=0, content_wait_ms=0)


@pytest.fixture
def llm_settings():
    return LLMSettings(retry_delay_ms=0, model="test-model")


@pytest.fixture
def settings(browser_settings, llm_settings):
    return Settings(
        browser=browser_settings,
        content=ContentRules(),
        llm=llm_settings,
        api=ApiSettings(),
    )
