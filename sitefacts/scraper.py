import logging
from typing import Callable, Iterable, List, Optional
from urllib.parse import urlparse

from crawl4ai import AsyncWebCrawler, BrowserConfig, CacheMode, CrawlerRunConfig
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from sitefacts.config import ABOUT_PATHS, BrowserSettings
from sitefacts.errors import ExtractionError, NetworkError, SiteFactsError, ValidationError
from sitefacts.models import ABOUT, HOMEPAGE, PageContent, ScrapingResult, SourceUrl
from sitefacts.retry import RetryError, RetryPolicy, run_with_retry
from sitefacts.utils import is_valid_url, normalize_url, truncate_string

logger = logging.getLogger(__name__)

ABOUT_SEPARATOR = "\n\n=== ABOUT PAGE CONTENT ===\n\n"
ABOUT_HTML_SEPARATOR = "\n\n<!-- ABOUT PAGE HTML -->\n\n"

# Walks the rendered DOM and keeps only text a visitor can actually see
VISIBLE_TEXT_JS = """
() => {
  const isVisible = (element) => {
    const style = window.getComputedStyle(element);
    return style.display !== 'none' &&
           style.visibility !== 'hidden' &&
           style.opacity !== '0' &&
           element.getBoundingClientRect().height > 0;
  };

  const getText = (node) => {
    if (node.nodeType === Node.TEXT_NODE) {
      return (node.textContent || '').trim();
    }
    if (node.nodeType === Node.ELEMENT_NODE) {
      if (node.nodeName === 'SCRIPT' || node.nodeName === 'STYLE') return '';
      if (!isVisible(node)) return '';
      return Array.from(node.childNodes).map(getText).filter(Boolean).join(' ');
    }
    return '';
  };

  return document.body ? getText(document.body) : '';
}
"""

ANCHOR_HREFS_JS = "() => Array.from(document.getElementsByTagName('a')).map(a => a.href).filter(Boolean)"

NO_LOADERS_JS = "(selector) => document.querySelectorAll(selector).length === 0"


def find_about_links(links: Iterable[str], about_paths: Iterable[str] = ABOUT_PATHS) -> List[str]:
    """
    Pick out links that look like an "About" page, in page order, without duplicates.

    Args:
        links: absolute hrefs collected from the homepage anchors
        about_paths: path fragments that mark an about-style page

    Returns:
        List[str]: matching links; malformed hrefs are skipped
    """
    about_paths = [p.lower() for p in about_paths]
    found = []
    for href in links:
        if not isinstance(href, str):
            continue
        try:
            path = urlparse(href).path.lower()
        except ValueError:
            continue
        if any(p in path for p in about_paths) and href not in found:
            found.append(href)
    logger.debug(f"Found {len(found)} about page links")
    return found


class BrowserSession:
    """
    One headless browser, owned by a single scrape attempt.

    Use as an async context manager so the browser is closed on every exit path.
    """

    def __init__(self, settings: BrowserSettings):
        self.settings = settings
        self.browser_config = BrowserConfig(
            headless=settings.headless,
            user_agent=settings.user_agent,
            extra_args=list(settings.browser_args),
            verbose=False,
        )
        self.run_config = CrawlerRunConfig(
            cache_mode=CacheMode.BYPASS,
            wait_until=settings.wait_until,
            page_timeout=settings.timeout_ms,
            verbose=False,
        )
        self._crawler = AsyncWebCrawler(config=self.browser_config)
        self._captured = {}

    async def __aenter__(self):
        await self._crawler.start()
        self._crawler.crawler_strategy.set_hook("before_return_html", self._inspect_page)
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self._crawler.close()
        return False

    async def _inspect_page(self, page, context=None, **kwargs):
        """Runs on the live page once navigation has settled."""
        await page.wait_for_selector("body")

        logger.info("Checking for loading indicators")
        try:
            await page.wait_for_function(
                NO_LOADERS_JS,
                arg=self.settings.loading_selector,
                timeout=self.settings.loading_timeout_ms,
            )
        except PlaywrightTimeoutError:
            logger.warning("Loading indicators still present after timeout, continuing")

        await page.wait_for_timeout(self.settings.content_wait_ms)

        self._captured = {
            "text": await page.evaluate(VISIBLE_TEXT_JS),
            "html": await page.content(),
            "links": await page.evaluate(ANCHOR_HREFS_JS),
            "final_url": page.url,
        }
        return page

    async def fetch_page(self, url: str, allow_empty: bool = False) -> PageContent:
        """Load one URL and return its visible text, full markup and anchor links."""
        self._captured = {}
        logger.info(f"Navigating to {url}")
        result = await self._crawler.arun(url=url, config=self.run_config)

        if not result.success:
            raise NetworkError("Failed to load page", result.error_message)
        if result.status_code and result.status_code >= 400:
            raise NetworkError("Failed to load page", f"HTTP {result.status_code} for {url}")

        text = (self._captured.get("text") or "").strip()
        logger.info(f"Text extraction complete for {url}, length {len(text)}")
        if text:
            logger.debug(f"Content preview: {truncate_string(text, 100)}")
        if not text and not allow_empty:
            raise ExtractionError("No content found on the page", url)

        return PageContent(
            text=text,
            html=self._captured.get("html") or result.html or "",
            final_url=self._captured.get("final_url") or url,
            links=tuple(self._captured.get("links") or ()),
        )


class Crawler:
    def __init__(self, settings: Optional[BrowserSettings] = None, session_factory: Optional[Callable] = None):
        self.settings = settings or BrowserSettings()
        self.session_factory = session_factory or BrowserSession
        self.retry_policy = RetryPolicy(
            max_attempts=self.settings.max_retries,
            delay=self.settings.retry_delay_ms / 1000,
            is_retryable=lambda e: not isinstance(e, ValidationError),
        )

    def is_about_url(self, url: str) -> bool:
        path = urlparse(url).path.lower()
        return any(p in path for p in self.settings.about_paths)

    async def scrape_page(self, url: str) -> ScrapingResult:
        """
        Scrape a site's homepage (plus its About page when one is linked).

        Args:
            url (str): URL as given by the user; a scheme is added if missing

        Returns:
            ScrapingResult: combined text/markup and where it came from
        """
        normalized_url = normalize_url(url)
        if not is_valid_url(normalized_url):
            raise ValidationError("Invalid URL", normalized_url)
        logger.info(f"Starting page scrape for {normalized_url}")

        try:
            return await run_with_retry(
                lambda: self._scrape_once(normalized_url),
                self.retry_policy,
                description=f"Scraping {normalized_url}",
                log=logger,
            )
        except RetryError as e:
            logger.error(f"Scraping error for {normalized_url}: {str(e.last_error)}")
            raise ExtractionError(
                "Failed to scrape page after multiple attempts",
                f"{e.attempts} attempts for {normalized_url}",
            ) from e.last_error

    async def _scrape_once(self, url: str) -> ScrapingResult:
        async with self.session_factory(self.settings) as session:
            home = await session.fetch_page(url)
            logger.info(f"Final URL after redirects: {home.final_url}")

            is_homepage = not self.is_about_url(url)
            about_text = ""
            about_html = ""

            if is_homepage:
                logger.info("Homepage detected, looking for about page")
                about_links = find_about_links(home.links, self.settings.about_paths)
                if about_links:
                    logger.info(f"Found about page: {about_links[0]}")
                    try:
                        about = await session.fetch_page(about_links[0], allow_empty=True)
                        about_text, about_html = about.text, about.html
                    except SiteFactsError as e:
                        logger.warning(f"Could not load about page {about_links[0]}: {str(e)}")

        combined_text = f"{home.text}{ABOUT_SEPARATOR}{about_text}" if about_text else home.text
        combined_html = f"{home.html}{ABOUT_HTML_SEPARATOR}{about_html}" if about_html else home.html

        return ScrapingResult(
            raw_text=combined_text,
            raw_html=combined_html,
            source_url=SourceUrl(url=url, type=HOMEPAGE if is_homepage else ABOUT),
        )


async def scrape_page(url: str, settings: Optional[BrowserSettings] = None) -> ScrapingResult:
    return await Crawler(settings).scrape_page(url)
