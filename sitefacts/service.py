import asyncio
import logging
import time
from typing import Optional

from sitefacts.config import Settings
from sitefacts.errors import ExtractionError, RequestTimeoutError, ValidationError, utc_timestamp
from sitefacts.extractor import fields_from_reply, request_extraction
from sitefacts.llm_service import create_client
from sitefacts.models import ExtractionMetadata, ExtractionResult, QueryResponse, validate_mode
from sitefacts.query import answer_query
from sitefacts.scraper import Crawler
from sitefacts.utils import generate_id, is_valid_content

logger = logging.getLogger(__name__)


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


class ExtractionService:
    """Scrape -> extract -> answer pipeline behind the API and the CLI."""

    def __init__(self, settings: Optional[Settings] = None, crawler=None, client=None):
        self.settings = settings or Settings.from_env()
        self.crawler = crawler or Crawler(self.settings.browser)
        self.client = client or create_client(self.settings.llm)

    async def extract(self, url: Optional[str], mode: Optional[str] = None) -> ExtractionResult:
        if not url:
            raise ValidationError("Missing URL", "URL is required")
        mode = validate_mode(mode, self.settings.api.default_mode)
        timeout = self.settings.api.extraction_timeout_s
        try:
            return await asyncio.wait_for(self._extract(url, mode), timeout=timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"Extraction for {url} timed out after {timeout}s")
            raise RequestTimeoutError("Extraction timed out", f"No result within {timeout} seconds") from e

    async def _extract(self, url: str, mode: str) -> ExtractionResult:
        start = time.perf_counter()
        logger.info(f"Starting extraction for {url} in {mode} mode")

        scraping = await self.crawler.scrape_page(url)
        logger.info(
            f"Scraping complete: {len(scraping.raw_text)} characters from {scraping.source_url.type}"
        )

        if not is_valid_content(scraping.raw_text, self.settings.content):
            if self.settings.content.enforce:
                raise ExtractionError("Scraped content failed quality checks", scraping.source_url.url)
            logger.warning(f"Content from {scraping.source_url.url} looks incomplete, extracting anyway")

        reply = await request_extraction(scraping.raw_text, mode, self.client, self.settings.llm)
        fields = fields_from_reply(reply.text)

        metadata = ExtractionMetadata(
            processing_time=_elapsed_ms(start),
            confidence=self.settings.api.confidence,
            version=self.settings.api.version,
            timestamp=utc_timestamp(),
            source_url=scraping.source_url,
            model=self.settings.llm.model,
            mode=mode,
            token_count=reply.token_count,
        )
        return ExtractionResult(
            id=generate_id(),
            metadata=metadata,
            raw_content=scraping.raw_text,
            extracted_fields=fields,
        )

    async def query(
        self,
        question: Optional[str],
        context: Optional[str],
        mode: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> QueryResponse:
        start = time.perf_counter()
        mode = validate_mode(mode, self.settings.api.default_mode)
        timeout = self.settings.api.query_timeout_s
        try:
            answer = await asyncio.wait_for(
                answer_query(
                    question,
                    context,
                    mode,
                    self.client,
                    self.settings.llm,
                    temperature=temperature,
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Query timed out after {timeout}s")
            raise RequestTimeoutError("Query timed out", f"No answer within {timeout} seconds") from e

        processing_time = _elapsed_ms(start)
        logger.info(f"Answer ready: length {len(answer.answer)}, {processing_time}ms, tokens {answer.token_count}")
        return QueryResponse(
            answer=answer.answer,
            confidence=self.settings.api.confidence,
            processing_time=processing_time,
            token_count=answer.token_count,
        )
