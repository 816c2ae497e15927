import logging
import os
import sys
from dataclasses import dataclass, field
from typing import Optional, Tuple

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Load environment variables from .env file
load_dotenv()

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Common paths to look for about pages
ABOUT_PATHS = (
    "/about",
    "/about-us",
    "/company",
    "/mission",
    "/vision",
    "/who-we-are",
    "/our-story",
    "/team",
)

LOADING_INDICATORS = ("Loading...", "Please wait", "Loading", "Please wait...")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Invalid integer for {name}: {raw!r}, using {default}")
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Invalid number for {name}: {raw!r}, using {default}")
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class BrowserSettings:
    """Headless browser behaviour for one scrape."""
    timeout_ms: int = 30000
    wait_until: str = "networkidle"
    loading_timeout_ms: int = 5000
    content_wait_ms: int = 2000
    max_retries: int = 3
    retry_delay_ms: int = 1000
    user_agent: str = "Mozilla/5.0 (compatible; SiteFactsBot/1.0)"
    headless: bool = True
    about_paths: Tuple[str, ...] = ABOUT_PATHS
    loading_selector: str = '.loading, .spinner, [aria-busy="true"]'
    browser_args: Tuple[str, ...] = (
        "--disable-gpu",
        "--no-sandbox",
        "--disable-dev-shm-usage",
        "--disable-setuid-sandbox",
        "--disable-infobars",
        "--window-size=1920,1080",
    )


@dataclass(frozen=True)
class ContentRules:
    """Thresholds used to judge whether scraped text is worth sending to the model."""
    min_length: int = 50
    max_length: int = 100000
    min_sentences: int = 2
    loading_indicators: Tuple[str, ...] = LOADING_INDICATORS
    enforce: bool = False


@dataclass(frozen=True)
class LLMSettings:
    host: str = "http://localhost:11434"
    api_key: Optional[str] = None
    model: str = "llama3.3:70b"
    strict_temperature: float = 0.15
    open_temperature: float = 0.7
    extraction_max_tokens: int = 1000
    query_max_tokens: int = 4096
    retry_attempts: int = 3
    retry_delay_ms: int = 2000

    def temperature_for(self, mode: str) -> float:
        return self.open_temperature if mode == "open" else self.strict_temperature


@dataclass(frozen=True)
class ApiSettings:
    version: str = "1.0.0"
    default_mode: str = "strict"
    extraction_timeout_s: float = 60.0
    query_timeout_s: float = 30.0
    # Placeholder until confidence scoring exists
    confidence: float = 0.8


@dataclass(frozen=True)
class Settings:
    browser: BrowserSettings = field(default_factory=BrowserSettings)
    content: ContentRules = field(default_factory=ContentRules)
    llm: LLMSettings = field(default_factory=LLMSettings)
    api: ApiSettings = field(default_factory=ApiSettings)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables, falling back to defaults."""
        browser = BrowserSettings(
            timeout_ms=_env_int("SITEFACTS_BROWSER_TIMEOUT_MS", 30000),
            max_retries=_env_int("SITEFACTS_MAX_RETRIES", 3),
            retry_delay_ms=_env_int("SITEFACTS_RETRY_DELAY_MS", 1000),
            user_agent=os.getenv("SITEFACTS_USER_AGENT") or BrowserSettings.user_agent,
        )
        content = ContentRules(enforce=_env_bool("SITEFACTS_ENFORCE_CONTENT_RULES", False))
        llm = LLMSettings(
            host=os.getenv("OLLAMA_HOST") or LLMSettings.host,
            api_key=os.getenv("OLLAMA_API_KEY") or None,
            model=os.getenv("OLLAMA_MODEL") or LLMSettings.model,
        )
        api = ApiSettings(
            extraction_timeout_s=_env_float("SITEFACTS_EXTRACTION_TIMEOUT_S", 60.0),
            query_timeout_s=_env_float("SITEFACTS_QUERY_TIMEOUT_S", 30.0),
        )
        return cls(
            browser=browser,
            content=content,
            llm=llm,
            api=api,
            log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        )


def setup_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )
