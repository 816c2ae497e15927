import logging
import re
import uuid
from urllib.parse import urlparse

from sitefacts.config import ContentRules
from sitefacts.errors import ValidationError

logger = logging.getLogger(__name__)

_SCHEME_RE = re.compile(r'^https?://', re.IGNORECASE)
_SENTENCE_END_RE = re.compile(r'[.!?]+')


def normalize_url(url) -> str:
    """
    Ensure a URL carries a scheme, defaulting to https.

    Args:
        url (str): URL as typed by the user, e.g. "example.com"

    Returns:
        str: the URL with a scheme, e.g. "https://example.com"
    """
    if not isinstance(url, str) or not url.strip():
        raise ValidationError("Invalid URL input", "URL must be a non-empty string")
    url = url.strip()
    if _SCHEME_RE.match(url):
        return url
    return f"https://{url}"


def count_sentences(text: str) -> int:
    return len([s for s in _SENTENCE_END_RE.split(text) if s.strip()])


def is_valid_content(text, rules: ContentRules = None) -> bool:
    """Check that extracted text looks meaningful and fully loaded."""
    rules = rules or ContentRules()
    if not text or not isinstance(text, str):
        logger.warning("Content validation failed: Invalid input")
        return False

    length = len(text)
    sentences = count_sentences(text)
    logger.debug(f"Content validation: length={length} sentences={sentences}")

    if length < rules.min_length:
        logger.warning(f"Content validation failed: Content too short ({length} < {rules.min_length})")
        return False
    if length > rules.max_length:
        logger.warning(f"Content validation failed: Content too long ({length} > {rules.max_length})")
        return False
    if any(indicator in text for indicator in rules.loading_indicators):
        logger.warning("Content validation failed: Loading indicators present")
        return False
    if sentences < rules.min_sentences:
        logger.warning(f"Content validation failed: Not enough sentences ({sentences} < {rules.min_sentences})")
        return False
    return True


def is_valid_url(url) -> bool:
    if not isinstance(url, str):
        return False
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return bool(parsed.scheme and parsed.netloc)


def normalize_newlines(text) -> str:
    if not isinstance(text, str) or not text:
        raise ValidationError("Invalid text input")
    return text.replace("\r\n", "\n").replace("\r", "\n")


def truncate_string(text, length: int) -> str:
    if not isinstance(text, str) or not text:
        raise ValidationError("Invalid string input")
    if not isinstance(length, int) or length < 0:
        raise ValidationError("Invalid length input")
    if len(text) <= length:
        return text
    return text[:length] + "..."


def generate_id() -> str:
    return uuid.uuid4().hex
