import logging
import re
from typing import Dict, Tuple

from sitefacts.config import LLMSettings
from sitefacts.errors import ExtractionError
from sitefacts.llm_service import query_llm
from sitefacts.models import DEFAULT_FIELD_VALUE, EXTRACTION_FIELDS, FieldConfig, LLMReply, validate_mode
from sitefacts.prompts import EXTRACTION_PROMPTS, get_extraction_prompt
from sitefacts.utils import normalize_newlines

logger = logging.getLogger(__name__)

_HEADER_PREFIX_RE = re.compile(r'^[-*]+\s*')
_BOLD_RE = re.compile(r"^(\*\*|__)(.*)\1$")


def _unbold(text: str) -> str:
    match = _BOLD_RE.match(text)
    return match.group(2).strip() if match else text


def parse_extracted_fields(text: str) -> Dict[str, str]:
    """
    Parse "- NAME: value" lines from a model reply.

    Lines that do not start with "-" or "*" continue the value of the
    previous header. Names are returned upper-cased.
    """
    fields = {}
    current_field = ""
    current_value = ""

    text = normalize_newlines(text) if text else ""
    for line in text.split("\n"):
        line = line.strip()
        if not line:
            continue

        if line.startswith("-") or line.startswith("*"):
            if current_field:
                fields[current_field] = current_value.strip()
            header = _HEADER_PREFIX_RE.sub("", line)
            name, _, value = header.partition(":")
            name, value = name.strip(), value.strip()
            # "- **Name:** value" leaves the closing marker on the value
            opener = name[:2]
            if opener in ("**", "__") and not name.endswith(opener) and value.startswith(opener):
                value = value[2:].strip()
            current_field = name.strip("*_").strip().upper()
            current_value = _unbold(value)
        elif current_field:
            current_value += " " + line

    if current_field:
        fields[current_field] = current_value.strip()

    return fields


def map_to_registry(parsed: Dict[str, str], fields: Tuple[FieldConfig, ...] = EXTRACTION_FIELDS) -> Dict[str, str]:
    """Key parsed values by registry key; anything missing or blank becomes the sentinel."""
    result = {}
    for f in fields:
        value = parsed.get(f.label.upper()) or parsed.get(f.key.upper()) or ""
        result[f.key] = value.strip() or DEFAULT_FIELD_VALUE
    return result


def format_fields_as_context(extracted: Dict[str, str], fields: Tuple[FieldConfig, ...] = EXTRACTION_FIELDS) -> str:
    """Render extracted fields as "- LABEL: value" lines, the same shape the parser reads."""
    return "\n".join(f"- {f.label}: {extracted.get(f.key) or DEFAULT_FIELD_VALUE}" for f in fields)


async def request_extraction(raw_text: str, mode: str, client, settings: LLMSettings) -> LLMReply:
    mode = validate_mode(mode)
    reply = await query_llm(
        client,
        EXTRACTION_PROMPTS[mode],
        get_extraction_prompt(raw_text),
        model=settings.model,
        temperature=settings.temperature_for(mode),
        max_tokens=settings.extraction_max_tokens,
    )
    if not reply.text:
        raise ExtractionError("No content extracted", "The language model returned an empty reply")
    return reply


def fields_from_reply(reply_text: str) -> Dict[str, str]:
    parsed = parse_extracted_fields(reply_text)
    extracted = map_to_registry(parsed)
    found = len([v for v in extracted.values() if v != DEFAULT_FIELD_VALUE])
    logger.info(f"Fields extracted: {found}/{len(extracted)} found")
    return extracted


async def extract_fields(raw_text: str, mode: str, client, settings: LLMSettings) -> Dict[str, str]:
    """
    Turn scraped text into the registry's fields via the language model.

    No retries here: a failed model call fails the extraction.
    """
    reply = await request_extraction(raw_text, mode, client, settings)
    return fields_from_reply(reply.text)
