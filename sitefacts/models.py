from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from sitefacts.errors import ValidationError

MODES = ("strict", "open")

HOMEPAGE = "homepage"
ABOUT = "about"

# Default value used when a field is not found or empty
DEFAULT_FIELD_VALUE = "N/A"


@dataclass(frozen=True)
class FieldConfig:
    key: str
    label: str
    required: bool = True


# Adding a field here is enough for prompting and parsing to pick it up
EXTRACTION_FIELDS: Tuple[FieldConfig, ...] = (
    FieldConfig(key="mission", label="COMPANY MISSION/VISION"),
    FieldConfig(key="product", label="PRODUCT DESCRIPTION"),
    FieldConfig(key="value", label="UNIQUE VALUE PROPOSITION"),
)


def field_keys(fields: Tuple[FieldConfig, ...] = EXTRACTION_FIELDS) -> List[str]:
    return [f.key for f in fields]


def validate_mode(mode: Optional[str], default: str = "strict") -> str:
    """Return a usable mode, rejecting anything outside strict/open."""
    if mode is None:
        return default
    if mode not in MODES:
        raise ValidationError("Invalid mode", f"Mode must be one of: {', '.join(MODES)}")
    return mode


@dataclass(frozen=True)
class SourceUrl:
    url: str
    type: str = HOMEPAGE

    def to_dict(self) -> Dict[str, str]:
        return {"url": self.url, "type": self.type}


@dataclass(frozen=True)
class PageContent:
    """What a single page fetch yields."""
    text: str
    html: str
    final_url: str
    links: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ScrapingResult:
    raw_text: str
    raw_html: str
    source_url: SourceUrl


@dataclass(frozen=True)
class ExtractionMetadata:
    processing_time: int
    confidence: float
    version: str
    timestamp: str
    source_url: SourceUrl
    model: str
    mode: str
    token_count: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "processingTime": self.processing_time,
            "confidence": self.confidence,
            "version": self.version,
            "timestamp": self.timestamp,
            "sourceUrl": self.source_url.to_dict(),
            "model": self.model,
            "mode": self.mode,
        }
        if self.token_count is not None:
            data["tokenCount"] = self.token_count
        return data


@dataclass(frozen=True)
class ExtractionResult:
    id: str
    metadata: ExtractionMetadata
    raw_content: str
    extracted_fields: Dict[str, str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "metadata": self.metadata.to_dict(),
            "rawContent": self.raw_content,
            "extractedFields": dict(self.extracted_fields),
        }


@dataclass(frozen=True)
class LLMReply:
    text: str
    token_count: Optional[int] = None


@dataclass(frozen=True)
class QueryAnswer:
    answer: str
    token_count: Optional[int] = None


@dataclass(frozen=True)
class QueryResponse:
    answer: str
    confidence: float
    processing_time: int
    token_count: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "answer": self.answer,
            "confidence": self.confidence,
            "processingTime": self.processing_time,
        }
        if self.token_count is not None:
            data["tokenCount"] = self.token_count
        return data
