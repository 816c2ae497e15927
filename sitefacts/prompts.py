from typing import Tuple

from sitefacts.models import DEFAULT_FIELD_VALUE, EXTRACTION_FIELDS, FieldConfig

ANALYST_PROMPT = """You are a senior M&A analyst with deep experience in commercial due diligence.
Your role is to analyze company websites and extract clear, structured business information.
You focus on what the company actually does, how it delivers value, and in which domain, avoiding marketing language and aspirational claims.
Return just the result: no reasoning, no summary, no preamble."""

EXTRACTION_FORMAT = f"""Answer with exactly one line per section, in this form:
- SECTION NAME: answer
If a section cannot be answered, write {DEFAULT_FIELD_VALUE} as its answer."""

EXTRACTION_PROMPTS = {
    "strict": f"""{ANALYST_PROMPT}
Only extract information that is explicitly stated in the content you are given. Do not use prior knowledge about the company.
{EXTRACTION_FORMAT}""",
    "open": f"""{ANALYST_PROMPT}
Use the content you are given as the primary source. You may complete it with what you already know about the company when the content is silent.
{EXTRACTION_FORMAT}""",
}

QUERY_PROMPTS = {
    "strict": f"""{ANALYST_PROMPT}
Answer the question using only the context provided. If the context does not contain the answer, say that the information is not available.""",
    "open": f"""{ANALYST_PROMPT}
Answer the question using the context provided, complemented by your general knowledge where the context is incomplete.""",
}


def get_extraction_prompt(raw_content: str, fields: Tuple[FieldConfig, ...] = EXTRACTION_FIELDS) -> str:
    sections = "\n".join(f"=== {f.label} ===" for f in fields)
    return f"""Extract business information from the content below, one answer per section.

{sections}

Content:
{raw_content}"""


def get_query_prompt(question: str, context: str) -> str:
    return f"Context:\n{context}\n\nQuestion:\n{question}"
