import logging
from typing import Optional

from sitefacts.config import LLMSettings
from sitefacts.errors import AuthenticationError, QueryError, ValidationError
from sitefacts.llm_service import query_llm
from sitefacts.models import QueryAnswer, validate_mode
from sitefacts.prompts import QUERY_PROMPTS, get_query_prompt
from sitefacts.retry import RetryError, RetryPolicy, run_with_retry

logger = logging.getLogger(__name__)


def query_retry_policy(settings: LLMSettings) -> RetryPolicy:
    return RetryPolicy(
        max_attempts=settings.retry_attempts,
        delay=settings.retry_delay_ms / 1000,
        is_retryable=lambda e: not isinstance(e, (ValidationError, AuthenticationError)),
    )


async def answer_query(
    question: str,
    context: str,
    mode: str,
    client,
    settings: LLMSettings,
    temperature: Optional[float] = None,
) -> QueryAnswer:
    """
    Answer a question about previously extracted company information.

    Empty answers count as failures and are retried like any other error.
    """
    if not question or not question.strip() or not context or not context.strip():
        raise ValidationError("Missing question or context", "Both question and context are required")
    mode = validate_mode(mode)
    if temperature is None:
        temperature = settings.temperature_for(mode)

    prompt = get_query_prompt(question, context)

    async def ask() -> QueryAnswer:
        logger.info(f"Sending query to LLM (mode {mode}, question length {len(question)}, context length {len(context)})")
        reply = await query_llm(
            client,
            QUERY_PROMPTS[mode],
            prompt,
            model=settings.model,
            temperature=temperature,
            max_tokens=settings.query_max_tokens,
        )
        if not reply.text:
            raise QueryError("No answer generated")
        return QueryAnswer(answer=reply.text, token_count=reply.token_count)

    try:
        return await run_with_retry(ask, query_retry_policy(settings), description="Query", log=logger)
    except RetryError as e:
        raise QueryError(
            "Failed to get an answer after multiple attempts",
            f"{e.attempts} attempts, last error: {e.last_error.__class__.__name__}",
        ) from e.last_error
