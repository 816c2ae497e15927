import logging
from typing import Optional

import httpx
from ollama import AsyncClient, ResponseError

from sitefacts.config import LLMSettings
from sitefacts.errors import AuthenticationError, InternalError, NetworkError, RequestTimeoutError
from sitefacts.models import LLMReply

logger = logging.getLogger(__name__)


def create_client(settings: LLMSettings) -> AsyncClient:
    headers = {}
    if settings.api_key:
        headers["Authorization"] = f"Bearer {settings.api_key}"
    return AsyncClient(host=settings.host, headers=headers)


def _token_count(data: dict) -> Optional[int]:
    counts = [data.get("prompt_eval_count"), data.get("eval_count")]
    counts = [c for c in counts if c is not None]
    return sum(counts) if counts else None


async def query_llm(
    client,
    system_prompt: str,
    prompt: str,
    model: str,
    temperature: float,
    max_tokens: int,
) -> LLMReply:
    """
    Send one system + user exchange to the model and return its reply.

    Args:
        client: ollama AsyncClient (or anything with the same chat coroutine)
        system_prompt (str): instruction for the model
        prompt (str): the user message
        model (str): model name on the ollama host
        temperature (float): sampling temperature
        max_tokens (int): upper bound on generated tokens

    Returns:
        LLMReply: reply text (may be empty) and token usage when reported
    """
    messages = [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": prompt},
    ]
    logger.info(f"Sending request to {model} (prompt length {len(prompt)}, temperature {temperature})")

    try:
        response = await client.chat(
            model=model,
            messages=messages,
            options={"temperature": temperature, "num_predict": max_tokens},
        )
    except ResponseError as e:
        if e.status_code in (401, 403):
            raise AuthenticationError("Language model rejected the credentials", f"HTTP {e.status_code}") from e
        if e.status_code >= 500:
            raise NetworkError("Language model host failed", f"HTTP {e.status_code}: {e.error}") from e
        raise InternalError("Language model rejected the request", f"HTTP {e.status_code}: {e.error}") from e
    except httpx.TimeoutException as e:
        raise RequestTimeoutError("Language model request timed out", model) from e
    except (httpx.TransportError, ConnectionError) as e:
        raise NetworkError("Could not reach the language model", model) from e

    data = response.model_dump()
    content = (data.get("message") or {}).get("content") or ""
    reply = LLMReply(text=content.strip(), token_count=_token_count(data))
    logger.info(f"Received reply from {model}: length {len(reply.text)}, tokens {reply.token_count}")
    return reply
