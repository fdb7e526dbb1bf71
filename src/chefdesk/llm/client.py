"""
Chefdesk - LLM Client.

Wraps AsyncOpenAI for plain chat completions. Callers get the raw message
text back and do their own parsing; the schedule generator treats the model
as untrusted and validates everything it returns.
"""

import logging

from openai import AsyncOpenAI

from chefdesk.config import settings
from chefdesk.llm.prompt_logger import log_prompt
from chefdesk.observability.langsmith import estimate_cost

logger = logging.getLogger(__name__)

# Singleton client instance
_async_client: AsyncOpenAI | None = None


def get_raw_async_client() -> AsyncOpenAI:
    """
    Get the AsyncOpenAI client.

    Uses singleton pattern to reuse connection.
    """
    global _async_client

    if _async_client is None:
        _async_client = AsyncOpenAI(api_key=settings.openai_api_key)

    return _async_client


async def call_llm_chat(
    *,
    messages: list[dict[str, str]],
    model: str = "gpt-4o-mini",
    temperature: float = 0.3,
    max_tokens: int | None = None,
    json_mode: bool = False,
    node_name: str = "chat",
) -> str:
    """
    Make a non-streaming chat completion call and return the message text.

    Args:
        messages: OpenAI-format message list (system first)
        model: Model name
        temperature: Sampling temperature
        max_tokens: Response token cap (None = provider default)
        json_mode: Ask for a JSON object response
        node_name: Label used in prompt logs

    Returns:
        The assistant message content ("" if the model returned nothing)
    """
    client = get_raw_async_client()

    api_kwargs = {
        "model": model,
        "messages": messages,
        "temperature": temperature,
        "store": False,  # Explicitly disable conversation storage
    }
    if max_tokens is not None:
        api_kwargs["max_tokens"] = max_tokens
    if json_mode:
        api_kwargs["response_format"] = {"type": "json_object"}

    system_prompt = next((m["content"] for m in messages if m["role"] == "system"), "")
    user_prompt = "\n\n".join(m["content"] for m in messages if m["role"] != "system")

    try:
        response = await client.chat.completions.create(**api_kwargs)
        content = ""
        if response.choices:
            content = response.choices[0].message.content or ""
        _log_usage(model, getattr(response, "usage", None))

        log_prompt(
            node=node_name,
            model=model,
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            response=content,
        )
        return content

    except Exception as e:
        log_prompt(
            node=node_name,
            model=model,
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            error=str(e),
        )
        raise


def _log_usage(model: str, usage) -> None:
    """Log token usage and estimated cost when the provider reports it."""
    if usage is None:
        return
    prompt_tokens = getattr(usage, "prompt_tokens", None)
    completion_tokens = getattr(usage, "completion_tokens", None)
    if not isinstance(prompt_tokens, int) or not isinstance(completion_tokens, int):
        return
    cost = estimate_cost(model, prompt_tokens, completion_tokens)
    logger.info(f"{model}: {prompt_tokens} in / {completion_tokens} out (~${cost:.5f})")
