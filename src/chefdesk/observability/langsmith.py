"""
Chefdesk - LangSmith Integration.

Traces layout-generation calls through LangSmith.

To enable:
1. Set LANGCHAIN_TRACING_V2=true
2. Set LANGCHAIN_API_KEY=<your-key>
3. Set LANGCHAIN_PROJECT=chefdesk (optional)
"""

import logging
from contextlib import asynccontextmanager
from typing import Any
from uuid import uuid4

from langsmith import Client as LangSmithClient
from langsmith.run_trees import RunTree

from chefdesk.config import settings

logger = logging.getLogger(__name__)

# Global state
_langsmith_client: LangSmithClient | None = None
_tracing_enabled: bool = False


def init_langsmith() -> bool:
    """
    Initialize LangSmith tracing if configured.

    Returns True if tracing is enabled, False otherwise.
    Call this once at application startup.
    """
    global _langsmith_client, _tracing_enabled

    if not settings.langchain_tracing_v2:
        logger.info("LangSmith tracing disabled (set LANGCHAIN_TRACING_V2=true to enable)")
        return False

    if not settings.langchain_api_key:
        logger.warning("LangSmith API key not set (LANGCHAIN_API_KEY)")
        return False

    try:
        _langsmith_client = LangSmithClient(api_key=settings.langchain_api_key)
        _tracing_enabled = True
        logger.info(f"LangSmith tracing enabled for project: {settings.langchain_project}")
        return True
    except Exception as e:
        logger.warning(f"Failed to initialize LangSmith: {e}")
        return False


def is_tracing_enabled() -> bool:
    return _tracing_enabled


class _NoopRun:
    """Stands in for a RunTree when tracing is off."""

    def end(self, **kwargs: Any) -> None:
        return None


@asynccontextmanager
async def trace_llm_call(
    name: str,
    run_type: str = "llm",
    inputs: dict | None = None,
    metadata: dict | None = None,
):
    """
    Context manager for tracing an LLM call.

    Usage:
        async with trace_llm_call("generate_schedule", inputs={...}) as run:
            text = await call_llm_chat(...)
            run.end(outputs={"text": text})
    """
    if not _tracing_enabled:
        yield _NoopRun()
        return

    run = RunTree(
        name=name,
        run_type=run_type,
        inputs=inputs or {},
        extra=metadata or {},
        project_name=settings.langchain_project,
        id=str(uuid4()),
    )

    try:
        run.post()
        yield run
    except Exception as e:
        run.end(error=str(e))
        run.patch()
        raise
    else:
        run.patch()


# Per 1M tokens
MODEL_COSTS = {
    "gpt-4o-mini": {"input": 0.15, "output": 0.60},
    "gpt-4o": {"input": 2.50, "output": 10.00},
    "gpt-4.1-mini": {"input": 0.40, "output": 1.60},
    "gpt-4.1": {"input": 2.00, "output": 8.00},
}


def estimate_cost(model: str, input_tokens: int, output_tokens: int) -> float:
    """Estimate the cost of an LLM call in USD. Unknown models price as gpt-4o-mini."""
    costs = MODEL_COSTS.get(model, MODEL_COSTS["gpt-4o-mini"])
    return (input_tokens / 1_000_000) * costs["input"] + (output_tokens / 1_000_000) * costs["output"]
