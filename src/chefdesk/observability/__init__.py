"""
Chefdesk - Observability Package.

Provides:
- LangSmith tracing integration
- Cost estimation for layout generation calls
"""

from chefdesk.observability.langsmith import (
    estimate_cost,
    init_langsmith,
    trace_llm_call,
)

__all__ = [
    "init_langsmith",
    "trace_llm_call",
    "estimate_cost",
]
