"""
Chefdesk - LLM Client.

Raw chat-completion calls used by the schedule layout generator.
"""

from chefdesk.llm.client import call_llm_chat, get_raw_async_client

__all__ = [
    "get_raw_async_client",
    "call_llm_chat",
]
