"""Split modules for the OpenAI-style provider base.

- ``base``: the adapter class
- ``style_helpers``: request payload construction
- ``nonstream_helpers``: blocking response parsing
- ``structured``: streaming payload translation

Re-exports provide a stable import surface for convenience.
"""

from .base import BaseOpenAIStyleProvider
from .nonstream_helpers import extract_function_call, parse_chat_completion
from .structured import translate_openai_chunk
from .style_helpers import build_chat_params, message_to_wire, tool_to_wire

__all__ = [
    "BaseOpenAIStyleProvider",
    "build_chat_params",
    "message_to_wire",
    "tool_to_wire",
    "extract_function_call",
    "parse_chat_completion",
    "translate_openai_chunk",
]
