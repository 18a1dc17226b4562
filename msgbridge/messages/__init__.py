"""Messages API translation helpers.

Provides translation between the Messages API format and the OpenAI Chat
Completions API format, plus the local token estimator.
"""

from .stream_adapter import StreamState, StreamTranslator, advance
from .token_counter import estimate_text_tokens, estimate_tokens
from .translator import translate_request, translate_response, translate_tool_choice

__all__ = [
    "StreamState",
    "StreamTranslator",
    "advance",
    "estimate_text_tokens",
    "estimate_tokens",
    "translate_request",
    "translate_response",
    "translate_tool_choice",
]
