"""Local input token estimation for the count_tokens endpoint.

The estimate is a heuristic blend of character and word counts. It is not
correlated with any real tokenizer vocabulary and is only meant for rough
pre-flight sizing. No I/O, no network call.
"""

import json
import math

from ..types.messages import (
    Message,
    TextPart,
    ToolResultPart,
    ToolUsePart,
    UnifiedRequest,
)

TOOL_SCHEMA_OVERHEAD = 50


def estimate_text_tokens(text: str) -> int:
    """Estimate tokens for one text: ceil((chars / 4 + words * 1.3) / 2)."""
    if not text:
        return 0
    chars = len(text)
    words = len(text.split())
    return math.ceil((chars / 4 + words * 1.3) / 2)


def _message_texts(message: Message) -> list[str]:
    if isinstance(message.content, str):
        return [message.content]

    texts: list[str] = []
    for part in message.content:
        if isinstance(part, TextPart):
            texts.append(part.text)
        elif isinstance(part, ToolUsePart):
            texts.append(json.dumps(part.input, separators=(",", ":"), ensure_ascii=False))
        elif isinstance(part, ToolResultPart):
            texts.append(part.content)
        # images contribute nothing
    return texts


def estimate_tokens(request: UnifiedRequest) -> int:
    """Estimate the input token count of a request.

    Sums the per-text estimate over every message text, every system
    fragment and every tool name and description, plus a fixed overhead per
    tool for its schema.
    """
    total = 0

    for message in request.messages:
        for text in _message_texts(message):
            total += estimate_text_tokens(text)

    for fragment in request.system or []:
        total += estimate_text_tokens(fragment)

    for tool in request.tools or []:
        total += estimate_text_tokens(tool.name)
        total += estimate_text_tokens(tool.description)
        total += TOOL_SCHEMA_OVERHEAD

    return total
