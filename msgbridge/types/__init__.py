"""Type definitions shared by the translators."""

from .chat import (
    BackendMessage,
    BackendRequest,
    BackendTool,
    ChatCompletionChunk,
    ChatCompletionResponse,
    ToolCall,
)
from .events import (
    ContentBlockDelta,
    MessageStart,
    MessageStop,
    Opaque,
    StreamEvent,
    TextFragment,
    ToolFragment,
    UsageFinal,
    encode_event,
)
from .messages import (
    ContentBlock,
    ContentPart,
    ImagePart,
    Message,
    TextBlock,
    TextPart,
    ToolChoice,
    ToolChoiceAny,
    ToolChoiceAuto,
    ToolChoiceNone,
    ToolChoiceTool,
    ToolDefinition,
    ToolResultPart,
    ToolUseBlock,
    ToolUsePart,
    UnifiedRequest,
    UnifiedResponse,
    Usage,
)

__all__ = [
    "BackendMessage",
    "BackendRequest",
    "BackendTool",
    "ChatCompletionChunk",
    "ChatCompletionResponse",
    "ContentBlock",
    "ContentBlockDelta",
    "ContentPart",
    "ImagePart",
    "Message",
    "MessageStart",
    "MessageStop",
    "Opaque",
    "StreamEvent",
    "TextBlock",
    "TextFragment",
    "TextPart",
    "ToolCall",
    "ToolChoice",
    "ToolChoiceAny",
    "ToolChoiceAuto",
    "ToolChoiceNone",
    "ToolChoiceTool",
    "ToolDefinition",
    "ToolFragment",
    "ToolResultPart",
    "ToolUseBlock",
    "ToolUsePart",
    "UnifiedRequest",
    "UnifiedResponse",
    "Usage",
    "UsageFinal",
    "encode_event",
]
