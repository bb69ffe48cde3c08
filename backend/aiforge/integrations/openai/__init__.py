"""
Completion API integration (OpenAI-compatible).

Provides async access to chat completions for requirement analysis
and code generation.
"""

from aiforge.integrations.openai.client import (
    CompletionClient,
    completion_client_dependency,
    get_completion_client,
    parse_json_reply,
)
from aiforge.integrations.openai.exceptions import (
    CompletionError,
    CompletionAuthenticationError,
    CompletionRateLimitError,
    CompletionConnectionError,
    CompletionTimeoutError,
    CompletionParseError,
)
from aiforge.integrations.openai.models import (
    AnalysisResult,
    AnalyzedModule,
    AnalyzedTask,
    ChatCompletionResponse,
    ChatMessage,
)

__all__ = [
    "CompletionClient",
    "completion_client_dependency",
    "get_completion_client",
    "parse_json_reply",
    "CompletionError",
    "CompletionAuthenticationError",
    "CompletionRateLimitError",
    "CompletionConnectionError",
    "CompletionTimeoutError",
    "CompletionParseError",
    "AnalysisResult",
    "AnalyzedModule",
    "AnalyzedTask",
    "ChatCompletionResponse",
    "ChatMessage",
]
