"""
Errors raised by CompletionClient.

Routes never surface these directly: the analysis service maps every
CompletionError to an AI_SERVICE_ERROR (502) envelope.
"""

from typing import Any, Dict, Optional


class CompletionError(Exception):
    """Completion API call failed; status_code/code are set when the API replied."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        response: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code
        self.response = response or {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(message={self.message!r}, status_code={self.status_code})"


class CompletionAuthenticationError(CompletionError):
    """401/403: the configured key was rejected."""

    def __init__(self, message: str = "Completion API rejected the API key", status_code: int = 401, **kwargs):
        super().__init__(message, status_code=status_code, **kwargs)


class CompletionRateLimitError(CompletionError):
    """429, with the provider's Retry-After seconds when it sends one."""

    def __init__(self, message: str = "Completion API rate limit reached", retry_after: Optional[int] = None, **kwargs):
        super().__init__(message, status_code=429, **kwargs)
        self.retry_after = retry_after


class CompletionConnectionError(CompletionError):
    def __init__(self, message: str = "Unable to reach completion API", **kwargs):
        super().__init__(message, **kwargs)


class CompletionTimeoutError(CompletionError):
    def __init__(self, message: str = "Completion API request timed out", **kwargs):
        super().__init__(message, **kwargs)


class CompletionParseError(CompletionError):
    """Reply was empty or not the JSON structure we asked for."""

    def __init__(self, message: str = "Could not parse completion reply", **kwargs):
        super().__init__(message, **kwargs)
