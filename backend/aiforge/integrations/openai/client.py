"""
Completion API client for requirement analysis and code generation.

Speaks the OpenAI-compatible /chat/completions protocol over httpx.

This client handles:
- Chat completions with explicit connect/read timeouts
- Status-code to exception mapping
- Parsing of structured analysis replies

SECURITY:
- API key must be stored securely and never logged
- Requirement text is never logged
"""

import json
import logging
import os
import re
import time
from typing import Optional, List, Dict, Any, AsyncIterator

import httpx

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
    ChatCompletionResponse,
    ChatMessage,
)
from aiforge.integrations.openai.prompts import (
    ANALYSIS_PROMPT_TEMPLATE,
    ANALYSIS_SYSTEM_PROMPT,
    CODE_PROMPT_TEMPLATE,
    CODE_SYSTEM_PROMPT,
)
from aiforge.platform.errors import UpstreamServiceError

logger = logging.getLogger(__name__)

# Default configuration
DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-4"
DEFAULT_TIMEOUT_SECONDS = 60.0
DEFAULT_CONNECT_TIMEOUT_SECONDS = 10.0

_JSON_BLOCK = re.compile(r"\{[\s\S]*\}")


def _float_env(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except ValueError:
        return default


def parse_json_reply(content: str) -> Dict[str, Any]:
    """
    Parse a JSON object from a model reply.

    Falls back to the outermost `{...}` block when the model wraps the JSON
    in prose or code fences.

    Raises:
        CompletionParseError: If no JSON object can be parsed
    """
    try:
        data = json.loads(content)
    except ValueError:
        match = _JSON_BLOCK.search(content or "")
        if not match:
            raise CompletionParseError()
        try:
            data = json.loads(match.group(0))
        except ValueError:
            raise CompletionParseError()
    if not isinstance(data, dict):
        raise CompletionParseError("AI response is not a JSON object")
    return data


class CompletionClient:
    """
    Async client for an OpenAI-compatible completion API.

    SECURITY: API key must be stored securely and never logged.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        connect_timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize completion client.

        Args:
            api_key: API key (default: from OPENAI_API_KEY env)
            base_url: API base URL (default: https://api.openai.com/v1)
            model: Default model id (default: from OPENAI_MODEL env, else gpt-4)
            timeout: Request timeout in seconds
            connect_timeout: Connection timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = (
            base_url or os.getenv("OPENAI_BASE_URL") or DEFAULT_BASE_URL
        ).rstrip("/")
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        self.model = model or os.getenv("OPENAI_MODEL") or DEFAULT_MODEL

        if not self.api_key:
            raise ValueError(
                "Completion API key is required. Set OPENAI_API_KEY environment variable "
                "or pass api_key parameter."
            )

        if timeout is None:
            timeout = _float_env("OPENAI_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS)
        if connect_timeout is None:
            connect_timeout = _float_env("OPENAI_CONNECT_TIMEOUT_SECONDS", DEFAULT_CONNECT_TIMEOUT_SECONDS)

        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

        client_kwargs: Dict[str, Any] = {
            "timeout": httpx.Timeout(timeout, connect=connect_timeout),
            "headers": headers,
        }
        if transport is not None:
            client_kwargs["transport"] = transport
        self._client = httpx.AsyncClient(**client_kwargs)

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "CompletionClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _request(self, endpoint: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST to the completion API.

        Raises:
            CompletionError: On API errors
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"

        try:
            response = await self._client.post(url, json=payload)
        except httpx.TimeoutException as e:
            logger.error(
                "Completion API timeout",
                extra={"endpoint": endpoint, "error": str(e)},
            )
            raise CompletionTimeoutError(f"Request timeout: {e}")
        except httpx.RequestError as e:
            logger.error(
                "Completion API connection error",
                extra={"endpoint": endpoint, "error": str(e)},
            )
            raise CompletionConnectionError(f"Connection error: {e}")

        if response.status_code in (401, 403):
            logger.error(
                "Completion API authentication failed",
                extra={"status_code": response.status_code, "endpoint": endpoint},
            )
            raise CompletionAuthenticationError(status_code=response.status_code)

        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            logger.warning(
                "Completion API rate limited",
                extra={"endpoint": endpoint, "retry_after": retry_after},
            )
            raise CompletionRateLimitError(
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None
            )

        if response.status_code >= 400:
            try:
                error_body = response.json()
            except ValueError:
                error_body = {}
            error = error_body.get("error") if isinstance(error_body, dict) else None
            error = error if isinstance(error, dict) else {}

            logger.error(
                "Completion API error",
                extra={
                    "status_code": response.status_code,
                    "endpoint": endpoint,
                    "error_code": error.get("code", ""),
                },
            )
            raise CompletionError(
                message=f"Completion API error: {response.status_code} - {error.get('message', '')}",
                status_code=response.status_code,
                code=error.get("code"),
                response=error_body if isinstance(error_body, dict) else {},
            )

        try:
            return response.json()
        except ValueError:
            raise CompletionParseError("Completion API returned a non-JSON body")

    async def chat_completion(
        self,
        messages: List[ChatMessage],
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
    ) -> ChatCompletionResponse:
        """
        Create a chat completion.

        Raises:
            CompletionError: On API errors
        """
        request_body: Dict[str, Any] = {
            "model": model or self.model,
            "messages": [m.to_dict() for m in messages],
            "temperature": temperature,
        }
        if max_tokens is not None:
            request_body["max_tokens"] = max_tokens

        start_time = time.time()
        data = await self._request("/chat/completions", request_body)
        latency_ms = int((time.time() - start_time) * 1000)

        response = ChatCompletionResponse.from_dict(data)

        logger.info(
            "Chat completion successful",
            extra={
                "model": request_body["model"],
                "input_tokens": response.usage.prompt_tokens,
                "output_tokens": response.usage.completion_tokens,
                "latency_ms": latency_ms,
            },
        )
        return response

    async def analyze_requirement(self, content: str) -> AnalysisResult:
        """
        Break a requirement document into summary, modules and tasks.

        Raises:
            CompletionError: On API errors or an unparseable reply
        """
        response = await self.chat_completion(
            [
                ChatMessage("system", ANALYSIS_SYSTEM_PROMPT),
                ChatMessage("user", ANALYSIS_PROMPT_TEMPLATE.format(content=content)),
            ],
            temperature=0.3,
            max_tokens=4000,
        )
        if not response.content:
            raise CompletionParseError("No response from completion API")
        return AnalysisResult.from_dict(parse_json_reply(response.content))

    async def generate_code(
        self,
        description: str,
        tech_stack: List[str],
        file_path: Optional[str] = None,
    ) -> str:
        """
        Generate source code for a task.

        Raises:
            CompletionError: On API errors or an empty reply
        """
        prompt = CODE_PROMPT_TEMPLATE.format(
            description=description,
            tech_stack=", ".join(tech_stack),
            file_path_line=f"File path: {file_path}\n" if file_path else "",
        )
        response = await self.chat_completion(
            [ChatMessage("system", CODE_SYSTEM_PROMPT), ChatMessage("user", prompt)],
            temperature=0.2,
            max_tokens=3000,
        )
        if not response.content:
            raise CompletionParseError("No response from completion API")
        return response.content


def get_completion_client(
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
) -> CompletionClient:
    """Factory function to create a CompletionClient."""
    return CompletionClient(api_key=api_key, base_url=base_url)


async def completion_client_dependency() -> AsyncIterator[CompletionClient]:
    """
    FastAPI dependency yielding a request-scoped client.

    Raises:
        UpstreamServiceError: If the completion API is not configured
    """
    try:
        client = get_completion_client()
    except ValueError:
        logger.error("Completion API is not configured")
        raise UpstreamServiceError("AI service is not configured")
    try:
        yield client
    finally:
        await client.close()
