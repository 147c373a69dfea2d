"""Claude API client wrapper with retry logic, structured output and failure classification."""

import json
import time
from typing import Any, TypeVar

from anthropic import (
    Anthropic,
    APIConnectionError,
    APIStatusError,
    RateLimitError,
)
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from rich.console import Console

from config_loader import DEFAULT_CONFIG, get_anthropic_api_key

console = Console(stderr=True)

DEFAULT_MODEL = "claude-sonnet-4-20250514"

# Status codes the provider layer treats as worth another call.
RETRYABLE_STATUS_CODES = {408, 409, 429}

TRANSIENT_MESSAGE_MARKERS = (
    "bad gateway",
    "gateway timeout",
    "service unavailable",
    "temporarily unavailable",
    "timed out",
)

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class ProviderCallError(Exception):
    """A single failed call to the generation provider."""

    def __init__(self, message: str, status_code: int | None = None, retryable: bool = False):
        super().__init__(message)
        self.status_code = status_code
        self.retryable = retryable


class RetryExhaustedError(Exception):
    """Raised when every provider-level retry failed.

    ``errors`` holds the inner failures in call order. ``reason`` is
    ``"max_retries"`` or ``"abort"`` when the caller cancelled the call.
    """

    def __init__(self, errors: list[Exception], reason: str = "max_retries"):
        last = errors[-1] if errors else None
        message = f"Failed after {len(errors)} attempts"
        if last is not None:
            message += f". Last error: {last}"
        super().__init__(message)
        self.errors = errors
        self.reason = reason


class GenerationSchemaError(Exception):
    """The provider answered, but not in the requested shape."""


def _has_transient_message(message: str) -> bool:
    normalized = message.lower()
    return any(marker in normalized for marker in TRANSIENT_MESSAGE_MARKERS)


def is_transient_error(error: BaseException) -> bool:
    """Classify a generation failure as transient (worth retrying later) or permanent.

    Transient: an explicit retryable flag, a 5xx status, or a message naming a
    gateway/timeout/unavailable condition. Retry-exhausted errors are
    transient when any inner cause is, except when the caller aborted.
    Schema mismatches are always permanent.
    """
    if isinstance(error, GenerationSchemaError):
        return False

    if isinstance(error, RetryExhaustedError):
        if error.reason == "abort":
            return False
        if any(is_transient_error(inner) for inner in error.errors):
            return True
        return _has_transient_message(str(error))

    if isinstance(error, ProviderCallError):
        if error.retryable:
            return True
        if error.status_code is not None and error.status_code >= 500:
            return True
        return _has_transient_message(str(error))

    if isinstance(error, Exception):
        return _has_transient_message(str(error))

    return False


class ClaudeClient:
    """Wrapper for Claude API with retry logic, JSON parsing, and token tracking."""

    def __init__(
        self,
        model: str | None = None,
        retry_count: int | None = None,
        retry_delay: float | None = None,
        max_tokens: int | None = None,
    ):
        """Initialize the Claude client.

        Args:
            model: Optional model override. Defaults to DEFAULT_MODEL.
            retry_count: Provider-level retries after the first call.
            retry_delay: Initial delay between retries (doubles on each retry).
            max_tokens: Default response token budget.
        """
        defaults = DEFAULT_CONFIG["client"]
        self.client = Anthropic(api_key=get_anthropic_api_key())
        self.model = model or DEFAULT_MODEL
        self.retry_count = defaults["retry_count"] if retry_count is None else retry_count
        self.retry_delay = defaults["retry_delay"] if retry_delay is None else retry_delay
        self.max_tokens = max_tokens or defaults["max_tokens"]
        self.total_input_tokens = 0
        self.total_output_tokens = 0

    @classmethod
    def from_config(cls, config: dict) -> "ClaudeClient":
        """Build a client from the ``client`` section of the configuration."""
        settings = config.get("client", {})
        return cls(
            model=config.get("models", {}).get("tune"),
            retry_count=settings.get("retry_count"),
            retry_delay=settings.get("retry_delay"),
            max_tokens=settings.get("max_tokens"),
        )

    def complete(
        self,
        system: str,
        user: str,
        max_tokens: int | None = None,
        model: str | None = None,
    ) -> str:
        """Make a Claude API call with retry logic.

        Args:
            system: System prompt
            user: User message content
            max_tokens: Maximum tokens in response
            model: Optional per-call model override

        Returns:
            The text content of Claude's response

        Raises:
            ProviderCallError: On a non-retryable provider failure (4xx).
            RetryExhaustedError: If all retries fail.
        """
        errors: list[Exception] = []
        delay = self.retry_delay

        for attempt in range(self.retry_count + 1):
            try:
                response = self.client.messages.create(
                    model=model or self.model,
                    max_tokens=max_tokens or self.max_tokens,
                    system=system,
                    messages=[{"role": "user", "content": user}],
                )

                # Track token usage
                self.total_input_tokens += response.usage.input_tokens
                self.total_output_tokens += response.usage.output_tokens

                return response.content[0].text

            except RateLimitError as e:
                errors.append(ProviderCallError(e.message, e.status_code, retryable=True))
                label = "Rate limited"

            except APIConnectionError as e:
                errors.append(ProviderCallError(str(e), retryable=True))
                label = "Connection error"

            except APIStatusError as e:
                retryable = e.status_code in RETRYABLE_STATUS_CODES or e.status_code >= 500
                error = ProviderCallError(e.message, e.status_code, retryable=retryable)
                if not retryable:
                    raise error from e
                errors.append(error)
                label = f"API error {e.status_code}"

            if attempt < self.retry_count:
                console.print(f"[yellow]{label}, retrying in {delay}s...[/yellow]")
                time.sleep(delay)
                delay *= 2  # Exponential backoff

        # All retries exhausted
        raise RetryExhaustedError(errors)

    def complete_json(
        self,
        system: str,
        user: str,
        max_tokens: int | None = None,
        **kwargs,
    ) -> dict[str, Any]:
        """Make a Claude API call and parse JSON from the response.

        Raises:
            GenerationSchemaError: If JSON parsing fails
        """
        response_text = self.complete(system, user, max_tokens, **kwargs)
        try:
            return self.parse_json_response(response_text)
        except ValueError as e:
            raise GenerationSchemaError(str(e)) from e

    def generate(
        self,
        system: str,
        prompt: str,
        schema: type[SchemaT],
        model: str | None = None,
        max_tokens: int | None = None,
    ) -> SchemaT:
        """Generate a structured draft conforming to ``schema``.

        The JSON schema is appended to the system prompt and the answer is
        validated with pydantic.

        Raises:
            GenerationSchemaError: If the answer does not match the schema.
        """
        schema_text = json.dumps(schema.model_json_schema(), indent=2)
        structured_system = (
            f"{system}\n\nRespond with a single JSON object (no prose) that "
            f"conforms to this JSON schema:\n{schema_text}"
        )
        data = self.complete_json(structured_system, prompt, max_tokens, model=model)
        try:
            return schema.model_validate(data)
        except PydanticValidationError as e:
            raise GenerationSchemaError(
                f"Response did not match {schema.__name__}: {e.error_count()} errors"
            ) from e

    @staticmethod
    def parse_json_response(text: str) -> dict[str, Any]:
        """Extract and parse JSON from Claude's response.

        Handles responses wrapped in markdown code blocks.

        Raises:
            ValueError: If JSON parsing fails
        """
        try:
            # Handle markdown code blocks
            if "```json" in text:
                text = text.split("```json")[1].split("```")[0]
            elif "```" in text:
                text = text.split("```")[1].split("```")[0]

            return json.loads(text.strip())
        except json.JSONDecodeError as e:
            raise ValueError(f"Failed to parse JSON response: {e}") from e

    def get_token_usage(self) -> dict[str, int]:
        """Get cumulative token usage for this client instance."""
        return {
            "input_tokens": self.total_input_tokens,
            "output_tokens": self.total_output_tokens,
            "total_tokens": self.total_input_tokens + self.total_output_tokens,
        }
