"""Generative model client for the Personal Curator.

This module is the SOLE INTERFACE to the Gemini API. Every model call made by
the pipeline flows through a ``GenerativeModelClient``; ``GeminiClient`` is the
production implementation on top of the ``google-genai`` SDK.

The client provides:
- A two-method protocol (``invoke`` / ``is_available``) the orchestrator depends on
- Typed exceptions mapped from SDK and HTTP errors
- Bounded retry with exponential backoff and jitter for retriable errors
- Security-first logging (never logs API keys, prompts or responses)

Example:
    >>> from curator.ai.client import get_client
    >>> client = get_client()
    >>> if client.is_available():
    ...     text = client.invoke("JOY: 0.0-1.0 ...")
    ... else:
    ...     use_fallback()

Security Rules:
- NEVER log API keys
- NEVER log prompts (they contain the user's own words)
- NEVER log responses (they describe the user)
"""

from __future__ import annotations

import logging
import random
import time
from typing import Any, Callable, Literal, Protocol, runtime_checkable

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from curator.config import APIKeyNotFoundError, AppConfig, get_api_key, get_config
from curator.utils.logging import RedactingFilter

logger = logging.getLogger(__name__)
logger.addFilter(RedactingFilter())


# =============================================================================
# Protocol
# =============================================================================


@runtime_checkable
class GenerativeModelClient(Protocol):
    """What the pipeline needs from a text model.

    ``invoke`` returns the model's raw text or raises an ``AIClientError``.
    ``is_available`` must not make a network call.
    """

    def invoke(self, prompt: str) -> str: ...

    def is_available(self) -> bool: ...


# =============================================================================
# Exception Hierarchy
# =============================================================================


class AIClientError(Exception):
    """Base exception for all model client errors.

    Attributes:
        message: Human-readable description (safe to log).
        retriable: Whether retrying the same request may succeed.
        details: Extra context (may be sensitive, do not log).
        original_error: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        retriable: bool = False,
        details: dict[str, Any] | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.retriable = retriable
        self.details = details or {}
        self.original_error = original_error

    def __str__(self) -> str:
        return self.message


class AIUnavailableError(AIClientError):
    """The model cannot be used at all (disabled, no key, SDK unconfigured).

    Signals the orchestrator to synthesize results locally without retrying.
    """

    MESSAGES = {
        "disabled": "AI features are disabled in configuration",
        "no_api_key": "No Gemini API key configured",
        "not_configured": "Gemini SDK client could not be configured",
    }

    def __init__(
        self,
        reason: Literal["disabled", "no_api_key", "not_configured"],
        message: str | None = None,
    ) -> None:
        self.reason = reason
        super().__init__(message or self.MESSAGES.get(reason, f"AI unavailable: {reason}"))


class AITransportError(AIClientError):
    """Network, HTTP, server or timeout failure. Retriable by default."""

    def __init__(
        self,
        message: str = "Transport error while calling the model.",
        status_code: int | None = None,
        retriable: bool = True,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, retriable=retriable, original_error=original_error)
        self.status_code = status_code


class AIRateLimitError(AITransportError):
    """Rate limit exceeded (HTTP 429)."""

    def __init__(
        self,
        message: str = "Rate limit exceeded. Please wait before retrying.",
        retry_after_seconds: float | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, status_code=429, original_error=original_error)
        self.retry_after_seconds = retry_after_seconds


class AITimeoutError(AITransportError):
    """The request did not complete within the configured timeout."""

    def __init__(self, timeout_seconds: float, original_error: Exception | None = None) -> None:
        super().__init__(
            f"Request timed out after {timeout_seconds} seconds", original_error=original_error
        )
        self.timeout_seconds = timeout_seconds


class AIServerError(AITransportError):
    """Server-side error (5xx)."""


class AIAuthenticationError(AIClientError):
    """The API key was rejected (401/403). Never retriable."""

    def __init__(self, original_error: Exception | None = None) -> None:
        super().__init__(
            "API authentication failed. Please check your API key.",
            original_error=original_error,
        )


class AIBadRequestError(AIClientError):
    """The request itself is malformed (400). Never retriable."""


class ModelNotAvailableError(AIClientError):
    """The configured model does not exist (404)."""

    def __init__(self, model_name: str, original_error: Exception | None = None) -> None:
        super().__init__(
            f"Model '{model_name}' not found. Check ai.model_name in configuration.",
            original_error=original_error,
        )
        self.model_name = model_name


class ContentBlockedError(AIClientError):
    """The prompt or response was blocked by safety filters."""

    def __init__(self, blocked_reason: str | None = None) -> None:
        super().__init__("Content blocked by safety filters.")
        self.blocked_reason = blocked_reason


# =============================================================================
# Gemini Implementation
# =============================================================================


class GeminiClient:
    """``GenerativeModelClient`` backed by ``google-genai``.

    No network call is made during construction. When AI is disabled or no
    key is configured the client still constructs, reports
    ``is_available() == False`` and raises ``AIUnavailableError`` from
    ``invoke``.

    Attributes:
        config: Application configuration.
    """

    MAX_RETRY_DELAY: float = 30.0

    def __init__(
        self,
        config: AppConfig | None = None,
        api_key: str | None = None,
        system_instruction: str | None = None,
    ) -> None:
        self.config = config or get_config()
        self.system_instruction = system_instruction
        self._client: Any = None
        self._logger = logging.getLogger(f"{__name__}.GeminiClient")
        self._logger.addFilter(RedactingFilter())

        if not self.config.ai.is_enabled():
            self._logger.info("AI is disabled in configuration")
            return

        if api_key is None:
            try:
                api_key = get_api_key().get_secret_value()
            except APIKeyNotFoundError:
                self._logger.warning("No API key configured; analyses will use local synthesis")
                return

        try:
            self._client = genai.Client(
                api_key=api_key,
                http_options=types.HttpOptions(timeout=int(self.config.ai.timeout_seconds * 1000)),
            )
            self._logger.info(f"Gemini client configured for model {self.model_name}")
        except Exception as e:
            self._logger.error(f"Failed to configure Gemini client: {type(e).__name__}")
            self._client = None

    @property
    def model_name(self) -> str:
        return self.config.ai.model_name

    def is_available(self) -> bool:
        """True when AI is enabled and the SDK client is configured."""
        return self.config.ai.is_enabled() and self._client is not None

    def invoke(self, prompt: str) -> str:
        """Send one prompt and return the model's text.

        Raises:
            AIUnavailableError: AI disabled or the client is not configured.
            AIClientError: Any mapped SDK failure after retries.
        """
        self._ensure_available()
        start = time.perf_counter()

        deadline = time.monotonic() + self.config.ai.timeout_seconds
        response = self._execute_with_retry(self._do_generate, prompt, deadline=deadline)
        text = self._extract_text(response)

        elapsed_ms = (time.perf_counter() - start) * 1000
        self._logger.debug(f"Generation finished in {elapsed_ms:.0f}ms ({len(text)} chars)")
        return text

    def _ensure_available(self) -> None:
        if not self.config.ai.is_enabled():
            raise AIUnavailableError("disabled")
        if self._client is None:
            raise AIUnavailableError("no_api_key")

    def _generation_config(self) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            temperature=self.config.ai.temperature,
            max_output_tokens=self.config.ai.max_output_tokens,
            system_instruction=self.system_instruction,
        )

    def _do_generate(self, prompt: str) -> Any:
        return self._client.models.generate_content(
            model=self.model_name,
            contents=prompt,
            config=self._generation_config(),
        )

    @staticmethod
    def _extract_text(response: Any) -> str:
        text = getattr(response, "text", None)
        if text:
            return text
        feedback = getattr(response, "prompt_feedback", None)
        block_reason = getattr(feedback, "block_reason", None) if feedback else None
        if block_reason:
            raise ContentBlockedError(blocked_reason=str(block_reason))
        return ""

    def _execute_with_retry(
        self, func: Callable[..., Any], *args: Any, deadline: float | None = None
    ) -> Any:
        """Run ``func`` retrying retriable errors with backoff plus jitter.

        No retry is started once the backoff would run past ``deadline``
        (a ``time.monotonic()`` value); the last error is raised instead.
        """
        retries = self.config.ai.max_retries
        base_delay = self.config.ai.retry_base_delay

        for attempt in range(retries + 1):
            try:
                return func(*args)
            except Exception as e:
                mapped = self._map_exception(e)
                if not mapped.retriable or attempt >= retries:
                    self._logger.warning(
                        f"Model call failed after {attempt + 1} attempt(s): {type(mapped).__name__}"
                    )
                    raise mapped from e

                delay = min(base_delay * (2**attempt), self.MAX_RETRY_DELAY) + random.uniform(0, 1)
                if isinstance(mapped, AIRateLimitError) and mapped.retry_after_seconds:
                    delay = max(delay, mapped.retry_after_seconds)
                if deadline is not None and time.monotonic() + delay >= deadline:
                    self._logger.warning(
                        f"Model call failed after {attempt + 1} attempt(s), no time left to retry: "
                        f"{type(mapped).__name__}"
                    )
                    raise mapped from e
                self._logger.warning(
                    f"Retry {attempt + 1}/{retries} after {delay:.1f}s: {type(mapped).__name__}"
                )
                time.sleep(delay)

        raise AIClientError("Retry loop exited without a result")

    def _map_exception(self, error: Exception) -> AIClientError:
        """Translate SDK and network exceptions into the client taxonomy."""
        if isinstance(error, AIClientError):
            return error

        if isinstance(error, genai_errors.APIError):
            code = getattr(error, "code", None) or 0
            if code == 429:
                return AIRateLimitError(original_error=error)
            if code in (401, 403):
                return AIAuthenticationError(original_error=error)
            if code == 404:
                return ModelNotAvailableError(self.model_name, original_error=error)
            if code in (408, 504):
                return AITimeoutError(self.config.ai.timeout_seconds, original_error=error)
            if code >= 500:
                return AIServerError(
                    f"AI server error ({code}).", status_code=code, original_error=error
                )
            if code == 400:
                return AIBadRequestError("Invalid request to the model.", original_error=error)
            return AIClientError(f"Model API error ({code}).", original_error=error)

        if isinstance(error, TimeoutError):
            return AITimeoutError(self.config.ai.timeout_seconds, original_error=error)

        if isinstance(error, (ConnectionError, OSError)):
            return AITransportError(
                f"Network error: {type(error).__name__}", original_error=error
            )

        error_str = str(error).lower()
        if "timeout" in error_str or "timed out" in error_str:
            return AITimeoutError(self.config.ai.timeout_seconds, original_error=error)
        if "429" in error_str or "rate limit" in error_str:
            return AIRateLimitError(original_error=error)
        if "blocked" in error_str or "safety" in error_str:
            return ContentBlockedError()

        return AIClientError(f"Unexpected model error: {type(error).__name__}", original_error=error)


# =============================================================================
# Module-Level Functions
# =============================================================================


def get_client(config: AppConfig | None = None) -> GeminiClient:
    """Create the production model client.

    Never raises for a missing key or disabled AI: the returned client
    simply reports ``is_available() == False``.
    """
    return GeminiClient(config=config)
