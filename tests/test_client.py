"""Tests for curator.ai.client: the Gemini model client.

Tests cover:
- Exception hierarchy
- Client initialization (disabled, missing key, configured)
- invoke() text extraction and content blocking
- Retry logic with exponential backoff
- Exception mapping from SDK and network errors

All tests mock the google-genai SDK; no real API calls.
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from google.genai import errors as genai_errors
from pydantic import SecretStr

from curator.ai.client import (
    AIAuthenticationError,
    AIBadRequestError,
    AIClientError,
    AIRateLimitError,
    AIServerError,
    AITimeoutError,
    AITransportError,
    AIUnavailableError,
    ContentBlockedError,
    GeminiClient,
    GenerativeModelClient,
    ModelNotAvailableError,
    get_client,
)
from curator.config import APIKeyNotFoundError

VALID_KEY = "AIzaSy" + "x" * 30


class FakeAPIError(genai_errors.APIError):
    """APIError with only a status code."""

    def __init__(self, code: int):
        Exception.__init__(self, f"{code} error")
        self.code = code


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def mock_config():
    """Create a mock AppConfig."""
    config = MagicMock()
    config.ai.is_enabled.return_value = True
    config.ai.model_name = "gemini-2.0-flash"
    config.ai.temperature = 0.7
    config.ai.max_output_tokens = 2048
    config.ai.timeout_seconds = 60
    config.ai.max_retries = 2
    config.ai.retry_base_delay = 0.01  # Fast for tests
    return config


@pytest.fixture
def mock_disabled_config():
    """Create a mock AppConfig with AI disabled."""
    config = MagicMock()
    config.ai.is_enabled.return_value = False
    return config


@pytest.fixture
def mock_response():
    response = MagicMock()
    response.text = "JOY: 0.8"
    response.prompt_feedback = None
    return response


@pytest.fixture
def no_sleep():
    with patch("curator.ai.client.time.sleep") as sleep:
        yield sleep


# =============================================================================
# Exception Tests
# =============================================================================


class TestExceptions:
    """Test exception hierarchy."""

    def test_base_error(self):
        error = AIClientError("Test error", retriable=True)
        assert str(error) == "Test error"
        assert error.retriable is True
        assert error.original_error is None

    def test_unavailable_reasons(self):
        for reason in ("disabled", "no_api_key", "not_configured"):
            error = AIUnavailableError(reason)
            assert error.reason == reason
            assert error.retriable is False

    def test_transport_errors_are_retriable(self):
        assert AITransportError().retriable is True
        assert AIRateLimitError(retry_after_seconds=5.0).status_code == 429
        assert AITimeoutError(30).retriable is True
        assert isinstance(AIServerError("boom"), AITransportError)

    def test_non_retriable_errors(self):
        assert AIAuthenticationError().retriable is False
        assert AIBadRequestError("bad").retriable is False
        assert ModelNotAvailableError("m").model_name == "m"
        assert ContentBlockedError("SAFETY").blocked_reason == "SAFETY"


# =============================================================================
# Initialization
# =============================================================================


class TestInitialization:
    """Test client construction."""

    @patch("curator.ai.client.genai")
    def test_disabled(self, mock_genai, mock_disabled_config):
        client = GeminiClient(config=mock_disabled_config)

        assert client.is_available() is False
        mock_genai.Client.assert_not_called()
        with pytest.raises(AIUnavailableError) as exc_info:
            client.invoke("prompt")
        assert exc_info.value.reason == "disabled"

    @patch("curator.ai.client.get_api_key")
    @patch("curator.ai.client.genai")
    def test_missing_key(self, mock_genai, mock_get_key, mock_config):
        mock_get_key.side_effect = APIKeyNotFoundError("none")

        client = GeminiClient(config=mock_config)

        assert client.is_available() is False
        with pytest.raises(AIUnavailableError) as exc_info:
            client.invoke("prompt")
        assert exc_info.value.reason == "no_api_key"

    @patch("curator.ai.client.get_api_key")
    @patch("curator.ai.client.genai")
    def test_configured_from_key_store(self, mock_genai, mock_get_key, mock_config):
        mock_get_key.return_value = SecretStr(VALID_KEY)

        client = GeminiClient(config=mock_config)

        assert client.is_available() is True
        assert mock_genai.Client.call_args.kwargs["api_key"] == VALID_KEY

    @patch("curator.ai.client.genai")
    def test_sdk_failure_leaves_client_unavailable(self, mock_genai, mock_config):
        mock_genai.Client.side_effect = RuntimeError("bad options")
        client = GeminiClient(config=mock_config, api_key=VALID_KEY)
        assert client.is_available() is False

    @patch("curator.ai.client.genai")
    def test_satisfies_protocol(self, mock_genai, mock_config):
        client = get_client(mock_config)
        assert isinstance(client, GenerativeModelClient)


# =============================================================================
# Invocation
# =============================================================================


class TestInvoke:
    """Test invoke()."""

    @patch("curator.ai.client.genai")
    def test_returns_text(self, mock_genai, mock_config, mock_response):
        mock_genai.Client.return_value.models.generate_content.return_value = mock_response
        client = GeminiClient(config=mock_config, api_key=VALID_KEY)

        assert client.invoke("prompt") == "JOY: 0.8"
        call = mock_genai.Client.return_value.models.generate_content.call_args
        assert call.kwargs["model"] == "gemini-2.0-flash"
        assert call.kwargs["contents"] == "prompt"

    @patch("curator.ai.client.genai")
    def test_blocked_response(self, mock_genai, mock_config):
        response = MagicMock()
        response.text = None
        response.prompt_feedback.block_reason = "SAFETY"
        mock_genai.Client.return_value.models.generate_content.return_value = response
        client = GeminiClient(config=mock_config, api_key=VALID_KEY)

        with pytest.raises(ContentBlockedError):
            client.invoke("prompt")

    @patch("curator.ai.client.genai")
    def test_empty_response(self, mock_genai, mock_config):
        response = MagicMock()
        response.text = ""
        response.prompt_feedback = None
        mock_genai.Client.return_value.models.generate_content.return_value = response
        client = GeminiClient(config=mock_config, api_key=VALID_KEY)

        assert client.invoke("prompt") == ""


# =============================================================================
# Retry Logic
# =============================================================================


class TestRetry:
    """Test retry with exponential backoff."""

    @patch("curator.ai.client.genai")
    def test_retries_then_succeeds(self, mock_genai, mock_config, mock_response, no_sleep):
        generate = mock_genai.Client.return_value.models.generate_content
        generate.side_effect = [FakeAPIError(503), mock_response]
        client = GeminiClient(config=mock_config, api_key=VALID_KEY)

        assert client.invoke("prompt") == "JOY: 0.8"
        assert generate.call_count == 2
        assert no_sleep.call_count == 1

    @patch("curator.ai.client.genai")
    def test_gives_up_after_max_retries(self, mock_genai, mock_config, no_sleep):
        generate = mock_genai.Client.return_value.models.generate_content
        generate.side_effect = FakeAPIError(429)
        client = GeminiClient(config=mock_config, api_key=VALID_KEY)

        with pytest.raises(AIRateLimitError):
            client.invoke("prompt")
        assert generate.call_count == 3

    @patch("curator.ai.client.genai")
    def test_non_retriable_fails_fast(self, mock_genai, mock_config, no_sleep):
        generate = mock_genai.Client.return_value.models.generate_content
        generate.side_effect = FakeAPIError(401)
        client = GeminiClient(config=mock_config, api_key=VALID_KEY)

        with pytest.raises(AIAuthenticationError):
            client.invoke("prompt")
        assert generate.call_count == 1
        no_sleep.assert_not_called()

    @patch("curator.ai.client.genai")
    def test_no_retry_past_the_timeout(self, mock_genai, mock_config, no_sleep):
        mock_config.ai.timeout_seconds = 1.0
        mock_config.ai.retry_base_delay = 2.0
        generate = mock_genai.Client.return_value.models.generate_content
        generate.side_effect = FakeAPIError(503)
        client = GeminiClient(config=mock_config, api_key=VALID_KEY)

        with pytest.raises(AIServerError):
            client.invoke("prompt")

        assert generate.call_count == 1
        no_sleep.assert_not_called()

    @patch("curator.ai.client.genai")
    def test_backoff_grows(self, mock_genai, mock_config, no_sleep):
        mock_config.ai.retry_base_delay = 2.0
        generate = mock_genai.Client.return_value.models.generate_content
        generate.side_effect = FakeAPIError(500)
        client = GeminiClient(config=mock_config, api_key=VALID_KEY)

        with pytest.raises(AIServerError):
            client.invoke("prompt")

        first, second = (call.args[0] for call in no_sleep.call_args_list)
        assert 2.0 <= first <= 3.0
        assert 4.0 <= second <= 5.0


# =============================================================================
# Exception Mapping
# =============================================================================


class TestExceptionMapping:
    """Test exception mapping from SDK errors."""

    @pytest.fixture
    def client(self, mock_config):
        with patch("curator.ai.client.genai"):
            return GeminiClient(config=mock_config, api_key=VALID_KEY)

    @pytest.mark.parametrize(
        "code, expected",
        [
            (429, AIRateLimitError),
            (401, AIAuthenticationError),
            (403, AIAuthenticationError),
            (404, ModelNotAvailableError),
            (408, AITimeoutError),
            (500, AIServerError),
            (503, AIServerError),
            (400, AIBadRequestError),
        ],
    )
    def test_api_error_codes(self, client, code, expected):
        assert isinstance(client._map_exception(FakeAPIError(code)), expected)

    def test_timeout(self, client):
        assert isinstance(client._map_exception(TimeoutError()), AITimeoutError)

    def test_connection_error(self, client):
        mapped = client._map_exception(ConnectionResetError("reset"))
        assert isinstance(mapped, AITransportError)
        assert mapped.retriable is True

    @pytest.mark.parametrize(
        "message, expected",
        [
            ("Request timed out", AITimeoutError),
            ("429 Too Many Requests", AIRateLimitError),
            ("Response blocked by safety settings", ContentBlockedError),
            ("something else", AIClientError),
        ],
    )
    def test_message_fallback(self, client, message, expected):
        assert type(client._map_exception(RuntimeError(message))) is expected

    def test_client_errors_pass_through(self, client):
        error = AIBadRequestError("bad")
        assert client._map_exception(error) is error
