"""
Tests for the Anthropic transport adapter and exception translation.

The SDK client is replaced with a MagicMock; no network access.
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import anthropic
import httpx
import pytest

from substack_intel.analyst.errors import (
    AuthenticationError,
    ClientNotInitializedError,
    ExtractionError,
    InvalidRequestError,
    ParseError,
    ProviderThrottled,
    RequestTimeoutError,
    ServerError,
    TransportError,
)
from substack_intel.analyst.transport import (
    AnthropicTransport,
    CompletionRequest,
    translate_exception,
    validate_api_key,
)

ANTHROPIC_REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")


def status_error(cls, status):
    response = httpx.Response(status, request=ANTHROPIC_REQUEST)
    return cls(f"HTTP {status}", response=response, body=None)


def make_message(*texts, input_tokens=50, output_tokens=25):
    return SimpleNamespace(
        content=[SimpleNamespace(type="text", text=t) for t in texts],
        usage=SimpleNamespace(input_tokens=input_tokens, output_tokens=output_tokens),
    )


REQUEST = CompletionRequest(
    model="claude-3-5-sonnet-20241022",
    max_tokens=4000,
    temperature=0.2,
    system="system prompt",
    messages=[{"role": "user", "content": "Newsletter: Morning Brew"}],
)


# =============================================================================
# translate_exception
# =============================================================================
class TestTranslateException:

    @pytest.mark.parametrize("exc,expected", [
        (status_error(anthropic.AuthenticationError, 401), AuthenticationError),
        (status_error(anthropic.RateLimitError, 429), ProviderThrottled),
        (status_error(anthropic.InternalServerError, 500), ServerError),
        (status_error(anthropic.BadRequestError, 400), InvalidRequestError),
    ])
    def test_sdk_status_errors(self, exc, expected):
        translated = translate_exception(exc)
        assert type(translated) is expected
        assert translated.status == exc.status_code

    def test_sdk_timeout(self):
        error = translate_exception(anthropic.APITimeoutError(request=ANTHROPIC_REQUEST))
        assert isinstance(error, RequestTimeoutError)
        assert error.error_type == "TimeoutError"

    def test_sdk_connection_error(self):
        error = translate_exception(anthropic.APIConnectionError(request=ANTHROPIC_REQUEST))
        assert type(error) is TransportError

    @pytest.mark.parametrize("exc", [
        httpx.ConnectError("refused"),
        ConnectionResetError("reset"),
    ])
    def test_raw_network_errors(self, exc):
        assert type(translate_exception(exc)) is TransportError

    @pytest.mark.parametrize("exc", [
        httpx.ReadTimeout("slow"),
        asyncio.TimeoutError(),
    ])
    def test_raw_timeouts(self, exc):
        assert isinstance(translate_exception(exc), RequestTimeoutError)

    def test_status_attribute_honored(self):
        class GatewayError(Exception):
            status_code = 502

        assert isinstance(translate_exception(GatewayError("bad gateway")), ServerError)

    def test_taxonomy_errors_pass_through(self):
        original = ParseError("bad json")
        assert translate_exception(original) is original

    def test_unknown_exception(self):
        error = translate_exception(KeyError("content"))
        assert type(error) is ExtractionError
        assert "KeyError" in str(error)

    def test_credentials_not_leaked(self):
        exc = status_error(anthropic.AuthenticationError, 401)
        assert "sk-" not in str(translate_exception(exc))


# =============================================================================
# validate_api_key
# =============================================================================
class TestValidateApiKey:

    @pytest.mark.parametrize("key", ["", "   "])
    def test_missing(self, key):
        with pytest.raises(ClientNotInitializedError, match="not configured"):
            validate_api_key(key)

    def test_malformed(self):
        with pytest.raises(ClientNotInitializedError, match="malformed"):
            validate_api_key("abc123")

    def test_valid(self):
        validate_api_key("sk-ant-api03-xyz")


# =============================================================================
# AnthropicTransport
# =============================================================================
@pytest.fixture
def transport():
    t = AnthropicTransport(api_key="sk-ant-test", connect_timeout_s=10, default_timeout_s=12)
    t._client = MagicMock()
    t._client.close = AsyncMock()
    return t


class TestAnthropicTransport:

    def test_rejects_bad_key(self):
        with pytest.raises(ClientNotInitializedError):
            AnthropicTransport(api_key="")

    def test_sdk_retries_disabled(self):
        assert AnthropicTransport(api_key="sk-ant-test")._client.max_retries == 0

    @pytest.mark.asyncio
    async def test_complete(self, transport):
        transport._client.messages.create = AsyncMock(return_value=make_message('{"companies": []}'))

        response = await transport.complete(REQUEST, timeout_s=12)

        assert response.text == '{"companies": []}'
        assert response.input_tokens == 50
        assert response.output_tokens == 25
        assert response.total_tokens == 75

        kwargs = transport._client.messages.create.call_args.kwargs
        assert kwargs["model"] == REQUEST.model
        assert kwargs["system"] == "system prompt"
        assert kwargs["messages"] == REQUEST.messages
        assert kwargs["temperature"] == 0.2
        assert kwargs["timeout"].read == 12

    @pytest.mark.asyncio
    async def test_joins_text_blocks(self, transport):
        message = make_message('{"companies":', ' []}')
        message.content.insert(1, SimpleNamespace(type="tool_use", id="x"))
        transport._client.messages.create = AsyncMock(return_value=message)

        response = await transport.complete(REQUEST, timeout_s=12)

        assert response.text == '{"companies": []}'

    @pytest.mark.asyncio
    async def test_empty_response(self, transport):
        transport._client.messages.create = AsyncMock(return_value=make_message())

        with pytest.raises(ParseError, match="No response"):
            await transport.complete(REQUEST, timeout_s=12)

    @pytest.mark.asyncio
    async def test_missing_usage(self, transport):
        message = make_message('{"companies": []}')
        message.usage = None
        transport._client.messages.create = AsyncMock(return_value=message)

        response = await transport.complete(REQUEST, timeout_s=12)

        assert response.total_tokens == 0

    @pytest.mark.asyncio
    async def test_status_error_translated(self, transport):
        transport._client.messages.create = AsyncMock(
            side_effect=status_error(anthropic.RateLimitError, 429)
        )

        with pytest.raises(ProviderThrottled) as exc_info:
            await transport.complete(REQUEST, timeout_s=12)

        assert exc_info.value.status == 429

    @pytest.mark.asyncio
    async def test_timeout_translated(self, transport):
        transport._client.messages.create = AsyncMock(
            side_effect=anthropic.APITimeoutError(request=ANTHROPIC_REQUEST)
        )

        with pytest.raises(RequestTimeoutError):
            await transport.complete(REQUEST, timeout_s=12)

    @pytest.mark.asyncio
    async def test_close(self, transport):
        await transport.close()
        transport._client.close.assert_awaited_once()
