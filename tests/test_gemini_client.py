"""Tests for the Gemini model invoker."""
from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from noah_ai.config import ConfigError, Settings
from noah_ai.llm import GeminiConfig, GeminiError, GeminiInvoker, ModelResponse


class _BlockedResponse:
    usage_metadata = SimpleNamespace(prompt_token_count=40, candidates_token_count=0)

    @property
    def text(self):
        raise ValueError("Response was blocked")


@pytest.fixture
def genai():
    client = MagicMock()
    client.GenerativeModel.return_value.generate_content.return_value = SimpleNamespace(
        text='{"suggestions": []}',
        usage_metadata=SimpleNamespace(prompt_token_count=120, candidates_token_count=35),
    )
    return client


def _invoker(genai, **overrides):
    config = GeminiConfig(api_key="test-key", **overrides)
    return GeminiInvoker(config, client=genai)


class TestGeminiConfig:

    def test_from_settings(self):
        settings = Settings(gemini_api_key="k", gemini_model="gemini-test", gemini_timeout=30.0)
        config = GeminiConfig.from_settings(settings)
        assert config.api_key == "k"
        assert config.model == "gemini-test"
        assert config.timeout == 30.0

    def test_requires_key(self):
        with pytest.raises(ConfigError):
            GeminiConfig.from_settings(Settings())


class TestGeminiInvoker:

    def test_structured_call(self, genai):
        response = _invoker(genai, model="gemini-2.0-flash").invoke("system text", "user text")

        assert response == ModelResponse(text='{"suggestions": []}', input_tokens=120, output_tokens=35)

        kwargs = genai.GenerativeModel.call_args.kwargs
        assert kwargs["model_name"] == "gemini-2.0-flash"
        assert kwargs["system_instruction"] == "system text"
        assert kwargs["generation_config"] == {
            "temperature": 0.7,
            "max_output_tokens": 4096,
            "response_mime_type": "application/json",
        }
        genai.GenerativeModel.return_value.generate_content.assert_called_once_with(
            "user text", request_options={"timeout": 120.0}
        )

    def test_unstructured_call_omits_mime_type(self, genai):
        _invoker(genai).invoke("s", "u", structured_output=False)
        assert "response_mime_type" not in genai.GenerativeModel.call_args.kwargs["generation_config"]

    def test_missing_usage_metadata_counts_zero(self, genai):
        genai.GenerativeModel.return_value.generate_content.return_value = SimpleNamespace(text="{}")
        response = _invoker(genai).invoke("s", "u")
        assert (response.input_tokens, response.output_tokens) == (0, 0)

    def test_blocked_response_returns_empty_text(self, genai):
        genai.GenerativeModel.return_value.generate_content.return_value = _BlockedResponse()
        response = _invoker(genai).invoke("s", "u")
        assert response.text == ""
        assert response.input_tokens == 40

    def test_provider_errors_are_wrapped(self, genai):
        genai.GenerativeModel.return_value.generate_content.side_effect = TimeoutError("deadline")
        with pytest.raises(GeminiError, match="deadline"):
            _invoker(genai).invoke("s", "u")
