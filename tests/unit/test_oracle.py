"""Unit tests for the command oracle."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from port_pal.errors import OracleError
from port_pal.llm import create_chat_model
from port_pal.models import AppType
from port_pal.oracle import CommandOracle, _parse_llm_response, build_system_prompt


def mock_llm(content=None, side_effect=None) -> MagicMock:
    llm = MagicMock()
    llm.ainvoke = AsyncMock(return_value=MagicMock(content=content), side_effect=side_effect)
    return llm


class TestBuildSystemPrompt:
    """Tests for build_system_prompt."""

    def test_lists_every_range(self):
        prompt = build_system_prompt()

        assert "web: 3000-3999" in prompt
        assert "api: 8000-8499" in prompt
        assert "streamlit: 8500-8999" in prompt

    def test_mentions_default_env_and_schema(self):
        prompt = build_system_prompt()

        assert '"./.env"' in prompt
        assert '"is_help_request": false' in prompt


class TestParseLLMResponse:
    """Tests for _parse_llm_response."""

    def test_parses_valid_json(self):
        content = (
            '{"type": "api", "name": "billing", "env": "./billing/.env", '
            '"validation_error": null, "is_help_request": false}'
        )
        intent = _parse_llm_response(content)

        assert intent.type == AppType.API
        assert intent.name == "billing"
        assert intent.env == "./billing/.env"
        assert intent.is_help_request is False

    def test_handles_markdown_code_block(self):
        content = """```json
{"type": "web", "name": "dashboard", "is_help_request": false}
```"""
        intent = _parse_llm_response(content)

        assert intent.type == AppType.WEB
        assert intent.name == "dashboard"
        assert intent.env is None

    def test_ignores_extra_fields(self):
        intent = _parse_llm_response('{"is_help_request": true, "confidence": 0.9}')

        assert intent.is_help_request is True

    @pytest.mark.parametrize("content", ["", "   ", "```\n```", "not valid json"])
    def test_unparseable_output_raises(self, content):
        with pytest.raises(OracleError, match="Failed to parse command intent."):
            _parse_llm_response(content)

    @pytest.mark.parametrize(
        "content",
        [
            '{"type": "web", "name": "x"}',
            '{"type": "database", "is_help_request": false}',
            '["web", "x"]',
        ],
    )
    def test_schema_mismatch_raises(self, content):
        with pytest.raises(OracleError, match="expected schema"):
            _parse_llm_response(content)


class TestCommandOracle:
    """Tests for CommandOracle.parse and construction."""

    @pytest.mark.asyncio
    async def test_parse_sends_system_prompt_and_user_text(self):
        llm = mock_llm('{"type": "streamlit", "name": "viz", "is_help_request": false}')
        oracle = CommandOracle(llm)

        intent = await oracle.parse("streamlit port for viz please")

        assert intent.type == AppType.STREAMLIT
        messages = llm.ainvoke.call_args[0][0]
        assert messages[0].content == build_system_prompt()
        assert messages[1].content == "streamlit port for viz please"

    @pytest.mark.asyncio
    async def test_llm_failure_becomes_oracle_error(self):
        oracle = CommandOracle(mock_llm(side_effect=RuntimeError("rate limited")))

        with pytest.raises(OracleError, match="Oracle request failed: rate limited"):
            await oracle.parse("web port for x")

    @pytest.mark.asyncio
    async def test_non_text_content_is_a_parse_failure(self):
        oracle = CommandOracle(mock_llm(content=[{"type": "text", "text": "{}"}]))

        with pytest.raises(OracleError, match="Failed to parse command intent."):
            await oracle.parse("web port for x")

    def test_from_settings_without_api_key(self, settings, monkeypatch):
        monkeypatch.delenv("OPEN_ROUTER_KEY", raising=False)

        with pytest.raises(OracleError, match="Oracle unavailable"):
            CommandOracle.from_settings(settings)

    def test_from_settings_with_openai_key(self, settings, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        settings = settings.model_copy(update={"llm_provider": "openai", "llm_model": "gpt-4o"})

        oracle = CommandOracle.from_settings(settings)

        assert oracle.llm.model_name == "gpt-4o"


class TestCreateChatModel:
    def test_openrouter_uses_its_base_url(self, monkeypatch):
        monkeypatch.setenv("OPEN_ROUTER_KEY", "or-test")

        llm = create_chat_model("openrouter", "openai/gpt-4o-mini")

        assert llm.openai_api_base == "https://openrouter.ai/api/v1"
        assert llm.model_name == "openai/gpt-4o-mini"

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unknown LLM provider 'ollama'"):
            create_chat_model("ollama", "llama3")

    def test_empty_key_counts_as_missing(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "")

        with pytest.raises(KeyError, match="OPENAI_API_KEY"):
            create_chat_model("openai", "gpt-4o")
