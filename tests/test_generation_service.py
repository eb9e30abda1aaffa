"""
Tests for the text generation services and their registry.
"""
from unittest.mock import patch, AsyncMock

import pytest

from repo_rag.config.settings import RAGServerConfig
from repo_rag.services import AIServiceRegistry, create_ai_services_from_config
from repo_rag.services.generation_service import GeminiService, ClaudeService, MockGenerationService

GEMINI_REPLY = {"candidates": [{"content": {"parts": [{"text": "Generated answer"}]}}]}


class TestGeminiService:

    @pytest.mark.asyncio
    async def test_select_model_skips_unavailable(self):
        service = GeminiService(api_key="test-key", models=["gemini-missing", "gemini-1.5-flash"])

        with patch.object(service, "_call_api", AsyncMock(side_effect=[
            ValueError("API error (status 404): not found"),
            GEMINI_REPLY,
        ])) as mock_call:
            model = await service.select_model()
            # Cached after the first successful request
            assert await service.select_model() == model

        assert model == "gemini-1.5-flash"
        assert mock_call.call_count == 2

    @pytest.mark.asyncio
    async def test_select_model_none_available(self):
        service = GeminiService(api_key="test-key", models=["a", "b"])

        with patch.object(service, "_call_api", AsyncMock(side_effect=ValueError("API error (status 403)"))):
            with pytest.raises(ValueError, match="No Gemini model available"):
                await service.select_model()

    @pytest.mark.asyncio
    async def test_generate_text(self):
        service = GeminiService(api_key="test-key", models=["gemini-2.0-flash"])
        service.model = "gemini-2.0-flash"

        with patch.object(service, "_call_api", AsyncMock(return_value=GEMINI_REPLY)) as mock_call:
            text = await service.generate_text("Explain the login flow", temperature=0.2)

        assert text == "Generated answer"
        mock_call.assert_called_once_with("Explain the login flow", "gemini-2.0-flash", 0.2)

    @pytest.mark.asyncio
    async def test_generate_text_unexpected_response(self):
        service = GeminiService(api_key="test-key")
        service.model = "gemini-2.0-flash"

        with patch.object(service, "_call_api", AsyncMock(return_value={"candidates": []})):
            with pytest.raises(ValueError, match="Unexpected Gemini response format"):
                await service.generate_text("prompt")

    @pytest.mark.asyncio
    async def test_generate_text_without_key(self):
        with pytest.raises(ValueError):
            await GeminiService(api_key="").generate_text("prompt")


class TestAIServiceRegistry:

    def test_mock_is_default_without_keys(self):
        config = RAGServerConfig(ai_service_type="gemini")

        registry = create_ai_services_from_config(config)

        assert registry.list_services() == {"mock": "MockGenerationService"}
        assert isinstance(registry.get_service(), MockGenerationService)

    def test_configured_service_becomes_default(self):
        config = RAGServerConfig(
            ai_service_type="claude",
            gemini_api_key="gemini-key",
            anthropic_api_key="claude-key"
        )

        registry = create_ai_services_from_config(config)

        assert set(registry.list_services()) == {"mock", "gemini", "claude"}
        assert isinstance(registry.get_service(), ClaudeService)
        assert isinstance(registry.get_service("gemini"), GeminiService)

    def test_unknown_service(self):
        registry = AIServiceRegistry()

        assert registry.get_service() is None
        assert registry.get_service("missing") is None

    @pytest.mark.asyncio
    async def test_mock_generation(self):
        assert await MockGenerationService().generate_text("hello") == "Mock response to: hello"
