"""
Text Generation Services

This module provides interfaces for the hosted language models used to
answer questions over retrieved knowledge.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

import aiohttp

GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta"
CLAUDE_API_URL = "https://api.anthropic.com/v1/messages"


class AIServiceInterface(ABC):
    """Interface for text generation services"""
    
    @abstractmethod
    async def generate_text(self, prompt: str, **kwargs) -> str:
        """Generate text from a prompt"""
        pass


class GeminiService(AIServiceInterface):
    """Service for interacting with the Gemini API
    
    Models are tried in preference order; the first one that answers a
    test request is used for all later calls.
    """
    
    def __init__(self, api_key: str, models: Optional[List[str]] = None,
                 default_temperature: float = 0.7):
        """Initialize the Gemini service with API key and model preferences"""
        self.api_key = api_key
        self.models = list(models or ["gemini-2.0-flash", "gemini-1.5-flash"])
        self.default_temperature = default_temperature
        self.model: Optional[str] = None
        self.logger = logging.getLogger("repo_rag.services.gemini")
    
    async def select_model(self) -> str:
        """Pick the first available model
        
        Raises:
            ValueError: If no model in the preference list responds
        """
        if self.model:
            return self.model
        
        for model_name in self.models:
            try:
                await self._call_api("test", model_name, self.default_temperature)
            except (ValueError, aiohttp.ClientError) as e:
                self.logger.warning(f"Model {model_name} not available, trying next: {str(e)}")
                continue
            
            self.model = model_name
            self.logger.info(f"Using Gemini model: {model_name}")
            return model_name
        
        raise ValueError("No Gemini model available. Check your API key.")
    
    async def generate_text(self, prompt: str, model: Optional[str] = None,
                            temperature: Optional[float] = None) -> str:
        """Generate text from the Gemini API"""
        if not self.api_key:
            raise ValueError("Gemini API key not configured")
        
        model = model or await self.select_model()
        response = await self._call_api(
            prompt,
            model,
            temperature if temperature is not None else self.default_temperature
        )
        
        try:
            return response["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError) as e:
            raise ValueError(f"Unexpected Gemini response format: {response}") from e
    
    async def _call_api(self, prompt: str, model: str, temperature: float) -> dict:
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": temperature}
        }
        
        async with aiohttp.ClientSession() as session:
            async with session.post(
                f"{GEMINI_API_URL}/models/{model}:generateContent",
                params={"key": self.api_key},
                json=payload
            ) as response:
                if response.status != 200:
                    error_text = await response.text()
                    raise ValueError(f"API error (status {response.status}): {error_text}")
                return await response.json()


class ClaudeService(AIServiceInterface):
    """Service for interacting with Claude API"""
    
    def __init__(self, api_key: str, default_model: str = "claude-3-5-haiku-latest",
                 default_max_tokens: int = 4096, default_temperature: float = 0.7):
        """Initialize the Claude service with API key and defaults"""
        self.api_key = api_key
        self.default_model = default_model
        self.default_max_tokens = default_max_tokens
        self.default_temperature = default_temperature
        self.api_version = "2023-06-01"
    
    async def generate_text(self, prompt: str, model: Optional[str] = None,
                            max_tokens: Optional[int] = None,
                            temperature: Optional[float] = None,
                            system: Optional[str] = None) -> str:
        """Generate text from Claude API"""
        if not self.api_key:
            raise ValueError("Anthropic API key not configured")
        
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": self.api_version,
            "content-type": "application/json"
        }
        
        payload = {
            "model": model or self.default_model,
            "max_tokens": max_tokens or self.default_max_tokens,
            "temperature": temperature if temperature is not None else self.default_temperature,
            "messages": [{"role": "user", "content": prompt}]
        }
        if system:
            payload["system"] = system
        
        async with aiohttp.ClientSession() as session:
            async with session.post(CLAUDE_API_URL, headers=headers, json=payload) as response:
                if response.status != 200:
                    error_text = await response.text()
                    raise ValueError(f"API error (status {response.status}): {error_text}")
                result = await response.json()
        
        return result["content"][0]["text"]


class MockGenerationService(AIServiceInterface):
    """Mock service for running without API keys"""
    
    async def generate_text(self, prompt: str, **kwargs) -> str:
        return f"Mock response to: {prompt}"
