#!/usr/bin/env python3
"""
Generation module for the store chat backend.

This module talks to the language model (Gemini by default, Groq as fallback)
over plain HTTP. Callers get text back or a ChatServiceError, never a raw
transport exception.
"""

import requests
from typing import Dict, List, Optional

from .config import Config
from ..utils.errors import ChatServiceError
from ..utils.logger import get_logger
from ..utils.security import mask_secrets

logger = get_logger()

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
GROQ_URL = "https://api.groq.com/openai/v1/chat/completions"


class GenerationClient:
    """Client for the chat-completion service."""

    def __init__(self, provider: Optional[str] = None, timeout: Optional[float] = None):
        self.provider = (provider or Config.LLM_PROVIDER).lower()
        self.timeout = timeout or Config.LLM_TIMEOUT_SECONDS
        self.gemini_key = Config.GEMINI_API_KEY
        self.gemini_model = Config.GEMINI_MODEL
        self.groq_key = Config.GROQ_API_KEY
        self.groq_model = Config.GROQ_LLM_MODEL

        if not (self.gemini_key or self.groq_key):
            raise ValueError("A Gemini or Groq API key is required")

    def _providers(self) -> List[str]:
        order = ["gemini", "groq"] if self.provider != "groq" else ["groq", "gemini"]
        keys = {"gemini": self.gemini_key, "groq": self.groq_key}
        return [p for p in order if keys[p]]

    def complete(self, prompt: str, messages: List[Dict[str, str]], temperature: float = 0.2) -> str:
        """
        Run one chat completion.

        Args:
            prompt: System instructions
            messages: Conversation turns as {"role", "content"} dicts

        Returns:
            Generated text
        """
        errors = []
        for provider in self._providers():
            try:
                if provider == "gemini":
                    answer = self._gemini(prompt, messages, temperature)
                else:
                    answer = self._groq(prompt, messages, temperature)
                logger.info(f"[WORKFLOW] LLM ({provider}) replied, {len(answer)} chars")
                return answer
            except (requests.exceptions.RequestException, KeyError, IndexError, ValueError) as e:
                detail = mask_secrets(str(e))
                logger.warning(f"[WORKFLOW] LLM call via {provider} failed: {detail}")
                errors.append(f"{provider}: {detail}")
        raise ChatServiceError("Chat service unavailable: " + "; ".join(errors))

    def _gemini(self, prompt: str, messages: List[Dict[str, str]], temperature: float) -> str:
        payload = {
            "systemInstruction": {"parts": [{"text": prompt}]},
            "contents": [
                {
                    "role": "model" if m.get("role") == "assistant" else "user",
                    "parts": [{"text": m.get("content", "")}],
                }
                for m in messages
            ],
            "generationConfig": {
                "temperature": temperature,
                "maxOutputTokens": 800,
            },
        }
        response = requests.post(
            GEMINI_URL.format(model=self.gemini_model),
            params={"key": self.gemini_key},
            json=payload,
            timeout=self.timeout,
        )
        response.raise_for_status()
        data = response.json()
        # Extract answer from Gemini response
        return data["candidates"][0]["content"]["parts"][0]["text"].strip()

    def _groq(self, prompt: str, messages: List[Dict[str, str]], temperature: float) -> str:
        headers = {"Authorization": f"Bearer {self.groq_key}", "Content-Type": "application/json"}
        payload = {
            "model": self.groq_model,
            "messages": [{"role": "system", "content": prompt}] + [
                {"role": m.get("role", "user"), "content": m.get("content", "")} for m in messages
            ],
            "temperature": temperature,
            "max_tokens": 800,
        }
        response = requests.post(GROQ_URL, headers=headers, json=payload, timeout=self.timeout)
        response.raise_for_status()
        data = response.json()
        return data["choices"][0]["message"]["content"].strip()
