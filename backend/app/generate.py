#!/usr/bin/env python3
"""
Generation module for the business chatbot.

This module sends chat messages to the Groq chat completions API
(OpenAI-compatible) and returns the generated text.
"""

import requests
from typing import Dict, List, Optional

from .config import Config
from .errors import UpstreamError
from ..utils.logger import get_logger

logger = get_logger()


class GenerationClient:
    """Client for generating answers using the Groq LLM API."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None,
                 api_url: Optional[str] = None, timeout: Optional[float] = None,
                 session: Optional[requests.Session] = None):
        """Initialize the generation client."""
        self.api_key = api_key if api_key is not None else Config.GROQ_API_KEY
        self.llm_model = model or Config.GROQ_MODEL
        self.api_url = api_url or Config.GROQ_API_URL
        self.timeout = timeout or Config.GENERATION_TIMEOUT
        self.http = session or requests.Session()

    @property
    def available(self) -> bool:
        return bool(self.api_key)

    def complete(self, messages: List[Dict[str, str]], max_tokens: int = None,
                 temperature: float = None, top_p: float = None) -> str:
        """
        Generate a reply for a list of chat messages.

        Args:
            messages: System, context and history messages
            max_tokens: Completion token limit
            temperature: Sampling temperature
            top_p: Nucleus sampling cutoff

        Returns:
            Generated reply text, stripped

        Raises:
            UpstreamError: no API key, transport failure, timeout, non-200
                status, or a payload without reply text
        """
        if not self.api_key:
            raise UpstreamError("Groq API key is not configured")

        payload = {
            "model": self.llm_model,
            "messages": messages,
            "max_tokens": max_tokens or Config.MAX_TOKENS,
            "temperature": Config.TEMPERATURE if temperature is None else temperature,
            "top_p": Config.TOP_P if top_p is None else top_p,
            "stream": False,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        logger.info(f"[WORKFLOW] Sending {len(messages)} messages to Groq model {self.llm_model}")
        try:
            response = self.http.post(self.api_url, json=payload, headers=headers, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            raise UpstreamError(f"Groq API timed out after {self.timeout}s") from e
        except requests.exceptions.RequestException as e:
            raise UpstreamError(f"Error calling Groq API: {e}") from e

        if response.status_code != 200:
            logger.error(f"Groq API error: {response.status_code} {response.text[:200]}")
            raise UpstreamError(f"Groq API error: {response.status_code}", status_code=response.status_code)

        try:
            data = response.json()
            answer = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise UpstreamError(f"Error parsing generation response: {e}") from e

        if not isinstance(answer, str) or not answer.strip():
            raise UpstreamError("Groq API returned an empty reply")

        answer = answer.strip()
        logger.debug(f"DEBUG: Extracted answer, length: {len(answer)}")
        return answer
