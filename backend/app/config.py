#!/usr/bin/env python3
"""
Configuration management for the business chatbot backend.
"""

import os
from dotenv import load_dotenv

from ..utils.logger import get_logger

# Load environment variables from .env file
load_dotenv()

logger = get_logger()


class Config:
    """Configuration class for the application."""

    # Groq API Configuration (OpenAI-compatible chat completions)
    GROQ_API_KEY = os.getenv("GROQ_API_KEY")
    GROQ_MODEL = os.getenv("GROQ_MODEL", "llama-3.1-8b-instant")
    GROQ_API_URL = os.getenv("GROQ_API_URL", "https://api.groq.com/openai/v1/chat/completions")
    MAX_TOKENS = int(os.getenv("MAX_TOKENS", 200))
    TEMPERATURE = float(os.getenv("TEMPERATURE", 0.8))
    TOP_P = float(os.getenv("TOP_P", 0.9))
    GENERATION_TIMEOUT = float(os.getenv("GENERATION_TIMEOUT", 30))

    # Business context cache
    CACHE_TTL = float(os.getenv("CACHE_TTL", 300))
    CACHE_MAX_SIZE = int(os.getenv("CACHE_MAX_SIZE", 100))

    # Retrieval Configuration
    RAG_TOP_K = int(os.getenv("RAG_TOP_K", 5))
    RAG_SIMILARITY_THRESHOLD = float(os.getenv("RAG_SIMILARITY_THRESHOLD", 0.2))
    CHAT_TOP_K = int(os.getenv("CHAT_TOP_K", 3))
    CHAT_THRESHOLD = float(os.getenv("CHAT_THRESHOLD", 0.05))
    CONFIDENT_SCORE_THRESHOLD = float(os.getenv("CONFIDENT_SCORE_THRESHOLD", 2.0))

    # Conversation Configuration
    MAX_HISTORY_TURNS = 20
    PROMPT_HISTORY_TURNS = int(os.getenv("PROMPT_HISTORY_TURNS", 6))
    MAX_MESSAGE_LENGTH = 1000

    # Knowledge store
    DATABASE_URL = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(os.path.dirname(__file__), "..", "data", "chatbot.db"),
    )

    @classmethod
    def lenient_threshold(cls) -> float:
        """Threshold used by diagnostics and default retrieval."""
        return cls.RAG_SIMILARITY_THRESHOLD * 0.5

    @classmethod
    def debug_print(cls):
        logger.info(f"[CONFIG] GROQ_MODEL={cls.GROQ_MODEL} set={bool(cls.GROQ_API_KEY)}")
        logger.info(f"[CONFIG] MAX_TOKENS={cls.MAX_TOKENS} TEMPERATURE={cls.TEMPERATURE} TOP_P={cls.TOP_P}")
        logger.info(f"[CONFIG] CACHE_TTL={cls.CACHE_TTL}s RAG_TOP_K={cls.RAG_TOP_K}")

    @classmethod
    def validate(cls):
        """Validate that the configuration is usable."""
        errors = []

        if not cls.GROQ_API_KEY:
            logger.warning("GROQ_API_KEY not found - answers will use local fallbacks only")

        if not 0 < cls.PROMPT_HISTORY_TURNS <= 10:
            errors.append("PROMPT_HISTORY_TURNS must be between 1 and 10")
        if cls.GENERATION_TIMEOUT <= 0:
            errors.append("GENERATION_TIMEOUT must be positive")
        if cls.CACHE_MAX_SIZE < 1:
            errors.append("CACHE_MAX_SIZE must be at least 1")

        if errors:
            raise ValueError(f"Invalid configuration: {', '.join(errors)}")

        return True


# Validate configuration on import
Config.validate()
