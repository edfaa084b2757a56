#!/usr/bin/env python3
"""
Preprocessing module for the business chatbot.

This module handles text normalization and a small Roman-Urdu to English
glossary translation applied before retrieval.
"""

import re
from typing import Dict

from ..schemas.io_models import TranslationInfo
from ..utils.logger import get_logger

logger = get_logger()

# Word-level glossary; good enough for keyword retrieval, not for prose.
ROMAN_URDU_GLOSSARY: Dict[str, str] = {
    "kya": "what",
    "kahan": "where",
    "kidhar": "where",
    "kab": "when",
    "kaise": "how",
    "kese": "how",
    "kaun": "who",
    "kon": "who",
    "kitna": "how much",
    "kitne": "how much",
    "kitni": "how much",
    "qeemat": "price",
    "keemat": "price",
    "daam": "price",
    "fees": "fees",
    "waqt": "time",
    "auqat": "hours",
    "ghante": "hours",
    "khulta": "open",
    "khulte": "open",
    "khulti": "open",
    "khulne": "open",
    "pata": "address",
    "dukaan": "store",
    "dukan": "store",
    "khidmat": "services",
    "khidmaat": "services",
    "wapsi": "refund",
    "wapis": "return",
    "rabta": "contact",
    "raabta": "contact",
    "chahiye": "need",
    "milega": "available",
    "milta": "available",
    "hai": "is",
    "hain": "are",
    "aap": "you",
    "ap": "you",
    "aapka": "your",
    "apka": "your",
    "aapki": "your",
    "apki": "your",
    "aapke": "your",
    "apke": "your",
    "ka": "of",
    "ki": "of",
    "ke": "of",
    "ko": "to",
    "se": "from",
    "nahi": "not",
    "kyun": "why",
}

# Minimum glossary hits before a query is treated as Roman Urdu
MIN_GLOSSARY_HITS = 2


def normalize_text(text: str) -> str:
    """
    Normalize text for matching.

    Queries and knowledge entries go through the same normalization so
    phrase comparisons between them line up.

    Args:
        text: Input text to normalize

    Returns:
        Normalized text
    """
    if not text:
        return ""

    # Convert to lowercase
    text = text.lower()

    # Remove non-informative characters but keep punctuation for intent
    text = re.sub(r"[^\w\s.,!?\-+*/=$%]", "", text)

    # Remove extra whitespace
    return re.sub(r"\s+", " ", text).strip()


class Preprocessor:
    """Preprocessor for chatbot queries."""

    def __init__(self, glossary: Dict[str, str] = None):
        """Initialize the preprocessor."""
        self.glossary = glossary if glossary is not None else ROMAN_URDU_GLOSSARY

    def normalize_text(self, text: str) -> str:
        return normalize_text(text)

    def translate_to_english(self, text: str) -> TranslationInfo:
        """
        Rewrite a Roman-Urdu query into English keywords.

        Args:
            text: Query text

        Returns:
            TranslationInfo; ``was_translated`` is False when the query was left alone
        """
        words = text.split()
        hits = sum(1 for w in words if w.lower().strip(".,!?") in self.glossary)

        if hits < MIN_GLOSSARY_HITS:
            return TranslationInfo(translated_text=text, original_text=text)

        translated = []
        for word in words:
            bare = word.lower().strip(".,!?")
            translated.append(self.glossary.get(bare, word))
        translated_text = " ".join(translated)

        logger.info(f"[WORKFLOW] Translated query: '{text}' -> '{translated_text}'")
        return TranslationInfo(
            translated_text=translated_text,
            original_text=text,
            original_language="urdu",
            was_translated=True,
        )

    def preprocess_query(self, query: str) -> TranslationInfo:
        """
        Normalize and translate a user query.

        Args:
            query: Raw user query

        Returns:
            TranslationInfo whose ``translated_text`` is the search text
        """
        normalized = self.normalize_text(query)
        logger.debug(f"DEBUG: Normalized text: {normalized}")
        info = self.translate_to_english(normalized)
        return info.model_copy(update={"original_text": query})
