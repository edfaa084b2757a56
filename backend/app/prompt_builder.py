#!/usr/bin/env python3
"""
Prompt builder module for the business chatbot.

This module turns retrieved knowledge into a context message and assembles
the chat messages sent to the generator.
"""

from functools import cmp_to_key
from typing import Dict, List, Optional

from .config import Config
from ..schemas.io_models import ScoredMatch, TranslationInfo
from ..utils.logger import get_logger

logger = get_logger()

# Scores closer than this are ordered by entry priority instead
COMPOSE_SCORE_TOLERANCE = 0.1

CONTEXT_PREAMBLE = "Here is verified information about the business to help you answer accurately:"

CONTEXT_POSTAMBLE = """IMPORTANT: This information is verified. Use it to answer accurately and naturally.
Do not mention that you are an AI or reference a database or lookup system.
Respond in a professional, helpful, and human-like manner."""

LANGUAGE_DISPLAY_NAMES = {"urdu": "Urdu (Roman script)"}


def _compare_for_context(a: ScoredMatch, b: ScoredMatch) -> int:
    if abs(a.score - b.score) < COMPOSE_SCORE_TOLERANCE:
        return b.entry.priority - a.entry.priority
    return -1 if a.score > b.score else 1


class ContextComposer:
    """Renders scored matches into one instruction block for the generator."""

    def translation_note(self, translation: Optional[TranslationInfo]) -> Optional[str]:
        """Hint for the generator when the query was rewritten from another language."""
        if not translation or not translation.was_translated:
            return None
        language = LANGUAGE_DISPLAY_NAMES.get(translation.original_language, translation.original_language)
        return (f'BTW: the user asked in {language} ("{translation.original_text}"), '
                f"so keep that context in mind and respond naturally.")

    def compose(self, matches: List[ScoredMatch], translation_note: Optional[str] = None) -> Optional[str]:
        """
        Build the context message.

        Args:
            matches: Scored matches carrying their knowledge entries
            translation_note: Optional language hint appended at the end

        Returns:
            Context text, or None when there is nothing to ground on
        """
        if not matches:
            logger.debug("No contexts provided to compose")
            return None

        # sorted() is stable, so equal-priority ties keep retrieval order
        ordered = sorted(matches, key=cmp_to_key(_compare_for_context))
        bullets = "\n\n".join(f"• {m.entry.answer}" for m in ordered)

        message = f"{CONTEXT_PREAMBLE}\n\n{bullets}\n\n{CONTEXT_POSTAMBLE}"
        if translation_note:
            message += f"\n\n{translation_note}"
        return message


class PromptBuilder:
    """Builds chat-completion messages with context and conversation history."""

    def __init__(self, history_turns: int = None):
        """Initialize the prompt builder."""
        self.history_turns = min(history_turns or Config.PROMPT_HISTORY_TURNS, 10)

    def build_messages(self, system_instructions: str, context_message: Optional[str],
                       history: List[Dict[str, str]]) -> List[Dict[str, str]]:
        """
        Build the message list for the generator.

        Args:
            system_instructions: The business's system prompt
            context_message: Composed context, or None
            history: Conversation so far, ending with the current user turn

        Returns:
            List of {"role", "content"} messages
        """
        messages = [{"role": "system", "content": system_instructions}]

        if context_message:
            messages.append({"role": "system", "content": context_message})
        else:
            logger.debug("No context found, using general business tone")

        recent = history[-self.history_turns:] if history else []
        messages.extend({"role": t["role"], "content": t["content"]} for t in recent)

        logger.debug(f"DEBUG: Prompt built with {len(messages)} messages ({len(recent)} history turns)")
        return messages
