#!/usr/bin/env python3
"""
Business context module for the business chatbot.

A BusinessContext is the read-only snapshot the pipeline works against: the
knowledge entries, their TF-IDF index, and the business's prompt settings.
BusinessService keeps recently used snapshots in a small expiring cache.
"""

import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from pydantic import ValidationError as SchemaError

from .config import Config
from .lexical_index import LexicalIndex
from ..schemas.io_models import KnowledgeEntry
from ..utils.logger import get_logger

logger = get_logger()

DEFAULT_SYSTEM_PROMPT_TEMPLATE = """You are a virtual assistant for {name}.
Your primary goal is to guide customers, answer their questions accurately, and help them solve problems in a simple and professional manner.

Core Guidelines:
- Always use information from the knowledge base if relevant.
- Do not mention AI, databases, or internal systems.
- Keep answers clear, accurate, and easy to follow.
- If you are unsure, politely acknowledge it and offer to connect the user with support.

Tone & Style:
- Professional, friendly, and approachable.
- No slang or overly casual language.
- Use plain, simple language that's easy for anyone to understand.
- Keep sentences and paragraphs short for readability.
- Provide step-by-step guidance when explaining solutions.

Business details:
- Name: {name}
- Location: {location}
- Type: {business_type}
- Specialization: {specialization}"""


class BusinessContext:
    """Immutable per-business snapshot: entries and the index derived from them."""

    def __init__(self, business_id: str, business_name: str, knowledge_entries: Tuple[KnowledgeEntry, ...],
                 system_instructions: str, initial_greeting: str, phone: Optional[str] = None,
                 email: Optional[str] = None, address: Optional[str] = None, website: Optional[str] = None,
                 business_type: Optional[str] = None, keywords: Sequence[str] = ()):
        self.business_id = business_id
        self.business_name = business_name
        self.knowledge_entries = knowledge_entries
        self.system_instructions = system_instructions
        self.initial_greeting = initial_greeting
        self.phone = phone
        self.email = email
        self.address = address
        self.website = website
        self.business_type = business_type
        self.keywords = tuple(keywords)
        self.index = LexicalIndex.build(knowledge_entries)

    @classmethod
    def build(cls, business_id: str, business_name: str, entries: Iterable[Any],
              system_prompt: Optional[str] = None, initial_message: Optional[str] = None,
              location: Optional[str] = None, specialization: Optional[str] = None,
              **details) -> "BusinessContext":
        """
        Build a context from raw knowledge records.

        Records may be KnowledgeEntry instances or mappings; records that do
        not validate are skipped.
        """
        knowledge: List[KnowledgeEntry] = []
        for idx, raw in enumerate(entries):
            if isinstance(raw, KnowledgeEntry):
                knowledge.append(raw)
                continue
            try:
                knowledge.append(KnowledgeEntry.model_validate(raw))
            except SchemaError as e:
                logger.warning(f"Skipping malformed knowledge entry {idx} for {business_id}: {e.error_count()} errors")

        if system_prompt and system_prompt.strip():
            system_instructions = system_prompt
        else:
            system_instructions = DEFAULT_SYSTEM_PROMPT_TEMPLATE.format(
                name=business_name or "this business",
                location=location or "N/A",
                business_type=details.get("business_type") or "N/A",
                specialization=specialization or "N/A",
            )

        initial_greeting = initial_message or f"Welcome to {business_name}! How can we assist you today?"

        return cls(
            business_id=business_id,
            business_name=business_name,
            knowledge_entries=tuple(knowledge),
            system_instructions=system_instructions,
            initial_greeting=initial_greeting,
            **details,
        )

    def categories(self) -> List[str]:
        return sorted({e.category for e in self.knowledge_entries if e.category})


class BusinessService:
    """Loads business contexts from the knowledge store and caches them."""

    def __init__(self, store, ttl: float = None, max_size: int = None,
                 clock: Callable[[], float] = time.monotonic):
        self.store = store
        self.ttl = Config.CACHE_TTL if ttl is None else ttl
        self.max_size = Config.CACHE_MAX_SIZE if max_size is None else max_size
        self.clock = clock
        self._cache: "OrderedDict[str, Tuple[float, BusinessContext]]" = OrderedDict()
        self._lock = threading.Lock()

    def get_business_context(self, business_id: str) -> Optional[BusinessContext]:
        """
        Get the context for a business, rebuilding it when the cached copy expired.

        Args:
            business_id: Business identifier

        Returns:
            BusinessContext, or None when the business does not exist
        """
        now = self.clock()
        with self._lock:
            cached = self._cache.get(business_id)
            if cached and now - cached[0] < self.ttl:
                logger.debug(f"Using cached business data for: {business_id}")
                return cached[1]

        logger.info(f"Loading business context for: {business_id}")
        context = self.store.load_business_context(business_id)
        if context is None:
            logger.warning(f"Business not found: {business_id}")
            return None

        with self._lock:
            self._cache[business_id] = (now, context)
            self._cache.move_to_end(business_id)
            while len(self._cache) > self.max_size:
                oldest, _ = self._cache.popitem(last=False)
                logger.debug(f"Evicted business context: {oldest}")

        logger.info(f"Loaded {len(context.knowledge_entries)} knowledge entries for {context.business_name}")
        return context

    def clear_cache(self, business_id: Optional[str] = None):
        with self._lock:
            if business_id:
                self._cache.pop(business_id, None)
                logger.info(f"Cleared cache for business: {business_id}")
            else:
                self._cache.clear()
                logger.info("Cleared all business cache")

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {"cache_size": len(self._cache), "cache_ttl": self.ttl}
