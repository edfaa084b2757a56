#!/usr/bin/env python3
"""
Retrieval module for the business chatbot.

This module scores every knowledge entry of a business against a query with
several cheap signals (exact phrase, partial phrase, keyword density, intent
patterns, TF-IDF, fuzzy overlap) and keeps the entries that clear a threshold.
Signals are additive, so one strong signal is enough to surface an entry.
"""

import re
from functools import cmp_to_key
from typing import List, Optional, Tuple

from .business import BusinessContext
from .config import Config
from .preprocess import Preprocessor, normalize_text
from ..schemas.io_models import (
    KnowledgeEntry,
    RagDiagnostics,
    RetrievalResult,
    ScoredMatch,
    TranslationInfo,
)
from ..utils.logger import get_logger

logger = get_logger()

SIGNAL_WEIGHTS = {
    "exact_question": 1.5,     # query inside question or question inside query
    "exact_answer": 1.2,       # query inside answer
    "partial_phrase": 0.5,     # per query token found in question or answer
    "keyword_density": 1.0,    # times fraction of query tokens found
    "important_keyword": 0.5,  # per found token that is a business keyword
    "tfidf": 0.6,
    "fuzzy": 0.4,
}

FUZZY_MIN_SCORE = 0.2
SIMILAR_WORD_RATIO = 0.6
# Composite scores closer than this are ties, broken by entry priority
SCORE_EPSILON = 1e-6

IMPORTANT_KEYWORDS = [
    # General business terms
    "business", "company", "services", "products", "pricing", "cost", "price", "quote", "rates",
    "support", "help", "contact", "customer", "client", "order", "booking", "appointment",
    # Location & timing
    "location", "address", "branch", "office", "store", "hours", "timing", "open", "close",
    # Policies & payment
    "refund", "return", "warranty", "guarantee", "policy", "payment", "invoice", "bill", "transaction",
    # Tech / SaaS
    "project", "software", "app", "website", "api", "integration", "plan", "subscription",
    # Customer intent
    "buy", "purchase", "book", "cancel", "modify", "upgrade", "trial", "demo",
    # Account
    "account", "profile", "login", "register", "signup", "issue", "problem", "error",
]

# (intent, query pattern, question pattern, boost); both patterns must match
PATTERN_RULES = [
    ("location",
     r"where.*(located|find|branch|office|store)|location|address",
     r"where|locat|address|branch|office|find", 1.2),
    ("contact",
     r"how.*contact|contact.*how|get.*in touch|reach.*you|phone number|email",
     r"contact|phone|email|reach|touch", 1.1),
    ("services",
     r"what.*services|services.*what|offer.*what|provide.*what|what.*(offer|provide)",
     r"service|offer|provide", 1.2),
    ("products",
     r"what.*products|products.*what|sell.*what|do.*sell",
     r"product|sell|menu|items", 1.2),
    ("pricing",
     r"how.*much|price|cost|pricing|quote|estimate|rates|charges",
     r"price|pricing|cost|much|rates|charge|fee|quote", 1.3),
    ("hours",
     r"what.*time|when.*(open|close)|opening.*hours|closing.*hours|working.*hours|\bhours\b|\bopen\b",
     r"hours|open|time|timing|schedule|close", 1.0),
    ("refund",
     r"refund|return.*policy|cancel.*order|warranty|guarantee",
     r"refund|return|cancel|warranty|guarantee|policy", 1.0),
    ("support",
     r"problem|issue|error|help.*needed|support",
     r"problem|issue|error|help|support", 1.0),
    ("about",
     r"who.*are|about.*(company|business)|tell.*about.*you",
     r"who|about|company|business|story", 1.0),
]

_COMPILED_RULES = [
    (name, re.compile(query_re, re.IGNORECASE), re.compile(question_re, re.IGNORECASE), boost)
    for name, query_re, question_re, boost in PATTERN_RULES
]

_TOKEN_PUNCT = ".,!?;:'\"()"


def query_tokens(text: str) -> List[str]:
    """Whitespace tokens longer than one character, outer punctuation stripped."""
    tokens = (w.strip(_TOKEN_PUNCT) for w in text.lower().split())
    return [t for t in tokens if len(t) > 1]


def is_similar_word(word1: str, word2: str, threshold: float = SIMILAR_WORD_RATIO) -> bool:
    """Crude similarity: containment, or share of the shorter word's characters found in the longer."""
    if len(word1) < 2 or len(word2) < 2:
        return False

    longer, shorter = (word1, word2) if len(word1) > len(word2) else (word2, word1)
    if shorter in longer:
        return True

    matches = sum(1 for char in shorter if char in longer)
    return matches / len(shorter) >= threshold


def fuzzy_score(query: str, text: str) -> float:
    """Per-token partial overlap of ``query`` against ``text``, capped at 1.0."""
    query_words = query.split(" ")
    if not query_words:
        return 0.0

    text_words = [w for w in text.split(" ") if w]
    total = 0.0
    for word in query_words:
        if len(word) <= 1:
            continue
        for text_word in text_words:
            if word in text_word or text_word in word:
                total += 0.6
            elif is_similar_word(word, text_word, 0.5):
                total += 0.4

    return min(total / len(query_words), 1.0)


def _is_important(word: str) -> bool:
    return any(word in imp or imp in word or is_similar_word(word, imp) for imp in IMPORTANT_KEYWORDS)


def score_entry(entry: KnowledgeEntry, query: str, tfidf_score: float = 0.0,
                use_fuzzy: bool = False) -> Tuple[float, List[str]]:
    """
    Composite relevance of one knowledge entry for a normalized query.

    Args:
        entry: Knowledge entry to score
        query: Search text, already passed through ``normalize_text``
        tfidf_score: The entry's TF-IDF score for this query
        use_fuzzy: Apply the fuzzy-overlap signal (query was translated)

    Returns:
        (score, signal names that fired)
    """
    question = normalize_text(entry.question)
    answer = normalize_text(entry.answer)
    combined = f"{question} {answer}"
    query = query.strip()

    total = 0.0
    signals: List[str] = []

    if query and question and (query in question or question in query):
        total += SIGNAL_WEIGHTS["exact_question"]
        signals.append("exact_question")

    if query and answer and query in answer:
        total += SIGNAL_WEIGHTS["exact_answer"]
        signals.append("exact_answer")

    tokens = query_tokens(query)

    partial_hits = sum(1 for t in tokens if t in question or t in answer)
    if partial_hits:
        total += partial_hits * SIGNAL_WEIGHTS["partial_phrase"]
        signals.append("partial_phrase")

    found = [t for t in tokens if t in combined]
    if found:
        important = sum(1 for t in found if _is_important(t))
        total += (len(found) / len(tokens)) * SIGNAL_WEIGHTS["keyword_density"]
        signals.append("keywords")
        if important:
            total += important * SIGNAL_WEIGHTS["important_keyword"]
            signals.append("important_keywords")

    for name, query_re, question_re, boost in _COMPILED_RULES:
        if query_re.search(query) and question_re.search(question):
            total += boost
            signals.append(f"pattern:{name}")

    if tfidf_score > 0:
        total += tfidf_score * SIGNAL_WEIGHTS["tfidf"]
        signals.append("tfidf")

    if use_fuzzy and tokens:
        fuzzy = fuzzy_score(query, combined)
        if fuzzy > FUZZY_MIN_SCORE:
            total += fuzzy * SIGNAL_WEIGHTS["fuzzy"]
            signals.append("fuzzy")

    return total, signals


def _compare_matches(a: ScoredMatch, b: ScoredMatch) -> int:
    if abs(a.score - b.score) < SCORE_EPSILON:
        if a.entry.priority != b.entry.priority:
            return b.entry.priority - a.entry.priority
        return a.entry_index - b.entry_index
    return -1 if a.score > b.score else 1


def rank_matches(matches: List[ScoredMatch]) -> List[ScoredMatch]:
    """Best first; near-equal scores go to the higher-priority entry."""
    return sorted(matches, key=cmp_to_key(_compare_matches))


class RelevanceScorer:
    """Ranks a business's knowledge entries against a query."""

    def __init__(self, preprocessor: Optional[Preprocessor] = None):
        self.preprocessor = preprocessor or Preprocessor()

    def retrieve(self, query: str, context: BusinessContext, top_k: Optional[int] = None,
                 threshold: Optional[float] = None,
                 translation: Optional[TranslationInfo] = None) -> RetrievalResult:
        """
        Retrieve the best-matching knowledge entries for a query.

        Args:
            query: Raw user query
            context: Business context holding the entries and their index
            top_k: Maximum number of contexts returned
            threshold: Minimum composite score to keep an entry

        Returns:
            RetrievalResult; ``max_score`` is the best composite score even when
            no entry clears the threshold
        """
        top_k = top_k or Config.RAG_TOP_K
        threshold = Config.lenient_threshold() if threshold is None else threshold
        translation = translation or self.preprocessor.preprocess_query(query)
        search_query = translation.translated_text

        logger.debug(f"[WORKFLOW] Retrieval query: '{search_query}' over {len(context.knowledge_entries)} entries")

        if not context.knowledge_entries:
            logger.info("No knowledge base entries found")
            return RetrievalResult(contexts=[], max_score=0.0, translation=translation)

        tfidf_scores = context.index.score(search_query)

        scored: List[ScoredMatch] = []
        max_score = 0.0
        for idx, entry in enumerate(context.knowledge_entries):
            score, signals = score_entry(
                entry,
                search_query,
                tfidf_score=tfidf_scores.get(idx, 0.0),
                use_fuzzy=translation.was_translated,
            )
            max_score = max(max_score, score)
            if score >= threshold:
                scored.append(ScoredMatch(entry_index=idx, score=score, match_signals=signals, entry=entry))

        contexts = rank_matches(scored)[:top_k]
        for match in contexts:
            logger.debug(
                f"Match - Q: '{match.entry.question}' | Score: {match.score:.3f} | "
                f"Signals: {', '.join(match.match_signals)}"
            )
        logger.info(f"[WORKFLOW] Retrieval: max score {max_score:.3f}, {len(scored)} above {threshold:.3f}, "
                    f"returning {len(contexts)}")

        return RetrievalResult(contexts=contexts, max_score=max_score, translation=translation)

    def explain(self, query: str, context: BusinessContext) -> RagDiagnostics:
        """Run the default retrieval and report how each match was scored."""
        threshold = Config.lenient_threshold()
        result = self.retrieve(query, context, threshold=threshold)
        translation = result.translation

        return RagDiagnostics(
            query=query,
            translated_query=translation.translated_text,
            was_translated=translation.was_translated,
            original_language=translation.original_language,
            total_kb_entries=len(context.knowledge_entries),
            matches_found=len(result.contexts),
            max_score=result.max_score,
            similarity_threshold=round(threshold, 3),
            contexts=[
                {
                    "question": m.entry.question,
                    "answer": m.entry.answer,
                    "score": m.score,
                    "match_signals": m.match_signals,
                    "category": m.entry.category,
                    "priority": m.entry.priority,
                }
                for m in result.contexts
            ],
        )
