"""Rule-based topical gate with tiny fuzzy matching.

Decides whether a message is about the business at all before any retrieval
happens. This is deliberately coarser than the relevance scorer.
"""
import random
import re
from difflib import SequenceMatcher
from typing import Iterable, NamedTuple, Set

from ..app.lexical_index import tokenize
from ..app.retrieval import IMPORTANT_KEYWORDS

CONVERSATION_STARTERS = ["hi", "hello", "hey", "salam", "assalam o alaikum", "good morning",
                         "good afternoon", "good evening", "thanks", "thank you", "bye", "goodbye",
                         "ok", "okay", "who are you", "what can you do", "help me", "are you there"]

OFF_TOPIC_PATTERNS = [
    r"\bcapital of\b",
    r"\bpopulation of\b",
    r"\bweather\b|\btemperature (in|outside)\b",
    r"\bpresident\b|\bprime minister\b",
    r"\bwho (won|invented|discovered|wrote|painted)\b",
    r"\b(tell|know) (me )?(a )?jokes?\b",
    r"\bmeaning of life\b",
    r"\bhow (tall|old|far|big) is\b",
    r"\b(write|compose) (me )?(a|an) (poem|essay|story|song)\b",
    r"\b(football|cricket|world cup|movie|celebrity|election)\b",
    r"\bhistory of\b",
    r"\bdefinition of\b|\bdefine\b",
    r"\bsolve\b.*\bequation\b",
]

GENERAL_QUESTION = re.compile(r"^(what|who|when|where|which|how|why)\b.*\b(is|are|was|were|did|does)\b")
ADDRESSES_BUSINESS = re.compile(r"\b(you|your|yours|u|ur|we|our|us)\b")

FOLLOW_UP_MAX_WORDS = 5

REDIRECT_MESSAGES = [
    "I'm here to help with questions about {business_name}. Is there anything about our services I can help you with?",
    "That's outside what I can help with, but I'd be happy to answer any questions about {business_name}!",
    "I can only help with questions related to {business_name}. What would you like to know about us?",
]

_OFF_TOPIC = [re.compile(p) for p in OFF_TOPIC_PATTERNS]


class TopicDecision(NamedTuple):
    allowed: bool
    reason: str


def _contains_any(q: str, vocab: Iterable[str]) -> bool:
    ql = q.lower()
    vocab = list(vocab)

    # First check for whole-word phrases
    for phrase in vocab:
        if re.search(r"\b" + re.escape(phrase) + r"\b", ql):
            return True

    # Then fuzzy single-word matches; short words only match exactly
    tokens = [t for t in re.findall(r"[a-zA-Z]+", ql) if len(t) >= 4]
    for t in tokens:
        for w in vocab:
            if len(w) >= 4 and SequenceMatcher(None, t, w).ratio() >= 0.84:
                return True
    return False


def business_terms(context) -> Set[str]:
    """Terms that mark a message as being about this business."""
    terms = set(IMPORTANT_KEYWORDS)
    terms.update(t for t in tokenize(context.business_name or "") if len(t) > 2)
    terms.update(k.lower() for k in context.keywords if k)
    terms.update(c.lower() for c in context.categories())
    for entry in context.knowledge_entries:
        terms.update(t for t in tokenize(entry.question) if len(t) >= 4 and not t.isdigit())
    return terms


def is_conversation_starter(query: str) -> bool:
    words = query.split()
    return len(words) <= 4 and _contains_any(query, CONVERSATION_STARTERS)


def classify_topic(query: str, context, has_history: bool = False) -> TopicDecision:
    """
    Coarse allow/deny for a message against a business.

    Args:
        query: User message
        context: BusinessContext of the business being asked
        has_history: Whether the session already has turns

    Returns:
        TopicDecision(allowed, reason)
    """
    q = re.sub(r"\s+", " ", query.lower()).strip()

    if is_conversation_starter(q):
        return TopicDecision(True, "conversation_starter")

    if _contains_any(q, business_terms(context)):
        return TopicDecision(True, "business_term")

    if any(p.search(q) for p in _OFF_TOPIC):
        return TopicDecision(False, "off_topic_pattern")

    if has_history and len(q.split()) <= FOLLOW_UP_MAX_WORDS:
        return TopicDecision(True, "follow_up")

    if GENERAL_QUESTION.search(q) and not ADDRESSES_BUSINESS.search(q):
        return TopicDecision(False, "general_knowledge")

    return TopicDecision(True, "unclassified")


def redirect_message(business_name: str, rng: random.Random = None) -> str:
    """One of the canned redirects, naming the business."""
    template = (rng or random).choice(REDIRECT_MESSAGES)
    return template.format(business_name=business_name or "our business")

