"""Pydantic models for API I/O and the retrieval pipeline.

Knowledge entries are frozen once loaded; scored matches and retrieval
results are produced per query and thrown away after the reply is composed.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Literal, Optional


class KnowledgeEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    question: str
    answer: str
    category: Optional[str] = None
    priority: int = 0
    source: Optional[str] = None


class ScoredMatch(BaseModel):
    entry_index: int
    score: float = Field(ge=0)
    match_signals: List[str] = Field(default_factory=list)
    entry: KnowledgeEntry


class TranslationInfo(BaseModel):
    translated_text: str
    original_text: str
    original_language: str = "unknown"
    was_translated: bool = False


class RetrievalResult(BaseModel):
    contexts: List[ScoredMatch] = Field(default_factory=list)
    max_score: float = 0.0
    translation: Optional[TranslationInfo] = None


class ChatTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class DebugInfo(BaseModel):
    context_found: int = 0
    max_score: float = 0.0
    path: str = "generator"
    was_translated: bool = False
    original_language: str = "unknown"


class ChatResponse(BaseModel):
    response: str
    is_new_conversation: bool
    initial_message: Optional[str] = None
    debug: DebugInfo = Field(default_factory=DebugInfo)


class ChatRequest(BaseModel):
    message: str
    business_id: Optional[str] = None


class RagQueryRequest(BaseModel):
    query: str


class RagDiagnostics(BaseModel):
    query: str
    translated_query: str
    was_translated: bool
    original_language: str
    total_kb_entries: int
    matches_found: int
    max_score: float
    similarity_threshold: float
    contexts: List[Dict[str, Any]] = Field(default_factory=list)
