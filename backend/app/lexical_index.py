#!/usr/bin/env python3
"""
Lexical index module for the business chatbot.

This module builds a TF-IDF index over a business's knowledge entries. Each
entry's question and answer are indexed together as one document.
"""

from typing import Any, Dict, List, Sequence

import numpy as np
from sklearn.feature_extraction.text import TfidfVectorizer

from .errors import KnowledgeEntryError
from .preprocess import normalize_text
from ..utils.logger import get_logger

logger = get_logger()

# Raw term counts times smoothed idf, no length normalization
VECTORIZER_OPTIONS = {"stop_words": "english", "norm": None, "smooth_idf": True}

_analyzer = TfidfVectorizer(**VECTORIZER_OPTIONS).build_analyzer()


def tokenize(text: str) -> List[str]:
    """Lowercase word tokens with English stopwords removed."""
    return _analyzer(text)


def _document_text(entry: Any) -> str:
    if isinstance(entry, dict):
        question, answer = entry.get("question"), entry.get("answer")
    else:
        question, answer = getattr(entry, "question", None), getattr(entry, "answer", None)
    if not isinstance(question, str) or not isinstance(answer, str):
        raise KnowledgeEntryError("knowledge entry needs text question and answer")
    return normalize_text(f"{question} {answer}")


class LexicalIndex:
    """TF-IDF index over knowledge entries."""

    def __init__(self, doc_ids: List[int], vectorizer: TfidfVectorizer = None, matrix=None):
        self.doc_ids = doc_ids
        self.vectorizer = vectorizer
        self.matrix = matrix

    @classmethod
    def build(cls, entries: Sequence[Any]) -> "LexicalIndex":
        """
        Build an index from knowledge entries.

        Malformed entries and entries with no indexable text are skipped;
        the remaining entries keep their position in ``entries`` as id.

        Args:
            entries: Ordered knowledge entries

        Returns:
            A new LexicalIndex
        """
        doc_ids, documents = [], []
        for idx, entry in enumerate(entries):
            try:
                text = _document_text(entry)
            except KnowledgeEntryError as e:
                logger.warning(f"TF-IDF: skipping entry {idx}: {e}")
                continue
            if tokenize(text):
                doc_ids.append(idx)
                documents.append(text)

        if not documents:
            logger.debug("[WORKFLOW] Built empty TF-IDF index")
            return cls([])

        vectorizer = TfidfVectorizer(**VECTORIZER_OPTIONS)
        matrix = vectorizer.fit_transform(documents).tocsr()

        logger.debug(f"[WORKFLOW] Built TF-IDF index: {len(documents)} documents, "
                     f"{len(vectorizer.vocabulary_)} terms")
        return cls(doc_ids, vectorizer, matrix)

    def __len__(self) -> int:
        return len(self.doc_ids)

    def score(self, query: str) -> Dict[int, float]:
        """
        Score every indexed document against a query.

        Each query term adds the document's tf-idf weight for it, once per
        occurrence in the query.

        Args:
            query: Free-text query

        Returns:
            Mapping from entry index to TF-IDF score; empty for an empty index
        """
        if not self.doc_ids:
            return {}

        vocabulary = self.vectorizer.vocabulary_
        columns = [vocabulary[t] for t in tokenize(normalize_text(query)) if t in vocabulary]
        if columns:
            weights = np.asarray(self.matrix[:, columns].sum(axis=1)).ravel()
        else:
            weights = np.zeros(len(self.doc_ids))

        return {doc_id: float(weight) for doc_id, weight in zip(self.doc_ids, weights)}
