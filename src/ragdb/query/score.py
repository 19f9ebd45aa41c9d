"""Keyword relevance scoring.

A document's score against a query is the sum of:

* ``literal`` when the case-folded document contains the case-folded query
  as a substring (an empty query is contained by every document);
* ``topic`` for every synonym topic the query asks about (the query contains
  the topic key or one of its expansion words) whose key also appears in the
  document;
* ``expansion`` for every expansion word of such a topic that appears in the
  document.  Defaults to 0, which disables this bonus.

Scoring only reads its arguments, so it is safe to call from many threads.
"""
from dataclasses import dataclass

from langchain_core.documents import Document

from ragdb.config import (
    SCORE_EXPANSION_WEIGHT,
    SCORE_LITERAL_WEIGHT,
    SCORE_TOPIC_WEIGHT,
)
from ragdb.query.synonyms import SynonymTable


@dataclass(frozen=True)
class ScoringWeights:
    literal: float = SCORE_LITERAL_WEIGHT
    topic: float = SCORE_TOPIC_WEIGHT
    expansion: float = SCORE_EXPANSION_WEIGHT


DEFAULT_WEIGHTS = ScoringWeights()


def normalize(text: str) -> str:
    """Case-fold text for substring comparison. Used for both sides.

    A substring of the original text stays a substring after folding,
    including Greek final sigma.
    """
    return text.casefold()


def _text_of(document: Document | str) -> str:
    if isinstance(document, Document):
        return document.page_content
    return document


def topic_matches_query(key: str, words: tuple[str, ...], norm_query: str) -> bool:
    """Return True if the normalized query mentions the topic key or any of its words."""
    if key in norm_query:
        return True
    return any(w in norm_query for w in words)


def score_document(
    document: Document | str,
    query: str,
    table: SynonymTable,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> float:
    """Return the non-negative relevance of *document* to *query*."""
    doc = normalize(_text_of(document))
    q = normalize(query)

    score = 0.0
    if q in doc:
        score += weights.literal

    for key, words in table.items():
        if not topic_matches_query(key, words, q):
            continue
        if key in doc:
            score += weights.topic
        if weights.expansion:
            score += weights.expansion * sum(1 for w in words if w in doc)
    return score
