"""Composite reranking of retrieval candidates. Pure, no I/O."""

from __future__ import annotations

from typing import TYPE_CHECKING

from zuychin.memory.models import SOURCE_USER_MESSAGE

if TYPE_CHECKING:
    from collections.abc import Sequence

    from zuychin.memory.models import RetrievalCandidate

DEFAULT_SIMILARITY = 0.7
KEYWORD_WEIGHT = 0.2
RECENCY_BONUS = 0.05


def query_terms(query: str) -> list[str]:
    """Lower-cased whitespace tokens longer than two characters."""
    return [term for term in query.lower().split() if len(term) > 2]


def keyword_bonus(terms: Sequence[str], content: str) -> float:
    """Fraction of *terms* found in *content*, scaled to ``KEYWORD_WEIGHT``."""
    if not terms:
        return 0.0
    haystack = content.lower()
    matched = sum(1 for term in terms if term in haystack)
    return matched / len(terms) * KEYWORD_WEIGHT


def score(candidate: RetrievalCandidate, terms: Sequence[str]) -> float:
    similarity = DEFAULT_SIMILARITY if candidate.similarity is None else candidate.similarity
    recency = RECENCY_BONUS if candidate.item.source == SOURCE_USER_MESSAGE else 0.0
    return similarity + keyword_bonus(terms, candidate.content) + recency


def rerank(
    candidates: Sequence[RetrievalCandidate], query: str, max_results: int
) -> list[RetrievalCandidate]:
    """Order candidates by composite score and keep the best *max_results*.

    Sets ``rerank_score`` on each candidate. Equal scores keep their input
    order.
    """
    terms = query_terms(query)
    for candidate in candidates:
        candidate.rerank_score = score(candidate, terms)
    # sorted() is stable, and reverse=True preserves the order of equal keys.
    ranked = sorted(candidates, key=lambda c: c.rerank_score, reverse=True)
    return ranked[: max(max_results, 0)]
