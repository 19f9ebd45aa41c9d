"""Concurrent best-match retrieval over an in-memory corpus.

Every document is scored against the query on a bounded thread pool.  The
corpus is split into contiguous batches, one scoring task per batch; each
task returns the results that scored above zero.  After all tasks finish
the results are reduced on the calling thread, highest score first and
lowest corpus index on ties, so the same inputs always give the same match.
"""
import logging
import threading
from collections.abc import Sequence
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Any

from langchain_core.callbacks import CallbackManagerForRetrieverRun
from langchain_core.documents import Document
from langchain_core.retrievers import BaseRetriever
from pydantic import InstanceOf

from ragdb.config import (
    CORPUS_DIR,
    CORPUS_GLOB,
    RETRIEVAL_BATCH_SIZE,
    RETRIEVAL_MAX_WORKERS,
    RETRIEVAL_TIMEOUT,
    SYNONYMS_PATH,
)
from ragdb.errors import RetrievalCancelled, RetrievalTimeoutError
from ragdb.query.score import DEFAULT_WEIGHTS, ScoringWeights, score_document
from ragdb.query.synonyms import SynonymTable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchResult:
    document: Document
    score: float
    index: int


@dataclass(frozen=True)
class BestMatch:
    """Top-scoring document for one query, or ``None`` when nothing scored above 0."""

    document: Document | None = None
    score: float = 0.0

    @property
    def matched(self) -> bool:
        return self.document is not None

    @property
    def context(self) -> str:
        return self.document.page_content if self.document is not None else ""


NO_MATCH = BestMatch()


def _score_batch(
    corpus: Sequence[Document],
    start: int,
    stop: int,
    query: str,
    table: SynonymTable,
    weights: ScoringWeights,
    cancel_event: threading.Event,
) -> list[SearchResult]:
    results: list[SearchResult] = []
    for i in range(start, stop):
        if cancel_event.is_set():
            break
        doc = corpus[i]
        s = score_document(doc, query, table, weights)
        if s > 0:
            results.append(SearchResult(document=doc, score=s, index=i))
    return results


def select_best(results: Sequence[SearchResult]) -> BestMatch:
    """Reduce results to the highest score; ties go to the lowest corpus index."""
    best: SearchResult | None = None
    for r in results:
        if r.score <= 0:
            continue
        if best is None or r.score > best.score or (
            r.score == best.score and r.index < best.index
        ):
            best = r
    if best is None:
        return NO_MATCH
    return BestMatch(document=best.document, score=best.score)


def retrieve(
    corpus: Sequence[Document],
    query: str,
    table: SynonymTable,
    *,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    max_workers: int = RETRIEVAL_MAX_WORKERS,
    batch_size: int = RETRIEVAL_BATCH_SIZE,
    timeout: float | None = RETRIEVAL_TIMEOUT,
    cancel_event: threading.Event | None = None,
) -> BestMatch:
    """Score every document in *corpus* concurrently and return the best match.

    Raises RetrievalCancelled if *cancel_event* is set before scoring
    completes, and RetrievalTimeoutError if scoring takes longer than
    *timeout* seconds (``None`` waits indefinitely).

    Batches run on a thread pool. Scoring is pure Python, so under the GIL the
    threads interleave rather than run on separate cores; the pool bounds the
    fan-out and makes it cancellable, it does not add CPU parallelism.
    """
    if not corpus:
        return NO_MATCH
    if max_workers < 1 or batch_size < 1:
        raise ValueError("max_workers and batch_size must be >= 1")

    if cancel_event is None:
        cancel_event = threading.Event()
    bounds = [
        (start, min(start + batch_size, len(corpus)))
        for start in range(0, len(corpus), batch_size)
    ]
    n_workers = min(max_workers, len(bounds))
    logger.debug(
        "Scoring %d documents in %d batches on %d workers",
        len(corpus),
        len(bounds),
        n_workers,
    )

    executor = ThreadPoolExecutor(max_workers=n_workers, thread_name_prefix="ragdb-score")
    try:
        futures = [
            executor.submit(
                _score_batch, corpus, start, stop, query, table, weights, cancel_event
            )
            for start, stop in bounds
        ]
        done, not_done = wait(futures, timeout=timeout, return_when=FIRST_EXCEPTION)
        for f in done:
            exc = f.exception()
            if exc is not None:
                cancel_event.set()
                raise exc
        if not_done:
            cancel_event.set()
            raise RetrievalTimeoutError(
                f"Scoring {len(corpus)} documents exceeded {timeout}s"
            )
        results = [r for f in futures for r in f.result()]
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    if cancel_event.is_set():
        raise RetrievalCancelled("Retrieval cancelled before scoring completed")

    best = select_best(results)
    logger.debug("Best match score %.1f (%d documents above 0)", best.score, len(results))
    return best


class KeywordRetriever(BaseRetriever):
    """LangChain retriever returning the single best keyword/synonym match.

    ``invoke(query)`` returns ``[]`` when nothing scored above 0, otherwise a
    one-element list whose document carries the score in ``metadata["score"]``.
    Use :meth:`best_match` to get the :class:`BestMatch` directly.
    """

    model_config = {"arbitrary_types_allowed": True}

    corpus: list[Document]
    synonyms: InstanceOf[SynonymTable]
    weights: InstanceOf[ScoringWeights] = DEFAULT_WEIGHTS
    max_workers: int = RETRIEVAL_MAX_WORKERS
    batch_size: int = RETRIEVAL_BATCH_SIZE
    timeout: float | None = RETRIEVAL_TIMEOUT

    def best_match(
        self, query: str, cancel_event: threading.Event | None = None
    ) -> BestMatch:
        return retrieve(
            self.corpus,
            query,
            self.synonyms,
            weights=self.weights,
            max_workers=self.max_workers,
            batch_size=self.batch_size,
            timeout=self.timeout,
            cancel_event=cancel_event,
        )

    def _get_relevant_documents(
        self,
        query: str,
        *,
        run_manager: CallbackManagerForRetrieverRun,
    ) -> list[Document]:
        best = self.best_match(query)
        if best.document is None:
            return []
        meta: dict[str, Any] = {**best.document.metadata, "score": best.score}
        return [Document(page_content=best.document.page_content, metadata=meta)]


def get_retriever(
    corpus: list[Document] | None = None,
    synonyms: SynonymTable | None = None,
    **kwargs: Any,
) -> KeywordRetriever:
    """Return a KeywordRetriever, loading the configured corpus and synonyms when not given.

    Load failures propagate (CorpusLoadError / SynonymConfigError).
    """
    from ragdb.ingest.load import load_corpus, load_synonyms

    if corpus is None:
        corpus = load_corpus(CORPUS_DIR, pattern=CORPUS_GLOB)
    if synonyms is None:
        synonyms = load_synonyms(SYNONYMS_PATH)
    return KeywordRetriever(corpus=corpus, synonyms=synonyms, **kwargs)
