"""RAG chain: best keyword match -> prompt -> chat-completion reply."""
import logging
from typing import Any, Callable

from ragdb.llm.client import CompletionClient
from ragdb.query.prompt import build_prompt
from ragdb.query.retriever import KeywordRetriever, get_retriever

logger = logging.getLogger(__name__)


def build_rag_chain(
    retriever: KeywordRetriever | None = None,
    client: CompletionClient | None = None,
) -> Callable[[dict], dict]:
    """Build the RAG callable. Takes {"query": str}; returns {"query", "context", "score", "ai_reply"}.

    ``context`` is the matched document text, or "" when nothing matched (the
    prompt then carries the fallback sentence instead).
    """
    if retriever is None:
        retriever = get_retriever()
    if client is None:
        client = CompletionClient()

    def runnable_invoke(input_dict: dict) -> dict[str, Any]:
        query = (input_dict.get("query") or "").strip()
        if not query:
            raise ValueError("query must be a non-empty string")
        best = retriever.best_match(query)
        if not best.matched:
            logger.info("No local match for query; using fallback context")
        prompt = build_prompt(best.context, query)
        reply = client.complete(prompt)
        return {
            "query": query,
            "context": best.context,
            "score": best.score,
            "ai_reply": reply,
        }

    return runnable_invoke


def run_rag(
    query: str,
    retriever: KeywordRetriever | None = None,
    client: CompletionClient | None = None,
) -> dict[str, Any]:
    """Run the RAG chain for one query and return its result record."""
    invoke = build_rag_chain(retriever=retriever, client=client)
    return invoke({"query": query})
