"""Retrieval and RAG chain.

Submodules:
    synonyms  — read-only topic -> expansion-word table.
    score     — literal + topic-expansion relevance scoring.
    retriever — concurrent best-match retrieval and LangChain retriever.
    prompt    — prompt composition with fallback context.
    chain     — RAG chain wiring (retriever + completion client + prompt).
"""

from ragdb.query import score, synonyms
