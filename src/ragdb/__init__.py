"""Keyword/synonym retrieval front end for chat-completion RAG."""
