"""Corpus and synonym-config loading."""
from ragdb.ingest.load import load_corpus, load_synonyms

__all__ = ["load_corpus", "load_synonyms"]
