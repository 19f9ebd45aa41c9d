"""Chat-completion client."""
from ragdb.llm.client import NO_REPLY, CompletionClient

__all__ = ["CompletionClient", "NO_REPLY"]
