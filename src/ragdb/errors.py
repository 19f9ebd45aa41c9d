"""Exception types raised by ragdb."""


class RagDbError(Exception):
    """Base class for ragdb errors."""


class CorpusLoadError(RagDbError):
    """The corpus path is missing or cannot be scanned."""


class SynonymConfigError(RagDbError):
    """The synonym config file is missing or malformed."""


class RetrievalCancelled(RagDbError):
    """A retrieval was cancelled through its cancel event."""


class RetrievalTimeoutError(RagDbError, TimeoutError):
    """Scoring did not finish within the retrieval timeout."""
