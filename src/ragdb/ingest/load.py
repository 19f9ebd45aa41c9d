"""Corpus and synonym-config loading.

The corpus is one Document per non-blank, stripped line of the UTF-8 text
files in a directory (or of a single file).  The synonym config is a JSON
object of the form ``{"synonyms": {"topic": ["word", ...], ...}}``.

A missing corpus path or a bad synonym file is fatal and raises; a single
unreadable corpus file is logged and skipped.
"""

import json
import logging
from pathlib import Path

from langchain_core.documents import Document

from ragdb.errors import CorpusLoadError, SynonymConfigError
from ragdb.query.synonyms import SynonymTable

logger = logging.getLogger(__name__)


def _corpus_files(path: Path, pattern: str) -> list[Path]:
    if path.is_file():
        return [path]
    if not path.is_dir():
        raise CorpusLoadError(f"Corpus path not found: {path}")
    return sorted(p for p in path.glob(pattern) if p.is_file())


def load_corpus(path: Path | str, pattern: str = "*.txt") -> list[Document]:
    """Load every non-blank line under *path* as a Document.

    Lines are split on newline characters only; surrounding whitespace
    (including a trailing carriage return) is stripped and a leading UTF-8 BOM is dropped.

    Files are read in name order, so the corpus order (and therefore the
    tie-break between equal scores) is stable across runs.  Metadata holds
    ``source`` (file name), ``line`` (1-based) and ``index`` (corpus position).
    """
    path = Path(path)
    files = _corpus_files(path, pattern)
    if not files:
        logger.warning("No files matching %s in %s", pattern, path)

    docs: list[Document] = []
    for file_path in files:
        try:
            # Decoded by hand: read_text would also turn a lone "\r" into a line break.
            text = file_path.read_bytes().decode("utf-8").lstrip("\ufeff")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Skipping unreadable corpus file %s: %s", file_path, e)
            continue
        for line_no, line in enumerate(text.split("\n"), start=1):
            content = line.strip()
            if not content:
                continue
            docs.append(
                Document(
                    page_content=content,
                    metadata={
                        "source": file_path.name,
                        "line": line_no,
                        "index": len(docs),
                    },
                )
            )
    logger.info("Loaded %d documents from %d files", len(docs), len(files))
    return docs


def load_synonyms(path: Path | str) -> SynonymTable:
    """Parse the synonym config at *path*; raise SynonymConfigError on any problem."""
    path = Path(path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise SynonymConfigError(f"Synonym config not found: {path}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise SynonymConfigError(f"Cannot read synonym config {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise SynonymConfigError(f"Invalid JSON in synonym config {path}: {e}") from e

    if not isinstance(raw, dict) or not isinstance(raw.get("synonyms"), dict):
        raise SynonymConfigError(
            f"Synonym config {path} must be an object with a 'synonyms' object"
        )
    mapping = raw["synonyms"]
    for key, words in mapping.items():
        if not isinstance(words, list) or not all(isinstance(w, str) for w in words):
            raise SynonymConfigError(
                f"Synonyms for {key!r} in {path} must be an array of strings"
            )
    try:
        table = SynonymTable.from_mapping(mapping)
    except ValueError as e:
        raise SynonymConfigError(f"Invalid synonym config {path}: {e}") from e
    logger.info("Loaded %d synonym topics from %s", len(table), path)
    return table
