"""Centralized configuration for the ragdb retrieval front end.

Reads settings from environment variables (via python-dotenv) with sensible
defaults.  Numeric values use safe parsers that log a warning and fall back
to the default when the env value is invalid or out of range.

Exports:
    Paths      — DATA_DIR, CORPUS_DIR, CORPUS_GLOB, SYNONYMS_PATH
    Scoring    — SCORE_LITERAL_WEIGHT, SCORE_TOPIC_WEIGHT, SCORE_EXPANSION_WEIGHT
    Retrieval  — RETRIEVAL_MAX_WORKERS, RETRIEVAL_BATCH_SIZE, RETRIEVAL_TIMEOUT
    LLM        — LLM_API_URL, LLM_MODEL, LLM_API_KEY, LLM_TIMEOUT

LLM_API_KEY is a credential: it is read once here and must never be logged.
"""
import logging
import math
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def _safe_int(key: str, default: int) -> int:
    """Parse *key* from the environment as an int, returning *default* on failure."""
    raw = os.environ.get(key)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Invalid %s=%r, using default %d", key, raw, default)
        return default


def _safe_float(key: str, default: float) -> float:
    """Parse *key* from the environment as a float, returning *default* on failure or non-finite values."""
    raw = os.environ.get(key)
    if raw is None:
        return default
    try:
        val = float(raw)
        if math.isnan(val) or math.isinf(val):
            logger.warning("Invalid %s=%r (non-finite), using default %s", key, raw, default)
            return default
        return val
    except ValueError:
        logger.warning("Invalid %s=%r, using default %s", key, raw, default)
        return default


def _safe_positive_int(key: str, default: int) -> int:
    """Parse env as int; require value >= 1, else use default and log."""
    val = _safe_int(key, default)
    if val < 1:
        logger.warning("Invalid %s=%d (must be >= 1), using default %d", key, val, default)
        return default
    return val


def _safe_float_positive(key: str, default: float) -> float:
    """Parse env as float; require value > 0, else use default and log."""
    val = _safe_float(key, default)
    if val <= 0:
        logger.warning("Invalid %s=%s (must be > 0), using default %s", key, val, default)
        return default
    return val


def _safe_float_non_negative(key: str, default: float) -> float:
    """Parse env as float; require value >= 0, else use default and log."""
    val = _safe_float(key, default)
    if val < 0:
        logger.warning("Invalid %s=%s (must be >= 0), using default %s", key, val, default)
        return default
    return val


# Repo root: directory containing pyproject.toml (when run from repo or editable install)
_REPO_ROOT = Path(__file__).resolve().parents[2]
if not (_REPO_ROOT / "pyproject.toml").exists():
    _REPO_ROOT = Path.cwd()

DATA_DIR = Path(os.environ.get("DATA_DIR", _REPO_ROOT / "data"))
CORPUS_DIR = Path(os.environ.get("CORPUS_DIR", DATA_DIR / "corpus"))
CORPUS_GLOB = os.environ.get("CORPUS_GLOB", "*.txt")
SYNONYMS_PATH = Path(os.environ.get("SYNONYMS_PATH", DATA_DIR / "synonyms.json"))

# Scoring weights: literal substring hit, topic hit, per-expansion-word hit.
# The expansion weight defaults to 0 so only literal + topic bonuses count.
SCORE_LITERAL_WEIGHT = _safe_float_non_negative("SCORE_LITERAL_WEIGHT", 10.0)
SCORE_TOPIC_WEIGHT = _safe_float_non_negative("SCORE_TOPIC_WEIGHT", 5.0)
SCORE_EXPANSION_WEIGHT = _safe_float_non_negative("SCORE_EXPANSION_WEIGHT", 0.0)

# Fan-out: pool size, documents per scoring task, and wall-clock limit (seconds)
RETRIEVAL_MAX_WORKERS = _safe_positive_int(
    "RETRIEVAL_MAX_WORKERS", min(32, (os.cpu_count() or 1) + 4)
)
RETRIEVAL_BATCH_SIZE = _safe_positive_int("RETRIEVAL_BATCH_SIZE", 256)
RETRIEVAL_TIMEOUT = _safe_float_positive("RETRIEVAL_TIMEOUT", 10.0)

# Chat-completion endpoint (OpenAI-compatible request/response shape)
LLM_API_URL = os.environ.get("LLM_API_URL", "https://api.deepseek.com/chat/completions")
LLM_MODEL = os.environ.get("LLM_MODEL", "deepseek-chat")
LLM_API_KEY = os.environ.get("LLM_API_KEY", "").lstrip("\ufeff").strip()
LLM_TIMEOUT = _safe_float_positive("LLM_TIMEOUT", 60.0)
