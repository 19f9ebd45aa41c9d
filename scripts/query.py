#!/usr/bin/env python3
"""Interactive REPL for ragdb. Retrieve the best local context for each question and print the AI reply.

Usage:
  python scripts/query.py
  python scripts/query.py --query "天气冷不冷" --json
  python scripts/query.py --corpus data/corpus --synonyms data/synonyms.json
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from ragdb.config import CORPUS_DIR, CORPUS_GLOB, SYNONYMS_PATH
from ragdb.errors import RagDbError
from ragdb.ingest import load_corpus, load_synonyms
from ragdb.query.chain import build_rag_chain
from ragdb.query.retriever import KeywordRetriever

try:
    import readline

    _HISTORY_PATH = Path.home() / ".ragdb_query_history"
    _READLINE_AVAILABLE = True
except ImportError:
    _READLINE_AVAILABLE = False
    _HISTORY_PATH = None

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="ragdb query REPL")
    parser.add_argument(
        "--corpus", type=Path, default=CORPUS_DIR,
        help=f"Corpus directory or text file (default {CORPUS_DIR})",
    )
    parser.add_argument(
        "--pattern", type=str, default=CORPUS_GLOB,
        help=f"Corpus file glob inside --corpus (default {CORPUS_GLOB})",
    )
    parser.add_argument(
        "--synonyms", type=Path, default=SYNONYMS_PATH,
        help=f"Synonym config JSON (default {SYNONYMS_PATH})",
    )
    parser.add_argument(
        "-q", "--query", type=str, help="Answer one query and exit instead of starting the REPL"
    )
    parser.add_argument(
        "--json", action="store_true", help="Print the full result record as JSON"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        corpus = load_corpus(args.corpus, pattern=args.pattern)
        synonyms = load_synonyms(args.synonyms)
    except RagDbError as e:
        logger.exception("Startup failed: %s", e)
        return 1

    chain = build_rag_chain(retriever=KeywordRetriever(corpus=corpus, synonyms=synonyms))

    if args.query is not None:
        if not args.query.strip():
            print("Error: --query must not be empty", file=sys.stderr)
            return 2
        try:
            _print_result(chain({"query": args.query}), args.json)
        except Exception as e:
            logger.exception("Query failed: %s", e)
            return 1
        return 0

    if _READLINE_AVAILABLE and _HISTORY_PATH is not None:
        try:
            readline.read_history_file(_HISTORY_PATH)
        except OSError:
            pass
        try:
            readline.set_history_length(500)
        except (AttributeError, TypeError):
            pass

    print(f"ragdb query ({len(corpus)} documents, {len(synonyms)} topics; blank line to quit)")
    print("---")

    try:
        _repl_loop(chain, args.json)
    finally:
        if _READLINE_AVAILABLE and _HISTORY_PATH is not None:
            try:
                readline.write_history_file(_HISTORY_PATH)
            except OSError:
                pass

    print("Bye.")
    return 0


def _print_result(result: dict, as_json: bool) -> None:
    if as_json:
        print(json.dumps(result, ensure_ascii=False, indent=2))
        return
    if result["context"]:
        print(f"Context (score {result['score']:.1f}): {result['context']}")
    else:
        print("No local match; asking without background context.")
    print()
    print(result["ai_reply"])


def _repl_loop(chain, as_json: bool) -> None:
    while True:
        try:
            query = input("Question (blank to quit): ").strip()
        except EOFError:
            break
        if not query:
            break
        try:
            result = chain({"query": query})
        except Exception as e:
            print(f"Error: {e}", file=sys.stderr)
            continue
        print()
        _print_result(result, as_json)
        print("---")


if __name__ == "__main__":
    sys.exit(main())
