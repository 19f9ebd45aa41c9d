"""Topic/synonym expansion table.

Maps a canonical topic key to the words that should also count as asking
about that topic.  Keys and words are case-folded on construction so they
compare directly against normalized query and document text.
"""
import logging
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType

logger = logging.getLogger(__name__)


def _normalize_words(key: str, words: Sequence[str]) -> tuple[str, ...]:
    out: list[str] = []
    for w in words:
        norm = w.strip().casefold()
        if not norm:
            # An empty word would be contained in every query.
            logger.debug("Dropping blank expansion word for topic %r", key)
            continue
        if norm not in out:
            out.append(norm)
    return tuple(out)


@dataclass(frozen=True)
class SynonymTable:
    """Read-only mapping of topic key -> expansion words.

    Iteration follows the insertion order of the source mapping.
    """

    entries: Mapping[str, tuple[str, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Sequence[str]]) -> "SynonymTable":
        """Build a table, normalizing keys and dropping blank expansion words.

        Raises ValueError for a blank key, a key that collides with another
        after case-folding, or a non-list/None expansion value.
        """
        entries: dict[str, tuple[str, ...]] = {}
        for raw_key, words in mapping.items():
            key = raw_key.strip().casefold()
            if not key:
                raise ValueError("Synonym topic key must be non-empty")
            if key in entries:
                raise ValueError(f"Duplicate synonym topic key {raw_key!r}")
            if words is None or isinstance(words, str):
                raise ValueError(
                    f"Expansion words for topic {raw_key!r} must be a list of strings"
                )
            entries[key] = _normalize_words(key, words)
        return cls(entries=MappingProxyType(entries))

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)

    def __contains__(self, key: object) -> bool:
        return key in self.entries

    def get(self, key: str) -> tuple[str, ...]:
        """Return the expansion words for *key* (empty tuple when unknown)."""
        return self.entries.get(key.casefold(), ())

    def items(self):
        return self.entries.items()


EMPTY_TABLE = SynonymTable()
