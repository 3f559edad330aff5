"""Word frequency aggregation over segmented text.

Segmentation happens upstream: callers pass the ``Token`` stream produced by
an IPADIC-style morphological analyzer. Tokens are counted under their base
form (surface form when the analyzer reports none) and the counted words are
looked up in a single batch.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from jpdict.core.errors import UnknownPartOfSpeech
from jpdict.core.logging import get_logger
from jpdict.models.entities import DictionaryEntry, PartOfSpeech
from jpdict.models.pos import classify_pos
from jpdict.store.codec import entry_to_dict
from jpdict.store.reader import ChunkReader

logger = get_logger(__name__)

NO_VALUE = "*"


@dataclass(frozen=True, slots=True)
class Token:
    text: str
    pos: str
    base: str = NO_VALUE
    reading: str = NO_VALUE

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Token":
        return cls(
            text=data["text"],
            pos=data.get("pos", ""),
            base=data.get("base") or NO_VALUE,
            reading=data.get("reading") or NO_VALUE,
        )

    @property
    def key(self) -> str:
        return self.text if self.base in ("", NO_VALUE) else self.base


@dataclass(slots=True)
class WordCount:
    word: str
    pos: PartOfSpeech
    reading: str
    count: int = 0


@dataclass(slots=True)
class AnalyzerResult:
    word: str
    pos: PartOfSpeech
    reading: str
    count: int
    dict_info: list[DictionaryEntry] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "word": self.word,
            "pos": self.pos.value,
            "reading": self.reading,
            "count": self.count,
            "dict_info": [entry_to_dict(entry) for entry in self.dict_info],
        }


def count_tokens(tokens: Iterable[Token]) -> list[WordCount]:
    """Count tokens per lookup key in order of first appearance, ignoring symbols."""
    counts: dict[str, WordCount] = {}
    for token in tokens:
        key = token.key
        current = counts.get(key)
        if current is None:
            pos = _token_pos(token)
            if pos is PartOfSpeech.SYMBOL:
                continue
            reading = "" if token.reading == NO_VALUE else token.reading
            current = counts[key] = WordCount(word=key, pos=pos, reading=reading)
        current.count += 1
    return list(counts.values())


def analyze(tokens: Iterable[Token], reader: ChunkReader) -> list[AnalyzerResult]:
    """Count tokens and attach dictionary entries, most frequent first."""
    counts = count_tokens(tokens)
    found = reader.lookup(count.word for count in counts)
    results = [
        AnalyzerResult(
            word=count.word,
            pos=count.pos,
            reading=count.reading,
            count=count.count,
            dict_info=found.get(count.word, []),
        )
        for count in counts
    ]
    # stable sort keeps first-appearance order among equal counts
    results.sort(key=lambda result: result.count, reverse=True)
    return results


def _token_pos(token: Token) -> PartOfSpeech:
    try:
        return classify_pos(token.pos)
    except UnknownPartOfSpeech as exc:
        logger.debug("Treating token %r as Other: %s", token.text, exc)
        return PartOfSpeech.OTHER


__all__ = ["Token", "WordCount", "AnalyzerResult", "count_tokens", "analyze"]
