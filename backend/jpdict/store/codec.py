"""Serialization and compression of chunks and the word index.

Chunks and the index are JSON documents encoded with orjson and compressed
with zlib. ``Source`` is written as a single-key object such as
``{"JMDict": 1000220}``; parts of speech are written by value and sorted.
"""

from __future__ import annotations

import zlib
from typing import Any, Iterable, Mapping, Sequence

import orjson

from jpdict.core.errors import FormatError
from jpdict.models.entities import (
    Definition,
    DictionaryEntry,
    Example,
    Origin,
    PartOfSpeech,
    Source,
)

MAX_OFFSET = 2**32 - 1


def source_to_dict(source: Source) -> dict[str, int]:
    return {source.origin.tag: source.id}


def source_from_dict(data: Mapping[str, Any]) -> Source:
    if len(data) != 1:
        raise ValueError(f"Source must have exactly one tag, got {sorted(data)}")
    ((tag, value),) = data.items()
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"Source id must be an integer, got {value!r}")
    return Source(Origin.from_tag(tag), value)


def entry_to_dict(entry: DictionaryEntry) -> dict[str, Any]:
    return {
        "forms": list(entry.forms),
        "source": source_to_dict(entry.source),
        "definitions": [
            {
                "text": definition.text,
                "pos": sorted(pos.value for pos in definition.pos),
                "flags": list(definition.flags),
            }
            for definition in entry.definitions
        ],
        "audio": list(entry.audio),
        "readings": list(entry.readings),
        "examples": [
            {"for_definition": example.for_definition, "en": example.en, "ja": example.ja}
            for example in entry.examples
        ],
    }


def entry_from_dict(data: Mapping[str, Any]) -> DictionaryEntry:
    return DictionaryEntry(
        forms=tuple(data["forms"]),
        source=source_from_dict(data["source"]),
        definitions=tuple(
            Definition(
                text=item["text"],
                pos=frozenset(PartOfSpeech(value) for value in item.get("pos", ())),
                flags=tuple(item.get("flags", ())),
            )
            for item in data.get("definitions", ())
        ),
        audio=tuple(data.get("audio", ())),
        readings=tuple(data.get("readings", ())),
        examples=tuple(
            Example(
                for_definition=item.get("for_definition"),
                en=item["en"],
                ja=item["ja"],
            )
            for item in data.get("examples", ())
        ),
    )


def encode_chunk(entries: Sequence[DictionaryEntry], level: int = 9) -> bytes:
    """Serialize and compress a batch of entries as one unit."""
    payload = orjson.dumps([entry_to_dict(entry) for entry in entries])
    return zlib.compress(payload, level)


def decode_chunk(data: bytes) -> list[DictionaryEntry]:
    """Inverse of ``encode_chunk``; any failure is a ``FormatError``."""
    try:
        raw = orjson.loads(zlib.decompress(data))
        if not isinstance(raw, list):
            raise ValueError("chunk payload is not a list")
        return [entry_from_dict(item) for item in raw]
    except (zlib.error, AttributeError, KeyError, TypeError, ValueError) as exc:
        raise FormatError(f"Corrupt chunk: {exc}") from exc


def encode_index(index: Mapping[str, Iterable[int]], level: int = 9) -> bytes:
    """Serialize the word index with sorted keys and sorted offsets, then compress."""
    payload = orjson.dumps(
        {word: sorted(offsets) for word, offsets in index.items()},
        option=orjson.OPT_SORT_KEYS,
    )
    return zlib.compress(payload, level)


def decode_index(data: bytes) -> dict[str, list[int]]:
    """Inverse of ``encode_index``; validates the word -> u32 offsets shape."""
    try:
        raw = orjson.loads(zlib.decompress(data))
    except (zlib.error, orjson.JSONDecodeError) as exc:
        raise FormatError(f"Corrupt index: {exc}") from exc
    if not isinstance(raw, dict):
        raise FormatError("Corrupt index: payload is not a mapping")
    for word, offsets in raw.items():
        if not isinstance(offsets, list) or not all(_is_offset(offset) for offset in offsets):
            raise FormatError(f"Corrupt index: bad offsets for {word!r}")
    return raw


def _is_offset(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= MAX_OFFSET


__all__ = [
    "MAX_OFFSET",
    "encode_chunk",
    "decode_chunk",
    "encode_index",
    "decode_index",
    "entry_to_dict",
    "entry_from_dict",
]
