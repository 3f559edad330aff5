"""Chunk reader: resident word index, on-demand chunk decoding."""

from __future__ import annotations

import time
from collections import defaultdict
from typing import BinaryIO, Iterable, Iterator

from jpdict.core.errors import FormatError
from jpdict.core.logging import get_logger
from jpdict.core.metrics import CHUNKS_READ, INDEX_WORDS, LOOKUP_LATENCY
from jpdict.models.entities import DictionaryEntry, Source
from jpdict.store.codec import decode_chunk, decode_index
from jpdict.store.writer import LENGTH_PREFIX

logger = get_logger(__name__)


class ChunkReader:
    """
    Serves word lookups against a dictionary file pair.

    The whole index is decoded on construction; chunks are read from
    ``data_source`` only when a lookup touches them, so the cost of a lookup
    batch grows with the number of distinct chunks it needs.

    A reader owns the seek position of ``data_source`` and is not safe for
    concurrent use. Open one reader per thread or serialize access.
    """

    def __init__(
        self,
        index_source: bytes | BinaryIO,
        data_source: BinaryIO,
        match_readings: bool = True,
        dedupe: bool = True,
    ) -> None:
        raw_index = index_source if isinstance(index_source, (bytes, bytearray)) else index_source.read()
        self.index = decode_index(bytes(raw_index))
        self.data_source = data_source
        self.match_readings = match_readings
        self.dedupe = dedupe
        INDEX_WORDS.set(len(self.index))
        logger.debug("Index loaded: %s words", len(self.index))

    def __len__(self) -> int:
        return len(self.index)

    def __contains__(self, word: object) -> bool:
        return word in self.index

    def __enter__(self) -> "ChunkReader":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self.data_source.close()

    def offsets(self, word: str) -> list[int]:
        return list(self.index.get(word, ()))

    def lookup(self, words: Iterable[str]) -> dict[str, list[DictionaryEntry]]:
        """Return ``word -> entries`` for every queried word found in the dictionary."""
        start_time = time.perf_counter()
        by_offset: defaultdict[int, list[str]] = defaultdict(list)
        for word in dict.fromkeys(words):
            for offset in self.index.get(word, ()):
                by_offset[offset].append(word)

        results: dict[str, list[DictionaryEntry]] = {}
        for offset in sorted(by_offset):
            entries = self.read_chunk(offset)
            for word in by_offset[offset]:
                matched = [entry for entry in entries if entry.matches(word, self.match_readings)]
                if matched:
                    results.setdefault(word, []).extend(matched)

        if self.dedupe:
            results = {word: _dedupe_by_source(entries) for word, entries in results.items()}

        elapsed = time.perf_counter() - start_time
        LOOKUP_LATENCY.observe(elapsed)
        logger.debug(
            "Lookup touched %s chunks, matched %s words",
            len(by_offset),
            len(results),
            extra={"ctx_chunks": len(by_offset), "ctx_matched": len(results), "ctx_seconds": round(elapsed, 6)},
        )
        return results

    def read_chunk(self, offset: int) -> list[DictionaryEntry]:
        """Seek to ``offset`` and decode the chunk stored there."""
        self.data_source.seek(offset)
        entries = self._read_next_chunk(offset)
        if entries is None:
            raise FormatError(f"No chunk at offset {offset}")
        CHUNKS_READ.inc()
        return entries

    def iter_chunks(self) -> Iterator[tuple[int, list[DictionaryEntry]]]:
        """Scan the data file from the start, yielding ``(offset, entries)`` per chunk."""
        offset = 0
        self.data_source.seek(0)
        while True:
            entries = self._read_next_chunk(offset)
            if entries is None:
                return
            yield offset, entries
            offset = self.data_source.tell()

    def _read_next_chunk(self, offset: int) -> list[DictionaryEntry] | None:
        prefix = self.data_source.read(LENGTH_PREFIX.size)
        if not prefix:
            return None
        if len(prefix) != LENGTH_PREFIX.size:
            raise FormatError(f"Truncated length prefix at offset {offset}")
        (length,) = LENGTH_PREFIX.unpack(prefix)
        payload = self.data_source.read(length)
        if len(payload) != length:
            raise FormatError(
                f"Truncated chunk at offset {offset}: expected {length} bytes, got {len(payload)}"
            )
        return decode_chunk(payload)


def _dedupe_by_source(entries: list[DictionaryEntry]) -> list[DictionaryEntry]:
    seen: set[Source] = set()
    unique: list[DictionaryEntry] = []
    for entry in entries:
        if entry.source in seen:
            continue
        seen.add(entry.source)
        unique.append(entry)
    return unique


__all__ = ["ChunkReader"]
