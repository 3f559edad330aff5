"""Append-only chunk writer and index finalizer."""

from __future__ import annotations

import struct
from collections import defaultdict
from dataclasses import dataclass
from typing import BinaryIO

from jpdict.core.errors import DuplicateSourceError, FormatError, WriterClosedError
from jpdict.core.logging import get_logger
from jpdict.core.metrics import CHUNK_BYTES, CHUNKS_WRITTEN, ENTRIES_WRITTEN, INDEX_WORDS
from jpdict.models.entities import DictionaryEntry, Source
from jpdict.store.codec import MAX_OFFSET, encode_chunk, encode_index

logger = get_logger(__name__)

BATCH_SIZE = 32
LENGTH_PREFIX = struct.Struct(">I")


@dataclass(slots=True)
class WriterStats:
    entries: int = 0
    chunks: int = 0
    words: int = 0
    data_bytes: int = 0
    index_bytes: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "entries": self.entries,
            "chunks": self.chunks,
            "words": self.words,
            "data_bytes": self.data_bytes,
            "index_bytes": self.index_bytes,
        }


class ChunkWriter:
    """
    Buffers entries into fixed-size batches and appends each batch to ``data_output``
    as ``[u32 big-endian length][zlib(orjson(entries))]``.

    While buffering, every word of an entry (its forms, and its readings when
    ``index_readings`` is set) is mapped to the offset the pending chunk will be
    written at. That offset is the running byte position, so it is known before
    the chunk itself is flushed.

    Typical usage:
        writer = ChunkWriter(dat_file)
        for entry in entries:
            writer.add(entry)
        stats = writer.finish(idx_file)
    """

    def __init__(
        self,
        data_output: BinaryIO,
        batch_size: int = BATCH_SIZE,
        compression_level: int = 9,
        index_readings: bool = True,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.data_output = data_output
        self.batch_size = batch_size
        self.compression_level = compression_level
        self.index_readings = index_readings
        self.index: defaultdict[str, set[int]] = defaultdict(set)
        self.position = 0  # offset of the next chunk
        self.stats = WriterStats()
        self._buffer: list[DictionaryEntry] = []
        self._sources: set[Source] = set()
        self._finished = False

    @property
    def pending(self) -> int:
        return len(self._buffer)

    def add(self, entry: DictionaryEntry) -> None:
        self._ensure_open()
        if entry.source in self._sources:
            raise DuplicateSourceError(entry.source)
        if self.position > MAX_OFFSET:
            raise FormatError(f"Data file exceeds the 32-bit offset range at {self.position} bytes")

        self._sources.add(entry.source)
        self._buffer.append(entry)
        for word in entry.words(self.index_readings):
            self.index[word].add(self.position)

        if len(self._buffer) >= self.batch_size:
            self.flush()

    def flush(self) -> None:
        self._ensure_open()
        if not self._buffer:
            return

        compressed = encode_chunk(self._buffer, self.compression_level)
        self.data_output.write(LENGTH_PREFIX.pack(len(compressed)))
        self.data_output.write(compressed)
        logger.debug(
            "Wrote chunk at offset %s: %s entries, %s bytes",
            self.position,
            len(self._buffer),
            len(compressed),
            extra={"ctx_offset": self.position, "ctx_entries": len(self._buffer), "ctx_bytes": len(compressed)},
        )

        self.position += LENGTH_PREFIX.size + len(compressed)
        self.stats.entries += len(self._buffer)
        self.stats.chunks += 1
        self.stats.data_bytes = self.position
        CHUNKS_WRITTEN.inc()
        CHUNK_BYTES.observe(len(compressed))
        for entry in self._buffer:
            ENTRIES_WRITTEN.labels(origin=entry.source.origin.tag).inc()
        self._buffer = []

    def finish(self, index_output: BinaryIO) -> WriterStats:
        """Flush the last partial chunk, then write the compressed index once."""
        self.flush()
        payload = encode_index(self.index, self.compression_level)
        index_output.write(payload)
        self._finished = True

        self.stats.words = len(self.index)
        self.stats.index_bytes = len(payload)
        INDEX_WORDS.set(len(self.index))
        logger.info(
            "Finished dictionary: %s entries in %s chunks, %s words indexed",
            self.stats.entries,
            self.stats.chunks,
            self.stats.words,
            extra={
                "ctx_entries": self.stats.entries,
                "ctx_chunks": self.stats.chunks,
                "ctx_words": self.stats.words,
                "ctx_index_bytes": self.stats.index_bytes,
            },
        )
        return self.stats

    def _ensure_open(self) -> None:
        if self._finished:
            raise WriterClosedError("ChunkWriter has already been finished")


__all__ = ["BATCH_SIZE", "LENGTH_PREFIX", "ChunkWriter", "WriterStats"]
