"""Prometheus metrics instrumentation."""

from __future__ import annotations

from pathlib import Path

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, write_to_textfile

REGISTRY = CollectorRegistry()

CHUNKS_WRITTEN = Counter(
    "jpdict_chunks_written_total",
    "Chunks appended to the data file",
    registry=REGISTRY,
)

ENTRIES_WRITTEN = Counter(
    "jpdict_entries_written_total",
    "Dictionary entries written, by origin",
    labelnames=("origin",),
    registry=REGISTRY,
)

CHUNK_BYTES = Histogram(
    "jpdict_chunk_compressed_bytes",
    "Compressed size of written chunks",
    buckets=(256, 512, 1024, 2048, 4096, 8192, 16384, 32768, 65536),
    registry=REGISTRY,
)

CHUNKS_READ = Counter(
    "jpdict_lookup_chunks_read_total",
    "Chunks read and decompressed while serving lookups",
    registry=REGISTRY,
)

LOOKUP_LATENCY = Histogram(
    "jpdict_lookup_latency_seconds",
    "Latency of batched lookups",
    registry=REGISTRY,
)

INDEX_WORDS = Gauge(
    "jpdict_index_words",
    "Number of distinct words in the most recently written or loaded index",
    registry=REGISTRY,
)


def write_metrics(path: Path) -> None:
    """Dump the registry to a file in the text exposition format."""
    path.parent.mkdir(parents=True, exist_ok=True)
    write_to_textfile(str(path), REGISTRY)


__all__ = [
    "REGISTRY",
    "CHUNKS_WRITTEN",
    "ENTRIES_WRITTEN",
    "CHUNK_BYTES",
    "CHUNKS_READ",
    "LOOKUP_LATENCY",
    "INDEX_WORDS",
    "write_metrics",
]
