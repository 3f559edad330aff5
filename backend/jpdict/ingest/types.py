"""Common ingestion data structures."""

from __future__ import annotations

from dataclasses import dataclass, field

from jpdict.store.writer import WriterStats


@dataclass(slots=True)
class IngestStats:
    """Aggregated per-source ingest statistics."""

    processed: int = 0
    skipped: int = 0
    failed: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "processed": self.processed,
            "skipped": self.skipped,
            "failed": self.failed,
        }


@dataclass(slots=True)
class BuildResult:
    """Outcome of a dictionary build."""

    data_path: str
    index_path: str
    sources: dict[str, IngestStats] = field(default_factory=dict)
    writer: WriterStats = field(default_factory=WriterStats)

    def to_dict(self) -> dict[str, object]:
        return {
            "data_path": self.data_path,
            "index_path": self.index_path,
            "sources": {name: stats.to_dict() for name, stats in self.sources.items()},
            "writer": self.writer.to_dict(),
        }


__all__ = ["IngestStats", "BuildResult"]
