"""Dictionary build orchestration."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterable, TypeVar

from jpdict.core.config import Settings
from jpdict.core.errors import DuplicateSourceError, InvalidEntryError
from jpdict.core.logging import get_logger
from jpdict.ingest import jmdict, wanikani
from jpdict.ingest.types import BuildResult, IngestStats
from jpdict.models.entities import DictionaryEntry
from jpdict.store.files import dictionary_paths, open_writer
from jpdict.store.writer import ChunkWriter

logger = get_logger(__name__)

R = TypeVar("R")


class DictionaryBuilder:
    """Run the configured ingestion sources into a fresh dictionary file pair."""

    def __init__(self, settings: Settings, wanikani_client: wanikani.WaniKaniClient | None = None) -> None:
        self.settings = settings
        self.wanikani_client = wanikani_client

    def build(self, output_base: Path | None = None) -> BuildResult:
        base = output_base or self.settings.dict_path
        data_path, index_path = dictionary_paths(base)
        result = BuildResult(data_path=str(data_path), index_path=str(index_path))
        try:
            with open_writer(base, self.settings) as writer:
                client = self._wanikani()
                if client is not None:
                    logger.info("Updating WaniKani entries")
                    result.sources["wanikani"] = ingest(
                        client.iter_subjects(self.settings.wanikani_updated_after),
                        lambda subject: wanikani.to_dictionary_entry(subject, self.settings.strict_pos),
                        writer,
                    )

                jmdict_path = self.settings.jmdict_path
                if jmdict_path is not None and jmdict_path.exists():
                    logger.info("Updating JMdict entries from %s", jmdict_path)
                    result.sources["jmdict"] = ingest(
                        jmdict.iter_jmdict(jmdict_path),
                        lambda entry: jmdict.to_dictionary_entry(entry, self.settings.strict_pos),
                        writer,
                    )
                elif jmdict_path is not None:
                    logger.warning("JMdict file %s does not exist, skipping", jmdict_path)
            result.writer = writer.stats
        except Exception as exc:
            logger.exception("Dictionary build failed: %s", exc)
            raise
        return result

    def _wanikani(self) -> wanikani.WaniKaniClient | None:
        if self.wanikani_client is not None:
            return self.wanikani_client
        if not self.settings.wanikani_token:
            return None
        return wanikani.WaniKaniClient(self.settings.wanikani_token, base_url=self.settings.wanikani_base_url)


def ingest(
    records: Iterable[R],
    convert: Callable[[R], DictionaryEntry | None],
    writer: ChunkWriter,
) -> IngestStats:
    """Convert each upstream record and add it to ``writer``, tallying the outcome."""
    stats = IngestStats()
    for record in records:
        try:
            entry = convert(record)
        except InvalidEntryError as exc:
            logger.warning("Skipping entry: %s", exc)
            stats.failed += 1
            continue
        if entry is None:
            stats.skipped += 1
            continue
        try:
            writer.add(entry)
        except DuplicateSourceError as exc:
            logger.debug("Skipping duplicate: %s", exc)
            stats.skipped += 1
            continue
        stats.processed += 1
    return stats


__all__ = ["DictionaryBuilder", "ingest"]
