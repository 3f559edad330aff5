"""Dictionary file pair helpers."""

from __future__ import annotations

import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from jpdict.core.config import Settings
from jpdict.core.logging import get_logger
from jpdict.store.reader import ChunkReader
from jpdict.store.writer import ChunkWriter

logger = get_logger(__name__)

DATA_SUFFIX = ".dat"
INDEX_SUFFIX = ".idx"
TMP_SUFFIX = ".tmp"


def dictionary_paths(base: Path) -> tuple[Path, Path]:
    """Return the ``(data, index)`` paths for a dictionary base path."""
    base = base.expanduser()
    return base.with_suffix(DATA_SUFFIX), base.with_suffix(INDEX_SUFFIX)


def _staging_path(path: Path) -> Path:
    return path.with_name(path.name + TMP_SUFFIX)


@contextmanager
def open_writer(base: Path, settings: Settings) -> Iterator[ChunkWriter]:
    """
    Yield a writer for ``<base>.dat`` / ``<base>.idx``.

    Both files are written next to their targets with a ``.tmp`` suffix and
    moved into place only once the index has been written, so a failed build
    leaves any previous file pair untouched.
    """
    data_path, index_path = dictionary_paths(base)
    data_tmp, index_tmp = _staging_path(data_path), _staging_path(index_path)
    data_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        with data_tmp.open("wb") as data_fh:
            writer = ChunkWriter(
                data_fh,
                batch_size=settings.batch_size,
                compression_level=settings.compression_level,
                index_readings=settings.index_readings,
            )
            yield writer
            with index_tmp.open("wb") as index_fh:
                writer.finish(index_fh)
    except BaseException:
        data_tmp.unlink(missing_ok=True)
        index_tmp.unlink(missing_ok=True)
        raise

    os.replace(data_tmp, data_path)
    os.replace(index_tmp, index_path)
    logger.debug("Replaced dictionary file pair at %s", data_path.with_suffix(""))


@contextmanager
def open_reader(base: Path, settings: Settings) -> Iterator[ChunkReader]:
    """Yield a reader over an existing ``<base>.dat`` / ``<base>.idx`` pair."""
    data_path, index_path = dictionary_paths(base)
    index_bytes = index_path.read_bytes()
    with data_path.open("rb") as data_fh:
        with ChunkReader(
            index_bytes,
            data_fh,
            match_readings=settings.index_readings,
            dedupe=settings.dedupe_results,
        ) as reader:
            yield reader


__all__ = ["DATA_SUFFIX", "INDEX_SUFFIX", "dictionary_paths", "open_writer", "open_reader"]
