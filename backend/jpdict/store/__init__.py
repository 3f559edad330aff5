"""On-disk dictionary store: chunked entries plus a resident word index."""

from .files import dictionary_paths, open_reader, open_writer
from .reader import ChunkReader
from .writer import ChunkWriter, WriterStats

__all__ = [
    "ChunkReader",
    "ChunkWriter",
    "WriterStats",
    "dictionary_paths",
    "open_reader",
    "open_writer",
]
