"""Tests for the chunk writer and reader."""

from __future__ import annotations

import io
import struct
import zlib

import pytest

from jpdict.core.errors import DuplicateSourceError, FormatError, WriterClosedError
from jpdict.models.entities import Source
from jpdict.store.codec import MAX_OFFSET, decode_chunk, decode_index, encode_chunk, encode_index
from jpdict.store.reader import ChunkReader
from jpdict.store.writer import ChunkWriter


class SeekRecorder(io.BytesIO):
    """BytesIO that remembers every offset it was asked to seek to."""

    def __init__(self, data: bytes) -> None:
        super().__init__(data)
        self.seeks: list[int] = []

    def seek(self, offset: int, whence: int = 0) -> int:
        self.seeks.append(offset)
        return super().seek(offset, whence)


def _sources(entries) -> list[Source]:
    return [entry.source for entry in entries]


def _split_chunks(data: bytes) -> list[tuple[int, bytes]]:
    chunks = []
    offset = 0
    while offset < len(data):
        (length,) = struct.unpack(">I", data[offset : offset + 4])
        chunks.append((offset, data[offset + 4 : offset + 4 + length]))
        offset += 4 + length
    assert offset == len(data)
    return chunks


def test_shared_and_distinct_forms_in_one_batch(open_store, entry_factory) -> None:
    x1 = Source.jmdict(1)
    x2 = Source.jmdict(2)
    reader = open_store([entry_factory(x1, ["A", "AA", "Q"]), entry_factory(x2, ["X", "YX", "Q"])])

    found = reader.lookup(["A", "AA", "X", "Q"])

    assert {word: _sources(entries) for word, entries in found.items()} == {
        "A": [x1],
        "AA": [x1],
        "X": [x2],
        "Q": [x1, x2],
    }


def test_round_trip_across_many_chunks(open_store, entry_factory) -> None:
    entries = [
        entry_factory(Source.jmdict(i), [f"word{i}", f"shared{i % 7}"], readings=[f"reading{i % 5}"])
        for i in range(200)
    ]
    reader = open_store(entries, batch_size=16)

    expected: dict[str, set[Source]] = {}
    for entry in entries:
        for word in entry.words():
            expected.setdefault(word, set()).add(entry.source)

    found = reader.lookup(expected)

    assert set(found) == set(expected)
    for word, sources in expected.items():
        got = _sources(found[word])
        assert len(got) == len(set(got))
        assert set(got) == sources


def test_writer_produces_one_chunk_per_batch(build_store, entry_factory) -> None:
    entries = [entry_factory(Source.wanikani(i), [f"w{i}"]) for i in range(70)]
    data, _ = build_store(entries, batch_size=32)

    chunks = _split_chunks(data)

    assert [len(decode_chunk(payload)) for _, payload in chunks] == [32, 32, 6]


def test_lookups_in_different_chunks_resolve_independently(open_store, entry_factory) -> None:
    first = entry_factory(Source.jmdict(1), ["始め"])
    filler = [entry_factory(Source.jmdict(i), [f"f{i}"]) for i in range(2, 10)]
    last = entry_factory(Source.jmdict(99), ["終わり"])
    reader = open_store([first, *filler, last], batch_size=4)

    assert reader.offsets("始め") != reader.offsets("終わり")
    found = reader.lookup({"始め", "終わり"})
    assert _sources(found["始め"]) == [first.source]
    assert _sources(found["終わり"]) == [last.source]


def test_entries_sharing_a_chunk_do_not_leak(open_store, entry_factory) -> None:
    cat = entry_factory(Source.jmdict(1), ["猫"], readings=["ねこ"])
    dog = entry_factory(Source.jmdict(2), ["犬"], readings=["いぬ"])
    reader = open_store([cat, dog])

    assert reader.offsets("猫") == reader.offsets("犬")
    found = reader.lookup(["猫", "いぬ"])
    assert _sources(found["猫"]) == [cat.source]
    assert _sources(found["いぬ"]) == [dog.source]


def test_readings_are_indexed_in_reading_aware_mode(build_store, entry_factory) -> None:
    entry = entry_factory(Source.jmdict(1), ["猫"], readings=["ねこ"])

    data, index = build_store([entry])
    assert "ねこ" in decode_index(index)

    data, index = build_store([entry], index_readings=False)
    assert "ねこ" not in decode_index(index)
    reader = ChunkReader(index, io.BytesIO(data), match_readings=False)
    assert reader.lookup(["ねこ"]) == {}


def test_absent_words_are_missing_from_result(open_store, entry_factory) -> None:
    reader = open_store([entry_factory(Source.jmdict(1), ["猫"])])

    assert reader.lookup(["犬", "猫", "鳥"]).keys() == {"猫"}
    assert reader.lookup([]) == {}
    assert "犬" not in reader


def test_lookup_reads_only_touched_chunks(build_store, entry_factory) -> None:
    entries = [entry_factory(Source.jmdict(i), [f"w{i}"]) for i in range(40)]
    data, index = build_store(entries, batch_size=8)
    recorder = SeekRecorder(data)
    reader = ChunkReader(index, recorder)

    reader.lookup(["w0", "w1", "w17", "unknown"])

    assert recorder.seeks == sorted(set(reader.offsets("w0") + reader.offsets("w17")))
    assert len(recorder.seeks) == 2


def test_empty_flush_is_a_no_op(entry_factory) -> None:
    data = io.BytesIO()
    writer = ChunkWriter(data)
    writer.flush()
    writer.flush()
    assert data.getvalue() == b""
    assert writer.position == 0
    assert not writer.index

    writer.add(entry_factory(Source.jmdict(1), ["猫"]))
    writer.flush()
    size = len(data.getvalue())
    snapshot = {word: set(offsets) for word, offsets in writer.index.items()}
    writer.flush()
    writer.flush()
    assert len(data.getvalue()) == size
    assert writer.index == snapshot


def test_length_prefix_matches_payload(build_store, entry_factory) -> None:
    entries = [entry_factory(Source.jmdict(i), [f"w{i}"], gloss="x" * i) for i in range(50)]
    data, index = build_store(entries, batch_size=7)

    chunks = _split_chunks(data)
    offsets = {offset for offset, _ in chunks}

    assert len(chunks) == 8
    assert {offset for word_offsets in decode_index(index).values() for offset in word_offsets} == offsets


def test_offsets_recorded_before_flush_point_at_the_chunk(entry_factory) -> None:
    data = io.BytesIO()
    writer = ChunkWriter(data, batch_size=2)
    writer.add(entry_factory(Source.jmdict(1), ["a"]))
    writer.add(entry_factory(Source.jmdict(2), ["b"]))
    second_chunk_offset = writer.position
    writer.add(entry_factory(Source.jmdict(3), ["c"]))

    assert writer.index["c"] == {second_chunk_offset}
    assert writer.pending == 1
    writer.finish(io.BytesIO())
    assert _split_chunks(data.getvalue())[1][0] == second_chunk_offset


def test_offsets_are_deduplicated_within_a_chunk(entry_factory) -> None:
    writer = ChunkWriter(io.BytesIO())
    writer.add(entry_factory(Source.jmdict(1), ["同じ", "同じ"], readings=["同じ"]))
    writer.add(entry_factory(Source.jmdict(2), ["同じ"]))

    assert writer.index["同じ"] == {0}


def test_duplicate_source_is_rejected(entry_factory) -> None:
    writer = ChunkWriter(io.BytesIO())
    writer.add(entry_factory(Source.jmdict(1), ["猫"]))

    with pytest.raises(DuplicateSourceError) as excinfo:
        writer.add(entry_factory(Source.jmdict(1), ["犬"]))

    assert excinfo.value.source == Source.jmdict(1)
    assert "犬" not in writer.index
    assert writer.pending == 1


def test_writer_is_consumed_by_finish(entry_factory) -> None:
    writer = ChunkWriter(io.BytesIO())
    stats = writer.finish(io.BytesIO())
    assert stats.entries == 0

    with pytest.raises(WriterClosedError):
        writer.add(entry_factory(Source.jmdict(1), ["猫"]))
    with pytest.raises(WriterClosedError):
        writer.flush()


def test_finish_reports_stats(entry_factory) -> None:
    data = io.BytesIO()
    index = io.BytesIO()
    writer = ChunkWriter(data, batch_size=4)
    for i in range(10):
        writer.add(entry_factory(Source.jmdict(i), [f"w{i}", "共通"]))

    stats = writer.finish(index)

    assert stats.to_dict() == {
        "entries": 10,
        "chunks": 3,
        "words": 11,
        "data_bytes": len(data.getvalue()),
        "index_bytes": len(index.getvalue()),
    }


def test_cross_chunk_duplicates_are_deduplicated_by_source(entry_factory) -> None:
    entry = entry_factory(Source.jmdict(7), ["重複"])
    first = encode_chunk([entry])
    second = encode_chunk([entry])
    data = struct.pack(">I", len(first)) + first + struct.pack(">I", len(second)) + second
    index = encode_index({"重複": [0, 4 + len(first)]})

    deduped = ChunkReader(index, io.BytesIO(data)).lookup(["重複"])
    raw = ChunkReader(index, io.BytesIO(data), dedupe=False).lookup(["重複"])

    assert _sources(deduped["重複"]) == [entry.source]
    assert _sources(raw["重複"]) == [entry.source, entry.source]


def test_corrupt_index_is_a_format_error() -> None:
    with pytest.raises(FormatError):
        ChunkReader(b"not zlib at all", io.BytesIO())

    with pytest.raises(FormatError):
        ChunkReader(zlib.compress(b'{"word": ["zero"]}'), io.BytesIO())
    with pytest.raises(FormatError):
        ChunkReader(zlib.compress(b"[1, 2, 3]"), io.BytesIO())


def test_truncated_chunk_is_a_format_error(build_store, entry_factory) -> None:
    data, index = build_store([entry_factory(Source.jmdict(1), ["猫"])])

    reader = ChunkReader(index, io.BytesIO(data[:-3]))
    with pytest.raises(FormatError):
        reader.lookup(["猫"])

    reader = ChunkReader(index, io.BytesIO(data[:2]))
    with pytest.raises(FormatError):
        reader.lookup(["猫"])


def test_garbled_chunk_is_a_format_error(build_store, entry_factory) -> None:
    data, index = build_store([entry_factory(Source.jmdict(1), ["猫"])])
    garbled = data[:4] + bytes(len(data) - 4)

    with pytest.raises(FormatError):
        ChunkReader(index, io.BytesIO(garbled)).lookup(["猫"])


def test_iter_chunks_scans_whole_file(build_store, entry_factory) -> None:
    entries = [entry_factory(Source.jmdict(i), [f"w{i}"]) for i in range(9)]
    data, index = build_store(entries, batch_size=4)
    reader = ChunkReader(io.BytesIO(index), io.BytesIO(data))

    scanned = list(reader.iter_chunks())

    assert [offset for offset, _ in scanned] == [offset for offset, _ in _split_chunks(data)]
    assert [entry.source for _, chunk in scanned for entry in chunk] == _sources(entries)
    assert len(reader) == 9


def test_add_beyond_u32_offset_range_is_rejected(entry_factory) -> None:
    data = io.BytesIO()
    writer = ChunkWriter(data)
    writer.position = MAX_OFFSET + 1

    with pytest.raises(FormatError):
        writer.add(entry_factory(Source.jmdict(1), ["遠い"]))

    assert writer.pending == 0
    assert "遠い" not in writer.index
    assert data.getvalue() == b""

    writer.position = MAX_OFFSET
    writer.add(entry_factory(Source.jmdict(2), ["端"]))
    assert writer.index["端"] == {MAX_OFFSET}
