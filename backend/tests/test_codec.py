"""Tests for chunk and index serialization."""

from __future__ import annotations

import zlib

import orjson
import pytest

from jpdict.core.errors import FormatError
from jpdict.models.entities import Definition, DictionaryEntry, Example, PartOfSpeech, Source
from jpdict.store.codec import decode_chunk, decode_index, encode_chunk, encode_index, entry_to_dict


def test_chunk_preserves_entry_fields() -> None:
    entry = DictionaryEntry(
        forms=("食べる",),
        source=Source.wanikani(2467),
        definitions=(
            Definition("to eat", frozenset({PartOfSpeech.VERB, PartOfSpeech.AUXILIARY_VERB}), ("wk", "wk")),
        ),
        audio=("https://example.com/a.mp3", "https://example.com/b.ogg"),
        readings=("たべる",),
        examples=(Example(en="I eat.", ja="食べます。"), Example(en="Eat!", ja="食べて！", for_definition=0)),
    )

    assert decode_chunk(encode_chunk([entry, entry])) == [entry, entry]


def test_source_is_written_as_tagged_object() -> None:
    entry = DictionaryEntry(forms=("猫",), source=Source.jmdict(1467640))

    payload = entry_to_dict(entry)

    assert payload["source"] == {"JMDict": 1467640}
    assert orjson.loads(zlib.decompress(encode_chunk([entry])))[0]["source"] == {"JMDict": 1467640}


def test_index_is_sorted_by_key_and_offset() -> None:
    raw = zlib.decompress(encode_index({"b": {40, 0}, "a": {8}}))

    assert raw == b'{"a":[8],"b":[0,40]}'
    assert decode_index(encode_index({"b": {40, 0}})) == {"b": [0, 40]}


@pytest.mark.parametrize(
    "payload",
    [
        b'{"forms": ["x"]}',
        b'[{"forms": ["x"], "source": {"Elsewhere": 1}}]',
        b'[{"forms": [], "source": {"JMDict": 1}}]',
        b"[1]",
        b"not json",
    ],
)
def test_bad_chunk_payloads_are_format_errors(payload: bytes) -> None:
    with pytest.raises(FormatError):
        decode_chunk(zlib.compress(payload))


def test_offsets_outside_u32_are_rejected() -> None:
    with pytest.raises(FormatError):
        decode_index(zlib.compress(b'{"a": [4294967296]}'))
    with pytest.raises(FormatError):
        decode_index(zlib.compress(b'{"a": [-1]}'))
    with pytest.raises(FormatError):
        decode_index(zlib.compress(b'{"a": [true]}'))
