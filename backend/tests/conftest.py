"""Test fixtures for jpdict."""

from __future__ import annotations

import io
import sys
from pathlib import Path
from typing import Callable, Iterable

import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from jpdict.models.entities import Definition, DictionaryEntry, Example, PartOfSpeech, Source  # noqa: E402
from jpdict.store.reader import ChunkReader  # noqa: E402
from jpdict.store.writer import ChunkWriter  # noqa: E402


@pytest.fixture(autouse=True)
def reset_state(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset cached settings and environment between tests."""
    for key in ("JPDICT_CONFIG", "JPDICT_WANIKANI_TOKEN", "JPDICT_JMDICT_PATH"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("JPDICT_DICT_PATH", str(tmp_path / "dictionary"))
    monkeypatch.setenv("JPDICT_LOG_JSON", "false")

    from jpdict.core.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def make_entry(source: Source, forms: Iterable[str], readings: Iterable[str] = (), gloss: str = "gloss") -> DictionaryEntry:
    return DictionaryEntry(
        forms=tuple(forms),
        source=source,
        definitions=(Definition(text=gloss, pos=frozenset({PartOfSpeech.NOUN}), flags=("common",)),),
        readings=tuple(readings),
        examples=(Example(for_definition=0, en="An example.", ja="例です。"),),
    )


@pytest.fixture
def entry_factory() -> Callable[..., DictionaryEntry]:
    return make_entry


@pytest.fixture
def build_store() -> Callable[..., tuple[bytes, bytes]]:
    """Write entries with a ``ChunkWriter`` and return ``(data, index)`` bytes."""

    def _build(entries: Iterable[DictionaryEntry], batch_size: int = 32, index_readings: bool = True) -> tuple[bytes, bytes]:
        data = io.BytesIO()
        index = io.BytesIO()
        writer = ChunkWriter(data, batch_size=batch_size, index_readings=index_readings)
        for entry in entries:
            writer.add(entry)
        writer.finish(index)
        return data.getvalue(), index.getvalue()

    return _build


@pytest.fixture
def open_store(build_store) -> Callable[..., ChunkReader]:
    """Write entries and return a reader over the resulting bytes."""

    def _open(entries: Iterable[DictionaryEntry], batch_size: int = 32, **reader_kwargs) -> ChunkReader:
        data, index = build_store(entries, batch_size=batch_size)
        return ChunkReader(index, io.BytesIO(data), **reader_kwargs)

    return _open
