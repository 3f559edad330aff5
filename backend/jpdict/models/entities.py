"""Value types exchanged between ingestion sources and the store."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Iterable

_I32_MIN = -(2**31)
_I32_MAX = 2**31 - 1


class Origin(IntEnum):
    """Upstream dictionary a source id belongs to. Declaration order is sort order."""

    WANIKANI = 0
    JMDICT = 1

    @property
    def tag(self) -> str:
        return _ORIGIN_TAGS[self]

    @classmethod
    def from_tag(cls, tag: str) -> "Origin":
        for origin, name in _ORIGIN_TAGS.items():
            if name == tag:
                return origin
        raise ValueError(f"Unknown source tag: {tag!r}")


_ORIGIN_TAGS = {Origin.WANIKANI: "WaniKani", Origin.JMDICT: "JMDict"}


@dataclass(frozen=True, slots=True, order=True)
class Source:
    """Dictionary-wide unique key of an entry: origin tag plus a signed 32-bit id."""

    origin: Origin
    id: int

    def __post_init__(self) -> None:
        if not isinstance(self.origin, Origin):
            object.__setattr__(self, "origin", Origin(self.origin))
        if not _I32_MIN <= self.id <= _I32_MAX:
            raise ValueError(f"Source id out of signed 32-bit range: {self.id}")

    @classmethod
    def wanikani(cls, id: int) -> "Source":
        return cls(Origin.WANIKANI, id)

    @classmethod
    def jmdict(cls, id: int) -> "Source":
        return cls(Origin.JMDICT, id)

    def __str__(self) -> str:
        return f"{self.origin.tag}({self.id})"


class PartOfSpeech(str, Enum):
    NOUN = "Noun"
    PREFIX = "Prefix"
    VERB = "Verb"
    ADJECTIVE = "Adjective"
    ADVERB = "Adverb"
    ADNOMINAL = "Adnominal"
    CONJUNCTION = "Conjunction"
    PARTICLE = "Particle"
    AUXILIARY_VERB = "AuxiliaryVerb"
    EXCLAMATION = "Exclamation"
    SYMBOL = "Symbol"
    FILLER = "Filler"
    OTHER = "Other"


@dataclass(frozen=True, slots=True)
class Definition:
    """One gloss with its canonical parts of speech and free-form flags."""

    text: str
    pos: frozenset[PartOfSpeech] = field(default_factory=frozenset)
    flags: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "pos", frozenset(self.pos))
        object.__setattr__(self, "flags", tuple(self.flags))


@dataclass(frozen=True, slots=True)
class Example:
    """Parallel example sentence; ``for_definition`` indexes the owning entry's definitions."""

    en: str
    ja: str
    for_definition: int | None = None


@dataclass(frozen=True, slots=True)
class DictionaryEntry:
    """A headword with its forms, readings, definitions and examples."""

    forms: tuple[str, ...]
    source: Source
    definitions: tuple[Definition, ...] = ()
    audio: tuple[str, ...] = ()
    readings: tuple[str, ...] = ()
    examples: tuple[Example, ...] = ()

    def __post_init__(self) -> None:
        for name in ("forms", "definitions", "audio", "readings", "examples"):
            object.__setattr__(self, name, tuple(getattr(self, name)))
        if not self.forms:
            raise ValueError(f"Entry {self.source} has no forms")

    def words(self, include_readings: bool = True) -> list[str]:
        """Strings this entry is indexed under, deduplicated in order."""
        candidates: Iterable[str] = self.forms + self.readings if include_readings else self.forms
        return list(dict.fromkeys(candidates))

    def matches(self, word: str, include_readings: bool = True) -> bool:
        return word in self.forms or (include_readings and word in self.readings)


__all__ = [
    "Origin",
    "Source",
    "PartOfSpeech",
    "Definition",
    "Example",
    "DictionaryEntry",
]
