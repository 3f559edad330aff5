"""JMdict XML ingestion.

The file is read with ``ElementTree.iterparse`` start/end events. Each element
type has its own node class, and ``_CHILDREN`` / ``_ATTRIBUTES`` spell out which
child tag or attribute fills which field. Tags that appear in the tables but
under the wrong parent are errors; tags the tables never mention are skipped
together with their subtree.

Entities declared in the JMdict DTD are expanded by the XML parser, so ``pos``,
``misc``, ``dial`` and ``field`` values arrive as their descriptive text.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, Literal

from jpdict.core.errors import InvalidEntryError, JpdictError, UnknownPartOfSpeech
from jpdict.core.logging import get_logger
from jpdict.models.entities import Definition, DictionaryEntry, Example, Source
from jpdict.models.pos import classify_all

logger = get_logger(__name__)

XML_LANG = "{http://www.w3.org/XML/1998/namespace}lang"
ROOT_TAG = "JMdict"
GLOSS_SEPARATOR = ", "


class JMDictParseError(JpdictError):
    """Structural error in a JMdict document."""

    @classmethod
    def unexpected_start(cls, tag: str, parent: str) -> "JMDictParseError":
        return cls(f"Unexpected start tag {tag!r} (in tag {parent!r})")


@dataclass(slots=True)
class KanjiElement:
    keb: str = ""
    ke_inf: list[str] = field(default_factory=list)
    ke_pri: list[str] = field(default_factory=list)


@dataclass(slots=True)
class ReadingElement:
    reb: str = ""
    re_nokanji: bool = False
    re_restr: list[str] = field(default_factory=list)
    re_inf: list[str] = field(default_factory=list)
    re_pri: list[str] = field(default_factory=list)


@dataclass(slots=True)
class SourceLanguage:
    text: str = ""
    lang: str = "eng"
    ls_type: str | None = None
    ls_wasei: str | None = None


@dataclass(slots=True)
class Gloss:
    text: str = ""
    lang: str = "eng"
    g_type: str | None = None
    g_gend: str | None = None


@dataclass(slots=True)
class ExampleSentence:
    text: str = ""
    lang: str = ""


@dataclass(slots=True)
class ExampleElement:
    ex_srce: str = ""
    ex_text: str = ""
    ex_sent: list[ExampleSentence] = field(default_factory=list)


@dataclass(slots=True)
class Sense:
    stagk: list[str] = field(default_factory=list)
    stagr: list[str] = field(default_factory=list)
    pos: list[str] = field(default_factory=list)
    xref: list[str] = field(default_factory=list)
    ant: list[str] = field(default_factory=list)
    misc: list[str] = field(default_factory=list)
    s_inf: list[str] = field(default_factory=list)
    lsource: list[SourceLanguage] = field(default_factory=list)
    dial: list[str] = field(default_factory=list)
    gloss: list[Gloss] = field(default_factory=list)
    example: list[ExampleElement] = field(default_factory=list)
    # declared last: the name shadows dataclasses.field inside the class body
    field: list[str] = field(default_factory=list)


@dataclass(slots=True)
class JMDEntry:
    ent_seq: str = ""
    k_ele: list[KanjiElement] = field(default_factory=list)
    r_ele: list[ReadingElement] = field(default_factory=list)
    sense: list[Sense] = field(default_factory=list)


Kind = Literal["text", "texts", "flag", "nodes"]


@dataclass(frozen=True, slots=True)
class Slot:
    """Where a child element lands in its parent node."""

    name: str
    kind: Kind
    node: type | None = None


_CHILDREN: dict[type, dict[str, Slot]] = {
    JMDEntry: {
        "ent_seq": Slot("ent_seq", "text"),
        "k_ele": Slot("k_ele", "nodes", KanjiElement),
        "r_ele": Slot("r_ele", "nodes", ReadingElement),
        "sense": Slot("sense", "nodes", Sense),
    },
    KanjiElement: {
        "keb": Slot("keb", "text"),
        "ke_inf": Slot("ke_inf", "texts"),
        "ke_pri": Slot("ke_pri", "texts"),
    },
    ReadingElement: {
        "reb": Slot("reb", "text"),
        "re_nokanji": Slot("re_nokanji", "flag"),
        "re_restr": Slot("re_restr", "texts"),
        "re_inf": Slot("re_inf", "texts"),
        "re_pri": Slot("re_pri", "texts"),
    },
    Sense: {
        "stagk": Slot("stagk", "texts"),
        "stagr": Slot("stagr", "texts"),
        "pos": Slot("pos", "texts"),
        "xref": Slot("xref", "texts"),
        "ant": Slot("ant", "texts"),
        "field": Slot("field", "texts"),
        "misc": Slot("misc", "texts"),
        "s_inf": Slot("s_inf", "texts"),
        "lsource": Slot("lsource", "nodes", SourceLanguage),
        "dial": Slot("dial", "texts"),
        "gloss": Slot("gloss", "nodes", Gloss),
        "example": Slot("example", "nodes", ExampleElement),
    },
    ExampleElement: {
        "ex_srce": Slot("ex_srce", "text"),
        "ex_text": Slot("ex_text", "text"),
        "ex_sent": Slot("ex_sent", "nodes", ExampleSentence),
    },
    SourceLanguage: {},
    Gloss: {},
    ExampleSentence: {},
}

_ATTRIBUTES: dict[type, dict[str, str]] = {
    SourceLanguage: {XML_LANG: "lang", "ls_type": "ls_type", "ls_wasei": "ls_wasei"},
    Gloss: {XML_LANG: "lang", "g_type": "g_type", "g_gend": "g_gend"},
    ExampleSentence: {XML_LANG: "lang"},
}

# Nodes whose own character data is their ``text`` field.
_SELF_TEXT: frozenset[type] = frozenset({SourceLanguage, Gloss, ExampleSentence})

_KNOWN_TAGS: frozenset[str] = frozenset(
    {ROOT_TAG, "entry"} | {tag for children in _CHILDREN.values() for tag in children}
)


@dataclass(slots=True)
class _Frame:
    tag: str
    node: Any = None
    slot: Slot | None = None
    owner: Any = None
    skip: bool = False


def iter_jmdict(path: Path) -> Iterator[JMDEntry]:
    """Yield one ``JMDEntry`` per ``<entry>`` element, clearing parsed XML as it goes."""
    stack: list[_Frame] = []
    root: ET.Element | None = None
    try:
        for event, elem in ET.iterparse(path, events=("start", "end")):
            if event == "start":
                if root is None:
                    root = elem
                stack.append(_open(elem, stack))
                continue

            frame = stack.pop()
            entry = _close(elem, frame)
            if entry is not None:
                yield entry
                elem.clear()
                if root is not None:
                    root.clear()
    except ET.ParseError as exc:
        raise JMDictParseError(f"Malformed JMdict XML in {path}: {exc}") from exc


def _open(elem: ET.Element, stack: list[_Frame]) -> _Frame:
    tag = elem.tag
    if not stack:
        if tag != ROOT_TAG:
            raise JMDictParseError(f"Expected root tag {ROOT_TAG!r}, found {tag!r}")
        return _Frame(tag=tag)

    parent = stack[-1]
    if parent.skip:
        return _Frame(tag=tag, skip=True)

    if parent.tag == ROOT_TAG:
        if tag == "entry":
            return _Frame(tag=tag, node=JMDEntry())
        return _unknown(tag, parent)

    if parent.node is None:
        # text-only slots never have children
        raise JMDictParseError.unexpected_start(tag, parent.tag)

    slot = _CHILDREN[type(parent.node)].get(tag)
    if slot is None:
        return _unknown(tag, parent)
    if slot.kind == "nodes":
        node = slot.node()
        for key, name in _ATTRIBUTES.get(slot.node, {}).items():
            if key in elem.attrib:
                setattr(node, name, elem.attrib[key])
        return _Frame(tag=tag, node=node, slot=slot, owner=parent.node)
    return _Frame(tag=tag, slot=slot, owner=parent.node)


def _unknown(tag: str, parent: _Frame) -> _Frame:
    if tag in _KNOWN_TAGS:
        raise JMDictParseError.unexpected_start(tag, parent.tag)
    return _Frame(tag=tag, skip=True)


def _close(elem: ET.Element, frame: _Frame) -> JMDEntry | None:
    if frame.skip or frame.tag == ROOT_TAG:
        return None
    if frame.slot is None:
        return frame.node

    slot = frame.slot
    text = (elem.text or "").strip()
    if frame.node is not None and type(frame.node) in _SELF_TEXT:
        frame.node.text = text

    if slot.kind == "text":
        setattr(frame.owner, slot.name, text)
    elif slot.kind == "texts":
        getattr(frame.owner, slot.name).append(text)
    elif slot.kind == "flag":
        setattr(frame.owner, slot.name, True)
    else:
        getattr(frame.owner, slot.name).append(frame.node)
    return None


def to_dictionary_entry(entry: JMDEntry, strict_pos: bool = False) -> DictionaryEntry:
    """Convert a parsed ``<entry>`` into a ``DictionaryEntry``.

    Senses without ``<pos>`` inherit the tags of the preceding sense. When a
    sense carries an unknown tag, ``strict_pos`` re-raises
    ``UnknownPartOfSpeech``; otherwise the sense and its examples are dropped.
    A missing, non-integer or out-of-range ``ent_seq`` raises ``InvalidEntryError``.
    """
    source = _source(entry.ent_seq)
    readings = tuple(reading.reb for reading in entry.r_ele)
    forms = tuple(kanji.keb for kanji in entry.k_ele) or readings

    definitions: list[Definition] = []
    examples: list[Example] = []
    pos_tags: list[str] = []
    for sense in entry.sense:
        pos_tags = sense.pos or pos_tags
        try:
            pos = classify_all(pos_tags)
        except UnknownPartOfSpeech as exc:
            if strict_pos:
                raise
            logger.warning("Dropping sense of JMdict entry %s: %s", entry.ent_seq, exc)
            continue

        text = GLOSS_SEPARATOR.join(gloss.text for gloss in sense.gloss if gloss.lang == "eng")
        definitions.append(Definition(text=text, pos=pos, flags=(*sense.misc, *sense.dial, *sense.field)))
        examples.extend(_sense_examples(sense, len(definitions) - 1))

    return DictionaryEntry(
        forms=forms,
        source=source,
        definitions=tuple(definitions),
        audio=(),
        readings=readings,
        examples=tuple(examples),
    )


def _sense_examples(sense: Sense, definition_index: int) -> Iterator[Example]:
    for example in sense.example:
        en = next((sent.text for sent in example.ex_sent if sent.lang == "eng"), None)
        ja = next((sent.text for sent in example.ex_sent if sent.lang == "jpn"), None)
        if en is not None and ja is not None:
            yield Example(for_definition=definition_index, en=en, ja=ja)


def _source(ent_seq: str) -> Source:
    try:
        return Source.jmdict(int(ent_seq.strip()))
    except ValueError:
        raise InvalidEntryError(f"JMdict entry has no usable ent_seq: {ent_seq!r}") from None


__all__ = [
    "JMDictParseError",
    "JMDEntry",
    "KanjiElement",
    "ReadingElement",
    "Sense",
    "Gloss",
    "SourceLanguage",
    "ExampleElement",
    "ExampleSentence",
    "iter_jmdict",
    "to_dictionary_entry",
]
