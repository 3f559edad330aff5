"""Classification of upstream part-of-speech tags into ``PartOfSpeech``.

Tags arrive from three places: IPADIC-style segmenter output (``名詞``,
``動詞-自立``), JMdict sense ``<pos>`` elements (entity codes such as ``v5k``
or their expanded text such as ``Godan verb with 'ku' ending``) and WaniKani
``parts_of_speech`` labels (``godan verb``, ``な adjective``).

Resolution order: exact match, then category code prefixes, then English
substrings. Anything left over raises ``UnknownPartOfSpeech``.
"""

from __future__ import annotations

import re
from typing import Iterable

from jpdict.core.errors import UnknownPartOfSpeech
from jpdict.models.entities import PartOfSpeech

P = PartOfSpeech

_IPADIC: dict[str, PartOfSpeech] = {
    "名詞": P.NOUN,
    "代名詞": P.NOUN,
    "接頭詞": P.PREFIX,
    "接頭辞": P.PREFIX,
    "動詞": P.VERB,
    "形容詞": P.ADJECTIVE,
    "形状詞": P.ADJECTIVE,
    "副詞": P.ADVERB,
    "連体詞": P.ADNOMINAL,
    "接続詞": P.CONJUNCTION,
    "助詞": P.PARTICLE,
    "助動詞": P.AUXILIARY_VERB,
    "感動詞": P.EXCLAMATION,
    "記号": P.SYMBOL,
    "補助記号": P.SYMBOL,
    "空白": P.SYMBOL,
    "フィラー": P.FILLER,
    "接尾辞": P.OTHER,
    "その他": P.OTHER,
}

# JMdict entity codes whose category is not implied by their prefix, plus
# expanded entity texts that the substring rules would misfile.
_JMDICT: dict[str, PartOfSpeech] = {
    "n": P.NOUN,
    "pn": P.NOUN,
    "vs": P.NOUN,
    "pref": P.PREFIX,
    "suf": P.OTHER,
    "ctr": P.OTHER,
    "num": P.OTHER,
    "exp": P.OTHER,
    "unc": P.OTHER,
    "int": P.EXCLAMATION,
    "conj": P.CONJUNCTION,
    "prt": P.PARTICLE,
    "cop": P.AUXILIARY_VERB,
    "cop-da": P.AUXILIARY_VERB,
    "aux": P.AUXILIARY_VERB,
    "adv": P.ADVERB,
    "adj-pn": P.ADNOMINAL,
    "noun or participle which takes the aux. verb suru": P.NOUN,
    "nouns which may take the genitive case particle 'no'": P.ADJECTIVE,
    "adverbial noun (fukushitekimeishi)": P.NOUN,
    "noun (temporal) (jisoumeishi)": P.NOUN,
    "noun, used as a suffix": P.NOUN,
    "noun, used as a prefix": P.NOUN,
    "'taru' adjective": P.ADJECTIVE,
    "adverb taking the 'to' particle": P.ADVERB,
}

_WANIKANI: dict[str, PartOfSpeech] = {
    "noun": P.NOUN,
    "proper noun": P.NOUN,
    "pronoun": P.NOUN,
    "する verb": P.VERB,
    "suru verb": P.VERB,
    "godan verb": P.VERB,
    "ichidan verb": P.VERB,
    "transitive verb": P.VERB,
    "intransitive verb": P.VERB,
    "い adjective": P.ADJECTIVE,
    "な adjective": P.ADJECTIVE,
    "の adjective": P.ADJECTIVE,
    "adverb": P.ADVERB,
    "prefix": P.PREFIX,
    "suffix": P.OTHER,
    "counter": P.OTHER,
    "numeral": P.OTHER,
    "expression": P.OTHER,
    "conjunction": P.CONJUNCTION,
    "interjection": P.EXCLAMATION,
    "particle": P.PARTICLE,
}

_EXACT: dict[str, PartOfSpeech] = {**_IPADIC, **_JMDICT, **_WANIKANI}

_CODE_PATTERNS: tuple[tuple[re.Pattern[str], PartOfSpeech], ...] = (
    (re.compile(r"^v(?:[1-5][a-z]*(?:-[a-z]+)?|[kntiz]|r|s-[a-z]+|-unspec)$"), P.VERB),
    (re.compile(r"^adj-[a-z]+$"), P.ADJECTIVE),
    (re.compile(r"^adv-[a-z]+$"), P.ADVERB),
    (re.compile(r"^aux-[a-z]+$"), P.AUXILIARY_VERB),
    (re.compile(r"^n-[a-z]+$"), P.NOUN),
)

_SUBSTRINGS: tuple[tuple[str, PartOfSpeech], ...] = (
    ("pre-noun adjectival", P.ADNOMINAL),
    ("prenominal", P.ADNOMINAL),
    ("auxiliary", P.AUXILIARY_VERB),
    ("copula", P.AUXILIARY_VERB),
    ("particle", P.PARTICLE),
    ("conjunction", P.CONJUNCTION),
    ("interjection", P.EXCLAMATION),
    ("prefix", P.PREFIX),
    ("adverb", P.ADVERB),
    ("verb", P.VERB),
    ("adjectiv", P.ADJECTIVE),
    ("noun", P.NOUN),
    ("counter", P.OTHER),
    ("numeric", P.OTHER),
    ("expression", P.OTHER),
    ("suffix", P.OTHER),
    ("unclassified", P.OTHER),
    ("punctuation", P.SYMBOL),
    ("symbol", P.SYMBOL),
    ("filler", P.FILLER),
)

_IPADIC_SEPARATORS = re.compile(r"[-,]")


def classify_pos(tag: str) -> PartOfSpeech:
    """Map an upstream tag to its canonical part of speech."""
    stripped = tag.strip()
    lowered = stripped.lower()
    exact = _EXACT.get(stripped) or _EXACT.get(lowered)
    if exact is not None:
        return exact

    # IPADIC detail strings such as 名詞-固有名詞-人名 or 動詞,自立
    head = _IPADIC_SEPARATORS.split(stripped, maxsplit=1)[0]
    if head in _IPADIC:
        return _IPADIC[head]

    for pattern, category in _CODE_PATTERNS:
        if pattern.match(lowered):
            return category

    for needle, category in _SUBSTRINGS:
        if needle in lowered:
            return category

    raise UnknownPartOfSpeech(tag)


def classify_all(tags: Iterable[str]) -> frozenset[PartOfSpeech]:
    """Classify every tag; the first unknown tag aborts with ``UnknownPartOfSpeech``."""
    return frozenset(classify_pos(tag) for tag in tags)


__all__ = ["classify_pos", "classify_all"]
