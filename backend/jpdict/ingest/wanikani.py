"""WaniKani subjects API ingestion."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterator

import requests
from pydantic import BaseModel, ValidationError

from jpdict.core.errors import JpdictError, UnknownPartOfSpeech
from jpdict.core.logging import get_logger
from jpdict.models.entities import Definition, DictionaryEntry, Example, Source
from jpdict.models.pos import classify_all

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://api.wanikani.com/v2"
WK_REVISION = "20170710"
VOCABULARY_TYPES = ("vocabulary", "kana_vocabulary")
MEANING_SEPARATOR = ", "
WK_FLAG = "wk"


class WaniKaniError(JpdictError):
    """The API answered with a non-200 status or an unexpected payload."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class WkMeaning(BaseModel):
    meaning: str
    primary: bool = False


class WkContextSentence(BaseModel):
    en: str
    ja: str


class WkAudioMetadata(BaseModel):
    pronunciation: str = ""


class WkPronunciationAudio(BaseModel):
    url: str
    content_type: str = ""
    metadata: WkAudioMetadata = WkAudioMetadata()


class WkReading(BaseModel):
    reading: str
    primary: bool = False


class WkVocabulary(BaseModel):
    characters: str
    meanings: list[WkMeaning] = []
    context_sentences: list[WkContextSentence] = []
    parts_of_speech: list[str] = []
    pronunciation_audios: list[WkPronunciationAudio] = []
    readings: list[WkReading] = []


class WkSubject(BaseModel):
    id: int
    object: str
    data: dict[str, Any]

    def vocabulary(self) -> WkVocabulary | None:
        if self.object not in VOCABULARY_TYPES:
            return None
        return WkVocabulary.model_validate(self.data)


class WkPages(BaseModel):
    per_page: int | None = None
    next_url: str | None = None


class WkSubjects(BaseModel):
    pages: WkPages | None = None
    total_count: int | None = None
    data_updated_at: str | None = None
    data: list[WkSubject]


class WaniKaniClient:
    """Minimal authenticated client for the paginated subjects endpoint."""

    def __init__(
        self,
        token: str,
        base_url: str = DEFAULT_BASE_URL,
        revision: str = WK_REVISION,
        session: requests.Session | None = None,
        timeout: float = 60,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Wanikani-Revision": revision,
            }
        )

    def get(self, url: str, params: dict[str, str] | None = None) -> dict[str, Any]:
        resp = self.session.get(url, params=params, timeout=self.timeout)
        if resp.status_code != 200:
            raise WaniKaniError(f"Error {resp.status_code}: {resp.text}", status_code=resp.status_code)
        return resp.json()

    def iter_subjects(self, updated_after: datetime | None = None) -> Iterator[WkSubject]:
        """Yield vocabulary subjects page by page, following ``pages.next_url``."""
        params: dict[str, str] | None = {"types": ",".join(VOCABULARY_TYPES)}
        if updated_after is not None:
            params["updated_after"] = updated_after.isoformat()

        url: str | None = f"{self.base_url}/subjects"
        while url is not None:
            page = self._parse_page(self.get(url, params=params))
            logger.info("Found %s updated WaniKani subjects", len(page.data))
            yield from page.data
            url = page.pages.next_url if page.pages else None
            # next_url already carries the query string
            params = None

    @staticmethod
    def _parse_page(payload: dict[str, Any]) -> WkSubjects:
        try:
            return WkSubjects.model_validate(payload)
        except ValidationError as exc:
            raise WaniKaniError(f"Unexpected subjects payload: {exc}") from exc


def to_dictionary_entry(subject: WkSubject, strict_pos: bool = False) -> DictionaryEntry | None:
    """Convert a vocabulary subject; other subject types yield ``None``."""
    try:
        vocab = subject.vocabulary()
    except ValidationError as exc:
        raise WaniKaniError(f"Unexpected vocabulary data for subject {subject.id}: {exc}") from exc
    if vocab is None:
        return None

    definitions: tuple[Definition, ...] = ()
    try:
        pos = classify_all(vocab.parts_of_speech)
    except UnknownPartOfSpeech as exc:
        if strict_pos:
            raise
        logger.warning("Dropping definition of WaniKani subject %s: %s", subject.id, exc)
    else:
        text = MEANING_SEPARATOR.join(meaning.meaning for meaning in vocab.meanings)
        definitions = (Definition(text=text, pos=pos, flags=(WK_FLAG,)),)

    return DictionaryEntry(
        forms=(vocab.characters,),
        source=Source.wanikani(subject.id),
        definitions=definitions,
        audio=tuple(audio.url for audio in vocab.pronunciation_audios),
        readings=tuple(reading.reading for reading in vocab.readings),
        examples=tuple(
            Example(for_definition=None, en=sentence.en, ja=sentence.ja)
            for sentence in vocab.context_sentences
        ),
    )


__all__ = [
    "WaniKaniClient",
    "WaniKaniError",
    "WkSubject",
    "WkSubjects",
    "WkVocabulary",
    "to_dictionary_entry",
]
