"""Note payloads, extraction outcomes and document metadata.

`NotePayload` mirrors the note template handed to the flashcard store
(deckName / modelName / fields / options / tags). Extractors clone the
template for every note they produce and wrap it in an `ExtractedNote`
together with the identifier read from the document, the insertion
position for a future identifier marker, and an optional `NoteIssue`
describing why the note must not be sent to the store.

The metadata models describe what the host application knows about one
document (headings, embeds, links); they are consumed read-only.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class NoteSyncError(Exception):
    pass


class NoteKind(str, Enum):
    BLOCK = 'block'
    INLINE = 'inline'
    REGEX = 'regex'
    CALLOUT = 'callout'


class NoteIssue(str, Enum):
    UNKNOWN_NOTE_TYPE = 'unknown_note_type'
    INVALID_CLOZE = 'invalid_cloze'
    EMPTY_FIELD = 'empty_field'
    DANGLING_IDENTIFIER = 'dangling_identifier'


def _default_options() -> Dict[str, Any]:
    return {'allowDuplicate': False, 'duplicateScope': 'deck'}


class NotePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    deck_name: str = Field('Default', alias='deckName')
    note_type: str = Field('', alias='modelName')
    fields: Dict[str, str] = Field(default_factory=dict)
    options: Dict[str, Any] = Field(default_factory=_default_options)
    tags: List[str] = Field(default_factory=list)

    def clone(self) -> 'NotePayload':
        return self.model_copy(deep=True)


class ExtractedNote(BaseModel):
    note: NotePayload
    kind: NoteKind
    identifier: Optional[int] = None
    issue: Optional[NoteIssue] = None
    position: Optional[int] = None

    @property
    def note_type(self) -> str:
        return self.note.note_type

    @property
    def fields(self) -> Dict[str, str]:
        return self.note.fields

    @property
    def tags(self) -> List[str]:
        return self.note.tags

    @property
    def ok(self) -> bool:
        return self.issue is None


class ScanIssue(BaseModel):
    issue: NoteIssue
    kind: NoteKind
    note_type: Optional[str] = None
    identifier: Optional[int] = None
    offset: Optional[int] = None


class HeadingRef(BaseModel):
    level: int = Field(..., ge=1, le=6)
    heading: str
    offset: int = Field(..., ge=0, description='Start offset of the heading line')


class EmbedRef(BaseModel):
    original: str = Field(..., description='Literal text of the embed, e.g. ![[image.png]]')
    link: str
    display_text: str = ''


class LinkRef(BaseModel):
    original: str = Field(..., description='Literal text of the link, e.g. [[Other note]]')
    link: str
    display_text: str = ''


class DocumentMetadata(BaseModel):
    headings: Optional[List[HeadingRef]] = None
    embeds: Optional[List[EmbedRef]] = None
    links: Optional[List[LinkRef]] = None
