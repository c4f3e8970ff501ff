"""Note extractors.

Each variant turns the text of one matched note into an `ExtractedNote`.
They share the same steps: strip the identifier marker, strip the tag
marker, resolve the note type against the schema, split the remaining
text into fields and render every field. Only the first three steps and
the field split differ per variant.

Failures are reported on the returned note (`ExtractedNote.issue`), never
raised, so a scan can carry on with the next candidate.
"""
from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from notesync.notes.formatter import FieldFormatter
from notesync.notes.models import ExtractedNote, NoteIssue, NoteKind, NotePayload
from notesync.patterns import (
    ANKI_CLOZE_REGEXP,
    BLOCKQUOTE_REGEXP,
    CALLOUT_FIELDS_REGEXP,
    CALLOUT_TYPE_REGEXP,
    ID_REGEXP,
    INLINE_TAG_REGEXP,
    INLINE_TYPE_REGEXP,
    OBS_TAG_REGEXP,
    TAG_PREFIX,
    TAG_SEP,
    TAG_TOKEN_REGEXP,
)

DEFAULT_CALLOUT_TYPE = 'Basic'


def split_tags(text: str) -> List[str]:
    return [tag for tag in text.split(TAG_SEP) if tag]


def has_clozes(text: str) -> bool:
    return bool(ANKI_CLOZE_REGEXP.search(text))


def note_has_clozes(note: NotePayload) -> bool:
    return any(has_clozes(value) for value in note.fields.values())


class NoteVariant:
    kind: NoteKind = None

    def __init__(self, text: str, fields_dict: Dict[str, List[str]], curly_cloze: bool = False, highlights_to_cloze: bool = False, formatter: FieldFormatter = None):
        self.text = text.strip()
        self.fields_dict = fields_dict
        self.curly_cloze = curly_cloze
        self.highlights_to_cloze = highlights_to_cloze
        self.formatter = formatter or FieldFormatter()
        self.identifier: Optional[int] = None
        self.tags: List[str] = []
        self.note_type = ''
        self.field_names: List[str] = []
        self._resolved = None

    def read_header(self) -> None:
        """Set identifier, tags and note_type, stripping their markers from the text."""
        raise NotImplementedError

    def read_fields(self) -> Optional[Dict[str, str]]:
        """Return raw text per field name, or None when the note has no usable content."""
        raise NotImplementedError

    def resolve(self) -> bool:
        if self._resolved is None:
            self.read_header()
            self._resolved = self.note_type in self.fields_dict
            if self._resolved:
                self.field_names = self.fields_dict[self.note_type]
        return self._resolved

    @property
    def cloze(self) -> bool:
        return self.curly_cloze and 'cloze' in self.note_type.lower()

    def format_fields(self, raw: Dict[str, str]) -> Dict[str, str]:
        return {
            name: self.formatter.format(value.strip(), self.cloze, self.highlights_to_cloze).strip()
            for name, value in raw.items()
        }

    def get_fields(self) -> Optional[Dict[str, str]]:
        if not self.resolve():
            return None
        raw = self.read_fields()
        if raw is None:
            return None
        return self.format_fields(raw)

    def validate(self, note: NotePayload) -> Optional[NoteIssue]:
        return None

    def harvest_tags(self, note: NotePayload) -> None:
        for name in list(note.fields):
            value = note.fields[name]
            self.tags.extend(OBS_TAG_REGEXP.findall(value))
            note.fields[name] = OBS_TAG_REGEXP.sub('', value)

    def parse(self, deck: str, config, url: str = '', frozen_fields: Dict[str, Dict[str, str]] = None, context: str = '') -> ExtractedNote:
        note = config.template.clone()
        note.deck_name = deck
        known = self.resolve()
        note.note_type = self.note_type
        if not known:
            return ExtractedNote(note=note, kind=self.kind, identifier=self.identifier, issue=NoteIssue.UNKNOWN_NOTE_TYPE)
        fields = self.get_fields()
        if fields is None:
            return ExtractedNote(note=note, kind=self.kind, identifier=self.identifier, issue=NoteIssue.EMPTY_FIELD)
        note.fields = fields
        if url:
            self.formatter.format_note_with_url(note, url, config.file_link_field(self.note_type))
        if frozen_fields:
            self.formatter.format_note_with_frozen_fields(note, frozen_fields)
        if context:
            field = config.context_field(self.note_type)
            note.fields[field] = note.fields.get(field, '') + context
        if config.add_obs_tags:
            self.harvest_tags(note)
        issue = self.validate(note)
        note.tags.extend(self.tags)
        return ExtractedNote(note=note, kind=self.kind, identifier=self.identifier, issue=issue)


class BlockNote(NoteVariant):
    """Multi-line note: type on the first line, `Field:` prefixes start fields."""

    kind = NoteKind.BLOCK

    def read_header(self) -> None:
        self.lines = self.text.split('\n')
        match = ID_REGEXP.search(self.lines[-1])
        if match:
            self.identifier = int(match.group(1))
            self.lines.pop()
        if self.lines and self.lines[-1].startswith(TAG_PREFIX):
            self.tags = split_tags(self.lines.pop()[len(TAG_PREFIX):])
        self.note_type = self.lines[0].strip() if self.lines else ''

    def field_from_line(self, line: str, current: str):
        for field in self.field_names:
            if line.startswith(field + ':'):
                return line[len(field) + 1:], field
        return line, current

    def read_fields(self) -> Dict[str, str]:
        fields = {name: '' for name in self.field_names}
        current = self.field_names[0]
        for line in self.lines[1:]:
            line, current = self.field_from_line(line, current)
            fields[current] += line + '\n'
        return fields


class InlineNote(NoteVariant):
    """Single-line note: `[Type]` first, `Field:` tokens start fields."""

    kind = NoteKind.INLINE

    def read_header(self) -> None:
        match = ID_REGEXP.search(self.text)
        if match:
            self.text = self.text[:match.start()].strip()
            self.identifier = int(match.group(1))
        match = INLINE_TAG_REGEXP.search(self.text)
        if match:
            self.text = self.text[:match.start()].strip()
            self.tags = split_tags(match.group(1))
        match = INLINE_TYPE_REGEXP.search(self.text)
        if match:
            self.note_type = match.group(1)
            self.text = self.text[match.end():]

    def read_fields(self) -> Dict[str, str]:
        fields = {name: '' for name in self.field_names}
        current = self.field_names[0]
        for word in self.text.split(' '):
            for field in self.field_names:
                if word == field + ':':
                    current = field
                    word = ''
            fields[current] += word + ' '
        return fields


class RegexNote(NoteVariant):
    """Note captured by a user pattern; groups map onto fields in schema order.

    `groups` is the full match followed by the capture groups. When the
    pattern was extended with the identifier and/or tag suffix, those are
    the trailing groups (identifier last).
    """

    kind = NoteKind.REGEX

    def __init__(self, groups: Sequence[Optional[str]], note_type: str, fields_dict: Dict[str, List[str]], search_tags: bool, search_id: bool, curly_cloze: bool = False, highlights_to_cloze: bool = False, formatter: FieldFormatter = None):
        super().__init__('', fields_dict, curly_cloze, highlights_to_cloze, formatter)
        self.groups = list(groups)
        self.search_tags = search_tags
        self.search_id = search_id
        self.note_type = note_type

    @classmethod
    def from_match(cls, match, note_type: str, fields_dict: Dict[str, List[str]], search_tags: bool, search_id: bool, **kwargs) -> 'RegexNote':
        return cls([match.group(0)] + list(match.groups()), note_type, fields_dict, search_tags, search_id, **kwargs)

    def read_header(self) -> None:
        if self.search_id:
            self.identifier = int(self.groups.pop())
        if self.search_tags:
            self.tags = split_tags((self.groups.pop() or '')[len(TAG_PREFIX):])

    def read_fields(self) -> Dict[str, str]:
        fields = {name: '' for name in self.field_names}
        for name, value in zip(self.field_names, self.groups[1:]):
            fields[name] = value or ''
        return fields

    def validate(self, note: NotePayload) -> Optional[NoteIssue]:
        # a cloze type without any cloze deletion was not really a note
        if 'cloze' in self.note_type.lower() and not note_has_clozes(note):
            return NoteIssue.INVALID_CLOZE
        return None


class CalloutNote(NoteVariant):
    """`> [!anki:Type]` callout: marker line is the Front, quoted lines the Back.

    Front and Back fill the first two fields of the resolved type.
    """

    kind = NoteKind.CALLOUT

    def read_header(self) -> None:
        match = ID_REGEXP.search(self.text)
        if match:
            self.text = self.text[:match.start()].strip()
            self.identifier = int(match.group(1))
        self.tags = [tag for tag in TAG_TOKEN_REGEXP.findall(self.text) if tag]
        match = CALLOUT_TYPE_REGEXP.search(self.text)
        if match:
            self.note_type = match.group(1).strip() or DEFAULT_CALLOUT_TYPE

    def read_fields(self) -> Optional[Dict[str, str]]:
        match = CALLOUT_FIELDS_REGEXP.match(self.text)
        if not match:
            return None
        front = TAG_TOKEN_REGEXP.sub('', match.group(1))
        back = BLOCKQUOTE_REGEXP.sub('', match.group(2))
        if not front.strip() or not back.strip():
            return None
        fields = {name: '' for name in self.field_names}
        # Front/Back land in the type's first two fields
        if len(self.field_names) > 1:
            fields[self.field_names[0]] = front
            fields[self.field_names[1]] = back
        else:
            fields[self.field_names[0]] = front + '\n' + back
        return fields
