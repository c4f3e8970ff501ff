"""Scanning one document for notes.

The scanner runs the extractors in a fixed order (block notes, inline
notes, callouts, then every custom note pattern in configuration order)
over an immutable copy of the text. Regions taken by one extractor are
recorded in a `SpanRegistry` so pattern-defined scans cannot extract them
again. Notes without an identifier become creations (with the position
where their identifier will later be written), notes with a known
identifier become updates, and everything else is reported and dropped.
"""
from __future__ import annotations

import hashlib
import logging
import re
import time
from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, Field

from notesync.config import ScanConfig
from notesync.notes.formatter import FieldFormatter
from notesync.notes.models import DocumentMetadata, ExtractedNote, NoteIssue, NoteKind, NoteSyncError, ScanIssue
from notesync.notes.variants import BlockNote, CalloutNote, InlineNote, RegexNote, split_tags
from notesync.patterns import (
    ID_REGEXP_STR,
    OBS_CODE_REGEXP,
    OBS_DISPLAY_CODE_REGEXP,
    OBS_DISPLAY_MATH_REGEXP,
    OBS_INLINE_MATH_REGEXP,
    TAG_REGEXP_STR,
    DocumentPatterns,
)
from notesync.scanning import rewriter
from notesync.scanning.spans import SpanRegistry
from notesync.utils import get_logger, log_ids_written, log_note_skipped, log_scan_result

LOG = get_logger()


class PatternError(NoteSyncError):
    def __init__(self, note_type: str, message: str):
        super().__init__(f'invalid pattern for note type {note_type!r}: {message}')
        self.note_type = note_type


class ScanResult(BaseModel):
    path: str
    target_deck: str
    global_tags: List[str] = Field(default_factory=list)
    frozen_fields: Dict[str, Dict[str, str]] = Field(default_factory=dict)
    notes_to_add: List[ExtractedNote] = Field(default_factory=list)
    notes_to_edit: List[ExtractedNote] = Field(default_factory=list)
    notes_to_delete: List[int] = Field(default_factory=list)
    issues: List[ScanIssue] = Field(default_factory=list)
    media_links: List[str] = Field(default_factory=list)

    def edit_ids(self) -> List[int]:
        return [note.identifier for note in self.notes_to_edit]

    def tag_updates(self) -> List[Tuple[int, str]]:
        return [(note.identifier, ' '.join(note.tags + self.global_tags)) for note in self.notes_to_edit]


class DocumentScanner:
    def __init__(self, text: str, path: str, config: ScanConfig, metadata: Optional[DocumentMetadata] = None, url: str = '', existing_ids: Iterable[int] = ()):
        self.text = text
        self.path = path
        self.url = url
        self.config = config
        self.metadata = metadata or DocumentMetadata()
        self.existing_ids = frozenset(existing_ids)
        self.patterns = DocumentPatterns(config.syntax)
        self.formatter = FieldFormatter(self.metadata, config.vault_name)
        self.reset_results()

    def content_hash(self) -> str:
        return hashlib.md5(self.text.encode('utf-8')).hexdigest()

    # -- setup -------------------------------------------------------------

    def setup_frozen_fields(self) -> None:
        frozen = {
            note_type: {field: '' for field in fields}
            for note_type, fields in self.config.fields_dict.items()
        }
        for match in self.patterns.frozen.finditer(self.text):
            note_type, fields = match.group(1), match.group(2)
            parsed = BlockNote(
                note_type + '\n' + fields,
                self.config.fields_dict,
                self.config.curly_cloze,
                self.config.highlights_to_cloze,
                self.formatter,
            ).get_fields()
            if parsed is None:
                self._report(NoteIssue.UNKNOWN_NOTE_TYPE, NoteKind.BLOCK, note_type, None, match.start())
                continue
            frozen[note_type] = parsed
        self.frozen_fields = frozen

    def setup_target_deck(self) -> None:
        match = self.patterns.deck.search(self.text)
        self.target_deck = match.group(1).strip() if match else self.config.template.deck_name

    def setup_global_tags(self) -> None:
        match = self.patterns.tags.search(self.text)
        self.global_tags = split_tags(match.group(1).strip()) if match else []

    def add_spans_to_ignore(self) -> None:
        self.spans = SpanRegistry()
        self.spans.claim_matches(self.patterns.frozen, self.text)
        for pattern in (self.patterns.deck, self.patterns.tags):
            match = pattern.search(self.text)
            if match:
                self.spans.claim(match.span())
        for pattern in (
            self.patterns.note,
            self.patterns.inline,
            self.patterns.deletion,
            OBS_INLINE_MATH_REGEXP,
            OBS_DISPLAY_MATH_REGEXP,
            OBS_CODE_REGEXP,
            OBS_DISPLAY_CODE_REGEXP,
        ):
            self.spans.claim_matches(pattern, self.text)

    def reset_results(self) -> None:
        self.issues: List[ScanIssue] = []
        self.block_notes_to_add: List[ExtractedNote] = []
        self.inline_notes_to_add: List[ExtractedNote] = []
        self.regex_notes_to_add: List[ExtractedNote] = []
        self.callout_notes_to_add: List[ExtractedNote] = []
        self.notes_to_edit: List[ExtractedNote] = []
        self.notes_to_delete: List[int] = []

    def setup_scan(self) -> None:
        self.reset_results()
        self.setup_frozen_fields()
        self.setup_target_deck()
        self.setup_global_tags()
        self.add_spans_to_ignore()

    # -- helpers -----------------------------------------------------------

    def context_at(self, position: int) -> str:
        """Document path followed by the headings enclosing position."""
        if not self.metadata.headings:
            return self.path
        context = []
        for heading in self.metadata.headings:
            if position < heading.offset:
                break
            insert_index = 0
            for outer in context:
                if heading.level > outer.level:
                    insert_index += 1
                    continue
                break
            context = context[:insert_index]
            context.append(heading)
        return ' > '.join([self.path] + [heading.heading for heading in context])

    def _context(self, position: int) -> str:
        return self.context_at(position) if self.config.add_context else ''

    def _report(self, issue: NoteIssue, kind: NoteKind, note_type: Optional[str], identifier: Optional[int], offset: Optional[int], level: int = logging.WARNING) -> None:
        self.issues.append(ScanIssue(issue=issue, kind=kind, note_type=note_type, identifier=identifier, offset=offset))
        log_note_skipped(self.path, issue.value, note_type, identifier, level=level)

    def _dispose(self, parsed: ExtractedNote, pending: List[ExtractedNote], position: int, offset: int) -> None:
        if parsed.issue is not None:
            self._report(parsed.issue, parsed.kind, parsed.note_type, parsed.identifier, offset)
        elif parsed.identifier is None:
            parsed.note.tags.extend(self.global_tags)
            parsed.position = position
            pending.append(parsed)
        elif parsed.identifier in self.existing_ids:
            self.notes_to_edit.append(parsed)
        else:
            parsed.issue = NoteIssue.DANGLING_IDENTIFIER
            self._report(parsed.issue, parsed.kind, parsed.note_type, parsed.identifier, offset)

    def _parse(self, variant, offset: int) -> ExtractedNote:
        return variant.parse(self.target_deck, self.config, self.url, self.frozen_fields, self._context(offset))

    def _variant_options(self) -> dict:
        return {
            'curly_cloze': self.config.curly_cloze,
            'highlights_to_cloze': self.config.highlights_to_cloze,
            'formatter': self.formatter,
        }

    # -- extractors --------------------------------------------------------

    def scan_notes(self) -> None:
        for match in self.patterns.note.finditer(self.text):
            body = match.group(1)
            if self.patterns.deletion.match(body):
                continue
            variant = BlockNote(body, self.config.fields_dict, **self._variant_options())
            self._dispose(self._parse(variant, match.start()), self.block_notes_to_add, match.end(1), match.start())

    def scan_inline_notes(self) -> None:
        for match in self.patterns.inline.finditer(self.text):
            variant = InlineNote(match.group(1), self.config.fields_dict, **self._variant_options())
            self._dispose(self._parse(variant, match.start()), self.inline_notes_to_add, match.end(1), match.start())

    def scan_callout_notes(self) -> None:
        for match in self.spans.finditer(self.patterns.callout, self.text):
            self.spans.claim(match.span())
            variant = CalloutNote(match.group(1), self.config.fields_dict, **self._variant_options())
            self._dispose(self._parse(variant, match.start()), self.callout_notes_to_add, match.end(1), match.start())

    def compile_search(self, note_type: str, regexp_str: str, search_tags: bool, search_id: bool):
        pattern = regexp_str + (TAG_REGEXP_STR if search_tags else '') + (ID_REGEXP_STR if search_id else '')
        try:
            return re.compile(pattern, re.MULTILINE)
        except re.error as e:
            LOG.exception('custom_pattern_invalid', exc_info=True, extra={'note_type': note_type})
            raise PatternError(note_type, str(e))

    def search(self, note_type: str, regexp_str: str) -> None:
        """Scan for one pattern-defined note type.

        Four passes: with and without the identifier suffix, each with and
        without the tag suffix. Every match claims its span immediately so
        later passes and later types skip it.
        """
        if note_type not in self.config.fields_dict:
            self._report(NoteIssue.UNKNOWN_NOTE_TYPE, NoteKind.REGEX, note_type, None, None)
            return
        for search_id in (True, False):
            for search_tags in (True, False):
                pattern = self.compile_search(note_type, regexp_str, search_tags, search_id)
                for match in self.spans.finditer(pattern, self.text):
                    self.spans.claim(match.span())
                    variant = RegexNote.from_match(match, note_type, self.config.fields_dict, search_tags, search_id, **self._variant_options())
                    parsed = self._parse(variant, match.start())
                    if parsed.issue == NoteIssue.INVALID_CLOZE:
                        # not a note after all; give the region back
                        self.spans.release_last()
                        log_note_skipped(self.path, parsed.issue.value, note_type, parsed.identifier, level=logging.DEBUG)
                        continue
                    self._dispose(parsed, self.regex_notes_to_add, match.end(), match.start())

    def scan_deletions(self) -> None:
        for match in self.patterns.deletion.finditer(self.text):
            self.notes_to_delete.append(int(match.group(1)))

    # -- entry points ------------------------------------------------------

    @property
    def notes_to_add(self) -> List[ExtractedNote]:
        # submission order; identifiers come back in this order
        return self.block_notes_to_add + self.inline_notes_to_add + self.regex_notes_to_add + self.callout_notes_to_add

    def scan(self) -> ScanResult:
        start = time.time()
        self.setup_scan()
        self.scan_notes()
        self.scan_inline_notes()
        self.scan_callout_notes()
        for note_type, regexp_str in self.config.custom_regexps.items():
            if regexp_str:
                self.search(note_type, regexp_str)
        self.scan_deletions()
        result = ScanResult(
            path=self.path,
            target_deck=self.target_deck,
            global_tags=self.global_tags,
            frozen_fields=self.frozen_fields,
            notes_to_add=self.notes_to_add,
            notes_to_edit=self.notes_to_edit,
            notes_to_delete=self.notes_to_delete,
            issues=self.issues,
            media_links=list(self.formatter.detected_media),
        )
        duration_ms = int((time.time() - start) * 1000)
        log_scan_result(self.path, len(result.notes_to_add), len(result.notes_to_edit), len(result.notes_to_delete), len(result.issues), duration_ms)
        return result

    def write_ids(self, note_ids: List[Optional[int]]) -> str:
        """Return the document text with identifiers for the created notes written in."""
        start = time.time()
        text = rewriter.write_ids(self.text, self.notes_to_add, note_ids, comment=self.config.comment)
        duration_ms = int((time.time() - start) * 1000)
        log_ids_written(self.path, len([i for i in note_ids if i]), duration_ms)
        return text

    def remove_deletions(self, text: Optional[str] = None) -> str:
        return rewriter.remove_deletions(self.text if text is None else text, self.patterns)
