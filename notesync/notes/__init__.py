"""
Note extraction: payload models, field formatting and the note variants
(block, inline, pattern-defined, callout).
"""
from .models import (
	NoteSyncError,
	NoteKind,
	NoteIssue,
	NotePayload,
	ExtractedNote,
	ScanIssue,
	HeadingRef,
	EmbedRef,
	LinkRef,
	DocumentMetadata,
)
from .formatter import FieldFormatter, render_markdown
from .variants import NoteVariant, BlockNote, InlineNote, RegexNote, CalloutNote

__all__ = [
	'NoteSyncError', 'NoteKind', 'NoteIssue', 'NotePayload', 'ExtractedNote', 'ScanIssue',
	'HeadingRef', 'EmbedRef', 'LinkRef', 'DocumentMetadata',
	'FieldFormatter', 'render_markdown',
	'NoteVariant', 'BlockNote', 'InlineNote', 'RegexNote', 'CalloutNote',
]
